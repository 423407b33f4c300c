"""File operations for the policy writer: backups and atomic replacement.

INVARIANT: a live file is replaced in one ``os.replace`` or not at all.
Readers never observe a missing or half-written file.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str, *, mode: int = 0o644) -> None:
    """Write *text* to a temp file beside *path*, then rename it over *path*."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        tmp.chmod(mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def backup_path_for(path: Path, timestamp: str) -> Path:
    """Return a free ``<name>.<timestamp>.bak`` sibling of *path*."""
    candidate = path.with_name(f"{path.name}.{timestamp}.bak")
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}.{timestamp}.{counter}.bak")
        counter += 1
    return candidate


def backup_file(path: Path, timestamp: str) -> Path:
    """Copy *path* (content and metadata) to a timestamped sibling."""
    target = backup_path_for(path, timestamp)
    shutil.copy2(path, target)
    return target


def restore_file(backup: Path, path: Path) -> None:
    """Atomically put *backup* back at *path*, byte for byte, with its mode."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as dst, backup.open("rb") as src:
            shutil.copyfileobj(src, dst)
            dst.flush()
            os.fsync(dst.fileno())
        shutil.copymode(backup, tmp)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def list_backups(path: Path) -> list[Path]:
    """All backups of *path*, oldest first."""
    return sorted(path.parent.glob(f"{path.name}.*.bak"))
