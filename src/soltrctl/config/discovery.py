"""Config file discovery.

Lookup order: ``SOLTRCTL_CONFIG`` env var, the user's XDG config
directory, then the system-wide ``/etc/soltrctl/config.toml``.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "config.toml"
CONFIG_ENV_VAR = "SOLTRCTL_CONFIG"
SYSTEM_CONFIG_DIR = Path("/etc/soltrctl")


def user_config_dir() -> Path:
    """Return ``$XDG_CONFIG_HOME/soltrctl`` (default ``~/.config/soltrctl``)."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "soltrctl"


def find_config(*, system_dir: Path | None = None) -> Path | None:
    """Locate the config file, or None if there isn't one.

    An explicit ``SOLTRCTL_CONFIG`` that points at a missing file
    disables discovery rather than falling through to other locations.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    candidates = (
        user_config_dir() / CONFIG_FILENAME,
        (system_dir or SYSTEM_CONFIG_DIR) / CONFIG_FILENAME,
    )
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None
