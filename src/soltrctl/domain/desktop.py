"""Desktop environment classification."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class DesktopKind(StrEnum):
    """Desktop environments with dedicated cache-invalidation steps."""

    KDE = "kde"
    GNOME = "gnome"
    OTHER = "other"


def classify_desktop(env: Mapping[str, str]) -> DesktopKind:
    """Classify the running session from ``XDG_CURRENT_DESKTOP`` / ``DESKTOP_SESSION``.

    Substring match, case-sensitive like the session variables themselves.
    Anything unrecognized is ``OTHER``.
    """
    current = env.get("XDG_CURRENT_DESKTOP", "")
    session = env.get("DESKTOP_SESSION", "")
    if "KDE" in current or "plasma" in session:
        return DesktopKind.KDE
    if "GNOME" in current:
        return DesktopKind.GNOME
    return DesktopKind.OTHER
