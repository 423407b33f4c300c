"""SoltrOS image targets for channel rebases.

Maps (channel, desktop) to the published image repository and renders the
``/etc/os-release`` that matches the image.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class Channel(StrEnum):
    STABLE = "stable"
    UNSTABLE = "unstable"


class Desktop(StrEnum):
    KDE = "kde"
    COSMIC = "cosmic"
    GNOME = "gnome"
    HYPRVIBE = "hyprvibe"


DESKTOP_ALIASES: dict[str, Desktop] = {
    "kde": Desktop.KDE,
    "plasma": Desktop.KDE,
    "kde_plasma": Desktop.KDE,
    "default": Desktop.KDE,
    "cosmic": Desktop.COSMIC,
    "gnome": Desktop.GNOME,
    "hyprvibe": Desktop.HYPRVIBE,
}

DESKTOP_LABELS: dict[Desktop, str] = {
    Desktop.KDE: "KDE Plasma",
    Desktop.COSMIC: "COSMIC",
    Desktop.GNOME: "Gnome",
    Desktop.HYPRVIBE: "Hyprvibe",
}

# os-release VARIANT values; the desktop enum value doubles as VARIANT_ID.
_VARIANT_NAMES: dict[Desktop, str] = {
    Desktop.KDE: "KDE Plasma",
    Desktop.COSMIC: "COSMIC",
    Desktop.GNOME: "gnome",
    Desktop.HYPRVIBE: "hyprvibe",
}

_IMAGE_SUFFIXES: dict[tuple[Channel, Desktop], str] = {
    (Channel.STABLE, Desktop.KDE): "soltros-os_lts",
    (Channel.STABLE, Desktop.COSMIC): "soltros-lts_cosmic",
    (Channel.STABLE, Desktop.GNOME): "soltros-os-lts_gnome",
    (Channel.STABLE, Desktop.HYPRVIBE): "soltros-os-lts_hyprvibe",
    (Channel.UNSTABLE, Desktop.KDE): "soltros-os",
    (Channel.UNSTABLE, Desktop.COSMIC): "soltros-unstable_cosmic",
    (Channel.UNSTABLE, Desktop.GNOME): "soltros-os-unstable_gnome",
    (Channel.UNSTABLE, Desktop.HYPRVIBE): "soltros-os-unstable_hyprvibe",
}


@dataclass(frozen=True)
class ChannelRelease:
    """Release metadata written into os-release for a channel."""

    version: str
    version_id: str
    fedora: int


CHANNEL_RELEASES: dict[Channel, ChannelRelease] = {
    Channel.STABLE: ChannelRelease("Long-Term Support (LTS)", "LTS", 42),
    Channel.UNSTABLE: ChannelRelease("Rolling Rocket (Unstable)", "Unstable", 43),
}


def normalize_desktop(raw: str) -> Desktop:
    """Resolve user input (``Plasma``, ``kde-plasma``...) to a :class:`Desktop`.

    Raises:
        ValueError: unknown desktop name.
    """
    key = re.sub(r"[^a-z0-9]", "_", raw.lower())
    desktop = DESKTOP_ALIASES.get(key)
    if desktop is None:
        choices = "|".join(d.value for d in Desktop)
        msg = f"Unknown desktop '{raw}'. Use: {choices}"
        raise ValueError(msg)
    return desktop


@dataclass(frozen=True)
class ImageTarget:
    channel: Channel
    desktop: Desktop
    registry: str

    @property
    def repository(self) -> str:
        return f"{self.registry}/{_IMAGE_SUFFIXES[(self.channel, self.desktop)]}"

    @property
    def reference(self) -> str:
        return f"{self.repository}:latest"

    @property
    def label(self) -> str:
        suffix = "LTS" if self.channel is Channel.STABLE else "Unstable"
        return f"{DESKTOP_LABELS[self.desktop]} {suffix}"


def render_os_release(target: ImageTarget) -> str:
    """Render the os-release file shipped with *target*'s image."""
    release = CHANNEL_RELEASES[target.channel]
    fedora = release.fedora
    lines = [
        'NAME="SoltrOS"',
        f'VERSION="{release.version}"',
        "ID=fedora",
        "ID_LIKE=fedora",
        f"VERSION_ID={release.version_id}",
        f'PLATFORM_ID="platform:f{fedora}"',
        f'PRETTY_NAME="SoltrOS {release.version}"',
        'ANSI_COLOR="0;36"',
        f'CPE_NAME="cpe:/o:fedoraproject:fedora:{fedora}"',
        'HOME_URL="https://github.com/soltros/soltros-os"',
        'SUPPORT_URL="https://github.com/soltros/soltros-os"',
        'BUG_REPORT_URL="https://github.com/soltros/soltros-os/issues"',
        f'VARIANT="{_VARIANT_NAMES[target.desktop]}"',
        f"VARIANT_ID={target.desktop.value}",
    ]
    return "\n".join(lines) + "\n"
