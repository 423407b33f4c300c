"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, config.toml only contains overrides.
A stock SoltrOS install needs no config file at all.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

SOLTROS_REGISTRY = "ghcr.io/soltros"

# Repositories pinned to sigstore verification in the restrictive policy.
SIGNED_REPOSITORIES: tuple[str, ...] = (
    f"{SOLTROS_REGISTRY}/soltros-os",
    f"{SOLTROS_REGISTRY}/soltros-os_lts",
    f"{SOLTROS_REGISTRY}/soltros-lts_cosmic",
    f"{SOLTROS_REGISTRY}/soltros-unstable_cosmic",
    f"{SOLTROS_REGISTRY}/soltros-os-lts_gnome",
    f"{SOLTROS_REGISTRY}/soltros-os-unstable_gnome",
)


class NixConfig(BaseModel):
    """[nix] section."""

    model_config = {"frozen": True}

    flake_path: Path = Field(default_factory=lambda: Path.home() / ".config" / "nixpkgs-soltros")
    profile_path: Path = Field(default_factory=lambda: Path.home() / ".nix-profile")
    nixpkgs_ref: str = "nixpkgs"
    allow_unfree: bool = True
    upgrade_pattern: str = ".*"


class DesktopConfig(BaseModel):
    """[desktop] section."""

    model_config = {"frozen": True}

    refresh: bool = True
    local_share: Path = Field(default_factory=lambda: Path.home() / ".local" / "share")
    signal_processes: list[str] = Field(
        default_factory=lambda: ["gnome-shell", "plasmashell", "xfce4-panel"]
    )


class PolicyConfig(BaseModel):
    """[policy] section."""

    model_config = {"frozen": True}

    path: Path = Path("/etc/containers/policy.json")
    marker_path: Path = Path("/etc/containers/.soltros-trust-relaxed")
    key_path: str = "/etc/pki/containers/soltros.pub"
    registry: str = SOLTROS_REGISTRY
    signed_repositories: list[str] = Field(default_factory=lambda: list(SIGNED_REPOSITORIES))
    reject_unlisted: bool = False


class SystemConfig(BaseModel):
    """[system] section."""

    model_config = {"frozen": True}

    use_sudo: bool = True
    journal_retention: str = "7d"
    os_release_path: Path = Path("/etc/os-release")
