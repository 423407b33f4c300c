"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click (including the legacy
     ``NIX_FLAKE_PATH`` / ``VERBOSE`` / ``QUIET`` variables, which Click
     reads through ``envvar=``)
  2. Env vars     — ``SOLTRCTL_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``config.toml`` located by :func:`find_config`
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any, ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from soltrctl.config.discovery import find_config
from soltrctl.config.models import DesktopConfig, NixConfig, PolicyConfig, SystemConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a discovered ``config.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class SoltrSettings(BaseSettings):
    """Unified settings for the entire soltrctl CLI.

    Built once by the root CLI group and handed to every service through
    the :class:`~soltrctl.infrastructure.host.Host`.

    Attributes:
        config_path: The TOML file that was loaded, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "SOLTRCTL_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    no_interact: bool = False

    # --- TOML sections ---
    nix: NixConfig = Field(default_factory=NixConfig)
    desktop: DesktopConfig = Field(default_factory=DesktopConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    # Retained for type-checker visibility; not used at runtime.
    _toml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        flake_path: str | None = None,
        **cli_flags: Any,
    ) -> SoltrSettings:
        """Construct settings from a CLI invocation.

        *config_path* overrides discovery. *flake_path* (``--flake-path`` /
        ``NIX_FLAKE_PATH``) is merged into the ``[nix]`` section so the
        rest of that section still comes from TOML or defaults.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config()

        overrides: dict[str, Any] = {k: v for k, v in cli_flags.items() if v is not None}
        if flake_path:
            overrides["nix"] = {"flake_path": Path(flake_path).expanduser()}

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None
