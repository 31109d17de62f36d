"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs   — CLI flags passed by Click
  2. Env vars      — ``NATSFORGE_*`` prefix, ``__`` for nested keys
  3. TOML file     — ``natsforge.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from natsforge.config.discovery import find_config
from natsforge.config.models import DeployConfig, IssuerConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``natsforge.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class ForgeSettings(BaseSettings):
    """Settings for the natsforge CLI, frozen after construction.

    Attributes:
        config_path: The TOML file in effect, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "NATSFORGE_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    issuer: IssuerConfig = Field(default_factory=IssuerConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
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
        start: Path | None = None,
        **cli_flags: Any,
    ) -> ForgeSettings:
        """Construct settings from a CLI invocation.

        Uses *config_path* when it names a file, otherwise walks up from
        *start* for ``natsforge.toml``. CLI flags override everything.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def with_overrides(self, **sections: dict[str, Any]) -> ForgeSettings:
        """Copy with per-command overrides merged into TOML sections.

        ``None`` values are ignored so unset CLI options keep the
        configured value.
        """
        update: dict[str, Any] = {}
        for section, values in sections.items():
            changes = {k: v for k, v in values.items() if v is not None}
            if changes:
                current = getattr(self, section)
                update[section] = type(current).model_validate({**current.model_dump(), **changes})
        return self.model_copy(update=update) if update else self
