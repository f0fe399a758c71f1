"""
Configuration for proposal-site builds.

Settings come from (lowest to highest precedence) defaults, a ``.env`` file,
``PROPOSAL_SITE_*`` environment variables, an optional YAML file, and finally
CLI options.

Examples:
    >>> settings = SiteSettings(source_dir="peps", output_dir="build")
    >>> settings.max_workers
    4
    >>> SiteSettings.from_yaml(Path("site.yaml")).site_title  # doctest: +SKIP
    'Python Enhancement Proposals'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from proposal_site.errors import ConfigError

ColorScheme = Literal["auto", "light", "dark"]


class SiteSettings(BaseSettings):
    """Settings for one site build.

    Fields
    ──────
    source_dir        : Directory holding the proposal files
    output_dir        : Where the rendered site is published
    include_patterns  : Glob patterns selecting proposal files in source_dir
    site_title        : Title used for the index page and breadcrumbs
    color_scheme      : Initial color-scheme marker handed to the templates
    theme_dir         : Optional directory of templates overriding the defaults
    max_workers       : Thread pool size for parsing and rendering
    log_level         : Structlog log level
    json_logs         : Force JSON (True) or console (False) logs; auto if unset
    write_report      : Write build-report.json next to the pages
    """

    model_config = SettingsConfigDict(
        env_prefix="PROPOSAL_SITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Input / output ───────────────────────────────────────────
    source_dir: Path = Path(".")
    output_dir: Path = Path("build")
    include_patterns: list[str] = Field(
        default_factory=lambda: ["pep-*.rst", "pep-*.txt"],
    )

    # ── Presentation ─────────────────────────────────────────────
    site_title: str = "Python Enhancement Proposals"
    color_scheme: ColorScheme = "auto"
    theme_dir: Path | None = None

    # ── Execution ────────────────────────────────────────────────
    max_workers: int = Field(default=4, ge=1, le=64)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    write_report: bool = True

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    @field_validator("include_patterns")
    @classmethod
    def _require_patterns(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one include pattern is required")
        return value

    @classmethod
    def from_yaml(cls, yaml_path: Path, **overrides: Any) -> SiteSettings:
        """Load settings from a YAML file.

        Relative ``source_dir``/``output_dir``/``theme_dir`` values are taken
        relative to the YAML file's directory.

        Args:
            yaml_path: Path to YAML configuration file
            **overrides: Values that win over the file (e.g. CLI options)

        Returns:
            SiteSettings instance

        Raises:
            ConfigError: If the file is unreadable, not a mapping, or invalid
        """
        yaml_path = Path(yaml_path)
        try:
            with open(yaml_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(
                f"Cannot read configuration file: {e}", cause=e
            ).with_context(path=str(yaml_path)) from e

        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration file must contain a mapping"
            ).with_context(path=str(yaml_path))

        base = yaml_path.parent
        for key in ("source_dir", "output_dir", "theme_dir"):
            value = data.get(key)
            if value is not None and not Path(value).is_absolute():
                data[key] = base / value

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data, source=str(yaml_path))

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str | None = None) -> SiteSettings:
        """Create settings from a dictionary, wrapping validation errors.

        Args:
            data: Settings values
            source: Where the values came from, for error messages

        Returns:
            SiteSettings instance
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}", cause=e).with_context(
                path=source
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a JSON-friendly dictionary."""
        return self.model_dump(mode="json")


__all__ = ["ColorScheme", "SiteSettings"]
