"""
Transwatch Configuration Module.

Centralizes ambient configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from the current working directory into os.environ so the
# nested BaseSettings classes can read the values
load_dotenv()


def _dotted(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("extension must not be empty")
    return value if value.startswith(".") else f".{value}"


class BuildSettings(BaseSettings):
    """Compilation settings."""

    model_config = SettingsConfigDict(env_prefix="BUILD_")

    source_extension: str = Field(default=".src", description="Suffix of compilable inputs")
    target_extension: str = Field(default=".out", description="Suffix of compiled outputs")
    compiler: str = Field(
        default="builder.compiler:passthrough",
        description="Import string of the compile callable (module:attribute)",
    )

    @field_validator("source_extension", "target_extension")
    @classmethod
    def ensure_leading_dot(cls, v: str) -> str:
        """Accept extensions given with or without the leading dot."""
        return _dotted(v)


class WatcherSettings(BaseSettings):
    """Watch-mode settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    force_polling: bool = Field(default=False, description="Skip the native backend probe")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="WARNING")
    format: Literal["json", "console"] = Field(default="console")


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="transwatch")
    app_version: str = Field(default="0.1.0")

    build: BuildSettings = Field(default_factory=BuildSettings)
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings. Tests call
    ``get_settings.cache_clear()`` after changing the environment.
    """
    return Settings()


@dataclass(frozen=True)
class BuildConfig:
    """
    Immutable per-invocation configuration.

    Combines command-line values with ambient settings; passed explicitly
    to the catalog, the watch backends and the orchestrator.
    """

    roots: tuple[Path, ...]
    target_dir: Path = Path(".")
    source_extension: str = ".src"
    target_extension: str = ".out"
    watch: bool = False
    print_output: bool = False  # -p: one combined stream, no per-file files
    output_file: Path | None = None
    force_polling: bool = False

    @classmethod
    def from_settings(
        cls,
        roots: list[Path] | tuple[Path, ...],
        settings: Settings | None = None,
        **overrides: Any,
    ) -> "BuildConfig":
        """
        Build a config from ambient settings plus command-line values.

        Args:
            roots: File or directory roots to catalog
            settings: Ambient settings (defaults to ``get_settings()``)
            **overrides: Any other BuildConfig field

        Returns:
            Frozen BuildConfig
        """
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "source_extension": settings.build.source_extension,
            "target_extension": settings.build.target_extension,
            "force_polling": settings.watcher.force_polling,
        }
        values.update(overrides)
        return cls(roots=tuple(Path(r) for r in roots), **values)
