"""Settings for the diagnostic facility.

Sources, highest priority first:
1. Keyword arguments passed to ``Settings``
2. Environment variables (APP_TESTER_*)
3. .env file in the working directory
4. YAML config file (app_tester.yaml, app_tester.yml, config/app_tester.yaml)
5. Field defaults

Example usage:
    from app_tester.config import get_settings

    settings = get_settings()
    print(settings.rank, settings.log_dir)
"""

import logging
from pathlib import Path
from typing import Any, Literal

import yaml  # type: ignore[import-untyped]
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from app_tester.core.ranks import Rank, StreamTarget

logger = logging.getLogger(__name__)

ENV_PREFIX = "APP_TESTER_"
DEFAULT_CONFIG_FILE = Path("app_tester.yaml")

# Only the first one that exists is read
CONFIG_FILE_CANDIDATES = (
    DEFAULT_CONFIG_FILE,
    Path("app_tester.yml"),
    Path("config") / "app_tester.yaml",
)

CONFIG_FILE_HEADER = """\
# app-tester settings
#
# Environment variables (APP_TESTER_<SETTING>) and a .env file both take
# precedence over the values below.

"""


def find_config_file() -> Path | None:
    """Return the first YAML config file present in the working directory."""
    return next((p for p in CONFIG_FILE_CANDIDATES if p.is_file()), None)


def load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Read a YAML config file.

    An unreadable or malformed file is reported and treated as empty, so a
    bad config file never stops the application.

    Args:
        config_path: File to read.

    Returns:
        Mapping of setting names to values.
    """
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring config file {config_path}: {e}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {config_path}: expected a mapping")
        return {}
    logger.info(f"Loaded configuration from {config_path}")
    return data


class ConfigFileSource(YamlConfigSettingsSource):
    """YAML settings source that tolerates broken files."""

    def _read_file(self, file_path: Path) -> dict[str, Any]:
        return load_yaml_config(file_path)


def save_yaml_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Write settings to a YAML config file with an explanatory header.

    Args:
        config: Setting names and values.
        config_path: Target file. Defaults to the config file in use, or
            app_tester.yaml in the working directory.

    Returns:
        The file written.
    """
    config_path = config_path or find_config_file() or DEFAULT_CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(config, default_flow_style=False, sort_keys=False, allow_unicode=True)
    config_path.write_text(CONFIG_FILE_HEADER + body, encoding="utf-8")

    logger.info(f"Saved configuration to {config_path}")
    return config_path


class Settings(BaseSettings):
    """Readout policy, log folder, and internal logging settings."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    # Readouts
    minimum_rank: Literal["UNIMPORTANT", "NORMAL", "IMPORTANT"] = Field(
        default="NORMAL",
        description="Readouts below this rank are kept off the console (still logged)",
    )
    stream_target: Literal["stdout", "stderr", "either"] = Field(
        default="stdout",
        description="Console stream for readouts. either=stderr for errors, stdout otherwise",
    )
    console_enabled: bool = Field(default=True, description="Write readouts to the console")

    # Log file
    log_enabled: bool = Field(default=True, description="Write readouts to the log file")
    log_dir: Path = Field(
        default=Path("Log_Files"),
        description="Log folder, relative to the working directory",
    )

    # Stack traces
    stack_trace_rows: int = Field(
        default=6,
        ge=0,
        description="Stack trace rows shown on the console; the rest only go to the log file",
    )

    # Internal logging
    internal_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Level for the facility's own operational messages",
    )
    internal_log_format: Literal["console", "json"] = Field(
        default="console",
        description="Renderer for the facility's own operational messages",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            ConfigFileSource(settings_cls, yaml_file=find_config_file()),
            file_secret_settings,
        )

    @field_validator("minimum_rank", "internal_log_level", mode="before")
    @classmethod
    def upper_case(cls, v: Any) -> Any:
        """Accept lower-case level names."""
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("stream_target", mode="before")
    @classmethod
    def lower_case(cls, v: Any) -> Any:
        """Accept upper-case stream names."""
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def rank(self) -> Rank:
        return Rank.from_name(self.minimum_rank)

    @property
    def target(self) -> StreamTarget:
        return StreamTarget(self.stream_target)

    def to_yaml_dict(self) -> dict[str, Any]:
        """Settings as plain YAML-serializable values."""
        return self.model_dump(mode="json")


# Cleared by reload_settings
_settings_cache: Settings | None = None


def get_settings() -> Settings:
    """Get settings, loading them on first use."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings()
    return _settings_cache


def reload_settings() -> Settings:
    """Discard cached settings and load them again."""
    global _settings_cache
    _settings_cache = None
    return get_settings()
