"""Library settings for ffcmd.

Settings are read from keyword arguments, environment variables and,
optionally, a YAML file named by ``FFCMD_CONFIG_FILE``. They provide
executable overrides used by the resolver and the defaults applied to new
commands.
"""

import logging
from pathlib import Path
from typing import Any, Literal, cast

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
import yaml

from .exceptions import ConfigLoadError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


class YamlFileFromFieldSource(PydanticBaseSettingsSource):
    """Load settings from a YAML file named by the ``config_file`` field.

    Runs after the init and environment sources so that ``config_file`` can
    itself come from either of them.

    Attributes:
        yaml_file_encoding: Encoding to use when reading the YAML file.
        yaml_data: Data loaded from the file.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file_encoding: str | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file_encoding = yaml_file_encoding or "utf-8"
        self.yaml_data: dict[str, Any] = {}

    def _get_config_file(self) -> Path | None:
        value = self.current_state.get("config_file")
        if value in (None, PydanticUndefined):
            field_info = self.settings_cls.model_fields["config_file"]
            if isinstance(field_info.validation_alias, str):
                value = self.current_state.get(field_info.validation_alias)
        if value in (None, PydanticUndefined, ""):
            return None
        if isinstance(value, str | Path):
            return Path(value).expanduser()
        raise TypeError(
            f"Field 'config_file' must resolve to a Path or string, "
            f"received type '{type(value).__name__}'"
        )

    def _read_yaml_file(self, file_path: Path) -> dict[str, Any]:
        with Path.open(file_path, encoding=self.yaml_file_encoding) as f:
            loaded_yaml = yaml.safe_load(f)

        if isinstance(loaded_yaml, dict):
            return cast(dict[str, Any], loaded_yaml)
        elif loaded_yaml is None:
            logger.info(
                "YAML settings file is empty.",
                extra={"file_path": str(file_path)},
            )
            return {}
        else:
            raise TypeError(
                f"Invalid YAML settings format: expected dict, got {type(loaded_yaml).__name__}"
            )

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get value from loaded YAML data."""
        field_value = self.yaml_data.get(field_name)
        return field_value, field_name, self.field_is_complex(field)

    def __call__(self) -> dict[str, Any]:
        """Load YAML data from the file named by ``config_file``, if any."""
        try:
            yaml_path = self._get_config_file()
        except TypeError as e:
            raise ConfigLoadError("Failed to resolve YAML settings file path.") from e

        if yaml_path is None:
            self.yaml_data = {}
            return {}

        logger.debug("Loading YAML settings.", extra={"file_path": str(yaml_path)})
        try:
            self.yaml_data = self._read_yaml_file(yaml_path)
        except (TypeError, OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(
                "Failed to load or parse YAML settings file.",
                config_file=str(yaml_path),
            ) from e
        return self.yaml_data.copy()


class FFcmdSettings(BaseSettings):
    """Settings for executable resolution, command defaults and logging.

    Attributes:
        ffmpeg_path: Explicit ffmpeg executable, used when the file exists.
        ffprobe_path: Explicit ffprobe executable, used when the file exists.
        flvmeta_path: Explicit flvmeta executable, used when the file exists.
        flvtool2_path: Explicit flvtool2 executable, used when the file exists.
        stdout_lines: Default number of output lines kept per stream (0 = all).
        niceness: Default process niceness, ignored on Windows.
        timeout: Default processing timeout in seconds.
        log_format: Format for logs ('human' or 'json').
        log_level: Logging level for the ffcmd logger.
        log_include_stacktrace: Include full stack traces in error logs.
        config_file: Optional YAML file providing any of the above.
    """

    ffmpeg_path: Path | None = Field(
        default=None,
        validation_alias="FFMPEG_PATH",
        description="Path to the ffmpeg executable; overrides the PATH search.",
    )
    ffprobe_path: Path | None = Field(
        default=None,
        validation_alias="FFPROBE_PATH",
        description="Path to the ffprobe executable; overrides the PATH search.",
    )
    flvmeta_path: Path | None = Field(
        default=None,
        validation_alias="FLVMETA_PATH",
        description="Path to the flvmeta executable used to update FLV metadata.",
    )
    flvtool2_path: Path | None = Field(
        default=None,
        validation_alias="FLVTOOL2_PATH",
        description="Path to the flvtool2 executable, used when flvmeta is not set.",
    )

    stdout_lines: int = Field(
        default=100,
        ge=0,
        validation_alias="FFCMD_STDOUT_LINES",
        description="Maximum number of ffmpeg output lines kept in memory (0 for unlimited).",
    )
    niceness: int = Field(
        default=0,
        ge=-20,
        le=20,
        validation_alias="FFCMD_NICENESS",
        description="Default ffmpeg process niceness, between -20 and 20.",
    )
    timeout: float | None = Field(
        default=None,
        gt=0,
        validation_alias="FFCMD_TIMEOUT",
        description="Default ffmpeg processing timeout in seconds.",
    )

    log_format: Literal["human", "json"] = Field(
        default="human",
        validation_alias="FFCMD_LOG_FORMAT",
        description="Format for logs ('human' or 'json').",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="FFCMD_LOG_LEVEL",
        description="Logging level for the ffcmd logger (e.g., DEBUG, INFO). Case-insensitive.",
    )
    log_include_stacktrace: bool = Field(
        default=False,
        validation_alias="FFCMD_LOG_INCLUDE_STACKTRACE",
        description="Include full stack traces in error logs (true/false).",
    )

    config_file: Path | None = Field(
        default=None,
        validation_alias="FFCMD_CONFIG_FILE",
        description="Optional path to a YAML settings file.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        populate_by_name=True,
        extra="ignore",
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
        """Read init and environment values before the YAML settings file.

        Args:
            settings_cls: The settings class being configured.
            init_settings: Settings from initialization parameters.
            env_settings: Settings from environment variables.
            dotenv_settings: Settings from .env files.
            file_secret_settings: Settings from secret files.

        Returns:
            Tuple of settings sources in the order they should be processed.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileFromFieldSource(settings_cls=settings_cls),
            file_secret_settings,
        )

    def configure_logging(self) -> None:
        """Configure the ``ffcmd`` logger from the logging settings."""
        setup_logging(
            log_format_type=self.log_format,
            app_log_level_name=self.log_level,
            include_stacktrace=self.log_include_stacktrace,
        )
