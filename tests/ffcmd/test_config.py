"""Tests for settings loading from init arguments, environment and YAML."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

from pydantic import ValidationError
import pytest
import yaml

from ffcmd.config import FFcmdSettings
from ffcmd.exceptions import ConfigLoadError

SAMPLE_SETTINGS = {
    "ffmpeg_path": "/opt/ffmpeg/bin/ffmpeg",
    "stdout_lines": 25,
    "niceness": 10,
    "timeout": 120,
    "log_format": "json",
}


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """A YAML settings file with sample values."""
    path = tmp_path / "ffcmd.yaml"
    with Path.open(path, "w", encoding="utf-8") as f:
        yaml.dump(SAMPLE_SETTINGS, f)
    return path


@pytest.mark.unit
@patch.dict(os.environ, {}, clear=True)
def test_defaults() -> None:
    """Without any source, settings fall back to their defaults."""
    settings = FFcmdSettings()

    assert settings.ffmpeg_path is None
    assert settings.stdout_lines == 100
    assert settings.niceness == 0
    assert settings.timeout is None
    assert settings.log_format == "human"
    assert settings.log_level == "INFO"
    assert not settings.log_include_stacktrace


@pytest.mark.unit
@patch.dict(
    os.environ,
    {
        "FFMPEG_PATH": "/custom/ffmpeg",
        "FFCMD_TIMEOUT": "30",
        "FFCMD_NICENESS": "-5",
        "FFCMD_LOG_INCLUDE_STACKTRACE": "true",
    },
    clear=True,
)
def test_environment_variables() -> None:
    """Environment variables use their documented names."""
    settings = FFcmdSettings()

    assert settings.ffmpeg_path == Path("/custom/ffmpeg")
    assert settings.timeout == 30.0
    assert settings.niceness == -5
    assert settings.log_include_stacktrace


@pytest.mark.unit
@patch.dict(os.environ, {}, clear=True)
def test_yaml_file_from_init_arg(settings_file: Path) -> None:
    """A YAML file named at init time provides settings."""
    settings = FFcmdSettings(config_file=settings_file)

    assert settings.ffmpeg_path == Path("/opt/ffmpeg/bin/ffmpeg")
    assert settings.stdout_lines == 25
    assert settings.niceness == 10
    assert settings.timeout == 120.0
    assert settings.log_format == "json"


@pytest.mark.unit
@patch.dict(os.environ, {"FFCMD_NICENESS": "3"}, clear=True)
def test_yaml_file_from_env_is_overridden_by_env_and_init(settings_file: Path) -> None:
    """Init arguments and environment variables take precedence over YAML."""
    os.environ["FFCMD_CONFIG_FILE"] = str(settings_file)

    settings = FFcmdSettings(stdout_lines=5)

    assert settings.stdout_lines == 5
    assert settings.niceness == 3
    assert settings.timeout == 120.0


@pytest.mark.unit
@patch.dict(os.environ, {"FFCMD_CONFIG_FILE": "/path/to/missing/ffcmd.yaml"}, clear=True)
def test_missing_yaml_file_raises_error() -> None:
    """A configured but missing YAML file fails with the OS error as cause."""
    with pytest.raises(ConfigLoadError, match="Failed to load or parse YAML settings file") as exc_info:
        FFcmdSettings()

    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


@pytest.mark.unit
@patch.dict(os.environ, {}, clear=True)
def test_invalid_yaml_raises_error(tmp_path: Path) -> None:
    """Unparsable YAML fails with the YAML error as cause."""
    path = tmp_path / "broken.yaml"
    path.write_text("this: is: not: valid: yaml:", encoding="utf-8")

    with pytest.raises(ConfigLoadError) as exc_info:
        FFcmdSettings(config_file=path)

    assert isinstance(exc_info.value.__cause__, yaml.YAMLError)


@pytest.mark.unit
@patch.dict(os.environ, {}, clear=True)
def test_non_mapping_yaml_raises_error(tmp_path: Path) -> None:
    """A YAML document that is not a mapping is rejected."""
    path = tmp_path / "list.yaml"
    path.write_text("- niceness\n- 10\n", encoding="utf-8")

    with pytest.raises(ConfigLoadError) as exc_info:
        FFcmdSettings(config_file=path)

    assert isinstance(exc_info.value.__cause__, TypeError)


@pytest.mark.unit
@patch.dict(os.environ, {}, clear=True)
def test_empty_yaml_file_loads_defaults(tmp_path: Path) -> None:
    """An empty YAML file leaves every setting at its default."""
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    settings = FFcmdSettings(config_file=path)

    assert settings.stdout_lines == 100
    assert settings.niceness == 0


@pytest.mark.unit
@pytest.mark.parametrize(
    "values",
    [
        {"niceness": 21},
        {"niceness": -21},
        {"stdout_lines": -1},
        {"timeout": 0},
        {"log_format": "xml"},
    ],
)
@patch.dict(os.environ, {}, clear=True)
def test_invalid_values_raise_validation_error(values: dict[str, object]) -> None:
    """Out-of-range values are rejected."""
    with pytest.raises(ValidationError):
        FFcmdSettings(**values)  # type: ignore[arg-type]


@pytest.mark.unit
@patch("ffcmd.config.setup_logging")
@patch.dict(os.environ, {"FFCMD_LOG_FORMAT": "json", "FFCMD_LOG_LEVEL": "debug"}, clear=True)
def test_configure_logging_uses_logging_settings(mock_setup_logging: MagicMock) -> None:
    """configure_logging() passes the logging settings to setup_logging."""
    FFcmdSettings().configure_logging()

    mock_setup_logging.assert_called_once_with(
        log_format_type="json", app_log_level_name="debug", include_stacktrace=False
    )
