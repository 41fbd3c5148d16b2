"""Tests for configuration management."""

import pytest

from mssql_exporter.config import Environment, Settings
from mssql_exporter.exceptions import ConfigurationError


def _env(**values) -> Environment:
    return Environment(_env_file=None, **values)


def test_environment_defaults(monkeypatch):
    """Test Environment loads default values."""
    for name in ("SERVER", "PORT", "USERNAME", "USER_ID", "PASSWORD", "DATABASE",
                 "ENCRYPTION", "EXPOSE", "SUPPORT_2012", "FLASK_ENV"):
        monkeypatch.delenv(name, raising=False)

    env = _env()

    assert env.SERVER is None
    assert env.PORT == 1433
    assert env.DATABASE == "master"
    assert env.ENCRYPTION == "require"
    assert env.EXPOSE == 4000
    assert env.SUPPORT_2012 is False
    assert env.LOGIN_TIMEOUT is None
    assert env.QUERY_TIMEOUT is None
    assert env.FLASK_ENV == "production"


def test_environment_from_env_vars(monkeypatch):
    """Test Environment loads from environment variables."""
    monkeypatch.setenv("SERVER", "sql01")
    monkeypatch.setenv("PORT", "14330")
    monkeypatch.setenv("EXPOSE", "9399")
    monkeypatch.setenv("SUPPORT_2012", "true")
    monkeypatch.setenv("LOGIN_TIMEOUT", "")

    env = _env()

    assert env.SERVER == "sql01"
    assert env.PORT == 14330
    assert env.EXPOSE == 9399
    assert env.SUPPORT_2012 is True
    assert env.LOGIN_TIMEOUT is None


def test_settings_load_maps_fields(monkeypatch):
    monkeypatch.delenv("USER_ID", raising=False)
    env = _env(
        SERVER="sql01",
        USERNAME="exporter",
        PASSWORD="secret",
        QUERY_TIMEOUT=15,
        SUPPORT_2012=True,
    )

    settings = Settings.load(env)

    assert settings.server == "sql01"
    assert settings.username == "exporter"
    assert settings.password == "secret"
    assert settings.query_timeout == 15
    assert settings.support_mssql_2012 is True
    assert settings.target == "exporter@sql01:1433"


def test_settings_load_prefers_user_id():
    settings = Settings.load(_env(USER_ID="sa", USERNAME="exporter"))

    assert settings.username == "sa"


def test_is_development():
    assert Settings(flask_env="development").is_development
    assert Settings(flask_env="testing").is_development
    assert not Settings(flask_env="production").is_development


def test_validate_config_passes(test_settings: Settings):
    test_settings.validate_config()


@pytest.mark.parametrize(
    "field,message",
    [
        ("server", "Missing SERVER information"),
        ("username", "Missing USERNAME information"),
        ("password", "Missing PASSWORD information"),
    ],
)
def test_validate_config_missing_values(test_settings: Settings, field, message):
    settings = test_settings.model_copy(update={field: None})

    with pytest.raises(ConfigurationError, match=message):
        settings.validate_config()


def test_validate_config_reports_every_error():
    with pytest.raises(ConfigurationError) as exc_info:
        Settings().validate_config()

    text = str(exc_info.value)
    assert "SERVER" in text
    assert "USERNAME" in text
    assert "PASSWORD" in text


def test_validate_config_rejects_encryption_off(test_settings: Settings):
    settings = test_settings.model_copy(update={"encryption": "off"})

    with pytest.raises(ConfigurationError, match="ENCRYPTION"):
        settings.validate_config()
