import pytest

from objhttp.common.config import Settings, get_settings


def test_defaults():
    settings = Settings()

    assert settings.S3_REGION == "us-east-1"
    assert settings.S3_SERVICE_NAME == "s3"
    assert settings.timeout == (10.0, 60.0)
    assert settings.HTTP_VERIFY_TLS is True
    assert settings.UPLOAD_CHUNK_SIZE == 1024 * 1024
    assert settings.LOG_FORMAT == "json"


def test_from_environment(monkeypatch):
    monkeypatch.setenv("S3_REGION", "eu-west-1")
    monkeypatch.setenv("S3_ACCESS_KEY_ID", "AKID")
    monkeypatch.setenv("S3_SECRET_ACCESS_KEY", "SECRET")
    monkeypatch.setenv("HTTP_CONNECT_TIMEOUT", "2.5")
    monkeypatch.setenv("HTTP_VERIFY_TLS", "false")
    monkeypatch.setenv("HTTP_POOL_SIZE", "4")
    monkeypatch.setenv("ENABLE_METRICS", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "PLAIN")

    settings = Settings.from_environment()

    assert settings.S3_REGION == "eu-west-1"
    assert settings.S3_ACCESS_KEY_ID == "AKID"
    assert settings.S3_SECRET_ACCESS_KEY == "SECRET"
    assert settings.timeout == (2.5, 60.0)
    assert settings.HTTP_VERIFY_TLS is False
    assert settings.HTTP_POOL_SIZE == 4
    assert settings.ENABLE_METRICS is False
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.LOG_FORMAT == "plain"


def test_blank_optional_values_are_unset(monkeypatch):
    monkeypatch.setenv("TOKEN_FILE", "  ")
    monkeypatch.setenv("HTTP_CA_BUNDLE", "")

    settings = Settings.from_environment()

    assert settings.TOKEN_FILE is None
    assert settings.HTTP_CA_BUNDLE is None


def test_env_file_is_loaded(monkeypatch, tmp_path):
    # Registered so the values loaded from .env are removed afterwards.
    monkeypatch.delenv("S3_REGION", raising=False)
    monkeypatch.delenv("UPLOAD_CHUNK_SIZE", raising=False)
    monkeypatch.setenv("HTTP_USER_AGENT", "from-environment")
    (tmp_path / ".env").write_text(
        "# storage\n"
        "S3_REGION='ap-south-1'\n"
        'UPLOAD_CHUNK_SIZE="4096"\n'
        "HTTP_USER_AGENT=from-file\n"
        "not a setting\n",
        encoding="utf-8",
    )

    settings = Settings.from_environment()

    assert settings.S3_REGION == "ap-south-1"
    assert settings.UPLOAD_CHUNK_SIZE == 4096
    assert settings.HTTP_USER_AGENT == "from-environment"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


@pytest.mark.parametrize(
    "fields",
    [
        {"S3_REGION": ""},
        {"S3_SERVICE_NAME": ""},
        {"HTTP_CONNECT_TIMEOUT": 0},
        {"HTTP_READ_TIMEOUT": -1},
        {"HTTP_POOL_SIZE": 0},
        {"UPLOAD_CHUNK_SIZE": 0},
        {"TOKEN_REFRESH_SECONDS": -5},
        {"LOG_FORMAT": "xml"},
    ],
)
def test_invalid_settings(fields):
    with pytest.raises(ValueError):
        Settings(**fields)
