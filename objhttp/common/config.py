from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

LOG_FORMATS: tuple[str, ...] = ("json", "plain")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    S3_REGION: str = "us-east-1"
    S3_SERVICE_NAME: str = "s3"
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_ACCESS_KEY_FILE: str | None = None
    S3_SECRET_KEY_FILE: str | None = None
    TOKEN_FILE: str | None = None
    TOKEN_REFRESH_SECONDS: int = 60
    HTTP_CONNECT_TIMEOUT: float = 10.0
    HTTP_READ_TIMEOUT: float = 60.0
    HTTP_VERIFY_TLS: bool = True
    HTTP_CA_BUNDLE: str | None = None
    HTTP_USER_AGENT: str = "objhttp/0.1"
    HTTP_POOL_SIZE: int = 10
    UPLOAD_CHUNK_SIZE: int = 1024 * 1024
    ENABLE_METRICS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    def __post_init__(self) -> None:
        if not self.S3_REGION:
            raise ValueError("S3_REGION must not be empty.")
        if not self.S3_SERVICE_NAME:
            raise ValueError("S3_SERVICE_NAME must not be empty.")
        if self.HTTP_CONNECT_TIMEOUT <= 0 or self.HTTP_READ_TIMEOUT <= 0:
            raise ValueError("HTTP timeouts must be positive.")
        if self.HTTP_POOL_SIZE < 1:
            raise ValueError("HTTP_POOL_SIZE must be at least 1.")
        if self.UPLOAD_CHUNK_SIZE < 1:
            raise ValueError("UPLOAD_CHUNK_SIZE must be at least 1.")
        if self.TOKEN_REFRESH_SECONDS < 0:
            raise ValueError("TOKEN_REFRESH_SECONDS must not be negative.")
        self.LOG_FORMAT = self.LOG_FORMAT.lower()
        if self.LOG_FORMAT not in LOG_FORMATS:
            raise ValueError(
                f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}."
            )

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.HTTP_CONNECT_TIMEOUT, self.HTTP_READ_TIMEOUT)

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            S3_REGION=os.environ.get("S3_REGION", cls.S3_REGION),
            S3_SERVICE_NAME=os.environ.get("S3_SERVICE_NAME", cls.S3_SERVICE_NAME),
            S3_ACCESS_KEY_ID=_as_optional(os.environ.get("S3_ACCESS_KEY_ID")),
            S3_SECRET_ACCESS_KEY=_as_optional(os.environ.get("S3_SECRET_ACCESS_KEY")),
            S3_ACCESS_KEY_FILE=_as_optional(os.environ.get("S3_ACCESS_KEY_FILE")),
            S3_SECRET_KEY_FILE=_as_optional(os.environ.get("S3_SECRET_KEY_FILE")),
            TOKEN_FILE=_as_optional(os.environ.get("TOKEN_FILE")),
            TOKEN_REFRESH_SECONDS=int(
                os.environ.get("TOKEN_REFRESH_SECONDS", cls.TOKEN_REFRESH_SECONDS)
            ),
            HTTP_CONNECT_TIMEOUT=float(
                os.environ.get("HTTP_CONNECT_TIMEOUT", cls.HTTP_CONNECT_TIMEOUT)
            ),
            HTTP_READ_TIMEOUT=float(
                os.environ.get("HTTP_READ_TIMEOUT", cls.HTTP_READ_TIMEOUT)
            ),
            HTTP_VERIFY_TLS=_as_bool(
                os.environ.get("HTTP_VERIFY_TLS"), cls.HTTP_VERIFY_TLS
            ),
            HTTP_CA_BUNDLE=_as_optional(os.environ.get("HTTP_CA_BUNDLE")),
            HTTP_USER_AGENT=os.environ.get("HTTP_USER_AGENT", cls.HTTP_USER_AGENT),
            HTTP_POOL_SIZE=int(os.environ.get("HTTP_POOL_SIZE", cls.HTTP_POOL_SIZE)),
            UPLOAD_CHUNK_SIZE=int(
                os.environ.get("UPLOAD_CHUNK_SIZE", cls.UPLOAD_CHUNK_SIZE)
            ),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL).upper(),
            LOG_FORMAT=os.environ.get("LOG_FORMAT", cls.LOG_FORMAT),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
