import json
import logging
import re
from logging.config import dictConfig
from typing import Any, Mapping

from objhttp.common.config import Settings, get_settings

SENSITIVE_HEADERS = {
    "authorization",
    "x-amz-security-token",
    "x-amz-signature",
    "x-amz-credential",
    "cookie",
}

_SIGNATURE_PARAM = re.compile(
    r"(?i)(x-amz-signature|x-amz-security-token|x-amz-credential)=[^&\s]+"
)


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonFormatter,
                },
                "plain": {
                    "format": "%(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": settings.LOG_FORMAT,
                },
            },
            "loggers": {
                "objhttp": {
                    "handlers": ["console"],
                    "level": settings.LOG_LEVEL,
                    "propagate": False,
                }
            },
        }
    )


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy of ``headers`` with credential-bearing values replaced by ``***``."""
    masked: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = "***"
        else:
            masked[key] = value
    return masked


def mask_url(url: str) -> str:
    return _SIGNATURE_PARAM.sub(lambda m: m.group(1) + "=***", url)


def log_extra(**fields: Any) -> dict[str, Any]:
    return {"extra": fields}
