"""Credential variants consumed by the request signer.

A request is built with exactly one of three credential shapes:

* ``AnonymousCredential`` - nothing is signed or attached.
* ``KeyedCredential`` - access/secret key pair (plus optional session token),
  used for AWS Signature Version 4.
* ``BearerCredential`` - an opaque token passed through in ``Authorization``.

Providers (``TokenFile``, key files, the botocore credential chain) resolve
into one of these values; the signer only ever sees the resolved value.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Union

import botocore.session
import jwt
from jwt import PyJWTError

from objhttp.common.config import Settings
from objhttp.common.errors import CredentialError

logger = logging.getLogger("objhttp.credentials")


@dataclass(frozen=True, slots=True)
class AnonymousCredential:
    """No authentication material."""


@dataclass(frozen=True, slots=True)
class KeyedCredential:
    """Access key / secret key pair for keyed request signatures."""

    access_key: str
    secret_key: str
    session_token: str | None = None

    def __repr__(self) -> str:
        return f"KeyedCredential(access_key={self.access_key!r}, secret_key='***')"


@dataclass(frozen=True, slots=True)
class BearerCredential:
    """Bearer token, optionally with a known expiry."""

    token: str
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def __repr__(self) -> str:
        return f"BearerCredential(token='***', expires_at={self.expires_at!r})"


Credential = Union[AnonymousCredential, KeyedCredential, BearerCredential]

ANONYMOUS = AnonymousCredential()


def requires_signature(credential: Credential | None) -> bool:
    return isinstance(credential, KeyedCredential)


def token_expiry(token: str) -> datetime | None:
    """Return the ``exp`` claim of a JWT, or None for opaque tokens."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except PyJWTError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        # Outside the platform's datetime range; treat as no known expiry.
        return None


def _parse_token_contents(contents: str) -> str:
    text = contents.strip()
    if text.startswith("{"):
        try:
            document = json.loads(text)
        except ValueError as exc:
            raise CredentialError(f"Token file is not valid JSON: {exc}") from exc
        token = document.get("access_token") if isinstance(document, dict) else None
        if not isinstance(token, str):
            raise CredentialError("Token file JSON has no 'access_token' string")
        text = token.strip()
    if not text:
        raise CredentialError("Token file is empty")
    return text


class TokenFile:
    """Bearer token read from a file that another process keeps fresh.

    The file is re-read when its modification time changes or once
    ``refresh_interval`` seconds have passed since the last read. Reads are
    serialised by a lock so one instance can be shared by many requests.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        refresh_interval: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._path = Path(path)
        self._refresh_interval = refresh_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._token: BearerCredential | None = None
        self._loaded_at: float | None = None
        self._mtime: float | None = None

    @property
    def path(self) -> Path:
        return self._path

    def credential(self) -> BearerCredential:
        with self._lock:
            if self._needs_reload():
                self._reload()
            assert self._token is not None
            return self._token

    def get(self) -> str:
        return self.credential().token

    def _needs_reload(self) -> bool:
        if self._token is None or self._loaded_at is None:
            return True
        if self._clock() - self._loaded_at >= self._refresh_interval:
            return True
        if self._token.is_expired():
            return True
        try:
            return self._path.stat().st_mtime != self._mtime
        except OSError:
            return True

    def _reload(self) -> None:
        try:
            mtime = self._path.stat().st_mtime
            contents = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CredentialError(
                f"Failed to read token file {self._path}: {exc}"
            ) from exc
        token = _parse_token_contents(contents)
        self._token = BearerCredential(token=token, expires_at=token_expiry(token))
        self._loaded_at = self._clock()
        self._mtime = mtime
        logger.debug(
            "token_file_loaded path=%s expires_at=%s",
            self._path,
            self._token.expires_at,
        )


def _read_key_file(path: str | os.PathLike[str], label: str) -> str:
    try:
        value = Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise CredentialError(f"Failed to read {label} file {path}: {exc}") from exc
    if not value:
        raise CredentialError(f"{label} file {path} is empty")
    return value


def credential_from_files(
    access_key_file: str | os.PathLike[str],
    secret_key_file: str | os.PathLike[str],
) -> KeyedCredential:
    return KeyedCredential(
        access_key=_read_key_file(access_key_file, "access key"),
        secret_key=_read_key_file(secret_key_file, "secret key"),
    )


def credential_from_botocore(
    session: botocore.session.Session | None = None,
) -> KeyedCredential:
    """Resolve keys through botocore's standard credential chain."""
    session = session or botocore.session.get_session()
    credentials = session.get_credentials()
    if credentials is None:
        raise CredentialError("botocore could not locate any credentials")
    frozen = credentials.get_frozen_credentials()
    if not frozen.access_key or not frozen.secret_key:
        raise CredentialError("botocore credentials are missing key material")
    return KeyedCredential(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        session_token=frozen.token or None,
    )


def resolve_credential(settings: Settings) -> Credential | TokenFile:
    """Pick the credential source described by ``settings``.

    Precedence: token file, then key files, then inline keys. With none of
    those configured the request is anonymous.
    """
    if settings.TOKEN_FILE:
        return TokenFile(
            settings.TOKEN_FILE, refresh_interval=settings.TOKEN_REFRESH_SECONDS
        )
    if settings.S3_ACCESS_KEY_FILE or settings.S3_SECRET_KEY_FILE:
        if not (settings.S3_ACCESS_KEY_FILE and settings.S3_SECRET_KEY_FILE):
            raise CredentialError(
                "S3_ACCESS_KEY_FILE and S3_SECRET_KEY_FILE must be set together"
            )
        return credential_from_files(
            settings.S3_ACCESS_KEY_FILE, settings.S3_SECRET_KEY_FILE
        )
    if settings.S3_ACCESS_KEY_ID or settings.S3_SECRET_ACCESS_KEY:
        if not (settings.S3_ACCESS_KEY_ID and settings.S3_SECRET_ACCESS_KEY):
            raise CredentialError(
                "S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be set together"
            )
        return KeyedCredential(
            access_key=settings.S3_ACCESS_KEY_ID,
            secret_key=settings.S3_SECRET_ACCESS_KEY,
        )
    return ANONYMOUS


def materialize(source: Credential | TokenFile | None) -> Credential:
    """Turn a credential or provider into a concrete credential value."""
    if source is None:
        return ANONYMOUS
    if isinstance(source, TokenFile):
        return source.credential()
    return source
