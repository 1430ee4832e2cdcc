"""Request signing.

Keyed credentials produce AWS Signature Version 4 (``AWS4-HMAC-SHA256``)
material, either as headers or as presigned query parameters. Bearer
credentials are passed through in ``Authorization``. Anonymous requests are
left untouched.

Upload bodies are streamed, so their hash is never computed: uploads are
signed with ``UNSIGNED-PAYLOAD`` and body-less requests with the SHA-256 of
the empty string.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping

from objhttp.commands.url import (
    HostURL,
    build_request_url,
    canonical_query_string,
    uri_encode,
)
from objhttp.common.credentials import (
    AnonymousCredential,
    BearerCredential,
    Credential,
    KeyedCredential,
)
from objhttp.common.errors import CredentialError, SigningError

SIGV4_ALGORITHM = "AWS4-HMAC-SHA256"
SIGV4_TIMESTAMP = "%Y%m%dT%H%M%SZ"
SIGV4_DATESTAMP = "%Y%m%d"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()

# Headers that proxies or the transport may add or rewrite.
UNSIGNED_HEADERS = frozenset(
    {"expect", "transfer-encoding", "user-agent", "content-length", "authorization"}
)

MAX_PRESIGN_EXPIRES = 7 * 24 * 3600


@dataclass(frozen=True, slots=True)
class SignedRequest:
    """Headers and query parameters to put on the wire."""

    headers: dict[str, str] = field(default_factory=dict)
    query_parameters: dict[str, str] = field(default_factory=dict)


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def _canonical_headers(headers: Mapping[str, str]) -> tuple[str, str]:
    canonical: dict[str, str] = {}
    for name, value in headers.items():
        lowered = name.lower().strip()
        if lowered in UNSIGNED_HEADERS:
            continue
        canonical[lowered] = " ".join(str(value).split())
    names = sorted(canonical)
    block = "".join(f"{name}:{canonical[name]}\n" for name in names)
    return block, ";".join(names)


class Signer:
    def __init__(self, region: str = "us-east-1", service: str = "s3") -> None:
        self.region = region
        self.service = service

    def credential_scope(self, timestamp: datetime) -> str:
        datestamp = _as_utc(timestamp).strftime(SIGV4_DATESTAMP)
        return f"{datestamp}/{self.region}/{self.service}/aws4_request"

    def signing_key(self, secret_key: str, timestamp: datetime) -> bytes:
        datestamp = _as_utc(timestamp).strftime(SIGV4_DATESTAMP)
        key = _hmac(("AWS4" + secret_key).encode("utf-8"), datestamp)
        key = _hmac(key, self.region)
        key = _hmac(key, self.service)
        return _hmac(key, "aws4_request")

    def canonical_request(
        self,
        method: str,
        path: str,
        query_parameters: Mapping[str, str],
        headers: Mapping[str, str],
        payload_hash: str,
    ) -> tuple[str, str]:
        """Return the canonical request and its signed header list."""
        header_block, signed_headers = _canonical_headers(headers)
        canonical = "\n".join(
            [
                method.upper(),
                uri_encode(path or "/", encode_slash=False),
                canonical_query_string(query_parameters),
                header_block,
                signed_headers,
                payload_hash,
            ]
        )
        return canonical, signed_headers

    def string_to_sign(self, canonical_request: str, timestamp: datetime) -> str:
        return "\n".join(
            [
                SIGV4_ALGORITHM,
                _as_utc(timestamp).strftime(SIGV4_TIMESTAMP),
                self.credential_scope(timestamp),
                hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
            ]
        )

    def signature(
        self, credential: KeyedCredential, string_to_sign: str, timestamp: datetime
    ) -> str:
        key = self.signing_key(credential.secret_key, timestamp)
        return hmac.new(
            key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    def sign(
        self,
        *,
        method: str,
        host: HostURL,
        path: str,
        query_parameters: Mapping[str, str],
        headers: Mapping[str, str],
        credential: Credential,
        timestamp: datetime,
        payload_hash: str = EMPTY_SHA256,
    ) -> SignedRequest:
        """Return the headers and query parameters that authenticate a request.

        The inputs are not modified. The same inputs always yield the same
        output, so ``timestamp`` must be captured once per request.
        """
        if isinstance(credential, AnonymousCredential):
            return SignedRequest(dict(headers), dict(query_parameters))
        if isinstance(credential, BearerCredential):
            return self._sign_bearer(headers, query_parameters, credential, timestamp)
        if isinstance(credential, KeyedCredential):
            return self._sign_keyed(
                method=method,
                host=host,
                path=path,
                query_parameters=query_parameters,
                headers=headers,
                credential=credential,
                timestamp=timestamp,
                payload_hash=payload_hash,
            )
        raise SigningError(f"Unsupported credential type {type(credential).__name__}")

    def _sign_bearer(
        self,
        headers: Mapping[str, str],
        query_parameters: Mapping[str, str],
        credential: BearerCredential,
        timestamp: datetime,
    ) -> SignedRequest:
        if not credential.token:
            raise CredentialError("Bearer token is empty")
        if credential.is_expired(_as_utc(timestamp)):
            raise CredentialError(
                f"Bearer token expired at {credential.expires_at.isoformat()}"
            )
        signed = dict(headers)
        if not any(name.lower() == "authorization" for name in signed):
            signed["Authorization"] = f"Bearer {credential.token}"
        return SignedRequest(signed, dict(query_parameters))

    def _sign_keyed(
        self,
        *,
        method: str,
        host: HostURL,
        path: str,
        query_parameters: Mapping[str, str],
        headers: Mapping[str, str],
        credential: KeyedCredential,
        timestamp: datetime,
        payload_hash: str,
    ) -> SignedRequest:
        _require_keys(credential)
        signed = {
            name: value
            for name, value in headers.items()
            if name.lower() not in {"host", "x-amz-date", "x-amz-content-sha256"}
        }
        signed["Host"] = host.host_header
        signed["x-amz-date"] = _as_utc(timestamp).strftime(SIGV4_TIMESTAMP)
        signed["x-amz-content-sha256"] = payload_hash
        if credential.session_token:
            signed["x-amz-security-token"] = credential.session_token

        canonical, signed_headers = self.canonical_request(
            method, path, query_parameters, signed, payload_hash
        )
        signature = self.signature(
            credential, self.string_to_sign(canonical, timestamp), timestamp
        )
        signed["Authorization"] = (
            f"{SIGV4_ALGORITHM} "
            f"Credential={credential.access_key}/{self.credential_scope(timestamp)}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        return SignedRequest(signed, dict(query_parameters))

    def presign(
        self,
        *,
        method: str,
        host: HostURL,
        path: str,
        credential: KeyedCredential,
        timestamp: datetime,
        expires_in: int,
        query_parameters: Mapping[str, str] | None = None,
    ) -> str:
        """Build a URL authenticated entirely by its query string."""
        _require_keys(credential)
        if not 1 <= int(expires_in) <= MAX_PRESIGN_EXPIRES:
            raise SigningError(
                f"expires_in must be between 1 and {MAX_PRESIGN_EXPIRES} seconds"
            )
        params = dict(query_parameters or {})
        params.update(
            {
                "X-Amz-Algorithm": SIGV4_ALGORITHM,
                "X-Amz-Credential": (
                    f"{credential.access_key}/{self.credential_scope(timestamp)}"
                ),
                "X-Amz-Date": _as_utc(timestamp).strftime(SIGV4_TIMESTAMP),
                "X-Amz-Expires": str(int(expires_in)),
                "X-Amz-SignedHeaders": "host",
            }
        )
        if credential.session_token:
            params["X-Amz-Security-Token"] = credential.session_token
        canonical, _ = self.canonical_request(
            method, path, params, {"Host": host.host_header}, UNSIGNED_PAYLOAD
        )
        params["X-Amz-Signature"] = self.signature(
            credential, self.string_to_sign(canonical, timestamp), timestamp
        )
        return build_request_url(host, path, params)


def _require_keys(credential: KeyedCredential) -> None:
    if not credential.access_key or not credential.secret_key:
        raise CredentialError("Access key and secret key are required for signing")
