"""Upload, download and head operations.

Each operation is an ``Operation`` value, not a subclass: the verb, the body
direction, the expected status codes and a ``configure`` function that turns
the operation's arguments into request headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping

from objhttp.commands.payload import Payload
from objhttp.commands.request import (
    HTTPRequest,
    Operation,
    PayloadArg,
    Result,
)
from objhttp.commands.signing import Signer
from objhttp.commands.url import join_object_path, parse_host_url
from objhttp.common.config import get_settings
from objhttp.common.credentials import KeyedCredential
from objhttp.common.errors import InvalidRangeError

HTTP_OK = 200
HTTP_PARTIAL_CONTENT = 206
HTTP_NOT_FOUND = 404


def _configure_upload(
    request: HTTPRequest, payload: PayloadArg, offset: int, size: int | None
) -> Payload:
    if payload is None:
        raise InvalidRangeError("Upload requires a payload")
    if isinstance(payload, Payload):
        raise InvalidRangeError("Upload takes the caller's data, not a Payload")
    try:
        total = len(memoryview(payload))
    except TypeError as exc:
        raise InvalidRangeError(
            f"Upload payload must be bytes-like, not {type(payload).__name__}"
        ) from exc
    if offset < 0:
        raise InvalidRangeError(f"Upload offset {offset} is negative")
    if size is None:
        size = total - offset
    if size <= 0:
        raise InvalidRangeError(f"Upload size {size} must be positive")
    if offset + size > total:
        raise InvalidRangeError(
            f"Upload window {offset}+{size} exceeds payload of {total} bytes"
        )
    if offset != 0 or size != total:
        request.headers["Content-Range"] = (
            f"bytes {offset}-{offset + size - 1}/{total}"
        )
    return Payload(payload, offset, size)


def _configure_download(
    request: HTTPRequest, payload: PayloadArg, offset: int, size: int | None
) -> None:
    size = size or 0
    if offset < 0 or size < 0:
        raise InvalidRangeError(
            f"Download range offset={offset} size={size} must not be negative"
        )
    if offset == 0 and size == 0:
        request.default_expected_response_codes({HTTP_OK})
        return None
    if size == 0:
        # Size 0 with an offset reads to the end of the object.
        request.headers["Range"] = f"bytes={offset}-"
    else:
        request.headers["Range"] = f"bytes={offset}-{offset + size - 1}"
    request.default_expected_response_codes({HTTP_PARTIAL_CONTENT})
    return None


def _configure_head(
    request: HTTPRequest, payload: PayloadArg, offset: int, size: int | None
) -> None:
    return None


UPLOAD = Operation(
    name="upload",
    verb="PUT",
    sends_body=True,
    receives_body=True,
    expected_status=frozenset({200, 201, 204}),
    configure=_configure_upload,
)

DOWNLOAD = Operation(
    name="download",
    verb="GET",
    sends_body=False,
    receives_body=True,
    expected_status=frozenset({HTTP_OK}),
    configure=_configure_download,
)

# A missing object is an answer, not an error.
HEAD = Operation(
    name="head",
    verb="HEAD",
    sends_body=False,
    receives_body=False,
    expected_status=frozenset({HTTP_OK, HTTP_NOT_FOUND}),
    configure=_configure_head,
)


@dataclass(frozen=True, slots=True)
class ObjectHead:
    """Metadata from a HEAD object request."""

    size_bytes: int | None
    etag: str | None
    content_type: str | None
    last_modified: datetime | None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "ObjectHead":
        lowered = {key.lower(): value for key, value in headers.items()}
        size = lowered.get("content-length")
        return cls(
            size_bytes=int(size) if size is not None and size.isdigit() else None,
            etag=lowered.get("etag"),
            content_type=lowered.get("content-type"),
            last_modified=_parse_http_date(lowered.get("last-modified")),
        )


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def upload_request(host_url: str, object_key: str, **kwargs: Any) -> HTTPRequest:
    return HTTPRequest(host_url, object_key, operation=UPLOAD, **kwargs)


def download_request(host_url: str, object_key: str, **kwargs: Any) -> HTTPRequest:
    return HTTPRequest(host_url, object_key, operation=DOWNLOAD, **kwargs)


def head_request(host_url: str, object_key: str, **kwargs: Any) -> HTTPRequest:
    return HTTPRequest(host_url, object_key, operation=HEAD, **kwargs)


def upload_object(
    host_url: str,
    object_key: str,
    data: bytes,
    offset: int = 0,
    size: int | None = None,
    **kwargs: Any,
) -> Result:
    """Upload ``data[offset:offset + size]`` and return the result."""
    request = upload_request(host_url, object_key, **kwargs)
    request.send_request(data, offset, size)
    return request.result


def download_object(
    host_url: str,
    object_key: str,
    offset: int = 0,
    size: int = 0,
    **kwargs: Any,
) -> Result:
    """Download ``size`` bytes from ``offset``; size 0 reads to the end."""
    request = download_request(host_url, object_key, **kwargs)
    request.send_request(offset=offset, size=size)
    return request.result


def head_object(host_url: str, object_key: str, **kwargs: Any) -> Result:
    request = head_request(host_url, object_key, **kwargs)
    request.send_request()
    return request.result


def presign_download(
    host_url: str,
    object_key: str,
    credential: KeyedCredential,
    *,
    expires_in: int,
    signer: Signer | None = None,
    now: datetime | None = None,
) -> str:
    """Generate a presigned URL for downloading an object.

    Raises:
        InvalidHostURLError: If the host URL cannot be parsed.
        CredentialError: If the credential has no key material.
        SigningError: If ``expires_in`` is out of range.
    """
    host = parse_host_url(host_url)
    if signer is None:
        settings = get_settings()
        signer = Signer(settings.S3_REGION, settings.S3_SERVICE_NAME)
    return signer.presign(
        method="GET",
        host=host,
        path=join_object_path(host.base_path, object_key),
        credential=credential,
        timestamp=now or datetime.now(timezone.utc),
        expires_in=expires_in,
    )
