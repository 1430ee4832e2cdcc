"""The request builder shared by every object operation.

An ``HTTPRequest`` is single-use: it is constructed against a host URL and
an optional object key, sent once, and then only inspected. Nothing here
raises across the public boundary. Every failure, from an unparseable host
URL to an unexpected status code, is recorded on the request's ``Result``.

State progression::

    CONSTRUCTED -> PROTOCOL_PARSED | PROTOCOL_FAILED
    PROTOCOL_PARSED -> SIGNED -> SENT -> COMPLETED_OK | COMPLETED_FAILED
"""

from __future__ import annotations

import logging
import time
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Union

from requests.structures import CaseInsensitiveDict

from objhttp.commands.payload import Payload, PayloadStream
from objhttp.commands.signing import EMPTY_SHA256, UNSIGNED_PAYLOAD, Signer
from objhttp.commands.url import (
    HostURL,
    build_request_url,
    join_object_path,
    join_object_url,
    parse_host_url,
)
from objhttp.common.config import Settings, get_settings
from objhttp.common.credentials import (
    Credential,
    KeyedCredential,
    TokenFile,
    materialize,
)
from objhttp.common.errors import (
    E_HTTP_RESPONSE_NOT_EXPECTED,
    E_INVALID_HOST_URL,
    E_REQUEST_ALREADY_SENT,
    E_TRANSPORT,
    E_TRANSPORT_CONNECTION,
    E_TRANSPORT_TIMEOUT,
    E_TRANSPORT_TLS,
    E_UPLOAD_INCOMPLETE,
    InvalidHostURLError,
    ObjHTTPError,
)
from objhttp.common.logging import log_extra, mask_headers, mask_url
from objhttp.infra.observability.metrics import record_request
from objhttp.infra.transport import session
from objhttp.infra.transport.client import (
    CONNECTION,
    TIMEOUT,
    TLS,
    Transport,
    TransportError,
    TransportResponse,
)
from objhttp.infra.transport.requests_transport import RequestsTransport

_TRANSPORT_ERROR_CODES = {
    TIMEOUT: E_TRANSPORT_TIMEOUT,
    CONNECTION: E_TRANSPORT_CONNECTION,
    TLS: E_TRANSPORT_TLS,
}

# Error bodies larger than this are not parsed for a server error code.
_MAX_ERROR_BODY = 64 * 1024

PayloadArg = Union[bytes, bytearray, memoryview, Payload, None]


class RequestState(Enum):
    CONSTRUCTED = "constructed"
    PROTOCOL_PARSED = "protocol_parsed"
    PROTOCOL_FAILED = "protocol_failed"
    SIGNED = "signed"
    SENT = "sent"
    COMPLETED_OK = "completed_ok"
    COMPLETED_FAILED = "completed_failed"


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of one request. Never mutated once the request completes."""

    response_code: int = 0
    error_code: str = ""
    error_message: str = ""
    result_string: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.error_code

    @property
    def exists(self) -> bool:
        return self.ok and 200 <= self.response_code < 300


Configure = Callable[["HTTPRequest", PayloadArg, int, Optional[int]], Optional[Payload]]


def _configure_body(
    request: "HTTPRequest", payload: PayloadArg, offset: int, size: int | None
) -> Payload | None:
    if payload is None or isinstance(payload, Payload):
        return payload
    return Payload(payload, offset, size)


@dataclass(frozen=True, slots=True)
class Operation:
    """Describes one operation shape.

    ``configure`` turns the arguments of ``send_request`` into headers on the
    request and the payload to stream, raising ``InvalidRangeError`` for
    out-of-bounds windows.
    """

    name: str
    verb: str
    sends_body: bool
    receives_body: bool
    expected_status: frozenset[int]
    configure: Configure = _configure_body


REQUEST = Operation(
    name="request",
    verb="POST",
    sends_body=True,
    receives_body=True,
    expected_status=frozenset({200}),
)


def init(settings: Settings | None = None, transport: Transport | None = None) -> None:
    """Set up the process-wide transport.

    Call once from a context with no other threads before requests are sent
    concurrently. Repeated calls without arguments are no-ops; passing a
    transport replaces the shared one.
    """
    if transport is not None:
        session.set_transport(transport)
        return
    if settings is not None:
        session.set_transport(RequestsTransport(settings=settings))
        return
    session.get_transport()


def shutdown() -> None:
    """Close the process-wide transport. Run only after all sends finished."""
    session.reset_transport()


class HTTPRequest:
    def __init__(
        self,
        host_url: str,
        object_key: str | None = None,
        *,
        operation: Operation = REQUEST,
        credential: Credential | TokenFile | None = None,
        logger: logging.Logger | None = None,
        transport: Transport | None = None,
        settings: Settings | None = None,
        signer: Signer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.host_url = host_url
        self.object_key = object_key
        self.operation = operation
        self.query_parameters: dict[str, str] = {}
        self.headers: dict[str, str] = {}
        self.payload: Payload | None = None
        self.signature_time: datetime | None = None
        self.host: HostURL | None = None

        self._credential = credential
        self._log = logger or logging.getLogger("objhttp.request")
        self._settings = settings or get_settings()
        self._transport = transport
        self._signer = signer or Signer(
            self._settings.S3_REGION, self._settings.S3_SERVICE_NAME
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._expected = frozenset(operation.expected_status)
        self._expected_overridden = False
        self._result = Result()
        self._state = RequestState.CONSTRUCTED

        try:
            self.host = parse_host_url(host_url)
        except InvalidHostURLError as exc:
            self._result = Result(error_code=E_INVALID_HOST_URL, error_message=str(exc))
            self._state = RequestState.PROTOCOL_FAILED
            self._log.warning(
                "invalid_host_url host_url=%s error=%s",
                host_url,
                exc,
                extra=log_extra(host_url=host_url, error_code=E_INVALID_HOST_URL),
            )
        else:
            self._state = RequestState.PROTOCOL_PARSED

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def protocol(self) -> str:
        return self.host.protocol if self.host else ""

    @property
    def object_url(self) -> str:
        """Host URL joined with the object key, unencoded."""
        if self.object_key is None:
            return self.host_url
        return join_object_url(self.host_url, self.object_key)

    @property
    def path(self) -> str:
        if self.host is None:
            return ""
        return join_object_path(self.host.base_path, self.object_key)

    @property
    def url(self) -> str:
        """Encoded request URL including the current query parameters."""
        if self.host is None:
            return ""
        return build_request_url(self.host, self.path, self.query_parameters)

    @property
    def requires_signature(self) -> bool:
        return isinstance(self._credential, KeyedCredential)

    @property
    def expected_response_codes(self) -> frozenset[int]:
        return self._expected

    @property
    def expected_response_code(self) -> int:
        return min(self._expected)

    @expected_response_code.setter
    def expected_response_code(self, code: int) -> None:
        self.set_expected_response_codes({code})

    def set_expected_response_codes(self, codes: set[int] | frozenset[int]) -> None:
        if not codes:
            raise ValueError("At least one expected response code is required")
        self._expected = frozenset(codes)
        self._expected_overridden = True

    def default_expected_response_codes(self, codes: set[int] | frozenset[int]) -> None:
        """Set the expected codes unless the caller chose them explicitly."""
        if not self._expected_overridden:
            self._expected = frozenset(codes)

    @property
    def result(self) -> Result:
        return self._result

    @property
    def response_code(self) -> int:
        return self._result.response_code

    @property
    def error_code(self) -> str:
        return self._result.error_code

    @property
    def error_message(self) -> str:
        return self._result.error_message

    @property
    def result_string(self) -> bytes:
        return self._result.result_string

    @property
    def response_headers(self) -> Mapping[str, str]:
        return self._result.headers

    def send_request(
        self,
        payload: PayloadArg = None,
        offset: int = 0,
        size: int | None = None,
    ) -> bool:
        """Configure the request for its operation and send it."""
        if not self._check_sendable():
            return False
        try:
            prepared = self.operation.configure(self, payload, offset, size)
        except ObjHTTPError as exc:
            return self._fail(exc.error_code, str(exc))
        return self._send(prepared)

    def send_http_request(self, payload: PayloadArg = None) -> bool:
        """Sign and send the request as currently assembled.

        Returns True when the transport answered with an expected status.
        On False the error code and message describe the failure; the
        response code is 0 when no response was received.
        """
        if not self._check_sendable():
            return False
        try:
            prepared = _configure_body(self, payload, 0, None)
        except ObjHTTPError as exc:
            return self._fail(exc.error_code, str(exc))
        return self._send(prepared)

    def _check_sendable(self) -> bool:
        if self._state is RequestState.PROTOCOL_PARSED:
            return True
        if self._state is RequestState.PROTOCOL_FAILED:
            self._state = RequestState.COMPLETED_FAILED
            self._log.warning(
                "request_not_sent host_url=%s error_code=%s",
                self.host_url,
                self._result.error_code,
                extra=log_extra(
                    host_url=self.host_url, error_code=self._result.error_code
                ),
            )
            return False
        self._log.warning(
            "request_already_sent host_url=%s state=%s",
            self.host_url,
            self._state.value,
            extra=log_extra(
                host_url=self.host_url,
                state=self._state.value,
                error_code=E_REQUEST_ALREADY_SENT,
            ),
        )
        return False

    def _send(self, payload: Payload | None) -> bool:
        host = self.host
        if host is None:
            return self._fail(E_INVALID_HOST_URL, "Request has no parsed host URL.")
        verb = self.operation.verb
        body: bytes | PayloadStream | None = None
        payload_hash = EMPTY_SHA256
        if self.operation.sends_body:
            payload = payload if payload is not None else Payload(b"")
            self.payload = payload
            self.headers.setdefault("Content-Type", "binary/octet-stream")
            self.headers["Content-Length"] = str(payload.remaining)
            if payload.remaining:
                body = PayloadStream(payload, self._settings.UPLOAD_CHUNK_SIZE)
            else:
                body = b""
            payload_hash = UNSIGNED_PAYLOAD

        try:
            credential = materialize(self._credential)
            self.signature_time = self._clock()
            signed = self._signer.sign(
                method=verb,
                host=host,
                path=self.path,
                query_parameters=self.query_parameters,
                headers=self.headers,
                credential=credential,
                timestamp=self.signature_time,
                payload_hash=payload_hash,
            )
        except ObjHTTPError as exc:
            return self._fail(exc.error_code, str(exc))
        self._state = RequestState.SIGNED

        transport = self._transport or session.get_transport()
        url = build_request_url(host, self.path, signed.query_parameters)
        target = mask_url(url)
        self._log.debug(
            "request_prepared verb=%s url=%s",
            verb,
            target,
            extra=log_extra(
                verb=verb, url=target, headers=mask_headers(signed.headers)
            ),
        )
        self._state = RequestState.SENT
        start = time.perf_counter()
        try:
            response = transport.send(
                verb,
                url,
                signed.headers,
                body,
                read_body=self.operation.receives_body,
            )
        except TransportError as exc:
            return self._fail(
                _TRANSPORT_ERROR_CODES.get(exc.kind, E_TRANSPORT),
                str(exc),
                elapsed=time.perf_counter() - start,
            )
        return self._complete(response, url, time.perf_counter() - start)

    def _complete(self, response: TransportResponse, url: str, elapsed: float) -> bool:
        status = response.status_code
        error_code = ""
        error_message = ""
        if status not in self._expected:
            error_code = E_HTTP_RESPONSE_NOT_EXPECTED
            error_message = describe_unexpected_response(
                self._expected, status, response.body
            )
        elif self.payload is not None and not self.payload.complete:
            error_code = E_UPLOAD_INCOMPLETE
            error_message = (
                f"Transport acknowledged the upload after "
                f"{self.payload.sent_so_far} of {self.payload.length} bytes."
            )

        self._result = Result(
            response_code=status,
            error_code=error_code,
            error_message=error_message,
            result_string=response.body,
            headers=MappingProxyType(CaseInsensitiveDict(response.headers)),
        )
        self._state = (
            RequestState.COMPLETED_FAILED if error_code else RequestState.COMPLETED_OK
        )
        self._observe(status, elapsed, error_code, url=url, received=len(response.body))
        return not error_code

    def _fail(self, error_code: str, message: str, *, elapsed: float | None = None) -> bool:
        self._result = Result(error_code=error_code, error_message=message)
        self._state = RequestState.COMPLETED_FAILED
        self._observe(0, elapsed or 0.0, error_code, message=message)
        return False

    def _observe(
        self,
        status: int,
        elapsed: float,
        error_code: str,
        *,
        url: str | None = None,
        received: int = 0,
        message: str = "",
    ) -> None:
        sent = self.payload.sent_so_far if self.payload is not None else 0
        if self._settings.ENABLE_METRICS:
            record_request(
                self.operation.verb,
                status,
                elapsed,
                bytes_sent=sent,
                bytes_received=received,
                error_code=error_code,
            )
        level = logging.INFO
        if error_code:
            level = logging.WARNING if status else logging.ERROR
        duration_ms = round(elapsed * 1000, 3)
        target = mask_url(url or self.object_url)
        self._log.log(
            level,
            "request operation=%s verb=%s url=%s status=%s duration_ms=%.3f "
            "bytes_sent=%s bytes_received=%s error_code=%s",
            self.operation.name,
            self.operation.verb,
            target,
            status,
            duration_ms,
            sent,
            received,
            error_code or "-",
            extra=log_extra(
                operation=self.operation.name,
                verb=self.operation.verb,
                url=target,
                status=status,
                duration_ms=duration_ms,
                bytes_sent=sent,
                bytes_received=received,
                error_code=error_code or None,
                error_message=message or None,
            ),
        )


def parse_error_body(body: bytes) -> tuple[str, str]:
    """Extract ``<Code>`` and ``<Message>`` from an S3-style XML error body."""
    if not body or len(body) > _MAX_ERROR_BODY:
        return "", ""
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError:
        return "", ""
    code = root.findtext("Code") or ""
    message = root.findtext("Message") or ""
    return code.strip(), message.strip()


def describe_unexpected_response(
    expected: frozenset[int], status: int, body: bytes
) -> str:
    wanted = "/".join(str(code) for code in sorted(expected))
    message = f"HTTP response was {status}, expected {wanted}."
    server_code, server_message = parse_error_body(body)
    if server_code or server_message:
        message += f" Server error: {server_code or '-'}: {server_message or '-'}"
    return message
