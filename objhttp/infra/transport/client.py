"""Transport protocol and data types.

This module defines the narrow interface the request builder uses to put a
fully assembled request on the wire, independent of the HTTP library.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Protocol

TIMEOUT = "timeout"
CONNECTION = "connection"
TLS = "tls"
OTHER = "other"


class TransportError(RuntimeError):
    """Raised when the exchange fails before a status code is received."""

    def __init__(self, message: str, *, kind: str = OTHER) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status, headers and raw body returned by the server."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class Transport(Protocol):
    """Protocol every transport implementation satisfies."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | Iterable[bytes] | None = None,
        *,
        read_body: bool = True,
    ) -> TransportResponse:
        """Execute one HTTP exchange.

        Args:
            method: HTTP verb.
            url: Fully encoded request URL including the query string.
            headers: Headers to send verbatim.
            body: Request body, either a buffer or an iterable of chunks
                with a known ``len()``.
            read_body: When False the response body is not read.

        Returns:
            TransportResponse for whatever status the server returned.

        Raises:
            TransportError: If no response was received.
        """
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...
