"""requests-based transport implementation.

Dependencies:
    - requests
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Mapping

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from objhttp.infra.transport.client import (
    CONNECTION,
    OTHER,
    TIMEOUT,
    TLS,
    TransportError,
    TransportResponse,
)

if TYPE_CHECKING:
    from objhttp.common.config import Settings


def _translate(exc: requests.exceptions.RequestException) -> TransportError:
    if isinstance(exc, requests.exceptions.Timeout):
        return TransportError(f"Request timed out: {exc}", kind=TIMEOUT)
    if isinstance(exc, requests.exceptions.SSLError):
        return TransportError(f"TLS handshake failed: {exc}", kind=TLS)
    if isinstance(exc, requests.exceptions.ConnectionError):
        return TransportError(f"Connection failed: {exc}", kind=CONNECTION)
    return TransportError(f"HTTP request failed: {exc}", kind=OTHER)


class RequestsTransport:
    """Connection-pooling transport backed by a ``requests.Session``.

    Redirects are not followed and retries are disabled; both would change
    the signed request behind the caller's back.
    """

    def __init__(self, *, settings: "Settings") -> None:
        """Create the pooled session from settings.

        Args:
            settings: Settings holding timeouts, TLS and pool configuration.
        """
        self._settings = settings
        self._session = self._build_session(settings)

    @staticmethod
    def _build_session(settings: "Settings") -> requests.Session:
        """Create a requests session from settings."""
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=settings.HTTP_POOL_SIZE,
            pool_maxsize=settings.HTTP_POOL_SIZE,
            max_retries=0,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.verify = settings.HTTP_CA_BUNDLE or settings.HTTP_VERIFY_TLS
        session.headers["User-Agent"] = settings.HTTP_USER_AGENT
        # Bodies are returned exactly as stored.
        session.headers["Accept-Encoding"] = "identity"
        return session

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | Iterable[bytes] | None = None,
        *,
        read_body: bool = True,
    ) -> TransportResponse:
        """Execute one HTTP exchange."""
        try:
            response = self._session.request(
                method,
                url,
                headers=dict(headers),
                data=body,
                timeout=self._settings.timeout,
                allow_redirects=False,
                stream=not read_body,
            )
        except requests.exceptions.RequestException as exc:
            raise _translate(exc) from exc

        try:
            content = response.content if read_body else b""
        except requests.exceptions.RequestException as exc:
            raise _translate(exc) from exc
        finally:
            response.close()

        return TransportResponse(
            status_code=int(response.status_code),
            headers=CaseInsensitiveDict(response.headers),
            body=content or b"",
        )

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()
