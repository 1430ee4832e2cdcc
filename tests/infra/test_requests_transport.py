"""Tests for the requests-backed transport."""

from unittest.mock import MagicMock, PropertyMock, patch

import pytest
import requests
from requests.adapters import HTTPAdapter

from objhttp.common.config import Settings
from objhttp.infra.transport import session as transport_session
from objhttp.infra.transport.client import (
    CONNECTION,
    OTHER,
    TIMEOUT,
    TLS,
    TransportError,
)
from objhttp.infra.transport.requests_transport import RequestsTransport


class TestRequestsTransport:
    """Test RequestsTransport against a mocked requests session."""

    @pytest.fixture
    def mock_session(self):
        """Mock requests session."""
        mock = MagicMock()
        with patch.object(RequestsTransport, "_build_session", return_value=mock):
            yield mock

    @pytest.fixture
    def transport(self, mock_session):
        return RequestsTransport(
            settings=Settings(HTTP_CONNECT_TIMEOUT=3, HTTP_READ_TIMEOUT=30)
        )

    def test_send_returns_status_headers_and_body(self, transport, mock_session):
        """A completed exchange is returned as a TransportResponse."""
        response = mock_session.request.return_value
        response.status_code = 206
        response.headers = {"Content-Range": "bytes 0-2/10"}
        response.content = b"abc"

        result = transport.send("GET", "https://h/b/k", {"Range": "bytes=0-2"})

        assert result.status_code == 206
        assert result.body == b"abc"
        assert result.headers["content-range"] == "bytes 0-2/10"
        mock_session.request.assert_called_once_with(
            "GET",
            "https://h/b/k",
            headers={"Range": "bytes=0-2"},
            data=None,
            timeout=(3, 30),
            allow_redirects=False,
            stream=False,
        )
        response.close.assert_called_once()

    def test_body_is_passed_through(self, transport, mock_session):
        """Upload bodies reach requests unchanged."""
        mock_session.request.return_value.status_code = 200
        mock_session.request.return_value.headers = {}
        mock_session.request.return_value.content = b""
        body = iter([b"a", b"b"])

        transport.send("PUT", "https://h/k", {}, body)

        assert mock_session.request.call_args.kwargs["data"] is body

    def test_head_does_not_read_body(self, transport, mock_session):
        """read_body=False streams the response and never touches content."""
        response = MagicMock(status_code=404, headers={})
        content = PropertyMock(return_value=b"ignored")
        type(response).content = content
        mock_session.request.return_value = response

        result = transport.send("HEAD", "https://h/k", {}, read_body=False)

        assert result.status_code == 404
        assert result.body == b""
        assert mock_session.request.call_args.kwargs["stream"] is True
        content.assert_not_called()

    @pytest.mark.parametrize(
        ("exc", "kind"),
        [
            (requests.exceptions.ConnectTimeout("slow"), TIMEOUT),
            (requests.exceptions.ReadTimeout("slow"), TIMEOUT),
            (requests.exceptions.SSLError("bad cert"), TLS),
            (requests.exceptions.ConnectionError("refused"), CONNECTION),
            (requests.exceptions.InvalidURL("nope"), OTHER),
        ],
    )
    def test_errors_are_translated(self, transport, mock_session, exc, kind):
        """requests exceptions surface as TransportError with a kind."""
        mock_session.request.side_effect = exc

        with pytest.raises(TransportError) as caught:
            transport.send("GET", "https://h/k", {})

        assert caught.value.kind == kind
        assert caught.value.__cause__ is exc

    def test_error_while_reading_body(self, transport, mock_session):
        """Failures while reading the body are translated too."""
        response = MagicMock(status_code=200, headers={})
        type(response).content = PropertyMock(
            side_effect=requests.exceptions.ChunkedEncodingError("truncated")
        )
        mock_session.request.return_value = response

        with pytest.raises(TransportError) as caught:
            transport.send("GET", "https://h/k", {})

        assert caught.value.kind == OTHER
        response.close.assert_called_once()

    def test_close(self, transport, mock_session):
        transport.close()

        mock_session.close.assert_called_once()


def test_session_configuration():
    settings = Settings(
        HTTP_POOL_SIZE=3,
        HTTP_USER_AGENT="tests/1.0",
        HTTP_CA_BUNDLE="/etc/ssl/internal.pem",
    )

    session = RequestsTransport._build_session(settings)

    adapter = session.get_adapter("https://example.org")
    assert isinstance(adapter, HTTPAdapter)
    assert adapter.max_retries.total == 0
    assert session.verify == "/etc/ssl/internal.pem"
    assert session.headers["User-Agent"] == "tests/1.0"
    assert session.headers["Accept-Encoding"] == "identity"
    session.close()


def test_session_verify_flag():
    session = RequestsTransport._build_session(Settings(HTTP_VERIFY_TLS=False))

    assert session.verify is False
    session.close()


class TestSharedTransport:
    def test_created_lazily_once(self):
        first = transport_session.get_transport()

        assert isinstance(first, RequestsTransport)
        assert transport_session.get_transport() is first

    def test_replacing_closes_previous(self):
        previous = MagicMock()
        transport_session.set_transport(previous)
        replacement = MagicMock()

        transport_session.set_transport(replacement)

        previous.close.assert_called_once()
        assert transport_session.get_transport() is replacement

    def test_reset_closes_transport(self):
        current = MagicMock()
        transport_session.set_transport(current)

        transport_session.reset_transport()

        current.close.assert_called_once()
