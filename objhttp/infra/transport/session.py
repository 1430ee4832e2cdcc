from __future__ import annotations

import threading

from objhttp.common.config import get_settings
from objhttp.infra.transport.client import Transport
from objhttp.infra.transport.requests_transport import RequestsTransport

_transport: Transport | None = None
_lock = threading.Lock()


def get_transport() -> Transport:
    global _transport
    if _transport is None:
        with _lock:
            if _transport is None:
                _transport = RequestsTransport(settings=get_settings())
    return _transport


def set_transport(transport: Transport) -> None:
    global _transport
    with _lock:
        previous, _transport = _transport, transport
    if previous is not None and previous is not transport:
        previous.close()


def reset_transport() -> None:
    global _transport
    with _lock:
        previous, _transport = _transport, None
    if previous is not None:
        previous.close()
