"""HTTP transport abstraction layer.

The request builder talks to the network only through the ``Transport``
protocol; ``RequestsTransport`` is the production implementation.
"""

from .client import Transport, TransportError, TransportResponse
from .requests_transport import RequestsTransport

__all__ = [
    "RequestsTransport",
    "Transport",
    "TransportError",
    "TransportResponse",
]
