from __future__ import annotations

# Error codes recorded on a request's Result. These are the only values
# callers should branch on; messages are for diagnostics.
E_INVALID_HOST_URL = "E_INVALID_HOST_URL"
E_INVALID_RANGE = "E_INVALID_RANGE"
E_MISSING_CREDENTIALS = "E_MISSING_CREDENTIALS"
E_SIGNING_FAILED = "E_SIGNING_FAILED"
E_TRANSPORT = "E_TRANSPORT"
E_TRANSPORT_TIMEOUT = "E_TRANSPORT_TIMEOUT"
E_TRANSPORT_CONNECTION = "E_TRANSPORT_CONNECTION"
E_TRANSPORT_TLS = "E_TRANSPORT_TLS"
E_HTTP_RESPONSE_NOT_EXPECTED = "E_HTTP_RESPONSE_NOT_EXPECTED"
E_UPLOAD_INCOMPLETE = "E_UPLOAD_INCOMPLETE"
E_REQUEST_ALREADY_SENT = "E_REQUEST_ALREADY_SENT"


class ObjHTTPError(RuntimeError):
    """Base class for errors raised inside the request pipeline."""

    error_code = E_TRANSPORT


class InvalidHostURLError(ObjHTTPError, ValueError):
    """Raised when a host URL has no usable protocol or authority."""

    error_code = E_INVALID_HOST_URL


class CredentialError(ObjHTTPError):
    """Raised when credential material cannot be loaded."""

    error_code = E_MISSING_CREDENTIALS


class SigningError(ObjHTTPError):
    """Raised when a request cannot be signed with the given credential."""

    error_code = E_SIGNING_FAILED


class InvalidRangeError(ObjHTTPError, ValueError):
    """Raised when an upload or download window is out of bounds."""

    error_code = E_INVALID_RANGE
