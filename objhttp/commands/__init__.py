"""Object operations expressed as signed HTTP requests."""

from .operations import (
    DOWNLOAD,
    HEAD,
    UPLOAD,
    ObjectHead,
    download_object,
    download_request,
    head_object,
    head_request,
    presign_download,
    upload_object,
    upload_request,
)
from .payload import Payload, PayloadStream
from .request import (
    REQUEST,
    HTTPRequest,
    Operation,
    RequestState,
    Result,
    init,
    shutdown,
)
from .signing import Signer, SignedRequest
from .url import HostURL, join_object_url, parse_host_url, parse_protocol

__all__ = [
    "DOWNLOAD",
    "HEAD",
    "REQUEST",
    "UPLOAD",
    "HTTPRequest",
    "HostURL",
    "ObjectHead",
    "Operation",
    "Payload",
    "PayloadStream",
    "RequestState",
    "Result",
    "SignedRequest",
    "Signer",
    "download_object",
    "download_request",
    "head_object",
    "head_request",
    "init",
    "join_object_url",
    "parse_host_url",
    "parse_protocol",
    "presign_download",
    "shutdown",
    "upload_object",
    "upload_request",
]
