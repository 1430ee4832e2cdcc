"""Signed HTTP requests for object storage.

Build an upload, download or head request against an object on a host URL,
send it once, and read back a uniform result::

    from objhttp import HTTPRequest, DOWNLOAD, KeyedCredential

    request = HTTPRequest(
        "https://storage.example.org/bucket",
        "data/file.bin",
        operation=DOWNLOAD,
        credential=KeyedCredential("AKID", "SECRET"),
    )
    if request.send_request(offset=0, size=1024):
        data = request.result_string
    else:
        print(request.error_code, request.error_message)
"""

from objhttp.commands import (
    DOWNLOAD,
    HEAD,
    REQUEST,
    UPLOAD,
    HTTPRequest,
    ObjectHead,
    Operation,
    Payload,
    RequestState,
    Result,
    Signer,
    download_object,
    head_object,
    init,
    presign_download,
    shutdown,
    upload_object,
)
from objhttp.common.credentials import (
    AnonymousCredential,
    BearerCredential,
    Credential,
    KeyedCredential,
    TokenFile,
)

__all__ = [
    "DOWNLOAD",
    "HEAD",
    "REQUEST",
    "UPLOAD",
    "AnonymousCredential",
    "BearerCredential",
    "Credential",
    "HTTPRequest",
    "KeyedCredential",
    "ObjectHead",
    "Operation",
    "Payload",
    "RequestState",
    "Result",
    "Signer",
    "TokenFile",
    "download_object",
    "head_object",
    "init",
    "presign_download",
    "shutdown",
    "upload_object",
]
