"""Host URL parsing and request URL assembly."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from objhttp.common.errors import InvalidHostURLError

SUPPORTED_PROTOCOLS: frozenset[str] = frozenset({"http", "https"})

DEFAULT_PORTS = {"http": 80, "https": 443}

_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


@dataclass(frozen=True, slots=True)
class HostURL:
    """A host URL split into protocol, authority and base path."""

    protocol: str
    authority: str
    base_path: str

    @property
    def host_header(self) -> str:
        """Authority as sent in ``Host``, without the protocol's default port."""
        host, sep, port = self.authority.rpartition(":")
        if not sep or "]" in port:
            return self.authority
        if port.isdigit() and int(port) == DEFAULT_PORTS.get(self.protocol):
            return host
        return self.authority


def parse_host_url(host_url: str) -> HostURL:
    if not host_url:
        raise InvalidHostURLError("Host URL is empty.")
    scheme, sep, rest = host_url.partition("://")
    if not sep:
        raise InvalidHostURLError(
            f"Failed to parse protocol from host/service URL {host_url!r}."
        )
    protocol = scheme.lower()
    if not protocol:
        raise InvalidHostURLError(f"Host URL {host_url!r} has an empty protocol.")
    if protocol not in SUPPORTED_PROTOCOLS:
        raise InvalidHostURLError(
            f"Host URL protocol {scheme!r} is not supported (expected http or https)."
        )
    # Query strings and fragments have no meaning on a host URL.
    rest = rest.split("?", 1)[0].split("#", 1)[0]
    authority, slash, path = rest.partition("/")
    if not authority:
        raise InvalidHostURLError(f"Host URL {host_url!r} has no host.")
    return HostURL(
        protocol=protocol,
        authority=authority,
        base_path=(slash + path).rstrip("/"),
    )


def parse_protocol(host_url: str) -> str:
    return parse_host_url(host_url).protocol


def join_object_url(host_url: str, object_key: str) -> str:
    """Join a host URL and an object key with exactly one ``/``."""
    return host_url.rstrip("/") + "/" + object_key.lstrip("/")


def join_object_path(base_path: str, object_key: str | None) -> str:
    if object_key is None:
        return base_path or "/"
    return base_path.rstrip("/") + "/" + object_key.lstrip("/")


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """Percent-encode ``value`` with the AWS subset of RFC 3986."""
    result: list[str] = []
    for ch in value:
        if ch in _UNRESERVED:
            result.append(ch)
        elif ch == "/" and not encode_slash:
            result.append(ch)
        else:
            result.extend(f"%{byte:02X}" for byte in ch.encode("utf-8"))
    return "".join(result)


def canonical_query_string(params: Mapping[str, str]) -> str:
    encoded = sorted(
        (uri_encode(str(key)), uri_encode(str(value)))
        for key, value in params.items()
    )
    return "&".join(f"{key}={value}" for key, value in encoded)


def build_request_url(
    host: HostURL, path: str, params: Mapping[str, str] | None = None
) -> str:
    url = f"{host.protocol}://{host.authority}{uri_encode(path, encode_slash=False)}"
    if params:
        url += "?" + canonical_query_string(params)
    return url
