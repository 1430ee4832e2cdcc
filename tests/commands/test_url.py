"""Tests for host URL parsing and request URL assembly."""

import pytest

from objhttp.commands.url import (
    HostURL,
    build_request_url,
    canonical_query_string,
    join_object_path,
    join_object_url,
    parse_host_url,
    parse_protocol,
    uri_encode,
)
from objhttp.common.errors import E_INVALID_HOST_URL, InvalidHostURLError


class TestParseHostURL:
    def test_splits_protocol_authority_and_path(self):
        host = parse_host_url("https://storage.example.org:8443/bucket/prefix/")

        assert host == HostURL(
            protocol="https",
            authority="storage.example.org:8443",
            base_path="/bucket/prefix",
        )

    def test_protocol_is_lowercased(self):
        assert parse_protocol("HTTP://example.org") == "http"

    def test_host_without_path(self):
        host = parse_host_url("http://example.org")
        assert host.base_path == ""
        assert host.authority == "example.org"

    @pytest.mark.parametrize(
        "host_url",
        [
            "",
            "nourlatall",
            "example.org/bucket",
            "://example.org",
            "ftp://example.org",
            "https://",
            "https:///bucket",
        ],
    )
    def test_invalid_host_urls_share_one_error_code(self, host_url):
        with pytest.raises(InvalidHostURLError) as excinfo:
            parse_host_url(host_url)

        assert excinfo.value.error_code == E_INVALID_HOST_URL

    def test_query_and_fragment_are_dropped(self):
        host = parse_host_url("https://example.org/bucket?x=1#frag")
        assert host.base_path == "/bucket"

    @pytest.mark.parametrize(
        ("authority", "protocol", "expected"),
        [
            ("example.org:443", "https", "example.org"),
            ("example.org:80", "http", "example.org"),
            ("example.org:8080", "http", "example.org:8080"),
            ("example.org:443", "http", "example.org:443"),
            ("[::1]", "https", "[::1]"),
            ("[::1]:443", "https", "[::1]"),
        ],
    )
    def test_host_header_drops_default_port(self, authority, protocol, expected):
        host = HostURL(protocol=protocol, authority=authority, base_path="")
        assert host.host_header == expected


class TestJoinObjectURL:
    @pytest.mark.parametrize(
        ("host_url", "object_key"),
        [
            ("https://example.org/bucket", "dir/file.bin"),
            ("https://example.org/bucket/", "dir/file.bin"),
            ("https://example.org/bucket", "/dir/file.bin"),
            ("https://example.org/bucket//", "//dir/file.bin"),
        ],
    )
    def test_exactly_one_separator(self, host_url, object_key):
        assert (
            join_object_url(host_url, object_key)
            == "https://example.org/bucket/dir/file.bin"
        )

    def test_object_path_under_base_path(self):
        assert join_object_path("/bucket", "key") == "/bucket/key"
        assert join_object_path("", "/key") == "/key"

    def test_object_path_without_key(self):
        assert join_object_path("", None) == "/"
        assert join_object_path("/bucket", None) == "/bucket"


class TestEncoding:
    def test_unreserved_characters_pass_through(self):
        assert uri_encode("AZaz09-_.~") == "AZaz09-_.~"

    def test_reserved_characters_use_uppercase_hex(self):
        assert uri_encode("a b+c=d") == "a%20b%2Bc%3Dd"

    def test_slash_optionally_preserved(self):
        assert uri_encode("a/b") == "a%2Fb"
        assert uri_encode("a/b", encode_slash=False) == "a/b"

    def test_utf8_is_encoded_per_byte(self):
        assert uri_encode("é") == "%C3%A9"

    def test_query_string_is_sorted(self):
        query = canonical_query_string({"prefix": "a b", "delimiter": "/", "acl": ""})
        assert query == "acl=&delimiter=%2F&prefix=a%20b"

    def test_build_request_url(self):
        host = parse_host_url("https://example.org/bucket")

        url = build_request_url(host, "/bucket/my file.txt", {"versionId": "3"})

        assert url == "https://example.org/bucket/my%20file.txt?versionId=3"

    def test_build_request_url_without_query(self):
        host = parse_host_url("http://example.org")
        assert build_request_url(host, "/k", {}) == "http://example.org/k"
