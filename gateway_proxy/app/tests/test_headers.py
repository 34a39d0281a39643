"""
Unit Tests for Header Helpers
=============================

Tests for gateway_proxy/app/proxy/headers.py
"""

from starlette.datastructures import MutableHeaders

from gateway_proxy.app.proxy.headers import (
    CORS_HEADER_NAMES,
    CORS_HEADERS,
    apply_cors_headers,
    filtered_copy,
)


def test_cors_header_names_are_lowercase():
    assert CORS_HEADER_NAMES == {
        b"access-control-allow-origin",
        b"access-control-allow-methods",
        b"access-control-allow-headers",
    }


def test_filtered_copy_drops_excluded_case_insensitively():
    """Test that exclusion ignores header name case"""
    source = [
        (b"Access-Control-Allow-Origin", b"https://stale.example"),
        (b"ACCESS-CONTROL-ALLOW-METHODS", b"GET"),
        (b"access-control-allow-headers", b"X-Stale"),
        (b"Content-Type", b"application/json"),
    ]

    assert filtered_copy(source, CORS_HEADER_NAMES) == [(b"content-type", b"application/json")]


def test_filtered_copy_keeps_repeated_values_in_order():
    """Test that multi-valued headers survive with order intact"""
    source = [
        (b"set-cookie", b"a=1"),
        (b"x-other", b"x"),
        (b"set-cookie", b"b=2"),
        (b"set-cookie", b"c=3"),
    ]

    assert filtered_copy(source, CORS_HEADER_NAMES) == source


def test_filtered_copy_keeps_non_ascii_values_byte_for_byte():
    """Test that UTF-8 and obs-text values are not re-encoded"""
    source = [
        (b"Content-Disposition", 'attachment; filename="résumé.pdf"'.encode("utf-8")),
        (b"X-Name", b"caf\xe9"),
        (b"X-Title", "日本".encode("utf-8")),
    ]

    assert filtered_copy(source, CORS_HEADER_NAMES) == [
        (b"content-disposition", 'attachment; filename="résumé.pdf"'.encode("utf-8")),
        (b"x-name", b"caf\xe9"),
        (b"x-title", "日本".encode("utf-8")),
    ]


def test_filtered_copy_returns_new_list():
    """Test that the source is left untouched"""
    source = [(b"access-control-allow-origin", b"*"), (b"accept", b"*/*")]

    result = filtered_copy(source, CORS_HEADER_NAMES)

    assert result is not source
    assert len(source) == 2


def test_filtered_copy_with_empty_exclusion():
    source = [(b"host", b"proxy.example.com"), (b"accept", b"*/*")]

    assert filtered_copy(source, frozenset()) == source


def test_apply_cors_headers_sets_fixed_values():
    headers = MutableHeaders()

    apply_cors_headers(headers)

    for name, value in CORS_HEADERS:
        assert headers.getlist(name) == [value]


def test_apply_cors_headers_replaces_existing_values():
    """Test that stale CORS values are overwritten, not duplicated"""
    headers = MutableHeaders(raw=[
        (b"access-control-allow-origin", b"https://stale.example"),
        (b"access-control-allow-origin", b"https://other.example"),
        (b"content-type", b"text/plain"),
    ])

    apply_cors_headers(headers)

    assert headers.getlist("access-control-allow-origin") == ["*"]
    assert headers["content-type"] == "text/plain"
