"""
Header helpers shared by both directions of the proxy.

The same exclusion filter is applied to inbound headers on their way to the
gateway and to gateway response headers on their way back, so the fixed CORS
set added by the proxy is never duplicated.

Headers are handled as raw byte pairs so values that are not ASCII (UTF-8
filenames, obs-text) pass through without being decoded and re-encoded.
"""

from typing import FrozenSet, Iterable, List, Tuple

from starlette.datastructures import MutableHeaders


RawHeaderList = List[Tuple[bytes, bytes]]

CORS_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "POST, GET, OPTIONS, PUT, DELETE"),
    ("Access-Control-Allow-Headers", "Content-Type, Authorization, Range"),
)

# Lowercase names; header matching is case-insensitive
CORS_HEADER_NAMES: FrozenSet[bytes] = frozenset(
    name.lower().encode("latin-1") for name, _ in CORS_HEADERS
)

# Set by the HTTP client for the upstream origin
REQUEST_ONLY_EXCLUDED: FrozenSet[bytes] = frozenset({b"host"})


def filtered_copy(source: Iterable[Tuple[bytes, bytes]], exclude: FrozenSet[bytes]) -> RawHeaderList:
    """
    Copy raw header pairs, dropping every name in ``exclude``.

    Names are lowercased, values are copied byte for byte. Repeated headers
    keep all of their values in their original order.

    Args:
        source: (name, value) byte pairs, e.g. ``request.headers.raw`` or
            ``response.headers.raw``
        exclude: Lowercase header names to drop

    Returns:
        New list of (name, value) byte pairs
    """
    return [
        (name.lower(), value) for name, value in source
        if name.lower() not in exclude
    ]


def apply_cors_headers(headers: MutableHeaders) -> None:
    """Set the fixed CORS header set, replacing any existing values."""
    for name, value in CORS_HEADERS:
        headers[name] = value
