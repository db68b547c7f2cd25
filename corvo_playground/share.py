"""
Share links for playground programs.

A program travels in a query parameter as URL-safe base64 of its UTF-8
bytes. Padding is dropped when encoding and restored when decoding, so links
produced elsewhere with padding still open. Lone surrogates are carried as
their three-byte UTF-8 form, so any ``str`` survives the round trip.
"""

from __future__ import annotations

import base64
import binascii
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from .core.exceptions import ShareLinkError

DEFAULT_QUERY_PARAM = "code"


def encode_source(source: str) -> str:
    encoded = base64.urlsafe_b64encode(source.encode("utf-8", "surrogatepass")).decode("ascii")
    return encoded.rstrip("=")


def decode_source(payload: str) -> str:
    """Inverse of ``encode_source``; raises ``ShareLinkError`` on garbage."""
    cleaned = payload.strip()
    padded = cleaned + "=" * (-len(cleaned) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return raw.decode("utf-8", "surrogatepass")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise ShareLinkError(str(e)) from e


def build_share_url(base_url: str, source: str, *, param: str = DEFAULT_QUERY_PARAM) -> str:
    """Return *base_url* with the program in *param*, keeping other query values."""
    parts = urlsplit(base_url)
    query = [
        (key, value)
        for key, values in parse_qs(parts.query, keep_blank_values=True).items()
        if key != param
        for value in values
    ]
    query.append((param, encode_source(source)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def source_from_url(url: str, *, param: str = DEFAULT_QUERY_PARAM) -> str | None:
    """Extract the shared program from *url*, or ``None`` when there is none."""
    values = parse_qs(urlsplit(url).query, keep_blank_values=True).get(param)
    if not values or not values[0]:
        return None
    return decode_source(values[0])
