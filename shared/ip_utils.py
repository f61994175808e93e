"""
Client IP resolution, classification and hashing.

``get_client_ip`` works on any header mapping so it is testable without a
request; ``get_request_ip`` is the FastAPI adapter. ``hash_ip`` produces the
identifier stored on pageviews and used as the geo cache key.
"""

from __future__ import annotations

import hashlib
import ipaddress
from typing import Mapping, Optional

from fastapi import Request

# Connecting-IP headers set by CDNs first, then generic proxy headers
PROXY_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
    "X-Client-IP",
)

UNKNOWN_IP = "unknown"


def get_client_ip(headers: Mapping[str, str], fallback: str = UNKNOWN_IP) -> str:
    """Extract the client IP from proxy *headers*.

    Checks ``PROXY_HEADERS`` in order; the first header that is present and
    non-empty wins. For ``X-Forwarded-For`` only the first (client) entry of
    the comma-separated chain is used. Values from different headers are
    never merged.

    Args:
        headers: Case-insensitive header mapping (Starlette ``Headers`` or a
            plain dict with canonical header names).
        fallback: Returned when no proxy header carries an address.
    """
    for header in PROXY_HEADERS:
        ip_value: Optional[str] = headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip
    return fallback


def get_request_ip(request: Request) -> str:
    """Resolve the client IP for a FastAPI ``Request``."""
    fallback = request.client.host if request.client else UNKNOWN_IP
    return get_client_ip(request.headers, fallback or UNKNOWN_IP)


def is_private_ip(ip: str) -> bool:
    """Return True if *ip* must never be sent to a geo provider.

    Covers loopback, private (RFC 1918 / unique-local), link-local and
    unspecified addresses for IPv4 and IPv6, including IPv4-mapped IPv6.
    ``localhost`` and values that do not parse as an address are treated as
    non-routable too, since no provider can resolve them.
    """
    if not ip or ip.strip().lower() == "localhost":
        return True
    try:
        addr = ipaddress.ip_address(ip.strip())
    except ValueError:
        return True

    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped

    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_unspecified
    )


def hash_ip(ip: str, salt: str) -> str:
    """Return a salted SHA-256 digest of *ip*, truncated to 32 hex chars.

    Deterministic for a given salt, so repeat visits from one address share
    a cache key, while the stored value cannot be mapped back to the address
    without the salt.
    """
    return hashlib.sha256(f"{ip}{salt}".encode("utf-8")).hexdigest()[:32]
