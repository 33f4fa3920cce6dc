from __future__ import annotations

import ipaddress
from typing import List, Mapping, Optional

# Proxy headers, most trusted first
PROXY_IP_HEADERS: List[str] = [
    "CF-Connecting-IP",  # Cloudflare
    "X-Forwarded-For",   # only the first hop is used
    "X-Real-IP",
    "True-Client-IP",
    "Forwarded",         # RFC 7239, accepted only when the raw value is a bare IP
]


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _get_header(headers: Mapping[str, str], name: str) -> str:
    """
    Case-insensitive lookup for any mapping. Starlette ``Headers`` already
    match case-insensitively; plain dicts need the fallback scan.
    """
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for k, v in headers.items():
            if k.lower() == lowered:
                value = v
                break
    return (value or "").strip()


def split_peer_host(peer: str) -> str:
    """
    Strip the port from a transport peer ("1.2.3.4:5678", "[::1]:80").
    Returns the peer unchanged when no host/port split applies.
    """
    p = (peer or "").strip()
    if not p:
        return ""
    if p.startswith("["):
        end = p.find("]")
        if end > 0 and p[end + 1:].startswith(":"):
            return p[1:end]
        return p
    if p.count(":") == 1:
        host, _, port = p.partition(":")
        if port.isdigit():
            return host
    return p


def resolve_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """
    Best-effort client address behind CDNs and reverse proxies.

    The first proxy header holding a syntactically valid IP wins; otherwise
    the transport peer address is used. ``headers`` may be Starlette
    ``Headers`` or a plain dict.
    """
    for name in PROXY_IP_HEADERS:
        value = _get_header(headers, name)
        if not value:
            continue
        if name == "X-Forwarded-For":
            value = value.split(",")[0].strip()
        if _is_ip(value):
            return value

    return split_peer_host(peer or "")
