"""Pre-flight filter for URLs handed to the screenshot service"""

import ipaddress
from typing import Optional, Tuple
from urllib.parse import urlparse

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "0.0.0.0", "::1", "[::1]"}
BLOCKED_SUFFIXES = (".local", ".localhost", ".internal")


def check_capture_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Decide whether a URL may be sent to the external capture service.

    Returns ``(True, None)`` when allowed, otherwise ``(False, reason)``.
    Hostnames are not resolved; only literal addresses are range-checked.
    """
    if not url or not isinstance(url, str):
        return False, "empty URL"

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return False, "malformed URL"

    if parsed.scheme not in ("http", "https"):
        return False, f"scheme '{parsed.scheme or 'none'}' is not allowed"
    if not hostname:
        return False, "URL has no host"

    hostname = hostname.lower().rstrip(".")
    if hostname in BLOCKED_HOSTNAMES:
        return False, f"host '{hostname}' is local"
    if hostname.endswith(BLOCKED_SUFFIXES):
        return False, f"host '{hostname}' is on a local network"

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return True, None

    if (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
        or address.is_multicast
    ):
        return False, f"address {address} is not publicly routable"
    return True, None


def is_url_safe_to_capture(url: str) -> bool:
    allowed, _ = check_capture_url(url)
    return allowed
