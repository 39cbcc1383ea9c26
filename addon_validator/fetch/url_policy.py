"""
Public HTTPS URL policy for fetched documents.
"""

import ipaddress
from urllib.parse import urlparse

from ..exceptions import URLPolicyError


def is_blocked_hostname(hostname: str) -> bool:
    return hostname == 'localhost' or hostname.endswith('.local')


def is_blocked_ip(address) -> bool:
    """True for private, loopback, link-local, multicast and unspecified addresses."""
    return (address.is_private or address.is_loopback or address.is_link_local
            or address.is_multicast or address.is_unspecified)


def validate_public_https_url(raw_url: str) -> str:
    """
    Check that a URL is a public HTTPS target.

    Args:
        raw_url: URL to check

    Returns:
        The URL unchanged

    Raises:
        URLPolicyError: If the scheme is not https, the hostname is missing,
            or the host is local or a non-public IP literal
    """
    try:
        parsed = urlparse(raw_url)
        hostname = parsed.hostname
    except ValueError as e:
        raise URLPolicyError(f"invalid URL: {e}", url=raw_url)

    if parsed.scheme != 'https':
        raise URLPolicyError(f"unsupported URL scheme: {parsed.scheme or '(none)'}", url=raw_url)

    hostname = (hostname or '').strip().lower()
    if not hostname:
        raise URLPolicyError("URL must include a hostname", url=raw_url)

    if is_blocked_hostname(hostname):
        raise URLPolicyError(f"blocked URL host: {hostname}", url=raw_url)

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return raw_url

    if is_blocked_ip(address):
        raise URLPolicyError(f"blocked URL IP: {address}", url=raw_url)
    return raw_url
