"""Webhook URL validation (SSRF guard).

Registration and update run validate_url() synchronously: the endpoint must
be https and its literal host must be a public address or a hostname.
ensure_public_host() repeats the address check against the resolved IPs
right before an attempt, for deployments that enable delivery-time
resolution.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
from collections.abc import Awaitable, Callable
from urllib.parse import urlsplit

import validators

from courier.exceptions import PrivateAddressError, SchemeError, ValidationError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

# Resolves a hostname to the list of IP address strings it points at
Resolver = Callable[[str], Awaitable[list[str]]]

_LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain"}

# Carrier-grade NAT range; not flagged by is_private
_SHARED_ADDRESS_SPACE = ipaddress.ip_network("100.64.0.0/10")


def parse_ip(host: str) -> IPAddress | None:
    """Parse a URL host as an IP address, or return None for hostnames.

    Integer-form IPv4 hosts ("2130706433") are normalised the way
    browsers and HTTP clients interpret them.
    """
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    if host.isdigit():
        try:
            return ipaddress.IPv4Address(int(host))
        except ipaddress.AddressValueError:
            return None
    return None


def is_forbidden_address(ip: IPAddress) -> bool:
    """Check whether an address must never receive webhook traffic.

    Covers loopback, private, link-local, unspecified, reserved and
    multicast addresses plus the shared (carrier-grade NAT) range.
    """
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    if isinstance(ip, ipaddress.IPv4Address) and ip in _SHARED_ADDRESS_SPACE:
        return True
    return (
        ip.is_loopback
        or ip.is_private
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_reserved
        or ip.is_multicast
    )


def _is_local_hostname(host: str) -> bool:
    return host in _LOCAL_HOSTNAMES or host.endswith(".localhost")


def validate_url(url: str) -> str:
    """Validate a webhook endpoint URL.

    Args:
        url: Candidate endpoint.

    Returns:
        The URL with surrounding whitespace removed; store this value.

    Raises:
        ValidationError: If the URL cannot be parsed or is malformed.
        SchemeError: If the scheme is not https.
        PrivateAddressError: If the host is local or private.
    """
    if not isinstance(url, str):
        raise ValidationError("url", "URL must be a string")

    url = url.strip()
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError as e:
        raise ValidationError("url", "Invalid URL format") from e

    if not parts.scheme or not parts.netloc:
        raise ValidationError("url", "Invalid URL format")

    if parts.scheme != "https":
        raise SchemeError(parts.scheme)

    if not hostname:
        raise ValidationError("url", "Invalid URL format")

    host = hostname.rstrip(".").lower()
    if _is_local_hostname(host):
        raise PrivateAddressError(host)

    ip = parse_ip(host)
    if ip is not None and is_forbidden_address(ip):
        raise PrivateAddressError(host)

    if not validators.url(url):
        raise ValidationError("url", "Invalid URL format")

    return url


async def default_resolver(host: str) -> list[str]:
    """Resolve a hostname with the event loop's non-blocking getaddrinfo."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [str(info[4][0]) for info in infos]


async def ensure_public_host(host: str, resolver: Resolver = default_resolver) -> None:
    """Verify a host does not currently resolve to a forbidden address.

    Args:
        host: Hostname or literal IP from the webhook URL.
        resolver: Async hostname resolver.

    Raises:
        PrivateAddressError: If the host or any resolved address is forbidden.
        OSError: If resolution fails.
    """
    host = host.rstrip(".").lower()
    if _is_local_hostname(host):
        raise PrivateAddressError(host)

    ip = parse_ip(host)
    addresses = [ip] if ip is not None else [parse_ip(a) for a in await resolver(host)]

    for address in addresses:
        if address is None or is_forbidden_address(address):
            raise PrivateAddressError(host)
