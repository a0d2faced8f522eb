"""Client context extraction: visitor IP, geo, user agent and referrer from one request.

Never raises. Anything unresolvable degrades to sentinel values:
country/city/region "Unknown", timezone "UTC", referrer "direct".
"""

import ipaddress
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from apps.visits.config import config
from apps.visits.services.geo_provider import GeoResolver, get_geo_resolver

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
DEFAULT_TIMEZONE = "UTC"
DIRECT_REFERRER = "direct"
UNKNOWN_BROWSER = "Unknown Browser"
LOCAL_FALLBACK_IP = "127.0.0.1"
IPV4_MAPPED_PREFIX = "::ffff:"

# RFC 1918 and IPv6 unique-local ranges. ipaddress.is_private also covers documentation,
# link-local and reserved blocks, which are left alone.
PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(n) for n in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "fc00::/7")
)

# Probed in order before the connection address. cf-connecting-ip is set by Cloudflare.
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip", "x-client-ip")


@dataclass(frozen=True)
class ClientContext:
    """Normalized visitor context for one request."""

    ip: str
    country: str = UNKNOWN
    city: str = UNKNOWN
    region: str = UNKNOWN
    user_agent: str = UNKNOWN_BROWSER
    referrer: str = DIRECT_REFERRER
    timezone: str = DEFAULT_TIMEZONE
    coordinates: tuple[float, float] | None = None


# ---------------------------------------------------------------------------
# Address normalization strategies
# ---------------------------------------------------------------------------


@runtime_checkable
class AddressNormalizer(Protocol):
    """Policy applied to the resolved client IP before geo lookup and storage."""

    def normalize(self, ip: str) -> str:
        ...


class PassthroughNormalizer:
    """Production policy: keep the address as resolved."""

    def normalize(self, ip: str) -> str:
        return ip


class DevSubstituteNormalizer:
    """Development policy: loopback/private addresses become a fixed public IP so geo lookup
    still returns something. Unparseable addresses are left alone."""

    def __init__(self, public_ip: str = "8.8.8.8") -> None:
        self._public_ip = public_ip

    def normalize(self, ip: str) -> str:
        try:
            addr = ipaddress.ip_address(ip)
        except ValueError:
            return ip
        if addr.is_loopback or any(addr in net for net in PRIVATE_NETWORKS):
            return self._public_ip
        return ip


_normalizer: AddressNormalizer | None = None


def get_address_normalizer(*, force_refresh: bool = False) -> AddressNormalizer:
    """
    Return the active address normalizer. Lazy-initialized.
    ADDRESS_NORMALIZER=passthrough|dev_substitute wins; otherwise passthrough in production,
    dev_substitute elsewhere.
    """
    global _normalizer
    if _normalizer is not None and not force_refresh:
        return _normalizer
    explicit = (os.getenv("ADDRESS_NORMALIZER") or config.ADDRESS_NORMALIZER or "").lower().strip()
    if explicit == "passthrough" or (not explicit and config.is_production):
        _normalizer = PassthroughNormalizer()
    else:
        _normalizer = DevSubstituteNormalizer(os.getenv("DEV_FALLBACK_IP", config.DEV_FALLBACK_IP))
    return _normalizer


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def truncate(value: str | None, limit: int) -> str | None:
    """Cut value to at most limit characters. None stays None."""
    if value is None:
        return None
    return value[:limit]


def clean_ip(raw: str) -> str:
    """First entry of a comma-separated forwarding chain, IPv4-mapped IPv6 prefix stripped."""
    ip = raw.split(",")[0].strip()
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        ip = ip[len(IPV4_MAPPED_PREFIX):]
    return ip


def select_client_ip(headers: Mapping[str, str], remote_addr: str | None) -> str:
    """Pick the client IP: forwarding headers in priority order, then connection address."""
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in CLIENT_IP_HEADERS:
        value = lowered.get(name)
        if value and value.strip():
            ip = clean_ip(value)
            if ip:
                return ip
    if remote_addr and remote_addr.strip():
        return clean_ip(remote_addr)
    return LOCAL_FALLBACK_IP


def extract_client_context(
    headers: Mapping[str, str],
    remote_addr: str | None,
    *,
    geo_resolver: GeoResolver | None = None,
    normalizer: AddressNormalizer | None = None,
    max_length: int | None = None,
) -> ClientContext:
    """Build ClientContext from request headers and the connection address. Never raises."""
    limit = max_length or config.MAX_FIELD_LENGTH
    lowered = {k.lower(): v for k, v in headers.items()}

    ip = select_client_ip(lowered, remote_addr)
    try:
        ip = (normalizer or get_address_normalizer()).normalize(ip)
    except Exception as e:
        logger.warning("address normalizer failed for %s: %s", ip, e)

    geo = None
    try:
        geo = (geo_resolver or get_geo_resolver()).lookup(ip)
    except Exception as e:
        logger.warning("geo lookup failed for %s: %s", ip, e)

    user_agent = lowered.get("user-agent") or UNKNOWN_BROWSER
    referrer = lowered.get("referer") or lowered.get("referrer") or DIRECT_REFERRER

    coordinates = None
    if geo is not None and geo.latitude is not None and geo.longitude is not None:
        coordinates = (geo.latitude, geo.longitude)

    return ClientContext(
        ip=truncate(ip, 45),
        country=(geo.country if geo else None) or UNKNOWN,
        city=(geo.city if geo else None) or UNKNOWN,
        region=(geo.region if geo else None) or UNKNOWN,
        user_agent=truncate(user_agent, limit),
        referrer=truncate(referrer, limit),
        timezone=(geo.timezone if geo else None) or DEFAULT_TIMEZONE,
        coordinates=coordinates,
    )
