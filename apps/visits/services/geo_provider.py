"""
Geo resolver abstraction for dependency injection.

GEO_PROVIDER=null or ENV=test or PYTEST_CURRENT_TEST => NullGeoResolver (every lookup misses).
Otherwise MaxMind GeoLite2-City via geoip2, reader opened lazily on first lookup.
If the database file is missing, lookups miss and a warning is logged once.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import geoip2.database
import geoip2.errors

from apps.visits.config import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    """Resolved location for an IP. Any field may be None when the database lacks it."""

    country: str | None = None
    city: str | None = None
    region: str | None = None
    timezone: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@runtime_checkable
class GeoResolver(Protocol):
    """Protocol for IP geolocation. Can be swapped for testing."""

    def lookup(self, ip: str) -> GeoLocation | None:
        """Return GeoLocation for ip, or None when there is no match."""
        ...


class NullGeoResolver:
    """Resolver that never matches."""

    def lookup(self, ip: str) -> GeoLocation | None:
        return None


class StaticGeoResolver:
    """Resolver backed by a dict of ip -> GeoLocation. Deterministic, for tests and local dev."""

    def __init__(self, table: dict[str, GeoLocation] | None = None) -> None:
        self._table = dict(table or {})

    def lookup(self, ip: str) -> GeoLocation | None:
        return self._table.get(ip)


class MaxMindGeoResolver:
    """
    MaxMind GeoLite2-City resolver. Opens the reader on first lookup (lazy).
    No import-time file access.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._reader = None
        self._unavailable = False
        self._lock = threading.Lock()

    def _get_reader(self):
        if self._reader is not None or self._unavailable:
            return self._reader
        with self._lock:
            if self._reader is None and not self._unavailable:
                if not os.path.exists(self._db_path):
                    logger.warning("GeoIP database not found at %s; geo lookups disabled", self._db_path)
                    self._unavailable = True
                    return None
                self._reader = geoip2.database.Reader(self._db_path)
        return self._reader

    def lookup(self, ip: str) -> GeoLocation | None:
        reader = self._get_reader()
        if reader is None:
            return None
        try:
            resp = reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return None
        return GeoLocation(
            country=resp.country.iso_code,
            city=resp.city.name,
            region=resp.subdivisions.most_specific.iso_code,
            timezone=resp.location.time_zone,
            latitude=resp.location.latitude,
            longitude=resp.location.longitude,
        )


_resolver: GeoResolver | None = None


def _use_null_resolver() -> bool:
    """
    True if lookups should never match (no database file access).
    GEO_PROVIDER=null => always null. GEO_PROVIDER=maxmind => always MaxMind.
    Otherwise: ENV=test or PYTEST_CURRENT_TEST => null.
    """
    explicit = (os.getenv("GEO_PROVIDER") or config.GEO_PROVIDER or "").lower().strip()
    if explicit == "null":
        return True
    if explicit == "maxmind":
        return False
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "").lower()
    if env == "test":
        return True
    if os.getenv("PYTEST_CURRENT_TEST"):
        return True
    return False


def get_geo_resolver(*, force_refresh: bool = False) -> GeoResolver:
    """
    Return the active geo resolver. Lazy-initialized.

    force_refresh: if True, re-resolve resolver (for tests).
    """
    global _resolver
    if _resolver is not None and not force_refresh:
        return _resolver
    if _use_null_resolver():
        _resolver = NullGeoResolver()
    else:
        _resolver = MaxMindGeoResolver(os.getenv("GEOIP_DB_PATH", config.GEOIP_DB_PATH))
    return _resolver
