"""Tests for geo resolver selection and the MaxMind resolver's missing-file behavior."""

from apps.visits.services.geo_provider import (
    GeoLocation,
    GeoResolver,
    MaxMindGeoResolver,
    NullGeoResolver,
    StaticGeoResolver,
    get_geo_resolver,
)


def test_null_resolver_in_test_env() -> None:
    """ENV=test / GEO_PROVIDER=null => no database access."""
    assert isinstance(get_geo_resolver(force_refresh=True), NullGeoResolver)


def test_explicit_maxmind_provider(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GEO_PROVIDER", "maxmind")
    monkeypatch.setenv("GEOIP_DB_PATH", str(tmp_path / "missing.mmdb"))
    try:
        resolver = get_geo_resolver(force_refresh=True)
        assert isinstance(resolver, MaxMindGeoResolver)
    finally:
        monkeypatch.setenv("GEO_PROVIDER", "null")
        get_geo_resolver(force_refresh=True)


def test_maxmind_missing_database_misses_without_raising(tmp_path) -> None:
    resolver = MaxMindGeoResolver(str(tmp_path / "nope.mmdb"))
    assert resolver.lookup("8.8.8.8") is None
    assert resolver.lookup("1.1.1.1") is None


def test_static_resolver_lookup() -> None:
    loc = GeoLocation(country="FR", city="Paris")
    r = StaticGeoResolver({"192.0.2.1": loc})
    assert r.lookup("192.0.2.1") == loc
    assert r.lookup("192.0.2.2") is None


def test_resolvers_satisfy_protocol() -> None:
    for r in (NullGeoResolver(), StaticGeoResolver(), MaxMindGeoResolver("/nonexistent")):
        assert isinstance(r, GeoResolver)
