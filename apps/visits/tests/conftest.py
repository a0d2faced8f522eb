"""Pytest fixtures for visit API and service tests."""

import pytest

from apps.visits.services.client_context import ClientContext


def make_context(ip: str = "203.0.113.10", **kwargs) -> ClientContext:
    """ClientContext with test defaults; kwargs override any field."""
    return ClientContext(ip=ip, **kwargs)


class FakeClock:
    """Settable clock for TTLCache: advance with clock.t += seconds."""

    def __init__(self, t: float = 1000.0) -> None:
        self.t = t

    def __call__(self) -> float:
        return self.t


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from apps.visits.main import app

    with TestClient(app) as c:
        yield c
