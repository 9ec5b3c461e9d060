import random

import pytest

from market_data import MarketDataService
from rate_limiter import RateLimiter
from tests.stubs import FakeClock, StubProvider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_service(clock):
    def _make(primary=None, secondary=None, live=True, **kwargs):
        return MarketDataService(
            primary=primary or StubProvider("yahoo", error=LookupError("down")),
            secondary=secondary or StubProvider("nse", error=LookupError("down")),
            limiter=RateLimiter(min_delay=0, name="test"),
            live=live,
            rng=random.Random(42),
            clock=clock,
            **kwargs,
        )
    return _make


@pytest.fixture
def client(monkeypatch, make_service):
    import app as app_module

    monkeypatch.setattr(app_module, "service", make_service(live=False))
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c
