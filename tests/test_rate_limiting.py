"""
Sliding window limiter and the endpoint decorator.
"""
import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from config import settings
from middleware.rate_limiting import SlidingWindowLimiter, limit, limiter, parse_rate

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.parametrize("rate, expected", [
    ("10/minute", (10, 60)),
    ("5/second", (5, 1)),
    ("100/hour", (100, 3600)),
    ("1/Day", (1, 86400)),
])
def test_parse_rate(rate, expected):
    assert parse_rate(rate) == expected


@pytest.mark.parametrize("rate", ["ten/minute", "10/fortnight", "10"])
def test_parse_rate_rejects_garbage(rate):
    with pytest.raises(ValueError):
        parse_rate(rate)


def test_window_allows_up_to_limit_then_blocks():
    clock = FakeClock()
    window = SlidingWindowLimiter(clock=clock)

    assert [window.hit("k", 3, 60)[0] for _ in range(3)] == [True, True, True]
    allowed, retry_after = window.hit("k", 3, 60)
    assert allowed is False
    assert 1 <= retry_after <= 61


def test_window_slides():
    clock = FakeClock()
    window = SlidingWindowLimiter(clock=clock)
    window.hit("k", 1, 60)

    clock.now += 30
    assert window.hit("k", 1, 60)[0] is False
    clock.now += 31
    assert window.hit("k", 1, 60)[0] is True


def test_keys_are_independent():
    window = SlidingWindowLimiter(clock=FakeClock())
    window.hit("a", 1, 60)
    assert window.hit("b", 1, 60)[0] is True


def test_idle_keys_are_forgotten():
    clock = FakeClock()
    window = SlidingWindowLimiter(clock=clock)
    for index in range(50):
        window.hit(f"ip:10.0.0.{index}", 5, 60)
    assert len(window) == 50

    clock.now += 61
    window.hit("ip:10.0.1.1", 5, 60)

    assert len(window) == 1


def test_keys_inside_a_longer_window_survive_sweep():
    clock = FakeClock()
    window = SlidingWindowLimiter(clock=clock)
    window.hit("hourly", 1, 3600)

    clock.now += 120
    window.hit("other", 1, 60)

    assert len(window) == 2
    assert window.hit("hourly", 1, 3600)[0] is False


@pytest.fixture
def limited_app(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    limiter.reset()

    app = FastAPI()

    @app.get("/ping")
    @limit("2/minute")
    async def ping(request: Request):
        return {"ok": True}

    yield TestClient(app)
    limiter.reset()


def test_decorator_returns_429_with_retry_after(limited_app):
    assert limited_app.get("/ping").status_code == 200
    assert limited_app.get("/ping").status_code == 200

    blocked = limited_app.get("/ping")
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) >= 1


def test_decorator_keys_on_forwarded_client(limited_app):
    for _ in range(2):
        limited_app.get("/ping", headers={"X-Forwarded-For": "203.0.113.7"})

    assert limited_app.get("/ping", headers={"X-Forwarded-For": "203.0.113.7"}).status_code == 429
    assert limited_app.get("/ping", headers={"X-Forwarded-For": "198.51.100.2"}).status_code == 200


def test_decorator_is_inert_when_disabled(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    limiter.reset()
    app = FastAPI()

    @app.get("/ping")
    @limit("1/minute")
    async def ping(request: Request):
        return {"ok": True}

    client = TestClient(app)
    assert [client.get("/ping").status_code for _ in range(3)] == [200, 200, 200]
