"""
Tests for the sliding-window limiter and its before_request hook.
"""
import pytest

from api import create_app
from utils.ratelimit import SlidingWindowLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSlidingWindowLimiter:
    def test_limit_within_window(self):
        clock = FakeClock()
        limiter = SlidingWindowLimiter(clock=clock)
        assert all(limiter.allow("k", limit=3, per_seconds=60) for _ in range(3))
        assert limiter.allow("k", limit=3, per_seconds=60) is False

    def test_window_slides(self):
        clock = FakeClock()
        limiter = SlidingWindowLimiter(clock=clock)
        limiter.allow("k", limit=2, per_seconds=60)
        clock.now += 30
        limiter.allow("k", limit=2, per_seconds=60)
        assert limiter.allow("k", limit=2, per_seconds=60) is False

        # the first hit leaves the window, the second is still inside
        clock.now += 30
        assert limiter.allow("k", limit=2, per_seconds=60) is True
        assert limiter.allow("k", limit=2, per_seconds=60) is False

    def test_keys_are_independent(self):
        limiter = SlidingWindowLimiter(clock=FakeClock())
        assert limiter.allow("a", limit=1, per_seconds=60)
        assert limiter.allow("b", limit=1, per_seconds=60)
        assert not limiter.allow("a", limit=1, per_seconds=60)

    def test_retry_after(self):
        clock = FakeClock()
        limiter = SlidingWindowLimiter(clock=clock)
        assert limiter.retry_after("k", per_seconds=60) == 0
        limiter.allow("k", limit=1, per_seconds=60)
        clock.now += 20
        assert limiter.retry_after("k", per_seconds=60) == 41

    def test_expired_keys_are_dropped(self):
        clock = FakeClock()
        limiter = SlidingWindowLimiter(clock=clock)
        for i in range(1000):
            limiter.allow(f"api:10.0.{i // 256}.{i % 256}", limit=5, per_seconds=60)
        assert len(limiter) == 1000

        clock.now += 61
        limiter.allow("api:192.168.0.1", limit=5, per_seconds=60)
        assert len(limiter) == 1

    def test_rejected_hit_counts_against_no_bucket(self):
        limiter = SlidingWindowLimiter(clock=FakeClock())
        buckets = [("api:ip", 5), ("auth:ip", 1)]
        assert limiter.acquire(buckets, per_seconds=60) is None
        for _ in range(4):
            assert limiter.acquire(buckets, per_seconds=60) == "auth:ip"
        assert all(limiter.allow("api:ip", limit=5, per_seconds=60) for _ in range(4))

    def test_reset(self):
        limiter = SlidingWindowLimiter(clock=FakeClock())
        limiter.allow("k", limit=1, per_seconds=60)
        limiter.reset()
        assert limiter.allow("k", limit=1, per_seconds=60)


@pytest.fixture
def limited_app(tmp_path):
    app = create_app(
        "testing",
        {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'rl.db'}",
            "RATELIMIT_ENABLED": True,
            "RATELIMIT_AUTH": 2,
            "RATELIMIT_DEFAULT": 5,
        },
    )
    yield app
    app.extensions["storage"].dispose()


def test_auth_bucket_returns_429(limited_app):
    client = limited_app.test_client()
    body = {"email": "nobody@b.com", "password": "Abc12345!"}
    assert client.post("/api/v1/auth/login", json=body).status_code == 401
    assert client.post("/api/v1/auth/login", json=body).status_code == 401

    resp = client.post("/api/v1/auth/login", json=body)
    assert resp.status_code == 429
    assert resp.get_json()["error"] == "TOO_MANY_REQUESTS"
    assert int(resp.headers["Retry-After"]) > 0

    # other endpoints still have room in the general bucket
    assert client.get("/api/v1/health").status_code == 200


def test_general_bucket_returns_429(limited_app):
    client = limited_app.test_client()
    for _ in range(5):
        assert client.get("/api/v1/health").status_code == 200
    assert client.get("/api/v1/health").status_code == 429


def test_root_is_not_limited(limited_app):
    client = limited_app.test_client()
    for _ in range(10):
        assert client.get("/").status_code == 200


def test_disabled_in_testing_config(client):
    for _ in range(30):
        assert client.post("/api/v1/auth/login", json={}).status_code == 400


def test_auth_rejections_leave_general_budget(tmp_path):
    app = create_app(
        "testing",
        {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'rl2.db'}",
            "RATELIMIT_ENABLED": True,
            "RATELIMIT_AUTH": 1,
            "RATELIMIT_DEFAULT": 5,
        },
    )
    client = app.test_client()
    body = {"email": "nobody@b.com", "password": "Abc12345!"}
    codes = [client.post("/api/v1/auth/login", json=body).status_code for _ in range(5)]
    assert codes == [401, 429, 429, 429, 429]

    assert client.get("/api/v1/items").status_code == 200
    app.extensions["storage"].dispose()
