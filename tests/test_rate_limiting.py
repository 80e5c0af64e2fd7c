"""
Tests for sliding-window rate limiting.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import redis
from fastapi.testclient import TestClient

from middleware.rate_limiting import (
    SLIDING_WINDOW_SCRIPT,
    MemoryWindowStore,
    RedisWindowStore,
    SlidingWindowRateLimiter,
    WindowHit,
    build_window_store,
    resolve_identity,
)


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def limiter():
    return SlidingWindowRateLimiter(window_ms=60000, max_requests=3)


class TestSlidingWindowRateLimiter:

    def test_rejects_fourth_request_in_window(self, limiter):
        for _ in range(3):
            assert limiter.check("ip:1.2.3.4", now_ms=0).allowed

        decision = limiter.check("ip:1.2.3.4", now_ms=0)
        assert not decision.allowed
        assert decision.retry_after == 60
        assert decision.remaining == 0

    def test_allows_again_after_window(self, limiter):
        for _ in range(3):
            limiter.check("user:u1", now_ms=0)
        assert not limiter.check("user:u1", now_ms=0).allowed

        assert limiter.check("user:u1", now_ms=61000).allowed

    def test_timestamp_exactly_one_window_old_is_pruned(self, limiter):
        for _ in range(3):
            limiter.check("user:u1", now_ms=0)
        assert limiter.check("user:u1", now_ms=60000).allowed

    def test_retry_after_counts_from_oldest_entry(self, limiter):
        limiter.check("user:u1", now_ms=0)
        limiter.check("user:u1", now_ms=10000)
        limiter.check("user:u1", now_ms=20000)

        decision = limiter.check("user:u1", now_ms=30500)
        assert not decision.allowed
        assert decision.retry_after == 30

    def test_rejected_requests_are_not_recorded(self, limiter):
        for _ in range(3):
            limiter.check("user:u1", now_ms=0)
        for _ in range(5):
            limiter.check("user:u1", now_ms=1000)

        assert len(limiter.store.get("user:u1")) == 3

    def test_identities_are_independent(self, limiter):
        for _ in range(3):
            limiter.check("user:a", now_ms=0)
        assert limiter.check("user:b", now_ms=0).allowed

    def test_remaining_counts_down(self, limiter):
        remaining = [limiter.check("user:u1", now_ms=0).remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

    def test_window_never_exceeds_limit(self, limiter):
        for t in range(0, 120000, 500):
            limiter.check("user:u1", now_ms=t)
            window = limiter.store.get("user:u1")
            assert len(window) <= 3
            assert all(t - ts < 60000 for ts in window)

    @pytest.mark.parametrize("window_ms,max_requests", [(0, 10), (1000, 0)])
    def test_rejects_invalid_configuration(self, window_ms, max_requests):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(window_ms=window_ms, max_requests=max_requests)


class TestMemoryWindowStore:

    def test_empty_window_removes_identity(self):
        store = MemoryWindowStore()
        store.put("user:u1", [1.0])
        store.put("user:u1", [])
        assert len(store) == 0
        assert store.get("user:u1") == []

    def test_get_returns_copy(self):
        store = MemoryWindowStore()
        store.put("user:u1", [1.0])
        store.get("user:u1").append(2.0)
        assert store.get("user:u1") == [1.0]


class TestRedisWindowStore:

    def _store(self, script_result=None, window_ms=60000):
        client = MagicMock()
        script = client.register_script.return_value
        script.return_value = script_result
        return RedisWindowStore(client, window_ms=window_ms), client, script

    def test_registers_sliding_window_script(self):
        _, client, _ = self._store()
        client.register_script.assert_called_once_with(SLIDING_WINDOW_SCRIPT)

    def test_hit_runs_script_against_identity_key(self):
        store, _, script = self._store(script_result=[1, 1, "1000"])

        hit = store.hit("user:u1", 1000, 60000, 3)

        assert hit == WindowHit(allowed=True, count=1, oldest=1000.0)
        kwargs = script.call_args.kwargs
        assert kwargs["keys"] == ["rate_limit:user:u1"]
        assert kwargs["args"][:3] == [1000, 60000, 3]

    def test_hit_members_are_unique_within_a_millisecond(self):
        store, _, script = self._store(script_result=[1, 1, "1000"])

        store.hit("user:u1", 1000, 60000, 3)
        store.hit("user:u1", 1000, 60000, 3)

        first, second = (call.kwargs["args"][3] for call in script.call_args_list)
        assert first != second

    def test_rejected_hit_reports_oldest_entry(self):
        store, _, _ = self._store(script_result=[0, 3, "500"])
        assert store.hit("ip:1.1.1.1", 2000, 60000, 3) == WindowHit(allowed=False, count=3, oldest=500.0)

    def test_limiter_uses_script_result_for_retry_after(self):
        store, _, _ = self._store(script_result=[0, 3, "0"])
        decision = SlidingWindowRateLimiter(store=store, window_ms=60000, max_requests=3).check("user:u1", now_ms=30500)
        assert not decision.allowed
        assert decision.retry_after == 30

    def test_get_reads_scores(self):
        store, client, _ = self._store()
        client.zrange.return_value = [("100:a", 100.0), ("200:b", 200.5)]

        assert store.get("ip:1.1.1.1") == [100.0, 200.5]
        client.zrange.assert_called_once_with("rate_limit:ip:1.1.1.1", 0, -1, withscores=True)

    def test_is_blocking(self):
        store, _, _ = self._store()
        assert store.blocking
        assert not MemoryWindowStore.blocking


class TestBuildWindowStore:

    def test_no_url_uses_memory(self):
        assert isinstance(build_window_store(None), MemoryWindowStore)

    def test_unreachable_redis_falls_back_to_memory(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("middleware.rate_limiting.redis.Redis.from_url", return_value=client):
            assert isinstance(build_window_store("redis://localhost:6379/0"), MemoryWindowStore)

    def test_reachable_redis(self):
        client = MagicMock()
        with patch("middleware.rate_limiting.redis.Redis.from_url", return_value=client):
            store = build_window_store("redis://localhost:6379/0", window_ms=1000)
        assert isinstance(store, RedisWindowStore)
        assert store.window_ms == 1000


class TestResolveIdentity:

    def _request(self, user_id=None, host="10.0.0.1"):
        client = SimpleNamespace(host=host) if host else None
        return SimpleNamespace(state=SimpleNamespace(user_id=user_id), client=client)

    def test_prefers_user_id(self):
        assert resolve_identity(self._request(user_id="u1")) == "user:u1"

    def test_falls_back_to_address(self):
        assert resolve_identity(self._request()) == "ip:10.0.0.1"

    def test_unknown_address(self):
        assert resolve_identity(self._request(host=None)) == "ip:unknown"


class TestRateLimitMiddleware:

    def test_returns_429_with_retry_after(self, make_app):
        client = TestClient(make_app(rate_limit_max_requests=2))

        for _ in range(2):
            response = client.post("/api/certificates/verify", json={})
            assert response.status_code == 400

        response = client.post("/api/certificates/verify", json={})
        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Too many requests"
        assert 0 < body["retryAfter"] <= 60
        assert response.headers["Retry-After"] == str(body["retryAfter"])

    def test_rejects_before_validation(self, make_app):
        client = TestClient(make_app(rate_limit_max_requests=1))
        client.post("/api/certificates/verify", json={"certificateId": "CERT-1"})

        response = client.post("/api/certificates/verify", json={})
        assert response.status_code == 429

    def test_authenticated_users_have_own_buckets(self, make_app):
        client = TestClient(make_app(rate_limit_max_requests=1))

        assert client.post("/api/certificates/verify", json={"certificateId": "x"},
                           headers=auth_headers("student-token")).status_code == 200
        assert client.post("/api/certificates/verify", json={"certificateId": "x"},
                           headers=auth_headers("admin-token")).status_code == 200
        assert client.post("/api/certificates/verify", json={"certificateId": "x"},
                           headers=auth_headers("student-token")).status_code == 429

    def test_rate_limit_headers_on_success(self, make_app):
        client = TestClient(make_app(rate_limit_max_requests=5))
        response = client.post("/api/certificates/verify", json={"certificateId": "x"})
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_health_is_exempt(self, make_app):
        client = TestClient(make_app(rate_limit_max_requests=1))
        for _ in range(3):
            assert client.get("/health").status_code == 200

    def test_store_failure_fails_open(self, make_app):
        app = make_app()
        app.state.rate_limiter.store = MagicMock()
        app.state.rate_limiter.store.hit.side_effect = redis.ConnectionError("down")
        client = TestClient(app)

        response = client.post("/api/certificates/verify", json={"certificateId": "x"})
        assert response.status_code == 200

    def test_redis_backed_check_runs_through_middleware(self, make_app):
        client = MagicMock()
        client.register_script.return_value.return_value = [1, 1, "0"]
        app = make_app(rate_limit_max_requests=5)
        app.state.rate_limiter.store = RedisWindowStore(client)

        response = TestClient(app).post("/api/certificates/verify", json={"certificateId": "x"})

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "4"
        client.register_script.return_value.assert_called_once()
