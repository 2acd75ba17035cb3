import asyncio

import pytest
import uvicorn
from fastapi.testclient import TestClient

from hospital_booking.main import create_app
from hospital_booking.core.database import get_db
from hospital_booking.core.middleware import clean_query_string, sanitize_value
from hospital_booking.core.rate_limit import (
    MemoryRateLimitStore, RateLimiter, RedisRateLimitStore, build_rate_limiter
)
from hospital_booking.server import FailFastServer, run

from .conftest import HOSPITAL, override_get_db


class TestSanitize:

    def test_drops_operator_keys(self):
        payload = {"email": {"$gt": ""}, "$where": "1", "a.b": 1, "name": "ok"}
        assert sanitize_value(payload) == {"email": {}, "name": "ok"}

    def test_escapes_markup(self):
        assert sanitize_value(["<script>alert(1)</script>", 5]) == [
            "&lt;script&gt;alert(1)&lt;/script&gt;", 5
        ]

    def test_query_keeps_last_duplicate(self):
        assert clean_query_string(b"sort=name&sort=tel&page=2") == b"sort=tel&page=2"

    def test_query_drops_operator_keys(self):
        assert clean_query_string(b"%24ne=1&name=x") == b"name=x"

    def test_markup_stored_escaped(self, client, admin_headers):
        response = client.post(
            "/api/v1/hospitals",
            json={**HOSPITAL, "name": "<b>Happy</b>"},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["data"]["name"] == "&lt;b&gt;Happy&lt;/b&gt;"

    def test_length_limit_applies_to_escaped_text(self, client, admin_headers):
        # 48 characters raw, 54 once the brackets are escaped
        name = "<" + "x" * 46 + ">"

        response = client.post(
            "/api/v1/hospitals",
            json={**HOSPITAL, "name": name},
            headers=admin_headers
        )
        assert response.status_code == 400

        response = client.post(
            "/api/v1/hospitals",
            json={**HOSPITAL, "name": "<" + "x" * 42 + ">"},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert len(response.json()["data"]["name"]) == 50

    def test_malformed_json_reported(self, client, admin_headers):
        response = client.post(
            "/api/v1/hospitals",
            content=b"{not json",
            headers={**admin_headers, "Content-Type": "application/json"}
        )
        assert response.status_code == 400


class TestResponseHeaders:

    def test_security_headers(self, client, test_db):
        response = client.get("/api/v1/hospitals")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert "X-Process-Time" in response.headers

    def test_cors_allows_any_origin(self, client, test_db):
        response = client.get("/api/v1/hospitals", headers={"Origin": "http://example.org"})
        assert response.headers["access-control-allow-origin"] == "*"

    def test_unknown_route_uses_error_envelope(self, client, test_db):
        response = client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_api_docs_served(self, client, test_db):
        assert client.get("/api-docs").status_code == 200
        schema = client.get("/api/v1/openapi.json").json()
        assert "/api/v1/hospitals" in schema["paths"]


class TestRateLimit:

    def test_101st_request_throttled(self, client, test_db):
        for _ in range(100):
            response = client.get("/api/v1/hospitals")
            assert response.status_code == 200

        response = client.get("/api/v1/hospitals")
        assert response.status_code == 429
        assert response.json()["success"] is False
        assert int(response.headers["Retry-After"]) > 0

    def test_remaining_header(self, client, test_db):
        response = client.get("/api/v1/hospitals")
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"

    def test_health_not_counted(self, test_db, settings):
        limiter = RateLimiter(MemoryRateLimitStore(), max_requests=1, window_seconds=600)
        app = create_app(settings, rate_limiter=limiter)
        app.dependency_overrides[get_db] = override_get_db

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/health").status_code == 200
            assert client.get("/api/v1/hospitals").status_code == 200
            assert client.get("/api/v1/hospitals").status_code == 429

    def test_window_resets(self):
        now = [0.0]
        limiter = RateLimiter(
            MemoryRateLimitStore(clock=lambda: now[0]), max_requests=2, window_seconds=600
        )

        def hit(client_key):
            return asyncio.run(limiter.hit(client_key))

        assert hit("1.2.3.4").allowed
        assert hit("1.2.3.4").allowed
        assert not hit("1.2.3.4").allowed
        # Other clients have their own counter
        assert hit("5.6.7.8").allowed

        now[0] = 600.0
        result = hit("1.2.3.4")
        assert result.allowed
        assert result.remaining == 1

    def test_expired_windows_are_dropped(self):
        now = [0.0]
        store = MemoryRateLimitStore(clock=lambda: now[0])

        async def hit_many():
            for n in range(1000):
                await store.hit(f"10.0.{n // 256}.{n % 256}", 600)

        asyncio.run(hit_many())
        assert len(store) == 1000

        now[0] = 600.0
        asyncio.run(store.hit("1.2.3.4", 600))
        assert len(store) == 1

    def test_recent_windows_survive_sweep(self):
        now = [0.0]
        store = MemoryRateLimitStore(clock=lambda: now[0])

        asyncio.run(store.hit("old", 600))
        now[0] = 300.0
        asyncio.run(store.hit("recent", 600))
        now[0] = 650.0
        count, _ = asyncio.run(store.hit("recent", 600))

        assert count == 2
        assert len(store) == 1

    def test_redis_store(self):
        class FakeRedis:
            def __init__(self):
                self.counts = {}
                self.ttls = {}

            async def incr(self, key):
                self.counts[key] = self.counts.get(key, 0) + 1
                return self.counts[key]

            async def expire(self, key, seconds):
                self.ttls[key] = seconds

            async def ttl(self, key):
                return self.ttls.get(key, -1)

        fake = FakeRedis()
        limiter = RateLimiter(RedisRateLimitStore(fake), max_requests=1, window_seconds=600)

        first = asyncio.run(limiter.hit("1.2.3.4"))
        assert first.allowed
        assert first.reset_in == 600
        assert not asyncio.run(limiter.hit("1.2.3.4")).allowed
        assert fake.counts == {"rate_limit:1.2.3.4": 2}

    def test_redis_storage_url(self, settings):
        limiter = build_rate_limiter(
            settings.model_copy(update={"RATE_LIMIT_STORAGE_URL": "redis://localhost:6379/0"})
        )
        assert isinstance(limiter.store, RedisRateLimitStore)

    def test_unsupported_storage(self, settings):
        with pytest.raises(ValueError):
            build_rate_limiter(settings.model_copy(update={"RATE_LIMIT_STORAGE_URL": "memcached://x"}))


class TestFailFast:

    def test_loop_exception_stops_server(self):
        server = FailFastServer(uvicorn.Config(create_app()))

        server.handle_loop_exception(None, {"exception": RuntimeError("boom")})

        assert server.should_exit is True
        assert server.exit_code == 1

    def test_startup_failure_exits_with_one(self, monkeypatch):
        # uvicorn returns without starting when the lifespan startup fails
        monkeypatch.setattr(FailFastServer, "run", lambda self, sockets=None: None)

        with pytest.raises(SystemExit) as exc_info:
            run()
        assert exc_info.value.code == 1

    def test_uvicorn_exit_status_normalized(self, monkeypatch):
        def failed_run(self, sockets=None):
            raise SystemExit(3)

        monkeypatch.setattr(FailFastServer, "run", failed_run)

        with pytest.raises(SystemExit) as exc_info:
            run()
        assert exc_info.value.code == 1

    def test_clean_shutdown_exits_with_zero(self, monkeypatch):
        def clean_run(self, sockets=None):
            self.started = True

        monkeypatch.setattr(FailFastServer, "run", clean_run)

        with pytest.raises(SystemExit) as exc_info:
            run()
        assert exc_info.value.code == 0

