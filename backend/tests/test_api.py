"""
Inkwell Backend - API Endpoint Tests
======================================

What:  End-to-end tests for every route, through the full middleware chain.
How:   HTTPX AsyncClient + ASGITransport against an app wired to in-memory
       stores (see conftest.py).

What we test:
    ✅ Registration, login and the auth gate's three 401 messages
    ✅ Payment guard: Pending paid plans get 403 with paymentRequired
    ✅ Humanize truncation and quota reporting over HTTP
    ✅ Detection scores and source reporting
    ✅ Payment upgrades an account and unlocks processing
    ✅ Usage totals reflect processing calls
    ✅ Best-effort accounting: a dead ledger never fails a request
    ✅ Error envelope (detail hidden in production), unknown routes, rate limiting
"""

import random

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import create_app
from app.repositories.base import Stores
from app.repositories.memory import build_memory_stores
from app.security import create_access_token
from app.services.detector import LocalHeuristicDetector, ScoringDetector
from app.services.humanizer import RuleBasedHumanizer


class TestOpenEndpoints:

    @pytest.mark.asyncio
    async def test_root_banner(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Inkwell API is running"
        assert body["environment"] == "test"

    @pytest.mark.asyncio
    async def test_health_with_memory_stores(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "not_used"
        assert body["store_backend"] == "memory"

    @pytest.mark.asyncio
    async def test_echo(self, test_client):
        response = await test_client.post("/echo_text", json={"input_text": "hello"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "result": "hello"}

    @pytest.mark.asyncio
    async def test_echo_requires_input(self, test_client):
        response = await test_client.post("/echo_text", json={})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "No input text provided"

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/no/such/thing")
        assert response.status_code == 404
        assert response.json()["message"] == "API endpoint not found"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_malformed_body(self, test_client):
        response = await test_client.post(
            "/echo_text", content="not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request body"


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register(self, test_client):
        response = await test_client.post(
            "/api/auth/register", json={"username": "alice", "password": "pw"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        assert body["token"]
        user = body["user"]
        assert user["plan"] == "Free"
        assert user["paymentStatus"] == "Paid"
        assert user["wordsUsed"] == 0
        assert "joinedDate" in user
        assert "password" not in user and "passwordHash" not in user

    @pytest.mark.asyncio
    async def test_register_duplicate(self, test_client, register_account):
        await register_account("alice")
        response = await test_client.post(
            "/api/auth/register", json={"username": "alice", "password": "pw"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Username already exists"

    @pytest.mark.asyncio
    async def test_register_invalid_plan(self, test_client):
        response = await test_client.post(
            "/api/auth/register", json={"username": "alice", "password": "pw", "plan": "Gold"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid plan"

    @pytest.mark.asyncio
    async def test_register_missing_fields(self, test_client):
        response = await test_client.post("/api/auth/register", json={"username": "alice"})
        assert response.status_code == 400
        assert response.json()["message"] == "Username and password are required"

    @pytest.mark.asyncio
    async def test_login(self, test_client, register_account):
        await register_account("alice", "correct-horse")
        response = await test_client.post(
            "/api/auth/login", json={"username": "alice", "password": "correct-horse"}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username, password", [("alice", "wrong"), ("nobody", "correct-horse")])
    async def test_login_failures_look_the_same(self, test_client, register_account, username, password):
        await register_account("alice", "correct-horse")
        response = await test_client.post(
            "/api/auth/login", json={"username": username, "password": password}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_me(self, test_client, register_account, headers_for):
        token, user = await register_account("alice")
        response = await test_client.get("/api/auth/me", headers=headers_for(token))
        assert response.status_code == 200
        body = response.json()["user"]
        assert body["id"] == user["id"]
        assert body["apiKeys"] == {"gptZero": "", "originality": ""}

    @pytest.mark.asyncio
    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, no token provided"

    @pytest.mark.asyncio
    async def test_me_with_bad_token(self, test_client, headers_for):
        response = await test_client.get("/api/auth/me", headers=headers_for("garbage"))
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, token invalid"

    @pytest.mark.asyncio
    async def test_me_for_deleted_account(self, test_client, test_settings, headers_for):
        token = create_access_token(999, "ghost", test_settings)
        response = await test_client.get("/api/auth/me", headers=headers_for(token))
        assert response.status_code == 401
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_update_api_keys(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        response = await test_client.put(
            "/api/auth/api-keys", json={"gptZero": "gz-key"}, headers=headers_for(token)
        )
        assert response.status_code == 200
        assert response.json()["apiKeys"] == {"gptZero": "gz-key", "originality": ""}

        response = await test_client.get("/api/auth/me", headers=headers_for(token))
        assert response.json()["user"]["apiKeys"]["gptZero"] == "gz-key"

    @pytest.mark.asyncio
    async def test_update_api_keys_rejects_non_ascii_key(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        response = await test_client.put(
            "/api/auth/api-keys", json={"gptZero": "clé-invalide"}, headers=headers_for(token)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid gptZero API key format"

        response = await test_client.get("/api/auth/me", headers=headers_for(token))
        assert response.json()["user"]["apiKeys"]["gptZero"] == ""


class TestProcessingEndpoints:

    @pytest.mark.asyncio
    async def test_pending_paid_plan_is_blocked(self, test_client, register_account, headers_for):
        token, _ = await register_account("bob", plan="Basic")
        for path, body in [("/humanize_text", {"input_text": "hi"}), ("/detect_ai", {"text": "hi"})]:
            response = await test_client.post(path, json=body, headers=headers_for(token))
            assert response.status_code == 403
            assert response.json()["paymentRequired"] is True
            assert response.json()["message"] == "Payment required to access this feature"

    @pytest.mark.asyncio
    async def test_processing_requires_token(self, test_client):
        response = await test_client.post("/humanize_text", json={"input_text": "hi"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_humanize_truncates_to_plan_limit(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        text = " ".join(["word"] * 600)

        response = await test_client.post(
            "/humanize_text", json={"input_text": text}, headers=headers_for(token)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["limitExceeded"] is True
        assert body["plan"] == {"name": "Free", "wordLimit": 500, "wordsUsed": 600}
        assert isinstance(body["processingTime"], int)

        me = await test_client.get("/api/auth/me", headers=headers_for(token))
        assert me.json()["user"]["wordsUsed"] == 600

    @pytest.mark.asyncio
    async def test_humanize_substitutes(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        response = await test_client.post(
            "/humanize_text",
            json={"input_text": "We utilize it"},
            headers=headers_for(token),
        )
        assert "utilize" not in response.json()["result"]
        assert response.json()["limitExceeded"] is False

    @pytest.mark.asyncio
    async def test_humanize_blank(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        response = await test_client.post(
            "/humanize_text", json={"input_text": "   "}, headers=headers_for(token)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No input text provided"

    @pytest.mark.asyncio
    async def test_detect(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        response = await test_client.post(
            "/detect_ai",
            json={"text": "Furthermore, the system works. Furthermore, the system fails."},
            headers=headers_for(token),
        )
        assert response.status_code == 200
        body = response.json()
        result = body["result"]
        assert 85.0 <= result["ai_score"] <= 100.0
        assert result["human_score"] == round(100 - result["ai_score"], 1)
        assert set(result["analysis"]) == {
            "formal_language",
            "repetitive_patterns",
            "sentence_uniformity",
        }
        assert body["source"] == "local"

    @pytest.mark.asyncio
    async def test_detect_blank(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        response = await test_client.post("/detect_ai", json={}, headers=headers_for(token))
        assert response.status_code == 400
        assert response.json()["message"] == "No text provided"


class TestPaymentAndUsage:

    @pytest.mark.asyncio
    async def test_payment_unlocks_processing(self, test_client, register_account, headers_for):
        token, _ = await register_account("bob", plan="Basic")
        headers = headers_for(token)

        response = await test_client.post(
            "/payment", json={"phone_number": "0712345678", "plan": "Premium"}, headers=headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        transaction = body["transaction"]
        assert len(transaction["transactionId"]) == 12
        assert transaction["transactionId"].startswith("TX")
        assert transaction["status"] == "Completed"
        assert body["plan"] == {"name": "Premium", "wordLimit": 8000, "price": 2000}

        me = await test_client.get("/api/auth/me", headers=headers)
        assert me.json()["user"]["plan"] == "Premium"
        assert me.json()["user"]["paymentStatus"] == "Paid"

        response = await test_client.post("/humanize_text", json={"input_text": "hi"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["plan"]["wordLimit"] == 8000

    @pytest.mark.asyncio
    async def test_payment_invalid_plan(self, test_client, register_account, headers_for, stores):
        token, _ = await register_account("bob")
        response = await test_client.post(
            "/payment", json={"phone_number": "0712345678", "plan": "Gold"}, headers=headers_for(token)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid plan"
        assert len(stores.transactions) == 0

    @pytest.mark.asyncio
    async def test_payment_missing_phone(self, test_client, register_account, headers_for):
        token, _ = await register_account("bob")
        response = await test_client.post("/payment", json={"plan": "Basic"}, headers=headers_for(token))
        assert response.status_code == 400
        assert response.json()["message"] == "Phone number and plan are required"

    @pytest.mark.asyncio
    async def test_usage_totals(self, test_client, register_account, headers_for):
        token, _ = await register_account("alice")
        headers = headers_for(token)
        await test_client.post("/humanize_text", json={"input_text": "one two three"}, headers=headers)
        await test_client.post("/detect_ai", json={"text": "Some text."}, headers=headers)
        await test_client.post("/detect_ai", json={"text": "More text."}, headers=headers)

        response = await test_client.get("/usage", headers=headers)

        assert response.status_code == 200
        usage = response.json()["usage"]
        assert usage["total"]["humanize"] == 1
        assert usage["total"]["detect"] == 2
        assert usage["total"]["inputChars"] == len("one two three") + 20
        assert [log["action"] for log in usage["logs"]] == ["detect_ai", "detect_ai", "humanize_text"]

    @pytest.mark.asyncio
    async def test_usage_is_per_account(self, test_client, register_account, headers_for):
        alice, _ = await register_account("alice")
        bob, _ = await register_account("bob")
        await test_client.post("/detect_ai", json={"text": "Some text."}, headers=headers_for(alice))

        response = await test_client.get("/usage", headers=headers_for(bob))

        assert response.json()["usage"]["total"]["detect"] == 0
        assert response.json()["usage"]["logs"] == []


def _client_for(app, **kwargs):
    return AsyncClient(transport=ASGITransport(app=app, **kwargs), base_url="http://test")


class TestDegradedAndLimits:

    @staticmethod
    async def _process_once(test_settings, stores):
        """Register, humanize, detect and read usage against a seeded app."""
        app = create_app(
            config=test_settings,
            stores=stores,
            humanizer=RuleBasedHumanizer(random.Random(1)),
            detector=ScoringDetector(local=LocalHeuristicDetector(random.Random(1))),
        )
        async with _client_for(app) as client:
            registered = await client.post(
                "/api/auth/register", json={"username": "alice", "password": "pw"}
            )
            headers = {"Authorization": f"Bearer {registered.json()['token']}"}

            humanized = await client.post(
                "/humanize_text", json={"input_text": "I utilize a b c"}, headers=headers
            )
            detected = await client.post(
                "/detect_ai", json={"text": "Furthermore, it is important."}, headers=headers
            )
            usage = await client.get("/usage", headers=headers)
        return humanized, detected, usage

    @pytest.mark.asyncio
    async def test_failing_ledger_never_fails_requests(self, test_settings, stores, failing_ledger):
        degraded = Stores(
            accounts=stores.accounts,
            ledger=failing_ledger,
            transactions=stores.transactions,
            backend="memory",
        )
        humanized, detected, usage = await self._process_once(test_settings, degraded)
        healthy_humanized, healthy_detected, _ = await self._process_once(
            test_settings, build_memory_stores()
        )

        assert humanized.status_code == healthy_humanized.status_code == 200
        assert detected.status_code == healthy_detected.status_code == 200

        # Only the timing may differ from a run with a working ledger
        bodies = [r.json() for r in (humanized, healthy_humanized, detected, healthy_detected)]
        for body in bodies:
            body.pop("processingTime")
        assert bodies[0] == bodies[1]
        assert bodies[2] == bodies[3]
        assert bodies[0]["plan"] == {"name": "Free", "wordLimit": 500, "wordsUsed": 5}
        assert bodies[0]["limitExceeded"] is False

        assert len(failing_ledger.attempts) == 2
        assert usage.status_code == 200
        assert usage.json()["usage"]["total"]["humanize"] == 0
        assert usage.json()["usage"]["logs"] == []

    @pytest.mark.asyncio
    async def test_rate_limit(self, test_settings, stores):
        config = test_settings.model_copy(
            update={"rate_limit_enabled": True, "rate_limit_requests": 2}
        )
        app = create_app(config=config, stores=stores)
        async with _client_for(app) as client:
            first = await client.get("/")
            second = await client.get("/")
            third = await client.get("/")
            tagged = await client.get("/", headers={"X-Request-ID": "client-7"})
            health = await client.get("/health")

        assert first.status_code == 200
        assert second.status_code == 200
        assert third.status_code == 429
        assert third.json()["message"] == "Too many requests, please try again later"
        assert int(third.headers["Retry-After"]) > 0
        assert third.json()["request_id"]
        assert third.headers["X-Request-ID"] == third.json()["request_id"]
        assert tagged.status_code == 429
        assert tagged.headers["X-Request-ID"] == "client-7"
        assert tagged.json()["request_id"] == "client-7"
        assert health.status_code == 200

    @pytest.mark.asyncio
    async def test_unexpected_error_envelope(self, app):
        async def explode():
            raise RuntimeError("kaboom")

        app.add_api_route("/explode", explode, methods=["GET"])
        async with _client_for(app, raise_app_exceptions=False) as client:
            response = await client.get("/explode")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "An unexpected error occurred"
        assert body["error"] == "kaboom"

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_detail_in_production(self, test_settings, stores):
        config = test_settings.model_copy(update={"environment": "production"})
        app = create_app(config=config, stores=stores)

        async def explode():
            raise RuntimeError("kaboom")

        app.add_api_route("/explode", explode, methods=["GET"])
        async with _client_for(app, raise_app_exceptions=False) as client:
            response = await client.get("/explode")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "An unexpected error occurred"
        assert "error" not in body
        assert "kaboom" not in response.text
