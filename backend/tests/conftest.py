"""
Inkwell Backend - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: Settings for tests (memory stores, no rate limit)
    ├── stores: fresh in-memory AccountStore / UsageLedger / TransactionStore
    ├── plans: PlanPolicy over the default plan table
    ├── app: create_app() wired to `stores` with seeded transforms
    ├── test_client: HTTPX AsyncClient for API endpoint testing
    ├── register_account: registers a user through the API, returns (token, user)
    └── failing_ledger / failing_transactions / failing_word_counter:
        stores whose writes always fail
"""

import os

# Set before any app import: app.config builds the module-level settings and
# app.database its engine at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STORE_BACKEND"] = "memory"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"

import random
from typing import Any, Dict, List, Literal, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.exceptions import PersistenceError
from app.main import create_app
from app.plans import PlanPolicy
from app.repositories.base import AccountStore, TransactionStore, UsageLedger
from app.repositories.memory import build_memory_stores
from app.schemas.account import AccountCreate, AccountRecord, ApiKeys
from app.schemas.payment import TransactionCreate, TransactionRecord
from app.schemas.usage import UsageEventCreate, UsageEventRecord
from app.services.detector import LocalHeuristicDetector, ScoringDetector
from app.services.humanizer import RuleBasedHumanizer

TEST_JWT_SECRET = "inkwell-test-secret-with-enough-bytes-for-hs256"


# ══════════════════════════════════════════════════════════════════════════
# Failing Stores
# ══════════════════════════════════════════════════════════════════════════

class FailingLedger(UsageLedger):
    """Every call raises PersistenceError, like an unreachable database."""

    def __init__(self) -> None:
        self.attempts: List[UsageEventCreate] = []

    async def append(self, event: UsageEventCreate) -> UsageEventRecord:
        self.attempts.append(event)
        raise PersistenceError(context={"operation": "ledger.append"})

    async def find_recent(self, account_id: int, limit: int = 100) -> List[UsageEventRecord]:
        raise PersistenceError(context={"operation": "ledger.find_recent"})

    async def count_by_action(self, account_id: int, action: str) -> int:
        raise PersistenceError(context={"operation": "ledger.count_by_action"})

    async def sum_length(self, account_id: int, column: Literal["input", "output"]) -> int:
        raise PersistenceError(context={"operation": "ledger.sum_length"})


class FailingWordCounter(AccountStore):
    """Account reads and writes work; only the words_used increment fails."""

    def __init__(self, inner: AccountStore) -> None:
        self.inner = inner
        self.increments: List[Tuple[int, int]] = []

    async def find_by_id(self, account_id: int) -> Optional[AccountRecord]:
        return await self.inner.find_by_id(account_id)

    async def find_by_username(self, username: str) -> Optional[AccountRecord]:
        return await self.inner.find_by_username(username)

    async def create(self, data: AccountCreate) -> AccountRecord:
        return await self.inner.create(data)

    async def update(
        self,
        account_id: int,
        *,
        plan: Optional[str] = None,
        payment_status: Optional[str] = None,
        api_keys: Optional[ApiKeys] = None,
    ) -> Optional[AccountRecord]:
        return await self.inner.update(
            account_id, plan=plan, payment_status=payment_status, api_keys=api_keys
        )

    async def add_words_used(self, account_id: int, words: int) -> None:
        self.increments.append((account_id, words))
        raise PersistenceError(context={"operation": "account.add_words_used"})


class FailingTransactionStore(TransactionStore):

    async def create(self, data: TransactionCreate) -> TransactionRecord:
        raise PersistenceError(context={"operation": "transaction.create"})

    async def find_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        raise PersistenceError(context={"operation": "transaction.find_by_id"})


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        store_backend="memory",
        jwt_secret=TEST_JWT_SECRET,
        rate_limit_enabled=False,
        retry_max_attempts=2,
        retry_min_wait=0,
        retry_max_wait=0,
    )


@pytest.fixture
def stores():
    return build_memory_stores()


@pytest.fixture
def plans(test_settings) -> PlanPolicy:
    return PlanPolicy(test_settings.plans)


@pytest.fixture
def failing_ledger() -> FailingLedger:
    return FailingLedger()


@pytest.fixture
def failing_transactions() -> FailingTransactionStore:
    return FailingTransactionStore()


@pytest.fixture
def failing_word_counter(stores) -> FailingWordCounter:
    return FailingWordCounter(stores.accounts)


@pytest.fixture
def app(test_settings, stores):
    """
    App wired to in-memory stores. Transforms are seeded so humanize output
    is reproducible; the detector has no external scorers.
    """
    return create_app(
        config=test_settings,
        stores=stores,
        humanizer=RuleBasedHumanizer(random.Random(7)),
        detector=ScoringDetector(local=LocalHeuristicDetector(random.Random(7))),
    )


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_account(test_client):
    """Registers through the API and returns (token, user)."""

    async def _register(
        username: str = "alice",
        password: str = "correct-horse",
        plan: Optional[str] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        body: Dict[str, Any] = {"username": username, "password": password}
        if plan is not None:
            body["plan"] = plan
        response = await test_client.post("/api/auth/register", json=body)
        assert response.status_code == 201, response.text
        data = response.json()
        return data["token"], data["user"]

    return _register


@pytest.fixture
def headers_for():
    return auth_headers
