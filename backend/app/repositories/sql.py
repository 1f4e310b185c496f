"""
Inkwell Backend - SQLAlchemy Stores
=====================================

What:  AccountStore / UsageLedger / TransactionStore over async SQLAlchemy.
How:   Each operation opens its own session from the factory and commits
       before returning. A failed ledger append therefore never rolls back
       an account update made in the same request, and vice versa.
Who:   Selected when Settings.store_backend == "sql".

Error translation:
    SQLAlchemy / driver / socket errors → PersistenceError (details logged,
    never returned to clients). A duplicate username on insert becomes a
    ValidationError so the API can answer 400.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Literal, Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.exceptions import PersistenceError, ValidationError
from app.models.account import Account
from app.models.transaction import Transaction
from app.models.usage_event import UsageEvent
from app.repositories.base import AccountStore, Stores, TransactionStore, UsageLedger
from app.schemas.account import AccountCreate, AccountRecord, ApiKeys
from app.schemas.payment import TransactionCreate, TransactionRecord
from app.schemas.usage import UsageEventCreate, UsageEventRecord

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


@asynccontextmanager
async def _db_errors(operation: str, **context: Any) -> AsyncIterator[None]:
    """Re-raise backend failures as PersistenceError, logging the cause."""
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database error during %s: %s | Context: %s", operation, e, context)
        raise PersistenceError(
            context={"operation": operation, "error_type": type(e).__name__, **context}
        ) from e


# ── Row → Record Conversion ───────────────────────────────────────────────

def _account_record(row: Account) -> AccountRecord:
    return AccountRecord(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        plan=row.plan,
        payment_status=row.payment_status,
        words_used=row.words_used or 0,
        api_keys=ApiKeys.model_validate(row.api_keys or {}),
        joined_date=row.joined_date,
    )


def _event_record(row: UsageEvent) -> UsageEventRecord:
    return UsageEventRecord(
        id=row.id,
        account_id=row.account_id,
        action=row.action,
        input_length=row.input_length,
        output_length=row.output_length,
        processing_time=row.processing_time,
        successful=row.successful,
        error=row.error,
        metadata=row.event_metadata or {},
        created_at=row.created_at,
    )


# ══════════════════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════════════════

class SqlAccountStore(AccountStore):

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def find_by_id(self, account_id: int) -> Optional[AccountRecord]:
        async with _db_errors("account.find_by_id", account_id=account_id):
            async with self._session_factory() as session:
                row = await session.get(Account, account_id)
                return _account_record(row) if row else None

    async def find_by_username(self, username: str) -> Optional[AccountRecord]:
        async with _db_errors("account.find_by_username"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Account).where(Account.username == username)
                )
                row = result.scalar_one_or_none()
                return _account_record(row) if row else None

    async def create(self, data: AccountCreate) -> AccountRecord:
        async with _db_errors("account.create"):
            row = Account(
                username=data.username,
                password_hash=data.password_hash,
                plan=data.plan,
                payment_status=data.payment_status,
                words_used=0,
                api_keys=ApiKeys().model_dump(by_alias=True),
            )
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        session.add(row)
            except IntegrityError:
                raise ValidationError(message="Username already exists", field="username")
            return _account_record(row)

    async def update(
        self,
        account_id: int,
        *,
        plan: Optional[str] = None,
        payment_status: Optional[str] = None,
        api_keys: Optional[ApiKeys] = None,
    ) -> Optional[AccountRecord]:
        async with _db_errors("account.update", account_id=account_id):
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(Account, account_id)
                    if row is None:
                        return None
                    if plan is not None:
                        row.plan = plan
                    if payment_status is not None:
                        row.payment_status = payment_status
                    if api_keys is not None:
                        # New dict object so the JSON column is flagged dirty
                        row.api_keys = api_keys.model_dump(by_alias=True)
                return _account_record(row)

    async def add_words_used(self, account_id: int, words: int) -> None:
        async with _db_errors("account.add_words_used", account_id=account_id):
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(
                        update(Account)
                        .where(Account.id == account_id)
                        .values(words_used=Account.words_used + words)
                    )


# ══════════════════════════════════════════════════════════════════════════
# Usage Ledger
# ══════════════════════════════════════════════════════════════════════════

class SqlUsageLedger(UsageLedger):

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def append(self, event: UsageEventCreate) -> UsageEventRecord:
        async with _db_errors("ledger.append", account_id=event.account_id, action=event.action):
            row = UsageEvent(
                account_id=event.account_id,
                action=event.action,
                input_length=event.input_length,
                output_length=event.output_length,
                processing_time=event.processing_time,
                successful=event.successful,
                error=event.error,
                event_metadata=event.metadata or None,
            )
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
            return _event_record(row)

    async def find_recent(self, account_id: int, limit: int = 100) -> List[UsageEventRecord]:
        async with _db_errors("ledger.find_recent", account_id=account_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(UsageEvent)
                    .where(UsageEvent.account_id == account_id)
                    .order_by(desc(UsageEvent.created_at), desc(UsageEvent.id))
                    .limit(limit)
                )
                return [_event_record(row) for row in result.scalars().all()]

    async def count_by_action(self, account_id: int, action: str) -> int:
        async with _db_errors("ledger.count_by_action", account_id=account_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count(UsageEvent.id)).where(
                        UsageEvent.account_id == account_id,
                        UsageEvent.action == action,
                    )
                )
                return int(result.scalar() or 0)

    async def sum_length(self, account_id: int, column: Literal["input", "output"]) -> int:
        target = UsageEvent.input_length if column == "input" else UsageEvent.output_length
        async with _db_errors("ledger.sum_length", account_id=account_id, column=column):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.coalesce(func.sum(target), 0)).where(
                        UsageEvent.account_id == account_id,
                        target.is_not(None),
                    )
                )
                return int(result.scalar() or 0)


# ══════════════════════════════════════════════════════════════════════════
# Transactions
# ══════════════════════════════════════════════════════════════════════════

class SqlTransactionStore(TransactionStore):

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def create(self, data: TransactionCreate) -> TransactionRecord:
        async with _db_errors("transaction.create", transaction_id=data.transaction_id):
            row = Transaction(**data.model_dump())
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
            return TransactionRecord.model_validate(row)

    async def find_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        async with _db_errors("transaction.find_by_id", transaction_id=transaction_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Transaction).where(Transaction.transaction_id == transaction_id)
                )
                row = result.scalar_one_or_none()
                return TransactionRecord.model_validate(row) if row else None


def build_sql_stores(session_factory: SessionFactory) -> Stores:
    return Stores(
        accounts=SqlAccountStore(session_factory),
        ledger=SqlUsageLedger(session_factory),
        transactions=SqlTransactionStore(session_factory),
        backend="sql",
    )
