"""
Inkwell Backend - In-Memory Stores
====================================

What:  Dictionary-backed AccountStore / UsageLedger / TransactionStore.
Who:   Test suites, local demos and degraded deployments
       (STORE_BACKEND=memory). Data lives as long as the process.

All methods run on the event loop without awaiting in between reads and
writes, so each one is atomic with respect to other requests.
"""

import itertools
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from app.exceptions import ValidationError
from app.repositories.base import AccountStore, Stores, TransactionStore, UsageLedger
from app.schemas.account import AccountCreate, AccountRecord, ApiKeys
from app.schemas.payment import TransactionCreate, TransactionRecord
from app.schemas.usage import UsageEventCreate, UsageEventRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryAccountStore(AccountStore):

    def __init__(self) -> None:
        self._rows: Dict[int, AccountRecord] = {}
        self._ids = itertools.count(1)

    async def find_by_id(self, account_id: int) -> Optional[AccountRecord]:
        row = self._rows.get(account_id)
        return row.model_copy(deep=True) if row else None

    async def find_by_username(self, username: str) -> Optional[AccountRecord]:
        for row in self._rows.values():
            if row.username == username:
                return row.model_copy(deep=True)
        return None

    async def create(self, data: AccountCreate) -> AccountRecord:
        if any(row.username == data.username for row in self._rows.values()):
            raise ValidationError(message="Username already exists", field="username")
        row = AccountRecord(
            id=next(self._ids),
            username=data.username,
            password_hash=data.password_hash,
            plan=data.plan,
            payment_status=data.payment_status,
            words_used=0,
            api_keys=ApiKeys(),
            joined_date=_now(),
        )
        self._rows[row.id] = row
        return row.model_copy(deep=True)

    async def update(
        self,
        account_id: int,
        *,
        plan: Optional[str] = None,
        payment_status: Optional[str] = None,
        api_keys: Optional[ApiKeys] = None,
    ) -> Optional[AccountRecord]:
        row = self._rows.get(account_id)
        if row is None:
            return None
        changes = {}
        if plan is not None:
            changes["plan"] = plan
        if payment_status is not None:
            changes["payment_status"] = payment_status
        if api_keys is not None:
            changes["api_keys"] = api_keys.model_copy()
        row = row.model_copy(update=changes)
        self._rows[account_id] = row
        return row.model_copy(deep=True)

    async def add_words_used(self, account_id: int, words: int) -> None:
        row = self._rows.get(account_id)
        if row is not None:
            self._rows[account_id] = row.model_copy(
                update={"words_used": row.words_used + words}
            )


class MemoryUsageLedger(UsageLedger):

    def __init__(self) -> None:
        self._events: List[UsageEventRecord] = []
        self._ids = itertools.count(1)

    async def append(self, event: UsageEventCreate) -> UsageEventRecord:
        record = UsageEventRecord(
            id=next(self._ids), created_at=_now(), **event.model_dump()
        )
        self._events.append(record)
        return record

    def _for(self, account_id: int) -> List[UsageEventRecord]:
        return [e for e in self._events if e.account_id == account_id]

    async def find_recent(self, account_id: int, limit: int = 100) -> List[UsageEventRecord]:
        return list(reversed(self._for(account_id)))[:limit]

    async def count_by_action(self, account_id: int, action: str) -> int:
        return sum(1 for e in self._for(account_id) if e.action == action)

    async def sum_length(self, account_id: int, column: Literal["input", "output"]) -> int:
        if column == "input":
            return sum(e.input_length for e in self._for(account_id))
        return sum(e.output_length for e in self._for(account_id) if e.output_length is not None)


class MemoryTransactionStore(TransactionStore):

    def __init__(self) -> None:
        self._rows: Dict[str, TransactionRecord] = {}
        self._ids = itertools.count(1)

    async def create(self, data: TransactionCreate) -> TransactionRecord:
        if data.transaction_id in self._rows:
            raise ValidationError(message="Duplicate transaction id", field="transaction_id")
        record = TransactionRecord(id=next(self._ids), date=_now(), **data.model_dump())
        self._rows[record.transaction_id] = record
        return record

    async def find_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        return self._rows.get(transaction_id)

    def __len__(self) -> int:
        return len(self._rows)


def build_memory_stores() -> Stores:
    return Stores(
        accounts=MemoryAccountStore(),
        ledger=MemoryUsageLedger(),
        transactions=MemoryTransactionStore(),
        backend="memory",
    )
