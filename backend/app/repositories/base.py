"""
Inkwell Backend - Abstract Store Interfaces
============================================

What:  Contracts the services depend on instead of a concrete database.
How:   Concrete stores inherit from these ABCs. Every mutating method is a
       single atomic write for one entity; there are no cross-entity
       transactions, so callers can treat each write as independently
       best-effort.
Who:   Implemented by app.repositories.sql and app.repositories.memory.

Errors:
    Implementations raise PersistenceError for backend failures so callers
    can isolate them without catching driver-specific exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Literal, Optional

from app.schemas.account import AccountCreate, AccountRecord, ApiKeys
from app.schemas.payment import TransactionCreate, TransactionRecord
from app.schemas.usage import UsageEventCreate, UsageEventRecord


class AccountStore(ABC):
    """Account persistence: find-by-id, find-by-username, create, update."""

    @abstractmethod
    async def find_by_id(self, account_id: int) -> Optional[AccountRecord]:
        ...

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[AccountRecord]:
        ...

    @abstractmethod
    async def create(self, data: AccountCreate) -> AccountRecord:
        """
        Insert a new account.

        Raises:
            ValidationError: username already taken
            PersistenceError: backend failure
        """
        ...

    @abstractmethod
    async def update(
        self,
        account_id: int,
        *,
        plan: Optional[str] = None,
        payment_status: Optional[str] = None,
        api_keys: Optional[ApiKeys] = None,
    ) -> Optional[AccountRecord]:
        """Overwrite the given fields; returns None when the account is gone."""
        ...

    @abstractmethod
    async def add_words_used(self, account_id: int, words: int) -> None:
        """Increment the advisory words_used counter in place."""
        ...


class UsageLedger(ABC):
    """Append-only log of processing attempts."""

    @abstractmethod
    async def append(self, event: UsageEventCreate) -> UsageEventRecord:
        ...

    @abstractmethod
    async def find_recent(self, account_id: int, limit: int = 100) -> List[UsageEventRecord]:
        """Newest first."""
        ...

    @abstractmethod
    async def count_by_action(self, account_id: int, action: str) -> int:
        ...

    @abstractmethod
    async def sum_length(self, account_id: int, column: Literal["input", "output"]) -> int:
        """Sum of input_length or output_length; NULL output lengths are skipped."""
        ...


class TransactionStore(ABC):

    @abstractmethod
    async def create(self, data: TransactionCreate) -> TransactionRecord:
        ...

    @abstractmethod
    async def find_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        ...


@dataclass(frozen=True)
class Stores:
    """The three capabilities handed to services and dependencies."""

    accounts: AccountStore
    ledger: UsageLedger
    transactions: TransactionStore
    backend: str = "sql"
