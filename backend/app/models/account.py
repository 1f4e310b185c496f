"""
Inkwell Backend - Account SQLAlchemy Model
============================================

What:  ORM model representing the `accounts` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by SqlAccountStore only. Services see AccountRecord snapshots.

Column notes:
    - plan / payment_status: short enum-like strings, validated by the services
    - words_used: advisory counter, only ever incremented in place
    - api_keys: {"gptZero": "...", "originality": "..."}; "" marks an empty slot
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def empty_api_keys() -> Dict[str, str]:
    return {"gptZero": "", "originality": ""}


class Account(Base):
    """
    A registered user of the API.

    Lifecycle:
        1. Created at registration (Free → payment_status 'Paid', else 'Pending')
        2. words_used incremented after each successful humanize call
        3. plan / payment_status rewritten by the payment flow
        4. api_keys replaced through PUT /api/auth/api-keys
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="Unique login name",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="One-way credential hash (never returned by the API)",
    )

    plan: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="Free",
        server_default=text("'Free'"),
        comment="Service tier: Free, Basic, Premium",
    )

    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="Pending",
        server_default=text("'Pending'"),
        comment="Pending or Paid",
    )

    words_used: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Cumulative words submitted to humanize_text",
    )

    api_keys: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=empty_api_keys,
        comment="Per-account external scorer keys",
    )

    joined_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return (
            f"<Account(id={self.id}, username='{self.username}', "
            f"plan='{self.plan}', payment_status='{self.payment_status}')>"
        )
