"""
Inkwell Backend - UsageEvent SQLAlchemy Model
===============================================

What:  ORM model for the append-only `usage_events` ledger.
Who:   Written by the processing orchestrator (one row per attempt),
       read by the usage query.

Rows are never updated or deleted. The (account_id, created_at) index
serves the "most recent events for this account" query.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.account import JSONType


class UsageEvent(Base):
    __tablename__ = "usage_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    # humanize_text | detect_ai
    action: Mapped[str] = mapped_column(String(50), nullable=False)

    input_length: Mapped[int] = mapped_column(Integer, nullable=False)
    output_length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # milliseconds
    processing_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    successful: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSONType, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_usage_events_account_created", "account_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<UsageEvent(id={self.id}, account_id={self.account_id}, "
            f"action='{self.action}', successful={self.successful})>"
        )
