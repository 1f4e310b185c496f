"""
Inkwell Backend - Transaction SQLAlchemy Model
================================================

What:  ORM model for simulated payment events (`transactions` table).
Who:   Written by the payment flow; looked up by transaction id.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Human-readable id handed back to the client, e.g. TX3F9A0C21BE
    transaction_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)

    # Pending | Completed | Failed
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Pending", server_default=text("'Pending'")
    )
    plan: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="M-Pesa", server_default=text("'M-Pesa'")
    )

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(transaction_id='{self.transaction_id}', "
            f"account_id={self.account_id}, status='{self.status}')>"
        )
