"""
Inkwell Backend - Simulated Payment Flow
==========================================

What:  Upgrades an account to a plan and records a Completed transaction.
How:   Validation failures are raised before anything is written. The
       confirmation is authoritative: if bookkeeping fails the caller still
       gets success and the discrepancy is logged at WARNING.
Who:   POST /payment
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from app.exceptions import ValidationError
from app.plans import PlanPolicy
from app.repositories.base import AccountStore, TransactionStore
from app.schemas.account import AccountRecord
from app.schemas.payment import (
    PaymentRequest,
    PaymentResponse,
    PlanQuote,
    TransactionCreate,
    TransactionRecord,
    TransactionSummary,
)
from app.services.auth_service import PAYMENT_PAID

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "Completed"
PAYMENT_METHOD = "M-Pesa"


def new_transaction_id() -> str:
    """`TX` followed by ten upper-case hex digits."""
    return "TX" + uuid.uuid4().hex[:10].upper()


class PaymentService:

    def __init__(
        self,
        accounts: AccountStore,
        transactions: TransactionStore,
        plans: PlanPolicy,
    ):
        self.accounts = accounts
        self.transactions = transactions
        self.plans = plans

    async def process(self, account: AccountRecord, body: PaymentRequest) -> PaymentResponse:
        """
        Raises:
            ValidationError: phone number or plan missing
            UnknownPlanError: plan outside the configured set
        """
        if not body.phone_number or not body.plan:
            raise ValidationError(message="Phone number and plan are required")

        plan = self.plans.get(body.plan)
        transaction_id = new_transaction_id()
        data = TransactionCreate(
            transaction_id=transaction_id,
            account_id=account.id,
            amount=plan.price,
            phone_number=body.phone_number,
            status=STATUS_COMPLETED,
            plan=body.plan,
            payment_method=PAYMENT_METHOD,
        )

        record: Optional[TransactionRecord] = None
        try:
            record = await self.transactions.create(data)
            await self.accounts.update(account.id, plan=body.plan, payment_status=PAYMENT_PAID)
        except Exception as e:
            logger.warning(
                "Payment %s for account %s confirmed but not fully recorded: %s",
                transaction_id,
                account.id,
                e,
            )
        else:
            logger.info(
                "Payment %s: account %s upgraded to %s", transaction_id, account.id, body.plan
            )

        return PaymentResponse(
            transaction=TransactionSummary(
                transaction_id=transaction_id,
                amount=data.amount,
                date=record.date if record else datetime.now(timezone.utc),
                status=data.status,
                plan=data.plan,
                payment_method=data.payment_method,
            ),
            plan=PlanQuote(name=body.plan, word_limit=plan.word_limit, price=plan.price),
        )
