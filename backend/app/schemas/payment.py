"""
Inkwell Backend - Payment Schemas
===================================
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.common import CamelModel


class TransactionCreate(BaseModel):
    transaction_id: str
    account_id: int
    amount: float
    phone_number: str
    status: str = "Pending"
    plan: str
    payment_method: str = "M-Pesa"


class TransactionRecord(TransactionCreate):
    id: int
    date: datetime

    model_config = {"from_attributes": True}


class PaymentRequest(BaseModel):
    phone_number: Optional[str] = None
    plan: Optional[str] = None


class TransactionSummary(CamelModel):
    transaction_id: str
    amount: float
    date: datetime
    status: str
    plan: str
    payment_method: str


class PlanQuote(CamelModel):
    name: str
    word_limit: int
    price: int


class PaymentResponse(CamelModel):
    success: bool = True
    message: str = "Payment processed successfully"
    transaction: TransactionSummary
    plan: PlanQuote
