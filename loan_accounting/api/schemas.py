"""
Pydantic schemas for API requests
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional
from pydantic import BaseModel, Field

from ..currency import Money, Currency


def to_money(value: str, currency: Currency) -> Money:
    """
    Parse a request amount.

    Raises:
        ValueError: If the value is not a decimal number
    """
    try:
        return Money(Decimal(value), currency)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")


# Customer schemas
class CreateCustomerRequest(BaseModel):
    name: str
    phone: Optional[str] = None


class RecordSubscriptionRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    paid_on: date
    receipt_number: Optional[str] = None


# Loan schemas
class CreateLoanRequest(BaseModel):
    customer_id: str
    original_amount: str = Field(..., description="Decimal amount as string")
    interest_amount: str = Field(..., description="Decimal amount as string")
    total_installments: int
    payment_date: Optional[date] = None


class RecordInstallmentRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    paid_on: date
    installment_number: Optional[int] = None
    late_fee: Optional[str] = None
    receipt_number: Optional[str] = None
