"""
Subscription Module

Customer subscription payments. Quarterly interest is charged on the sum of a
customer's non-deleted subscriptions.
"""

from datetime import date, datetime
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
import uuid

from .currency import Money, Currency, DEFAULT_CURRENCY, sum_money, parse_currency
from .storage import StorageInterface, StorageRecord, utc_now, parse_date, parse_datetime


@dataclass
class Subscription(StorageRecord):
    """One subscription payment made by a customer"""
    customer_id: str
    amount: Money
    paid_on: date
    receipt_number: Optional[str] = None
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.amount.is_finite() or self.amount.is_negative():
            raise ValueError("Subscription amount must be a finite non-negative value")


class SubscriptionManager:
    """Records subscriptions and totals them per customer"""

    def __init__(self, storage: StorageInterface, currency: Currency = DEFAULT_CURRENCY):
        self.storage = storage
        self.currency = currency
        self.table_name = "subscriptions"

    def record_subscription(self, customer_id: str, amount: Money, paid_on: date,
                            receipt_number: Optional[str] = None) -> Subscription:
        now = utc_now()
        subscription = Subscription(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            customer_id=customer_id,
            amount=amount,
            paid_on=paid_on,
            receipt_number=receipt_number
        )
        self.storage.insert(self.table_name, subscription.id, self._subscription_to_dict(subscription))
        return subscription

    def soft_delete(self, subscription_id: str) -> bool:
        with self.storage.atomic():
            data = self.storage.load(self.table_name, subscription_id)
            if not data or data.get('deleted_at'):
                return False
            data['deleted_at'] = utc_now().isoformat()
            self.storage.save(self.table_name, subscription_id, data)
            return True

    def get_customer_subscriptions(self, customer_id: str) -> List[Subscription]:
        """Non-deleted subscriptions for a customer"""
        rows = self.storage.find(self.table_name, {"customer_id": customer_id, "deleted_at": None})
        return [self._subscription_from_dict(row) for row in rows]

    def subscription_total(self, customer_id: str) -> Money:
        return sum_money(
            (s.amount for s in self.get_customer_subscriptions(customer_id)),
            self.currency
        )

    def _subscription_to_dict(self, subscription: Subscription) -> Dict[str, Any]:
        result = subscription.to_dict()
        result['amount'] = subscription.amount.to_raw()
        result['currency'] = subscription.amount.currency.code
        return result

    def _subscription_from_dict(self, data: Dict[str, Any]) -> Subscription:
        return Subscription(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            customer_id=data['customer_id'],
            amount=Money.from_raw(data['amount'], parse_currency(data.get('currency'))),
            paid_on=parse_date(data['paid_on']),
            receipt_number=data.get('receipt_number'),
            deleted_at=parse_datetime(data.get('deleted_at'))
        )
