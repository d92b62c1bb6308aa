"""
Quarterly Interest Module

Store-side operation that applies one fiscal quarter's interest to a single
customer's subscription total. Idempotency lives here: every application
writes an interest ledger row keyed by (customer, quarter start), checked and
inserted inside one atomic block, so a repeated or concurrent call for the
same quarter is reported as skipped instead of charging twice.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from enum import Enum

from .currency import Money, Currency, DEFAULT_CURRENCY, parse_currency
from .customers import CustomerManager
from .exceptions import DuplicateRecordError
from .fiscal import FiscalQuarter, resolve_fiscal_quarter
from .logging_config import get_logger
from .storage import StorageInterface, StorageRecord, utc_now, parse_date, parse_datetime
from .subscriptions import SubscriptionManager


class OutcomeStatus(Enum):
    """Result of applying interest for one customer"""
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class InterestOutcome:
    """Tagged per-customer outcome of a quarterly interest application"""
    status: OutcomeStatus
    customer_id: str
    customer_name: Optional[str] = None
    interest_charged: Optional[Money] = None
    subscription_total: Optional[Money] = None
    previous_total_interest: Optional[Money] = None
    new_total_interest: Optional[Money] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def skipped(cls, customer_id: str, reason: str, **kwargs) -> 'InterestOutcome':
        return cls(status=OutcomeStatus.SKIPPED, customer_id=customer_id, reason=reason, **kwargs)

    @classmethod
    def failed(cls, customer_id: str, error: str, **kwargs) -> 'InterestOutcome':
        return cls(status=OutcomeStatus.ERROR, customer_id=customer_id, error=error, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"status": self.status.value, "customer_id": self.customer_id}
        if self.customer_name is not None:
            result["customer_name"] = self.customer_name
        for name in ("interest_charged", "subscription_total",
                     "previous_total_interest", "new_total_interest"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value.to_raw()
        for name in ("period_start", "period_end"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value.isoformat()
        if self.reason is not None:
            result["reason"] = self.reason
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any], currency: Currency = DEFAULT_CURRENCY) -> 'InterestOutcome':
        """
        Parse a raw store response.

        Raises:
            ValueError: If the status is not one of success/skipped/error
        """
        status = OutcomeStatus(data.get("status"))

        def money(name: str) -> Optional[Money]:
            value = data.get(name)
            return Money.from_raw(value, currency) if value is not None else None

        return cls(
            status=status,
            customer_id=str(data.get("customer_id", "")),
            customer_name=data.get("customer_name"),
            interest_charged=money("interest_charged"),
            subscription_total=money("subscription_total"),
            previous_total_interest=money("previous_total_interest"),
            new_total_interest=money("new_total_interest"),
            period_start=parse_date(data.get("period_start")),
            period_end=parse_date(data.get("period_end")),
            reason=data.get("reason"),
            error=data.get("error"),
        )


@dataclass
class InterestLedgerEntry(StorageRecord):
    """Audit row for one applied (customer, quarter)"""
    customer_id: str
    subscription_total_used: Money
    interest_rate_pct: Decimal
    interest_amount: Money
    period_start: date
    period_end: date
    applied_at: datetime


@dataclass
class CustomerInterest(StorageRecord):
    """Running interest total for a customer"""
    customer_id: str
    total_interest_charged: Money
    last_applied_quarter: Optional[date] = None


def ledger_key(customer_id: str, period_start: date) -> str:
    """Natural key that makes a ledger row unique per customer and quarter"""
    return f"{customer_id}:{period_start.isoformat()}"


class QuarterlyInterestService:
    """
    Applies and rolls back quarterly subscription interest.

    The customer and subscription reads happen before the storage lock is
    taken; the ledger check, insert and running-total update for one
    customer happen inside a single storage.atomic() block.
    """

    def __init__(
        self,
        storage: StorageInterface,
        customer_manager: CustomerManager,
        subscription_manager: SubscriptionManager,
        interest_rate_pct: Decimal = Decimal('3.0'),
        sanity_cap: Optional[Money] = None,
        currency: Currency = DEFAULT_CURRENCY
    ):
        if interest_rate_pct < Decimal('0') or interest_rate_pct > Decimal('100'):
            raise ValueError("Interest rate must be between 0 and 100 percent")

        self.storage = storage
        self.customer_manager = customer_manager
        self.subscription_manager = subscription_manager
        self.interest_rate_pct = interest_rate_pct
        self.currency = currency
        self.sanity_cap = sanity_cap or Money(Decimal('1000000'), currency)
        self.ledger_table = "interest_ledger"
        self.totals_table = "customer_interest"
        self.logger = get_logger("loan_accounting.interest")

    def apply_quarterly_interest_for_customer(
        self,
        customer_id: str,
        as_of: Optional[datetime] = None
    ) -> InterestOutcome:
        """
        Charge this quarter's interest on the customer's subscription total.

        Args:
            customer_id: Customer to charge
            as_of: Evaluation instant (defaults to now, UTC)

        Returns:
            success with the amount charged, skipped if this quarter was
            already applied or there is nothing to charge, error otherwise
        """
        quarter = resolve_fiscal_quarter(as_of or utc_now())
        period = {"period_start": quarter.start, "period_end": quarter.end}

        try:
            # Only the ledger check-and-write below holds the storage lock
            customer = self.customer_manager.get_customer(customer_id)
            if customer is None or not customer.is_active:
                return InterestOutcome.failed(customer_id, "Customer not found or deleted")

            subscription_total = self.subscription_manager.subscription_total(customer_id)

            with self.storage.atomic():
                if self.storage.exists(self.ledger_table, ledger_key(customer_id, quarter.start)):
                    return InterestOutcome.skipped(
                        customer_id, "Interest already applied for this quarter",
                        customer_name=customer.name, **period
                    )

                if not subscription_total.is_positive():
                    return InterestOutcome.skipped(
                        customer_id, "No subscriptions found for customer",
                        customer_name=customer.name, subscription_total=subscription_total
                    )

                interest = subscription_total * (self.interest_rate_pct / Decimal('100'))
                if interest > self.sanity_cap:
                    return InterestOutcome.failed(
                        customer_id, "Interest exceeds sanity cap",
                        customer_name=customer.name, interest_charged=interest
                    )

                previous_total = self._load_total(customer_id)
                new_total = previous_total + interest
                self._insert_ledger_entry(customer_id, subscription_total, interest, quarter)
                self._save_total(customer_id, new_total, quarter.start)

            return InterestOutcome(
                status=OutcomeStatus.SUCCESS,
                customer_id=customer_id,
                customer_name=customer.name,
                interest_charged=interest,
                subscription_total=subscription_total,
                previous_total_interest=previous_total,
                new_total_interest=new_total,
                **period
            )

        except DuplicateRecordError:
            return InterestOutcome.skipped(
                customer_id, "Concurrent execution detected - already applied", **period
            )
        except Exception as e:
            self.logger.exception(f"Interest application failed for customer {customer_id}")
            return InterestOutcome.failed(customer_id, str(e) or type(e).__name__)

    def rollback_quarterly_interest(self, customer_id: str) -> Dict[str, Any]:
        """Revert the most recent interest application for a customer"""
        with self.storage.atomic():
            entries = self.list_ledger_entries(customer_id)
            if not entries:
                return {
                    "status": "error",
                    "error": "No ledger entry found to rollback",
                    "customer_id": customer_id,
                }

            latest = entries[-1]
            remaining = entries[:-1]
            reverted_total = self._load_total(customer_id) - latest.interest_amount
            if reverted_total.is_negative():
                reverted_total = Money.zero(self.currency)

            self._save_total(
                customer_id, reverted_total,
                remaining[-1].period_start if remaining else None
            )
            self.storage.delete(self.ledger_table, latest.id)

        self.logger.info(f"Rolled back quarterly interest {latest.id} for customer {customer_id}")
        return {
            "status": "rolled_back",
            "customer_id": customer_id,
            "reverted_interest": latest.interest_amount.to_raw(),
            "period_start": latest.period_start.isoformat(),
            "period_end": latest.period_end.isoformat(),
            "deleted_ledger_id": latest.id,
        }

    def get_customer_interest(self, customer_id: str) -> Optional[CustomerInterest]:
        data = self.storage.load(self.totals_table, customer_id)
        if not data:
            return None
        currency = parse_currency(data.get('currency'))
        return CustomerInterest(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            customer_id=data['customer_id'],
            total_interest_charged=Money.from_raw(data['total_interest_charged'], currency),
            last_applied_quarter=parse_date(data.get('last_applied_quarter'))
        )

    def list_ledger_entries(self, customer_id: str) -> List[InterestLedgerEntry]:
        """Ledger rows for a customer, oldest first"""
        rows = self.storage.find(self.ledger_table, {"customer_id": customer_id})
        entries = [self._ledger_from_dict(row) for row in rows]
        entries.sort(key=lambda e: (e.applied_at, e.period_start))
        return entries

    def _load_total(self, customer_id: str) -> Money:
        current = self.get_customer_interest(customer_id)
        return current.total_interest_charged if current else Money.zero(self.currency)

    def _save_total(self, customer_id: str, total: Money, last_applied: Optional[date]) -> None:
        now = utc_now()
        existing = self.storage.load(self.totals_table, customer_id)
        record = CustomerInterest(
            id=customer_id,
            created_at=parse_datetime(existing['created_at']) if existing else now,
            updated_at=now,
            customer_id=customer_id,
            total_interest_charged=total,
            last_applied_quarter=last_applied
        )
        data = record.to_dict()
        data['total_interest_charged'] = total.to_raw()
        data['currency'] = total.currency.code
        self.storage.save(self.totals_table, customer_id, data)

    def _insert_ledger_entry(self, customer_id: str, subscription_total: Money,
                             interest: Money, quarter: FiscalQuarter) -> None:
        now = utc_now()
        entry = InterestLedgerEntry(
            id=ledger_key(customer_id, quarter.start),
            created_at=now,
            updated_at=now,
            customer_id=customer_id,
            subscription_total_used=subscription_total,
            interest_rate_pct=self.interest_rate_pct,
            interest_amount=interest,
            period_start=quarter.start,
            period_end=quarter.end,
            applied_at=now
        )
        data = entry.to_dict()
        data['subscription_total_used'] = subscription_total.to_raw()
        data['interest_amount'] = interest.to_raw()
        data['currency'] = interest.currency.code
        self.storage.insert(self.ledger_table, entry.id, data)

    def _ledger_from_dict(self, data: Dict[str, Any]) -> InterestLedgerEntry:
        currency = parse_currency(data.get('currency'))
        return InterestLedgerEntry(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            customer_id=data['customer_id'],
            subscription_total_used=Money.from_raw(data['subscription_total_used'], currency),
            interest_rate_pct=Decimal(data['interest_rate_pct']),
            interest_amount=Money.from_raw(data['interest_amount'], currency),
            period_start=parse_date(data['period_start']),
            period_end=parse_date(data['period_end']),
            applied_at=parse_datetime(data['applied_at'])
        )
