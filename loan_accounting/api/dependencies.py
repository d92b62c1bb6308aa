"""
System wiring and FastAPI dependencies
"""

from decimal import Decimal
from typing import Optional

from ..config import LoanAccountingConfig, get_config
from ..currency import Money, parse_currency
from ..customers import CustomerManager
from ..interest import QuarterlyInterestService
from ..loans import LoanManager
from ..notifications import NotificationSink
from ..quarterly_job import QuarterlyInterestJob
from ..storage import StorageInterface, create_storage
from ..subscriptions import SubscriptionManager


class LoanAccountingSystem:
    """Loan accounting components wired over one storage backend"""

    def __init__(self, storage: Optional[StorageInterface] = None,
                 config: Optional[LoanAccountingConfig] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)
        currency = parse_currency(self.config.currency)

        self.customer_manager = CustomerManager(self.storage)
        self.subscription_manager = SubscriptionManager(self.storage, currency)
        self.loan_manager = LoanManager(self.storage, currency)
        self.notification_sink = NotificationSink(self.storage)
        self.interest_service = QuarterlyInterestService(
            self.storage, self.customer_manager, self.subscription_manager,
            interest_rate_pct=Decimal(self.config.interest_rate_pct),
            sanity_cap=Money(Decimal(self.config.interest_sanity_cap), currency),
            currency=currency
        )
        self.quarterly_job = QuarterlyInterestJob(
            self.customer_manager, self.interest_service, self.notification_sink, self.config
        )


_system: Optional[LoanAccountingSystem] = None


def get_system() -> LoanAccountingSystem:
    """Dependency returning the process-wide system, created on first use"""
    global _system
    if _system is None:
        _system = LoanAccountingSystem()
    return _system
