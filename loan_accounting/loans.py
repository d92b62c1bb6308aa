"""
Loan Module

Loans, their installments, and the loan status calculator. The calculator is
a pure function: it derives paid amount, total repayable and payoff status
from a loan and its installment history using exact Decimal arithmetic, and
refuses to produce a figure from malformed financial data.
"""

from datetime import date, datetime
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Any
from enum import Enum
import uuid

from .currency import Money, Currency, DEFAULT_CURRENCY, parse_currency
from .exceptions import ConfigurationError
from .storage import StorageInterface, StorageRecord, utc_now, parse_date, parse_datetime


class LoanStatusLabel(Enum):
    """Display status of a loan"""
    PAID_OFF = "Paid Off"
    IN_PROGRESS = "In Progress"


@dataclass
class Loan(StorageRecord):
    """
    Loan terms as recorded. Amount fields are converted to Money here; the
    status calculator validates them and never mutates the loan.
    """
    customer_id: str
    original_amount: Money
    interest_amount: Money
    total_installments: int
    payment_date: Optional[date] = None
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.original_amount, Money):
            self.original_amount = Money.from_raw(self.original_amount)
        if not isinstance(self.interest_amount, Money):
            self.interest_amount = Money.from_raw(self.interest_amount, self.original_amount.currency)


@dataclass
class Installment(StorageRecord):
    """One payment applied against a loan"""
    loan_id: str
    installment_number: int
    amount: Money
    paid_on: Optional[date] = None
    late_fee: Optional[Money] = None
    receipt_number: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.amount, Money):
            self.amount = Money.from_raw(self.amount)
        if self.late_fee is not None and not isinstance(self.late_fee, Money):
            self.late_fee = Money.from_raw(self.late_fee, self.amount.currency)


@dataclass(frozen=True)
class LoanStatus:
    """Derived loan figures; computed fresh on every evaluation"""
    paid: Money
    total_repayable: Money
    required_installments: int
    has_reached_installment_target: bool
    is_paid_off: bool
    status: LoanStatusLabel

    @property
    def balance(self) -> Money:
        """Amount still owed (negative when overpaid)"""
        return self.total_repayable - self.paid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paid": self.paid.to_raw(),
            "total_repayable": self.total_repayable.to_raw(),
            "balance": self.balance.to_raw(),
            "currency": self.paid.currency.code,
            "required_installments": self.required_installments,
            "has_reached_installment_target": self.has_reached_installment_target,
            "is_paid_off": self.is_paid_off,
            "status": self.status.value,
        }


def _is_valid_amount(value: Money) -> bool:
    return isinstance(value, Money) and value.is_finite() and not value.is_negative()


def validate_loan_terms(loan: Loan) -> None:
    """
    Check the loan fields the calculator relies on.

    Raises:
        ConfigurationError: If total_installments is not a positive integer or
            either amount is not a finite non-negative Money
    """
    count = loan.total_installments
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise ConfigurationError(
            f"Invalid loan configuration: total_installments must be a positive integer. "
            f"LoanId={loan.id}"
        )

    for field_name in ("original_amount", "interest_amount"):
        if not _is_valid_amount(getattr(loan, field_name)):
            raise ConfigurationError(
                f"Invalid loan configuration: {field_name} must be a finite non-negative "
                f"amount. LoanId={loan.id}"
            )

    if loan.original_amount.currency != loan.interest_amount.currency:
        raise ConfigurationError(
            f"Invalid loan configuration: amounts use different currencies. LoanId={loan.id}"
        )


def compute_loan_status(loan: Loan, installments: Sequence[Installment]) -> LoanStatus:
    """
    Derive a loan's financial status from its installments.

    A loan is paid off only when BOTH the contracted number of installments
    has been reached AND the amount paid covers original amount plus interest.

    Args:
        loan: The loan terms (read only)
        installments: Every installment recorded against the loan

    Returns:
        LoanStatus for this exact input

    Raises:
        ConfigurationError: On malformed loan terms or any invalid installment
            amount; no partial result is returned
    """
    validate_loan_terms(loan)
    currency = loan.original_amount.currency

    total_repayable = loan.original_amount + loan.interest_amount

    paid = Money.zero(currency)
    for position, installment in enumerate(installments):
        amount = installment.amount
        if not _is_valid_amount(amount) or amount.currency != currency:
            raise ConfigurationError(
                f"Invalid installment amount for LoanId={loan.id} "
                f"InstallmentIndex={position} InstallmentId={installment.id or 'unknown'}"
            )
        paid = paid + amount

    required = loan.total_installments
    has_reached_target = len(installments) >= required
    is_paid_off = has_reached_target and paid >= total_repayable

    return LoanStatus(
        paid=paid,
        total_repayable=total_repayable,
        required_installments=required,
        has_reached_installment_target=has_reached_target,
        is_paid_off=is_paid_off,
        status=LoanStatusLabel.PAID_OFF if is_paid_off else LoanStatusLabel.IN_PROGRESS,
    )


class LoanManager:
    """Records loans and installments and evaluates loan status from storage"""

    def __init__(self, storage: StorageInterface, currency: Currency = DEFAULT_CURRENCY):
        self.storage = storage
        self.currency = currency
        self.loans_table = "loans"
        self.installments_table = "installments"

    def record_loan(self, customer_id: str, original_amount: Money, interest_amount: Money,
                    total_installments: int, payment_date: Optional[date] = None) -> Loan:
        """Record a new loan; rejects terms the status calculator could not evaluate"""
        now = utc_now()
        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            customer_id=customer_id,
            original_amount=original_amount,
            interest_amount=interest_amount,
            total_installments=total_installments,
            payment_date=payment_date
        )
        validate_loan_terms(loan)
        self.storage.insert(self.loans_table, loan.id, self._loan_to_dict(loan))
        return loan

    def record_installment(self, loan_id: str, amount: Money, paid_on: date,
                           installment_number: Optional[int] = None,
                           late_fee: Optional[Money] = None,
                           receipt_number: Optional[str] = None) -> Installment:
        """Record a payment against a loan; the number defaults to the next in sequence"""
        if not _is_valid_amount(amount):
            raise ConfigurationError(f"Installment amount must be finite and non-negative. LoanId={loan_id}")
        if late_fee is not None and not _is_valid_amount(late_fee):
            raise ConfigurationError(f"Late fee must be finite and non-negative. LoanId={loan_id}")

        with self.storage.atomic():
            if not self.storage.exists(self.loans_table, loan_id):
                raise ValueError(f"Loan {loan_id} not found")

            if installment_number is None:
                installment_number = len(self.get_installments(loan_id)) + 1

            now = utc_now()
            installment = Installment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                loan_id=loan_id,
                installment_number=installment_number,
                amount=amount,
                paid_on=paid_on,
                late_fee=late_fee,
                receipt_number=receipt_number
            )
            self.storage.insert(self.installments_table, installment.id,
                                self._installment_to_dict(installment))
        return installment

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        data = self.storage.load(self.loans_table, loan_id)
        return self._loan_from_dict(data) if data else None

    def get_installments(self, loan_id: str) -> List[Installment]:
        """Installments for a loan ordered by installment number"""
        rows = self.storage.find(self.installments_table, {"loan_id": loan_id})
        installments = [self._installment_from_dict(row) for row in rows]
        installments.sort(key=lambda i: (i.installment_number, i.created_at))
        return installments

    def get_loan_status(self, loan_id: str) -> Optional[LoanStatus]:
        """
        Evaluate a stored loan. Returns None for an unknown loan and lets
        ConfigurationError propagate for corrupted financial data.
        """
        loan = self.get_loan(loan_id)
        if loan is None:
            return None
        return compute_loan_status(loan, self.get_installments(loan_id))

    def _loan_to_dict(self, loan: Loan) -> Dict[str, Any]:
        result = loan.to_dict()
        result['original_amount'] = loan.original_amount.to_raw()
        result['interest_amount'] = loan.interest_amount.to_raw()
        result['currency'] = loan.original_amount.currency.code
        return result

    def _loan_from_dict(self, data: Dict[str, Any]) -> Loan:
        currency = parse_currency(data.get('currency'))
        return Loan(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            customer_id=data['customer_id'],
            original_amount=Money.from_raw(data.get('original_amount'), currency),
            interest_amount=Money.from_raw(data.get('interest_amount'), currency),
            total_installments=data.get('total_installments'),
            payment_date=parse_date(data.get('payment_date')),
            deleted_at=parse_datetime(data.get('deleted_at'))
        )

    def _installment_to_dict(self, installment: Installment) -> Dict[str, Any]:
        result = installment.to_dict()
        result['amount'] = installment.amount.to_raw()
        result['currency'] = installment.amount.currency.code
        result['late_fee'] = installment.late_fee.to_raw() if installment.late_fee else None
        return result

    def _installment_from_dict(self, data: Dict[str, Any]) -> Installment:
        currency = parse_currency(data.get('currency'))
        late_fee = data.get('late_fee')
        return Installment(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            loan_id=data['loan_id'],
            installment_number=data['installment_number'],
            amount=Money.from_raw(data.get('amount'), currency),
            paid_on=parse_date(data.get('paid_on')),
            late_fee=Money.from_raw(late_fee, currency) if late_fee is not None else None,
            receipt_number=data.get('receipt_number')
        )
