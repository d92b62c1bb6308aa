"""
Tests for the loan status calculator and loan manager
"""

import itertools
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from loan_accounting.currency import Money, Currency
from loan_accounting.exceptions import ConfigurationError
from loan_accounting.loans import (
    Loan, Installment, LoanManager, LoanStatusLabel, compute_loan_status, validate_loan_terms
)
from loan_accounting.storage import InMemoryStorage


NOW = datetime(2025, 10, 5, tzinfo=timezone.utc)


def make_loan(original="10000", interest="1200", installments=12, loan_id="loan-1"):
    return Loan(
        id=loan_id,
        created_at=NOW,
        updated_at=NOW,
        customer_id="cust-1",
        original_amount=original,
        interest_amount=interest,
        total_installments=installments,
    )


def make_installments(amounts, loan_id="loan-1"):
    return [
        Installment(
            id=f"inst-{n}",
            created_at=NOW,
            updated_at=NOW,
            loan_id=loan_id,
            installment_number=n,
            amount=amount,
        )
        for n, amount in enumerate(amounts, start=1)
    ]


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def loan_manager(storage):
    return LoanManager(storage)


class TestComputeLoanStatus:
    """Test the payoff rule and derived figures"""

    def test_full_schedule_fully_paid(self):
        loan = make_loan()
        installments = make_installments(["933.33"] * 11 + ["933.37"])

        result = compute_loan_status(loan, installments)

        assert result.paid == Money(Decimal("11200.00"))
        assert result.total_repayable == Money(Decimal("11200.00"))
        assert result.required_installments == 12
        assert result.has_reached_installment_target is True
        assert result.is_paid_off is True
        assert result.status == LoanStatusLabel.PAID_OFF
        assert result.balance.is_zero()

    def test_amount_covered_but_count_short(self):
        loan = make_loan()
        installments = make_installments(["1100"] * 11)

        result = compute_loan_status(loan, installments)

        assert result.paid == Money(Decimal("12100.00"))
        assert result.has_reached_installment_target is False
        assert result.is_paid_off is False
        assert result.status == LoanStatusLabel.IN_PROGRESS

    def test_count_reached_but_underpaid(self):
        loan = make_loan()
        installments = make_installments(["933.33"] * 12)

        result = compute_loan_status(loan, installments)

        assert result.paid == Money(Decimal("11199.96"))
        assert result.has_reached_installment_target is True
        assert result.is_paid_off is False
        assert result.balance == Money(Decimal("0.04"))

    def test_no_installments(self):
        result = compute_loan_status(make_loan(), [])

        assert result.paid.is_zero()
        assert result.status == LoanStatusLabel.IN_PROGRESS
        assert result.balance == Money(Decimal("11200.00"))

    def test_extra_installments_still_paid_off(self):
        installments = make_installments(["1000"] * 13)
        assert compute_loan_status(make_loan(), installments).is_paid_off is True

    def test_exact_decimal_sums(self):
        loan = make_loan(original="0.30", interest="0", installments=2)
        installments = make_installments(["0.10", "0.20"])

        result = compute_loan_status(loan, installments)

        assert result.paid.amount == Decimal("0.30")
        assert result.is_paid_off is True

    def test_paid_independent_of_installment_order(self):
        loan = make_loan(original="100", interest="0.30", installments=5)
        amounts = ["0.10", "0.20", "33.33", "33.33", "33.34"]

        results = [
            compute_loan_status(loan, make_installments(list(order)))
            for order in itertools.permutations(amounts)
        ]

        assert {r.paid for r in results} == {Money(Decimal("100.30"))}
        assert all(r.is_paid_off for r in results)

    def test_zero_interest_loan(self):
        loan = make_loan(original="5000", interest="0", installments=5)
        result = compute_loan_status(loan, make_installments(["1000"] * 5))
        assert result.is_paid_off is True

    def test_inputs_not_mutated(self):
        loan = make_loan()
        installments = make_installments(["933.33"] * 3)

        compute_loan_status(loan, installments)

        assert loan.original_amount == Money(Decimal("10000"))
        assert loan.total_installments == 12
        assert len(installments) == 3
        assert installments[0].amount == Money(Decimal("933.33"))

    def test_same_input_same_result(self):
        loan = make_loan()
        installments = make_installments(["933.33"] * 6)
        assert compute_loan_status(loan, installments) == compute_loan_status(loan, installments)

    def test_to_dict(self):
        result = compute_loan_status(make_loan(), make_installments(["933.33"] * 11 + ["933.37"]))
        assert result.to_dict() == {
            "paid": "11200.00",
            "total_repayable": "11200.00",
            "balance": "0.00",
            "currency": "INR",
            "required_installments": 12,
            "has_reached_installment_target": True,
            "is_paid_off": True,
            "status": "Paid Off",
        }


class TestMalformedLoanData:
    """Malformed financial fields are refused, never guessed"""

    @pytest.mark.parametrize("count", [0, -3, 2.5, None, "12", True])
    def test_invalid_installment_count(self, count):
        with pytest.raises(ConfigurationError) as exc_info:
            compute_loan_status(make_loan(installments=count), [])
        assert "LoanId=loan-1" in str(exc_info.value)

    def test_nan_original_amount(self):
        with pytest.raises(ConfigurationError) as exc_info:
            compute_loan_status(make_loan(original="NaN"), [])
        assert "original_amount" in str(exc_info.value)
        assert "LoanId=loan-1" in str(exc_info.value)

    def test_unparseable_original_amount(self):
        with pytest.raises(ConfigurationError):
            compute_loan_status(make_loan(original="ten thousand"), [])

    def test_negative_interest(self):
        with pytest.raises(ConfigurationError) as exc_info:
            compute_loan_status(make_loan(interest="-50"), [])
        assert "interest_amount" in str(exc_info.value)

    def test_amount_beyond_precision(self):
        loan = make_loan(original="1e27", interest="0", installments=1)

        with pytest.raises(ConfigurationError) as exc_info:
            compute_loan_status(loan, [])

        assert "original_amount" in str(exc_info.value)

    def test_infinite_interest(self):
        with pytest.raises(ConfigurationError):
            compute_loan_status(make_loan(interest="Infinity"), [])

    def test_negative_installment_names_position(self):
        installments = make_installments(["933.33", "933.33", "-1"])

        with pytest.raises(ConfigurationError) as exc_info:
            compute_loan_status(make_loan(), installments)

        message = str(exc_info.value)
        assert "LoanId=loan-1" in message
        assert "InstallmentIndex=2" in message
        assert "InstallmentId=inst-3" in message

    def test_installment_without_id(self):
        installments = make_installments(["abc"])
        installments[0].id = ""

        with pytest.raises(ConfigurationError) as exc_info:
            compute_loan_status(make_loan(), installments)

        assert "InstallmentId=unknown" in str(exc_info.value)

    def test_installment_currency_mismatch(self):
        installments = make_installments([Money(Decimal("100"), Currency.USD)])
        with pytest.raises(ConfigurationError):
            compute_loan_status(make_loan(), installments)

    def test_loan_currency_mismatch(self):
        loan = make_loan(original=Money(Decimal("100"), Currency.USD),
                         interest=Money(Decimal("10"), Currency.INR))
        with pytest.raises(ConfigurationError):
            validate_loan_terms(loan)


class TestLoanManager:
    """Test recording and evaluating stored loans"""

    def test_record_and_evaluate(self, loan_manager):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("10000")), Money(Decimal("1200")), 12)
        for _ in range(11):
            loan_manager.record_installment(loan.id, Money(Decimal("933.33")), date(2025, 5, 1))
        loan_manager.record_installment(loan.id, Money(Decimal("933.37")), date(2026, 4, 1))

        result = loan_manager.get_loan_status(loan.id)

        assert result.is_paid_off is True
        assert result.paid == Money(Decimal("11200.00"))

    def test_installments_numbered_in_sequence(self, loan_manager):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 2)
        first = loan_manager.record_installment(loan.id, Money(Decimal("500")), date(2025, 5, 1))
        second = loan_manager.record_installment(loan.id, Money(Decimal("500")), date(2025, 6, 1),
                                                 late_fee=Money(Decimal("25")))

        assert (first.installment_number, second.installment_number) == (1, 2)
        stored = loan_manager.get_installments(loan.id)
        assert [i.id for i in stored] == [first.id, second.id]
        assert stored[1].late_fee == Money(Decimal("25"))

    def test_stored_installment_count_is_int(self, loan_manager):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 12)

        loaded = loan_manager.get_loan(loan.id)

        assert loaded.total_installments == 12
        assert type(loaded.total_installments) is int

    def test_unknown_loan_status(self, loan_manager):
        assert loan_manager.get_loan_status("missing") is None

    def test_invalid_terms_not_stored(self, loan_manager, storage):
        with pytest.raises(ConfigurationError):
            loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 0)
        assert storage.count("loans") == 0

    def test_negative_installment_rejected(self, loan_manager, storage):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 2)
        with pytest.raises(ConfigurationError):
            loan_manager.record_installment(loan.id, Money(Decimal("-1")), date(2025, 5, 1))
        assert storage.count("installments") == 0

    def test_installment_for_unknown_loan(self, loan_manager):
        with pytest.raises(ValueError):
            loan_manager.record_installment("missing", Money(Decimal("10")), date(2025, 5, 1))

    def test_corrupted_stored_amount(self, loan_manager, storage):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 2)
        row = storage.load("loans", loan.id)
        row["original_amount"] = "garbage"
        storage.save("loans", loan.id, row)

        with pytest.raises(ConfigurationError) as exc_info:
            loan_manager.get_loan_status(loan.id)
        assert f"LoanId={loan.id}" in str(exc_info.value)

    def test_oversized_stored_amount(self, loan_manager, storage):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 2)
        row = storage.load("loans", loan.id)
        row["original_amount"] = "1e27"
        storage.save("loans", loan.id, row)

        with pytest.raises(ConfigurationError):
            loan_manager.get_loan_status(loan.id)

    def test_corrupted_stored_installment_count(self, loan_manager, storage):
        loan = loan_manager.record_loan("cust-1", Money(Decimal("1000")), Money(Decimal("0")), 2)
        row = storage.load("loans", loan.id)
        row["total_installments"] = 2.5
        storage.save("loans", loan.id, row)

        with pytest.raises(ConfigurationError):
            loan_manager.get_loan_status(loan.id)
