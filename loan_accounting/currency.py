"""
Money Module

Exact decimal money type used by the loan status calculator and the interest
engine. NEVER uses float for monetary values; raw numbers are converted only
at the storage boundary.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from enum import Enum

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    INR = ("INR", 2, "₹")
    USD = ("USD", 2, "$")
    EUR = ("EUR", 2, "€")
    JPY = ("JPY", 0, "¥")

    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


DEFAULT_CURRENCY = Currency.INR


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.

    Finite amounts are rounded to the currency precision. NaN and Infinity are
    kept as-is so validators can reject them with a domain error instead of
    failing deep inside arithmetic.
    """
    amount: Decimal
    currency: Currency = DEFAULT_CURRENCY

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', _to_decimal(self.amount))

        if self.amount.is_finite():
            rounded = self.amount.quantize(
                Decimal('0.1') ** self.currency.precision,
                rounding=ROUND_HALF_UP
            )
            object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls, currency: Currency = DEFAULT_CURRENCY) -> 'Money':
        return cls(Decimal('0'), currency)

    @classmethod
    def from_raw(cls, value: Any, currency: Currency = DEFAULT_CURRENCY) -> 'Money':
        """
        Build Money from a raw store value (str, int, Decimal or float).

        Unparseable values, and values too large to hold at the currency
        precision, become NaN so the caller's validation rejects them.
        """
        if isinstance(value, Money):
            return value
        try:
            return cls(_to_decimal(value), currency)
        except (InvalidOperation, TypeError, ValueError):
            return cls(Decimal('NaN'), currency)

    def to_raw(self) -> str:
        """String form written to the store"""
        return str(self.amount)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {verb} Money and {type(other).__name__}")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def is_finite(self) -> bool:
        """False for NaN and Infinity"""
        return self.amount.is_finite()

    def is_zero(self) -> bool:
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative (NaN is not negative)"""
        return not self.amount.is_nan() and self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"

    def to_display(self) -> str:
        """Symbol-prefixed display; INR uses Indian digit grouping (1,23,456.00)"""
        if self.currency == Currency.INR:
            return f"{self.currency.symbol}{format_indian(self.amount, self.currency.precision)}"
        return f"{self.currency.symbol}{self.amount:,.{self.currency.precision}f}"


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, (int, float, str)):
        # str() keeps floats from leaking binary noise into the decimal
        return Decimal(str(value).strip())
    raise TypeError(f"Unsupported monetary value type: {type(value).__name__}")


def sum_money(amounts: Iterable[Money], currency: Currency = DEFAULT_CURRENCY) -> Money:
    """Exact sum of Money values, starting from zero in the given currency"""
    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total


def format_indian(amount: Decimal, precision: int = 2) -> str:
    """
    Format a decimal with Indian digit grouping.

    Args:
        amount: Value to format
        precision: Decimal places to show

    Returns:
        String such as "12,34,567.89"
    """
    quantized = amount.quantize(Decimal('0.1') ** precision, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    text = f"{abs(quantized):.{precision}f}"
    whole, _, fraction = text.partition(".")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    return f"{sign}{whole}.{fraction}" if fraction else f"{sign}{whole}"


def parse_currency(code: Optional[str]) -> Currency:
    """Resolve an ISO code to a Currency, defaulting to INR"""
    if not code:
        return DEFAULT_CURRENCY
    try:
        return Currency[code.upper()]
    except KeyError:
        raise ValueError(f"Unsupported currency code: {code}")
