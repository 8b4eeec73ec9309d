from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from estate_ledger.exceptions import (
    CurrencyMismatchError,
    InvalidAmountError,
    InvalidCurrencyError,
    ValidationError,
)

CENT = Decimal("0.01")
MINOR_UNITS_PER_MAJOR = 100


class Currency(str, Enum):
    KES = "KES"
    UGX = "UGX"
    TZS = "TZS"
    RWF = "RWF"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    ZAR = "ZAR"


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmountError(str(value), "not a number") from None


@dataclass(frozen=True, slots=True)
class Money:
    """An exact, currency-tagged, non-negative amount with at most two decimals."""

    amount: Decimal
    currency: Currency | str = "KES"

    def __post_init__(self) -> None:
        amount = _to_decimal(self.amount)
        if not amount.is_finite():
            raise InvalidAmountError(str(amount), "must be finite")
        if amount < 0:
            raise InvalidAmountError(str(amount), "must not be negative")
        if amount != amount.quantize(CENT):
            raise InvalidAmountError(str(amount), "more than two decimal places")
        object.__setattr__(self, "amount", amount.quantize(CENT))

        if isinstance(self.currency, Currency):
            pass
        elif isinstance(self.currency, str):
            try:
                object.__setattr__(self, "currency", Currency[self.currency.upper()])
            except KeyError:
                raise InvalidCurrencyError(self.currency) from None
        else:
            raise InvalidCurrencyError(str(self.currency))

    def _check_currency(self, other: "Money", operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                operation, self.currency.value, other.currency.value
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other, "subtract")
        if other.amount > self.amount:
            raise InvalidAmountError(
                f"{self.amount} - {other.amount}", "result would be negative"
            )
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Decimal | int | float | str) -> "Money":
        factor = _to_decimal(factor)
        if factor < 0:
            raise InvalidAmountError(str(factor), "multiplier must not be negative")
        product = (self.amount * factor).quantize(CENT, rounding=ROUND_HALF_UP)
        return Money(product, self.currency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount == other.amount and self.currency == other.currency

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        return self == other or self < other

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        return self == other or self > other

    def __str__(self) -> str:
        return f"{self.currency.value} {self.amount:,.2f}"

    add = __add__
    subtract = __sub__
    multiply = __mul__

    def is_greater_than(self, other: "Money") -> bool:
        return self > other

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def minor_units(self) -> int:
        return int(self.amount * MINOR_UNITS_PER_MAJOR)

    @classmethod
    def from_minor_units(cls, units: int, currency: Currency | str = "KES") -> "Money":
        return cls(Decimal(units) / MINOR_UNITS_PER_MAJOR, currency)

    @classmethod
    def zero(cls, currency: Currency | str = "KES") -> "Money":
        return cls(Decimal("0"), currency)

    def allocate(self, ratios: Sequence[Decimal | int | float | str]) -> list["Money"]:
        """Split this amount proportionally to ``ratios`` without losing a cent.

        Each part gets the floor of its proportional share in minor units.
        The leftover minor units go one at a time to the earliest parts with a
        non-zero ratio, so the parts always sum to the original amount.

        Raises:
            ValidationError: If ratios is empty, contains a negative ratio,
                or every ratio is zero.
        """
        if not ratios:
            raise ValidationError("Cannot allocate across an empty ratio list")
        weights = [_to_decimal(r) for r in ratios]
        if any(w < 0 for w in weights):
            raise ValidationError(
                "Allocation ratios must not be negative",
                context={"ratios": [str(w) for w in weights]},
            )
        total_weight = sum(weights, Decimal("0"))
        if total_weight == 0:
            raise ValidationError(
                "Allocation ratios must not all be zero",
                context={"ratios": [str(w) for w in weights]},
            )

        total_units = self.minor_units
        parts = [int((total_units * w) // total_weight) for w in weights]
        leftover = total_units - sum(parts)
        for index, weight in enumerate(weights):
            if leftover == 0:
                break
            if weight > 0:
                parts[index] += 1
                leftover -= 1

        return [Money.from_minor_units(units, self.currency) for units in parts]


__all__ = [
    "CENT",
    "Currency",
    "Money",
]
