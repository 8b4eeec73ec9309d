"""Estate liabilities and the S.45 priority classification.

Section 45 of the succession code fixes the order in which an estate's
debts are paid:

1. Funeral expenses
2. Testamentary and administration expenses
3. Secured debts
4. Taxes, rates and wages
5. Unsecured debts

A lower tier number means higher legal priority. The Estate aggregate uses
``DebtPriority.rank`` to refuse payments that would jump the queue.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum, IntEnum
from uuid import UUID, uuid4

from dateutil.relativedelta import relativedelta

from estate_ledger.domain.transitions import build_table
from estate_ledger.domain.value_objects import Currency, Money
from estate_ledger.exceptions import (
    IllegalStateError,
    InvalidAmountError,
    MissingReferenceError,
    ValidationError,
)

UNSECURED_LIMITATION_YEARS = 6
SECURED_LIMITATION_YEARS = 12


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DebtTier(IntEnum):
    FUNERAL_EXPENSES = 1
    TESTAMENTARY_EXPENSES = 2
    SECURED_DEBTS = 3
    TAXES_RATES_WAGES = 4
    UNSECURED_GENERAL = 5


class DebtType(str, Enum):
    FUNERAL_EXPENSE = "funeral_expense"
    ADMINISTRATION_EXPENSE = "administration_expense"
    MORTGAGE = "mortgage"
    ASSET_FINANCE = "asset_finance"
    TAX_OBLIGATION = "tax_obligation"
    ESTATE_DUTY = "estate_duty"
    COUNTY_RATES = "county_rates"
    OUTSTANDING_WAGES = "outstanding_wages"
    PERSONAL_LOAN = "personal_loan"
    CREDIT_CARD = "credit_card"
    BUSINESS_DEBT = "business_debt"
    MEDICAL_BILL = "medical_bill"
    OTHER = "other"


_TIER_BY_TYPE: dict[DebtType, DebtTier] = {
    DebtType.FUNERAL_EXPENSE: DebtTier.FUNERAL_EXPENSES,
    DebtType.ADMINISTRATION_EXPENSE: DebtTier.TESTAMENTARY_EXPENSES,
    DebtType.MORTGAGE: DebtTier.SECURED_DEBTS,
    DebtType.ASSET_FINANCE: DebtTier.SECURED_DEBTS,
    DebtType.TAX_OBLIGATION: DebtTier.TAXES_RATES_WAGES,
    DebtType.ESTATE_DUTY: DebtTier.TAXES_RATES_WAGES,
    DebtType.COUNTY_RATES: DebtTier.TAXES_RATES_WAGES,
    DebtType.OUTSTANDING_WAGES: DebtTier.TAXES_RATES_WAGES,
}


class DebtStatus(str, Enum):
    OUTSTANDING = "outstanding"
    PARTIALLY_PAID = "partially_paid"
    SETTLED = "settled"
    DISPUTED = "disputed"
    WRITTEN_OFF = "written_off"
    STATUTE_BARRED = "statute_barred"


DEBT_TRANSITIONS = build_table(
    "Debt",
    [
        *(
            row
            for status in (DebtStatus.OUTSTANDING, DebtStatus.PARTIALLY_PAID)
            for row in (
                (status, "pay_part", DebtStatus.PARTIALLY_PAID),
                (status, "settle", DebtStatus.SETTLED),
                (status, "dispute", DebtStatus.DISPUTED),
                (status, "write_off", DebtStatus.WRITTEN_OFF),
                (status, "bar", DebtStatus.STATUTE_BARRED),
            )
        ),
        (DebtStatus.DISPUTED, "resolve", DebtStatus.OUTSTANDING),
        (DebtStatus.DISPUTED, "settle", DebtStatus.SETTLED),
        (DebtStatus.DISPUTED, "write_off", DebtStatus.WRITTEN_OFF),
        (DebtStatus.STATUTE_BARRED, "write_off", DebtStatus.WRITTEN_OFF),
    ],
    terminal_states=(DebtStatus.SETTLED, DebtStatus.WRITTEN_OFF),
)


@dataclass(frozen=True)
class DebtPriority:
    tier: DebtTier
    debt_type: DebtType

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "tier", DebtTier(self.tier))
        except ValueError:
            raise ValidationError(
                f"Debt tier must be between 1 and 5, got {self.tier}",
                context={"tier": self.tier},
            ) from None

    @classmethod
    def for_type(cls, debt_type: DebtType) -> "DebtPriority":
        return cls(_TIER_BY_TYPE.get(debt_type, DebtTier.UNSECURED_GENERAL), debt_type)

    @property
    def rank(self) -> int:
        return int(self.tier)

    def outranks(self, other: "DebtPriority") -> bool:
        return self.rank < other.rank


@dataclass
class DisputeInfo:
    reason: str
    raised_by: str | None = None
    raised_at: datetime = field(default_factory=_utc_now)
    resolution: str | None = None
    resolved_at: datetime | None = None


@dataclass
class WriteOffRecord:
    amount: Money
    reason: str
    authorized_by: str
    written_off_at: datetime = field(default_factory=_utc_now)


@dataclass
class Debt:
    """A liability against the estate.

    Owned by the Estate aggregate; callers change it only through Estate
    methods so the waterfall and cash ledger stay consistent.
    """

    estate_id: UUID
    creditor_name: str
    description: str
    debt_type: DebtType
    initial_amount: Money
    id: UUID = field(default_factory=uuid4)
    priority: DebtPriority | None = None
    outstanding_balance: Money | None = None
    is_secured: bool = False
    secured_asset_id: UUID | None = None
    status: DebtStatus = DebtStatus.OUTSTANDING
    dispute_info: DisputeInfo | None = None
    is_statute_barred: bool = False
    incurred_date: date | None = None
    due_date: date | None = None
    last_payment_date: date | None = None
    total_paid: Money | None = None
    write_offs: list[WriteOffRecord] = field(default_factory=list)
    creditor_contact: str | None = None
    reference_number: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.creditor_name.strip():
            raise ValidationError("Debt creditor name is required")
        if self.initial_amount.is_zero:
            raise InvalidAmountError(
                str(self.initial_amount.amount), "debt amount must be positive"
            )
        if self.priority is None:
            self.priority = DebtPriority.for_type(self.debt_type)
        if self.outstanding_balance is None:
            self.outstanding_balance = self.initial_amount
        if self.total_paid is None:
            self.total_paid = Money.zero(self.initial_amount.currency)
        if self.outstanding_balance > self.initial_amount:
            raise InvalidAmountError(
                str(self.outstanding_balance.amount),
                "outstanding balance exceeds the initial amount",
            )
        if self.is_secured and self.secured_asset_id is None:
            raise MissingReferenceError(
                "secured_asset_id", "secured debts must link to a specific asset"
            )

    @property
    def currency(self) -> Currency:
        return self.initial_amount.currency

    @property
    def tier(self) -> DebtTier:
        return self.priority.tier

    @property
    def is_waterfall_eligible(self) -> bool:
        """Disputed and statute-barred debts sit outside the S.45 queue."""
        return self.status != DebtStatus.DISPUTED and not self.is_statute_barred

    @property
    def has_outstanding_balance(self) -> bool:
        return self.outstanding_balance.is_positive

    @property
    def is_mandatory(self) -> bool:
        return (
            self.is_waterfall_eligible
            and self.has_outstanding_balance
            and self.status in (DebtStatus.OUTSTANDING, DebtStatus.PARTIALLY_PAID)
        )

    @property
    def blocks_distribution(self) -> bool:
        return self.is_secured and self.is_mandatory

    @property
    def total_written_off(self) -> Money:
        total = Money.zero(self.currency)
        for record in self.write_offs:
            total = total + record.amount
        return total

    @property
    def waterfall_key(self) -> tuple[int, date, datetime]:
        incurred = self.incurred_date or self.created_at.date()
        return (self.priority.rank, incurred, self.created_at)

    def compare_priority(self, other: "Debt") -> int:
        """Negative when this debt is paid before ``other``."""
        mine, theirs = self.waterfall_key, other.waterfall_key
        return (mine > theirs) - (mine < theirs)

    def _transition(self, action: str) -> None:
        self.status = DEBT_TRANSITIONS.next_state(self.status, action, self.id)
        self.updated_at = _utc_now()

    def ensure_payable(self, amount: Money) -> None:
        """Raise unless ``amount`` could be paid against this debt right now."""
        if self.is_statute_barred:
            raise IllegalStateError(
                f"Debt {self.id} is statute barred and cannot receive payments",
                context={"debt_id": str(self.id), "current_state": self.status.value},
            )
        if not DEBT_TRANSITIONS.allows(self.status, "pay_part"):
            raise IllegalStateError(
                f"Debt {self.id} is {self.status.value} and cannot receive payments",
                context={"debt_id": str(self.id), "current_state": self.status.value},
            )
        if not amount.is_positive:
            raise InvalidAmountError(str(amount.amount), "payment must be positive")
        if amount > self.outstanding_balance:
            raise InvalidAmountError(
                str(amount.amount),
                f"exceeds outstanding balance {self.outstanding_balance.amount}",
            )

    def record_payment(self, amount: Money, paid_on: date | None = None) -> None:
        self.ensure_payable(amount)
        self.outstanding_balance = self.outstanding_balance - amount
        self.total_paid = self.total_paid + amount
        self.last_payment_date = paid_on or date.today()
        self._transition("settle" if self.outstanding_balance.is_zero else "pay_part")

    def dispute(self, reason: str, raised_by: str | None = None) -> None:
        if not reason.strip():
            raise ValidationError("A dispute reason is required")
        self._transition("dispute")
        self.dispute_info = DisputeInfo(reason=reason, raised_by=raised_by)

    def resolve_dispute(self, resolution: str, new_balance: Money | None = None) -> None:
        """Return a disputed debt to the waterfall, optionally at a negotiated balance.

        A negotiated balance of zero settles the debt outright.
        """
        if new_balance is not None and new_balance > self.initial_amount:
            raise InvalidAmountError(
                str(new_balance.amount), "negotiated balance exceeds the initial amount"
            )
        balance = new_balance if new_balance is not None else self.outstanding_balance
        self._transition("settle" if balance.is_zero else "resolve")
        self.outstanding_balance = balance
        if self.dispute_info is not None:
            self.dispute_info.resolution = resolution
            self.dispute_info.resolved_at = _utc_now()

    def write_off(
        self, reason: str, authorized_by: str, amount: Money | None = None
    ) -> Money:
        """Forgive all or part of the outstanding balance. Returns the amount forgiven."""
        if not reason.strip() or not authorized_by.strip():
            raise ValidationError("A write-off needs a reason and an authorizer")
        DEBT_TRANSITIONS.require(self.status, "write_off", self.id)
        forgiven = amount if amount is not None else self.outstanding_balance
        if not forgiven.is_positive:
            raise InvalidAmountError(str(forgiven.amount), "write-off must be positive")
        if forgiven > self.outstanding_balance:
            raise InvalidAmountError(
                str(forgiven.amount),
                f"exceeds outstanding balance {self.outstanding_balance.amount}",
            )
        self.outstanding_balance = self.outstanding_balance - forgiven
        self.write_offs.append(
            WriteOffRecord(amount=forgiven, reason=reason, authorized_by=authorized_by)
        )
        if self.outstanding_balance.is_zero:
            self._transition("write_off")
        else:
            self.updated_at = _utc_now()
        return forgiven

    def mark_statute_barred(self) -> None:
        self._transition("bar")
        self.is_statute_barred = True

    def check_statute_barred(
        self,
        as_of: date,
        unsecured_years: int = UNSECURED_LIMITATION_YEARS,
        secured_years: int = SECURED_LIMITATION_YEARS,
    ) -> bool:
        """Flag the debt once its limitation period has run. Returns the flag."""
        if self.is_statute_barred:
            return True
        if not DEBT_TRANSITIONS.allows(self.status, "bar"):
            return False
        reference = (
            self.last_payment_date
            or self.due_date
            or self.incurred_date
            or self.created_at.date()
        )
        limit = secured_years if self.is_secured else unsecured_years
        if relativedelta(as_of, reference).years >= limit:
            self.mark_statute_barred()
        return self.is_statute_barred


__all__ = [
    "DEBT_TRANSITIONS",
    "Debt",
    "DebtPriority",
    "DebtStatus",
    "DebtTier",
    "DebtType",
    "DisputeInfo",
    "WriteOffRecord",
]
