"""Gifts inter vivos and the hotchpot add-back.

Only the value at the moment of gifting counts toward hotchpot. A later
market estimate can be tracked for reporting but never changes the
add-back figure.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from estate_ledger.domain.assets import AssetType
from estate_ledger.domain.transitions import build_table
from estate_ledger.domain.value_objects import Currency, Money
from estate_ledger.exceptions import (
    CurrencyMismatchError,
    IllegalStateError,
    InvalidAmountError,
    ValidationError,
)

SUBSTANTIAL_GIFT_THRESHOLD = Decimal("0.10")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class GiftStatus(str, Enum):
    CONFIRMED = "confirmed"
    CONTESTED = "contested"
    EXCLUDED = "excluded"
    RECLASSIFIED_AS_LOAN = "reclassified_as_loan"
    VOID = "void"


GIFT_TRANSITIONS = build_table(
    "GiftInterVivos",
    [
        (GiftStatus.CONFIRMED, "contest", GiftStatus.CONTESTED),
        (GiftStatus.CONTESTED, "confirm", GiftStatus.CONFIRMED),
        (GiftStatus.CONTESTED, "exclude", GiftStatus.EXCLUDED),
        (GiftStatus.CONTESTED, "reclassify_as_loan", GiftStatus.RECLASSIFIED_AS_LOAN),
        (GiftStatus.CONTESTED, "void", GiftStatus.VOID),
    ],
    terminal_states=(
        GiftStatus.EXCLUDED,
        GiftStatus.RECLASSIFIED_AS_LOAN,
        GiftStatus.VOID,
    ),
)

_RESOLUTION_ACTIONS: dict[GiftStatus, str] = {
    GiftStatus.CONFIRMED: "confirm",
    GiftStatus.EXCLUDED: "exclude",
    GiftStatus.RECLASSIFIED_AS_LOAN: "reclassify_as_loan",
    GiftStatus.VOID: "void",
}


@dataclass(frozen=True)
class GiftValueCorrection:
    previous_value: Money
    corrected_value: Money
    reason: str
    authorised_by: str
    corrected_at: datetime = field(default_factory=_utc_now)


@dataclass
class GiftInterVivos:
    estate_id: UUID
    recipient_id: UUID
    description: str
    asset_type: AssetType
    value_at_time_of_gift: Money
    date_given: date
    id: UUID = field(default_factory=uuid4)
    is_subject_to_hotchpot: bool = True
    status: GiftStatus = GiftStatus.CONFIRMED
    current_estimated_value: Money | None = None
    contest_reason: str | None = None
    contested_by: str | None = None
    resolution_reason: str | None = None
    corrections: list[GiftValueCorrection] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.description.strip():
            raise ValidationError("Gift description is required")
        if not self.value_at_time_of_gift.is_positive:
            raise InvalidAmountError(
                str(self.value_at_time_of_gift.amount), "gift value must be positive"
            )
        if self.date_given > date.today():
            raise ValidationError(
                f"Gift date {self.date_given} is in the future",
                context={"date_given": self.date_given.isoformat()},
            )

    @property
    def currency(self) -> Currency:
        return self.value_at_time_of_gift.currency

    @property
    def is_contested(self) -> bool:
        return self.status == GiftStatus.CONTESTED

    def get_hotchpot_value(self) -> Money:
        if self.is_subject_to_hotchpot and self.status == GiftStatus.CONFIRMED:
            return self.value_at_time_of_gift
        return Money.zero(self.currency)

    def is_substantial(
        self,
        estate_gross_value: Money,
        threshold: Decimal = SUBSTANTIAL_GIFT_THRESHOLD,
    ) -> bool:
        return self.value_at_time_of_gift >= estate_gross_value * threshold

    def _transition(self, action: str) -> None:
        self.status = GIFT_TRANSITIONS.next_state(self.status, action, self.id)
        self.updated_at = _utc_now()

    def contest(self, reason: str, contested_by: str | None = None) -> None:
        if not reason.strip():
            raise ValidationError("A reason is required to contest a gift")
        self._transition("contest")
        self.contest_reason = reason
        self.contested_by = contested_by

    def resolve_contest(self, outcome: GiftStatus, reason: str) -> None:
        """Settle a contest. Exclusion or reclassification removes it from hotchpot."""
        action = _RESOLUTION_ACTIONS.get(outcome)
        if action is None:
            raise ValidationError(
                f"{outcome.value} is not a contest outcome",
                context={"outcome": outcome.value},
            )
        self._transition(action)
        self.resolution_reason = reason
        if outcome in (GiftStatus.EXCLUDED, GiftStatus.RECLASSIFIED_AS_LOAN):
            self.is_subject_to_hotchpot = False

    def correct_value(
        self, new_value: Money, reason: str, authorised_by: str
    ) -> GiftValueCorrection:
        if not reason.strip() or not authorised_by.strip():
            raise ValidationError("A value correction needs a reason and an authoriser")
        if GIFT_TRANSITIONS.is_terminal(self.status):
            raise IllegalStateError(
                f"Gift {self.id} is {self.status.value}; its value can no longer change",
                context={"gift_id": str(self.id), "current_state": self.status.value},
            )
        if new_value.currency != self.currency:
            raise CurrencyMismatchError(
                "correct", self.currency.value, new_value.currency.value
            )
        if not new_value.is_positive:
            raise InvalidAmountError(str(new_value.amount), "gift value must be positive")
        correction = GiftValueCorrection(
            previous_value=self.value_at_time_of_gift,
            corrected_value=new_value,
            reason=reason,
            authorised_by=authorised_by,
        )
        self.corrections.append(correction)
        self.value_at_time_of_gift = new_value
        self.updated_at = _utc_now()
        return correction

    def update_current_estimate(self, value: Money) -> None:
        if value.currency != self.currency:
            raise CurrencyMismatchError(
                "estimate", self.currency.value, value.currency.value
            )
        self.current_estimated_value = value
        self.updated_at = _utc_now()


__all__ = [
    "GIFT_TRANSITIONS",
    "SUBSTANTIAL_GIFT_THRESHOLD",
    "GiftInterVivos",
    "GiftStatus",
    "GiftValueCorrection",
]
