from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from estate_ledger.domain.assets import AssetType
from estate_ledger.domain.gifts import GiftInterVivos, GiftStatus
from estate_ledger.domain.value_objects import Money
from estate_ledger.exceptions import (
    CurrencyMismatchError,
    IllegalStateError,
    InvalidAmountError,
    InvalidTransitionError,
    ValidationError,
)


def kes(amount: str) -> Money:
    return Money(Decimal(amount), "KES")


@pytest.fixture
def gift() -> GiftInterVivos:
    return GiftInterVivos(
        estate_id=uuid4(),
        recipient_id=uuid4(),
        description="Plot in Ruiru given to eldest son",
        asset_type=AssetType.LAND,
        value_at_time_of_gift=kes("200000"),
        date_given=date(2015, 4, 1),
    )


class TestGiftCreation:
    def test_future_date_rejected(self):
        with pytest.raises(ValidationError, match="future"):
            GiftInterVivos(
                estate_id=uuid4(),
                recipient_id=uuid4(),
                description="Car",
                asset_type=AssetType.VEHICLE,
                value_at_time_of_gift=kes("100"),
                date_given=date.today() + timedelta(days=1),
            )

    def test_zero_value_rejected(self):
        with pytest.raises(InvalidAmountError):
            GiftInterVivos(
                estate_id=uuid4(),
                recipient_id=uuid4(),
                description="Car",
                asset_type=AssetType.VEHICLE,
                value_at_time_of_gift=Money.zero("KES"),
                date_given=date(2020, 1, 1),
            )


class TestHotchpot:
    def test_confirmed_gift_counts_at_gift_value(self, gift):
        assert gift.get_hotchpot_value() == kes("200000")

    def test_later_estimate_does_not_change_hotchpot(self, gift):
        gift.update_current_estimate(kes("500000"))

        assert gift.current_estimated_value == kes("500000")
        assert gift.get_hotchpot_value() == kes("200000")
        assert gift.is_substantial(kes("1000000"))

    def test_is_substantial_boundary(self, gift):
        assert gift.is_substantial(kes("2000000"))
        assert not gift.is_substantial(kes("2000000.10"))

    def test_custom_threshold(self, gift):
        assert not gift.is_substantial(kes("1000000"), threshold=Decimal("0.25"))

    def test_estimate_currency_must_match(self, gift):
        with pytest.raises(CurrencyMismatchError):
            gift.update_current_estimate(Money(Decimal("1"), "USD"))

    def test_contested_gift_is_out_of_hotchpot(self, gift):
        gift.contest("Was a loan", contested_by="daughter")

        assert gift.is_contested
        assert gift.get_hotchpot_value().is_zero


class TestGiftContest:
    @pytest.mark.parametrize(
        ("outcome", "hotchpot"),
        [
            (GiftStatus.CONFIRMED, "200000"),
            (GiftStatus.EXCLUDED, "0"),
            (GiftStatus.RECLASSIFIED_AS_LOAN, "0"),
            (GiftStatus.VOID, "0"),
        ],
    )
    def test_resolution_outcomes(self, gift, outcome, hotchpot):
        gift.contest("Disputed by siblings")

        gift.resolve_contest(outcome, "Court ruling")

        assert gift.status == outcome
        assert gift.resolution_reason == "Court ruling"
        assert gift.get_hotchpot_value() == kes(hotchpot)

    def test_contested_is_not_an_outcome(self, gift):
        gift.contest("x")

        with pytest.raises(ValidationError, match="not a contest outcome"):
            gift.resolve_contest(GiftStatus.CONTESTED, "y")

    def test_resolve_without_contest_raises(self, gift):
        with pytest.raises(InvalidTransitionError):
            gift.resolve_contest(GiftStatus.EXCLUDED, "nothing to resolve")

    def test_contest_needs_reason(self, gift):
        with pytest.raises(ValidationError):
            gift.contest(" ")


class TestGiftValueCorrection:
    def test_correction_replaces_gift_value(self, gift):
        correction = gift.correct_value(kes("180000"), "Valuation report error", "Court")

        assert gift.value_at_time_of_gift == kes("180000")
        assert correction.previous_value == kes("200000")
        assert gift.corrections == [correction]

    def test_correction_rejected_once_excluded(self, gift):
        gift.contest("x")
        gift.resolve_contest(GiftStatus.EXCLUDED, "y")

        with pytest.raises(IllegalStateError):
            gift.correct_value(kes("1"), "late", "Court")

    def test_correction_needs_authoriser(self, gift):
        with pytest.raises(ValidationError):
            gift.correct_value(kes("1"), "reason", "")

    def test_correction_to_zero_rejected(self, gift):
        with pytest.raises(InvalidAmountError):
            gift.correct_value(Money.zero("KES"), "reason", "Court")
