from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from estate_ledger.domain.debts import Debt, DebtPriority, DebtStatus, DebtTier, DebtType
from estate_ledger.domain.value_objects import Money
from estate_ledger.exceptions import (
    IllegalStateError,
    InvalidAmountError,
    InvalidTransitionError,
    MissingReferenceError,
    ValidationError,
)


def kes(amount: str) -> Money:
    return Money(Decimal(amount), "KES")


def make_debt(debt_type: DebtType = DebtType.PERSONAL_LOAN, amount: str = "10000", **kwargs) -> Debt:
    return Debt(
        estate_id=uuid4(),
        creditor_name="Equity Bank",
        description="Outstanding loan",
        debt_type=debt_type,
        initial_amount=kes(amount),
        **kwargs,
    )


class TestDebtPriority:
    @pytest.mark.parametrize(
        ("debt_type", "tier"),
        [
            (DebtType.FUNERAL_EXPENSE, 1),
            (DebtType.ADMINISTRATION_EXPENSE, 2),
            (DebtType.MORTGAGE, 3),
            (DebtType.ASSET_FINANCE, 3),
            (DebtType.TAX_OBLIGATION, 4),
            (DebtType.ESTATE_DUTY, 4),
            (DebtType.COUNTY_RATES, 4),
            (DebtType.OUTSTANDING_WAGES, 4),
            (DebtType.PERSONAL_LOAN, 5),
            (DebtType.CREDIT_CARD, 5),
            (DebtType.BUSINESS_DEBT, 5),
            (DebtType.MEDICAL_BILL, 5),
            (DebtType.OTHER, 5),
        ],
    )
    def test_for_type_maps_to_tier(self, debt_type, tier):
        assert DebtPriority.for_type(debt_type).rank == tier

    @pytest.mark.parametrize("tier", [0, 6])
    def test_tier_out_of_range_raises(self, tier):
        with pytest.raises(ValidationError, match="between 1 and 5"):
            DebtPriority(tier, DebtType.OTHER)

    def test_outranks(self):
        funeral = DebtPriority.for_type(DebtType.FUNERAL_EXPENSE)
        loan = DebtPriority.for_type(DebtType.PERSONAL_LOAN)

        assert funeral.outranks(loan)
        assert not loan.outranks(funeral)
        assert funeral.tier == DebtTier.FUNERAL_EXPENSES


class TestDebtCreation:
    def test_defaults_from_initial_amount(self):
        debt = make_debt(amount="5000")

        assert debt.outstanding_balance == kes("5000")
        assert debt.total_paid == Money.zero("KES")
        assert debt.status == DebtStatus.OUTSTANDING
        assert debt.tier == DebtTier.UNSECURED_GENERAL

    def test_zero_amount_raises(self):
        with pytest.raises(InvalidAmountError):
            make_debt(amount="0")

    def test_blank_creditor_raises(self):
        with pytest.raises(ValidationError):
            Debt(
                estate_id=uuid4(),
                creditor_name="  ",
                description="x",
                debt_type=DebtType.OTHER,
                initial_amount=kes("1"),
            )

    def test_secured_debt_needs_asset(self):
        with pytest.raises(MissingReferenceError):
            make_debt(DebtType.MORTGAGE, is_secured=True)


class TestDebtPayments:
    def test_partial_payment(self):
        debt = make_debt(amount="10000")

        debt.record_payment(kes("4000"), date(2024, 5, 1))

        assert debt.outstanding_balance == kes("6000")
        assert debt.total_paid == kes("4000")
        assert debt.status == DebtStatus.PARTIALLY_PAID
        assert debt.last_payment_date == date(2024, 5, 1)

    def test_full_payment_settles(self):
        debt = make_debt(amount="10000")

        debt.record_payment(kes("4000"))
        debt.record_payment(kes("6000"))

        assert debt.outstanding_balance.is_zero
        assert debt.status == DebtStatus.SETTLED
        assert not debt.has_outstanding_balance

    def test_overpayment_raises(self):
        debt = make_debt(amount="10000")

        with pytest.raises(InvalidAmountError, match="exceeds outstanding balance"):
            debt.record_payment(kes("10000.01"))

        assert debt.outstanding_balance == kes("10000")

    def test_zero_payment_raises(self):
        with pytest.raises(InvalidAmountError):
            make_debt().record_payment(Money.zero("KES"))

    def test_settled_debt_rejects_payment(self):
        debt = make_debt(amount="100")
        debt.record_payment(kes("100"))

        with pytest.raises(IllegalStateError):
            debt.record_payment(kes("1"))

    def test_disputed_debt_rejects_payment(self):
        debt = make_debt(amount="100")
        debt.dispute("Amount inflated")

        with pytest.raises(IllegalStateError):
            debt.record_payment(kes("50"))

        assert debt.outstanding_balance == kes("100")


class TestDebtDisputes:
    def test_dispute_leaves_waterfall(self):
        debt = make_debt()

        debt.dispute("Signature forged", raised_by="heir-1")

        assert debt.status == DebtStatus.DISPUTED
        assert not debt.is_waterfall_eligible
        assert not debt.is_mandatory
        assert debt.dispute_info.reason == "Signature forged"

    def test_dispute_needs_reason(self):
        with pytest.raises(ValidationError):
            make_debt().dispute(" ")

    def test_resolve_restores_with_negotiated_balance(self):
        debt = make_debt(amount="10000")
        debt.dispute("Overstated")

        debt.resolve_dispute("Settled in mediation", kes("7500"))

        assert debt.status == DebtStatus.OUTSTANDING
        assert debt.outstanding_balance == kes("7500")
        assert debt.is_waterfall_eligible
        assert debt.dispute_info.resolution == "Settled in mediation"

    def test_resolve_to_zero_settles(self):
        debt = make_debt(amount="10000")
        debt.dispute("Already paid")

        debt.resolve_dispute("Receipt produced", Money.zero("KES"))

        assert debt.status == DebtStatus.SETTLED

    def test_negotiated_balance_above_initial_raises(self):
        debt = make_debt(amount="100")
        debt.dispute("x")

        with pytest.raises(InvalidAmountError):
            debt.resolve_dispute("y", kes("101"))

    def test_resolve_without_dispute_raises(self):
        with pytest.raises(InvalidTransitionError):
            make_debt().resolve_dispute("nothing to resolve")


class TestBlocksDistribution:
    def test_outstanding_secured_debt_blocks(self):
        debt = make_debt(DebtType.MORTGAGE, is_secured=True, secured_asset_id=uuid4())

        assert debt.blocks_distribution

    def test_unsecured_debt_never_blocks(self):
        assert not make_debt().blocks_distribution

    def test_disputed_secured_debt_does_not_block(self):
        debt = make_debt(DebtType.MORTGAGE, is_secured=True, secured_asset_id=uuid4())

        debt.dispute("Charge never registered")

        assert not debt.blocks_distribution

    def test_settled_secured_debt_does_not_block(self):
        debt = make_debt(DebtType.MORTGAGE, "100", is_secured=True, secured_asset_id=uuid4())

        debt.record_payment(kes("100"))

        assert debt.status == DebtStatus.SETTLED
        assert not debt.blocks_distribution


class TestDebtWriteOff:
    def test_full_write_off(self):
        debt = make_debt(amount="10000")

        forgiven = debt.write_off("Creditor waived", "Executor A")

        assert forgiven == kes("10000")
        assert debt.status == DebtStatus.WRITTEN_OFF
        assert debt.outstanding_balance.is_zero
        assert debt.write_offs[0].authorized_by == "Executor A"

    def test_partial_write_off_keeps_status(self):
        debt = make_debt(amount="10000")

        debt.write_off("Interest waived", "Executor A", kes("1500"))

        assert debt.status == DebtStatus.OUTSTANDING
        assert debt.outstanding_balance == kes("8500")
        assert debt.total_written_off == kes("1500")

    def test_write_off_more_than_balance_raises(self):
        with pytest.raises(InvalidAmountError):
            make_debt(amount="100").write_off("x", "y", kes("200"))

    def test_write_off_needs_authorizer(self):
        with pytest.raises(ValidationError):
            make_debt().write_off("reason", " ")

    def test_settled_debt_cannot_be_written_off(self):
        debt = make_debt(amount="100")
        debt.record_payment(kes("100"))

        with pytest.raises(InvalidTransitionError):
            debt.write_off("late", "Executor A")


class TestStatuteBarred:
    def test_unsecured_debt_barred_after_six_years(self):
        debt = make_debt(incurred_date=date(2015, 1, 1))

        assert not debt.check_statute_barred(date(2020, 12, 31))
        assert debt.check_statute_barred(date(2021, 1, 1))
        assert debt.is_statute_barred
        assert debt.status == DebtStatus.STATUTE_BARRED
        assert not debt.is_waterfall_eligible

    def test_secured_debt_uses_longer_period(self):
        debt = make_debt(
            DebtType.MORTGAGE,
            is_secured=True,
            secured_asset_id=uuid4(),
            incurred_date=date(2015, 1, 1),
        )

        assert not debt.check_statute_barred(date(2021, 1, 1))
        assert debt.check_statute_barred(date(2027, 1, 1))

    def test_last_payment_restarts_the_clock(self):
        debt = make_debt(amount="1000", incurred_date=date(2010, 1, 1))
        debt.record_payment(kes("100"), date(2018, 6, 1))

        assert not debt.check_statute_barred(date(2022, 1, 1))

    def test_custom_periods(self):
        debt = make_debt(incurred_date=date(2020, 1, 1))

        assert debt.check_statute_barred(date(2023, 1, 1), unsecured_years=3)

    def test_settled_debt_is_never_barred(self):
        debt = make_debt(amount="100", incurred_date=date(2000, 1, 1))
        debt.record_payment(kes("100"), date(2001, 1, 1))

        assert not debt.check_statute_barred(date(2024, 1, 1))

    def test_barred_debt_rejects_payment(self):
        debt = make_debt(incurred_date=date(2000, 1, 1))
        debt.check_statute_barred(date(2024, 1, 1))

        with pytest.raises(IllegalStateError, match="statute barred"):
            debt.record_payment(kes("1"))


class TestWaterfallKey:
    def test_tier_orders_before_date(self):
        funeral = make_debt(DebtType.FUNERAL_EXPENSE, incurred_date=date(2024, 2, 1))
        loan = make_debt(DebtType.PERSONAL_LOAN, incurred_date=date(2020, 1, 1))

        assert funeral.compare_priority(loan) < 0
        assert loan.compare_priority(funeral) > 0

    def test_older_debt_first_within_tier(self):
        older = make_debt(incurred_date=date(2020, 1, 1))
        newer = make_debt(incurred_date=date(2022, 1, 1))

        assert sorted([newer, older], key=lambda d: d.waterfall_key) == [older, newer]
