"""The Estate aggregate root.

Estate owns every asset, debt, gift and dependant claim of one deceased
person and is the only way to change them. Each public mutation checks
the freeze flag, validates everything it needs before touching state,
applies the change and buffers one or more EstateEvent records for the
caller to persist and publish after a successful save.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from estate_ledger.domain.assets import (
    ASSET_TRANSITIONS,
    Asset,
    AssetCoOwner,
    AssetEncumbranceType,
    AssetStatus,
    CoOwnershipType,
    ValuationSource,
)
from estate_ledger.domain.debts import (
    SECURED_LIMITATION_YEARS,
    UNSECURED_LIMITATION_YEARS,
    Debt,
    DebtStatus,
    DebtTier,
    DebtType,
)
from estate_ledger.domain.dependants import Dependant
from estate_ledger.domain.events import EstateEvent, EstateEventType
from estate_ledger.domain.gifts import (
    SUBSTANTIAL_GIFT_THRESHOLD,
    GiftInterVivos,
    GiftStatus,
)
from estate_ledger.domain.liquidation import (
    DEFAULT_COMMISSION_RATE,
    LIQUIDATION_TRANSITIONS,
    AssetLiquidation,
    BuyerInfo,
    LiquidationType,
)
from estate_ledger.domain.transitions import build_table
from estate_ledger.domain.value_objects import Currency, Money
from estate_ledger.exceptions import (
    CurrencyMismatchError,
    DistributionNotReadyError,
    EstateFrozenError,
    IllegalStateError,
    InsufficientCashError,
    InvalidAmountError,
    MissingReferenceError,
    PriorityViolationError,
    TerminalLiquidationError,
    ValidationError,
)

DEFAULT_TAX_AUTHORITY = "Kenya Revenue Authority"

# Debts in these tiers must be cleared before anything is distributed.
DISTRIBUTION_BLOCKING_TIERS = frozenset(
    {DebtTier.FUNERAL_EXPENSES, DebtTier.TESTAMENTARY_EXPENSES, DebtTier.SECURED_DEBTS}
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class EstateStatus(str, Enum):
    SETUP = "setup"
    ACTIVE = "active"
    FROZEN = "frozen"
    LIQUIDATING = "liquidating"
    READY_FOR_DISTRIBUTION = "ready_for_distribution"
    DISTRIBUTING = "distributing"
    CLOSED = "closed"


# FROZEN is entered and left by freeze/unfreeze, which are always allowed
# and restore the prior status, so it has no rows here.
ESTATE_TRANSITIONS = build_table(
    "Estate",
    [
        (EstateStatus.SETUP, "activate", EstateStatus.ACTIVE),
        (EstateStatus.SETUP, "begin_liquidation", EstateStatus.LIQUIDATING),
        (EstateStatus.ACTIVE, "begin_liquidation", EstateStatus.LIQUIDATING),
        (EstateStatus.ACTIVE, "mark_ready", EstateStatus.READY_FOR_DISTRIBUTION),
        (EstateStatus.LIQUIDATING, "mark_ready", EstateStatus.READY_FOR_DISTRIBUTION),
        (EstateStatus.READY_FOR_DISTRIBUTION, "reopen", EstateStatus.ACTIVE),
        (EstateStatus.READY_FOR_DISTRIBUTION, "start_distribution", EstateStatus.DISTRIBUTING),
        (EstateStatus.DISTRIBUTING, "complete_distribution", EstateStatus.CLOSED),
    ],
    terminal_states=(EstateStatus.CLOSED,),
)


class TaxStatus(str, Enum):
    PENDING = "pending"
    ASSESSED = "assessed"
    PARTIALLY_PAID = "partially_paid"
    CLEARED = "cleared"
    EXEMPT = "exempt"
    DISPUTED = "disputed"


TAX_TRANSITIONS = build_table(
    "TaxCompliance",
    [
        (TaxStatus.PENDING, "assess", TaxStatus.ASSESSED),
        (TaxStatus.PENDING, "clear", TaxStatus.CLEARED),
        (TaxStatus.PENDING, "exempt", TaxStatus.EXEMPT),
        (TaxStatus.ASSESSED, "pay", TaxStatus.PARTIALLY_PAID),
        (TaxStatus.ASSESSED, "clear", TaxStatus.CLEARED),
        (TaxStatus.ASSESSED, "dispute", TaxStatus.DISPUTED),
        (TaxStatus.ASSESSED, "exempt", TaxStatus.EXEMPT),
        (TaxStatus.PARTIALLY_PAID, "pay", TaxStatus.PARTIALLY_PAID),
        (TaxStatus.PARTIALLY_PAID, "clear", TaxStatus.CLEARED),
        (TaxStatus.PARTIALLY_PAID, "dispute", TaxStatus.DISPUTED),
        (TaxStatus.DISPUTED, "assess", TaxStatus.ASSESSED),
    ],
    terminal_states=(TaxStatus.CLEARED, TaxStatus.EXEMPT),
)


@dataclass
class TaxCompliance:
    status: TaxStatus = TaxStatus.PENDING
    debt_id: UUID | None = None
    assessment_reference: str | None = None
    clearance_certificate: str | None = None
    exemption_reason: str | None = None
    dispute_reason: str | None = None
    cleared_at: datetime | None = None

    @property
    def is_cleared(self) -> bool:
        return self.status in (TaxStatus.CLEARED, TaxStatus.EXEMPT)


class ReadinessCheck(str, Enum):
    NOT_FROZEN = "not_frozen"
    SOLVENT = "solvent"
    PRIORITY_DEBTS_CLEARED = "priority_debts_cleared"
    NO_UNRESOLVED_DISPUTES = "no_unresolved_disputes"
    LIQUIDATIONS_FINISHED = "liquidations_finished"
    TAX_CLEARED = "tax_cleared"


@dataclass(frozen=True)
class ReadinessBlocker:
    check: ReadinessCheck
    message: str


@dataclass(frozen=True)
class DistributionReadiness:
    blockers: tuple[ReadinessBlocker, ...] = ()

    @property
    def is_ready(self) -> bool:
        return not self.blockers

    @property
    def reasons(self) -> list[str]:
        return [blocker.message for blocker in self.blockers]

    @property
    def failed_checks(self) -> list[ReadinessCheck]:
        return [blocker.check for blocker in self.blockers]


@dataclass
class Estate:
    """Aggregate root for one deceased person's estate.

    Child entities live in id-keyed dicts owned by the estate. ``version``
    is the optimistic-concurrency counter; repositories bump it on commit.
    """

    deceased_id: UUID
    name: str
    cash_on_hand: Money
    id: UUID = field(default_factory=uuid4)
    status: EstateStatus = EstateStatus.SETUP
    is_frozen: bool = False
    freeze_reason: str | None = None
    frozen_at: datetime | None = None
    status_before_freeze: EstateStatus | None = None
    cash_reserved_for_debts: Money | None = None
    assets: dict[UUID, Asset] = field(default_factory=dict)
    debts: dict[UUID, Debt] = field(default_factory=dict)
    gifts: dict[UUID, GiftInterVivos] = field(default_factory=dict)
    dependants: dict[UUID, Dependant] = field(default_factory=dict)
    tax_compliance: TaxCompliance = field(default_factory=TaxCompliance)
    date_of_death: date | None = None
    version: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    closed_at: datetime | None = None
    acting_as: str | None = field(default=None, repr=False, compare=False)
    _pending_events: list[EstateEvent] = field(
        default_factory=list, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValidationError("Estate name is required")
        if self.cash_reserved_for_debts is None:
            self.cash_reserved_for_debts = Money.zero(self.currency)
        self._check_currency(self.cash_reserved_for_debts, "reserve")
        if self.cash_reserved_for_debts > self.cash_on_hand:
            raise InvalidAmountError(
                str(self.cash_reserved_for_debts.amount),
                "reserved cash exceeds cash on hand",
            )

    @classmethod
    def create(
        cls,
        deceased_id: UUID,
        name: str,
        opening_cash: Money | None = None,
        currency: Currency | str = Currency.KES,
        date_of_death: date | None = None,
        actor_id: str | None = None,
    ) -> "Estate":
        estate = cls(
            deceased_id=deceased_id,
            name=name,
            cash_on_hand=opening_cash if opening_cash is not None else Money.zero(currency),
            date_of_death=date_of_death,
            acting_as=actor_id,
        )
        estate._record(
            EstateEventType.ESTATE_CREATED,
            deceased_id=str(deceased_id),
            name=name,
            opening_cash=str(estate.cash_on_hand.amount),
            currency=estate.currency.value,
        )
        return estate

    # =========================================================================
    # Events and versioning
    # =========================================================================

    @property
    def pending_events(self) -> tuple[EstateEvent, ...]:
        return tuple(self._pending_events)

    def _record(self, event_type: EstateEventType, **payload: Any) -> None:
        self._pending_events.append(
            EstateEvent(
                event_type=event_type,
                estate_id=self.id,
                payload=payload,
                actor_id=self.acting_as,
            )
        )
        self.updated_at = _utc_now()

    def mark_committed(self) -> list[EstateEvent]:
        """Advance the version after a save and hand back the flushed events."""
        self.version += 1
        events, self._pending_events = self._pending_events, []
        return events

    # =========================================================================
    # Guards and lookups
    # =========================================================================

    @property
    def currency(self) -> Currency:
        return self.cash_on_hand.currency

    @property
    def available_cash(self) -> Money:
        return self.cash_on_hand - self.cash_reserved_for_debts

    @property
    def is_closed(self) -> bool:
        return self.status == EstateStatus.CLOSED

    def _ensure_mutable(self, action: str) -> None:
        if self.is_frozen:
            raise EstateFrozenError(self.id, action, self.freeze_reason)
        if self.is_closed:
            raise IllegalStateError(
                f"Estate {self.id} is closed; cannot {action}",
                context={
                    "estate_id": str(self.id),
                    "current_state": self.status.value,
                    "requested": action,
                },
            )

    def _check_currency(self, amount: Money, operation: str) -> None:
        if amount.currency != self.currency:
            raise CurrencyMismatchError(
                operation, self.currency.value, amount.currency.value
            )

    def _check_owned(self, child_estate_id: UUID, kind: str) -> None:
        if child_estate_id != self.id:
            raise ValidationError(
                f"{kind} belongs to estate {child_estate_id}, not {self.id}",
                context={"estate_id": str(self.id), "child_estate_id": str(child_estate_id)},
            )

    def get_asset(self, asset_id: UUID) -> Asset:
        try:
            return self.assets[asset_id]
        except KeyError:
            raise MissingReferenceError(str(asset_id), "asset not in this estate") from None

    def get_debt(self, debt_id: UUID) -> Debt:
        try:
            return self.debts[debt_id]
        except KeyError:
            raise MissingReferenceError(str(debt_id), "debt not in this estate") from None

    def get_gift(self, gift_id: UUID) -> GiftInterVivos:
        try:
            return self.gifts[gift_id]
        except KeyError:
            raise MissingReferenceError(str(gift_id), "gift not in this estate") from None

    def get_dependant(self, dependant_id: UUID) -> Dependant:
        try:
            return self.dependants[dependant_id]
        except KeyError:
            raise MissingReferenceError(
                str(dependant_id), "dependant not in this estate"
            ) from None

    # =========================================================================
    # Status lifecycle
    # =========================================================================

    def _transition(self, action: str) -> None:
        previous = self.status
        self.status = ESTATE_TRANSITIONS.next_state(self.status, action, self.id)
        self.updated_at = _utc_now()
        if previous != self.status and self.status == EstateStatus.READY_FOR_DISTRIBUTION:
            self._record(EstateEventType.ESTATE_READY_FOR_DISTRIBUTION)

    def activate(self) -> None:
        self._ensure_mutable("activate")
        self._transition("activate")

    def freeze(self, reason: str, frozen_by: str | None = None) -> None:
        """Halt every mutation. Always permitted; re-freezing updates the reason."""
        if not reason.strip():
            raise ValidationError("A freeze reason is required")
        if not self.is_frozen:
            self.status_before_freeze = self.status
            self.status = EstateStatus.FROZEN
            self.is_frozen = True
            self.frozen_at = _utc_now()
        self.freeze_reason = reason
        self._record(EstateEventType.ESTATE_FROZEN, reason=reason, frozen_by=frozen_by)

    def unfreeze(self, reason: str, unfrozen_by: str | None = None) -> None:
        """Lift a freeze and restore the prior status. No-op when not frozen."""
        if not self.is_frozen:
            return
        self.status = self.status_before_freeze or EstateStatus.ACTIVE
        self.status_before_freeze = None
        self.is_frozen = False
        self.freeze_reason = None
        self.frozen_at = None
        self._record(EstateEventType.ESTATE_UNFROZEN, reason=reason, unfrozen_by=unfrozen_by)

    def mark_ready_for_distribution(self) -> DistributionReadiness:
        self._ensure_mutable("mark ready for distribution")
        readiness = self.validate_distribution_readiness()
        if not readiness.is_ready:
            raise DistributionNotReadyError(self.id, readiness.reasons)
        self._transition("mark_ready")
        return readiness

    def start_distribution(self) -> None:
        self._ensure_mutable("start distribution")
        readiness = self.validate_distribution_readiness()
        if not readiness.is_ready:
            raise DistributionNotReadyError(self.id, readiness.reasons)
        if self.status != EstateStatus.READY_FOR_DISTRIBUTION:
            ESTATE_TRANSITIONS.require(self.status, "mark_ready", self.id)
            self._transition("mark_ready")
        self._transition("start_distribution")
        self._record(
            EstateEventType.ESTATE_DISTRIBUTION_STARTED,
            distributable_pool=str(self.calculate_distributable_pool().amount),
        )

    def complete_distribution(self) -> None:
        self._ensure_mutable("complete distribution")
        self._transition("complete_distribution")
        self.closed_at = _utc_now()
        self._record(EstateEventType.ESTATE_DISTRIBUTION_COMPLETED)
        self._record(EstateEventType.ESTATE_CLOSED)

    # =========================================================================
    # Cash ledger
    # =========================================================================

    def _cash_updated(self, reason: str) -> None:
        self._record(
            EstateEventType.ESTATE_CASH_UPDATED,
            reason=reason,
            cash_on_hand=str(self.cash_on_hand.amount),
            cash_reserved_for_debts=str(self.cash_reserved_for_debts.amount),
        )

    def _require_available(self, amount: Money) -> None:
        if amount > self.available_cash:
            raise InsufficientCashError(
                self.id, str(amount.amount), str(self.available_cash.amount)
            )

    def record_cash_deposit(self, amount: Money, source: str) -> None:
        self._ensure_mutable("deposit cash")
        self._check_currency(amount, "deposit")
        if not amount.is_positive:
            raise InvalidAmountError(str(amount.amount), "deposit must be positive")
        self.cash_on_hand = self.cash_on_hand + amount
        self._cash_updated(f"deposit: {source}")

    def record_cash_withdrawal(self, amount: Money, purpose: str) -> None:
        """Spend unreserved cash on something other than a debt."""
        self._ensure_mutable("withdraw cash")
        self._check_currency(amount, "withdraw")
        if not amount.is_positive:
            raise InvalidAmountError(str(amount.amount), "withdrawal must be positive")
        self._require_available(amount)
        self.cash_on_hand = self.cash_on_hand - amount
        self._cash_updated(f"withdrawal: {purpose}")

    def reserve_cash_for_debts(self, amount: Money) -> None:
        self._ensure_mutable("reserve cash")
        self._check_currency(amount, "reserve")
        self._require_available(amount)
        self.cash_reserved_for_debts = self.cash_reserved_for_debts + amount
        self._cash_updated("reserved for debts")

    def release_reserved_cash(self, amount: Money) -> None:
        self._ensure_mutable("release reserved cash")
        self._check_currency(amount, "release")
        if amount > self.cash_reserved_for_debts:
            raise InsufficientCashError(
                self.id, str(amount.amount), str(self.cash_reserved_for_debts.amount)
            )
        self.cash_reserved_for_debts = self.cash_reserved_for_debts - amount
        self._cash_updated("released from reserve")

    def _payable_balance(self, debt: Debt) -> Money:
        return debt.outstanding_balance if debt.is_mandatory else Money.zero(self.currency)

    def _reserve_for_debt(self, debt: Debt, amount: Money) -> None:
        reserve = min(self.available_cash, amount)
        if reserve.is_positive:
            self.cash_reserved_for_debts = self.cash_reserved_for_debts + reserve
            self._cash_updated(f"reserved for debt {debt.id}")

    def _release_unneeded_reserve(self) -> None:
        """Shrink the reserve to what payable debts still demand."""
        owed = self._sum(
            debt.outstanding_balance for debt in self.debts.values() if debt.is_mandatory
        )
        if self.cash_reserved_for_debts > owed:
            self.cash_reserved_for_debts = owed
            self._cash_updated("released reserve no longer owed")

    def _follow_payable_change(self, debt: Debt, payable_before: Money) -> None:
        payable_after = self._payable_balance(debt)
        if payable_after > payable_before:
            self._reserve_for_debt(debt, payable_after - payable_before)
        elif payable_after < payable_before:
            self._release_unneeded_reserve()

    # =========================================================================
    # Debts and the S.45 waterfall
    # =========================================================================

    def add_debt(self, debt: Debt) -> Debt:
        """Take on a liability and reserve whatever free cash covers it."""
        self._ensure_mutable("add a debt")
        self._check_owned(debt.estate_id, "Debt")
        self._check_currency(debt.initial_amount, "add debt")
        if debt.id in self.debts:
            raise ValidationError(
                f"Debt {debt.id} is already recorded", context={"debt_id": str(debt.id)}
            )
        if debt.secured_asset_id is not None and debt.secured_asset_id not in self.assets:
            raise MissingReferenceError(
                str(debt.secured_asset_id), "secured asset not in this estate"
            )

        self.debts[debt.id] = debt
        self._record(
            EstateEventType.DEBT_ADDED,
            debt_id=str(debt.id),
            creditor_name=debt.creditor_name,
            debt_type=debt.debt_type.value,
            tier=debt.priority.rank,
            amount=str(debt.outstanding_balance.amount),
        )
        if debt.is_mandatory:
            self._reserve_for_debt(debt, debt.outstanding_balance)
        self.check_solvency()
        return debt

    def find_blocking_debt(self, debt: Debt) -> Debt | None:
        """Highest-priority unpaid debt that ranks strictly above ``debt``."""
        blockers = [
            other
            for other in self.debts.values()
            if other.id != debt.id
            and other.priority.rank < debt.priority.rank
            and other.is_waterfall_eligible
            and other.has_outstanding_balance
        ]
        if not blockers:
            return None
        return min(blockers, key=lambda other: other.waterfall_key)

    def pay_debt(self, debt_id: UUID, amount: Money, paid_on: date | None = None) -> Debt:
        """Pay a debt out of estate cash, honouring the S.45 order.

        Every check runs before any state changes, so a rejected payment
        leaves the estate untouched.

        Raises:
            PriorityViolationError: If a higher-tier debt still has a balance.
            InsufficientCashError: If the estate holds less cash than ``amount``.
        """
        self._ensure_mutable("pay a debt")
        debt = self.get_debt(debt_id)
        self._check_currency(amount, "pay")
        debt.ensure_payable(amount)
        blocking = self.find_blocking_debt(debt)
        if blocking is not None:
            raise PriorityViolationError(
                debt_id=debt.id,
                debt_tier=debt.priority.rank,
                blocking_debt_id=blocking.id,
                blocking_creditor=blocking.creditor_name,
                blocking_tier=blocking.priority.rank,
                blocking_balance=str(blocking.outstanding_balance),
            )
        if amount > self.cash_on_hand:
            raise InsufficientCashError(
                self.id, str(amount.amount), str(self.cash_on_hand.amount)
            )

        debt.record_payment(amount, paid_on)
        self.cash_on_hand = self.cash_on_hand - amount
        self.cash_reserved_for_debts = self.cash_reserved_for_debts - min(
            amount, self.cash_reserved_for_debts
        )
        self._record(
            EstateEventType.DEBT_PAID,
            debt_id=str(debt.id),
            amount=str(amount.amount),
            remaining_balance=str(debt.outstanding_balance.amount),
        )
        if debt.status == DebtStatus.SETTLED:
            self._record(EstateEventType.DEBT_SETTLED, debt_id=str(debt.id))
        return debt

    def dispute_debt(self, debt_id: UUID, reason: str, raised_by: str | None = None) -> Debt:
        self._ensure_mutable("dispute a debt")
        debt = self.get_debt(debt_id)
        payable_before = self._payable_balance(debt)
        debt.dispute(reason, raised_by)
        self._record(EstateEventType.DEBT_DISPUTED, debt_id=str(debt.id), reason=reason)
        self._follow_payable_change(debt, payable_before)
        return debt

    def resolve_debt_dispute(
        self, debt_id: UUID, resolution: str, new_balance: Money | None = None
    ) -> Debt:
        self._ensure_mutable("resolve a debt dispute")
        debt = self.get_debt(debt_id)
        if new_balance is not None:
            self._check_currency(new_balance, "resolve")
        payable_before = self._payable_balance(debt)
        debt.resolve_dispute(resolution, new_balance)
        self._record(
            EstateEventType.DEBT_DISPUTE_RESOLVED,
            debt_id=str(debt.id),
            resolution=resolution,
            balance=str(debt.outstanding_balance.amount),
        )
        self._follow_payable_change(debt, payable_before)
        return debt

    def write_off_debt(
        self,
        debt_id: UUID,
        reason: str,
        authorized_by: str,
        amount: Money | None = None,
    ) -> Money:
        self._ensure_mutable("write off a debt")
        debt = self.get_debt(debt_id)
        if amount is not None:
            self._check_currency(amount, "write off")
        payable_before = self._payable_balance(debt)
        forgiven = debt.write_off(reason, authorized_by, amount)
        self._record(
            EstateEventType.DEBT_WRITTEN_OFF,
            debt_id=str(debt.id),
            amount=str(forgiven.amount),
            reason=reason,
            authorized_by=authorized_by,
        )
        self._follow_payable_change(debt, payable_before)
        return forgiven

    def check_statute_barred_debts(
        self,
        as_of: date,
        unsecured_years: int = UNSECURED_LIMITATION_YEARS,
        secured_years: int = SECURED_LIMITATION_YEARS,
    ) -> list[Debt]:
        """Flag every debt whose limitation period has run. Returns newly barred debts."""
        self._ensure_mutable("review limitation periods")
        barred = []
        for debt in self.debts.values():
            if debt.is_statute_barred:
                continue
            if debt.check_statute_barred(as_of, unsecured_years, secured_years):
                barred.append(debt)
                self._record(EstateEventType.DEBT_STATUTE_BARRED, debt_id=str(debt.id))
        if barred:
            self._release_unneeded_reserve()
        return barred

    def get_debts_in_waterfall_order(self) -> list[Debt]:
        """Payable debts with a balance, in the order S.45 requires them paid."""
        payable = [
            debt
            for debt in self.debts.values()
            if debt.is_waterfall_eligible and debt.has_outstanding_balance
        ]
        return sorted(payable, key=lambda debt: debt.waterfall_key)

    # =========================================================================
    # Assets and co-ownership
    # =========================================================================

    def add_asset(self, asset: Asset) -> Asset:
        self._ensure_mutable("add an asset")
        self._check_owned(asset.estate_id, "Asset")
        self._check_currency(asset.current_value, "add asset")
        if asset.id in self.assets:
            raise ValidationError(
                f"Asset {asset.id} is already recorded", context={"asset_id": str(asset.id)}
            )
        self.assets[asset.id] = asset
        self._record(
            EstateEventType.ASSET_ADDED,
            asset_id=str(asset.id),
            name=asset.name,
            asset_type=asset.asset_type.value,
            value=str(asset.current_value.amount),
        )
        return asset

    def update_asset_valuation(
        self,
        asset_id: UUID,
        value: Money,
        source: ValuationSource,
        valuer: str | None = None,
        valued_on: date | None = None,
    ) -> Asset:
        self._ensure_mutable("revalue an asset")
        asset = self.get_asset(asset_id)
        previous = asset.current_value
        asset.update_valuation(value, source, valuer=valuer, valued_on=valued_on)
        self._record(
            EstateEventType.ASSET_UPDATED,
            asset_id=str(asset.id),
            previous_value=str(previous.amount),
            new_value=str(value.amount),
            source=source.value,
        )
        return asset

    def remove_asset(self, asset_id: UUID, reason: str) -> Asset:
        self._ensure_mutable("remove an asset")
        asset = self.get_asset(asset_id)
        if asset.has_active_liquidation:
            raise IllegalStateError(
                f"Asset {asset.id} has a liquidation in progress",
                context={"asset_id": str(asset.id)},
            )
        asset.change_status(AssetStatus.DELETED, reason)
        self._record(EstateEventType.ASSET_REMOVED, asset_id=str(asset.id), reason=reason)
        return asset

    def dispute_asset(self, asset_id: UUID, reason: str) -> Asset:
        self._ensure_mutable("dispute an asset")
        asset = self.get_asset(asset_id)
        asset.change_status(AssetStatus.DISPUTED, reason)
        self._record(
            EstateEventType.ASSET_UPDATED,
            asset_id=str(asset.id),
            status=asset.status.value,
            reason=reason,
        )
        return asset

    def resolve_asset_dispute(self, asset_id: UUID) -> Asset:
        self._ensure_mutable("resolve an asset dispute")
        asset = self.get_asset(asset_id)
        asset.change_status(AssetStatus.ACTIVE)
        self._record(
            EstateEventType.ASSET_UPDATED, asset_id=str(asset.id), status=asset.status.value
        )
        return asset

    def add_co_owner(
        self,
        asset_id: UUID,
        owner_identity: str,
        share_percentage: Decimal | int | str,
        ownership_type: CoOwnershipType,
        evidence_ref: str | None = None,
    ) -> AssetCoOwner:
        self._ensure_mutable("add a co-owner")
        asset = self.get_asset(asset_id)
        co_owner = asset.add_co_owner(
            owner_identity, share_percentage, ownership_type, evidence_ref
        )
        self._record(
            EstateEventType.ASSET_CO_OWNER_ADDED,
            asset_id=str(asset.id),
            co_owner_id=str(co_owner.id),
            share_percentage=str(co_owner.share_percentage),
            ownership_type=ownership_type.value,
        )
        return co_owner

    def verify_co_owner(
        self, asset_id: UUID, co_owner_id: UUID, verified_by: str
    ) -> AssetCoOwner:
        self._ensure_mutable("verify a co-owner")
        co_owner = self.get_asset(asset_id).verify_co_owner(co_owner_id, verified_by)
        self._record(
            EstateEventType.ASSET_UPDATED,
            asset_id=str(asset_id),
            co_owner_id=str(co_owner_id),
            co_owner_verified=True,
        )
        return co_owner

    def remove_co_owner(self, asset_id: UUID, co_owner_id: UUID, reason: str) -> AssetCoOwner:
        self._ensure_mutable("remove a co-owner")
        co_owner = self.get_asset(asset_id).remove_co_owner(co_owner_id, reason)
        self._record(
            EstateEventType.ASSET_UPDATED,
            asset_id=str(asset_id),
            co_owner_id=str(co_owner_id),
            co_owner_removed=True,
            reason=reason,
        )
        return co_owner

    def encumber_asset(
        self,
        asset_id: UUID,
        encumbrance_type: AssetEncumbranceType,
        details: str,
        secured_amount: Money | None = None,
        debt_id: UUID | None = None,
    ) -> Asset:
        self._ensure_mutable("encumber an asset")
        asset = self.get_asset(asset_id)
        if debt_id is not None:
            self.get_debt(debt_id)
        asset.mark_as_encumbered(encumbrance_type, details, secured_amount, debt_id)
        self._record(
            EstateEventType.ASSET_ENCUMBERED,
            asset_id=str(asset.id),
            encumbrance_type=encumbrance_type.value,
            details=details,
        )
        return asset

    def clear_asset_encumbrance(self, asset_id: UUID) -> Asset:
        self._ensure_mutable("clear an encumbrance")
        asset = self.get_asset(asset_id)
        asset.clear_encumbrance()
        self._record(
            EstateEventType.ASSET_UPDATED, asset_id=str(asset.id), encumbrance_cleared=True
        )
        return asset

    # =========================================================================
    # Liquidation
    # =========================================================================

    def _liquidation_updated(self, liquidation: AssetLiquidation) -> None:
        self._record(
            EstateEventType.ASSET_LIQUIDATION_UPDATED,
            asset_id=str(liquidation.asset_id),
            liquidation_id=str(liquidation.id),
            status=liquidation.status.value,
        )

    def _active_liquidation(self, asset_id: UUID) -> AssetLiquidation:
        return self.get_asset(asset_id).require_liquidation()

    def start_liquidation(
        self,
        asset_id: UUID,
        liquidation_type: LiquidationType,
        target_amount: Money,
        reserve_price: Money,
        commission_rate: Decimal = DEFAULT_COMMISSION_RATE,
    ) -> AssetLiquidation:
        self._ensure_mutable("start a liquidation")
        asset = self.get_asset(asset_id)
        liquidation = asset.start_liquidation(
            liquidation_type, target_amount, reserve_price, commission_rate
        )
        if self.status == EstateStatus.READY_FOR_DISTRIBUTION:
            self._transition("reopen")
        if self.status in (EstateStatus.SETUP, EstateStatus.ACTIVE):
            self._transition("begin_liquidation")
        self._record(
            EstateEventType.ASSET_LIQUIDATION_STARTED,
            asset_id=str(asset.id),
            liquidation_id=str(liquidation.id),
            liquidation_type=liquidation_type.value,
            target_amount=str(target_amount.amount),
            reserve_price=str(reserve_price.amount),
        )
        return liquidation

    def submit_liquidation(self, asset_id: UUID) -> AssetLiquidation:
        self._ensure_mutable("submit a liquidation")
        liquidation = self._active_liquidation(asset_id)
        liquidation.submit_for_approval()
        self._liquidation_updated(liquidation)
        return liquidation

    def approve_liquidation(
        self, asset_id: UUID, approved_by: str, court_order_reference: str | None = None
    ) -> AssetLiquidation:
        self._ensure_mutable("approve a liquidation")
        liquidation = self._active_liquidation(asset_id)
        liquidation.approve(approved_by, court_order_reference)
        self._liquidation_updated(liquidation)
        return liquidation

    def list_asset_for_sale(self, asset_id: UUID) -> AssetLiquidation:
        self._ensure_mutable("list an asset for sale")
        liquidation = self._active_liquidation(asset_id)
        liquidation.list_for_sale()
        self._liquidation_updated(liquidation)
        return liquidation

    def schedule_auction(self, asset_id: UUID, auction_date: date) -> AssetLiquidation:
        self._ensure_mutable("schedule an auction")
        liquidation = self._active_liquidation(asset_id)
        liquidation.schedule_auction(auction_date)
        self._liquidation_updated(liquidation)
        return liquidation

    def mark_sale_pending(self, asset_id: UUID, buyer: BuyerInfo) -> AssetLiquidation:
        self._ensure_mutable("accept an offer")
        liquidation = self._active_liquidation(asset_id)
        liquidation.accept_offer(buyer)
        self._liquidation_updated(liquidation)
        return liquidation

    def start_auction(self, asset_id: UUID) -> AssetLiquidation:
        self._ensure_mutable("start an auction")
        liquidation = self._active_liquidation(asset_id)
        liquidation.start_auction()
        self._liquidation_updated(liquidation)
        return liquidation

    def record_liquidation_sale(
        self,
        asset_id: UUID,
        actual_amount: Money,
        buyer: BuyerInfo,
        sale_date: date | None = None,
    ) -> AssetLiquidation:
        self._ensure_mutable("record a sale")
        liquidation = self._active_liquidation(asset_id)
        liquidation.record_sale_completion(actual_amount, buyer, sale_date)
        self._record(
            EstateEventType.ASSET_LIQUIDATION_UPDATED,
            asset_id=str(asset_id),
            liquidation_id=str(liquidation.id),
            status=liquidation.status.value,
            actual_amount=str(actual_amount.amount),
            commission_amount=str(liquidation.commission_amount.amount),
            net_proceeds=str(liquidation.net_proceeds.amount),
        )
        return liquidation

    def receive_liquidation_proceeds(self, asset_id: UUID) -> Money:
        """Bank the net proceeds of a completed sale and retire the asset."""
        self._ensure_mutable("receive sale proceeds")
        asset = self.get_asset(asset_id)
        liquidation = asset.require_liquidation()
        if liquidation.is_terminal:
            raise TerminalLiquidationError(
                liquidation.id, liquidation.status.value, "receive_proceeds"
            )
        LIQUIDATION_TRANSITIONS.require(liquidation.status, "receive_proceeds", liquidation.id)
        ASSET_TRANSITIONS.require(asset.status, "liquidate", asset.id)
        self._check_currency(liquidation.net_proceeds, "receive proceeds")

        net_proceeds = liquidation.receive_proceeds()
        asset.mark_liquidated()
        self.cash_on_hand = self.cash_on_hand + net_proceeds
        self._record(
            EstateEventType.ASSET_LIQUIDATED,
            asset_id=str(asset.id),
            liquidation_id=str(liquidation.id),
            net_proceeds=str(net_proceeds.amount),
        )
        self._cash_updated(f"proceeds of liquidation {liquidation.id}")
        return net_proceeds

    def mark_liquidation_distributed(self, asset_id: UUID) -> AssetLiquidation:
        self._ensure_mutable("mark proceeds distributed")
        liquidation = self._active_liquidation(asset_id)
        liquidation.mark_distributed()
        self._liquidation_updated(liquidation)
        return liquidation

    def close_liquidation(self, asset_id: UUID) -> AssetLiquidation:
        self._ensure_mutable("close a liquidation")
        asset = self.get_asset(asset_id)
        liquidation = asset.require_liquidation()
        liquidation.close()
        asset.release_finished_liquidation()
        self._record(
            EstateEventType.ASSET_LIQUIDATION_COMPLETED,
            asset_id=str(asset.id),
            liquidation_id=str(liquidation.id),
        )
        return liquidation

    def cancel_liquidation(self, asset_id: UUID, reason: str) -> AssetLiquidation:
        self._ensure_mutable("cancel a liquidation")
        asset = self.get_asset(asset_id)
        liquidation = asset.require_liquidation()
        liquidation.cancel(reason)
        asset.release_finished_liquidation()
        self._liquidation_updated(liquidation)
        return liquidation

    def record_liquidation_failure(self, asset_id: UUID, reason: str) -> AssetLiquidation:
        self._ensure_mutable("record a failed sale")
        liquidation = self._active_liquidation(asset_id)
        liquidation.record_failure(reason)
        self._liquidation_updated(liquidation)
        return liquidation

    def expire_liquidation(self, asset_id: UUID) -> AssetLiquidation:
        self._ensure_mutable("expire a listing")
        liquidation = self._active_liquidation(asset_id)
        liquidation.expire()
        self._liquidation_updated(liquidation)
        return liquidation

    # =========================================================================
    # Gifts inter vivos
    # =========================================================================

    def add_gift(self, gift: GiftInterVivos) -> GiftInterVivos:
        self._ensure_mutable("add a gift")
        self._check_owned(gift.estate_id, "Gift")
        self._check_currency(gift.value_at_time_of_gift, "add gift")
        if gift.id in self.gifts:
            raise ValidationError(
                f"Gift {gift.id} is already recorded", context={"gift_id": str(gift.id)}
            )
        self.gifts[gift.id] = gift
        self._record(
            EstateEventType.GIFT_ADDED,
            gift_id=str(gift.id),
            recipient_id=str(gift.recipient_id),
            value=str(gift.value_at_time_of_gift.amount),
        )
        return gift

    def contest_gift(
        self, gift_id: UUID, reason: str, contested_by: str | None = None
    ) -> GiftInterVivos:
        self._ensure_mutable("contest a gift")
        gift = self.get_gift(gift_id)
        gift.contest(reason, contested_by)
        self._record(EstateEventType.GIFT_CONTESTED, gift_id=str(gift.id), reason=reason)
        return gift

    def resolve_gift_contest(
        self, gift_id: UUID, outcome: GiftStatus, reason: str
    ) -> GiftInterVivos:
        self._ensure_mutable("resolve a gift contest")
        gift = self.get_gift(gift_id)
        gift.resolve_contest(outcome, reason)
        self._record(
            EstateEventType.GIFT_CONTEST_RESOLVED,
            gift_id=str(gift.id),
            outcome=outcome.value,
            reason=reason,
        )
        return gift

    def correct_gift_value(
        self, gift_id: UUID, new_value: Money, reason: str, authorised_by: str
    ) -> GiftInterVivos:
        self._ensure_mutable("correct a gift value")
        gift = self.get_gift(gift_id)
        correction = gift.correct_value(new_value, reason, authorised_by)
        self._record(
            EstateEventType.GIFT_VALUE_CORRECTED,
            gift_id=str(gift.id),
            previous_value=str(correction.previous_value.amount),
            value=str(correction.corrected_value.amount),
            correction_reason=reason,
        )
        return gift

    def update_gift_estimate(self, gift_id: UUID, value: Money) -> GiftInterVivos:
        self._ensure_mutable("update a gift estimate")
        gift = self.get_gift(gift_id)
        gift.update_current_estimate(value)
        return gift

    def substantial_gifts(
        self, threshold: Decimal = SUBSTANTIAL_GIFT_THRESHOLD
    ) -> list[GiftInterVivos]:
        gross = self.gross_value
        return [gift for gift in self.gifts.values() if gift.is_substantial(gross, threshold)]

    # =========================================================================
    # Dependants
    # =========================================================================

    def add_dependant(self, dependant: Dependant) -> Dependant:
        self._ensure_mutable("add a dependant")
        self._check_owned(dependant.estate_id, "Dependant")
        if dependant.monthly_support_claimed is not None:
            self._check_currency(dependant.monthly_support_claimed, "claim")
        self.dependants[dependant.id] = dependant
        self._record(
            EstateEventType.DEPENDANT_ADDED,
            dependant_id=str(dependant.id),
            relationship=dependant.relationship.value,
        )
        return dependant

    def verify_dependant(self, dependant_id: UUID, verified_by: str) -> Dependant:
        self._ensure_mutable("verify a dependant")
        dependant = self.get_dependant(dependant_id)
        dependant.verify(verified_by)
        self._record(
            EstateEventType.DEPENDANT_VERIFIED,
            dependant_id=str(dependant.id),
            verified_by=verified_by,
        )
        return dependant

    def reject_dependant(self, dependant_id: UUID, reason: str) -> Dependant:
        self._ensure_mutable("reject a dependant")
        dependant = self.get_dependant(dependant_id)
        dependant.reject(reason)
        self._record(
            EstateEventType.DEPENDANT_UPDATED,
            dependant_id=str(dependant.id),
            status=dependant.status.value,
        )
        return dependant

    def dispute_dependant(self, dependant_id: UUID, reason: str) -> Dependant:
        self._ensure_mutable("dispute a dependant")
        dependant = self.get_dependant(dependant_id)
        dependant.dispute(reason)
        self._record(
            EstateEventType.DEPENDANT_UPDATED,
            dependant_id=str(dependant.id),
            status=dependant.status.value,
        )
        return dependant

    def resolve_dependant_dispute(
        self, dependant_id: UUID, upheld: bool, resolution: str
    ) -> Dependant:
        self._ensure_mutable("resolve a dependant dispute")
        dependant = self.get_dependant(dependant_id)
        dependant.resolve_dispute(upheld, resolution)
        self._record(
            EstateEventType.DEPENDANT_UPDATED,
            dependant_id=str(dependant.id),
            status=dependant.status.value,
        )
        return dependant

    # =========================================================================
    # Tax compliance
    # =========================================================================

    def _tax_debt(self) -> Debt | None:
        debt_id = self.tax_compliance.debt_id
        return self.debts.get(debt_id) if debt_id is not None else None

    def record_tax_assessment(
        self, amount: Money, reference: str, authority: str = DEFAULT_TAX_AUTHORITY
    ) -> Debt:
        """Book an estate duty assessment as a tier-4 debt payable through the waterfall.

        A re-assessment after a dispute renegotiates the existing tax debt.
        """
        self._ensure_mutable("record a tax assessment")
        self._check_currency(amount, "assess")
        TAX_TRANSITIONS.require(self.tax_compliance.status, "assess", self.id)
        existing = self._tax_debt()
        if existing is not None:
            payable_before = self._payable_balance(existing)
            existing.resolve_dispute(f"re-assessed under {reference}", amount)
            self._follow_payable_change(existing, payable_before)
            debt = existing
        else:
            debt = Debt(
                estate_id=self.id,
                creditor_name=authority,
                description=f"Estate duty assessment {reference}",
                debt_type=DebtType.ESTATE_DUTY,
                initial_amount=amount,
                reference_number=reference,
            )
            self.add_debt(debt)
            self.tax_compliance.debt_id = debt.id
        self.tax_compliance.status = TAX_TRANSITIONS.next_state(
            self.tax_compliance.status, "assess", self.id
        )
        self.tax_compliance.assessment_reference = reference
        self._record(
            EstateEventType.TAX_ASSESSMENT_RECEIVED,
            reference=reference,
            amount=str(amount.amount),
            debt_id=str(debt.id),
        )
        return debt

    def record_tax_payment(self, amount: Money, paid_on: date | None = None) -> Debt:
        self._ensure_mutable("record a tax payment")
        TAX_TRANSITIONS.require(self.tax_compliance.status, "pay", self.id)
        debt = self._tax_debt()
        if debt is None:
            raise MissingReferenceError("tax_assessment", "no tax assessment recorded")
        self.pay_debt(debt.id, amount, paid_on)
        self.tax_compliance.status = TAX_TRANSITIONS.next_state(
            self.tax_compliance.status, "pay", self.id
        )
        self._record(
            EstateEventType.TAX_PAYMENT_RECORDED,
            amount=str(amount.amount),
            remaining=str(debt.outstanding_balance.amount),
        )
        return debt

    def dispute_tax_assessment(self, reason: str) -> None:
        self._ensure_mutable("dispute a tax assessment")
        TAX_TRANSITIONS.require(self.tax_compliance.status, "dispute", self.id)
        debt = self._tax_debt()
        if debt is not None:
            payable_before = self._payable_balance(debt)
            debt.dispute(reason)
            self._follow_payable_change(debt, payable_before)
        self.tax_compliance.status = TaxStatus.DISPUTED
        self.tax_compliance.dispute_reason = reason
        self._record(
            EstateEventType.TAX_ASSESSMENT_DISPUTED,
            reason=reason,
            debt_id=str(debt.id) if debt is not None else None,
        )

    def clear_tax(self, clearance_certificate: str) -> None:
        self._ensure_mutable("clear tax")
        TAX_TRANSITIONS.require(self.tax_compliance.status, "clear", self.id)
        debt = self._tax_debt()
        if debt is not None and debt.has_outstanding_balance:
            raise IllegalStateError(
                f"Tax assessment still has {debt.outstanding_balance} outstanding",
                context={"debt_id": str(debt.id), "current_state": debt.status.value},
            )
        self.tax_compliance.status = TaxStatus.CLEARED
        self.tax_compliance.clearance_certificate = clearance_certificate
        self.tax_compliance.cleared_at = _utc_now()
        self._record(EstateEventType.TAX_CLEARED, certificate=clearance_certificate)

    def mark_tax_exempt(self, reason: str) -> None:
        self._ensure_mutable("mark tax exempt")
        TAX_TRANSITIONS.require(self.tax_compliance.status, "exempt", self.id)
        self.tax_compliance.status = TaxStatus.EXEMPT
        self.tax_compliance.exemption_reason = reason
        self.tax_compliance.cleared_at = _utc_now()
        self._record(EstateEventType.TAX_CLEARED, exemption_reason=reason)

    # =========================================================================
    # Valuation, solvency and readiness
    # =========================================================================

    def _sum(self, amounts: Iterable[Money]) -> Money:
        total = Money.zero(self.currency)
        for amount in amounts:
            total = total + amount
        return total

    def calculate_net_worth(self) -> Money:
        """Cash on hand plus the distributable value of every asset."""
        return self.cash_on_hand + self._sum(
            asset.get_distributable_value() for asset in self.assets.values()
        )

    @property
    def gross_value(self) -> Money:
        return self.calculate_net_worth()

    @property
    def total_liabilities(self) -> Money:
        return self._sum(
            debt.outstanding_balance for debt in self.get_debts_in_waterfall_order()
        )

    @property
    def hotchpot_total(self) -> Money:
        return self._sum(gift.get_hotchpot_value() for gift in self.gifts.values())

    @property
    def is_solvent(self) -> bool:
        return self.calculate_net_worth() >= self.total_liabilities

    def check_solvency(self) -> bool:
        solvent = self.is_solvent
        if not solvent:
            self._record(
                EstateEventType.ESTATE_INSOLVENCY_DETECTED,
                net_worth=str(self.calculate_net_worth().amount),
                total_liabilities=str(self.total_liabilities.amount),
            )
        return solvent

    def calculate_distributable_pool(self) -> Money:
        """Net worth less payable debts, plus the hotchpot add-back.

        The add-back is notional: it sizes equitable shares and is not cash.
        An insolvent estate has an empty pool.
        """
        pool = (
            self.calculate_net_worth().amount
            - self.total_liabilities.amount
            + self.hotchpot_total.amount
        )
        return Money(max(pool, Decimal("0")), self.currency)

    def validate_distribution_readiness(self) -> DistributionReadiness:
        """Run every distribution check in order and collect what blocks it."""
        blockers: list[ReadinessBlocker] = []

        if self.is_frozen:
            blockers.append(
                ReadinessBlocker(
                    ReadinessCheck.NOT_FROZEN,
                    f"Estate is frozen: {self.freeze_reason}",
                )
            )

        if not self.is_solvent:
            blockers.append(
                ReadinessBlocker(
                    ReadinessCheck.SOLVENT,
                    f"Estate is insolvent: net worth {self.calculate_net_worth()} "
                    f"against liabilities {self.total_liabilities}",
                )
            )

        priority_debts = [
            debt
            for debt in self.get_debts_in_waterfall_order()
            if debt.tier in DISTRIBUTION_BLOCKING_TIERS
        ]
        if priority_debts:
            names = ", ".join(
                f"{debt.creditor_name} (tier {debt.priority.rank})" for debt in priority_debts
            )
            blockers.append(
                ReadinessBlocker(
                    ReadinessCheck.PRIORITY_DEBTS_CLEARED,
                    f"{len(priority_debts)} tier 1-3 debt(s) outstanding: {names}",
                )
            )

        disputes = [
            f"asset '{asset.name}'"
            for asset in self.assets.values()
            if asset.status == AssetStatus.DISPUTED
        ]
        disputes += [
            f"gift '{gift.description}'" for gift in self.gifts.values() if gift.is_contested
        ]
        disputes += [
            f"dependant claim by {dependant.full_name}"
            for dependant in self.dependants.values()
            if dependant.is_disputed
        ]
        if disputes:
            blockers.append(
                ReadinessBlocker(
                    ReadinessCheck.NO_UNRESOLVED_DISPUTES,
                    f"Unresolved disputes: {', '.join(disputes)}",
                )
            )

        open_liquidations = [
            asset.name for asset in self.assets.values() if asset.has_active_liquidation
        ]
        if open_liquidations:
            blockers.append(
                ReadinessBlocker(
                    ReadinessCheck.LIQUIDATIONS_FINISHED,
                    f"Liquidations still in progress: {', '.join(open_liquidations)}",
                )
            )

        if not self.tax_compliance.is_cleared:
            blockers.append(
                ReadinessBlocker(
                    ReadinessCheck.TAX_CLEARED,
                    f"Tax compliance not cleared (status {self.tax_compliance.status.value})",
                )
            )

        return DistributionReadiness(tuple(blockers))


__all__ = [
    "DEFAULT_TAX_AUTHORITY",
    "ESTATE_TRANSITIONS",
    "TAX_TRANSITIONS",
    "DistributionReadiness",
    "Estate",
    "EstateStatus",
    "ReadinessBlocker",
    "ReadinessCheck",
    "TaxCompliance",
    "TaxStatus",
]
