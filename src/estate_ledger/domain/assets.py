"""Estate assets, co-ownership and the distributable value calculation."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID, uuid4

from estate_ledger.domain.liquidation import AssetLiquidation, LiquidationType
from estate_ledger.domain.transitions import build_table
from estate_ledger.domain.value_objects import CENT, Currency, Money
from estate_ledger.exceptions import (
    AssetEncumberedError,
    CoOwnerAlreadyVerifiedError,
    CurrencyMismatchError,
    DuplicateCoOwnerError,
    IllegalStateError,
    InvalidShareError,
    MissingReferenceError,
    ValidationError,
)

FULL_SHARE = Decimal("100")
MIN_SHARE = Decimal("0.01")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AssetType(str, Enum):
    LAND = "land"
    VEHICLE = "vehicle"
    FINANCIAL = "financial"
    BUSINESS = "business"


class AssetStatus(str, Enum):
    ACTIVE = "active"
    ENCUMBERED = "encumbered"
    DISPUTED = "disputed"
    LIQUIDATED = "liquidated"
    TRANSFERRED = "transferred"
    DELETED = "deleted"


class CoOwnershipType(str, Enum):
    JOINT_TENANCY = "joint_tenancy"
    TENANCY_IN_COMMON = "tenancy_in_common"


class ValuationSource(str, Enum):
    REGISTERED_VALUER = "registered_valuer"
    MARKET_ESTIMATE = "market_estimate"
    GOVERNMENT_RATE = "government_rate"
    EXECUTOR_ESTIMATE = "executor_estimate"
    COURT_DETERMINATION = "court_determination"
    SALE_PRICE = "sale_price"


class AssetEncumbranceType(str, Enum):
    MORTGAGE = "mortgage"
    CHARGE = "charge"
    LIEN = "lien"
    COURT_ORDER = "court_order"
    FAMILY_CLAIM = "family_claim"
    OTHER = "other"


ASSET_TRANSITIONS = build_table(
    "Asset",
    [
        (AssetStatus.ACTIVE, "encumber", AssetStatus.ENCUMBERED),
        (AssetStatus.ACTIVE, "dispute", AssetStatus.DISPUTED),
        (AssetStatus.ACTIVE, "liquidate", AssetStatus.LIQUIDATED),
        (AssetStatus.ACTIVE, "transfer", AssetStatus.TRANSFERRED),
        (AssetStatus.ACTIVE, "delete", AssetStatus.DELETED),
        (AssetStatus.ENCUMBERED, "activate", AssetStatus.ACTIVE),
        (AssetStatus.ENCUMBERED, "dispute", AssetStatus.DISPUTED),
        (AssetStatus.ENCUMBERED, "liquidate", AssetStatus.LIQUIDATED),
        (AssetStatus.DISPUTED, "activate", AssetStatus.ACTIVE),
        (AssetStatus.DISPUTED, "transfer", AssetStatus.TRANSFERRED),
        (AssetStatus.DISPUTED, "delete", AssetStatus.DELETED),
    ],
    terminal_states=(
        AssetStatus.LIQUIDATED,
        AssetStatus.TRANSFERRED,
        AssetStatus.DELETED,
    ),
)

_ACTION_BY_TARGET: dict[AssetStatus, str] = {
    AssetStatus.ACTIVE: "activate",
    AssetStatus.ENCUMBERED: "encumber",
    AssetStatus.DISPUTED: "dispute",
    AssetStatus.LIQUIDATED: "liquidate",
    AssetStatus.TRANSFERRED: "transfer",
    AssetStatus.DELETED: "delete",
}

# Assets in these states no longer carry value for the estate.
_VALUELESS_STATUSES = frozenset(ASSET_TRANSITIONS.terminal_states)


# =============================================================================
# Detail variants
# =============================================================================


@dataclass(frozen=True)
class LandDetails:
    asset_type: ClassVar[AssetType] = AssetType.LAND

    title_number: str
    county: str
    parcel_number: str | None = None
    size_acres: Decimal | None = None
    land_use: str | None = None


@dataclass(frozen=True)
class VehicleDetails:
    asset_type: ClassVar[AssetType] = AssetType.VEHICLE

    registration_number: str
    make: str
    model: str
    year: int | None = None
    chassis_number: str | None = None


@dataclass(frozen=True)
class FinancialDetails:
    asset_type: ClassVar[AssetType] = AssetType.FINANCIAL

    institution_name: str
    account_number: str
    account_type: str = "savings"
    is_joint_account: bool = False


@dataclass(frozen=True)
class BusinessDetails:
    asset_type: ClassVar[AssetType] = AssetType.BUSINESS

    business_name: str
    registration_number: str
    shareholding_percentage: Decimal | None = None
    business_type: str | None = None


AssetDetails = LandDetails | VehicleDetails | FinancialDetails | BusinessDetails
DETAIL_TYPES: tuple[type, ...] = (
    LandDetails,
    VehicleDetails,
    FinancialDetails,
    BusinessDetails,
)


# =============================================================================
# Co-ownership
# =============================================================================


def validate_share(share: Decimal | int | str) -> Decimal:
    """Return ``share`` as a Decimal, rejecting values outside 0.01-100."""
    value = share if isinstance(share, Decimal) else Decimal(str(share))
    if not value.is_finite() or value != value.quantize(CENT):
        raise InvalidShareError(str(share), "at most two decimal places allowed")
    if value < MIN_SHARE or value > FULL_SHARE:
        raise InvalidShareError(str(share), "must be between 0.01 and 100")
    return value.quantize(CENT)


@dataclass
class AssetCoOwner:
    asset_id: UUID
    owner_identity: str
    share_percentage: Decimal
    ownership_type: CoOwnershipType
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    is_verified: bool = False
    evidence_ref: str | None = None
    verified_by: str | None = None
    verified_at: datetime | None = None
    removal_reason: str | None = None
    added_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.owner_identity.strip():
            raise MissingReferenceError("owner_identity", "co-owner identity is required")
        self.share_percentage = validate_share(self.share_percentage)

    @property
    def is_effective(self) -> bool:
        """Only an active, verified claim reduces the estate's share."""
        return self.is_active and self.is_verified


@dataclass
class CoOwnership:
    ownership_type: CoOwnershipType
    co_owners: list[AssetCoOwner] = field(default_factory=list)

    @property
    def active_co_owners(self) -> list[AssetCoOwner]:
        return [owner for owner in self.co_owners if owner.is_active]

    @property
    def effective_co_owners(self) -> list[AssetCoOwner]:
        return [owner for owner in self.co_owners if owner.is_effective]

    @property
    def total_share_percentage(self) -> Decimal:
        return sum(
            (owner.share_percentage for owner in self.effective_co_owners),
            Decimal("0"),
        )

    @property
    def has_survivor(self) -> bool:
        return (
            self.ownership_type == CoOwnershipType.JOINT_TENANCY
            and bool(self.effective_co_owners)
        )

    @property
    def estate_share_percentage(self) -> Decimal:
        return FULL_SHARE - self.total_share_percentage

    def find(self, co_owner_id: UUID) -> AssetCoOwner | None:
        for owner in self.co_owners:
            if owner.id == co_owner_id:
                return owner
        return None


# =============================================================================
# Valuation and encumbrance records
# =============================================================================


@dataclass(frozen=True)
class AssetValuation:
    value: Money
    source: ValuationSource
    valued_on: date
    valuer: str | None = None
    notes: str | None = None
    recorded_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class Encumbrance:
    encumbrance_type: AssetEncumbranceType
    details: str
    secured_amount: Money | None = None
    debt_id: UUID | None = None
    recorded_at: datetime = field(default_factory=_utc_now)


# =============================================================================
# Asset
# =============================================================================


@dataclass
class Asset:
    """An item in the estate inventory.

    ``details`` holds exactly one type-specific variant; the asset type is
    read from it rather than stored separately.
    """

    estate_id: UUID
    name: str
    details: AssetDetails
    current_value: Money
    id: UUID = field(default_factory=uuid4)
    status: AssetStatus = AssetStatus.ACTIVE
    is_encumbered: bool = False
    encumbrance: Encumbrance | None = None
    co_ownership: CoOwnership | None = None
    valuations: list[AssetValuation] = field(default_factory=list)
    liquidation: AssetLiquidation | None = None
    description: str | None = None
    dispute_reason: str | None = None
    acquisition_date: date | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValidationError("Asset name is required")
        if not isinstance(self.details, DETAIL_TYPES):
            raise ValidationError(
                "Asset details must be one of land, vehicle, financial or business",
                context={"details_type": type(self.details).__name__},
            )

    @property
    def asset_type(self) -> AssetType:
        return self.details.asset_type

    @property
    def currency(self) -> Currency:
        return self.current_value.currency

    @property
    def is_terminal(self) -> bool:
        return ASSET_TRANSITIONS.is_terminal(self.status)

    @property
    def has_active_liquidation(self) -> bool:
        return self.liquidation is not None and not self.liquidation.is_terminal

    def get_distributable_value(self) -> Money:
        """Portion of ``current_value`` that passes through the estate.

        Liquidated value already sits in the estate's cash, and a verified
        joint tenant takes the whole asset by survivorship. Otherwise the
        estate keeps whatever share verified co-owners do not hold.
        """
        if self.status in _VALUELESS_STATUSES:
            return Money.zero(self.currency)
        if self.liquidation is not None and self.liquidation.is_completed:
            return Money.zero(self.currency)
        if self.co_ownership is None:
            return self.current_value
        if self.co_ownership.has_survivor:
            return Money.zero(self.currency)
        return self.current_value * (self.co_ownership.estate_share_percentage / FULL_SHARE)

    def _touch(self) -> None:
        self.updated_at = _utc_now()

    def _ensure_not_encumbered(self, action: str) -> None:
        if self.is_encumbered:
            raise AssetEncumberedError(self.id, action)

    def _ensure_not_terminal(self, action: str) -> None:
        if self.is_terminal:
            raise IllegalStateError(
                f"Asset {self.id} is {self.status.value}; cannot {action}",
                context={
                    "asset_id": str(self.id),
                    "current_state": self.status.value,
                    "requested": action,
                },
            )

    def _transition(self, action: str) -> None:
        self.status = ASSET_TRANSITIONS.next_state(self.status, action, self.id)
        self._touch()

    def change_status(self, new_status: AssetStatus, reason: str | None = None) -> None:
        if new_status == AssetStatus.ENCUMBERED:
            raise ValidationError(
                "Encumbrances are recorded through mark_as_encumbered",
                context={"asset_id": str(self.id)},
            )
        self._ensure_not_encumbered(f"change status to {new_status.value}")
        self._transition(_ACTION_BY_TARGET[new_status])
        if new_status == AssetStatus.DISPUTED:
            self.dispute_reason = reason
        elif new_status == AssetStatus.ACTIVE:
            self.dispute_reason = None

    # -- co-ownership -------------------------------------------------------

    def add_co_owner(
        self,
        owner_identity: str,
        share_percentage: Decimal | int | str,
        ownership_type: CoOwnershipType,
        evidence_ref: str | None = None,
    ) -> AssetCoOwner:
        self._ensure_not_terminal("add a co-owner")
        self._ensure_not_encumbered("add a co-owner")
        co_owner = AssetCoOwner(
            asset_id=self.id,
            owner_identity=owner_identity,
            share_percentage=share_percentage,
            ownership_type=ownership_type,
            evidence_ref=evidence_ref,
        )
        ownership = self.co_ownership
        if ownership is not None and ownership.active_co_owners:
            if ownership.ownership_type != ownership_type:
                raise ValidationError(
                    f"Asset {self.id} is held as {ownership.ownership_type.value}; "
                    f"cannot add a {ownership_type.value} co-owner",
                    context={
                        "asset_id": str(self.id),
                        "ownership_type": ownership.ownership_type.value,
                        "requested": ownership_type.value,
                    },
                )
            identity = owner_identity.strip().lower()
            for existing in ownership.active_co_owners:
                if existing.owner_identity.strip().lower() == identity:
                    raise DuplicateCoOwnerError(self.id, owner_identity)
        self._check_share_cap(co_owner.share_percentage)

        if ownership is None or not ownership.active_co_owners:
            previous = ownership.co_owners if ownership is not None else []
            self.co_ownership = CoOwnership(ownership_type, list(previous))
        self.co_ownership.co_owners.append(co_owner)
        self._touch()
        return co_owner

    def _check_share_cap(self, additional: Decimal) -> None:
        held = self.co_ownership.total_share_percentage if self.co_ownership else Decimal("0")
        if held + additional > FULL_SHARE:
            raise InvalidShareError(
                str(additional),
                f"total verified share would be {held + additional}%, above 100%",
            )

    def _require_co_owner(self, co_owner_id: UUID) -> AssetCoOwner:
        owner = self.co_ownership.find(co_owner_id) if self.co_ownership else None
        if owner is None:
            raise MissingReferenceError(
                str(co_owner_id), f"no such co-owner on asset {self.id}"
            )
        return owner

    def verify_co_owner(
        self, co_owner_id: UUID, verified_by: str, evidence_ref: str | None = None
    ) -> AssetCoOwner:
        owner = self._require_co_owner(co_owner_id)
        if owner.is_verified:
            raise CoOwnerAlreadyVerifiedError(co_owner_id)
        if not owner.is_active:
            raise IllegalStateError(
                f"Co-owner {co_owner_id} has been removed and cannot be verified",
                context={"co_owner_id": str(co_owner_id)},
            )
        self._check_share_cap(owner.share_percentage)
        owner.is_verified = True
        owner.verified_by = verified_by
        owner.verified_at = _utc_now()
        if evidence_ref is not None:
            owner.evidence_ref = evidence_ref
        self._touch()
        return owner

    def remove_co_owner(self, co_owner_id: UUID, reason: str) -> AssetCoOwner:
        self._ensure_not_encumbered("remove a co-owner")
        owner = self._require_co_owner(co_owner_id)
        if not owner.is_active:
            raise IllegalStateError(
                f"Co-owner {co_owner_id} is already inactive",
                context={"co_owner_id": str(co_owner_id)},
            )
        owner.is_active = False
        owner.removal_reason = reason
        self._touch()
        return owner

    # -- valuation and encumbrance -----------------------------------------

    def update_valuation(
        self,
        value: Money,
        source: ValuationSource,
        valuer: str | None = None,
        valued_on: date | None = None,
        notes: str | None = None,
    ) -> AssetValuation:
        self._ensure_not_terminal("update its valuation")
        if value.currency != self.currency:
            raise CurrencyMismatchError(
                "revalue", self.currency.value, value.currency.value
            )
        valuation = AssetValuation(
            value=value,
            source=source,
            valued_on=valued_on or date.today(),
            valuer=valuer,
            notes=notes,
        )
        self.valuations.append(valuation)
        self.current_value = value
        self._touch()
        return valuation

    def mark_as_encumbered(
        self,
        encumbrance_type: AssetEncumbranceType,
        details: str,
        secured_amount: Money | None = None,
        debt_id: UUID | None = None,
    ) -> Encumbrance:
        if self.is_encumbered:
            raise AssetEncumberedError(self.id, "record a second encumbrance")
        if self.status == AssetStatus.ACTIVE:
            self._transition("encumber")
        else:
            self._ensure_not_terminal("record an encumbrance")
        self.encumbrance = Encumbrance(
            encumbrance_type=encumbrance_type,
            details=details,
            secured_amount=secured_amount,
            debt_id=debt_id,
        )
        self.is_encumbered = True
        self._touch()
        return self.encumbrance

    def clear_encumbrance(self) -> None:
        if not self.is_encumbered:
            raise IllegalStateError(
                f"Asset {self.id} is not encumbered",
                context={"asset_id": str(self.id)},
            )
        if self.status == AssetStatus.ENCUMBERED:
            self._transition("activate")
        self.is_encumbered = False
        self.encumbrance = None
        self._touch()

    # -- liquidation hooks -------------------------------------------------

    def start_liquidation(
        self,
        liquidation_type: LiquidationType,
        target_amount: Money,
        reserve_price: Money,
        commission_rate: Decimal,
    ) -> AssetLiquidation:
        self._ensure_not_encumbered("start a liquidation")
        ASSET_TRANSITIONS.require(self.status, "liquidate", self.id)
        if self.has_active_liquidation:
            raise IllegalStateError(
                f"Asset {self.id} already has liquidation {self.liquidation.id} in progress",
                context={
                    "asset_id": str(self.id),
                    "liquidation_id": str(self.liquidation.id),
                },
            )
        if target_amount.currency != self.currency:
            raise CurrencyMismatchError(
                "liquidate", self.currency.value, target_amount.currency.value
            )
        self.liquidation = AssetLiquidation(
            asset_id=self.id,
            estate_id=self.estate_id,
            liquidation_type=liquidation_type,
            target_amount=target_amount,
            reserve_price=reserve_price,
            commission_rate=commission_rate,
        )
        self._touch()
        return self.liquidation

    def require_liquidation(self) -> AssetLiquidation:
        if self.liquidation is None:
            raise MissingReferenceError(
                "liquidation", f"asset {self.id} has no liquidation in progress"
            )
        return self.liquidation

    def mark_liquidated(self) -> None:
        """Move to LIQUIDATED once sale proceeds have reached the estate."""
        self._transition("liquidate")

    def release_finished_liquidation(self) -> AssetLiquidation | None:
        """Drop the liquidation once it is closed or cancelled."""
        if self.liquidation is not None and self.liquidation.is_terminal:
            finished, self.liquidation = self.liquidation, None
            self._touch()
            return finished
        return None


__all__ = [
    "ASSET_TRANSITIONS",
    "Asset",
    "AssetCoOwner",
    "AssetDetails",
    "AssetEncumbranceType",
    "AssetStatus",
    "AssetType",
    "AssetValuation",
    "BusinessDetails",
    "CoOwnership",
    "CoOwnershipType",
    "Encumbrance",
    "FinancialDetails",
    "LandDetails",
    "ValuationSource",
    "VehicleDetails",
    "validate_share",
]
