"""JSON-ready snapshot mapping for the Estate aggregate.

Decimals are written as strings, enums by value, UUIDs and dates in their
canonical string form, so a snapshot round-trips without losing a cent.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from estate_ledger.domain.assets import (
    Asset,
    AssetCoOwner,
    AssetEncumbranceType,
    AssetStatus,
    AssetType,
    AssetValuation,
    BusinessDetails,
    CoOwnership,
    CoOwnershipType,
    Encumbrance,
    FinancialDetails,
    LandDetails,
    ValuationSource,
    VehicleDetails,
)
from estate_ledger.domain.debts import (
    Debt,
    DebtPriority,
    DebtStatus,
    DebtTier,
    DebtType,
    DisputeInfo,
    WriteOffRecord,
)
from estate_ledger.domain.dependants import (
    Dependant,
    DependantRelationship,
    DependantStatus,
)
from estate_ledger.domain.estate import Estate, EstateStatus, TaxCompliance, TaxStatus
from estate_ledger.domain.gifts import GiftInterVivos, GiftStatus, GiftValueCorrection
from estate_ledger.domain.liquidation import (
    AssetLiquidation,
    BuyerInfo,
    LiquidationStatus,
    LiquidationType,
)
from estate_ledger.domain.value_objects import Money

SNAPSHOT_SCHEMA_VERSION = 1


# =============================================================================
# Scalars
# =============================================================================


def _money(value: Money | None) -> dict[str, str] | None:
    if value is None:
        return None
    return {"amount": str(value.amount), "currency": value.currency.value}


def _load_money(data: dict[str, str] | None) -> Money | None:
    if data is None:
        return None
    return Money(Decimal(data["amount"]), data["currency"])


def _uuid(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def _load_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value is not None else None


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _load_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _load_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value is not None else None


def _decimal(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _load_decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


# =============================================================================
# Debts
# =============================================================================


def debt_to_dict(debt: Debt) -> dict[str, Any]:
    dispute = debt.dispute_info
    return {
        "id": str(debt.id),
        "estate_id": str(debt.estate_id),
        "creditor_name": debt.creditor_name,
        "description": debt.description,
        "debt_type": debt.debt_type.value,
        "tier": debt.priority.rank,
        "initial_amount": _money(debt.initial_amount),
        "outstanding_balance": _money(debt.outstanding_balance),
        "total_paid": _money(debt.total_paid),
        "is_secured": debt.is_secured,
        "secured_asset_id": _uuid(debt.secured_asset_id),
        "status": debt.status.value,
        "dispute_info": None
        if dispute is None
        else {
            "reason": dispute.reason,
            "raised_by": dispute.raised_by,
            "raised_at": _iso(dispute.raised_at),
            "resolution": dispute.resolution,
            "resolved_at": _iso(dispute.resolved_at),
        },
        "is_statute_barred": debt.is_statute_barred,
        "incurred_date": _iso(debt.incurred_date),
        "due_date": _iso(debt.due_date),
        "last_payment_date": _iso(debt.last_payment_date),
        "write_offs": [
            {
                "amount": _money(record.amount),
                "reason": record.reason,
                "authorized_by": record.authorized_by,
                "written_off_at": _iso(record.written_off_at),
            }
            for record in debt.write_offs
        ],
        "creditor_contact": debt.creditor_contact,
        "reference_number": debt.reference_number,
        "created_at": _iso(debt.created_at),
        "updated_at": _iso(debt.updated_at),
    }


def debt_from_dict(data: dict[str, Any]) -> Debt:
    debt_type = DebtType(data["debt_type"])
    dispute = data.get("dispute_info")
    return Debt(
        id=UUID(data["id"]),
        estate_id=UUID(data["estate_id"]),
        creditor_name=data["creditor_name"],
        description=data["description"],
        debt_type=debt_type,
        priority=DebtPriority(DebtTier(data["tier"]), debt_type),
        initial_amount=_load_money(data["initial_amount"]),
        outstanding_balance=_load_money(data["outstanding_balance"]),
        total_paid=_load_money(data["total_paid"]),
        is_secured=data["is_secured"],
        secured_asset_id=_load_uuid(data.get("secured_asset_id")),
        status=DebtStatus(data["status"]),
        dispute_info=None
        if dispute is None
        else DisputeInfo(
            reason=dispute["reason"],
            raised_by=dispute.get("raised_by"),
            raised_at=_load_datetime(dispute["raised_at"]),
            resolution=dispute.get("resolution"),
            resolved_at=_load_datetime(dispute.get("resolved_at")),
        ),
        is_statute_barred=data["is_statute_barred"],
        incurred_date=_load_date(data.get("incurred_date")),
        due_date=_load_date(data.get("due_date")),
        last_payment_date=_load_date(data.get("last_payment_date")),
        write_offs=[
            WriteOffRecord(
                amount=_load_money(record["amount"]),
                reason=record["reason"],
                authorized_by=record["authorized_by"],
                written_off_at=_load_datetime(record["written_off_at"]),
            )
            for record in data.get("write_offs", [])
        ],
        creditor_contact=data.get("creditor_contact"),
        reference_number=data.get("reference_number"),
        created_at=_load_datetime(data["created_at"]),
        updated_at=_load_datetime(data["updated_at"]),
    )


# =============================================================================
# Assets and liquidations
# =============================================================================


def _details_to_dict(details: Any) -> dict[str, Any]:
    if isinstance(details, LandDetails):
        fields = {
            "title_number": details.title_number,
            "county": details.county,
            "parcel_number": details.parcel_number,
            "size_acres": _decimal(details.size_acres),
            "land_use": details.land_use,
        }
    elif isinstance(details, VehicleDetails):
        fields = {
            "registration_number": details.registration_number,
            "make": details.make,
            "model": details.model,
            "year": details.year,
            "chassis_number": details.chassis_number,
        }
    elif isinstance(details, FinancialDetails):
        fields = {
            "institution_name": details.institution_name,
            "account_number": details.account_number,
            "account_type": details.account_type,
            "is_joint_account": details.is_joint_account,
        }
    else:
        fields = {
            "business_name": details.business_name,
            "registration_number": details.registration_number,
            "shareholding_percentage": _decimal(details.shareholding_percentage),
            "business_type": details.business_type,
        }
    return {"kind": details.asset_type.value, **fields}


def _details_from_dict(data: dict[str, Any]) -> Any:
    fields = {key: value for key, value in data.items() if key != "kind"}
    kind = AssetType(data["kind"])
    if kind == AssetType.LAND:
        fields["size_acres"] = _load_decimal(fields.get("size_acres"))
        return LandDetails(**fields)
    if kind == AssetType.VEHICLE:
        return VehicleDetails(**fields)
    if kind == AssetType.FINANCIAL:
        return FinancialDetails(**fields)
    fields["shareholding_percentage"] = _load_decimal(fields.get("shareholding_percentage"))
    return BusinessDetails(**fields)


def liquidation_to_dict(liquidation: AssetLiquidation) -> dict[str, Any]:
    buyer = liquidation.buyer
    return {
        "id": str(liquidation.id),
        "asset_id": str(liquidation.asset_id),
        "estate_id": str(liquidation.estate_id),
        "liquidation_type": liquidation.liquidation_type.value,
        "target_amount": _money(liquidation.target_amount),
        "reserve_price": _money(liquidation.reserve_price),
        "commission_rate": str(liquidation.commission_rate),
        "status": liquidation.status.value,
        "actual_amount": _money(liquidation.actual_amount),
        "buyer": None
        if buyer is None
        else {
            "name": buyer.name,
            "identification": buyer.identification,
            "contact": buyer.contact,
            "is_beneficiary": buyer.is_beneficiary,
        },
        "commission_amount": _money(liquidation.commission_amount),
        "net_proceeds": _money(liquidation.net_proceeds),
        "approved_by": liquidation.approved_by,
        "court_order_reference": liquidation.court_order_reference,
        "auction_date": _iso(liquidation.auction_date),
        "sale_date": _iso(liquidation.sale_date),
        "proceeds_received_at": _iso(liquidation.proceeds_received_at),
        "cancellation_reason": liquidation.cancellation_reason,
        "failure_reason": liquidation.failure_reason,
        "created_at": _iso(liquidation.created_at),
        "updated_at": _iso(liquidation.updated_at),
    }


def liquidation_from_dict(data: dict[str, Any]) -> AssetLiquidation:
    buyer = data.get("buyer")
    return AssetLiquidation(
        id=UUID(data["id"]),
        asset_id=UUID(data["asset_id"]),
        estate_id=UUID(data["estate_id"]),
        liquidation_type=LiquidationType(data["liquidation_type"]),
        target_amount=_load_money(data["target_amount"]),
        reserve_price=_load_money(data["reserve_price"]),
        commission_rate=Decimal(data["commission_rate"]),
        status=LiquidationStatus(data["status"]),
        actual_amount=_load_money(data.get("actual_amount")),
        buyer=None if buyer is None else BuyerInfo(**buyer),
        commission_amount=_load_money(data.get("commission_amount")),
        net_proceeds=_load_money(data.get("net_proceeds")),
        approved_by=data.get("approved_by"),
        court_order_reference=data.get("court_order_reference"),
        auction_date=_load_date(data.get("auction_date")),
        sale_date=_load_date(data.get("sale_date")),
        proceeds_received_at=_load_datetime(data.get("proceeds_received_at")),
        cancellation_reason=data.get("cancellation_reason"),
        failure_reason=data.get("failure_reason"),
        created_at=_load_datetime(data["created_at"]),
        updated_at=_load_datetime(data["updated_at"]),
    )


def _co_owner_to_dict(owner: AssetCoOwner) -> dict[str, Any]:
    return {
        "id": str(owner.id),
        "asset_id": str(owner.asset_id),
        "owner_identity": owner.owner_identity,
        "share_percentage": str(owner.share_percentage),
        "ownership_type": owner.ownership_type.value,
        "is_active": owner.is_active,
        "is_verified": owner.is_verified,
        "evidence_ref": owner.evidence_ref,
        "verified_by": owner.verified_by,
        "verified_at": _iso(owner.verified_at),
        "removal_reason": owner.removal_reason,
        "added_at": _iso(owner.added_at),
    }


def _co_owner_from_dict(data: dict[str, Any]) -> AssetCoOwner:
    return AssetCoOwner(
        id=UUID(data["id"]),
        asset_id=UUID(data["asset_id"]),
        owner_identity=data["owner_identity"],
        share_percentage=Decimal(data["share_percentage"]),
        ownership_type=CoOwnershipType(data["ownership_type"]),
        is_active=data["is_active"],
        is_verified=data["is_verified"],
        evidence_ref=data.get("evidence_ref"),
        verified_by=data.get("verified_by"),
        verified_at=_load_datetime(data.get("verified_at")),
        removal_reason=data.get("removal_reason"),
        added_at=_load_datetime(data["added_at"]),
    )


def asset_to_dict(asset: Asset) -> dict[str, Any]:
    ownership = asset.co_ownership
    encumbrance = asset.encumbrance
    return {
        "id": str(asset.id),
        "estate_id": str(asset.estate_id),
        "name": asset.name,
        "details": _details_to_dict(asset.details),
        "current_value": _money(asset.current_value),
        "status": asset.status.value,
        "is_encumbered": asset.is_encumbered,
        "encumbrance": None
        if encumbrance is None
        else {
            "encumbrance_type": encumbrance.encumbrance_type.value,
            "details": encumbrance.details,
            "secured_amount": _money(encumbrance.secured_amount),
            "debt_id": _uuid(encumbrance.debt_id),
            "recorded_at": _iso(encumbrance.recorded_at),
        },
        "co_ownership": None
        if ownership is None
        else {
            "ownership_type": ownership.ownership_type.value,
            "co_owners": [_co_owner_to_dict(owner) for owner in ownership.co_owners],
        },
        "valuations": [
            {
                "value": _money(valuation.value),
                "source": valuation.source.value,
                "valued_on": _iso(valuation.valued_on),
                "valuer": valuation.valuer,
                "notes": valuation.notes,
                "recorded_at": _iso(valuation.recorded_at),
            }
            for valuation in asset.valuations
        ],
        "liquidation": None
        if asset.liquidation is None
        else liquidation_to_dict(asset.liquidation),
        "description": asset.description,
        "dispute_reason": asset.dispute_reason,
        "acquisition_date": _iso(asset.acquisition_date),
        "created_at": _iso(asset.created_at),
        "updated_at": _iso(asset.updated_at),
    }


def asset_from_dict(data: dict[str, Any]) -> Asset:
    ownership = data.get("co_ownership")
    encumbrance = data.get("encumbrance")
    liquidation = data.get("liquidation")
    return Asset(
        id=UUID(data["id"]),
        estate_id=UUID(data["estate_id"]),
        name=data["name"],
        details=_details_from_dict(data["details"]),
        current_value=_load_money(data["current_value"]),
        status=AssetStatus(data["status"]),
        is_encumbered=data["is_encumbered"],
        encumbrance=None
        if encumbrance is None
        else Encumbrance(
            encumbrance_type=AssetEncumbranceType(encumbrance["encumbrance_type"]),
            details=encumbrance["details"],
            secured_amount=_load_money(encumbrance.get("secured_amount")),
            debt_id=_load_uuid(encumbrance.get("debt_id")),
            recorded_at=_load_datetime(encumbrance["recorded_at"]),
        ),
        co_ownership=None
        if ownership is None
        else CoOwnership(
            ownership_type=CoOwnershipType(ownership["ownership_type"]),
            co_owners=[_co_owner_from_dict(owner) for owner in ownership["co_owners"]],
        ),
        valuations=[
            AssetValuation(
                value=_load_money(valuation["value"]),
                source=ValuationSource(valuation["source"]),
                valued_on=_load_date(valuation["valued_on"]),
                valuer=valuation.get("valuer"),
                notes=valuation.get("notes"),
                recorded_at=_load_datetime(valuation["recorded_at"]),
            )
            for valuation in data.get("valuations", [])
        ],
        liquidation=None if liquidation is None else liquidation_from_dict(liquidation),
        description=data.get("description"),
        dispute_reason=data.get("dispute_reason"),
        acquisition_date=_load_date(data.get("acquisition_date")),
        created_at=_load_datetime(data["created_at"]),
        updated_at=_load_datetime(data["updated_at"]),
    )


# =============================================================================
# Gifts and dependants
# =============================================================================


def gift_to_dict(gift: GiftInterVivos) -> dict[str, Any]:
    return {
        "id": str(gift.id),
        "estate_id": str(gift.estate_id),
        "recipient_id": str(gift.recipient_id),
        "description": gift.description,
        "asset_type": gift.asset_type.value,
        "value_at_time_of_gift": _money(gift.value_at_time_of_gift),
        "date_given": _iso(gift.date_given),
        "is_subject_to_hotchpot": gift.is_subject_to_hotchpot,
        "status": gift.status.value,
        "current_estimated_value": _money(gift.current_estimated_value),
        "contest_reason": gift.contest_reason,
        "contested_by": gift.contested_by,
        "resolution_reason": gift.resolution_reason,
        "corrections": [
            {
                "previous_value": _money(correction.previous_value),
                "corrected_value": _money(correction.corrected_value),
                "reason": correction.reason,
                "authorised_by": correction.authorised_by,
                "corrected_at": _iso(correction.corrected_at),
            }
            for correction in gift.corrections
        ],
        "created_at": _iso(gift.created_at),
        "updated_at": _iso(gift.updated_at),
    }


def gift_from_dict(data: dict[str, Any]) -> GiftInterVivos:
    return GiftInterVivos(
        id=UUID(data["id"]),
        estate_id=UUID(data["estate_id"]),
        recipient_id=UUID(data["recipient_id"]),
        description=data["description"],
        asset_type=AssetType(data["asset_type"]),
        value_at_time_of_gift=_load_money(data["value_at_time_of_gift"]),
        date_given=_load_date(data["date_given"]),
        is_subject_to_hotchpot=data["is_subject_to_hotchpot"],
        status=GiftStatus(data["status"]),
        current_estimated_value=_load_money(data.get("current_estimated_value")),
        contest_reason=data.get("contest_reason"),
        contested_by=data.get("contested_by"),
        resolution_reason=data.get("resolution_reason"),
        corrections=[
            GiftValueCorrection(
                previous_value=_load_money(correction["previous_value"]),
                corrected_value=_load_money(correction["corrected_value"]),
                reason=correction["reason"],
                authorised_by=correction["authorised_by"],
                corrected_at=_load_datetime(correction["corrected_at"]),
            )
            for correction in data.get("corrections", [])
        ],
        created_at=_load_datetime(data["created_at"]),
        updated_at=_load_datetime(data["updated_at"]),
    )


def dependant_to_dict(dependant: Dependant) -> dict[str, Any]:
    return {
        "id": str(dependant.id),
        "estate_id": str(dependant.estate_id),
        "full_name": dependant.full_name,
        "relationship": dependant.relationship.value,
        "person_id": _uuid(dependant.person_id),
        "monthly_support_claimed": _money(dependant.monthly_support_claimed),
        "status": dependant.status.value,
        "is_minor": dependant.is_minor,
        "has_disability": dependant.has_disability,
        "evidence_refs": list(dependant.evidence_refs),
        "verified_by": dependant.verified_by,
        "verified_at": _iso(dependant.verified_at),
        "rejection_reason": dependant.rejection_reason,
        "dispute_reason": dependant.dispute_reason,
        "created_at": _iso(dependant.created_at),
        "updated_at": _iso(dependant.updated_at),
    }


def dependant_from_dict(data: dict[str, Any]) -> Dependant:
    return Dependant(
        id=UUID(data["id"]),
        estate_id=UUID(data["estate_id"]),
        full_name=data["full_name"],
        relationship=DependantRelationship(data["relationship"]),
        person_id=_load_uuid(data.get("person_id")),
        monthly_support_claimed=_load_money(data.get("monthly_support_claimed")),
        status=DependantStatus(data["status"]),
        is_minor=data["is_minor"],
        has_disability=data["has_disability"],
        evidence_refs=list(data.get("evidence_refs", [])),
        verified_by=data.get("verified_by"),
        verified_at=_load_datetime(data.get("verified_at")),
        rejection_reason=data.get("rejection_reason"),
        dispute_reason=data.get("dispute_reason"),
        created_at=_load_datetime(data["created_at"]),
        updated_at=_load_datetime(data["updated_at"]),
    )


# =============================================================================
# Estate
# =============================================================================


def estate_to_dict(estate: Estate) -> dict[str, Any]:
    """Serialise the full aggregate. Pending events are not part of the snapshot."""
    tax = estate.tax_compliance
    return {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "id": str(estate.id),
        "deceased_id": str(estate.deceased_id),
        "name": estate.name,
        "status": estate.status.value,
        "is_frozen": estate.is_frozen,
        "freeze_reason": estate.freeze_reason,
        "frozen_at": _iso(estate.frozen_at),
        "status_before_freeze": estate.status_before_freeze.value
        if estate.status_before_freeze
        else None,
        "cash_on_hand": _money(estate.cash_on_hand),
        "cash_reserved_for_debts": _money(estate.cash_reserved_for_debts),
        "assets": [asset_to_dict(asset) for asset in estate.assets.values()],
        "debts": [debt_to_dict(debt) for debt in estate.debts.values()],
        "gifts": [gift_to_dict(gift) for gift in estate.gifts.values()],
        "dependants": [dependant_to_dict(d) for d in estate.dependants.values()],
        "tax_compliance": {
            "status": tax.status.value,
            "debt_id": _uuid(tax.debt_id),
            "assessment_reference": tax.assessment_reference,
            "clearance_certificate": tax.clearance_certificate,
            "exemption_reason": tax.exemption_reason,
            "dispute_reason": tax.dispute_reason,
            "cleared_at": _iso(tax.cleared_at),
        },
        "date_of_death": _iso(estate.date_of_death),
        "version": estate.version,
        "created_at": _iso(estate.created_at),
        "updated_at": _iso(estate.updated_at),
        "closed_at": _iso(estate.closed_at),
    }


def estate_from_dict(data: dict[str, Any]) -> Estate:
    tax = data["tax_compliance"]
    assets = [asset_from_dict(item) for item in data.get("assets", [])]
    debts = [debt_from_dict(item) for item in data.get("debts", [])]
    gifts = [gift_from_dict(item) for item in data.get("gifts", [])]
    dependants = [dependant_from_dict(item) for item in data.get("dependants", [])]
    before_freeze = data.get("status_before_freeze")
    return Estate(
        id=UUID(data["id"]),
        deceased_id=UUID(data["deceased_id"]),
        name=data["name"],
        status=EstateStatus(data["status"]),
        is_frozen=data["is_frozen"],
        freeze_reason=data.get("freeze_reason"),
        frozen_at=_load_datetime(data.get("frozen_at")),
        status_before_freeze=EstateStatus(before_freeze) if before_freeze else None,
        cash_on_hand=_load_money(data["cash_on_hand"]),
        cash_reserved_for_debts=_load_money(data["cash_reserved_for_debts"]),
        assets={asset.id: asset for asset in assets},
        debts={debt.id: debt for debt in debts},
        gifts={gift.id: gift for gift in gifts},
        dependants={dependant.id: dependant for dependant in dependants},
        tax_compliance=TaxCompliance(
            status=TaxStatus(tax["status"]),
            debt_id=_load_uuid(tax.get("debt_id")),
            assessment_reference=tax.get("assessment_reference"),
            clearance_certificate=tax.get("clearance_certificate"),
            exemption_reason=tax.get("exemption_reason"),
            dispute_reason=tax.get("dispute_reason"),
            cleared_at=_load_datetime(tax.get("cleared_at")),
        ),
        date_of_death=_load_date(data.get("date_of_death")),
        version=data["version"],
        created_at=_load_datetime(data["created_at"]),
        updated_at=_load_datetime(data["updated_at"]),
        closed_at=_load_datetime(data.get("closed_at")),
    )


__all__ = [
    "SNAPSHOT_SCHEMA_VERSION",
    "asset_from_dict",
    "asset_to_dict",
    "debt_from_dict",
    "debt_to_dict",
    "dependant_from_dict",
    "dependant_to_dict",
    "estate_from_dict",
    "estate_to_dict",
    "gift_from_dict",
    "gift_to_dict",
    "liquidation_from_dict",
    "liquidation_to_dict",
]
