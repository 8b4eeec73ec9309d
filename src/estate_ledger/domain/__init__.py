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
)
from estate_ledger.domain.dependants import (
    Dependant,
    DependantRelationship,
    DependantStatus,
)
from estate_ledger.domain.estate import (
    DistributionReadiness,
    Estate,
    EstateStatus,
    ReadinessCheck,
    TaxStatus,
)
from estate_ledger.domain.events import EstateEvent, EstateEventType
from estate_ledger.domain.gifts import GiftInterVivos, GiftStatus
from estate_ledger.domain.liquidation import (
    AssetLiquidation,
    BuyerInfo,
    LiquidationStatus,
    LiquidationType,
)
from estate_ledger.domain.transitions import TransitionTable
from estate_ledger.domain.value_objects import Currency, Money

__all__ = [
    "Asset",
    "AssetCoOwner",
    "AssetEncumbranceType",
    "AssetLiquidation",
    "AssetStatus",
    "AssetType",
    "AssetValuation",
    "BusinessDetails",
    "BuyerInfo",
    "CoOwnership",
    "CoOwnershipType",
    "Currency",
    "Debt",
    "DebtPriority",
    "DebtStatus",
    "DebtTier",
    "DebtType",
    "Dependant",
    "DependantRelationship",
    "DependantStatus",
    "DistributionReadiness",
    "Encumbrance",
    "Estate",
    "EstateEvent",
    "EstateEventType",
    "EstateStatus",
    "FinancialDetails",
    "GiftInterVivos",
    "GiftStatus",
    "LandDetails",
    "LiquidationStatus",
    "LiquidationType",
    "Money",
    "ReadinessCheck",
    "TaxStatus",
    "TransitionTable",
    "ValuationSource",
    "VehicleDetails",
]
