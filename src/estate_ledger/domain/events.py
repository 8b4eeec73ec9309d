"""Change records buffered by the Estate aggregate.

Events are collected during a mutation and handed to the repository with
the snapshot. They are published only after the save commits.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class EstateEventType(str, Enum):
    ESTATE_CREATED = "estate_created"
    ESTATE_FROZEN = "estate_frozen"
    ESTATE_UNFROZEN = "estate_unfrozen"
    ESTATE_INSOLVENCY_DETECTED = "estate_insolvency_detected"
    ESTATE_READY_FOR_DISTRIBUTION = "estate_ready_for_distribution"
    ESTATE_CASH_UPDATED = "estate_cash_updated"
    ESTATE_DISTRIBUTION_STARTED = "estate_distribution_started"
    ESTATE_DISTRIBUTION_COMPLETED = "estate_distribution_completed"
    ESTATE_CLOSED = "estate_closed"
    ASSET_ADDED = "asset_added"
    ASSET_UPDATED = "asset_updated"
    ASSET_REMOVED = "asset_removed"
    ASSET_ENCUMBERED = "asset_encumbered"
    ASSET_CO_OWNER_ADDED = "asset_co_owner_added"
    ASSET_LIQUIDATION_STARTED = "asset_liquidation_started"
    ASSET_LIQUIDATION_UPDATED = "asset_liquidation_updated"
    ASSET_LIQUIDATED = "asset_liquidated"
    ASSET_LIQUIDATION_COMPLETED = "asset_liquidation_completed"
    DEBT_ADDED = "debt_added"
    DEBT_PAID = "debt_paid"
    DEBT_SETTLED = "debt_settled"
    DEBT_DISPUTED = "debt_disputed"
    DEBT_DISPUTE_RESOLVED = "debt_dispute_resolved"
    DEBT_WRITTEN_OFF = "debt_written_off"
    DEBT_STATUTE_BARRED = "debt_statute_barred"
    GIFT_ADDED = "gift_added"
    GIFT_CONTESTED = "gift_contested"
    GIFT_CONTEST_RESOLVED = "gift_contest_resolved"
    GIFT_VALUE_CORRECTED = "gift_value_corrected"
    DEPENDANT_ADDED = "dependant_added"
    DEPENDANT_VERIFIED = "dependant_verified"
    DEPENDANT_UPDATED = "dependant_updated"
    TAX_ASSESSMENT_RECEIVED = "tax_assessment_received"
    TAX_ASSESSMENT_DISPUTED = "tax_assessment_disputed"
    TAX_PAYMENT_RECORDED = "tax_payment_recorded"
    TAX_CLEARED = "tax_cleared"


@dataclass(frozen=True)
class EstateEvent:
    event_type: EstateEventType
    estate_id: UUID
    payload: dict[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utc_now)
    actor_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "event_type": self.event_type.value,
            "estate_id": str(self.estate_id),
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
            "actor_id": self.actor_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EstateEvent":
        return cls(
            event_type=EstateEventType(data["event_type"]),
            estate_id=UUID(data["estate_id"]),
            payload=dict(data.get("payload") or {}),
            id=UUID(data["id"]),
            occurred_at=datetime.fromisoformat(data["occurred_at"]),
            actor_id=data.get("actor_id"),
        )


__all__ = ["EstateEvent", "EstateEventType"]
