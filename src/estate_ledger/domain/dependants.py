"""Claims by dependants for reasonable provision out of the estate (S.29)."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from estate_ledger.domain.transitions import build_table
from estate_ledger.domain.value_objects import Money
from estate_ledger.exceptions import ValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DependantRelationship(str, Enum):
    SPOUSE = "spouse"
    CHILD = "child"
    ADOPTED_CHILD = "adopted_child"
    STEP_CHILD = "step_child"
    PARENT = "parent"
    SIBLING = "sibling"
    GRANDCHILD = "grandchild"
    NIECE_NEPHEW = "niece_nephew"
    OTHER = "other"


class DependantStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"
    DISPUTED = "disputed"
    SETTLED = "settled"


DEPENDANT_TRANSITIONS = build_table(
    "Dependant",
    [
        (DependantStatus.PENDING_VERIFICATION, "verify", DependantStatus.VERIFIED),
        (DependantStatus.PENDING_VERIFICATION, "reject", DependantStatus.REJECTED),
        (DependantStatus.PENDING_VERIFICATION, "dispute", DependantStatus.DISPUTED),
        (DependantStatus.VERIFIED, "dispute", DependantStatus.DISPUTED),
        (DependantStatus.VERIFIED, "settle", DependantStatus.SETTLED),
        (DependantStatus.DISPUTED, "uphold", DependantStatus.VERIFIED),
        (DependantStatus.DISPUTED, "dismiss", DependantStatus.REJECTED),
    ],
    terminal_states=(DependantStatus.REJECTED, DependantStatus.SETTLED),
)

# Spouses and children are presumed dependants; everyone else must prove it.
PRIORITY_RELATIONSHIPS = frozenset(
    {
        DependantRelationship.SPOUSE,
        DependantRelationship.CHILD,
        DependantRelationship.ADOPTED_CHILD,
    }
)


@dataclass
class Dependant:
    estate_id: UUID
    full_name: str
    relationship: DependantRelationship
    id: UUID = field(default_factory=uuid4)
    person_id: UUID | None = None
    monthly_support_claimed: Money | None = None
    status: DependantStatus = DependantStatus.PENDING_VERIFICATION
    is_minor: bool = False
    has_disability: bool = False
    evidence_refs: list[str] = field(default_factory=list)
    verified_by: str | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    dispute_reason: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.full_name.strip():
            raise ValidationError("Dependant name is required")

    @property
    def is_priority_dependant(self) -> bool:
        return self.relationship in PRIORITY_RELATIONSHIPS

    @property
    def is_disputed(self) -> bool:
        return self.status == DependantStatus.DISPUTED

    @property
    def annual_support_claimed(self) -> Money | None:
        if self.monthly_support_claimed is None:
            return None
        return self.monthly_support_claimed * 12

    def _transition(self, action: str) -> None:
        self.status = DEPENDANT_TRANSITIONS.next_state(self.status, action, self.id)
        self.updated_at = _utc_now()

    def verify(self, verified_by: str, evidence_ref: str | None = None) -> None:
        self._transition("verify")
        self.verified_by = verified_by
        self.verified_at = _utc_now()
        if evidence_ref:
            self.evidence_refs.append(evidence_ref)

    def reject(self, reason: str) -> None:
        self._transition("reject")
        self.rejection_reason = reason

    def dispute(self, reason: str) -> None:
        if not reason.strip():
            raise ValidationError("A dispute reason is required")
        self._transition("dispute")
        self.dispute_reason = reason

    def resolve_dispute(self, upheld: bool, resolution: str) -> None:
        """Close a dispute: an upheld claim becomes verified, otherwise rejected."""
        self._transition("uphold" if upheld else "dismiss")
        if not upheld:
            self.rejection_reason = resolution

    def settle(self) -> None:
        self._transition("settle")


__all__ = [
    "DEPENDANT_TRANSITIONS",
    "Dependant",
    "DependantRelationship",
    "DependantStatus",
]
