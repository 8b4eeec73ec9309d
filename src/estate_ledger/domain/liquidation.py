"""Conversion of a single estate asset into cash.

A liquidation moves through approval, marketing (private listing or
auction), sale, receipt of proceeds and closure. Failed and expired sales
can be re-listed; cancelled and closed liquidations are final.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from estate_ledger.domain.transitions import build_table
from estate_ledger.domain.value_objects import Money
from estate_ledger.exceptions import (
    CurrencyMismatchError,
    SaleAmountRejectedError,
    TerminalLiquidationError,
    ValidationError,
)

DEFAULT_COMMISSION_RATE = Decimal("0.05")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class LiquidationType(str, Enum):
    PRIVATE_TREATY = "private_treaty"
    PUBLIC_AUCTION = "public_auction"
    SALE_TO_BENEFICIARY = "sale_to_beneficiary"
    BUYBACK = "buyback"
    MARKET_SALE = "market_sale"


class LiquidationStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    LISTED_FOR_SALE = "listed_for_sale"
    AUCTION_SCHEDULED = "auction_scheduled"
    AUCTION_IN_PROGRESS = "auction_in_progress"
    SALE_PENDING = "sale_pending"
    SALE_COMPLETED = "sale_completed"
    PROCEEDS_RECEIVED = "proceeds_received"
    DISTRIBUTED = "distributed"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    EXPIRED = "expired"


_S = LiquidationStatus
_RELIST = (
    ("list_for_sale", _S.LISTED_FOR_SALE),
    ("schedule_auction", _S.AUCTION_SCHEDULED),
    ("cancel", _S.CANCELLED),
)

LIQUIDATION_TRANSITIONS = build_table(
    "AssetLiquidation",
    [
        (_S.DRAFT, "submit", _S.PENDING_APPROVAL),
        (_S.DRAFT, "cancel", _S.CANCELLED),
        (_S.PENDING_APPROVAL, "approve", _S.APPROVED),
        (_S.PENDING_APPROVAL, "reject", _S.DRAFT),
        (_S.PENDING_APPROVAL, "cancel", _S.CANCELLED),
        *((_S.APPROVED, action, target) for action, target in _RELIST),
        (_S.LISTED_FOR_SALE, "accept_offer", _S.SALE_PENDING),
        (_S.LISTED_FOR_SALE, "expire", _S.EXPIRED),
        (_S.LISTED_FOR_SALE, "fail", _S.FAILED),
        (_S.LISTED_FOR_SALE, "cancel", _S.CANCELLED),
        (_S.AUCTION_SCHEDULED, "start_auction", _S.AUCTION_IN_PROGRESS),
        (_S.AUCTION_SCHEDULED, "fail", _S.FAILED),
        (_S.AUCTION_SCHEDULED, "cancel", _S.CANCELLED),
        (_S.SALE_PENDING, "complete_sale", _S.SALE_COMPLETED),
        (_S.SALE_PENDING, "fail", _S.FAILED),
        (_S.SALE_PENDING, "cancel", _S.CANCELLED),
        (_S.AUCTION_IN_PROGRESS, "complete_sale", _S.SALE_COMPLETED),
        (_S.AUCTION_IN_PROGRESS, "fail", _S.FAILED),
        (_S.SALE_COMPLETED, "receive_proceeds", _S.PROCEEDS_RECEIVED),
        (_S.PROCEEDS_RECEIVED, "distribute", _S.DISTRIBUTED),
        (_S.DISTRIBUTED, "close", _S.CLOSED),
        *((_S.FAILED, action, target) for action, target in _RELIST),
        *((_S.EXPIRED, action, target) for action, target in _RELIST),
    ],
    terminal_states=(_S.CLOSED, _S.CANCELLED),
)

# Once proceeds are in hand the asset's value lives in the estate's cash.
COMPLETED_STATUSES = frozenset(
    {_S.PROCEEDS_RECEIVED, _S.DISTRIBUTED, _S.CLOSED}
)


@dataclass(frozen=True)
class BuyerInfo:
    name: str
    identification: str | None = None
    contact: str | None = None
    is_beneficiary: bool = False

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValidationError("Buyer name is required")


@dataclass
class AssetLiquidation:
    asset_id: UUID
    estate_id: UUID
    liquidation_type: LiquidationType
    target_amount: Money
    reserve_price: Money
    id: UUID = field(default_factory=uuid4)
    commission_rate: Decimal = DEFAULT_COMMISSION_RATE
    status: LiquidationStatus = LiquidationStatus.DRAFT
    actual_amount: Money | None = None
    buyer: BuyerInfo | None = None
    commission_amount: Money | None = None
    net_proceeds: Money | None = None
    approved_by: str | None = None
    court_order_reference: str | None = None
    auction_date: date | None = None
    sale_date: date | None = None
    proceeds_received_at: datetime | None = None
    cancellation_reason: str | None = None
    failure_reason: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.commission_rate, Decimal):
            self.commission_rate = Decimal(str(self.commission_rate))
        if not Decimal("0") <= self.commission_rate < Decimal("1"):
            raise ValidationError(
                f"Commission rate must be in [0, 1), got {self.commission_rate}",
                context={"commission_rate": str(self.commission_rate)},
            )
        if self.reserve_price.currency != self.target_amount.currency:
            raise CurrencyMismatchError(
                "compare",
                self.reserve_price.currency.value,
                self.target_amount.currency.value,
            )
        if not self.target_amount.is_positive:
            raise ValidationError("Liquidation target amount must be positive")
        if self.reserve_price > self.target_amount:
            raise ValidationError(
                f"Reserve price {self.reserve_price} exceeds target {self.target_amount}",
                context={
                    "reserve_price": str(self.reserve_price.amount),
                    "target_amount": str(self.target_amount.amount),
                },
            )

    @property
    def is_terminal(self) -> bool:
        return LIQUIDATION_TRANSITIONS.is_terminal(self.status)

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    def _transition(self, action: str) -> None:
        if self.is_terminal:
            raise TerminalLiquidationError(self.id, self.status.value, action)
        self.status = LIQUIDATION_TRANSITIONS.next_state(self.status, action, self.id)
        self.updated_at = _utc_now()

    def submit_for_approval(self) -> None:
        self._transition("submit")

    def approve(self, approved_by: str, court_order_reference: str | None = None) -> None:
        if not approved_by.strip():
            raise ValidationError("Liquidation approval needs an approver")
        self._transition("approve")
        self.approved_by = approved_by
        self.court_order_reference = court_order_reference

    def reject(self, reason: str) -> None:
        self._transition("reject")
        self.failure_reason = reason

    def list_for_sale(self) -> None:
        self._transition("list_for_sale")

    def schedule_auction(self, auction_date: date) -> None:
        self._transition("schedule_auction")
        self.auction_date = auction_date

    def accept_offer(self, buyer: BuyerInfo) -> None:
        self._transition("accept_offer")
        self.buyer = buyer

    def start_auction(self) -> None:
        self._transition("start_auction")

    def record_sale_completion(
        self, actual_amount: Money, buyer: BuyerInfo, sale_date: date | None = None
    ) -> Money:
        """Record the sale price and compute commission and net proceeds.

        Raises:
            SaleAmountRejectedError: If the price is below the reserve price.
        """
        if self.is_terminal:
            raise TerminalLiquidationError(self.id, self.status.value, "complete_sale")
        LIQUIDATION_TRANSITIONS.require(self.status, "complete_sale", self.id)
        if actual_amount < self.reserve_price:
            raise SaleAmountRejectedError(
                self.id, str(actual_amount.amount), str(self.reserve_price.amount)
            )
        commission = actual_amount * self.commission_rate
        self._transition("complete_sale")
        self.actual_amount = actual_amount
        self.buyer = buyer
        self.sale_date = sale_date or date.today()
        self.commission_amount = commission
        self.net_proceeds = actual_amount - commission
        return self.net_proceeds

    def receive_proceeds(self) -> Money:
        self._transition("receive_proceeds")
        self.proceeds_received_at = _utc_now()
        return self.net_proceeds

    def mark_distributed(self) -> None:
        self._transition("distribute")

    def close(self) -> None:
        self._transition("close")

    def cancel(self, reason: str) -> None:
        if not reason.strip():
            raise ValidationError("A cancellation reason is required")
        self._transition("cancel")
        self.cancellation_reason = reason

    def record_failure(self, reason: str) -> None:
        self._transition("fail")
        self.failure_reason = reason

    def expire(self) -> None:
        self._transition("expire")


__all__ = [
    "COMPLETED_STATUSES",
    "DEFAULT_COMMISSION_RATE",
    "LIQUIDATION_TRANSITIONS",
    "AssetLiquidation",
    "BuyerInfo",
    "LiquidationStatus",
    "LiquidationType",
]
