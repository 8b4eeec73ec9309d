from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol
from uuid import UUID, uuid4

from estate_ledger.domain.assets import Asset, AssetDetails, AssetType
from estate_ledger.domain.debts import Debt, DebtType
from estate_ledger.domain.estate import DistributionReadiness, Estate
from estate_ledger.domain.events import EstateEvent
from estate_ledger.domain.gifts import GiftInterVivos
from estate_ledger.domain.liquidation import AssetLiquidation, BuyerInfo, LiquidationType
from estate_ledger.domain.value_objects import Currency, Money


@dataclass(frozen=True)
class Intent:
    """Who is asking, and the id that ties their request together in the logs."""

    actor_id: str | None = None
    correlation_id: str = field(default_factory=lambda: str(uuid4()))


class EventPublisher(Protocol):
    def publish(self, events: Sequence[EstateEvent]) -> None: ...


class EstateService(ABC):
    @abstractmethod
    def open_estate(
        self,
        deceased_id: UUID,
        name: str,
        currency: Currency | str | None = None,
        opening_cash: Money | None = None,
        date_of_death: date | None = None,
        intent: Intent | None = None,
    ) -> Estate:
        pass

    @abstractmethod
    def get_estate(self, estate_id: UUID) -> Estate:
        pass

    @abstractmethod
    def execute(
        self,
        estate_id: UUID,
        operation: Callable[[Estate], Any],
        *,
        expected_version: int | None = None,
        intent: Intent | None = None,
    ) -> list[EstateEvent]:
        pass

    @abstractmethod
    def add_debt(
        self,
        estate_id: UUID,
        creditor_name: str,
        debt_type: DebtType,
        amount: Money,
        description: str = "",
        is_secured: bool = False,
        secured_asset_id: UUID | None = None,
        incurred_date: date | None = None,
        intent: Intent | None = None,
    ) -> Debt:
        pass

    @abstractmethod
    def pay_debt(
        self,
        estate_id: UUID,
        debt_id: UUID,
        amount: Money,
        *,
        expected_version: int | None = None,
        intent: Intent | None = None,
    ) -> Debt:
        pass

    @abstractmethod
    def add_asset(
        self,
        estate_id: UUID,
        name: str,
        details: AssetDetails,
        value: Money,
        intent: Intent | None = None,
    ) -> Asset:
        pass

    @abstractmethod
    def start_liquidation(
        self,
        estate_id: UUID,
        asset_id: UUID,
        liquidation_type: LiquidationType,
        target_amount: Money,
        reserve_price: Money,
        intent: Intent | None = None,
    ) -> AssetLiquidation:
        pass

    @abstractmethod
    def record_liquidation_sale(
        self,
        estate_id: UUID,
        asset_id: UUID,
        amount: Money,
        buyer: BuyerInfo,
        intent: Intent | None = None,
    ) -> AssetLiquidation:
        pass

    @abstractmethod
    def receive_liquidation_proceeds(
        self, estate_id: UUID, asset_id: UUID, intent: Intent | None = None
    ) -> Money:
        pass

    @abstractmethod
    def add_gift(
        self,
        estate_id: UUID,
        recipient_id: UUID,
        description: str,
        asset_type: AssetType,
        value: Money,
        date_given: date,
        intent: Intent | None = None,
    ) -> GiftInterVivos:
        pass

    @abstractmethod
    def contest_gift(
        self,
        estate_id: UUID,
        gift_id: UUID,
        reason: str,
        intent: Intent | None = None,
    ) -> GiftInterVivos:
        pass

    @abstractmethod
    def check_statute_barred_debts(
        self, estate_id: UUID, as_of: date, intent: Intent | None = None
    ) -> list[Debt]:
        pass

    @abstractmethod
    def freeze(self, estate_id: UUID, reason: str, intent: Intent | None = None) -> Estate:
        pass

    @abstractmethod
    def unfreeze(
        self, estate_id: UUID, reason: str, intent: Intent | None = None
    ) -> Estate:
        pass

    @abstractmethod
    def readiness(self, estate_id: UUID) -> DistributionReadiness:
        pass

    @abstractmethod
    def substantial_gifts(self, estate_id: UUID) -> list[GiftInterVivos]:
        pass
