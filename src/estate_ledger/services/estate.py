"""Caller layer around the Estate aggregate.

Each command loads one estate, runs exactly one aggregate operation,
saves the result and only then hands the committed events to the
publisher. A failed operation never reaches the repository.
"""

from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar
from uuid import UUID

from estate_ledger.config import Settings, get_settings
from estate_ledger.domain.assets import Asset, AssetDetails, AssetType
from estate_ledger.domain.debts import Debt, DebtType
from estate_ledger.domain.estate import DistributionReadiness, Estate
from estate_ledger.domain.events import EstateEvent
from estate_ledger.domain.gifts import GiftInterVivos
from estate_ledger.domain.liquidation import AssetLiquidation, BuyerInfo, LiquidationType
from estate_ledger.domain.value_objects import Currency, Money
from estate_ledger.exceptions import (
    AssetNotFoundError,
    ConcurrencyError,
    DebtNotFoundError,
    DuplicateEstateError,
    EstateLedgerError,
    EstateNotFoundError,
    GiftNotFoundError,
)
from estate_ledger.logging_config import LogContext, get_logger
from estate_ledger.repositories.interfaces import EstateRepository
from estate_ledger.services.interfaces import EstateService, EventPublisher, Intent

logger = get_logger(__name__)

T = TypeVar("T")


class EstateServiceImpl(EstateService):
    """Implementation of EstateService over any EstateRepository."""

    def __init__(
        self,
        repository: EstateRepository,
        publisher: EventPublisher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._repository = repository
        self._publisher = publisher
        self._settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _publish(self, events: list[EstateEvent]) -> None:
        if self._publisher is not None and events:
            self._publisher.publish(events)

    def _load(self, estate_id: UUID) -> Estate:
        estate = self._repository.find_by_id(estate_id)
        if estate is None:
            logger.warning("estate_not_found", estate_id=str(estate_id))
            raise EstateNotFoundError(estate_id)
        return estate

    def _run(
        self,
        estate_id: UUID,
        operation: Callable[[Estate], T],
        expected_version: int | None,
        intent: Intent | None,
    ) -> tuple[T, list[EstateEvent]]:
        intent = intent or Intent()
        with LogContext(
            estate_id=str(estate_id),
            actor_id=intent.actor_id,
            correlation_id=intent.correlation_id,
        ):
            estate = self._load(estate_id)
            logger.debug("estate_loaded", version=estate.version)
            if expected_version is not None and estate.version != expected_version:
                logger.warning(
                    "estate_version_conflict",
                    expected_version=expected_version,
                    actual_version=estate.version,
                )
                raise ConcurrencyError(estate_id, expected_version, estate.version)

            estate.acting_as = intent.actor_id
            try:
                result = operation(estate)
            except EstateLedgerError as exc:
                logger.warning(
                    "estate_command_rejected",
                    error_code=exc.error_code,
                    error=exc.message,
                )
                raise

            events = self._repository.save(estate)
            logger.info(
                "estate_command_committed",
                version=estate.version,
                events=[event.event_type.value for event in events],
            )
            self._publish(events)
            return result, events

    # -------------------------------------------------------------------------
    # Estate lifecycle
    # -------------------------------------------------------------------------

    def open_estate(
        self,
        deceased_id: UUID,
        name: str,
        currency: Currency | str | None = None,
        opening_cash: Money | None = None,
        date_of_death: date | None = None,
        intent: Intent | None = None,
    ) -> Estate:
        intent = intent or Intent()
        with LogContext(actor_id=intent.actor_id, correlation_id=intent.correlation_id):
            if self._repository.exists_for_deceased(deceased_id):
                logger.warning("estate_already_open", deceased_id=str(deceased_id))
                raise DuplicateEstateError(deceased_id)
            estate = Estate.create(
                deceased_id=deceased_id,
                name=name,
                opening_cash=opening_cash,
                currency=currency or self._settings.default_currency,
                date_of_death=date_of_death,
                actor_id=intent.actor_id,
            )
            events = self._repository.save(estate)
            logger.info(
                "estate_opened",
                estate_id=str(estate.id),
                deceased_id=str(deceased_id),
                currency=estate.currency.value,
            )
            self._publish(events)
            return estate

    def get_estate(self, estate_id: UUID) -> Estate:
        return self._load(estate_id)

    def execute(
        self,
        estate_id: UUID,
        operation: Callable[[Estate], Any],
        *,
        expected_version: int | None = None,
        intent: Intent | None = None,
    ) -> list[EstateEvent]:
        """Run ``operation`` against the loaded estate and commit it.

        Raises:
            EstateNotFoundError: If the estate does not exist.
            ConcurrencyError: If ``expected_version`` is stale or the save
                loses a race with another writer.
        """
        _, events = self._run(estate_id, operation, expected_version, intent)
        return events

    def freeze(self, estate_id: UUID, reason: str, intent: Intent | None = None) -> Estate:
        def operation(estate: Estate) -> Estate:
            estate.freeze(reason, frozen_by=estate.acting_as)
            return estate

        estate, _ = self._run(estate_id, operation, None, intent)
        return estate

    def unfreeze(
        self, estate_id: UUID, reason: str, intent: Intent | None = None
    ) -> Estate:
        def operation(estate: Estate) -> Estate:
            estate.unfreeze(reason, unfrozen_by=estate.acting_as)
            return estate

        estate, _ = self._run(estate_id, operation, None, intent)
        return estate

    def readiness(self, estate_id: UUID) -> DistributionReadiness:
        with LogContext(estate_id=str(estate_id)):
            result = self._load(estate_id).validate_distribution_readiness()
            logger.info(
                "distribution_readiness_checked",
                is_ready=result.is_ready,
                failed_checks=[check.value for check in result.failed_checks],
            )
            return result

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

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
        def operation(estate: Estate) -> Debt:
            if secured_asset_id is not None and secured_asset_id not in estate.assets:
                raise AssetNotFoundError(secured_asset_id)
            debt = Debt(
                estate_id=estate.id,
                creditor_name=creditor_name,
                description=description or f"{debt_type.value} owed to {creditor_name}",
                debt_type=debt_type,
                initial_amount=amount,
                is_secured=is_secured,
                secured_asset_id=secured_asset_id,
                incurred_date=incurred_date,
            )
            return estate.add_debt(debt)

        debt, _ = self._run(estate_id, operation, None, intent)
        return debt

    def pay_debt(
        self,
        estate_id: UUID,
        debt_id: UUID,
        amount: Money,
        *,
        expected_version: int | None = None,
        intent: Intent | None = None,
    ) -> Debt:
        def operation(estate: Estate) -> Debt:
            if debt_id not in estate.debts:
                raise DebtNotFoundError(debt_id)
            return estate.pay_debt(debt_id, amount)

        debt, _ = self._run(estate_id, operation, expected_version, intent)
        return debt

    def check_statute_barred_debts(
        self, estate_id: UUID, as_of: date, intent: Intent | None = None
    ) -> list[Debt]:
        def operation(estate: Estate) -> list[Debt]:
            return estate.check_statute_barred_debts(
                as_of,
                unsecured_years=self._settings.unsecured_limitation_years,
                secured_years=self._settings.secured_limitation_years,
            )

        barred, _ = self._run(estate_id, operation, None, intent)
        return barred

    # -------------------------------------------------------------------------
    # Assets and liquidation
    # -------------------------------------------------------------------------

    def add_asset(
        self,
        estate_id: UUID,
        name: str,
        details: AssetDetails,
        value: Money,
        intent: Intent | None = None,
    ) -> Asset:
        def operation(estate: Estate) -> Asset:
            return estate.add_asset(
                Asset(estate_id=estate.id, name=name, details=details, current_value=value)
            )

        asset, _ = self._run(estate_id, operation, None, intent)
        return asset

    def start_liquidation(
        self,
        estate_id: UUID,
        asset_id: UUID,
        liquidation_type: LiquidationType,
        target_amount: Money,
        reserve_price: Money,
        intent: Intent | None = None,
    ) -> AssetLiquidation:
        def operation(estate: Estate) -> AssetLiquidation:
            if asset_id not in estate.assets:
                raise AssetNotFoundError(asset_id)
            return estate.start_liquidation(
                asset_id,
                liquidation_type,
                target_amount,
                reserve_price,
                commission_rate=self._settings.default_commission_rate,
            )

        liquidation, _ = self._run(estate_id, operation, None, intent)
        return liquidation

    def record_liquidation_sale(
        self,
        estate_id: UUID,
        asset_id: UUID,
        amount: Money,
        buyer: BuyerInfo,
        intent: Intent | None = None,
    ) -> AssetLiquidation:
        def operation(estate: Estate) -> AssetLiquidation:
            if asset_id not in estate.assets:
                raise AssetNotFoundError(asset_id)
            return estate.record_liquidation_sale(asset_id, amount, buyer)

        liquidation, _ = self._run(estate_id, operation, None, intent)
        return liquidation

    def receive_liquidation_proceeds(
        self, estate_id: UUID, asset_id: UUID, intent: Intent | None = None
    ) -> Money:
        def operation(estate: Estate) -> Money:
            if asset_id not in estate.assets:
                raise AssetNotFoundError(asset_id)
            return estate.receive_liquidation_proceeds(asset_id)

        proceeds, _ = self._run(estate_id, operation, None, intent)
        return proceeds

    # -------------------------------------------------------------------------
    # Gifts
    # -------------------------------------------------------------------------

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
        def operation(estate: Estate) -> GiftInterVivos:
            return estate.add_gift(
                GiftInterVivos(
                    estate_id=estate.id,
                    recipient_id=recipient_id,
                    description=description,
                    asset_type=asset_type,
                    value_at_time_of_gift=value,
                    date_given=date_given,
                )
            )

        gift, _ = self._run(estate_id, operation, None, intent)
        return gift

    def contest_gift(
        self,
        estate_id: UUID,
        gift_id: UUID,
        reason: str,
        intent: Intent | None = None,
    ) -> GiftInterVivos:
        def operation(estate: Estate) -> GiftInterVivos:
            if gift_id not in estate.gifts:
                raise GiftNotFoundError(gift_id)
            return estate.contest_gift(gift_id, reason, contested_by=estate.acting_as)

        gift, _ = self._run(estate_id, operation, None, intent)
        return gift

    def substantial_gifts(self, estate_id: UUID) -> list[GiftInterVivos]:
        return self._load(estate_id).substantial_gifts(
            self._settings.substantial_gift_threshold
        )
