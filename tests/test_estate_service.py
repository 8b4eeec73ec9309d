from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from estate_ledger.config import Settings
from estate_ledger.domain.assets import AssetType, LandDetails
from estate_ledger.domain.debts import DebtStatus, DebtType
from estate_ledger.domain.estate import EstateStatus, ReadinessCheck
from estate_ledger.domain.events import EstateEventType
from estate_ledger.domain.liquidation import BuyerInfo, LiquidationType
from estate_ledger.domain.value_objects import Currency, Money
from estate_ledger.exceptions import (
    AssetNotFoundError,
    ConcurrencyError,
    DebtNotFoundError,
    DuplicateEstateError,
    EstateFrozenError,
    EstateNotFoundError,
    GiftNotFoundError,
    PriorityViolationError,
)
from estate_ledger.repositories import InMemoryEstateRepository
from estate_ledger.services import EstateServiceImpl, Intent


def kes(amount: str) -> Money:
    return Money(Decimal(amount), "KES")


@pytest.fixture
def repository() -> InMemoryEstateRepository:
    return InMemoryEstateRepository()


@pytest.fixture
def service(
    repository: InMemoryEstateRepository,
    publisher,
    test_settings: Settings,
) -> EstateServiceImpl:
    return EstateServiceImpl(repository, publisher=publisher, settings=test_settings)


@pytest.fixture
def estate_id(service: EstateServiceImpl):
    estate = service.open_estate(
        deceased_id=uuid4(),
        name="Estate of the late Grace Njeri",
        opening_cash=kes("100000"),
        date_of_death=date(2024, 1, 20),
        intent=Intent(actor_id="executor-1"),
    )
    return estate.id


class TestOpenEstate:
    def test_open_estate_persists_and_publishes(self, service, repository, publisher):
        deceased_id = uuid4()

        estate = service.open_estate(deceased_id=deceased_id, name="Estate of Otieno")

        assert repository.find_by_id(estate.id).version == 1
        assert [event.event_type for event in publisher.events] == [
            EstateEventType.ESTATE_CREATED
        ]
        assert estate.currency == Currency.KES

    def test_open_estate_uses_requested_currency(self, service):
        estate = service.open_estate(deceased_id=uuid4(), name="Estate", currency="TZS")

        assert estate.cash_on_hand == Money.zero("TZS")

    def test_second_estate_for_deceased_rejected(self, service, publisher):
        deceased_id = uuid4()
        service.open_estate(deceased_id=deceased_id, name="First")

        with capture_logs() as logs:
            with pytest.raises(DuplicateEstateError):
                service.open_estate(deceased_id=deceased_id, name="Second")

        assert len(publisher.batches) == 1
        assert any(entry["event"] == "estate_already_open" for entry in logs)

    def test_events_record_actor(self, service, estate_id, repository):
        events = repository.list_events(estate_id)

        assert events[0].actor_id == "executor-1"


class TestCommands:
    def test_missing_estate(self, service):
        with capture_logs() as logs:
            with pytest.raises(EstateNotFoundError):
                service.get_estate(uuid4())

        assert logs[0]["event"] == "estate_not_found"

    def test_pay_debt_follows_waterfall(self, service, estate_id, publisher):
        funeral = service.add_debt(estate_id, "Lee Funeral Home", DebtType.FUNERAL_EXPENSE, kes("50000"))
        loan = service.add_debt(estate_id, "Mwangi", DebtType.PERSONAL_LOAN, kes("20000"))
        published_before = len(publisher.batches)

        with pytest.raises(PriorityViolationError):
            service.pay_debt(estate_id, loan.id, kes("20000"))
        assert len(publisher.batches) == published_before

        service.pay_debt(estate_id, funeral.id, kes("50000"))
        paid = service.pay_debt(estate_id, loan.id, kes("20000"))

        assert paid.status == DebtStatus.SETTLED
        assert service.get_estate(estate_id).cash_on_hand == kes("30000")

    def test_rejected_command_is_not_saved(self, service, estate_id, repository):
        loan = service.add_debt(estate_id, "Mwangi", DebtType.PERSONAL_LOAN, kes("20000"))
        service.add_debt(estate_id, "Lee Funeral Home", DebtType.FUNERAL_EXPENSE, kes("50000"))
        version = repository.find_by_id(estate_id).version

        with capture_logs() as logs:
            with pytest.raises(PriorityViolationError):
                service.pay_debt(estate_id, loan.id, kes("20000"))

        assert repository.find_by_id(estate_id).version == version
        rejected = [entry for entry in logs if entry["event"] == "estate_command_rejected"]
        assert rejected[0]["error_code"] == "PRIORITY_VIOLATION"

    def test_unknown_debt(self, service, estate_id):
        with pytest.raises(DebtNotFoundError):
            service.pay_debt(estate_id, uuid4(), kes("1"))

    def test_default_debt_description(self, service, estate_id):
        debt = service.add_debt(estate_id, "KCB", DebtType.CREDIT_CARD, kes("5000"))

        assert debt.description == "credit_card owed to KCB"

    def test_secured_debt_with_unknown_asset(self, service, estate_id):
        with pytest.raises(AssetNotFoundError):
            service.add_debt(
                estate_id,
                "KCB",
                DebtType.MORTGAGE,
                kes("5000"),
                is_secured=True,
                secured_asset_id=uuid4(),
            )

    def test_stale_expected_version(self, service, estate_id):
        debt = service.add_debt(estate_id, "Lee", DebtType.FUNERAL_EXPENSE, kes("100"))

        with pytest.raises(ConcurrencyError):
            service.pay_debt(estate_id, debt.id, kes("100"), expected_version=1)

        service.pay_debt(estate_id, debt.id, kes("100"), expected_version=2)

    def test_execute_runs_arbitrary_operation(self, service, estate_id, publisher):
        events = service.execute(
            estate_id,
            lambda estate: estate.record_cash_deposit(kes("500"), "rent"),
            intent=Intent(actor_id="executor-2"),
        )

        assert [event.event_type for event in events] == [EstateEventType.ESTATE_CASH_UPDATED]
        assert events[0].actor_id == "executor-2"
        assert publisher.batches[-1] == events

    def test_freeze_blocks_commands_until_unfrozen(self, service, estate_id):
        frozen = service.freeze(estate_id, "Court injunction", Intent(actor_id="judge"))
        assert frozen.status == EstateStatus.FROZEN

        with pytest.raises(EstateFrozenError):
            service.add_debt(estate_id, "KCB", DebtType.CREDIT_CARD, kes("5000"))

        unfrozen = service.unfreeze(estate_id, "Injunction lifted")
        assert unfrozen.status == EstateStatus.SETUP
        service.add_debt(estate_id, "KCB", DebtType.CREDIT_CARD, kes("5000"))

    def test_readiness(self, service, estate_id):
        with capture_logs() as logs:
            readiness = service.readiness(estate_id)

        assert readiness.failed_checks == [ReadinessCheck.TAX_CLEARED]
        assert logs[-1]["event"] == "distribution_readiness_checked"
        assert logs[-1]["is_ready"] is False

    def test_statute_barred_uses_configured_periods(self, repository, publisher, estate_id):
        settings = Settings(sqlite_path=":memory:", unsecured_limitation_years=2)
        service = EstateServiceImpl(repository, publisher=publisher, settings=settings)
        service.add_debt(
            estate_id, "Mwangi", DebtType.PERSONAL_LOAN, kes("100"), incurred_date=date(2021, 1, 1)
        )

        barred = service.check_statute_barred_debts(estate_id, date(2024, 1, 1))

        assert len(barred) == 1


class TestLiquidationCommands:
    def test_sale_proceeds_reach_cash(self, service, estate_id):
        asset = service.add_asset(
            estate_id,
            "Nakuru plot",
            LandDetails(title_number="NKU/1", county="Nakuru"),
            kes("500000"),
        )
        service.start_liquidation(
            estate_id, asset.id, LiquidationType.PRIVATE_TREATY, kes("500000"), kes("400000")
        )
        for step in (
            lambda estate: estate.submit_liquidation(asset.id),
            lambda estate: estate.approve_liquidation(asset.id, "Executor A"),
            lambda estate: estate.list_asset_for_sale(asset.id),
            lambda estate: estate.mark_sale_pending(asset.id, BuyerInfo(name="Kiprono")),
        ):
            service.execute(estate_id, step)
        service.record_liquidation_sale(
            estate_id, asset.id, kes("450000"), BuyerInfo(name="Kiprono")
        )

        proceeds = service.receive_liquidation_proceeds(estate_id, asset.id)

        assert proceeds == kes("427500")
        assert service.get_estate(estate_id).cash_on_hand == kes("527500")

    def test_unknown_asset(self, service, estate_id):
        with pytest.raises(AssetNotFoundError):
            service.start_liquidation(
                estate_id, uuid4(), LiquidationType.PRIVATE_TREATY, kes("1"), kes("1")
            )


class TestGiftCommands:
    def test_substantial_gifts_use_configured_threshold(self, service, estate_id):
        gift = service.add_gift(
            estate_id, uuid4(), "Car", AssetType.VEHICLE, kes("10000"), date(2022, 1, 1)
        )

        assert service.substantial_gifts(estate_id) == [gift]

    def test_contest_records_actor(self, service, estate_id):
        gift = service.add_gift(
            estate_id, uuid4(), "Car", AssetType.VEHICLE, kes("10000"), date(2022, 1, 1)
        )

        contested = service.contest_gift(
            estate_id, gift.id, "Was a loan", Intent(actor_id="daughter")
        )

        assert contested.contested_by == "daughter"

    def test_unknown_gift(self, service, estate_id):
        with pytest.raises(GiftNotFoundError):
            service.contest_gift(estate_id, uuid4(), "reason")
