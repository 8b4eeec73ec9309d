from collections.abc import Iterator
from decimal import Decimal
from uuid import uuid4

import pytest

from estate_ledger.domain.debts import Debt, DebtType
from estate_ledger.domain.estate import Estate
from estate_ledger.domain.events import EstateEventType
from estate_ledger.domain.value_objects import Money
from estate_ledger.exceptions import ConcurrencyError, DuplicateEstateError
from estate_ledger.repositories import (
    EstateRepository,
    InMemoryEstateRepository,
    SQLiteDatabase,
    SQLiteEstateRepository,
)


def kes(amount: str) -> Money:
    return Money(Decimal(amount), "KES")


def new_estate(name: str = "Estate of Jane Wambui", **kwargs) -> Estate:
    return Estate.create(deceased_id=uuid4(), name=name, opening_cash=kes("50000"), **kwargs)


@pytest.fixture
def db() -> Iterator[SQLiteDatabase]:
    database = SQLiteDatabase(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, db: SQLiteDatabase) -> EstateRepository:
    if request.param == "memory":
        return InMemoryEstateRepository()
    return SQLiteEstateRepository(db)


class TestEstateRepositoryContract:
    def test_save_and_find(self, repository: EstateRepository):
        estate = new_estate()

        events = repository.save(estate)
        loaded = repository.find_by_id(estate.id)

        assert [event.event_type for event in events] == [EstateEventType.ESTATE_CREATED]
        assert estate.version == 1
        assert loaded is not None
        assert loaded == estate
        assert loaded is not estate

    def test_find_missing_returns_none(self, repository: EstateRepository):
        assert repository.find_by_id(uuid4()) is None
        assert repository.find_by_deceased_id(uuid4()) is None

    def test_find_by_deceased(self, repository: EstateRepository):
        estate = new_estate()
        repository.save(estate)

        assert repository.exists_for_deceased(estate.deceased_id)
        assert repository.find_by_deceased_id(estate.deceased_id).id == estate.id

    def test_second_estate_for_same_deceased_rejected(self, repository: EstateRepository):
        first = new_estate()
        repository.save(first)
        duplicate = Estate.create(deceased_id=first.deceased_id, name="Duplicate")

        with pytest.raises(DuplicateEstateError):
            repository.save(duplicate)

        assert duplicate.version == 0

    def test_stale_copy_is_rejected(self, repository: EstateRepository):
        estate = new_estate()
        repository.save(estate)
        first = repository.find_by_id(estate.id)
        second = repository.find_by_id(estate.id)

        first.record_cash_deposit(kes("1000"), "rent")
        repository.save(first)
        second.record_cash_deposit(kes("2000"), "dividend")

        with pytest.raises(ConcurrencyError) as exc_info:
            repository.save(second)

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert second.version == 1
        assert len(second.pending_events) == 1
        assert repository.find_by_id(estate.id).cash_on_hand == kes("51000")
        assert len(repository.list_events(estate.id)) == 2

    def test_unsaved_changes_do_not_leak(self, repository: EstateRepository):
        estate = new_estate()
        repository.save(estate)
        loaded = repository.find_by_id(estate.id)

        loaded.record_cash_deposit(kes("1000"), "rent")

        assert repository.find_by_id(estate.id).cash_on_hand == kes("50000")

    def test_events_accumulate_in_commit_order(self, repository: EstateRepository):
        estate = new_estate(actor_id="executor-1")
        repository.save(estate)
        estate.add_debt(
            Debt(
                estate_id=estate.id,
                creditor_name="Lee Funeral Home",
                description="Funeral",
                debt_type=DebtType.FUNERAL_EXPENSE,
                initial_amount=kes("20000"),
            )
        )
        repository.save(estate)

        events = repository.list_events(estate.id)

        assert [event.event_type for event in events] == [
            EstateEventType.ESTATE_CREATED,
            EstateEventType.DEBT_ADDED,
            EstateEventType.ESTATE_CASH_UPDATED,
        ]
        assert events[0].actor_id == "executor-1"
        assert events[1].payload["tier"] == 1

    def test_list_all(self, repository: EstateRepository):
        first = new_estate("Estate A")
        second = new_estate("Estate B")
        repository.save(first)
        repository.save(second)

        assert {estate.id for estate in repository.list_all()} == {first.id, second.id}


class TestSQLiteOutbox:
    def test_committed_events_start_unpublished(self, db: SQLiteDatabase):
        repository = SQLiteEstateRepository(db)
        estate = new_estate()
        events = repository.save(estate)

        pending = repository.list_unpublished_events()
        assert [event.id for event in pending] == [event.id for event in events]

        repository.mark_events_published(event.id for event in pending)

        assert repository.list_unpublished_events() == []
        assert len(repository.list_events(estate.id)) == 1

    def test_rejected_save_writes_no_events(self, db: SQLiteDatabase):
        repository = SQLiteEstateRepository(db)
        estate = new_estate()
        repository.save(estate)
        stale = repository.find_by_id(estate.id)
        estate.record_cash_deposit(kes("10"), "rent")
        repository.save(estate)

        stale.record_cash_deposit(kes("20"), "rent")
        with pytest.raises(ConcurrencyError):
            repository.save(stale)

        assert len(repository.list_events(estate.id)) == 2

    def test_snapshot_survives_reopen(self, tmp_path):
        path = tmp_path / "estates.db"
        database = SQLiteDatabase(path)
        database.initialize()
        estate = new_estate()
        SQLiteEstateRepository(database).save(estate)
        database.close()

        reopened = SQLiteDatabase(path)
        reopened.initialize()
        loaded = SQLiteEstateRepository(reopened).find_by_id(estate.id)
        reopened.close()

        assert loaded == estate
        assert loaded.version == 1
