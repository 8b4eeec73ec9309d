import os
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

os.environ.setdefault("ESTATE_ENVIRONMENT", "testing")

from estate_ledger.config import Environment, Settings  # noqa: E402
from estate_ledger.domain.assets import Asset, LandDetails, VehicleDetails  # noqa: E402
from estate_ledger.domain.debts import Debt, DebtType  # noqa: E402
from estate_ledger.domain.estate import Estate  # noqa: E402
from estate_ledger.domain.events import EstateEvent  # noqa: E402
from estate_ledger.domain.liquidation import BuyerInfo  # noqa: E402
from estate_ledger.domain.value_objects import Money  # noqa: E402


def kes(amount: str | int) -> Money:
    return Money(Decimal(str(amount)), "KES")


class RecordingPublisher:
    """EventPublisher that keeps every batch it is handed."""

    def __init__(self) -> None:
        self.batches: list[list[EstateEvent]] = []

    def publish(self, events: Sequence[EstateEvent]) -> None:
        self.batches.append(list(events))

    @property
    def events(self) -> list[EstateEvent]:
        return [event for batch in self.batches for event in batch]


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(environment=Environment.TESTING, sqlite_path=":memory:")


@pytest.fixture
def estate() -> Estate:
    return Estate.create(
        deceased_id=uuid4(),
        name="Estate of the late John Kamau",
        opening_cash=kes("100000"),
        date_of_death=date(2024, 3, 1),
    )


@pytest.fixture
def land_asset(estate: Estate) -> Asset:
    return estate.add_asset(
        Asset(
            estate_id=estate.id,
            name="Karen plot",
            details=LandDetails(title_number="NBI/KAREN/1234", county="Nairobi"),
            current_value=kes("1000000"),
        )
    )


@pytest.fixture
def vehicle_asset(estate: Estate) -> Asset:
    return estate.add_asset(
        Asset(
            estate_id=estate.id,
            name="Toyota Prado",
            details=VehicleDetails(
                registration_number="KDA 123A", make="Toyota", model="Prado"
            ),
            current_value=kes("2500000"),
        )
    )


@pytest.fixture
def add_debt(estate: Estate) -> Callable[..., Debt]:
    """Factory that records a debt of the given type against ``estate``."""

    def _add(debt_type: DebtType, amount: str | int, creditor: str = "Creditor", **kwargs) -> Debt:
        debt = Debt(
            estate_id=estate.id,
            creditor_name=creditor,
            description=f"{debt_type.value} owed to {creditor}",
            debt_type=debt_type,
            initial_amount=kes(amount),
            **kwargs,
        )
        return estate.add_debt(debt)

    return _add


@pytest.fixture
def buyer() -> BuyerInfo:
    return BuyerInfo(name="Wanjiru Mwangi", identification="ID 12345678")
