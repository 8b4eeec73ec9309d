import copy
from collections.abc import Iterable
from uuid import UUID

from estate_ledger.domain.estate import Estate
from estate_ledger.domain.events import EstateEvent
from estate_ledger.exceptions import ConcurrencyError, DuplicateEstateError
from estate_ledger.logging_config import get_logger
from estate_ledger.repositories.interfaces import EstateRepository

logger = get_logger(__name__)


class InMemoryEstateRepository(EstateRepository):
    """Dict-backed repository holding private deep copies of each estate.

    Callers never share an instance with the store, so two loads of the
    same estate behave like two independent sessions.
    """

    def __init__(self) -> None:
        self._estates: dict[UUID, Estate] = {}
        self._events: dict[UUID, list[EstateEvent]] = {}

    def find_by_id(self, estate_id: UUID) -> Estate | None:
        stored = self._estates.get(estate_id)
        return copy.deepcopy(stored) if stored is not None else None

    def find_by_deceased_id(self, deceased_id: UUID) -> Estate | None:
        for stored in self._estates.values():
            if stored.deceased_id == deceased_id:
                return copy.deepcopy(stored)
        return None

    def exists_for_deceased(self, deceased_id: UUID) -> bool:
        return any(stored.deceased_id == deceased_id for stored in self._estates.values())

    def save(self, estate: Estate) -> list[EstateEvent]:
        stored = self._estates.get(estate.id)
        if stored is None:
            if estate.version != 0:
                raise ConcurrencyError(estate.id, estate.version, None)
            if self.exists_for_deceased(estate.deceased_id):
                raise DuplicateEstateError(estate.deceased_id)
        elif stored.version != estate.version:
            logger.warning(
                "estate_version_conflict",
                estate_id=str(estate.id),
                expected_version=estate.version,
                actual_version=stored.version,
            )
            raise ConcurrencyError(estate.id, estate.version, stored.version)

        events = estate.mark_committed()
        self._estates[estate.id] = copy.deepcopy(estate)
        self._events.setdefault(estate.id, []).extend(events)
        logger.debug(
            "estate_saved",
            estate_id=str(estate.id),
            version=estate.version,
            event_count=len(events),
        )
        return events

    def list_all(self) -> Iterable[Estate]:
        return [copy.deepcopy(stored) for stored in self._estates.values()]

    def list_events(self, estate_id: UUID) -> list[EstateEvent]:
        return list(self._events.get(estate_id, []))
