from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from estate_ledger.domain.estate import Estate
from estate_ledger.domain.events import EstateEvent


class EstateRepository(ABC):
    """Storage contract for the Estate aggregate.

    ``save`` commits the whole aggregate and its buffered events atomically,
    or raises ConcurrencyError when ``estate.version`` no longer matches the
    stored version. On success it advances the version and returns the
    events that were committed.
    """

    @abstractmethod
    def find_by_id(self, estate_id: UUID) -> Estate | None:
        pass

    @abstractmethod
    def find_by_deceased_id(self, deceased_id: UUID) -> Estate | None:
        pass

    @abstractmethod
    def exists_for_deceased(self, deceased_id: UUID) -> bool:
        pass

    @abstractmethod
    def save(self, estate: Estate) -> list[EstateEvent]:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Estate]:
        pass

    @abstractmethod
    def list_events(self, estate_id: UUID) -> list[EstateEvent]:
        pass
