"""Dependency injection container for Estate Ledger.

Wires settings, the SQLite database, the estate repository and the estate
service together. Everything is created lazily on first access.

Usage:
    from estate_ledger.container import Container, get_container

    container = get_container()
    service = container.estate_service
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING

from estate_ledger.config import Settings, get_settings
from estate_ledger.logging_config import get_logger

if TYPE_CHECKING:
    from estate_ledger.repositories.sqlite import SQLiteDatabase, SQLiteEstateRepository
    from estate_ledger.services.estate import EstateServiceImpl
    from estate_ledger.services.interfaces import EventPublisher

logger = get_logger(__name__)


class Container:
    """Dependency injection container.

    The container can be configured with custom settings for testing:

        test_settings = Settings(sqlite_path=":memory:")
        container = Container(settings=test_settings)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        publisher: "EventPublisher | None" = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._publisher = publisher
        logger.debug(
            "container_created",
            sqlite_path=str(self._settings.sqlite_path),
            environment=self._settings.environment.value,
        )

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        return self._settings

    @cached_property
    def database(self) -> "SQLiteDatabase":
        """Get the SQLite database, creating its tables on first access."""
        from estate_ledger.repositories.sqlite import SQLiteDatabase

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)

        db = SQLiteDatabase(db_path)
        db.initialize()
        return db

    @cached_property
    def estate_repository(self) -> "SQLiteEstateRepository":
        from estate_ledger.repositories.sqlite import SQLiteEstateRepository

        return SQLiteEstateRepository(self.database)

    @cached_property
    def estate_service(self) -> "EstateServiceImpl":
        """Get the estate service for all estate commands."""
        from estate_ledger.services.estate import EstateServiceImpl

        return EstateServiceImpl(
            self.estate_repository,
            publisher=self._publisher,
            settings=self._settings,
        )

    def close(self) -> None:
        """Close the database connection if one was opened."""
        if "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton.

    For testing, create a Container directly with custom settings instead
    of using this function.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset the global container, closing its resources."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()
