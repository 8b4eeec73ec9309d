from estate_ledger.repositories.interfaces import EstateRepository
from estate_ledger.repositories.memory import InMemoryEstateRepository
from estate_ledger.repositories.sqlite import SQLiteDatabase, SQLiteEstateRepository

__all__ = [
    "EstateRepository",
    "InMemoryEstateRepository",
    "SQLiteDatabase",
    "SQLiteEstateRepository",
]
