from estate_ledger.services.estate import EstateServiceImpl
from estate_ledger.services.interfaces import EstateService, EventPublisher, Intent

__all__ = [
    "EstateService",
    "EstateServiceImpl",
    "EventPublisher",
    "Intent",
]
