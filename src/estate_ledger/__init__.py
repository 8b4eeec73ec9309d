from estate_ledger.domain.debts import Debt, DebtPriority, DebtType
from estate_ledger.domain.estate import Estate, EstateStatus
from estate_ledger.domain.value_objects import Currency, Money

__all__ = [
    "Currency",
    "Debt",
    "DebtPriority",
    "DebtType",
    "Estate",
    "EstateStatus",
    "Money",
]

__version__ = "0.1.0"
