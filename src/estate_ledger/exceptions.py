"""Domain exception hierarchy for the Estate Ledger.

All domain-specific exceptions inherit from EstateLedgerError.
This allows catching all application errors with a single base class
while preserving specificity for individual error types.

Four branches matter to callers:

- ValidationError: malformed input caught at construction time.
- IllegalStateError: an operation the current state forbids.
- ConcurrencyError: the aggregate changed underneath the caller; reload and retry.
- NotFoundError: raised by the service layer when an id does not resolve.
"""

from typing import Any
from uuid import UUID


class EstateLedgerError(Exception):
    """Base exception for all Estate Ledger errors.

    Includes optional error_code for API responses and extra context.
    """

    error_code: str = "ESTATE_LEDGER_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(EstateLedgerError):
    """Base exception for validation errors."""

    error_code = "VALIDATION_ERROR"
    status_code = 422


class InvalidCurrencyError(ValidationError):
    """Raised when an invalid currency code is provided."""

    error_code = "INVALID_CURRENCY"

    def __init__(self, currency_code: str) -> None:
        super().__init__(
            f"Invalid currency code: {currency_code}",
            context={"currency_code": currency_code},
        )


class InvalidAmountError(ValidationError):
    """Raised when an invalid monetary amount is provided."""

    error_code = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str) -> None:
        super().__init__(
            f"Invalid amount '{amount}': {reason}",
            context={"amount": amount, "reason": reason},
        )


class CurrencyMismatchError(ValidationError):
    """Raised when arithmetic mixes two currencies."""

    error_code = "CURRENCY_MISMATCH"

    def __init__(self, operation: str, left: str, right: str) -> None:
        super().__init__(
            f"Cannot {operation} {left} and {right}",
            context={"operation": operation, "left": left, "right": right},
        )


class InvalidShareError(ValidationError):
    """Raised when a co-ownership share is out of range."""

    error_code = "INVALID_SHARE"

    def __init__(self, share: str, reason: str) -> None:
        super().__init__(
            f"Invalid share percentage {share}: {reason}",
            context={"share_percentage": share, "reason": reason},
        )


class MissingReferenceError(ValidationError):
    """Raised when a required reference is absent or does not resolve."""

    error_code = "MISSING_REFERENCE"

    def __init__(self, reference: str, detail: str) -> None:
        super().__init__(
            f"Missing required reference {reference}: {detail}",
            context={"reference": reference},
        )


# =============================================================================
# Illegal State Errors
# =============================================================================


class IllegalStateError(EstateLedgerError):
    """Base exception for operations forbidden by the current state."""

    error_code = "ILLEGAL_STATE"
    status_code = 409


class InvalidTransitionError(IllegalStateError):
    """Raised when a state machine rejects a transition."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self, machine: str, current_state: str, requested: str, subject_id: UUID | str
    ) -> None:
        super().__init__(
            f"{machine} {subject_id} cannot {requested} from state {current_state}",
            context={
                "machine": machine,
                "subject_id": str(subject_id),
                "current_state": current_state,
                "requested": requested,
            },
        )
        self.current_state = current_state
        self.requested = requested


class PriorityViolationError(IllegalStateError):
    """Raised when a payment would jump the S.45 waterfall."""

    error_code = "PRIORITY_VIOLATION"

    def __init__(
        self,
        debt_id: UUID,
        debt_tier: int,
        blocking_debt_id: UUID,
        blocking_creditor: str,
        blocking_tier: int,
        blocking_balance: str,
    ) -> None:
        super().__init__(
            f"Cannot pay debt {debt_id} (tier {debt_tier}): higher-priority debt "
            f"{blocking_debt_id} owed to {blocking_creditor} (tier {blocking_tier}) "
            f"has {blocking_balance} outstanding",
            context={
                "debt_id": str(debt_id),
                "debt_tier": debt_tier,
                "blocking_debt_id": str(blocking_debt_id),
                "blocking_creditor": blocking_creditor,
                "blocking_tier": blocking_tier,
                "blocking_balance": blocking_balance,
            },
        )
        self.blocking_debt_id = blocking_debt_id


class EstateFrozenError(IllegalStateError):
    """Raised when a mutation is attempted on a frozen estate."""

    error_code = "ESTATE_FROZEN"

    def __init__(self, estate_id: UUID, action: str, reason: str | None) -> None:
        super().__init__(
            f"Estate {estate_id} is frozen ({reason or 'no reason given'}); "
            f"cannot {action}",
            context={
                "estate_id": str(estate_id),
                "action": action,
                "freeze_reason": reason,
            },
        )


class AssetEncumberedError(IllegalStateError):
    """Raised when an encumbered asset is modified."""

    error_code = "ASSET_ENCUMBERED"

    def __init__(self, asset_id: UUID, action: str) -> None:
        super().__init__(
            f"Asset {asset_id} is encumbered; cannot {action}",
            context={"asset_id": str(asset_id), "action": action},
        )


class TerminalLiquidationError(IllegalStateError):
    """Raised when a closed or cancelled liquidation is modified."""

    error_code = "TERMINAL_LIQUIDATION"

    def __init__(self, liquidation_id: UUID, status: str, action: str) -> None:
        super().__init__(
            f"Liquidation {liquidation_id} is {status}; cannot {action}",
            context={
                "liquidation_id": str(liquidation_id),
                "current_state": status,
                "requested": action,
            },
        )


class SaleAmountRejectedError(IllegalStateError):
    """Raised when a sale price falls outside the acceptable range."""

    error_code = "SALE_AMOUNT_REJECTED"

    def __init__(self, liquidation_id: UUID, amount: str, floor: str) -> None:
        super().__init__(
            f"Sale amount {amount} for liquidation {liquidation_id} is below "
            f"the reserve price {floor}",
            context={
                "liquidation_id": str(liquidation_id),
                "amount": amount,
                "reserve_price": floor,
            },
        )


class DuplicateCoOwnerError(IllegalStateError):
    """Raised when the same owner is added twice to an asset."""

    error_code = "DUPLICATE_CO_OWNER"

    def __init__(self, asset_id: UUID, owner_identity: str) -> None:
        super().__init__(
            f"{owner_identity} is already a co-owner of asset {asset_id}",
            context={"asset_id": str(asset_id), "owner_identity": owner_identity},
        )


class CoOwnerAlreadyVerifiedError(IllegalStateError):
    """Raised when a co-owner claim is verified twice."""

    error_code = "CO_OWNER_ALREADY_VERIFIED"

    def __init__(self, co_owner_id: UUID) -> None:
        super().__init__(
            f"Co-owner {co_owner_id} is already verified",
            context={"co_owner_id": str(co_owner_id)},
        )


class InsufficientCashError(IllegalStateError):
    """Raised when the estate does not hold enough cash for an operation."""

    error_code = "INSUFFICIENT_CASH"

    def __init__(self, estate_id: UUID, required: str, available: str) -> None:
        super().__init__(
            f"Insufficient cash in estate {estate_id}: "
            f"required {required}, available {available}",
            context={
                "estate_id": str(estate_id),
                "required": required,
                "available": available,
            },
        )


class DistributionNotReadyError(IllegalStateError):
    """Raised when distribution starts while blockers remain."""

    error_code = "DISTRIBUTION_NOT_READY"

    def __init__(self, estate_id: UUID, blockers: list[str]) -> None:
        super().__init__(
            f"Estate {estate_id} is not ready for distribution: {'; '.join(blockers)}",
            context={"estate_id": str(estate_id), "blockers": blockers},
        )


class DuplicateEstateError(IllegalStateError):
    """Raised when a second estate is opened for the same deceased person."""

    error_code = "DUPLICATE_ESTATE"

    def __init__(self, deceased_id: UUID | str) -> None:
        super().__init__(
            f"An estate already exists for deceased {deceased_id}",
            context={"deceased_id": str(deceased_id)},
        )


# =============================================================================
# Concurrency Errors
# =============================================================================


class ConcurrencyError(EstateLedgerError):
    """Raised when the persisted version no longer matches the loaded one.

    Callers should reload the aggregate and retry; this is not a business failure.
    """

    error_code = "CONCURRENCY_CONFLICT"
    status_code = 409

    def __init__(
        self, estate_id: UUID, expected_version: int, actual_version: int | None
    ) -> None:
        super().__init__(
            f"Estate {estate_id} was modified concurrently: "
            f"expected version {expected_version}, found {actual_version}",
            context={
                "estate_id": str(estate_id),
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(EstateLedgerError):
    """Base exception for lookups that do not resolve."""

    error_code = "NOT_FOUND"
    status_code = 404
    resource: str = "Resource"

    def __init__(self, resource_id: UUID | str) -> None:
        super().__init__(
            f"{self.resource} not found: {resource_id}",
            context={"resource": self.resource.lower(), "id": str(resource_id)},
        )
        self.resource_id = resource_id


class EstateNotFoundError(NotFoundError):
    error_code = "ESTATE_NOT_FOUND"
    resource = "Estate"


class AssetNotFoundError(NotFoundError):
    error_code = "ASSET_NOT_FOUND"
    resource = "Asset"


class DebtNotFoundError(NotFoundError):
    error_code = "DEBT_NOT_FOUND"
    resource = "Debt"


class GiftNotFoundError(NotFoundError):
    error_code = "GIFT_NOT_FOUND"
    resource = "Gift"


class DependantNotFoundError(NotFoundError):
    error_code = "DEPENDANT_NOT_FOUND"
    resource = "Dependant"
