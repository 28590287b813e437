"""
Typed exceptions for the back office core.

Every error a service raises on purpose is a BackOfficeError.
Callers catch by type instead of parsing messages, and the API
layer maps each class to an HTTP status through ``status_code``.

    BackOfficeError (ValueError)
    |
    +-- InvalidInputError            400
    +-- NotFoundError                404
    +-- StateConflictError           409
        +-- InsufficientStockError
        +-- InsufficientFundsError
        +-- InvalidTransitionError
        +-- AlreadyCancelledError
        +-- PeriodLockedError

All of them are raised before the owning operation writes
anything, so a caught error never leaves partial state behind.
"""

from decimal import Decimal


class BackOfficeError(ValueError):
    """Base class. Subclasses ValueError so existing handlers still work."""

    status_code = 400


class InvalidInputError(BackOfficeError):
    """Malformed or out-of-range input."""

    status_code = 400


class NotFoundError(BackOfficeError):
    """Referenced record is absent or belongs to another branch."""

    status_code = 404


class StateConflictError(BackOfficeError):
    """The request is well-formed but the current state forbids it."""

    status_code = 409


class InsufficientStockError(StateConflictError):

    def __init__(self, message: str, unmet_quantity: Decimal | None = None):
        super().__init__(message)
        self.unmet_quantity = unmet_quantity


class InsufficientFundsError(StateConflictError):
    pass


class InvalidTransitionError(StateConflictError):

    def __init__(self, from_status, to_status):
        super().__init__(
            f"Cannot transition from {from_status.value} to {to_status.value}"
        )
        self.from_status = from_status
        self.to_status = to_status


class AlreadyCancelledError(StateConflictError):
    pass


class PeriodLockedError(StateConflictError):
    pass
