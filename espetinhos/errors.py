class LedgerError(Exception):
    """Base class for failures surfaced to the UI layer."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Missing field, non-positive amount or quantity, invalid enum value."""


class NotFoundError(LedgerError):
    status_code = 404


class InvalidStateError(LedgerError):
    """The entity's current state forbids the operation."""

    status_code = 409


class StorageError(LedgerError):
    status_code = 500
