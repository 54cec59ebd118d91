"""Domain errors raised by the CrewX services."""

from __future__ import annotations


class CrewXError(Exception):
    """Base class for errors a caller can act on."""

    code = "CREWX_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(CrewXError):
    """A referenced record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class ValidationError(CrewXError):
    """A submitted field is malformed."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvalidAmountError(ValidationError):
    """Monetary amount is not a positive value with at most two decimals."""

    code = "INVALID_AMOUNT"

    def __init__(self, message: str = "amount must be a positive value"):
        super().__init__("amount", message)


class AuthenticationError(CrewXError):
    """Credentials or session token were rejected."""

    code = "AUTHENTICATION_FAILED"


class PermissionDeniedError(CrewXError):
    """The caller's role does not allow the operation."""

    code = "PERMISSION_DENIED"


class ConflictError(CrewXError):
    """The operation conflicts with the current state of a record."""

    code = "CONFLICT"


class AlreadyEnrolledError(ConflictError):
    code = "ALREADY_ENROLLED"


class NotEnrolledError(ConflictError):
    code = "NOT_ENROLLED"


class JobFullError(ConflictError):
    code = "JOB_FULL"


class JobClosedError(ConflictError):
    code = "JOB_CLOSED"


class InsufficientBalanceError(ConflictError):
    code = "INSUFFICIENT_BALANCE"


class AlreadyPaidError(ConflictError):
    code = "ALREADY_PAID"


class QrRejectedError(CrewXError):
    """The uploaded image was not accepted as a payment QR code."""

    code = "QR_REJECTED"


class RecordDecodeError(CrewXError):
    """A stored row could not be decoded into a typed record."""

    code = "RECORD_DECODE_ERROR"

    def __init__(self, entity: str, detail: str):
        self.entity = entity
        super().__init__(f"Cannot decode {entity} row: {detail}")
