"""
Typed errors raised by the billing services.

Every error carries the HTTP status it maps to, a machine-readable code and
an optional ``details`` payload. ``app.main`` turns them into JSON responses
of the form ``{"error": message, "code": code, "details": ...}``.

    ElderFlowError
    +-- UnauthorizedError            401
    +-- ForbiddenError               403
    +-- NotFoundError                404
    +-- ValidationError              400
    |   +-- InvalidPaymentInputError
    +-- InvoiceGenerationError       400
    |   +-- NoBillableActivitiesError
    |   +-- NoInvoiceableActivityError
    +-- ConflictError                409
        +-- DuplicateInvoiceError
        +-- DuplicatePaymentError
        +-- InvoiceStateError
        +-- ActivityLockedError
"""

from typing import Any, Optional


class ElderFlowError(Exception):
    """Base class for all application errors"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class UnauthorizedError(ElderFlowError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(ElderFlowError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ElderFlowError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(ElderFlowError):
    """Malformed input. ``details`` is a list of ``{"path", "message"}`` entries."""

    status_code = 400
    code = "VALIDATION_ERROR"

    @classmethod
    def for_field(cls, path: str, message: str):
        return cls(message, details=[{"path": path, "message": message}])


class InvalidPaymentInputError(ValidationError):
    code = "INVALID_PAYMENT_INPUT"


class InvoiceGenerationError(ElderFlowError):
    status_code = 400
    code = "INVOICE_GENERATION_FAILED"


class NoBillableActivitiesError(InvoiceGenerationError):
    """No billable activities exist for the client and period"""

    code = "NO_BILLABLE_ACTIVITIES"

    def __init__(self, message: str = "No billable activities found for this period", details=None):
        super().__init__(message, details)


class NoInvoiceableActivityError(InvoiceGenerationError):
    """Activities exist but every priced line came out at zero or less"""

    code = "NO_INVOICEABLE_ACTIVITY"

    def __init__(
        self,
        message: str = "No billable activities produced any invoiceable amounts with the current rules.",
        details=None,
    ):
        super().__init__(message, details)


class ConflictError(ElderFlowError):
    status_code = 409
    code = "CONFLICT"


class DuplicateInvoiceError(ConflictError):
    code = "DUPLICATE_INVOICE"


class DuplicatePaymentError(ConflictError):
    code = "DUPLICATE_PAYMENT"


class InvoiceStateError(ConflictError):
    code = "INVALID_INVOICE_STATE"


class ActivityLockedError(ConflictError):
    code = "ACTIVITY_INVOICED"
