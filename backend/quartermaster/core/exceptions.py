"""Service-layer exceptions.

Services raise these instead of HTTP errors; ``main.py`` registers one
handler that renders them into the response envelope with ``status_code``.
"""


class ServiceError(Exception):
    """Base class for expected business-rule failures."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a referenced item, unit or record does not exist."""

    status_code = 404


class ForbiddenError(ServiceError):
    """Raised when the caller may not touch another unit's record."""

    status_code = 403


class ConflictError(ServiceError):
    """Raised when a write would duplicate an existing record."""

    status_code = 409


class InsufficientUnitsError(ConflictError):
    """Raised when fewer active recipient units exist than distribution slots."""

    status_code = 400

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__("Chưa đủ đơn vị để phân bổ")


class IllegalStateError(ServiceError):
    """Raised when an action is attempted outside its legal status."""

    status_code = 400


class ValidationFailedError(ServiceError):
    """Raised for business-level validation failures that pydantic cannot see."""

    status_code = 400
