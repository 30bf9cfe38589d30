"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class RateLimitException(AppException):
    code = "RATE_LIMITED"
    status_code = 429


class FxRateUnavailableError(Exception):
    """Raised by the FX rate source when no usable rate exists for a pair.

    Kept outside the ``AppException`` tree: the currency converter turns it
    into a ``fx_failed:<from>-><to>`` warning instead of an HTTP error.
    """

    def __init__(self, base: str | None, quote: str | None, reason: str) -> None:
        super().__init__(f"FX rate {base}->{quote} unavailable: {reason}")
        self.base = base
        self.quote = quote
        self.reason = reason
