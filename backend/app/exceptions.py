"""
Inkwell Backend - Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return `{success: false, message, ...}` JSON bodies with the right
       HTTP status codes.
Who:   Raised by services, stores, external clients and dependencies.

Exception Hierarchy:
    InkwellError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnknownPlanError         → 400 Bad Request ("Invalid plan")
    ├── AuthenticationError      → 401 Unauthorized
    ├── PaymentRequiredError     → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── ProcessingError          → 500 (text transform failed)
    ├── PersistenceError         → 500, or logged only on best-effort writes
    ├── UpstreamServiceError     → caught at the local-fallback boundary
    └── CircuitBreakerOpenError  → caught at the local-fallback boundary
"""

from typing import Any, Dict, Optional


class InkwellError(Exception):
    """
    Base exception for all Inkwell application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(InkwellError):
    """
    Raised when client input fails validation.

    When:    Missing or blank required fields, duplicate username.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnknownPlanError(InkwellError):
    """Raised by the plan policy for a plan name outside the configured set."""

    def __init__(self, plan: Optional[str] = None):
        super().__init__(message="Invalid plan", context={"plan": plan})
        self.plan = plan


class AuthenticationError(InkwellError):
    """
    Raised when the bearer token is missing, invalid or expired, or the
    account it names no longer exists.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PaymentRequiredError(InkwellError):
    """
    Raised by the payment guard for a paid plan whose payment is pending.

    HTTP:    403 Forbidden, body carries `paymentRequired: true`
    """

    def __init__(
        self,
        message: str = "Payment required to access this feature",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(InkwellError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ProcessingError(InkwellError):
    """
    Raised when a text transform fails and no fallback applies.

    HTTP:    500 with `error` carrying the transform's failure detail.
             Distinct from ValidationError so clients can tell a bad request
             from a failed computation.
    """

    def __init__(
        self,
        message: str = "Failed to process text",
        error: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.error = error


class PersistenceError(InkwellError):
    """
    Raised when a store operation fails.

    On best-effort paths (usage logging, words_used increments, payment
    bookkeeping) it is caught at the write call and logged. Anywhere else it
    surfaces as a generic 500; details stay in server logs.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamServiceError(InkwellError):
    """
    Raised when an external HTTP service (detection scorer, remote
    humanizer) fails after its retry budget.
    """

    def __init__(
        self,
        message: str = "External service is temporarily unavailable",
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if provider:
            ctx["provider"] = provider
        super().__init__(message=message, context=ctx)
        self.provider = provider


class CircuitBreakerOpenError(UpstreamServiceError):
    """
    Raised when a provider's circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for the recovery period)
        → After the recovery period → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(
            message=(
                f"External service is unavailable after repeated failures. "
                f"Retrying in approximately {recovery_time} seconds."
            ),
            provider=provider,
            context=ctx,
        )
        self.recovery_time = recovery_time


class RateLimitExceededError(InkwellError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(
            message="Too many requests, please try again later",
            context=ctx,
        )
        self.retry_after = retry_after
