"""
Typed errors raised by the matching core.

Tracking and preference failures propagate to the HTTP layer, which renders
them with their status code. Provider-level failures are caught at the adapter
boundary and never abort a multi-provider or multi-user run.
"""
from typing import Any, Dict, Optional


class LeadMatchError(Exception):
    """Base exception for all LeadMatch errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LeadMatchError):
    """Malformed input to a tracking or preference mutation"""

    def __init__(self, message: str, field: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **details} if field else details,
            status_code=400,
        )


class NotFoundError(LeadMatchError):
    """Referenced preference, tracking row or API config is absent"""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)},
            status_code=404,
        )


class DuplicateMatch(LeadMatchError):
    """A tracking row already exists for the (user, lead) pair"""

    def __init__(self, user_id: str, lead_id: str):
        super().__init__(
            message=f"Lead {lead_id} is already tracked for user {user_id}",
            error_code="DUPLICATE_MATCH",
            details={"user_id": user_id, "lead_id": lead_id},
            status_code=409,
        )


class RateLimitExceeded(LeadMatchError):
    """Provider call suppressed locally by the rate limiter"""

    def __init__(self, provider: str, user_id: str, window_seconds: int, limit: int):
        super().__init__(
            message=f"Rate limit exceeded for {provider} (user {user_id}): "
                    f"{limit} calls per {window_seconds}s",
            error_code="RATE_LIMIT_EXCEEDED",
            details={
                "provider": provider,
                "user_id": user_id,
                "window_seconds": window_seconds,
                "limit": limit,
            },
            status_code=429,
        )


class ProviderError(LeadMatchError):
    """Network, auth or parse failure from an external source"""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=f"{provider}: {message}",
            error_code="PROVIDER_ERROR",
            details={"provider": provider, "upstream_status": status_code},
            status_code=502,
        )
        self.provider = provider


class SchedulerExhausted(LeadMatchError):
    """A scheduled API run used up its retry budget"""

    def __init__(self, api_name: str, attempts: int, last_error: Optional[str] = None):
        super().__init__(
            message=f"API call failed after {attempts} attempts: {api_name}",
            error_code="SCHEDULER_EXHAUSTED",
            details={"api_name": api_name, "attempts": attempts, "last_error": last_error},
            status_code=500,
        )
