"""
Service layer primitives.

Views deal with HTTP, models with persistence, services with the rules in
between. Two building blocks live here:

- ServiceResult: the return type for operations that can fail in an
  expected way (a listing that is already sold, an offer that was never
  accepted). Callers branch on ``result.success`` instead of catching.
- BaseService: class-level helpers shared by every service (a named
  logger, a transaction context manager, exception-to-result conversion).

Unexpected failures (database down, programming errors) are still raised.

Usage:
    from core.services import BaseService, ServiceResult

    class ListingService(BaseService):
        @classmethod
        def mark_removed(cls, listing) -> ServiceResult[Listing]:
            if listing.status == ListingStatus.SOLD:
                return ServiceResult.failure(
                    "Sold listings cannot be removed",
                    error_code="LISTING_SOLD",
                )
            with cls.atomic():
                listing.status = ListingStatus.REMOVED
                listing.save(update_fields=["status", "updated_at"])
            return ServiceResult.success(listing)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service operation.

    Attributes:
        success: Whether the operation succeeded
        data: Payload on success
        error: Human-readable message on failure
        error_code: Machine-readable code views map to HTTP statuses
        errors: Optional field-level errors

    Example:
        result = PaymentIntentService.create_payment_intent(buyer, listing_id)
        if not result:
            return Response(result.to_response(), status=400)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(
        cls, exc: Exception, error_code: str | None = None
    ) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors carry their own code; anything else falls back
        to the upper-cased class name.
        """
        code = error_code or getattr(exc, "error_code", None)
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            success=False,
            error=message,
            error_code=code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to the JSON body returned by API views."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def map(self, func: Callable[[T], Any]) -> ServiceResult:
        """Apply ``func`` to the payload of a successful result."""
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for stateless service classes.

    Services expose classmethods only. Expected failures come back as
    ServiceResult.failure(); unexpected ones propagate.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named ``<module>.<ServiceClass>`` for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls, savepoint: bool = True) -> Generator[None, None, None]:
        """
        Run the enclosed block in a database transaction.

        Nested use creates a savepoint, so an inner failure can be caught
        without poisoning the outer transaction.
        """
        with transaction.atomic(savepoint=savepoint):
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Log an exception and convert it to a failed ServiceResult.

        Example:
            try:
                adapter.create_refund(...)
            except StripeError as e:
                return cls.handle_exception(e, "refund creation")
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=True)
        return ServiceResult.from_exception(exc)

    @classmethod
    def validate_required(cls, **kwargs: Any) -> ServiceResult | None:
        """
        Return a VALIDATION_ERROR result if any keyword value is empty.

        Returns None when every value is present.
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            return ServiceResult.failure(
                "Required fields missing",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )
        return None
