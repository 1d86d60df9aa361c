"""
Application exception hierarchy.

Exception Hierarchy:
    BaseApplicationError (base)
    └── ConflictError - State conflicts, duplicates, invalid transitions (409)

Domain apps extend these (see payments.exceptions).

Every error carries a machine-readable ``error_code`` and optional
``details`` so views and tasks can log and serialize them uniformly.

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Transaction is already fully refunded",
        error_code="ALREADY_REFUNDED",
        details={"transaction_id": str(transaction.id)},
    )

Note:
    DRF still owns request-layer errors (parsing, authentication).
    These classes are for the service and domain layers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to an API response body.

        Example:
            {
                "error": "Listing not found",
                "error_code": "LISTING_NOT_FOUND",
                "details": {"listing_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Example:
        if transaction.status == TransactionStatus.REFUNDED:
            raise ConflictError(
                "Transaction is already fully refunded",
                error_code="ALREADY_REFUNDED",
            )
    """

    default_error_code: str = "CONFLICT"
