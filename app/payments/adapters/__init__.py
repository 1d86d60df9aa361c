"""
Payment adapters for external services.

All payment provider calls go through these adapters for consistent error
handling, timeouts, idempotency and logging.
"""

from payments.adapters.stripe_adapter import (
    ConnectedAccountResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    LinkResult,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
)

__all__ = [
    "ConnectedAccountResult",
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "LinkResult",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
]
