"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    PENDING,
    RefundRequestStatus,
    TransactionEventType,
    TransactionStatus,
    WebhookEventStatus,
)

__all__ = [
    "PENDING",
    "RefundRequestStatus",
    "TransactionEventType",
    "TransactionStatus",
    "WebhookEventStatus",
]
