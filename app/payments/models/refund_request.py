"""
RefundRequest model.

Buyers and sellers ask for refunds; staff review and issue them through
Stripe. The transaction itself only changes state once Stripe confirms the
refund via webhook.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import RefundRequestStatus


class RefundRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A request to refund all or part of a transaction.

    Fields:
        transaction: Transaction to refund
        requested_by: Buyer or seller who asked
        reason: Free-text reason shown to the other party and staff
        amount_cents: Amount requested
        status: RefundRequestStatus value
        processed_at / processed_by: Staff decision
    """

    transaction = models.ForeignKey(
        "payments.Transaction",
        on_delete=models.PROTECT,
        related_name="refund_requests",
        help_text="Transaction to refund",
    )

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="refund_requests",
        help_text="User who requested the refund",
    )

    reason = models.TextField(
        help_text="Why the refund was requested",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount requested, in cents",
    )

    status = models.CharField(
        max_length=20,
        choices=RefundRequestStatus.choices,
        default=RefundRequestStatus.PENDING,
        db_index=True,
        help_text="Review status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When staff approved the request",
    )

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Staff user who processed the request",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Refund Request"
        verbose_name_plural = "Refund Requests"
        indexes = [
            models.Index(fields=["transaction", "status"], name="refund_req_txn_status_idx"),
        ]

    def __str__(self) -> str:
        return f"RefundRequest({self.transaction_id}, {self.amount_cents}, {self.status})"
