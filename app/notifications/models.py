"""
Notification models.

Notifications are immutable records: title and body are rendered once at
creation. An optional idempotency key lets event-driven producers (webhook
handlers that may be replayed) create a notification at most once.

Usage:
    from notifications.models import Notification, NotificationType

    Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel

# =============================================================================
# Enums
# =============================================================================


class NotificationType(models.TextChoices):
    """Kinds of notification the marketplace sends."""

    SALE_COMPLETED = "sale_completed", "Sale Completed"
    PURCHASE_COMPLETED = "purchase_completed", "Purchase Completed"
    REFUND_REQUESTED = "refund_requested", "Refund Requested"
    REFUND_PROCESSED = "refund_processed", "Refund Processed"


# =============================================================================
# Models
# =============================================================================


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification (scopes all queries)
        notification_type: NotificationType value
        title: Fully rendered title string
        body: Fully rendered body string
        link: Client route the notification opens
        data: Arbitrary JSON context (ids, amounts)
        is_read: Whether recipient has read this notification
        idempotency_key: Unique when set; replays of the same event reuse it

    Inherits from BaseModel:
        created_at: Timestamp (auto, indexed)
        updated_at: Timestamp (auto)
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )

    notification_type = models.CharField(
        max_length=50,
        choices=NotificationType.choices,
        db_index=True,
        help_text="Type of this notification",
    )

    title = models.CharField(
        max_length=500,
        help_text="Fully rendered notification title",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Fully rendered notification body",
    )

    link = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Client route opened by this notification",
    )

    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary context data (ids, amounts)",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Idempotency key to prevent duplicate notifications",
    )

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at"]
        indexes = [
            # Primary query: user's unread notifications
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["idempotency_key"],
                name="notif_idempotency_key_unique",
                condition=models.Q(idempotency_key__isnull=False),
            ),
        ]

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return (
            f"Notification({self.notification_type}) -> "
            f"User {self.recipient_id} [{read_status}]"
        )
