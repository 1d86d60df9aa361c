"""
Notification service layer.

Usage:
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        recipient=seller,
        notification_type=NotificationType.SALE_COMPLETED,
        title="Horse Sold!",
        body="Thunder has been sold for 15,000.00 USD.",
        link=f"/transactions/{transaction.id}",
        idempotency_key=f"sale_completed:{transaction.id}",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import IntegrityError

from core.services import BaseService, ServiceResult
from notifications.models import Notification

if TYPE_CHECKING:
    from authentication.models import User


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        create_notification: Create a notification, at most once per key
    """

    @classmethod
    def create_notification(
        cls,
        recipient: User,
        notification_type: str,
        title: str,
        body: str = "",
        link: str = "",
        data: dict | None = None,
        idempotency_key: str | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a new notification for a user.

        Callers that may run more than once for the same event (webhook
        handlers) pass an idempotency_key. The insert runs in a savepoint
        so a lost race surfaces as DUPLICATE without breaking the caller's
        transaction.

        Args:
            recipient: User receiving the notification
            notification_type: NotificationType value
            title: Rendered title
            body: Rendered body
            link: Client route the notification opens
            data: JSON context
            idempotency_key: Optional key to prevent duplicate notifications

        Returns:
            ServiceResult with created Notification if successful

        Error codes:
            DUPLICATE: Notification with this idempotency_key already exists
        """
        if idempotency_key and Notification.objects.filter(
            idempotency_key=idempotency_key
        ).exists():
            cls.get_logger().info(
                f"Duplicate notification prevented: idempotency_key={idempotency_key}"
            )
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        try:
            with cls.atomic():
                notification = Notification.objects.create(
                    recipient=recipient,
                    notification_type=notification_type,
                    title=title,
                    body=body,
                    link=link,
                    data=data or {},
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            cls.get_logger().info(
                f"Duplicate notification prevented on insert: idempotency_key={idempotency_key}"
            )
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        cls.get_logger().debug(
            f"Created {notification_type} notification {notification.id} "
            f"for user {recipient.id}"
        )
        return ServiceResult.success(notification)
