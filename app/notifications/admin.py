"""
Django admin configuration for notifications.
"""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Read-mostly admin for notifications.

    Notifications are immutable records, so content fields are read-only.
    """

    list_display = [
        "id",
        "recipient",
        "notification_type",
        "title",
        "is_read",
        "created_at",
    ]
    list_filter = ["notification_type", "is_read", "created_at"]
    search_fields = ["title", "recipient__email", "idempotency_key"]
    raw_id_fields = ["recipient"]
    readonly_fields = [
        "notification_type",
        "title",
        "body",
        "link",
        "data",
        "idempotency_key",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
