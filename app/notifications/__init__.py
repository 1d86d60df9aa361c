"""
In-app notifications.

Other apps create notifications through NotificationService; delivery to
devices and email is handled outside this service.
"""
