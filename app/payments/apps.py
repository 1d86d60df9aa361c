"""
Payments app configuration.

This app provides escrow payments for listing purchases:
- Fee calculation and PaymentIntent creation
- Stripe webhook handling
- Escrow transaction state machine and refunds
- Seller payout accounts (Stripe Connect)
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
