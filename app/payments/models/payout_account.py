"""
SellerPayoutAccount model for Stripe Connect.

Each seller is paid into a Stripe Express connected account. The capability
flags mirror Stripe's account object and are refreshed by the
``account.updated`` webhook or an explicit sync.

Usage:
    from payments.models import SellerPayoutAccount

    account = SellerPayoutAccount.objects.filter(user=seller).first()
    if account is None or not account.is_fully_enabled:
        ...  # seller cannot take payments yet
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class SellerPayoutAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    A seller's Stripe connected account.

    Fields:
        user: Seller who owns the account
        stripe_account_id: Stripe Account ID (acct_xxx)
        charges_enabled: Stripe allows charges on behalf of this account
        payouts_enabled: Stripe allows payouts to the seller's bank
        details_submitted: Seller finished the onboarding form
        country / default_currency / email: Account details reported by Stripe
        version: Optimistic locking version

    Properties:
        is_fully_enabled: Checkout gate (charges and payouts)
        can_receive_payments: Fully enabled and onboarding submitted
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payout_account",
        help_text="Seller this account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    details_submitted = models.BooleanField(
        default=False,
        help_text="Whether the seller has submitted onboarding details",
    )

    country = models.CharField(
        max_length=2,
        blank=True,
        default="",
        help_text="ISO 3166-1 alpha-2 country of the account",
    )

    default_currency = models.CharField(
        max_length=3,
        blank=True,
        default="",
        help_text="Account default currency (lowercase)",
    )

    email = models.EmailField(
        blank=True,
        default="",
        help_text="Email registered on the Stripe account",
    )

    # Optimistic locking
    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Seller Payout Account"
        verbose_name_plural = "Seller Payout Accounts"

    def __str__(self) -> str:
        state = "enabled" if self.is_fully_enabled else "restricted"
        return f"SellerPayoutAccount({self.stripe_account_id}, {state})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    @property
    def is_fully_enabled(self) -> bool:
        """True if both payouts and charges are enabled."""
        return self.payouts_enabled and self.charges_enabled

    @property
    def can_receive_payments(self) -> bool:
        return self.is_fully_enabled and self.details_submitted
