"""
Listing and offer models.

Only the fields the checkout and escrow flow touch live here: price and
status on the listing, amount and status on the offer. Prices are stored in
major currency units as Decimals; the payments app converts to integer cents
at its boundary.

Usage:
    from listings.models import Listing, ListingStatus

    listing = Listing.objects.create(
        seller=seller,
        name="Thunder",
        price=Decimal("15000.00"),
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

# =============================================================================
# Enums
# =============================================================================


class ListingStatus(models.TextChoices):
    """
    Lifecycle of a listing.

    State Flow:
        ACTIVE -> PENDING (seller accepted an offer)
        ACTIVE/PENDING -> SOLD (payment captured)
        SOLD -> ACTIVE (sale fully refunded)
        any -> REMOVED (seller withdrew the listing)
    """

    ACTIVE = "ACTIVE", "Active"
    PENDING = "PENDING", "Pending"
    SOLD = "SOLD", "Sold"
    REMOVED = "REMOVED", "Removed"

    @classmethod
    def purchasable(cls) -> list[str]:
        """Statuses that still accept a new payment."""
        return [cls.ACTIVE, cls.PENDING]


class OfferStatus(models.TextChoices):
    """Status of a buyer's offer on a listing."""

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    COUNTERED = "countered", "Countered"
    EXPIRED = "expired", "Expired"
    WITHDRAWN = "withdrawn", "Withdrawn"


# =============================================================================
# Models
# =============================================================================


class Listing(UUIDPrimaryKeyMixin, BaseModel):
    """
    A horse offered for sale.

    Fields:
        seller: User who owns the listing
        name: Horse name shown to buyers and in payment descriptions
        price: Asking price in major currency units
        status: Current ListingStatus
        sold_price: Price the sale settled at (set when SOLD)
        sold_date: When the sale settled (set when SOLD)
    """

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="listings",
        help_text="User selling this horse",
    )
    name = models.CharField(
        max_length=200,
        help_text="Horse name",
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Asking price in major currency units",
    )
    status = models.CharField(
        max_length=20,
        choices=ListingStatus.choices,
        default=ListingStatus.ACTIVE,
        db_index=True,
        help_text="Current listing status",
    )
    sold_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Final sale price, set when the listing is sold",
    )
    sold_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the listing was sold",
    )

    class Meta:
        db_table = "listings_listing"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["seller", "status"], name="listing_seller_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"

    @property
    def is_purchasable(self) -> bool:
        return self.status in ListingStatus.purchasable()


class ListingOffer(UUIDPrimaryKeyMixin, BaseModel):
    """
    A buyer's offer on a listing.

    Checkout honours an offer only once the seller has accepted it, and only
    for the buyer who made it.
    """

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name="offers",
        help_text="Listing this offer is for",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listing_offers",
        help_text="User making the offer",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Offered price in major currency units",
    )
    status = models.CharField(
        max_length=20,
        choices=OfferStatus.choices,
        default=OfferStatus.PENDING,
        db_index=True,
        help_text="Current offer status",
    )
    message = models.TextField(
        blank=True,
        default="",
        help_text="Optional note from the buyer",
    )

    class Meta:
        db_table = "listings_offer"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["listing", "status"], name="offer_listing_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Offer {self.amount} on {self.listing_id} [{self.status}]"
