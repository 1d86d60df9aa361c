"""
Typed payment intent metadata.

Stripe metadata is a flat map of strings. Checkout writes the whole sale
snapshot there so the webhook can build the Transaction even if the local
PaymentIntentRecord was never saved. PaymentMetadata is the typed form used
everywhere inside the service; string pairs exist only at the Stripe boundary.

Usage:
    metadata = PaymentMetadata(listing_id=listing.id, ...)
    StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(..., metadata=metadata.to_stripe_metadata())
    )

    # In a webhook handler
    metadata = PaymentMetadata.from_stripe_metadata(intent["metadata"])
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from typing import Any

from payments.exceptions import MetadataParseError

_UUID_FIELDS = ("listing_id", "offer_id")
_USER_ID_FIELDS = ("buyer_id", "seller_id")
_CENT_FIELDS = (
    "listing_price_cents",
    "final_price_cents",
    "platform_fee_cents",
    "processor_fee_cents",
    "seller_receives_cents",
)


@dataclass(frozen=True)
class PaymentMetadata:
    """
    Sale snapshot attached to a PaymentIntent.

    Attributes:
        listing_id: Listing being purchased
        listing_name: Listing name at checkout (used in notifications)
        buyer_id / seller_id: User primary keys
        seller_stripe_account: Seller's connected account (acct_xxx)
        offer_id: Accepted offer, or None for a list-price purchase
        listing_price_cents: Asking price at checkout
        final_price_cents: Amount charged
        platform_fee_cents / processor_fee_cents / seller_receives_cents: Fee split
    """

    listing_id: uuid.UUID
    listing_name: str
    buyer_id: int
    seller_id: int
    seller_stripe_account: str
    offer_id: uuid.UUID | None
    listing_price_cents: int
    final_price_cents: int
    platform_fee_cents: int
    processor_fee_cents: int
    seller_receives_cents: int

    def to_stripe_metadata(self) -> dict[str, str]:
        """Serialize to Stripe's string-only metadata map."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = "" if value is None else str(value)
        return result

    @classmethod
    def from_stripe_metadata(cls, raw: dict[str, Any] | None) -> PaymentMetadata:
        """
        Parse the metadata map from a PaymentIntent.

        Raises:
            MetadataParseError: If a key is missing or a value has the wrong
                shape
        """
        if not raw:
            raise MetadataParseError("Payment intent has no metadata")

        missing = [f.name for f in fields(cls) if f.name not in raw]
        if missing:
            raise MetadataParseError(
                "Payment intent metadata is incomplete",
                details={"missing": missing},
            )

        values: dict[str, Any] = {
            "listing_name": str(raw["listing_name"]),
            "seller_stripe_account": str(raw["seller_stripe_account"]),
        }
        try:
            for name in _UUID_FIELDS:
                text = str(raw[name]).strip()
                values[name] = uuid.UUID(text) if text else None
            for name in _USER_ID_FIELDS:
                values[name] = int(raw[name])
            for name in _CENT_FIELDS:
                values[name] = int(raw[name])
        except (TypeError, ValueError) as e:
            raise MetadataParseError(
                f"Payment intent metadata is malformed: {e}",
                details={"field": name},
            ) from e

        if values["listing_id"] is None:
            raise MetadataParseError(
                "Payment intent metadata has no listing_id",
                details={"field": "listing_id"},
            )
        if values["final_price_cents"] <= 0:
            raise MetadataParseError(
                "Payment intent metadata has a non-positive final price",
                details={"field": "final_price_cents"},
            )

        return cls(**values)
