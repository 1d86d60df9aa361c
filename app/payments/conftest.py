"""
Pytest fixtures shared by the payments test packages.

Sections:
    - Party Fixtures (buyer, seller, listing, offer)
    - Metadata Fixtures
    - Stripe Adapter Fixtures
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from authentication.tests.factories import UserFactory
from listings.models import OfferStatus
from listings.tests.factories import ListingFactory, ListingOfferFactory
from payments.adapters import (
    ConnectedAccountResult,
    LinkResult,
    PaymentIntentResult,
    RefundResult,
)
from payments.metadata import PaymentMetadata
from payments.tests.factories import SellerPayoutAccountFactory


# =============================================================================
# Party Fixtures
# =============================================================================


@pytest.fixture
def seller(db):
    return UserFactory(email="seller@example.com", display_name="Meadow Farm")


@pytest.fixture
def buyer(db):
    return UserFactory(email="buyer@example.com", display_name="Alex Rider")


@pytest.fixture
def payout_account(seller):
    """Fully enabled payout account for the seller."""
    return SellerPayoutAccountFactory(user=seller, stripe_account_id="acct_seller123")


@pytest.fixture
def listing(seller, payout_account):
    """ACTIVE listing priced at 10,000.00 whose seller can take payments."""
    return ListingFactory(seller=seller, name="Thunder", price=Decimal("10000.00"))


@pytest.fixture
def accepted_offer(listing, buyer):
    return ListingOfferFactory(
        listing=listing,
        buyer=buyer,
        amount=Decimal("9000.00"),
        status=OfferStatus.ACCEPTED,
    )


# =============================================================================
# Metadata Fixtures
# =============================================================================


@pytest.fixture
def payment_metadata(listing, buyer, seller):
    """Metadata as checkout writes it for a list-price purchase of ``listing``."""
    return PaymentMetadata(
        listing_id=listing.id,
        listing_name=listing.name,
        buyer_id=buyer.pk,
        seller_id=seller.pk,
        seller_stripe_account="acct_seller123",
        offer_id=None,
        listing_price_cents=1000000,
        final_price_cents=1000000,
        platform_fee_cents=50000,
        processor_fee_cents=29030,
        seller_receives_cents=920970,
    )


# =============================================================================
# Stripe Adapter Fixtures
# =============================================================================


@pytest.fixture
def stripe_adapter():
    """
    Stand-in for the StripeAdapter class, injected through service parameters.

    Each operation returns a realistic result; override ``return_value`` or
    ``side_effect`` per test.
    """
    adapter = MagicMock(name="StripeAdapter")
    adapter.create_payment_intent.side_effect = lambda params: PaymentIntentResult(
        id="pi_test123456",
        status="requires_payment_method",
        amount_cents=params.amount_cents,
        currency=params.currency,
        client_secret="pi_test123456_secret_abc123",
        metadata=params.metadata,
    )
    adapter.create_refund.side_effect = (
        lambda payment_intent_id, idempotency_key, amount_cents=None, **kwargs: (
            RefundResult(
                id="re_test123456",
                amount_cents=amount_cents,
                currency="usd",
                status="succeeded",
                payment_intent_id=payment_intent_id,
            )
        )
    )
    adapter.create_connected_account.return_value = ConnectedAccountResult(
        id="acct_new123",
        charges_enabled=False,
        payouts_enabled=False,
        details_submitted=False,
        country="US",
        default_currency="usd",
        email="seller@example.com",
    )
    adapter.retrieve_account.return_value = ConnectedAccountResult(
        id="acct_seller123",
        charges_enabled=True,
        payouts_enabled=True,
        details_submitted=True,
        country="US",
        default_currency="usd",
    )
    adapter.create_account_link.return_value = LinkResult(
        url="https://connect.stripe.com/setup/e/acct_new123/abc",
        expires_at=1767225900,
    )
    adapter.create_login_link.return_value = LinkResult(
        url="https://connect.stripe.com/express/acct_seller123/xyz",
    )
    return adapter
