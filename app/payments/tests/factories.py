"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import (
        PaymentIntentRecordFactory,
        SellerPayoutAccountFactory,
        TransactionFactory,
        WebhookEventFactory,
    )

    account = SellerPayoutAccountFactory(user=seller)
    transaction = TransactionFactory(final_price_cents=1500000)
"""

import uuid
from datetime import timedelta

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from listings.tests.factories import ListingFactory
from payments.models import (
    PaymentIntentRecord,
    RefundRequest,
    SellerPayoutAccount,
    Transaction,
    WebhookEvent,
)
from payments.state_machines import (
    RefundRequestStatus,
    TransactionStatus,
    WebhookEventStatus,
)


class SellerPayoutAccountFactory(factory.django.DjangoModelFactory):
    """
    Factory for SellerPayoutAccount.

    Defaults to a fully enabled account. Use ``restricted=True`` for one that
    has not finished onboarding.
    """

    class Meta:
        model = SellerPayoutAccount

    class Params:
        restricted = factory.Trait(
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
        )

    user = factory.SubFactory(UserFactory)
    stripe_account_id = factory.LazyFunction(lambda: f"acct_{uuid.uuid4().hex[:16]}")
    charges_enabled = True
    payouts_enabled = True
    details_submitted = True
    country = "US"
    default_currency = "usd"


class PaymentIntentRecordFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PaymentIntentRecord

    stripe_payment_intent_id = factory.LazyFunction(
        lambda: f"pi_{uuid.uuid4().hex[:24]}"
    )
    listing = factory.SubFactory(ListingFactory)
    buyer = factory.SubFactory(UserFactory)
    seller = factory.SelfAttribute("listing.seller")
    amount_cents = 1000000
    platform_fee_cents = 50000
    processor_fee_cents = 29030
    seller_amount_cents = 920970
    currency = "usd"
    status = "requires_payment_method"
    client_secret = factory.LazyAttribute(
        lambda o: f"{o.stripe_payment_intent_id}_secret_test"
    )


class TransactionFactory(factory.django.DjangoModelFactory):
    """
    Factory for Transaction.

    Creates a PAYMENT_HELD transaction. Other states are set with
    ``status=...``; the FSM field is protected only against assignment on
    existing instances.
    """

    class Meta:
        model = Transaction

    listing = factory.SubFactory(ListingFactory)
    buyer = factory.SubFactory(UserFactory)
    seller = factory.SelfAttribute("listing.seller")
    listing_price_cents = 1000000
    final_price_cents = 1000000
    platform_fee_cents = 50000
    processor_fee_cents = 29030
    seller_receives_cents = 920970
    currency = "usd"
    stripe_payment_intent_id = factory.LazyFunction(
        lambda: f"pi_{uuid.uuid4().hex[:24]}"
    )
    stripe_charge_id = factory.LazyFunction(lambda: f"ch_{uuid.uuid4().hex[:24]}")
    status = TransactionStatus.PAYMENT_HELD
    escrow_release_date = factory.LazyFunction(
        lambda: timezone.now() + timedelta(days=7)
    )


class RefundRequestFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = RefundRequest

    transaction = factory.SubFactory(TransactionFactory)
    requested_by = factory.SelfAttribute("transaction.buyer")
    reason = "Horse failed the pre-purchase vet exam"
    amount_cents = factory.SelfAttribute("transaction.final_price_cents")
    status = RefundRequestStatus.PENDING


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent.

    Pass ``data_object`` to build the payload around a Stripe object:

        WebhookEventFactory(
            event_type="charge.refunded",
            data_object={"id": "ch_1", "amount": 100, "amount_refunded": 100},
        )
    """

    class Meta:
        model = WebhookEvent

    class Params:
        data_object = factory.LazyFunction(dict)

    stripe_event_id = factory.LazyFunction(lambda: f"evt_{uuid.uuid4().hex[:24]}")
    event_type = "payment_intent.succeeded"
    payload = factory.LazyAttribute(
        lambda o: {
            "id": o.stripe_event_id,
            "object": "event",
            "type": o.event_type,
            "created": 1767225600,
            "data": {"object": o.data_object},
        }
    )
    status = WebhookEventStatus.PENDING
