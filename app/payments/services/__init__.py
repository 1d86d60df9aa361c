"""
Payment services.

This module provides:
- PaymentIntentService: Checkout, issues Stripe PaymentIntents
- TransactionService: Escrow transaction lifecycle and refunds
- SellerPayoutAccountService: Stripe Connect accounts for sellers

Usage:
    from payments.services import PaymentIntentService

    result = PaymentIntentService.create_payment_intent(
        buyer=user,
        listing_id=listing.id,
    )

    from payments.services import TransactionService

    result = TransactionService.request_refund(
        transaction_id=transaction.id,
        user=user,
        reason="Vet check failed",
    )
"""

from payments.services.payment_intent_service import (
    CheckoutSession,
    PaymentIntentService,
)
from payments.services.payout_account_service import SellerPayoutAccountService
from payments.services.transaction_service import TransactionService

__all__ = [
    "CheckoutSession",
    "PaymentIntentService",
    "SellerPayoutAccountService",
    "TransactionService",
]
