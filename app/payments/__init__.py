"""
Payments app for escrow purchases through Stripe.

This app handles:
- Fee calculation (platform commission and processor fee)
- PaymentIntent creation for listing checkout
- Stripe webhook verification and processing
- Escrow transactions, audit events and refunds
- Seller payout accounts on Stripe Connect

Related apps:
    - listings: Listings and offers being paid for
    - notifications: Sale, purchase and refund notifications

Usage:
    from payments.services import PaymentIntentService

    result = PaymentIntentService.create_payment_intent(buyer, listing_id)
"""
