"""
URL configuration for the payments app.

Routes:
    - POST create-intent/ - Create a PaymentIntent
    - GET transactions/ - List own transactions
    - GET transactions/<id>/ - Transaction detail
    - GET transactions/<id>/events/ - Audit trail
    - GET/POST transactions/<id>/refund-requests/ - Refund requests
    - POST transactions/<id>/refund/ - Issue refund (staff)
    - GET/POST payout-account/ - Seller payout account
    - POST payout-account/onboarding-link/ - Onboarding URL
    - POST payout-account/dashboard-link/ - Dashboard URL
    - POST payout-account/sync/ - Refresh account status

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
The Stripe webhook lives at /api/v1/webhooks/payments/ (see config/urls.py).
"""

from django.urls import path

from payments import views

app_name = "payments"

urlpatterns = [
    # Checkout
    path(
        "create-intent/",
        views.CreatePaymentIntentView.as_view(),
        name="create-intent",
    ),
    # Transactions
    path(
        "transactions/",
        views.TransactionListView.as_view(),
        name="transaction-list",
    ),
    path(
        "transactions/<uuid:transaction_id>/",
        views.TransactionDetailView.as_view(),
        name="transaction-detail",
    ),
    path(
        "transactions/<uuid:transaction_id>/events/",
        views.TransactionEventsView.as_view(),
        name="transaction-events",
    ),
    path(
        "transactions/<uuid:transaction_id>/refund-requests/",
        views.RefundRequestsView.as_view(),
        name="transaction-refund-requests",
    ),
    path(
        "transactions/<uuid:transaction_id>/refund/",
        views.IssueRefundView.as_view(),
        name="transaction-refund",
    ),
    # Seller payout accounts
    path(
        "payout-account/",
        views.PayoutAccountView.as_view(),
        name="payout-account",
    ),
    path(
        "payout-account/onboarding-link/",
        views.OnboardingLinkView.as_view(),
        name="payout-onboarding-link",
    ),
    path(
        "payout-account/dashboard-link/",
        views.DashboardLinkView.as_view(),
        name="payout-dashboard-link",
    ),
    path(
        "payout-account/sync/",
        views.SyncPayoutAccountView.as_view(),
        name="payout-sync",
    ),
]
