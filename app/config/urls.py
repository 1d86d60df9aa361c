"""
URL configuration for the marketplace payments service.

This is the root URL configuration that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/payments/              - Payment endpoints
        create-intent/             - Create a PaymentIntent for a listing
        transactions/              - Own purchases and sales
        transactions/{id}/         - Transaction detail
        transactions/{id}/events/  - Audit trail
        transactions/{id}/refund-requests/ - List/create refund requests
        transactions/{id}/refund/  - Issue refund (staff)
        payout-account/            - Seller payout account
        payout-account/onboarding-link/ - Stripe onboarding URL
        payout-account/dashboard-link/  - Stripe dashboard URL
        payout-account/sync/       - Refresh account status
    /api/v1/webhooks/payments/     - Stripe webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check
from payments.webhooks import stripe_webhook

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Payments
    path("payments/", include("payments.urls")),
    # Stripe webhooks (signature-authenticated, no user auth)
    path("webhooks/payments/", stripe_webhook, name="stripe-webhook"),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Payments Admin"
admin.site.site_title = "Payments Admin"
admin.site.index_title = "Escrow transactions and seller payouts"
