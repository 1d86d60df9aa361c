"""
DRF views for payments app.

This module provides API views for:
- Checkout (PaymentIntent creation)
- Transaction history, audit events and refunds
- Seller payout account onboarding

Related files:
    - services/: PaymentIntentService, TransactionService, SellerPayoutAccountService
    - serializers.py: Request/response serializers
    - urls.py: URL routing
    - webhooks/views.py: Stripe webhook endpoint

Endpoints:
    POST /api/v1/payments/create-intent/ - Create a PaymentIntent for a listing
    GET /api/v1/payments/transactions/ - List own transactions
    GET /api/v1/payments/transactions/{id}/ - Transaction detail
    GET /api/v1/payments/transactions/{id}/events/ - Audit trail
    GET/POST /api/v1/payments/transactions/{id}/refund-requests/ - Refund requests
    POST /api/v1/payments/transactions/{id}/refund/ - Issue refund (staff)
    GET/POST /api/v1/payments/payout-account/ - Seller payout account
    POST /api/v1/payments/payout-account/onboarding-link/ - Stripe onboarding URL
    POST /api/v1/payments/payout-account/dashboard-link/ - Stripe dashboard URL
    POST /api/v1/payments/payout-account/sync/ - Refresh account status

Security:
    - All endpoints require authentication
    - Transaction endpoints are limited to the buyer and the seller
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult
from payments.models import SellerPayoutAccount
from payments.serializers import (
    CheckoutSessionSerializer,
    CreatePaymentIntentSerializer,
    CreateRefundRequestSerializer,
    IssueRefundSerializer,
    LinkSerializer,
    RefundRequestSerializer,
    RefundResultSerializer,
    SellerPayoutAccountSerializer,
    TransactionEventSerializer,
    TransactionSerializer,
)
from payments.services import (
    PaymentIntentService,
    SellerPayoutAccountService,
    TransactionService,
)

logger = logging.getLogger(__name__)


# Service error codes that are not plain 400s
ERROR_STATUS = {
    "LISTING_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "REFUND_ALREADY_REQUESTED": status.HTTP_409_CONFLICT,
    "PAYMENT_PROVIDER_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with the status its error code maps to."""
    return Response(
        result.to_response(),
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


# =============================================================================
# Checkout
# =============================================================================


class CreatePaymentIntentView(APIView):
    """
    Create a Stripe PaymentIntent for a listing purchase.

    POST /api/v1/payments/create-intent/

    Request body:
        {
            "listingId": "3f7c...",
            "offerId": "9a1e..."     (optional)
        }

    Returns:
        {
            "clientSecret": "pi_xxx_secret_yyy",
            "paymentIntentId": "pi_xxx",
            "amount": 1500000,
            "platformFee": 75000,
            "processorFee": 43530,
            "sellerReceives": 1381470,
            "currency": "usd"
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create payment intent",
        description=(
            "Validate the listing (and accepted offer, if given), compute fees and "
            "create a Stripe PaymentIntent held in escrow. Amounts are in cents."
        ),
        tags=["Payments"],
        request=CreatePaymentIntentSerializer,
        responses={
            200: CheckoutSessionSerializer,
            400: OpenApiResponse(
                description="Listing unavailable, self-purchase, invalid offer or seller not set up",
                examples=[
                    OpenApiExample(
                        "Self purchase",
                        value={
                            "success": False,
                            "error": "You cannot purchase your own listing",
                            "error_code": "SELF_PURCHASE",
                        },
                    ),
                ],
            ),
            401: OpenApiResponse(description="Not authenticated"),
            404: OpenApiResponse(description="Listing not found"),
            500: OpenApiResponse(description="Payment provider or unexpected error"),
        },
    )
    def post(self, request):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = PaymentIntentService.create_payment_intent(
                buyer=request.user,
                listing_id=serializer.validated_data["listing_id"],
                offer_id=serializer.validated_data.get("offer_id"),
            )
        except Exception:
            logger.exception(
                "Unexpected error creating payment intent",
                extra={"user_id": request.user.pk},
            )
            return Response(
                {"success": False, "error": "Failed to create payment intent"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        if not result.success:
            return error_response(result)

        return Response(CheckoutSessionSerializer(result.data).data)


# =============================================================================
# Transactions
# =============================================================================


@extend_schema(
    summary="List my transactions",
    description="Purchases and sales of the current user, newest first.",
    tags=["Payments - Transactions"],
)
class TransactionListView(generics.ListAPIView):
    """
    GET /api/v1/payments/transactions/

    Paginated with the default PageNumberPagination.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = TransactionSerializer

    def get_queryset(self):
        return TransactionService.list_for_user(self.request.user)


class TransactionDetailView(APIView):
    """GET /api/v1/payments/transactions/{id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get transaction",
        tags=["Payments - Transactions"],
        responses={200: TransactionSerializer},
    )
    def get(self, request, transaction_id):
        result = TransactionService.get_for_user(transaction_id, request.user)
        if not result.success:
            return error_response(result)
        return Response(TransactionSerializer(result.data).data)


class TransactionEventsView(APIView):
    """GET /api/v1/payments/transactions/{id}/events/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get transaction audit trail",
        description="Status changes and refund activity, oldest first.",
        tags=["Payments - Transactions"],
        responses={200: TransactionEventSerializer(many=True)},
    )
    def get(self, request, transaction_id):
        result = TransactionService.get_events(transaction_id, request.user)
        if not result.success:
            return error_response(result)
        return Response(TransactionEventSerializer(result.data, many=True).data)


class RefundRequestsView(APIView):
    """
    GET/POST /api/v1/payments/transactions/{id}/refund-requests/

    Request body (POST):
        {
            "reason": "Horse failed the pre-purchase vet exam",
            "amount_cents": 250000     (optional, defaults to full refund)
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List refund requests",
        tags=["Payments - Refunds"],
        responses={200: RefundRequestSerializer(many=True)},
    )
    def get(self, request, transaction_id):
        result = TransactionService.get_refund_requests(transaction_id, request.user)
        if not result.success:
            return error_response(result)
        return Response(RefundRequestSerializer(result.data, many=True).data)

    @extend_schema(
        summary="Request a refund",
        description=(
            "Buyer or seller asks staff to refund the transaction. The other party "
            "is notified. The transaction status changes only once Stripe confirms."
        ),
        tags=["Payments - Refunds"],
        request=CreateRefundRequestSerializer,
        responses={
            201: RefundRequestSerializer,
            400: OpenApiResponse(description="Invalid status or amount"),
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Transaction not found"),
            409: OpenApiResponse(description="A request is already pending"),
        },
    )
    def post(self, request, transaction_id):
        serializer = CreateRefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = TransactionService.request_refund(
            transaction_id=transaction_id,
            user=request.user,
            reason=serializer.validated_data["reason"],
            amount_cents=serializer.validated_data.get("amount_cents"),
        )
        if not result.success:
            return error_response(result)
        return Response(
            RefundRequestSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class IssueRefundView(APIView):
    """
    POST /api/v1/payments/transactions/{id}/refund/

    Staff only. Sends the refund to Stripe; the charge.refunded webhook
    updates the transaction.
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="Issue refund",
        tags=["Payments - Refunds"],
        request=IssueRefundSerializer,
        responses={202: RefundResultSerializer},
    )
    def post(self, request, transaction_id):
        serializer = IssueRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = TransactionService.issue_refund(
            transaction_id=transaction_id,
            staff_user=request.user,
            amount_cents=serializer.validated_data.get("amount_cents"),
        )
        if not result.success:
            return error_response(result)
        return Response(
            RefundResultSerializer(result.data).data,
            status=status.HTTP_202_ACCEPTED,
        )


# =============================================================================
# Seller Payout Accounts
# =============================================================================


class PayoutAccountView(APIView):
    """
    GET/POST /api/v1/payments/payout-account/

    GET returns the current account (404 if none). POST creates the Stripe
    connected account on first call and returns the existing one after.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get payout account",
        tags=["Payments - Payouts"],
        responses={200: SellerPayoutAccountSerializer},
    )
    def get(self, request):
        account = SellerPayoutAccount.objects.filter(user=request.user).first()
        if account is None:
            return Response(
                {"detail": "No payout account found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(SellerPayoutAccountSerializer(account).data)

    @extend_schema(
        summary="Create payout account",
        tags=["Payments - Payouts"],
        request=None,
        responses={200: SellerPayoutAccountSerializer},
    )
    def post(self, request):
        result = SellerPayoutAccountService.get_or_create_account(request.user)
        if not result.success:
            return error_response(result)
        return Response(SellerPayoutAccountSerializer(result.data).data)


class OnboardingLinkView(APIView):
    """POST /api/v1/payments/payout-account/onboarding-link/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create onboarding link",
        description="Hosted Stripe Connect onboarding URL for the current seller.",
        tags=["Payments - Payouts"],
        request=None,
        responses={200: LinkSerializer},
    )
    def post(self, request):
        result = SellerPayoutAccountService.create_onboarding_link(request.user)
        if not result.success:
            return error_response(result)
        return Response(LinkSerializer(result.data).data)


class DashboardLinkView(APIView):
    """POST /api/v1/payments/payout-account/dashboard-link/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create dashboard link",
        tags=["Payments - Payouts"],
        request=None,
        responses={200: LinkSerializer},
    )
    def post(self, request):
        result = SellerPayoutAccountService.create_dashboard_link(request.user)
        if not result.success:
            return error_response(result)
        return Response(LinkSerializer(result.data).data)


class SyncPayoutAccountView(APIView):
    """POST /api/v1/payments/payout-account/sync/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Sync payout account status",
        tags=["Payments - Payouts"],
        request=None,
        responses={200: SellerPayoutAccountSerializer},
    )
    def post(self, request):
        result = SellerPayoutAccountService.sync_account_status(request.user)
        if not result.success:
            return error_response(result)
        return Response(SellerPayoutAccountSerializer(result.data).data)
