"""
Seller payout accounts on Stripe Connect.

Sellers are paid through Express connected accounts. This service creates
the account, hands out hosted onboarding and dashboard links, and keeps the
local capability flags in step with Stripe.

Usage:
    from payments.services import SellerPayoutAccountService

    result = SellerPayoutAccountService.create_onboarding_link(request.user)
    if result.success:
        return redirect(result.data.url)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError

from core.services import BaseService, ServiceResult
from payments.adapters import (
    ConnectedAccountResult,
    IdempotencyKeyGenerator,
    LinkResult,
    StripeAdapter,
)
from payments.exceptions import StripeError
from payments.models import SellerPayoutAccount

if TYPE_CHECKING:
    from authentication.models import User


class SellerPayoutAccountService(BaseService):
    """
    Service for seller connected accounts.

    Methods:
        get_or_create_account: Create the Express account on first use
        create_onboarding_link: Hosted onboarding URL
        create_dashboard_link: Express dashboard login URL
        sync_account_status: Pull capability flags from Stripe
        apply_account_update: Copy capability flags from an account.updated event
        can_receive_payments: Whether the seller can be paid
    """

    @classmethod
    def get_or_create_account(
        cls,
        user: User,
        stripe_adapter: type[StripeAdapter] = StripeAdapter,
    ) -> ServiceResult[SellerPayoutAccount]:
        """
        Return the seller's payout account, creating it at Stripe if needed.

        The Stripe call uses an idempotency key derived from the user, so a
        retry after a lost response returns the same connected account.
        """
        account = SellerPayoutAccount.objects.filter(user=user).first()
        if account:
            return ServiceResult.success(account)

        logger = cls.get_logger()

        try:
            result = stripe_adapter.create_connected_account(
                email=user.email,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="create_account",
                    entity_id=str(user.pk),
                ),
                country="US",
                metadata={"user_id": str(user.pk)},
            )
        except StripeError as e:
            logger.error(
                "Connected account creation failed",
                extra={"user_id": user.pk, "error_code": e.error_code},
            )
            return ServiceResult.failure(
                "Payment provider error. Please try again.",
                error_code="PAYMENT_PROVIDER_ERROR",
            )

        try:
            with cls.atomic():
                account = SellerPayoutAccount.objects.create(
                    user=user,
                    stripe_account_id=result.id,
                    charges_enabled=result.charges_enabled,
                    payouts_enabled=result.payouts_enabled,
                    details_submitted=result.details_submitted,
                    country=result.country or "US",
                    default_currency=result.default_currency or "",
                    email=result.email or user.email,
                )
        except IntegrityError:
            # Parallel request stored the same account first
            account = SellerPayoutAccount.objects.get(user=user)

        logger.info(
            "Seller payout account created",
            extra={"user_id": user.pk, "stripe_account_id": account.stripe_account_id},
        )
        return ServiceResult.success(account)

    @classmethod
    def create_onboarding_link(
        cls,
        user: User,
        stripe_adapter: type[StripeAdapter] = StripeAdapter,
    ) -> ServiceResult[LinkResult]:
        """Create a hosted onboarding link, creating the account if needed."""
        account_result = cls.get_or_create_account(user, stripe_adapter=stripe_adapter)
        if not account_result.success:
            return account_result

        base_url = settings.SELLER_ONBOARDING_BASE_URL.rstrip("/")
        try:
            link = stripe_adapter.create_account_link(
                account_id=account_result.data.stripe_account_id,
                refresh_url=f"{base_url}/seller/stripe/refresh",
                return_url=f"{base_url}/seller/stripe/return",
            )
        except StripeError as e:
            return cls.handle_exception(e, "Onboarding link creation")
        return ServiceResult.success(link)

    @classmethod
    def create_dashboard_link(
        cls,
        user: User,
        stripe_adapter: type[StripeAdapter] = StripeAdapter,
    ) -> ServiceResult[LinkResult]:
        account = SellerPayoutAccount.objects.filter(user=user).first()
        if account is None:
            return ServiceResult.failure(
                "No payout account found",
                error_code="NOT_FOUND",
            )
        if not account.details_submitted:
            return ServiceResult.failure(
                "Finish onboarding before opening the dashboard",
                error_code="SELLER_SETUP_INCOMPLETE",
            )

        try:
            link = stripe_adapter.create_login_link(account.stripe_account_id)
        except StripeError as e:
            return cls.handle_exception(e, "Dashboard link creation")
        return ServiceResult.success(link)

    @classmethod
    def sync_account_status(
        cls,
        user: User,
        stripe_adapter: type[StripeAdapter] = StripeAdapter,
    ) -> ServiceResult[SellerPayoutAccount]:
        """Refresh the capability flags from Stripe."""
        account = SellerPayoutAccount.objects.filter(user=user).first()
        if account is None:
            return ServiceResult.failure(
                "No payout account found",
                error_code="NOT_FOUND",
            )

        try:
            result = stripe_adapter.retrieve_account(account.stripe_account_id)
        except StripeError as e:
            return cls.handle_exception(e, "Account status sync")

        cls._copy_flags(account, result)
        return ServiceResult.success(account)

    @classmethod
    def apply_account_update(
        cls, account_data: dict
    ) -> ServiceResult[SellerPayoutAccount | None]:
        """
        Copy capability flags from an ``account.updated`` payload.

        Flags are taken exactly as Stripe reports them. An account that is
        not ours is logged and acknowledged with a None payload.
        """
        account_id = account_data.get("id")
        account = SellerPayoutAccount.objects.filter(stripe_account_id=account_id).first()
        if account is None:
            cls.get_logger().warning(
                "account.updated for unknown connected account",
                extra={"stripe_account_id": account_id},
            )
            return ServiceResult.success(None)

        cls._copy_flags(
            account,
            ConnectedAccountResult(
                id=account_id,
                charges_enabled=bool(account_data.get("charges_enabled")),
                payouts_enabled=bool(account_data.get("payouts_enabled")),
                details_submitted=bool(account_data.get("details_submitted")),
                country=account_data.get("country") or "",
                default_currency=account_data.get("default_currency") or "",
                email=account_data.get("email") or "",
            ),
        )
        return ServiceResult.success(account)

    @classmethod
    def can_receive_payments(cls, user: User) -> bool:
        account = SellerPayoutAccount.objects.filter(user=user).first()
        return bool(account and account.can_receive_payments)

    @classmethod
    def _copy_flags(
        cls, account: SellerPayoutAccount, result: ConnectedAccountResult
    ) -> None:
        account.charges_enabled = result.charges_enabled
        account.payouts_enabled = result.payouts_enabled
        account.details_submitted = result.details_submitted
        update_fields = [
            "charges_enabled",
            "payouts_enabled",
            "details_submitted",
            "version",
            "updated_at",
        ]
        for field_name in ("country", "default_currency", "email"):
            value = getattr(result, field_name)
            if value:
                setattr(account, field_name, value)
                update_fields.append(field_name)
        account.save(update_fields=update_fields)

        cls.get_logger().info(
            "Seller payout account flags updated",
            extra={
                "stripe_account_id": account.stripe_account_id,
                "charges_enabled": account.charges_enabled,
                "payouts_enabled": account.payouts_enabled,
                "details_submitted": account.details_submitted,
            },
        )
