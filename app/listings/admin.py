"""
Django admin configuration for listing models.
"""

from django.contrib import admin

from listings.models import Listing, ListingOffer


class ListingOfferInline(admin.TabularInline):
    model = ListingOffer
    extra = 0
    fields = ["buyer", "amount", "status", "created_at"]
    readonly_fields = ["created_at"]
    raw_id_fields = ["buyer"]


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    """Admin for listings with their offers inline."""

    list_display = ["name", "seller", "price", "status", "sold_price", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["name", "seller__email"]
    raw_id_fields = ["seller"]
    readonly_fields = ["id", "created_at", "updated_at"]
    inlines = [ListingOfferInline]


@admin.register(ListingOffer)
class ListingOfferAdmin(admin.ModelAdmin):
    list_display = ["id", "listing", "buyer", "amount", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["listing__name", "buyer__email"]
    raw_id_fields = ["listing", "buyer"]
    readonly_fields = ["id", "created_at", "updated_at"]
