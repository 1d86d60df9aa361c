"""Django app configuration for listings."""

from django.apps import AppConfig


class ListingsConfig(AppConfig):
    """Configuration for the listings app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "listings"
    verbose_name = "Listings"
