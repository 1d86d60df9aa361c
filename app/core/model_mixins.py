"""
Reusable abstract model mixins.

List mixins before BaseModel when combining:

    class Transaction(UUIDPrimaryKeyMixin, BaseModel):
        ...
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a UUID primary key instead of an auto-increment integer.

    Marketplace identifiers travel through the payment provider's metadata
    and into client URLs, so they must not be guessable or reveal volume.

    Fields:
        id: UUIDField primary key (generated on instantiation)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
