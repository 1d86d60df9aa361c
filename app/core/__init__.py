"""
Core application: shared infrastructure for the marketplace backend.

Nothing in here knows about listings or payments. Domain apps build on:

Models (import from core.models / core.model_mixins):
    - BaseModel: Abstract model with created_at / updated_at
    - UUIDPrimaryKeyMixin: UUID primary key

Services (import from core.services):
    - ServiceResult: success/failure wrapper for expected outcomes
    - BaseService: logger and transaction helpers for service classes

Exceptions (import from core.exceptions):
    - BaseApplicationError and ConflictError

Note:
    Models and mixins are not re-exported here because importing them
    before the app registry is ready raises AppRegistryNotReady.
"""

from .services import BaseService, ServiceResult

from .exceptions import (
    BaseApplicationError,
    ConflictError,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ConflictError",
]
