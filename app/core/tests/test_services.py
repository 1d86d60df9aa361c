"""
Tests for ServiceResult and BaseService.
"""

import logging

import pytest

from core.exceptions import ConflictError
from core.services import BaseService, ServiceResult


class ExampleService(BaseService):
    """Concrete service used to exercise BaseService helpers."""


class TestServiceResult:
    """Tests for the ServiceResult wrapper."""

    def test_success_is_truthy_and_carries_data(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.data == {"id": 1}
        assert result.to_response() == {"success": True, "data": {"id": 1}}

    def test_failure_response_includes_code_and_errors(self):
        result = ServiceResult.failure(
            "Listing is sold",
            error_code="LISTING_UNAVAILABLE",
            errors={"listing_id": ["sold"]},
        )

        assert not result
        assert result.to_response() == {
            "success": False,
            "error": "Listing is sold",
            "error_code": "LISTING_UNAVAILABLE",
            "errors": {"listing_id": ["sold"]},
        }

    def test_from_exception_uses_application_error_code(self):
        exc = ConflictError("Listing already sold", error_code="LISTING_UNAVAILABLE")

        result = ServiceResult.from_exception(exc)

        assert result.error == "Listing already sold"
        assert result.error_code == "LISTING_UNAVAILABLE"

    def test_from_exception_falls_back_to_class_name(self):
        result = ServiceResult.from_exception(KeyError("x"))

        assert result.error_code == "KEYERROR"

    def test_map_only_applies_to_success(self):
        assert ServiceResult.success(2).map(lambda x: x * 10).data == 20

        failed = ServiceResult.failure("nope", "NOPE")
        assert failed.map(lambda x: x * 10) is failed


class TestBaseService:
    """Tests for BaseService helpers."""

    def test_logger_is_named_after_service(self):
        logger = ExampleService.get_logger()

        assert logger.name == f"{__name__}.ExampleService"

    def test_validate_required_reports_blank_fields(self):
        result = ExampleService.validate_required(reason="  ", listing_id=None, ok="x")

        assert result.error_code == "VALIDATION_ERROR"
        assert set(result.errors) == {"reason", "listing_id"}

    def test_validate_required_passes(self):
        assert ExampleService.validate_required(reason="Damaged") is None

    def test_handle_exception_logs_and_converts(self, caplog):
        with caplog.at_level(logging.ERROR):
            result = ExampleService.handle_exception(ValueError("bad"), "refund")

        assert not result
        assert result.error_code == "VALUEERROR"
        assert "refund: bad" in caplog.text

    @pytest.mark.django_db(transaction=True)
    def test_atomic_rolls_back_on_error(self):
        from authentication.models import User

        with pytest.raises(RuntimeError):
            with ExampleService.atomic():
                User.objects.create_user(email="rollback@example.com", password="x")
                raise RuntimeError("boom")

        assert not User.objects.filter(email="rollback@example.com").exists()
