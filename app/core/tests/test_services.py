"""
Tests for the service-layer base classes.
"""

from __future__ import annotations

from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"order_id": "o1"})

        assert result
        assert result.data == {"order_id": "o1"}
        assert result.error is None

    def test_failure(self):
        result = ServiceResult.failure("Unknown intent", "order_not_found")

        assert not result
        assert result.data is None
        assert result.error == "Unknown intent"
        assert result.error_code == "order_not_found"


class TestBaseService:
    def test_logger_is_named_after_the_class(self):
        class ExampleService(BaseService):
            pass

        assert ExampleService.get_logger().name == f"{__name__}.ExampleService"
