"""
Tests for the base service layer.

Verifies:
- ServiceResult construction and response rendering
- BaseService.atomic() commits, rolls back and closes its scope
- TransactionScope guards writes and defers on_commit callbacks
"""

import pytest

from chat.models import ChatUser
from core.services import BaseService, ServiceResult, TransactionScope, TransactionScopeError


class TestServiceResult:
    def test_acknowledgment_response(self):
        result = ServiceResult.success(None)

        assert result
        assert result.to_response() == {"success": True}

    def test_success_with_data(self):
        assert ServiceResult.success({"id": 1}).to_response() == {
            "success": True,
            "data": {"id": 1},
        }

    def test_failure_response(self):
        result = ServiceResult.failure(
            "Invalid", error_code="VALIDATION_ERROR", errors={"title": ["Required"]}
        )

        assert not result
        assert result.to_response() == {
            "success": False,
            "error": "Invalid",
            "error_code": "VALIDATION_ERROR",
            "errors": {"title": ["Required"]},
        }


@pytest.mark.django_db
class TestAtomic:
    def test_scope_is_active_inside_block(self):
        with BaseService.atomic() as scope:
            assert isinstance(scope, TransactionScope)
            assert scope.is_active
            scope.require_active()

    def test_scope_is_closed_after_block(self):
        with BaseService.atomic() as scope:
            pass

        assert scope.is_active is False
        with pytest.raises(TransactionScopeError):
            scope.require_active()

    def test_scope_is_closed_after_error(self):
        with pytest.raises(ValueError):
            with BaseService.atomic() as scope:
                raise ValueError("boom")

        assert scope.is_active is False

    def test_rollback_discards_writes(self):
        with pytest.raises(ValueError):
            with BaseService.atomic():
                ChatUser.objects.create(user_id="u-1", name="Temp")
                raise ValueError("boom")

        assert not ChatUser.objects.filter(pk="u-1").exists()

    def test_on_commit_runs_after_commit(self, django_capture_on_commit_callbacks):
        calls = []

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with BaseService.atomic() as scope:
                scope.on_commit(lambda: calls.append("sent"))
                assert calls == []

        assert len(callbacks) == 1
        assert calls == ["sent"]

    def test_on_commit_discarded_on_rollback(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(ValueError):
                with BaseService.atomic() as scope:
                    scope.on_commit(lambda: None)
                    raise ValueError("boom")

        assert callbacks == []


def test_logger_named_after_service():
    class RoomService(BaseService):
        pass

    assert RoomService.get_logger().name.endswith(".RoomService")
