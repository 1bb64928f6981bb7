"""
Tests for write-path validation and the cascade plan runner.
"""
import uuid

import pytest

from vidshare.web.app.errors import FatalError, ForbiddenError, ValidationError
from vidshare.web.app.models import Video
from vidshare.web.app.services.mutation_guard import (
    CascadePlan, check_length, check_password, clean_content, ensure_not_self, ensure_owner,
    normalize_email, parse_id, require_fields,
)


class TestFieldValidation:
    """Field-level checks fail before any store access."""

    def test_parse_id(self):
        value = uuid.uuid4()
        assert parse_id(str(value)) == value
        assert parse_id(value) is value

    def test_parse_id_rejects_garbage(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_id("not-an-id", "video ID")
        assert exc_info.value.message == "Invalid video ID"

    def test_require_fields_single(self):
        with pytest.raises(ValidationError) as exc_info:
            require_fields(name="   ")
        assert exc_info.value.message == "name is required"

    def test_require_fields_many(self):
        with pytest.raises(ValidationError) as exc_info:
            require_fields(username="bob", email=None, password="")
        assert exc_info.value.message == "All fields are required"
        assert {error["field"] for error in exc_info.value.errors} == {"email", "password"}

    def test_email_format(self):
        assert normalize_email("Bob@Example.com") == "bob@example.com"
        with pytest.raises(ValidationError):
            normalize_email("not-an-email")

    def test_length_follows_column(self):
        column = Video.__table__.c.title

        assert check_length("x" * 200, column, "Title") == "x" * 200
        with pytest.raises(ValidationError) as exc_info:
            check_length("x" * 201, column, "Title")
        assert exc_info.value.message == "Title must be at most 200 characters"
        assert exc_info.value.errors == [{"field": "title", "message": "too long"}]

    def test_password_length(self):
        check_password("123456")
        with pytest.raises(ValidationError):
            check_password("12345")

    def test_content_is_trimmed_and_bounded(self):
        assert clean_content("  hello  ") == "hello"
        assert clean_content("x" * 500) == "x" * 500
        with pytest.raises(ValidationError):
            clean_content("x" * 501)
        with pytest.raises(ValidationError):
            clean_content("   ")

    def test_ownership(self):
        owner = uuid.uuid4()
        ensure_owner(owner, owner, "update this tweet")
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_owner(owner, uuid.uuid4(), "update this tweet")
        assert exc_info.value.message == "You are not authorized to update this tweet"

    def test_self_subscription(self):
        user_id = uuid.uuid4()
        with pytest.raises(ValidationError):
            ensure_not_self(user_id, user_id)


class TestCascadePlan:
    """Ordered clean-up steps with reconciliation detail on failure."""

    async def test_runs_steps_in_order(self, db_session):
        ran = []

        async def step(name):
            ran.append(name)

        plan = CascadePlan(db_session, "video", uuid.uuid4())
        plan.add("first", lambda: step("first")).add("second", lambda: step("second"))

        completed = await plan.run()

        assert completed == ["first", "second"]
        assert ran == ["first", "second"]

    async def test_failure_reports_completed_failed_and_pending(self, db_session):
        subject_id = uuid.uuid4()

        async def ok():
            return None

        async def boom():
            raise RuntimeError("store down")

        plan = CascadePlan(db_session, "video", subject_id)
        plan.add("likes", ok).add("comments", boom).add("media assets", ok)

        with pytest.raises(FatalError) as exc_info:
            await plan.run()

        error = exc_info.value
        assert error.status_code == 500
        assert error.errors == [{
            "subject": "video",
            "subjectId": str(subject_id),
            "completed": ["likes"],
            "failed": "comments",
            "pending": ["media assets"],
        }]
