"""Tests for the dispatch error taxonomy."""

from __future__ import annotations

import pytest

from gridmind.errors import (
    ConflictError,
    DispatchError,
    ExecutionError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("cls", "status", "retryable"),
    [
        (ValidationError, 400, False),
        (NotFoundError, 404, False),
        (ConflictError, 409, False),
        (UnavailableError, 503, True),
        (ExecutionError, 500, False),
    ],
)
def test_status_and_retryable_defaults(cls, status, retryable):
    err = cls("boom")
    assert isinstance(err, DispatchError)
    assert err.status_code == status
    assert err.retryable is retryable


def test_retryable_can_be_overridden_per_instance():
    err = ExecutionError("rate limited", retryable=True)
    assert err.retryable is True
    assert ExecutionError("other").retryable is False


def test_to_dict_without_details():
    assert NotFoundError("Task x not found").to_dict() == {
        "error": "Task x not found",
        "type": "NotFoundError",
        "retryable": False,
    }


def test_to_dict_with_details():
    body = ValidationError("Bad params", problems=["data: too short"]).to_dict()
    assert body["type"] == "ValidationError"
    assert body["details"] == {"problems": ["data: too short"]}


def test_message_is_the_exception_text():
    assert str(ConflictError("already running")) == "already running"
