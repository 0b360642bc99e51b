"""Tests for core data models."""

import pytest
from pydantic import ValidationError

from pagetap import __version__
from pagetap.core.models import (
    BrowserName,
    ElementOp,
    ElementQuery,
    Job,
    JobKind,
    PageLoad,
    SessionConfig,
)


def test_version() -> None:
    assert __version__ == "0.1.0"


class TestEnums:
    def test_job_kind(self) -> None:
        assert JobKind.SYNC == "sync"
        assert JobKind.ASYNC == "async"

    def test_element_ops_are_closed(self) -> None:
        assert {op.value for op in ElementOp} == {"text", "val", "click"}

    def test_browsers(self) -> None:
        assert {b.value for b in BrowserName} == {"chromium", "firefox", "webkit"}


class TestJob:
    def test_fields(self) -> None:
        job = Job(kind=JobKind.SYNC, label="diag", action=lambda: None)
        assert job.label == "diag"
        assert callable(job.action)

    def test_frozen(self) -> None:
        job = Job(kind=JobKind.SYNC, label="diag", action=lambda: None)
        with pytest.raises(ValidationError):
            job.label = "other"  # type: ignore[misc]

    def test_action_must_be_callable(self) -> None:
        with pytest.raises(ValidationError):
            Job(kind=JobKind.ASYNC, label="open", action="not callable")  # type: ignore[arg-type]

    def test_label_required(self) -> None:
        with pytest.raises(ValidationError):
            Job(kind=JobKind.SYNC, label="", action=lambda: None)


class TestElementQuery:
    def test_empty_selector_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ElementQuery(selector="", op=ElementOp.TEXT)

    def test_unknown_op_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ElementQuery(selector="a", op="html")  # type: ignore[arg-type]


class TestSessionConfig:
    def test_defaults(self) -> None:
        config = SessionConfig()
        assert (config.width, config.height, config.timeout) == (1024, 768, 10000)

    def test_assignment_is_validated(self) -> None:
        config = SessionConfig()
        with pytest.raises(ValidationError):
            config.timeout = 0

    def test_assignment_coerces(self) -> None:
        config = SessionConfig()
        config.timeout = "30000"  # type: ignore[assignment]
        assert config.timeout == 30000


def test_page_load_defaults() -> None:
    load = PageLoad(url="https://example.com/")
    assert load.ok is True
    assert load.error is None
