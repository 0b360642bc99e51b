"""pagetap data models — Pydantic v2.

This module is a leaf: no internal project imports.
All Enum and Model definitions live here.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================================
# Enums
# ============================================================


class JobKind(StrEnum):
    """How a queued job signals completion."""

    SYNC = "sync"
    ASYNC = "async"


class ElementOp(StrEnum):
    """Supported element operations of the query bridge."""

    TEXT = "text"
    VAL = "val"
    CLICK = "click"


class BrowserName(StrEnum):
    """Playwright browser type."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


# ============================================================
# Queue Models
# ============================================================


class Job(BaseModel):
    """One queued unit of test-script work.

    ``label`` is diagnostic only (timeout messages, logs).
    Sync actions take no arguments; async actions receive a ``done`` callback.
    """

    model_config = ConfigDict(frozen=True)

    kind: JobKind
    label: str = Field(..., min_length=1)
    action: Callable[..., None]


class ElementQuery(BaseModel):
    """Selector + operation handed to the element-query bridge."""

    model_config = ConfigDict(frozen=True)

    selector: str = Field(..., min_length=1)
    op: ElementOp
    args: tuple[Any, ...] = Field(default=())


# ============================================================
# Config Models
# ============================================================


class SessionConfig(BaseModel):
    """Options a test script may change with ``Session.set``."""

    model_config = ConfigDict(validate_assignment=True)

    base_url: str = Field(default="", description="Prefix for every navigated path")
    width: int = Field(default=1024, ge=1, description="Viewport width in pixels")
    height: int = Field(default=768, ge=1, description="Viewport height in pixels")
    timeout: int = Field(default=10000, ge=1, description="Async step timeout in ms")


class DriverConfig(BaseModel):
    """Browser driver configuration."""

    type: str = Field(default="playwright", description="Key in DRIVER_REGISTRY")
    browser: BrowserName = Field(default=BrowserName.CHROMIUM)
    headless: bool = Field(default=True)


class ReportConfig(BaseModel):
    """Report output configuration."""

    format: str = Field(default="tap", description="Key in REPORTER_REGISTRY")


class Config(BaseSettings):
    """Project configuration. Merged from YAML + env var + CLI flag."""

    model_config = SettingsConfigDict(
        env_prefix="PAGETAP_",
        env_nested_delimiter="__",
    )

    session: SessionConfig = Field(default_factory=SessionConfig)
    driver: DriverConfig = Field(default_factory=DriverConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


# ============================================================
# Driver Result Models
# ============================================================


class PageLoad(BaseModel):
    """Outcome of one page load as reported by the driver."""

    url: str
    ok: bool = Field(default=True)
    error: str | None = Field(default=None)
