"""Shared fixtures: fresh deduplication stores and no leaked log context."""

from __future__ import annotations

import pytest
import structlog

from econ_assist.services import dedup_service, economics_tools


@pytest.fixture(autouse=True)
def reset_dedup_state():
    dedup_service.set_dedup_service(None)
    economics_tools._default_client = None
    yield
    dedup_service.set_dedup_service(None)
    economics_tools._default_client = None
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def service() -> dedup_service.DedupService:
    svc = dedup_service.DedupService()
    dedup_service.set_dedup_service(svc)
    return svc
