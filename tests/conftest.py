"""Shared test fixtures."""

from __future__ import annotations

import pytest

from tests.helpers.fakes import (
    FakeClock,
    FakeImageSource,
    FakeRequestService,
    make_request,
)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Manual clock starting at t=100s."""
    return FakeClock()


@pytest.fixture
def request_service() -> FakeRequestService:
    """Server with three deletable requests (one failed) and two active ones."""
    return FakeRequestService(
        [
            make_request("req-1", "completed"),
            make_request("req-2", "processing"),
            make_request("req-3", "failed"),
            make_request("req-4", "pending"),
            make_request("req-5", "completed"),
        ]
    )


@pytest.fixture
def image_source() -> FakeImageSource:
    return FakeImageSource()
