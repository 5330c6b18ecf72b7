"""Pytest configuration and fixtures."""

import logging

import pytest


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture(autouse=True)
def _live_debug_logging(caplog):
    """Capture the live channel's debug logs so failures show the lifecycle."""
    caplog.set_level(logging.DEBUG, logger="app.live")
    yield
