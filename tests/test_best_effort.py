"""Tests for best-effort execution."""

import logging

import pytest

from brainstem.core.best_effort import best_effort


async def _ok():
    return 42


async def _fail():
    raise ConnectionError("cache unreachable")


@pytest.mark.asyncio
async def test_returns_result():
    assert await best_effort("ok", _ok()) == 42


@pytest.mark.asyncio
async def test_failure_returns_default(caplog):
    with caplog.at_level(logging.WARNING, logger="brainstem"):
        assert await best_effort("Cache SET", _fail(), False) is False

    assert "Cache SET failed: cache unreachable" in caplog.text


@pytest.mark.asyncio
async def test_failure_default_is_none():
    assert await best_effort("Cache GET", _fail()) is None
