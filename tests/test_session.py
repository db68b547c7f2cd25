"""
Tests for session lifecycle.
"""

import asyncio

import pytest

from conftest import FakeFetcher, scripted_environment
from corvo_playground.core.exceptions import EnvironmentAcquisitionError, RuntimeNotReadyError
from corvo_playground.environment.mock_environment import MockEnvironmentProvider
from corvo_playground.runtime.bridge import ExecutionResult
from corvo_playground.runtime.session import Session
from corvo_playground.runtime.state import BootstrapState


def _session(**provider_kwargs) -> Session:
    provider = MockEnvironmentProvider(scripted_environment(), **provider_kwargs)
    return Session(provider=provider, fetcher=FakeFetcher())


@pytest.mark.asyncio
async def test_run_waits_for_bootstrap():
    session = _session(delay=0.02)
    assert session.state is BootstrapState.UNINITIALIZED

    result = await session.run("display 1")

    assert result == ExecutionResult("hello", "trace-1")
    assert session.state is BootstrapState.READY


@pytest.mark.asyncio
async def test_run_after_failed_bootstrap_is_not_ready():
    session = Session(
        provider=MockEnvironmentProvider(failure=RuntimeError("boom")), fetcher=FakeFetcher()
    )

    outcome = await session.ready()
    result = await session.run("display 1")

    assert isinstance(outcome, EnvironmentAcquisitionError)
    assert isinstance(result, RuntimeNotReadyError)
    assert session.state is BootstrapState.FAILED


@pytest.mark.asyncio
async def test_sessions_are_independent():
    first = _session()
    second = Session(
        provider=MockEnvironmentProvider(failure=RuntimeError("boom")), fetcher=FakeFetcher()
    )

    await asyncio.gather(first.ready(), second.ready())

    assert first.state is BootstrapState.READY
    assert second.state is BootstrapState.FAILED
    assert first.diagnostics is not second.diagnostics
    assert first.bridge is not second.bridge


@pytest.mark.asyncio
async def test_cancelling_a_waiter_leaves_bootstrap_running():
    session = _session(delay=0.05)
    session.start()

    waiter = asyncio.ensure_future(session.ready())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    handle = await session.ready()

    assert handle.runtime_id == "corvo-test 1.0"
    assert session.state is BootstrapState.READY


@pytest.mark.asyncio
async def test_context_manager_closes_environment():
    provider = MockEnvironmentProvider(scripted_environment())

    async with Session(provider=provider, fetcher=FakeFetcher()) as session:
        result = await session.run("display 1")
        assert isinstance(result, ExecutionResult)
        assert provider.environment.closed is False

    assert provider.environment.closed is True


def test_close_before_start_is_a_noop():
    session = _session()
    session.close()
    assert session.state is BootstrapState.UNINITIALIZED
