"""
Tests for the in-process embedded environment.
"""

import asyncio
import sys
import uuid

import pytest

from conftest import FakeFetcher
from corvo_playground.core.config import PlaygroundConfig
from corvo_playground.core.exceptions import EmbeddedEnvironmentError, ExecutionError, ModuleLoadError
from corvo_playground.environment.base import EmbeddedEnvironment
from corvo_playground.environment.local_environment import (
    LocalEnvironment,
    LocalEnvironmentProvider,
    VirtualFileSystem,
)
from corvo_playground.runtime.bootstrap import force_fresh_load
from corvo_playground.runtime.bridge import ExecutionResult
from corvo_playground.runtime.session import Session
from corvo_playground.runtime.state import BootstrapState


def _module_name() -> str:
    return f"corvo_test_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def environment():
    env = LocalEnvironment(allow_package_install=False)
    env.activate()
    yield env
    env.close()


class TestVirtualFileSystem:
    def test_write_and_read(self):
        fs = VirtualFileSystem()
        fs.write_file("./pkg/mod.py", "x = 1")
        assert fs.read_file("pkg/mod.py") == "x = 1"
        assert fs.exists("/pkg/mod.py")
        assert fs.listdir() == ["pkg/mod.py"]

    def test_missing_file(self):
        fs = VirtualFileSystem()
        with pytest.raises(FileNotFoundError):
            fs.read_file("nope.py")

    def test_overwrite_and_remove(self):
        fs = VirtualFileSystem()
        fs.write_file("a.py", "1")
        fs.write_file("a.py", "2")
        assert fs.read_file("a.py") == "2"
        fs.remove("a.py")
        assert not fs.exists("a.py")


class TestRunAsync:
    @pytest.mark.asyncio
    async def test_returns_trailing_expression(self, environment):
        assert await environment.run_async("x = 20\nx + 22") == 42

    @pytest.mark.asyncio
    async def test_statement_only_returns_none(self, environment):
        assert await environment.run_async("y = 3") is None
        assert environment.globals.get("y") == 3

    @pytest.mark.asyncio
    async def test_top_level_await(self, environment):
        code = "import asyncio\nawait asyncio.sleep(0)\nvalue = 5\nawait asyncio.sleep(0, result=value * 2)"
        assert await environment.run_async(code) == 10

    @pytest.mark.asyncio
    async def test_globals_are_shared_with_host(self, environment):
        environment.globals.set("payload", "abc")
        assert await environment.run_async("payload.upper()") == "ABC"
        assert "payload" in environment.globals

    @pytest.mark.asyncio
    async def test_exceptions_propagate(self, environment):
        with pytest.raises(ZeroDivisionError):
            await environment.run_async("1 / 0")

    def test_satisfies_protocol(self, environment):
        assert isinstance(environment, EmbeddedEnvironment)


class TestVirtualImports:
    @pytest.mark.asyncio
    async def test_written_module_is_importable(self, environment):
        name = _module_name()
        environment.write_file(f"{name}.py", "VALUE = 'first'\n")

        await force_fresh_load(environment, name, "loaded")

        assert await environment.run_async("loaded.VALUE") == "first"
        module = sys.modules[environment.private_module_name(name)]
        assert module.__spec__.origin.endswith(f"{name}.py")
        assert name not in sys.modules

    @pytest.mark.asyncio
    async def test_fresh_load_replaces_cached_module(self, environment):
        name = _module_name()
        environment.write_file(f"{name}.py", "VALUE = 'first'\n")
        await force_fresh_load(environment, name, "loaded")

        environment.write_file(f"{name}.py", "VALUE = 'second'\n")
        await force_fresh_load(environment, name, "loaded")

        assert await environment.run_async("loaded.VALUE") == "second"

    @pytest.mark.asyncio
    async def test_module_can_use_dataclasses(self, environment):
        name = _module_name()
        environment.write_file(
            f"{name}.py",
            "from __future__ import annotations\n"
            "from dataclasses import dataclass\n\n"
            "@dataclass\n"
            "class Point:\n"
            "    x: int\n\n"
            "VALUE = Point(3).x\n",
        )

        await force_fresh_load(environment, name, "loaded")

        assert await environment.run_async("loaded.VALUE") == 3

    @pytest.mark.asyncio
    async def test_missing_module(self, environment):
        with pytest.raises(ModuleNotFoundError):
            await force_fresh_load(environment, _module_name(), "loaded")

    @pytest.mark.asyncio
    async def test_invalid_alias_rejected(self, environment):
        with pytest.raises(EmbeddedEnvironmentError):
            await force_fresh_load(environment, _module_name(), "not an identifier")

    @pytest.mark.asyncio
    async def test_same_module_name_stays_separate(self):
        first = LocalEnvironment(allow_package_install=False)
        second = LocalEnvironment(allow_package_install=False)
        first.activate()
        second.activate()
        name = _module_name()
        try:
            first.write_file(f"{name}.py", "VALUE = 'first'\n")
            second.write_file(f"{name}.py", "VALUE = 'second'\n")

            await asyncio.gather(
                force_fresh_load(first, name, "loaded"),
                force_fresh_load(second, name, "loaded"),
            )

            assert await first.run_async("loaded.VALUE") == "first"
            assert await second.run_async("loaded.VALUE") == "second"
        finally:
            first.close()
            second.close()

    @pytest.mark.asyncio
    async def test_plain_import_sees_only_own_files(self):
        owner = LocalEnvironment(allow_package_install=False)
        other = LocalEnvironment(allow_package_install=False)
        owner.activate()
        other.activate()
        name = _module_name()
        try:
            owner.write_file(f"{name}.py", "VALUE = 7\n")

            with pytest.raises(ModuleNotFoundError):
                await other.run_async(f"import {name}")
            assert await owner.run_async(f"import {name}\n{name}.VALUE") == 7
        finally:
            owner.close()
            other.close()
        assert name not in sys.modules

    @pytest.mark.asyncio
    async def test_close_unloads_virtual_modules(self):
        env = LocalEnvironment(allow_package_install=False)
        env.activate()
        name = _module_name()
        env.write_file(f"{name}.py", "VALUE = 1\n")
        await force_fresh_load(env, name, "loaded")
        private_name = env.private_module_name(name)
        assert private_name in sys.modules

        env.close()

        assert private_name not in sys.modules
        assert env.closed
        assert all(finder is not env._finder for finder in sys.meta_path)


class TestBlockingCode:
    @pytest.mark.asyncio
    async def test_synchronous_code_does_not_block_the_loop(self, environment):
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(environment.run_async("import time\ntime.sleep(0.3)"), 0.05)

    @pytest.mark.asyncio
    async def test_blocking_import_can_time_out(self, environment):
        name = _module_name()
        environment.write_file(f"{name}.py", "import time\ntime.sleep(0.3)\n")

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(force_fresh_load(environment, name, "loaded"), 0.05)

        assert environment.private_module_name(name) not in sys.modules


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_installed_package_is_skipped(self, environment):
        await environment.install_package("pytest")

    @pytest.mark.asyncio
    async def test_missing_package_with_install_disabled(self, environment):
        with pytest.raises(EmbeddedEnvironmentError, match="installation is disabled"):
            await environment.install_package(f"corvo-not-a-real-package-{uuid.uuid4().hex}")

    @pytest.mark.asyncio
    async def test_closed_environment_rejects_calls(self):
        env = LocalEnvironment()
        env.activate()
        env.close()
        env.close()

        with pytest.raises(EmbeddedEnvironmentError):
            await env.run_async("1")
        with pytest.raises(EmbeddedEnvironmentError):
            env.write_file("a.py", "")
        with pytest.raises(EmbeddedEnvironmentError):
            env.activate()

    @pytest.mark.asyncio
    async def test_provider_returns_active_environment(self):
        provider = LocalEnvironmentProvider(allow_package_install=False)
        env = await provider.acquire()
        try:
            assert env._finder in sys.meta_path
        finally:
            env.close()

    def test_health_check(self):
        healthy, detail = LocalEnvironmentProvider.check_health()
        assert healthy is True
        assert "in-process" in detail


@pytest.mark.asyncio
async def test_end_to_end_session():
    config = PlaygroundConfig()
    config.environment.packages = ["pytest"]
    config.environment.module_name = _module_name()
    session = Session(
        config,
        provider=LocalEnvironmentProvider(allow_package_install=False),
        fetcher=FakeFetcher(),
    )
    try:
        handle = await session.ready()
        assert session.state is BootstrapState.READY
        assert handle.runtime_id == "corvo-test 1.0"

        result = await session.run("# greeting\ndisplay 1\n\n   # aside\ndisplay 2\n")

        assert result == ExecutionResult(
            primary_output="display 1\ndisplay 2",
            diagnostic_trace="2 statements",
        )
    finally:
        session.close()


def _runtime_source(runtime_id: str, run_body: str = "return source.strip(), ''") -> str:
    return (
        "import time\n\n"
        f"RUNTIME_ID = {runtime_id!r}\n\n\n"
        "def run_corvo(source):\n"
        f"    {run_body}\n"
    )


def _local_session(source: str, config: PlaygroundConfig | None = None) -> Session:
    config = config or PlaygroundConfig()
    config.environment.packages = []
    return Session(
        config,
        provider=LocalEnvironmentProvider(allow_package_install=False),
        fetcher=FakeFetcher(source),
    )


@pytest.mark.asyncio
async def test_concurrent_sessions_load_their_own_runtime():
    first = _local_session(_runtime_source("A", "return 'from A', ''"))
    second = _local_session(_runtime_source("B", "return 'from B', ''"))
    try:
        handle_a, handle_b = await asyncio.gather(first.ready(), second.ready())

        assert handle_a.runtime_id == "A"
        assert handle_b.runtime_id == "B"
        assert (await first.run("x")).primary_output == "from A"
        assert (await second.run("x")).primary_output == "from B"
    finally:
        first.close()
        second.close()


@pytest.mark.asyncio
async def test_blocking_entry_point_hits_run_timeout():
    config = PlaygroundConfig()
    config.timeouts.run_seconds = 0.1
    session = _local_session(
        _runtime_source("slow", "time.sleep(0.5)\n    return 'late', ''"), config
    )
    try:
        await session.ready()

        result = await session.run("display 1")

        assert isinstance(result, ExecutionError)
        assert "0.1s" in str(result)
        assert not session.busy
    finally:
        session.close()


@pytest.mark.asyncio
async def test_blocking_module_import_hits_load_timeout():
    config = PlaygroundConfig()
    config.timeouts.load_seconds = 0.1
    source = "import time\ntime.sleep(0.5)\n" + _runtime_source("never")
    session = _local_session(source, config)

    outcome = await session.ready()

    assert isinstance(outcome, ModuleLoadError)
    assert "timed out after 0.1s" in str(outcome)
    assert session.state is BootstrapState.FAILED
