"""
Runtime bootstrap for the Corvo interpreter.

``RuntimeBootstrap`` takes an embedded environment from nothing to a loaded
interpreter module:

1. acquire the environment
2. install the interpreter's package dependencies
3. fetch the interpreter source (cache defeated)
4. record marker checks and a preview in the diagnostics
5. write the source into the virtual file namespace
6. force a fresh import of the module
7. read the module's self-reported runtime id
8. hand back a ``RuntimeHandle``

Any failure leaves the bootstrap in the terminal ``FAILED`` state with
diagnostics describing the cause; ``initialize()`` never raises.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from ..core.config import PlaygroundConfig
from ..core.debug_logger import DebugLogger
from ..core.exceptions import (
    BootstrapError,
    EmbeddedEnvironmentError,
    EnvironmentAcquisitionError,
    InvalidStateTransition,
    ModuleLoadError,
    PackageInstallError,
    RemoteFetchError,
)
from ..core.logging import get_logger
from ..environment.base import EmbeddedEnvironment, EnvironmentProvider, SupportsFreshImport
from ..environment.registry import create_environment_provider
from .events import PlaygroundEventBus, PlaygroundEventType
from .fetch import RemoteSourceFetcher
from .state import (
    ALLOWED_TRANSITIONS,
    BootstrapDiagnostics,
    BootstrapState,
    RemoteSource,
    RuntimeHandle,
)

logger = get_logger(__name__)

T = TypeVar("T")

_FRESH_LOAD_TEMPLATE = """\
import importlib, sys
if {name!r} in sys.modules:
    del sys.modules[{name!r}]
importlib.invalidate_caches()
{alias} = importlib.import_module({name!r})
"""

_RUNTIME_ID_TEMPLATE = "getattr({alias}, {attr!r}, None)"


class SourceFetcher(Protocol):
    async def fetch(self, url: str) -> RemoteSource: ...


def module_file_name(module_name: str) -> str:
    return module_name.replace(".", "/") + ".py"


async def force_fresh_load(environment: EmbeddedEnvironment, module_name: str, alias: str) -> None:
    """
    Import *module_name* inside *environment*, discarding any cached copy.

    The loaded module is bound to the environment global *alias*. Environments
    sharing the host's import system load through their own ``fresh_import``;
    others run an evict-then-import snippet inside the environment.
    """
    if not alias.isidentifier():
        raise EmbeddedEnvironmentError(f"Module alias {alias!r} is not a valid identifier")
    if isinstance(environment, SupportsFreshImport):
        await environment.fresh_import(module_name, alias)
        return
    await environment.run_async(_FRESH_LOAD_TEMPLATE.format(name=module_name, alias=alias))


class RuntimeBootstrap:
    """
    One-shot bootstrap of an embedded environment and the Corvo interpreter.

    ``initialize()`` is memoized: the first call starts the work and every
    later call returns the same future.
    """

    def __init__(
        self,
        config: PlaygroundConfig | None = None,
        *,
        provider: EnvironmentProvider | None = None,
        fetcher: SourceFetcher | None = None,
        event_bus: PlaygroundEventBus | None = None,
        debug_logger: DebugLogger | None = None,
    ) -> None:
        self.config = config or PlaygroundConfig()
        self._debug = debug_logger or DebugLogger(self.config.debug)
        self._provider = provider or create_environment_provider(
            self.config.environment.provider, self.config.environment
        )
        self._fetcher = fetcher or RemoteSourceFetcher(
            self.config.source,
            timeout=self.config.timeouts.fetch_seconds,
            debug_logger=self._debug,
        )
        self._events = event_bus or PlaygroundEventBus()
        self._state = BootstrapState.UNINITIALIZED
        self._history: list[BootstrapState] = [self._state]
        self._handle: RuntimeHandle | None = None
        self._error: BootstrapError | None = None
        self._environment: EmbeddedEnvironment | None = None
        self._task: asyncio.Future | None = None
        self.diagnostics = BootstrapDiagnostics(url=self.config.source.runtime_url)

    # ── Public surface ────────────────────────────────────────────────

    @property
    def state(self) -> BootstrapState:
        return self._state

    @property
    def state_history(self) -> list[BootstrapState]:
        return list(self._history)

    @property
    def handle(self) -> RuntimeHandle | None:
        return self._handle

    @property
    def error(self) -> BootstrapError | None:
        return self._error

    @property
    def environment(self) -> EmbeddedEnvironment | None:
        return self._environment

    @property
    def events(self) -> PlaygroundEventBus:
        return self._events

    def initialize(self) -> asyncio.Future:
        """Start (once) and return the shared bootstrap future."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._initialize())
        return self._task

    # ── State machine ─────────────────────────────────────────────────

    def _transition(self, new_state: BootstrapState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self._state]:
            raise InvalidStateTransition(self._state, new_state)
        previous = self._state
        self._state = new_state
        self._history.append(new_state)
        logger.debug("Bootstrap state %s -> %s", previous.value, new_state.value)
        self._events.emit(
            PlaygroundEventType.STATE_CHANGED,
            previous=previous.value,
            state=new_state.value,
        )

    async def _initialize(self) -> RuntimeHandle | BootstrapError:
        self._transition(BootstrapState.LOADING)
        try:
            handle = await self._run_steps()
        except asyncio.CancelledError:
            self._fail(BootstrapError("Bootstrap was cancelled"))
            raise
        except BootstrapError as e:
            return self._fail(e)
        except Exception as e:
            return self._fail(BootstrapError(f"Unexpected bootstrap failure: {e}"))

        self._handle = handle
        self._transition(BootstrapState.READY)
        logger.info("Runtime ready: %s", handle.runtime_id)
        return handle

    def _fail(self, error: BootstrapError) -> BootstrapError:
        self._error = error
        self.diagnostics.error = str(error)
        self.diagnostics.error_category = error.category
        if isinstance(error, RemoteFetchError):
            self.diagnostics.url = error.url
            self.diagnostics.http_status = error.status_code
            self.diagnostics.note(
                f"Failed to fetch Corvo browser runtime:\n{error}\nURL: {error.url}"
            )
        else:
            self.diagnostics.note(f"{error.user_message}\n{error}")

        self._debug.log_error(error, "bootstrap")
        logger.error("Bootstrap failed (%s): %s", error.category, error)
        self._release_environment()
        self._transition(BootstrapState.FAILED)
        return error

    def _release_environment(self) -> None:
        if self._environment is None:
            return
        try:
            self._environment.close()
        except Exception:
            logger.warning("Failed to close environment after bootstrap failure", exc_info=True)

    # ── Steps ─────────────────────────────────────────────────────────

    async def _run_steps(self) -> RuntimeHandle:
        env_config = self.config.environment
        timeouts = self.config.timeouts
        url = self.config.source.runtime_url

        environment = await self._step(
            "acquire",
            self._provider.acquire(),
            timeouts.acquire_seconds,
            EnvironmentAcquisitionError,
        )
        self._environment = environment

        for package in env_config.packages:
            await self._step(
                "install",
                environment.install_package(package),
                timeouts.install_seconds,
                lambda detail, package=package: PackageInstallError(package, detail),
                package=package,
            )

        source = await self._step(
            "fetch",
            self._fetcher.fetch(url),
            timeouts.fetch_seconds,
            lambda detail: RemoteFetchError(url, detail=detail),
            url=url,
        )
        self._check_markers(source)

        module_name = env_config.module_name

        def module_error(detail: str) -> ModuleLoadError:
            return ModuleLoadError(module_name, detail)

        await self._step(
            "write_module",
            self._write_module(environment, module_name, source.text),
            timeouts.load_seconds,
            module_error,
        )
        await self._step(
            "load",
            force_fresh_load(environment, module_name, env_config.module_alias),
            timeouts.load_seconds,
            module_error,
            module=module_name,
        )
        reported = await self._step(
            "identify",
            environment.run_async(
                _RUNTIME_ID_TEMPLATE.format(
                    alias=env_config.module_alias, attr=env_config.runtime_id_attr
                )
            ),
            timeouts.load_seconds,
            module_error,
        )

        runtime_id = str(reported) if reported is not None else env_config.fallback_runtime_id
        self.diagnostics.runtime_id = runtime_id
        self.diagnostics.note(self.diagnostics.banner)

        return RuntimeHandle(
            environment=environment,
            module_name=module_name,
            module_alias=env_config.module_alias,
            runtime_id=runtime_id,
        )

    def _check_markers(self, source: RemoteSource) -> None:
        self.diagnostics.record_source(source, self.config.source.preview_chars)
        missing = [name for name, present in source.markers.items() if not present]
        if missing:
            logger.warning(
                "Fetched runtime is missing expected markers: %s", ", ".join(missing)
            )

    @staticmethod
    async def _write_module(environment: EmbeddedEnvironment, module_name: str, text: str) -> None:
        environment.write_file(module_file_name(module_name), text)

    async def _step(
        self,
        step: str,
        awaitable: Awaitable[T],
        timeout: float | None,
        make_error: Callable[[str], BootstrapError],
        **context: Any,
    ) -> T:
        self._events.emit(PlaygroundEventType.STEP_START, step=step, **context)
        with self._debug.timed_operation(f"bootstrap.{step}"):
            try:
                if timeout is None:
                    result = await awaitable
                else:
                    result = await asyncio.wait_for(awaitable, timeout)
            except BootstrapError as e:
                self._events.emit(PlaygroundEventType.STEP_ERROR, step=step, error=str(e), **context)
                raise
            except Exception as e:
                if isinstance(e, asyncio.TimeoutError) and timeout is not None:
                    detail = f"timed out after {timeout:g}s"
                else:
                    detail = str(e) or type(e).__name__
                error = make_error(detail)
                self._events.emit(
                    PlaygroundEventType.STEP_ERROR, step=step, error=str(error), **context
                )
                raise error from e
        self._events.emit(PlaygroundEventType.STEP_END, step=step, **context)
        return result
