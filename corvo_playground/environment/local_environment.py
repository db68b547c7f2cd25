"""
In-process embedded environment.

``LocalEnvironment`` runs host code in an isolated namespace of the current
interpreter. Files written with ``write_file`` live in a virtual file
namespace, so the interpreter module never touches the real filesystem.

Several environments can live in one process. ``fresh_import`` registers the
interpreter module under a name private to its environment, and the
meta-path finder only resolves files while its own environment is running
code. Synchronous code runs in a worker thread so callers' timeouts can
expire; a call abandoned that way keeps running in its thread and its result
is dropped.
"""

from __future__ import annotations

import ast
import asyncio
import builtins
import contextvars
import importlib
import importlib.abc
import importlib.machinery
import importlib.metadata
import importlib.util
import inspect
import re
import sys
import uuid
from types import ModuleType
from typing import Any

from ..core.exceptions import EmbeddedEnvironmentError
from ..core.logging import get_logger
from .base import EnvironmentGlobals

logger = get_logger(__name__)

VIRTUAL_ROOT = "/corvo-virtual"
_HOST_FILENAME = "<corvo-host>"
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")

# File namespace of the environment whose code is running in this context.
_ACTIVE_FS: contextvars.ContextVar[VirtualFileSystem | None] = contextvars.ContextVar(
    "corvo_active_fs", default=None
)


def module_path(module_name: str) -> str:
    return module_name.replace(".", "/") + ".py"


class VirtualFileSystem:
    """Flat in-memory file namespace keyed by relative path."""

    def __init__(self) -> None:
        self._files: dict[str, str] = {}

    def write_file(self, path: str, text: str) -> None:
        self._files[self._normalize(path)] = text

    def read_file(self, path: str) -> str:
        try:
            return self._files[self._normalize(path)]
        except KeyError:
            raise FileNotFoundError(self.origin(path)) from None

    def exists(self, path: str) -> bool:
        return self._normalize(path) in self._files

    def remove(self, path: str) -> None:
        self._files.pop(self._normalize(path), None)

    def listdir(self) -> list[str]:
        return sorted(self._files)

    def origin(self, path: str) -> str:
        return f"{VIRTUAL_ROOT}/{self._normalize(path)}"

    @staticmethod
    def _normalize(path: str) -> str:
        normalized = path.replace("\\", "/")
        while normalized.startswith("./"):
            normalized = normalized[2:]
        return normalized.lstrip("/")


class _VirtualModuleLoader(importlib.abc.Loader):
    def __init__(self, fs: VirtualFileSystem, path: str) -> None:
        self.fs = fs
        self.path = path

    def create_module(self, spec: importlib.machinery.ModuleSpec) -> ModuleType | None:
        return None

    def exec_module(self, module: ModuleType) -> None:
        source = self.fs.read_file(self.path)
        code = compile(source, self.fs.origin(self.path), "exec")
        exec(code, module.__dict__)

    def get_source(self, fullname: str) -> str:
        return self.fs.read_file(self.path)


class VirtualModuleFinder(importlib.abc.MetaPathFinder):
    """
    Resolves imports against a ``VirtualFileSystem``.

    Only answers while code of the owning environment is running, so one
    environment never imports another's files.
    """

    def __init__(self, fs: VirtualFileSystem) -> None:
        self.fs = fs
        self.loaded: set[str] = set()

    def find_spec(self, fullname, path=None, target=None):
        if _ACTIVE_FS.get() is not self.fs:
            return None
        relative = fullname.replace(".", "/")
        for candidate, is_package in (
            (f"{relative}.py", False),
            (f"{relative}/__init__.py", True),
        ):
            if not self.fs.exists(candidate):
                continue
            spec = importlib.machinery.ModuleSpec(
                fullname,
                _VirtualModuleLoader(self.fs, candidate),
                origin=self.fs.origin(candidate),
                is_package=is_package,
            )
            spec.has_location = True
            self.loaded.add(fullname)
            return spec
        return None


def _distribution_name(requirement: str) -> str:
    match = _REQUIREMENT_NAME.match(requirement)
    return match.group(1) if match else requirement.strip()


def _is_installed(requirement: str) -> bool:
    try:
        importlib.metadata.distribution(_distribution_name(requirement))
    except importlib.metadata.PackageNotFoundError:
        return False
    return True


class LocalEnvironment:
    """
    Embedded environment backed by the current Python process.

    Host code runs in a private globals namespace; ``run_async`` accepts
    top-level ``await`` and returns the value of a trailing expression.
    """

    name = "local"

    def __init__(
        self,
        *,
        allow_package_install: bool = True,
        pip_extra_args: list[str] | None = None,
        python_executable: str | None = None,
    ) -> None:
        self._fs = VirtualFileSystem()
        self._finder = VirtualModuleFinder(self._fs)
        self._prefix = f"_corvo_env_{uuid.uuid4().hex[:12]}"
        self._private_modules: set[str] = set()
        self._globals = EnvironmentGlobals({"__name__": "__main__", "__builtins__": builtins})
        self._allow_package_install = allow_package_install
        self._pip_extra_args = list(pip_extra_args or [])
        self._python = python_executable or sys.executable
        self._active = False
        self._closed = False

    # ── Lifecycle ─────────────────────────────────────────────────────

    def activate(self) -> None:
        """Make the virtual file namespace importable."""
        self._ensure_open()
        if not self._active:
            sys.meta_path.insert(0, self._finder)
            self._active = True

    def close(self) -> None:
        """Detach the finder and unload every module it served."""
        if self._closed:
            return
        if self._finder in sys.meta_path:
            sys.meta_path.remove(self._finder)
        for module_name in self._finder.loaded:
            module = sys.modules.get(module_name)
            loader = getattr(getattr(module, "__spec__", None), "loader", None)
            if isinstance(loader, _VirtualModuleLoader) and loader.fs is self._fs:
                del sys.modules[module_name]
        for module_name in self._private_modules:
            sys.modules.pop(module_name, None)
        self._private_modules.clear()
        self._finder.loaded.clear()
        self._globals.namespace.clear()
        self._active = False
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Environment contract ──────────────────────────────────────────

    @property
    def globals(self) -> EnvironmentGlobals:
        return self._globals

    @property
    def fs(self) -> VirtualFileSystem:
        return self._fs

    async def install_package(self, package: str) -> None:
        self._ensure_open()
        if _is_installed(package):
            logger.debug("Package %s already available", package)
            return
        if not self._allow_package_install:
            raise EmbeddedEnvironmentError(
                f"Package '{package}' is not installed and package installation is disabled"
            )

        logger.info("Installing %s with pip", package)
        proc = await asyncio.create_subprocess_exec(
            self._python,
            "-m",
            "pip",
            "install",
            *self._pip_extra_args,
            package,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[-500:]
            raise EmbeddedEnvironmentError(f"pip exited with code {proc.returncode}: {detail}")
        importlib.invalidate_caches()

    def write_file(self, path: str, text: str) -> None:
        self._ensure_open()
        self._fs.write_file(path, text)

    async def run_async(self, code: str) -> Any:
        self._ensure_open()
        namespace = self._globals.namespace
        tree = ast.parse(code, filename=_HOST_FILENAME, mode="exec")

        tail: ast.Expression | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            tail = ast.Expression(body=tree.body.pop().value)

        token = _ACTIVE_FS.set(self._fs)
        try:
            await self._evaluate(
                compile(tree, _HOST_FILENAME, "exec", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT),
                namespace,
            )
            if tail is None:
                return None
            return await self._evaluate(
                compile(tail, _HOST_FILENAME, "eval", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT),
                namespace,
            )
        finally:
            _ACTIVE_FS.reset(token)

    def private_module_name(self, module_name: str) -> str:
        """Name under which ``fresh_import`` registers *module_name*."""
        return f"{self._prefix}.{module_name}"

    async def fresh_import(self, module_name: str, alias: str) -> ModuleType:
        """
        Execute the virtual file for *module_name* as a new module.

        The module is built from this environment's own file namespace,
        replaces any earlier copy, and is bound to the global *alias*.
        """
        self._ensure_open()
        path = module_path(module_name)
        if not self._fs.exists(path):
            raise ModuleNotFoundError(
                f"No module named {module_name!r} in the virtual file namespace"
            )

        qualified = self.private_module_name(module_name)
        loader = _VirtualModuleLoader(self._fs, path)
        spec = importlib.util.spec_from_loader(qualified, loader, origin=self._fs.origin(path))
        spec.has_location = True
        module = importlib.util.module_from_spec(spec)

        sys.modules[qualified] = module
        self._private_modules.add(qualified)
        token = _ACTIVE_FS.set(self._fs)
        try:
            await asyncio.to_thread(loader.exec_module, module)
        except BaseException:
            sys.modules.pop(qualified, None)
            raise
        finally:
            _ACTIVE_FS.reset(token)

        self._globals.set(alias, module)
        logger.debug("Loaded %s from %s", module_name, spec.origin)
        return module

    # ── Internal helpers ──────────────────────────────────────────────

    @staticmethod
    async def _evaluate(code: Any, namespace: dict[str, Any]) -> Any:
        if code.co_flags & inspect.CO_COROUTINE:
            return await eval(code, namespace)
        return await asyncio.to_thread(eval, code, namespace)

    def _ensure_open(self) -> None:
        if self._closed:
            raise EmbeddedEnvironmentError("Environment has been closed")


class LocalEnvironmentProvider:
    """Creates ``LocalEnvironment`` instances."""

    name = "local"

    def __init__(
        self,
        *,
        allow_package_install: bool = True,
        pip_extra_args: list[str] | None = None,
    ) -> None:
        self.allow_package_install = allow_package_install
        self.pip_extra_args = list(pip_extra_args or [])

    async def acquire(self) -> LocalEnvironment:
        environment = LocalEnvironment(
            allow_package_install=self.allow_package_install,
            pip_extra_args=self.pip_extra_args,
        )
        environment.activate()
        logger.info("Acquired local embedded environment")
        return environment

    @staticmethod
    def check_health() -> tuple[bool, str]:
        """Return (healthy, detail) for local environment availability."""
        if importlib.util.find_spec("pip") is None:
            return True, "in-process environment available (pip missing: installs disabled)"
        return True, "in-process environment available"
