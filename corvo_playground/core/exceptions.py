"""
Custom exceptions for Corvo Playground.

Provides specific exception types for better error handling and user feedback.
"""

from __future__ import annotations

from typing import Any


class PlaygroundError(Exception):
    """Base exception for Corvo Playground errors."""


class ConfigurationError(PlaygroundError):
    """Error in configuration."""


class InvalidStateTransition(PlaygroundError):
    """Bootstrap state machine was asked to move along an illegal edge."""

    def __init__(self, current: Any, requested: Any):
        super().__init__(f"Illegal bootstrap transition: {current} -> {requested}")
        self.current = current
        self.requested = requested


class EmbeddedEnvironmentError(PlaygroundError):
    """An embedded environment operation failed."""


class ShareLinkError(PlaygroundError):
    """Share link payload could not be decoded."""

    def __init__(self, message: str):
        super().__init__(f"Invalid share link: {message}")
        self.user_message = "The shared link does not contain a valid program."
        self.recovery_hint = "Ask for a fresh link or paste the program directly."


# Bootstrap Errors


class BootstrapError(PlaygroundError):
    """Base exception for bootstrap failures; also used for unexpected ones."""

    category = "bootstrap"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details or {}
        self.user_message = "The Corvo runtime failed to start."
        self.recovery_hint = "Reload the playground to start a new session."


class EnvironmentAcquisitionError(BootstrapError):
    """Embedded execution environment could not be acquired."""

    category = "environment"

    def __init__(self, detail: str):
        super().__init__(f"Failed to acquire embedded environment: {detail}")
        self.user_message = "The embedded Python environment could not be loaded."


class PackageInstallError(BootstrapError):
    """Required package could not be installed into the environment."""

    category = "package"

    def __init__(self, package: str, detail: str):
        super().__init__(f"Failed to install package '{package}': {detail}")
        self.package = package
        self.user_message = f"Could not install required package '{package}'."
        self.recovery_hint = "Check your network connection, then reload the playground."


class RemoteFetchError(BootstrapError):
    """Interpreter source could not be fetched."""

    category = "fetch"

    def __init__(self, url: str, *, status_code: int | None = None, detail: str | None = None):
        if status_code is not None:
            message = f"HTTP {status_code} while fetching {_file_name(url)}"
        else:
            message = detail or f"Request for {_file_name(url)} failed"
        super().__init__(message, details={"url": url, "status_code": status_code})
        self.url = url
        self.status_code = status_code
        self.user_message = "Failed to fetch Corvo browser runtime."
        self.recovery_hint = f"Verify that {url} is reachable, then reload the playground."


class ModuleLoadError(BootstrapError):
    """Fetched interpreter source could not be installed or imported."""

    category = "module"

    def __init__(self, module_name: str, detail: str):
        super().__init__(f"Failed to load module '{module_name}': {detail}")
        self.module_name = module_name
        self.user_message = "The Corvo runtime was fetched but could not be loaded."
        self.recovery_hint = "The published runtime may be broken; try again later."


# Execution Errors


class ExecutionError(PlaygroundError):
    """A single run failed. The message is the stringified cause."""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = "Runtime error."
        self.recovery_hint = "Fix the program and run it again."

    @classmethod
    def from_exception(cls, error: BaseException) -> "ExecutionError":
        wrapped = cls(str(error))
        wrapped.__cause__ = error
        return wrapped


class RuntimeNotReadyError(ExecutionError):
    """Run requested while the bootstrap is not ready."""

    def __init__(self, state: Any):
        label = getattr(state, "value", state)
        super().__init__(f"Runtime not ready (state: {label})")
        self.state = state
        self.user_message = "The Corvo runtime is not ready."
        self.recovery_hint = "Wait for loading to finish, or reload if it failed."


def _file_name(url: str) -> str:
    path = url.split("?", 1)[0].rstrip("/")
    return path.rsplit("/", 1)[-1] or url


def format_error_message(error: Exception) -> str:
    """
    Format an error message for display to user.

    Args:
        error: Exception to format

    Returns:
        Formatted error message with recovery hints
    """
    if isinstance(error, PlaygroundError) and hasattr(error, "user_message"):
        message = f"{error.user_message}\n{error}"
        if hasattr(error, "recovery_hint"):
            message += f"\n\n{error.recovery_hint}"
        return message
    return str(error)
