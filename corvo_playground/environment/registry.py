"""
Environment provider registry and health checks.
"""

from dataclasses import dataclass
from typing import Any

from ..core.exceptions import ConfigurationError
from ..core.logging import get_logger
from .base import EnvironmentProvider
from .local_environment import LocalEnvironmentProvider

logger = get_logger(__name__)

SUPPORTED_ENVIRONMENTS = {"local"}


@dataclass(slots=True)
class EnvironmentHealth:
    """Availability information for an environment provider."""

    provider: str
    available: bool
    detail: str


def create_environment_provider(
    provider_name: str, environment_config: Any = None
) -> EnvironmentProvider:
    """Create an environment provider from its configured name."""
    normalized = (provider_name or "local").strip().lower()
    if normalized not in SUPPORTED_ENVIRONMENTS:
        raise ConfigurationError(
            f"Unsupported environment provider '{provider_name}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_ENVIRONMENTS))}"
        )

    logger.debug("Creating environment provider %s", normalized)
    return LocalEnvironmentProvider(
        allow_package_install=bool(getattr(environment_config, "allow_package_install", True)),
    )


def detect_environment_health() -> dict[str, EnvironmentHealth]:
    """Report availability for every supported provider."""
    available, detail = LocalEnvironmentProvider.check_health()
    return {"local": EnvironmentHealth(provider="local", available=available, detail=detail)}
