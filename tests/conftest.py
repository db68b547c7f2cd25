"""
Pytest configuration and fixtures for Corvo Playground tests.
"""

import os

import pytest
from hypothesis import Verbosity, settings

from corvo_playground.core.config import PlaygroundConfig, SourceConfig
from corvo_playground.environment.mock_environment import MockEnvironment, MockEnvironmentProvider
from corvo_playground.runtime.fetch import inspect_source

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


RUNTIME_SOURCE = '''"""Tiny stand-in for the published Corvo browser runtime."""

RUNTIME_ID = "corvo-test 1.0"

CORVO_GRAMMAR = r"""
start: statement*
"""


class CorvoInterpreter:
    def run(self, source):
        lines = [line.strip() for line in source.splitlines() if line.strip()]
        return "\\n".join(lines), f"{len(lines)} statements"


def run_corvo(source):
    return CorvoInterpreter().run(source)
'''


class FakeFetcher:
    """Fetcher returning canned source text, or raising a canned error."""

    def __init__(self, text: str = RUNTIME_SOURCE, *, error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, url: str):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return inspect_source(url, self.text, 200, SourceConfig())


def scripted_environment(entry_point=None, runtime_id="corvo-test 1.0", **kwargs) -> MockEnvironment:
    """Mock environment that answers the bootstrap's load and id probes."""

    def default_entry_point(code: str):
        return ("hello", "trace-1")

    return MockEnvironment(
        side_effects={
            r"import_module": lambda code: None,
            r"getattr\(corvo_module": lambda code: runtime_id,
            r"run_corvo\(": entry_point or default_entry_point,
        },
        **kwargs,
    )


@pytest.fixture
def runtime_source() -> str:
    return RUNTIME_SOURCE


@pytest.fixture
def config() -> PlaygroundConfig:
    return PlaygroundConfig()


@pytest.fixture
def mock_environment() -> MockEnvironment:
    return scripted_environment()


@pytest.fixture
def mock_provider(mock_environment: MockEnvironment) -> MockEnvironmentProvider:
    return MockEnvironmentProvider(mock_environment)


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()
