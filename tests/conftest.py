"""Shared test fixtures for MSCC.

Provides a fresh scripting service, an isolated registry and a repository
rooted in ``tmp_path`` so individual test modules stay focused.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mscc.connectors.registry import ConnectorRegistry, reset_registry
from mscc.scripting import ConnectorScript, ScriptingService, ScriptMetadata, ScriptRepository

# ---------------------------------------------------------------------------
# Script sources
# ---------------------------------------------------------------------------

ECHO_CONNECTOR = '''\
from mscc.models import SearchResult
from mscc.scripting.base import ScriptedConnectorBase


class EchoConnector(ScriptedConnectorBase):
    id = "echo"
    name = "Echo"
    description = "Returns the search term."

    async def search(self, search_term: str, max_results: int = 100) -> list[SearchResult]:
        return [self.create_result(search_term, "echo", reference="echo://1")][:max_results]
'''


def connector_source(connector_id: str, class_name: str = "ScriptConnector") -> str:
    """Source of a minimal valid connector with the given id."""
    return ECHO_CONNECTOR.replace('id = "echo"', f'id = "{connector_id}"').replace(
        "EchoConnector", class_name,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_default_registry():
    """Keep the process-wide registry from leaking between tests."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture()
def service() -> ScriptingService:
    return ScriptingService()


@pytest.fixture()
def registry() -> ConnectorRegistry:
    return ConnectorRegistry()


@pytest.fixture()
def scripts_dir(tmp_path: Path) -> Path:
    return tmp_path / "scripts"


@pytest.fixture()
def repository(
    service: ScriptingService, scripts_dir: Path, registry: ConnectorRegistry,
) -> ScriptRepository:
    return ScriptRepository(service, scripts_dir=scripts_dir, registry=registry)


@pytest.fixture()
def echo_source() -> str:
    return ECHO_CONNECTOR


@pytest.fixture()
def make_script() -> Callable[..., ConnectorScript]:
    """Factory for unsaved scripts."""

    def _make(source: str = ECHO_CONNECTOR, name: str = "Test script") -> ConnectorScript:
        return ConnectorScript(metadata=ScriptMetadata(name=name), source_code=source)

    return _make


@pytest.fixture()
def make_connector_source() -> Callable[..., str]:
    return connector_source
