"""Connector Registry — live connector instances keyed by connector id.

Built-in connectors are registered at startup; scripted connectors are
hot-registered by :class:`~mscc.scripting.repository.ScriptRepository`
after a successful compile.  Search orchestration reads from here.

Registration is insert-or-replace: a connector reporting an id that is
already present replaces the earlier instance (last compile wins).  There
is deliberately no unregister operation.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from mscc.connectors.base import DataSourceConnector

logger = logging.getLogger(__name__)


class ConnectorRegistry:
    """Thread-safe map from connector id to connector instance.

    A single coarse lock guards every access, so ``register`` is atomic
    from the caller's perspective.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connectors: dict[str, DataSourceConnector] = {}

    def register(self, connector: DataSourceConnector) -> DataSourceConnector | None:
        """Insert or replace *connector* under its own ``id``.

        Returns the instance that was replaced, if any.
        """
        connector_id = connector.id
        with self._lock:
            previous = self._connectors.get(connector_id)
            self._connectors[connector_id] = connector

        if previous is not None and previous is not connector:
            logger.warning(
                "Connector id '%s' re-registered; replacing %s with %s.",
                connector_id, type(previous).__name__, type(connector).__name__,
            )
        else:
            logger.debug("Registered connector: %s (%s)", connector_id, connector.name)
        return previous

    def get(self, connector_id: str) -> DataSourceConnector | None:
        """Look up a connector by id."""
        with self._lock:
            return self._connectors.get(connector_id)

    def ids(self) -> list[str]:
        """Return the ids of all registered connectors."""
        with self._lock:
            return list(self._connectors)

    def connectors(self) -> dict[str, DataSourceConnector]:
        """Return a snapshot copy of the registry."""
        with self._lock:
            return dict(self._connectors)

    def list_schemas(self) -> list[dict[str, Any]]:
        """Return JSON-serialisable schemas for all registered connectors."""
        return [c.to_schema() for c in self.connectors().values()]

    def __contains__(self, connector_id: object) -> bool:
        with self._lock:
            return connector_id in self._connectors

    def __len__(self) -> int:
        with self._lock:
            return len(self._connectors)


# Module-level registry singleton
_registry: ConnectorRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> ConnectorRegistry:
    """Return the process-wide default registry (lazily created)."""
    global _registry  # noqa: PLW0603
    with _registry_lock:
        if _registry is None:
            _registry = ConnectorRegistry()
        return _registry


def reset_registry() -> None:
    """Drop the default registry so the next :func:`get_registry` starts empty."""
    global _registry  # noqa: PLW0603
    with _registry_lock:
        _registry = None
