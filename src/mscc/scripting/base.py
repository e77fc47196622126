"""ScriptedConnectorBase — convenience base class for connector scripts.

Supplies defaults for every optional member of
:class:`~mscc.connectors.base.DataSourceConnector`, so a minimal script
only declares ``id``, ``name``, ``description`` and ``search``.  Also
offers typed configuration lookups and logging helpers that never raise.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING

from mscc.connectors.base import (
    ConnectorParameter,
    DataSourceConnector,
    DetailViewConfiguration,
    DetailViewType,
)
from mscc.models.search import SearchResult

if TYPE_CHECKING:
    from mscc.ui.elements import ViewElement

_TRUE_VALUES = {"true"}
_FALSE_VALUES = {"false"}


class ScriptedConnectorBase(DataSourceConnector):
    """Abstract base for connectors compiled from user scripts."""

    version = "1.0.0"

    @property
    def configuration_parameters(self) -> list[ConnectorParameter]:
        return []

    @property
    def configuration(self) -> dict[str, str]:
        """The configuration captured by :meth:`initialize`."""
        # Subclasses may define __init__ without calling super().
        return self.__dict__.setdefault("_configuration", {})

    # -- contract defaults --------------------------------------------------

    async def initialize(self, configuration: dict[str, str]) -> bool:
        self._configuration = dict(configuration)
        return True

    @abstractmethod
    async def search(self, search_term: str, max_results: int = 100) -> list[SearchResult]:
        ...

    async def test_connection(self) -> bool:
        return True

    def get_detail_view_configuration(self, result: SearchResult) -> DetailViewConfiguration:
        return DetailViewConfiguration(
            view_type=DetailViewType.DEFAULT,
            display_properties=list(result.metadata),
        )

    def create_custom_detail_view(self, result: SearchResult) -> ViewElement | None:
        return None

    async def execute_action(self, result: SearchResult, action_id: str) -> bool:
        return False

    def dispose(self) -> None:
        pass

    # -- helpers ------------------------------------------------------------

    def create_result(self, title: str, description: str, reference: str = "") -> SearchResult:
        """Build a :class:`SearchResult` stamped with this connector's identity."""
        return SearchResult(
            title=title,
            description=description,
            original_reference=reference,
            source_name=self.name,
            connector_id=self.id,
        )

    def get_config(self, key: str, default: str = "") -> str:
        return self.configuration.get(key, default)

    def get_config_int(self, key: str, default: int = 0) -> int:
        """Integer configuration value; *default* if missing or unparsable."""
        try:
            return int(self.get_config(key).strip())
        except ValueError:
            return default

    def get_config_bool(self, key: str, default: bool = False) -> bool:
        """Boolean configuration value (``true``/``false``, any case)."""
        value = self.get_config(key).strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        return default

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger(f"mscc.scripts.{self._log_name()}")

    def log(self, message: str) -> None:
        self.logger.info("[%s] %s", self._log_name(), message)

    def log_error(self, message: str, exc: BaseException | None = None) -> None:
        self.logger.error(
            "[%s] ERROR: %s", self._log_name(), message,
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )

    def _log_name(self) -> str:
        try:
            return str(self.name) or type(self).__name__
        except Exception:
            return type(self).__name__
