"""DataSourceConnector — the capability contract every connector implements.

Built-in and scripted connectors alike declare their identity and
configuration parameters, answer searches, and describe how their results
are shown and acted upon.  The registry keys connectors by ``id``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mscc.models.search import SearchResult
    from mscc.ui.elements import ViewElement

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration and detail-view descriptions
# ---------------------------------------------------------------------------


@dataclass
class ConnectorParameter:
    """A configuration value a connector asks the user for."""

    name: str = ""
    display_name: str = ""
    description: str = ""
    parameter_type: str = "string"
    """One of ``string``, ``int``, ``bool``, ``path``, ``password``."""
    is_required: bool = False
    default_value: str | None = None


class DetailViewType(str, Enum):
    """How the detail pane renders a search result."""

    DEFAULT = "default"
    TABLE = "table"
    CHART = "chart"
    GRAPH = "graph"
    MEDIA = "media"
    DOCUMENT = "document"
    CUSTOM = "custom"
    """Rendered from :meth:`DataSourceConnector.create_custom_detail_view`."""


@dataclass
class TableColumnDefinition:
    property_name: str = ""
    header: str = ""
    width: str = "Auto"
    format: str | None = None


@dataclass
class ChartDefinition:
    chart_type: str = "Bar"
    category_property: str = ""
    value_property: str = ""
    title: str | None = None


@dataclass
class ResultAction:
    """An action the user can trigger on a search result."""

    id: str = ""
    name: str = ""
    icon: str | None = None
    description: str | None = None


@dataclass
class DetailViewConfiguration:
    """Detail pane layout for one search result."""

    view_type: DetailViewType = DetailViewType.DEFAULT
    display_properties: list[str] = field(default_factory=list)
    """Metadata keys shown in the detail pane, in order."""
    table_columns: list[TableColumnDefinition] = field(default_factory=list)
    chart_config: ChartDefinition | None = None
    media_path_property: str | None = None
    actions: list[ResultAction] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Capability contract
# ---------------------------------------------------------------------------


class DataSourceConnector(ABC):
    """Abstract capability contract for data-source connectors.

    Identity members may be overridden by plain class attributes::

        class MyConnector(ScriptedConnectorBase):
            id = "my-connector"
            name = "My Connector"
            description = "Searches something."
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique connector id, used as the registry key."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Connector version string."""

    @property
    @abstractmethod
    def configuration_parameters(self) -> list[ConnectorParameter]:
        """Configuration values this connector needs."""

    @abstractmethod
    async def initialize(self, configuration: dict[str, str]) -> bool:
        """Initialise the connector with user configuration.

        Returns
        -------
        bool
            ``True`` if the connector is ready to search.
        """

    @abstractmethod
    async def search(self, search_term: str, max_results: int = 100) -> list[SearchResult]:
        """Search the data source.

        Parameters
        ----------
        search_term:
            Free-text query.
        max_results:
            Upper bound on the number of results returned.

        Cancellation is cooperative through asyncio: cancelling the awaiting
        task raises :class:`asyncio.CancelledError` at the next ``await``.
        """

    @abstractmethod
    async def test_connection(self) -> bool:
        """Check that the data source is reachable."""

    @abstractmethod
    def get_detail_view_configuration(self, result: SearchResult) -> DetailViewConfiguration:
        """Describe the detail pane for *result*."""

    @abstractmethod
    def create_custom_detail_view(self, result: SearchResult) -> ViewElement | None:
        """Build a custom view for *result*.

        Only consulted when the detail view type is ``CUSTOM``.  ``None``
        falls back to the default view.
        """

    @abstractmethod
    async def execute_action(self, result: SearchResult, action_id: str) -> bool:
        """Run the action *action_id* on *result*; ``True`` on success."""

    @abstractmethod
    def dispose(self) -> None:
        """Release resources held by the connector."""

    def to_schema(self) -> dict[str, Any]:
        """Return a JSON-serialisable description of the connector."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "parameters": [p.name for p in self.configuration_parameters],
        }
