"""Connector capability contract and the live connector registry."""

from __future__ import annotations

from mscc.connectors.base import (
    ChartDefinition,
    ConnectorParameter,
    DataSourceConnector,
    DetailViewConfiguration,
    DetailViewType,
    ResultAction,
    TableColumnDefinition,
)
from mscc.connectors.registry import ConnectorRegistry, get_registry

__all__ = [
    "ChartDefinition",
    "ConnectorParameter",
    "ConnectorRegistry",
    "DataSourceConnector",
    "DetailViewConfiguration",
    "DetailViewType",
    "ResultAction",
    "TableColumnDefinition",
    "get_registry",
]
