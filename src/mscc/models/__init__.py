"""Search data models shared by the host and its connectors."""

from __future__ import annotations

from mscc.models.search import SearchResult

__all__ = ["SearchResult"]
