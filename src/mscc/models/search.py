"""SearchResult — a single hit returned by a connector."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class SearchResult:
    """A single record found in a data source."""

    title: str = ""
    description: str = ""
    source_name: str = ""
    """Display name of the data source that produced the hit."""
    connector_id: str = ""
    original_reference: str = ""
    """Pointer back to the record (file path, URL, message id, ...)."""
    metadata: dict[str, Any] = field(default_factory=dict)
    relevance_score: int = 0
    """0–100, higher is more relevant."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    found_at: datetime = field(default_factory=datetime.now)
