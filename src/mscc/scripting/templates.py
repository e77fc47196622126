"""Connector script template.

:func:`connector_template` produces a complete, compilable connector that
implements every required member of :class:`ScriptedConnectorBase` plus
illustrative detail-view and action overrides.
"""

from __future__ import annotations

import json

FALLBACK_CLASS_PREFIX = "Custom"

_TEMPLATE = '''# Connector script: {display_name}

import asyncio
from datetime import datetime

from mscc.connectors import (
    ConnectorParameter,
    DetailViewConfiguration,
    DetailViewType,
    ResultAction,
)
from mscc.models import SearchResult
from mscc.scripting.base import ScriptedConnectorBase


class {class_prefix}Connector(ScriptedConnectorBase):
    id = "{connector_id}"
    name = {name_literal}
    description = "Description"

    configuration_parameters = [
        ConnectorParameter(
            name="ApiUrl",
            display_name="API URL",
            description="The URL of the API",
            is_required=True,
        ),
    ]

    async def search(self, search_term: str, max_results: int = 100) -> list[SearchResult]:
        results = []

        for i in range(1, min(10, max_results) + 1):
            result = self.create_result(
                title=f"Result {{i}}: {{search_term}}",
                description=f"Description for result {{i}}",
                reference=f"ref-{{i}}",
            )
            result.relevance_score = 100 - i * 5
            result.metadata = {{
                "Author": "Example author",
                "CreatedDate": datetime.now().strftime("%Y-%m-%d"),
                "Category": "Example",
            }}
            results.append(result)

        await asyncio.sleep(0.1)
        return results

    # Detail pane layout for a search result
    def get_detail_view_configuration(self, result: SearchResult) -> DetailViewConfiguration:
        return DetailViewConfiguration(
            view_type=DetailViewType.DEFAULT,
            display_properties=["Author", "CreatedDate", "Category"],
            actions=[
                ResultAction(id="open", name="Open"),
                ResultAction(id="copy", name="Copy reference"),
            ],
        )

    # Runs an action on a search result
    async def execute_action(self, result: SearchResult, action_id: str) -> bool:
        if action_id == "open":
            self.log(f"Opening: {{result.original_reference}}")
            return True
        if action_id == "copy":
            self.log(f"Copied: {{result.original_reference}}")
            return True
        return False
'''


def class_name_fragment(connector_name: str) -> str:
    """Reduce *connector_name* to characters usable in a class name.

    Non-alphanumeric characters are dropped.  An empty result becomes
    ``Custom``; a leading digit gets the ``Custom`` prefix so the class
    name stays a valid identifier.
    """
    fragment = "".join(c for c in connector_name if c.isalnum() and f"_{c}".isidentifier())
    if not fragment:
        return FALLBACK_CLASS_PREFIX
    if fragment[0].isdigit():
        return FALLBACK_CLASS_PREFIX + fragment
    return fragment


def _comment_text(text: str) -> str:
    """Collapse *text* to one printable line for a ``#`` comment."""
    return " ".join("".join(c if c.isprintable() else " " for c in text).split())


def connector_template(connector_name: str, connector_id: str) -> str:
    """Return the source of a new connector named *connector_name*.

    *connector_id* is embedded verbatim as the connector's ``id`` string.
    """
    return _TEMPLATE.format(
        display_name=_comment_text(connector_name) or FALLBACK_CLASS_PREFIX,
        class_prefix=class_name_fragment(connector_name),
        connector_id=connector_id,
        name_literal=json.dumps(connector_name, ensure_ascii=False),
    )
