"""Minimal view element types available to connector scripts.

The presentation layer renders these; connectors only describe them.
"""

from __future__ import annotations

from mscc.ui.elements import Panel, TextBlock, ViewElement

__all__ = ["Panel", "TextBlock", "ViewElement"]
