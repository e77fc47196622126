"""View element descriptions returned by ``create_custom_detail_view``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass
class ViewElement:
    """Base type for every element a connector can hand to the view layer."""

    name: str = ""
    tooltip: str = ""
    properties: dict[str, Any] = field(default_factory=dict)
    """Free-form styling hints (margin, font weight, ...)."""

    @property
    def element_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable description for the renderer."""
        return {
            "type": self.element_type,
            "name": self.name,
            "tooltip": self.tooltip,
            "properties": dict(self.properties),
        }


@dataclass
class TextBlock(ViewElement):
    """A run of read-only text."""

    text: str = ""
    wrap: bool = True

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(text=self.text, wrap=self.wrap)
        return data


@dataclass
class Panel(ViewElement):
    """A container stacking its children vertically or horizontally."""

    orientation: Literal["vertical", "horizontal"] = "vertical"
    children: list[ViewElement] = field(default_factory=list)

    def add(self, child: ViewElement) -> Panel:
        self.children.append(child)
        return self

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            orientation=self.orientation,
            children=[c.to_dict() for c in self.children],
        )
        return data
