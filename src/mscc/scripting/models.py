"""Data contracts of the scripting runtime.

``ScriptMetadata`` is a pydantic model because it round-trips through the
camelCase JSON sidecar; everything else is a plain dataclass.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from mscc.connectors.base import DataSourceConnector


# ---------------------------------------------------------------------------
# Scripts
# ---------------------------------------------------------------------------


class ScriptMetadata(BaseModel):
    """Descriptive metadata stored in the ``.meta`` sidecar."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)
    is_enabled: bool = True
    tags: list[str] = Field(default_factory=list)

    def to_json(self) -> str:
        """Serialise as indented camelCase JSON."""
        return self.model_dump_json(by_alias=True, indent=2)


@dataclass
class ConnectorScript:
    """A connector script: metadata plus source text and compile state."""

    metadata: ScriptMetadata = field(default_factory=ScriptMetadata)
    source_code: str = ""
    file_path: Path | None = None
    """``None`` until the script is first saved."""
    is_compiled: bool = False
    compilation_errors: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.metadata.id


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Surfaced diagnostic severities; nothing below WARNING is kept."""

    ERROR = "Error"
    WARNING = "Warning"


class DiagnosticKind(str, Enum):
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    LOAD = "load"
    """The module body raised while being executed."""
    INSTANTIATION = "instantiation"
    """Compiled fine but produced no usable connector instance."""
    INTERNAL = "internal"


@dataclass
class CompilationError:
    """A single compiler error or warning.

    ``line`` and ``column`` are 1-based.  ``0`` means the position is
    unknown; consumers must check before navigating.
    """

    error_id: str = ""
    message: str = ""
    line: int = 0
    column: int = 0
    severity: Severity = Severity.ERROR
    kind: DiagnosticKind = DiagnosticKind.SYNTAX

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        where = f"({self.line},{self.column})" if self.line > 0 else ""
        return f"{self.severity.value} {self.error_id}{where}: {self.message}"


@dataclass
class CompiledUnit:
    """Opaque handle to a compiled and loaded script."""

    unit_name: str
    filename: str
    image: bytes
    """Marshalled code object."""
    module: ModuleType | None = None


@dataclass
class CompilationResult:
    """Outcome of compiling one script."""

    success: bool = False
    errors: list[CompilationError] = field(default_factory=list)
    warnings: list[CompilationError] = field(default_factory=list)
    compiled_unit: CompiledUnit | None = None
    connector_instance: DataSourceConnector | None = None

    def add(self, diagnostic: CompilationError) -> None:
        """File *diagnostic* under errors or warnings by severity."""
        if diagnostic.is_error:
            self.errors.append(diagnostic)
        else:
            self.warnings.append(diagnostic)

    @property
    def is_usable(self) -> bool:
        """``True`` when the script compiled *and* produced a connector."""
        return self.success and self.connector_instance is not None


@dataclass
class CompletionItem:
    """A code-completion suggestion."""

    display_text: str = ""
    insert_text: str = ""
    kind: str = "Unknown"
    description: str | None = None
