"""Dynamic connector scripting: compile, validate, complete and store scripts."""

from __future__ import annotations

from mscc.scripting.models import (
    CompilationError,
    CompilationResult,
    CompiledUnit,
    CompletionItem,
    ConnectorScript,
    DiagnosticKind,
    ScriptMetadata,
    Severity,
)
from mscc.scripting.base import ScriptedConnectorBase
from mscc.scripting.references import ReferenceNotAvailableError, ReferenceSurface
from mscc.scripting.compiler import ScriptingService
from mscc.scripting.repository import ScriptRepository

__all__ = [
    "CompilationError",
    "CompilationResult",
    "CompiledUnit",
    "CompletionItem",
    "ConnectorScript",
    "DiagnosticKind",
    "ReferenceNotAvailableError",
    "ReferenceSurface",
    "ScriptMetadata",
    "ScriptRepository",
    "ScriptedConnectorBase",
    "ScriptingService",
    "Severity",
]
