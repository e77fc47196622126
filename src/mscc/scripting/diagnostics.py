"""Diagnostic translation — raw compiler output to :class:`CompilationError`.

Sources of raw diagnostics:

* ``SyntaxError`` (and subclasses) raised by the parser or the compiler.
  ``lineno`` and ``offset`` are already 1-based.
* AST nodes flagged by the reference checker.  ``col_offset`` is 0-based.
* ``warnings.WarningMessage`` records captured while parsing.
* Exceptions raised while executing a module body, positioned through the
  traceback frame that belongs to the script.

Anything below WARNING severity (deprecation notices and the like) is
dropped.
"""

from __future__ import annotations

import ast
import traceback
import warnings

from mscc.scripting.models import CompilationError, DiagnosticKind, Severity

# Host-assigned diagnostic ids.
INTERNAL_ERROR = "SCRIPT001"
REFERENCE_NOT_AVAILABLE = "SCRIPT002"
RELATIVE_IMPORT = "SCRIPT003"
STAR_IMPORT = "SCRIPT004"
LOAD_FAILED = "SCRIPT005"
NO_CONNECTOR_TYPE = "SCRIPT006"
CONSTRUCTOR_FAILED = "SCRIPT007"
INVALID_CONNECTOR_ID = "SCRIPT008"
PARSE_FAILED = "PARSE001"

_WARNING_SEVERITIES: dict[type[Warning], Severity | None] = {
    SyntaxWarning: Severity.WARNING,
    RuntimeWarning: Severity.WARNING,
    UserWarning: Severity.WARNING,
    # Informational only.
    DeprecationWarning: None,
    PendingDeprecationWarning: None,
    ImportWarning: None,
}


def severity_for_warning(category: type[Warning]) -> Severity | None:
    """Map a warning category to a surfaced severity, or ``None`` to drop it."""
    for base in category.__mro__:
        if base in _WARNING_SEVERITIES:
            return _WARNING_SEVERITIES[base]
    return Severity.WARNING


def from_syntax_error(
    exc: SyntaxError,
    kind: DiagnosticKind = DiagnosticKind.SYNTAX,
) -> CompilationError:
    return CompilationError(
        error_id=type(exc).__name__,
        message=exc.msg or str(exc),
        line=exc.lineno or 1,
        column=exc.offset or 1,
        severity=Severity.ERROR,
        kind=kind,
    )


def from_node(
    node: ast.AST,
    error_id: str,
    message: str,
    *,
    severity: Severity = Severity.ERROR,
    kind: DiagnosticKind = DiagnosticKind.SEMANTIC,
) -> CompilationError:
    lineno = getattr(node, "lineno", 0)
    col_offset = getattr(node, "col_offset", -1)
    return CompilationError(
        error_id=error_id,
        message=message,
        line=lineno,
        column=col_offset + 1,
        severity=severity,
        kind=kind,
    )


def from_warning(record: warnings.WarningMessage) -> CompilationError | None:
    """Translate a captured warning; ``None`` when it is below WARNING."""
    severity = severity_for_warning(record.category)
    if severity is None:
        return None
    return CompilationError(
        error_id=record.category.__name__,
        message=str(record.message),
        line=record.lineno or 0,
        column=1 if record.lineno else 0,
        severity=severity,
        kind=DiagnosticKind.SYNTAX,
    )


def _script_position(exc: BaseException, filename: str) -> tuple[int, int]:
    """(line, column) of the innermost traceback frame executing *filename*.

    A failure raised inside a library therefore points at the script line
    that called into it.  No script frame at all means position 0.
    """
    line = column = 0
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == filename:
            line = frame.lineno or 0
            colno = getattr(frame, "colno", None)
            column = colno + 1 if colno is not None else (1 if line else 0)
    return line, column


def from_load_failure(exc: BaseException, filename: str) -> CompilationError:
    """The module body of a script raised *exc*."""
    line, column = _script_position(exc, filename)
    return CompilationError(
        error_id=LOAD_FAILED,
        message=f"{type(exc).__name__}: {exc}",
        line=line,
        column=column,
        severity=Severity.ERROR,
        kind=DiagnosticKind.LOAD,
    )


def no_connector_type() -> CompilationError:
    return CompilationError(
        error_id=NO_CONNECTOR_TYPE,
        message="The script declares no concrete DataSourceConnector subclass; "
                "nothing will be registered.",
        severity=Severity.WARNING,
        kind=DiagnosticKind.INSTANTIATION,
    )


def constructor_failure(exc: BaseException, filename: str, type_name: str) -> CompilationError:
    line, column = _script_position(exc, filename)
    return CompilationError(
        error_id=CONSTRUCTOR_FAILED,
        message=f"Creating {type_name}() raised {type(exc).__name__}: {exc}",
        line=line,
        column=column,
        severity=Severity.WARNING,
        kind=DiagnosticKind.INSTANTIATION,
    )


def invalid_connector_id(detail: str) -> CompilationError:
    return CompilationError(
        error_id=INVALID_CONNECTOR_ID,
        message=f"The connector has no usable id: {detail}",
        severity=Severity.WARNING,
        kind=DiagnosticKind.INSTANTIATION,
    )


def internal_error(exc: BaseException, error_id: str = INTERNAL_ERROR) -> CompilationError:
    """Synthetic diagnostic for an unexpected host-side failure."""
    return CompilationError(
        error_id=error_id,
        message=f"Compilation failed: {exc}",
        severity=Severity.ERROR,
        kind=DiagnosticKind.INTERNAL,
    )
