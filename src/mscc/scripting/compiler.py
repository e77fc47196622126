"""ScriptingService — compile connector scripts into live connector instances.

Pipeline for :meth:`ScriptingService.compile`:

1. **parse** the source with :mod:`ast` (syntax diagnostics);
2. **check references** against the service's :class:`ReferenceSurface`;
3. **emit** a code object and marshal it into an in-memory image;
4. **load** the image into a fresh module whose builtins enforce the
   reference surface at run time;
5. **instantiate** the first concrete :class:`DataSourceConnector` subclass
   the module declares.

User input never makes the service raise: every failure becomes a
:class:`CompilationError` on the returned :class:`CompilationResult`.

Each successful load registers the module in :data:`sys.modules` under a
per-compile generation name (so ``dataclasses``, ``typing.get_type_hints``
and pickling can find it) and retires the previous generation of the same
script.  Connector instances created from a retired generation keep
working; the module is freed once nothing references them.
"""

from __future__ import annotations

import ast
import asyncio
import contextlib
import inspect
import itertools
import linecache
import logging
import marshal
import re
import sys
import threading
import types
import warnings
from collections.abc import Iterator

from mscc.config.settings import get_settings
from mscc.connectors.base import DataSourceConnector
from mscc.scripting import diagnostics
from mscc.scripting.completion import complete
from mscc.scripting.models import (
    CompilationError,
    CompilationResult,
    CompiledUnit,
    CompletionItem,
    ConnectorScript,
    DiagnosticKind,
)
from mscc.scripting.references import ReferenceSurface
from mscc.scripting.templates import connector_template

logger = logging.getLogger(__name__)

_UNIT_PREFIX = "mscc_script_"

# Shared by every service so unit names never collide in sys.modules.
_GENERATIONS = itertools.count(1)

# ``warnings.catch_warnings`` swaps process-global state.
_WARNINGS_LOCK = threading.Lock()


@contextlib.contextmanager
def _capture_warnings() -> Iterator[list[CompilationError]]:
    """Collect warnings raised inside the block as diagnostics."""
    captured: list[CompilationError] = []
    with _WARNINGS_LOCK, warnings.catch_warnings(record=True) as records:
        warnings.simplefilter("always")
        try:
            yield captured
        finally:
            for record in records:
                diagnostic = diagnostics.from_warning(record)
                if diagnostic is not None:
                    captured.append(diagnostic)


class ScriptingService:
    """Compiler, validator and completion engine for connector scripts.

    Parameters
    ----------
    surface:
        Modules scripts may import.  Defaults to the host surface plus
        ``ScriptingSettings.extra_reference_modules``.  Fixed for the
        lifetime of the service.
    completion_limit:
        Maximum completions per request (default from settings).
    """

    def __init__(
        self,
        surface: ReferenceSurface | None = None,
        completion_limit: int | None = None,
    ) -> None:
        cfg = get_settings().scripting
        self._surface = surface or ReferenceSurface.default(cfg.extra_reference_modules)
        self._completion_limit = completion_limit or cfg.completion_limit
        self._units_lock = threading.Lock()
        self._units: dict[str, str] = {}
        """Script id → module name of its live generation."""
        logger.debug("ScriptingService ready (%r).", self._surface)

    @property
    def surface(self) -> ReferenceSurface:
        return self._surface

    # -- compile ------------------------------------------------------------

    def compile(self, script: ConnectorScript) -> CompilationResult:
        """Compile, load and instantiate *script*."""
        result = CompilationResult()
        filename = f"<script:{script.id}>"

        try:
            tree = self._parse(script.source_code, filename, result)
            if tree is None:
                return result

            for diagnostic in self._surface.check(tree):
                result.add(diagnostic)
            if result.errors:
                return result

            code: types.CodeType | None = None
            with _capture_warnings() as compile_warnings:
                try:
                    code = compile(tree, filename, "exec", dont_inherit=True)
                except SyntaxError as exc:
                    result.add(diagnostics.from_syntax_error(exc, DiagnosticKind.SEMANTIC))
            for diagnostic in compile_warnings:
                result.add(diagnostic)
            if code is None:
                return result

            unit = CompiledUnit(
                unit_name=self._unit_name(script.id),
                filename=filename,
                image=marshal.dumps(code),
            )
            result.compiled_unit = unit

            try:
                self._load(unit, script.source_code)
            except (Exception, SystemExit) as exc:
                logger.info("Script '%s' failed while loading: %s", script.metadata.name, exc)
                result.add(diagnostics.from_load_failure(exc, filename))
                return result

            self._retire_previous(script.id, unit)
            result.success = True
            result.connector_instance = self._instantiate(unit, result)
        except Exception as exc:
            logger.error("Unexpected error compiling script %s", script.id, exc_info=True)
            result.success = False
            result.connector_instance = None
            result.add(diagnostics.internal_error(exc))

        return result

    async def compile_async(self, script: ConnectorScript) -> CompilationResult:
        """Run :meth:`compile` on a worker thread."""
        return await asyncio.to_thread(self.compile, script)

    def _parse(
        self, source: str, filename: str, result: CompilationResult,
    ) -> ast.Module | None:
        tree: ast.Module | None = None
        with _capture_warnings() as parse_warnings:
            try:
                tree = ast.parse(source, filename=filename)
            except SyntaxError as exc:
                result.add(diagnostics.from_syntax_error(exc))
            except ValueError as exc:
                # NUL bytes on interpreters that do not report a SyntaxError.
                result.add(CompilationError(
                    error_id="ValueError", message=str(exc), line=1, column=1,
                ))
        for diagnostic in parse_warnings:
            result.add(diagnostic)
        return tree

    def _unit_name(self, script_id: str) -> str:
        return f"{_UNIT_PREFIX}{re.sub(r'[^0-9A-Za-z_]', '_', script_id)}_{next(_GENERATIONS)}"

    def _load(self, unit: CompiledUnit, source: str) -> None:
        code = marshal.loads(unit.image)
        module = types.ModuleType(unit.unit_name)
        module.__file__ = unit.filename
        module.__dict__["__builtins__"] = self._surface.script_builtins()

        # Lets tracebacks from script code show source lines.
        linecache.cache[unit.filename] = (
            len(source), None, source.splitlines(keepends=True), unit.filename,
        )

        sys.modules[unit.unit_name] = module
        try:
            exec(code, module.__dict__)  # noqa: S102
        except BaseException:
            sys.modules.pop(unit.unit_name, None)
            raise
        unit.module = module

    def _retire_previous(self, script_id: str, unit: CompiledUnit) -> None:
        with self._units_lock:
            previous = self._units.get(script_id)
            self._units[script_id] = unit.unit_name
        if previous is not None:
            sys.modules.pop(previous, None)
            logger.debug("Retired compiled unit %s.", previous)

    @staticmethod
    def find_connector_type(module: types.ModuleType) -> type[DataSourceConnector] | None:
        """First concrete connector class declared (not imported) by *module*."""
        for obj in vars(module).values():
            if (
                inspect.isclass(obj)
                and issubclass(obj, DataSourceConnector)
                and not inspect.isabstract(obj)
                and obj.__module__ == module.__name__
            ):
                return obj
        return None

    def _instantiate(
        self, unit: CompiledUnit, result: CompilationResult,
    ) -> DataSourceConnector | None:
        assert unit.module is not None
        connector_type = self.find_connector_type(unit.module)
        if connector_type is None:
            result.add(diagnostics.no_connector_type())
            return None
        try:
            return connector_type()
        except (Exception, SystemExit) as exc:
            logger.info("Constructing %s failed: %s", connector_type.__name__, exc)
            result.add(diagnostics.constructor_failure(exc, unit.filename, connector_type.__name__))
            return None

    # -- validate -----------------------------------------------------------

    def validate(self, source_code: str) -> list[CompilationError]:
        """Syntax-only check for live feedback; no code is emitted."""
        result = CompilationResult()
        try:
            self._parse(source_code, "<validate>", result)
        except Exception as exc:
            logger.error("Unexpected error validating script", exc_info=True)
            return [diagnostics.internal_error(exc, diagnostics.PARSE_FAILED)]
        return result.errors + result.warnings

    # -- completion ---------------------------------------------------------

    def get_completions(self, source_code: str, cursor_offset: int) -> list[CompletionItem]:
        """Best-effort completions at *cursor_offset*; never raises."""
        try:
            return complete(source_code, cursor_offset, self._surface, self._completion_limit)
        except Exception:
            logger.debug("Completion failed at offset %d.", cursor_offset, exc_info=True)
            return []

    async def get_completions_async(
        self, source_code: str, cursor_offset: int,
    ) -> list[CompletionItem]:
        return await asyncio.to_thread(self.get_completions, source_code, cursor_offset)

    # -- templates ----------------------------------------------------------

    @staticmethod
    def get_template(connector_name: str, connector_id: str) -> str:
        """Source of a new connector script (see :mod:`mscc.scripting.templates`)."""
        return connector_template(connector_name, connector_id)
