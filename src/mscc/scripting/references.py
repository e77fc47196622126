"""Reference surface — the fixed set of modules connector scripts may import.

The surface is checked twice:

* statically, by walking the parsed AST before compiling, so every
  offending ``import`` gets a positioned diagnostic;
* at run time, by a guarded ``__import__`` placed in the builtins of each
  script module, which also covers ``__import__("os")`` style calls.

This restricts what a script can *reference*; it is not a security
boundary.  Permitted modules (``httpx``, ``asyncio``, ...) can still do
I/O, and nothing bounds CPU or memory use.
"""

from __future__ import annotations

import ast
import builtins
import logging
from collections.abc import Callable, Iterable
from typing import Any

from mscc.scripting import diagnostics
from mscc.scripting.models import CompilationError, Severity

logger = logging.getLogger(__name__)

CORE_MODULES = (
    "__future__",
    "math",
    "re",
    "datetime",
    "time",
    "typing",
    "dataclasses",
    "enum",
    "uuid",
    "random",
    "string",
    "decimal",
    "functools",
    "itertools",
    "operator",
)
COLLECTION_MODULES = ("collections", "collections.abc", "heapq", "bisect")
CONCURRENCY_MODULES = ("asyncio", "concurrent.futures", "threading", "queue")
HTTP_MODULES = ("httpx",)
JSON_MODULES = ("json",)
UI_MODULES = ("mscc.ui",)
CONTRACT_MODULES = ("mscc.connectors", "mscc.models", "mscc.scripting.base")

DEFAULT_MODULES: tuple[str, ...] = (
    CORE_MODULES
    + COLLECTION_MODULES
    + CONCURRENCY_MODULES
    + HTTP_MODULES
    + JSON_MODULES
    + UI_MODULES
    + CONTRACT_MODULES
)


class ReferenceNotAvailableError(ModuleNotFoundError):
    """A script tried to import a module outside its reference surface."""


class ReferenceSurface:
    """Immutable allow-list of importable modules.

    A module is importable when it equals an allowed name or lives below
    one (``httpx`` admits ``httpx._client``; ``mscc.ui`` does not admit
    ``mscc``).
    """

    def __init__(self, modules: Iterable[str] = DEFAULT_MODULES) -> None:
        self._modules = frozenset(m.strip() for m in modules if m and m.strip())
        self._builtins = self._build_builtins()

    @classmethod
    def default(cls, extra: Iterable[str] = ()) -> ReferenceSurface:
        """The host surface plus any *extra* modules granted by configuration."""
        extra = tuple(extra)
        if extra:
            logger.info("Reference surface extended with: %s", ", ".join(extra))
        return cls(DEFAULT_MODULES + extra)

    @property
    def modules(self) -> frozenset[str]:
        return self._modules

    def allows(self, module_name: str) -> bool:
        return any(
            module_name == allowed or module_name.startswith(allowed + ".")
            for allowed in self._modules
        )

    # -- static check -------------------------------------------------------

    def check(self, tree: ast.AST) -> list[CompilationError]:
        """Return a diagnostic for every import in *tree* outside the surface."""
        found: list[CompilationError] = []
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if not self.allows(alias.name):
                        found.append(self._not_available(alias, node, alias.name))
            elif isinstance(node, ast.ImportFrom):
                if node.level:
                    found.append(diagnostics.from_node(
                        node,
                        diagnostics.RELATIVE_IMPORT,
                        "Relative imports are not available to scripts.",
                    ))
                    continue
                module = node.module or ""
                if not self.allows(module):
                    found.append(self._not_available(node, node, module))
                elif any(alias.name == "*" for alias in node.names):
                    found.append(diagnostics.from_node(
                        node,
                        diagnostics.STAR_IMPORT,
                        f"'from {module} import *' hides which names the script uses.",
                        severity=Severity.WARNING,
                    ))
        found.sort(key=lambda d: (d.line, d.column))
        return found

    @staticmethod
    def _not_available(position: ast.AST, node: ast.AST, module: str) -> CompilationError:
        # ``alias`` nodes carry positions only on Python 3.10+.
        if getattr(position, "lineno", None) is None:
            position = node
        return diagnostics.from_node(
            position,
            diagnostics.REFERENCE_NOT_AVAILABLE,
            f"The module '{module}' is not available to connector scripts.",
        )

    # -- runtime guard ------------------------------------------------------

    def make_import(self) -> Callable[..., Any]:
        """Return an ``__import__`` replacement enforcing this surface."""
        real_import = builtins.__import__

        def guarded_import(
            name: str,
            globals: dict[str, Any] | None = None,  # noqa: A002
            locals: dict[str, Any] | None = None,  # noqa: A002
            fromlist: tuple[str, ...] | list[str] | None = (),
            level: int = 0,
        ) -> Any:
            if level:
                raise ReferenceNotAvailableError(
                    "Relative imports are not available to connector scripts."
                )
            if not self.allows(name):
                raise ReferenceNotAvailableError(
                    f"No module named '{name}' is available to connector scripts.",
                    name=name,
                )
            return real_import(name, globals, locals, fromlist or (), level)

        return guarded_import

    def _build_builtins(self) -> dict[str, Any]:
        namespace = dict(vars(builtins))
        namespace["__import__"] = self.make_import()
        return namespace

    def script_builtins(self) -> dict[str, Any]:
        """Return a fresh builtins mapping for one script module."""
        return dict(self._builtins)

    def top_level_names(self) -> list[str]:
        """Sorted first components of every allowed module (for completion)."""
        return sorted({m.split(".")[0] for m in self._modules})

    def __contains__(self, module_name: object) -> bool:
        return isinstance(module_name, str) and self.allows(module_name)

    def __repr__(self) -> str:
        return f"ReferenceSurface({len(self._modules)} modules)"
