"""Code completion for connector scripts.

Every request builds its own :class:`CompletionContext`, a throw-away
symbol table for one (source, cursor) pair, so concurrent requests never
share mutable state.

Supported positions:

* ``import pre|`` / ``from pre|``: modules on the reference surface;
* ``from module import pre|``: public names of an allowed module;
* ``expr.pre|``: members of an imported module or class, a class defined
  in the script, or ``self`` inside a script class (including members
  inherited from importable bases);
* ``pre|``: keywords, builtins, and names the script defines or imports.

Source being edited is usually not valid Python, so parsing retries with
the cursor line neutralised before giving up on the AST.
"""

from __future__ import annotations

import ast
import builtins
import importlib
import inspect
import keyword
import logging
import re
from dataclasses import dataclass
from typing import Any

from mscc.scripting.models import CompletionItem
from mscc.scripting.references import ReferenceSurface

logger = logging.getLogger(__name__)

_IMPORT_RE = re.compile(r"^\s*(?:import|from)\s+([\w.]*)$")
_FROM_IMPORT_RE = re.compile(r"^\s*from\s+([\w.]+)\s+import\s+(?:[\w\s,]*,\s*)?(\w*)$")
_ATTRIBUTE_RE = re.compile(r"([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)\.(\w*)$")
_NAME_RE = re.compile(r"(\w*)$")


@dataclass(frozen=True)
class _Symbol:
    name: str
    kind: str
    description: str | None = None


def _describe(obj: Any) -> str | None:
    if not (inspect.ismodule(obj) or inspect.isclass(obj) or callable(obj)
            or isinstance(obj, property)):
        return None
    doc = inspect.getdoc(obj)
    if doc:
        return doc.strip().splitlines()[0]
    return None


def _kind_of(obj: Any, *, member: bool = False) -> str:
    if inspect.ismodule(obj):
        return "Module"
    if inspect.isclass(obj):
        return "Class"
    if isinstance(obj, property):
        return "Property"
    if callable(obj):
        return "Method" if member else "Function"
    return "Field" if member else "Variable"


def _live_members(obj: Any) -> list[_Symbol]:
    """Public members of a live module or class."""
    names = getattr(obj, "__all__", None) if inspect.ismodule(obj) else None
    if names is None:
        names = [n for n in dir(obj) if not n.startswith("__")]
    symbols = []
    is_member = not inspect.ismodule(obj)
    for name in names:
        try:
            value = inspect.getattr_static(obj, name) if is_member else getattr(obj, name)
        except AttributeError:
            continue
        if isinstance(value, (staticmethod, classmethod)):
            value = value.__func__
        symbols.append(_Symbol(name, _kind_of(value, member=is_member), _describe(value)))
    return symbols


class CompletionContext:
    """Scratch symbol table for a single completion request."""

    def __init__(self, source: str, offset: int, surface: ReferenceSurface) -> None:
        self._source = source
        self._offset = max(0, min(offset, len(source)))
        self._surface = surface
        before = source[: self._offset]
        self._line_text = before.rsplit("\n", 1)[-1]
        self._line_no = before.count("\n") + 1
        self._tree = self._parse_tolerant()
        self._imports: dict[str, tuple[str, str | None]] = {}
        """Bound name → (module, attribute or None)."""
        self._classes: dict[str, ast.ClassDef] = {}
        self._top_level: list[_Symbol] = []
        if self._tree is not None:
            self._index_module(self._tree)

    # -- parsing ------------------------------------------------------------

    def _parse_tolerant(self) -> ast.Module | None:
        lines = self._source.split("\n")
        index = self._line_no - 1
        current = lines[index] if index < len(lines) else ""
        indent = current[: len(current) - len(current.lstrip())]
        attempts = [
            self._source,
            "\n".join(lines[:index] + [indent + "pass"] + lines[index + 1:]),
            "\n".join(lines[:index] + [indent + "pass"]),
        ]
        for attempt in attempts:
            try:
                return ast.parse(attempt)
            except (SyntaxError, ValueError):
                continue
        return None

    def _index_module(self, tree: ast.Module) -> None:
        for node in tree.body:
            if isinstance(node, ast.Import):
                for alias in node.names:
                    bound = alias.asname or alias.name.split(".")[0]
                    module = alias.name if alias.asname else bound
                    self._imports[bound] = (module, None)
                    self._top_level.append(_Symbol(bound, "Module", alias.name))
            elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
                for alias in node.names:
                    if alias.name == "*":
                        continue
                    bound = alias.asname or alias.name
                    self._imports[bound] = (node.module, alias.name)
                    obj = self._resolve_import(bound)
                    kind = _kind_of(obj) if obj is not None else "Variable"
                    self._top_level.append(_Symbol(bound, kind, _describe(obj) if obj else None))
            elif isinstance(node, ast.ClassDef):
                self._classes[node.name] = node
                self._top_level.append(_Symbol(node.name, "Class", ast.get_docstring(node)))
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._top_level.append(_Symbol(node.name, "Function", ast.get_docstring(node)))
            elif isinstance(node, (ast.Assign, ast.AnnAssign)):
                targets = node.targets if isinstance(node, ast.Assign) else [node.target]
                for target in targets:
                    for name in ast.walk(target):
                        if isinstance(name, ast.Name):
                            self._top_level.append(_Symbol(name.id, "Variable"))

    # -- resolution ---------------------------------------------------------

    def _import_module(self, module: str) -> Any | None:
        if not self._surface.allows(module):
            return None
        try:
            return importlib.import_module(module)
        except ImportError:
            return None

    def _resolve_import(self, bound: str) -> Any | None:
        module, attribute = self._imports[bound]
        obj = self._import_module(module)
        if obj is None or attribute is None:
            return obj
        value = getattr(obj, attribute, None)
        if value is None:
            value = self._import_module(f"{module}.{attribute}")
        return value

    def _enclosing(self, kinds: tuple[type[ast.AST], ...]) -> ast.AST | None:
        """Innermost node of *kinds* whose span contains the cursor line."""
        if self._tree is None:
            return None
        found = None
        for node in ast.walk(self._tree):
            if not isinstance(node, kinds):
                continue
            end = getattr(node, "end_lineno", None) or node.lineno
            if node.lineno <= self._line_no <= end:
                if found is None or node.lineno >= found.lineno:
                    found = node
        return found

    def _class_members(
        self, node: ast.ClassDef, visiting: frozenset[str] = frozenset(),
    ) -> list[_Symbol]:
        visiting = visiting | {node.name}
        symbols: list[_Symbol] = []
        for item in node.body:
            if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                is_property = any(
                    isinstance(d, ast.Name) and d.id == "property" for d in item.decorator_list
                )
                symbols.append(_Symbol(
                    item.name, "Property" if is_property else "Method", ast.get_docstring(item),
                ))
            elif isinstance(item, (ast.Assign, ast.AnnAssign)):
                targets = item.targets if isinstance(item, ast.Assign) else [item.target]
                symbols.extend(
                    _Symbol(t.id, "Field") for t in targets if isinstance(t, ast.Name)
                )
        for base in node.bases:
            if isinstance(base, ast.Name):
                if base.id in self._classes:
                    if base.id not in visiting:
                        symbols.extend(self._class_members(self._classes[base.id], visiting))
                elif base.id in self._imports:
                    live = self._resolve_import(base.id)
                    if inspect.isclass(live):
                        symbols.extend(_live_members(live))
        return symbols

    def _members_of(self, chain: str) -> list[_Symbol]:
        head, *rest = chain.split(".")
        if head == "self" and not rest:
            cls = self._enclosing((ast.ClassDef,))
            return self._class_members(cls) if isinstance(cls, ast.ClassDef) else []
        if head in self._classes and not rest:
            return self._class_members(self._classes[head])
        if head in self._imports:
            obj = self._resolve_import(head)
        else:
            obj = getattr(builtins, head, None)
        for part in rest:
            if obj is None:
                break
            obj = getattr(obj, part, None)
        return _live_members(obj) if obj is not None else []

    def _local_names(self) -> list[_Symbol]:
        func = self._enclosing((ast.FunctionDef, ast.AsyncFunctionDef))
        if not isinstance(func, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return []
        args = func.args
        params = args.posonlyargs + args.args + args.kwonlyargs
        params += [a for a in (args.vararg, args.kwarg) if a is not None]
        symbols = [_Symbol(a.arg, "Parameter") for a in params]
        for node in ast.walk(func):
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
                symbols.append(_Symbol(node.id, "Local"))
        return symbols

    # -- public -------------------------------------------------------------

    def candidates(self) -> tuple[str, list[_Symbol]]:
        """Return the typed prefix and every symbol valid at the cursor."""
        line = self._line_text
        match = _IMPORT_RE.match(line)
        if match:
            prefix = match.group(1)
            modules = set(self._surface.modules) | set(self._surface.top_level_names())
            return prefix, [_Symbol(m, "Module") for m in modules]

        match = _FROM_IMPORT_RE.match(line)
        if match:
            module = self._import_module(match.group(1))
            return match.group(2), _live_members(module) if module is not None else []

        match = _ATTRIBUTE_RE.search(line)
        if match:
            return match.group(2), self._members_of(match.group(1))

        prefix = _NAME_RE.search(line).group(1)  # type: ignore[union-attr]
        symbols = [_Symbol(k, "Keyword") for k in keyword.kwlist]
        symbols += self._local_names()
        symbols += self._top_level
        symbols += [
            _Symbol(name, _kind_of(value), _describe(value))
            for name, value in vars(builtins).items()
            if not name.startswith("_")
        ]
        return prefix, symbols


def complete(
    source: str,
    offset: int,
    surface: ReferenceSurface,
    limit: int = 50,
) -> list[CompletionItem]:
    """Return up to *limit* completions for the cursor at *offset*.

    Candidates matching the typed prefix are ordered public-first, then
    case-insensitively by name; duplicates keep their first occurrence.
    """
    prefix, symbols = CompletionContext(source, offset, surface).candidates()

    seen: set[str] = set()
    matches: list[_Symbol] = []
    for symbol in symbols:
        if symbol.name in seen or not symbol.name.startswith(prefix):
            continue
        seen.add(symbol.name)
        matches.append(symbol)

    matches.sort(key=lambda s: (s.name.startswith("_"), s.name.lower()))
    return [
        CompletionItem(
            display_text=s.name,
            insert_text=s.name,
            kind=s.kind,
            description=s.description,
        )
        for s in matches[:limit]
    ]
