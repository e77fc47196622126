"""Script Repository — durable store and lifecycle authority for connector scripts.

Each script is stored as two sibling files in the scripts directory:

* ``{sanitized name}_{first 8 chars of id}.py``: the raw source;
* ``{same}.py.meta``: indented camelCase JSON metadata (the sidecar).

The repository keeps every known script in an id-keyed map, bridges source
text to live connectors through :class:`ScriptingService`, and registers
usable connectors in a :class:`ConnectorRegistry`.

Persistence failures are logged and reported as ``False``/``None``; they
never propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from mscc.config.settings import get_settings
from mscc.connectors.base import DataSourceConnector
from mscc.connectors.registry import ConnectorRegistry, get_registry
from mscc.scripting import diagnostics
from mscc.scripting.compiler import ScriptingService
from mscc.scripting.models import (
    CompilationResult,
    ConnectorScript,
    DiagnosticKind,
    ScriptMetadata,
)

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta"

# Characters rejected in file names on at least one supported platform.
_INVALID_FILENAME_CHARS = frozenset('<>:"/\\|?*') | frozenset(chr(c) for c in range(32))


def sanitize_file_name(name: str) -> str:
    """Drop characters that are not allowed in file names."""
    return "".join(c for c in name if c not in _INVALID_FILENAME_CHARS)


def _check_connector_id(result: CompilationResult) -> None:
    """Drop the instance from *result* unless its ``id`` is a readable string."""
    try:
        connector_id = result.connector_instance.id
    except Exception as exc:
        detail = f"reading it raised {type(exc).__name__}: {exc}"
    else:
        if isinstance(connector_id, str):
            return
        detail = f"expected str, got {type(connector_id).__name__}"

    logger.warning("Compiled connector rejected: %s", detail)
    result.add(diagnostics.invalid_connector_id(detail))
    result.connector_instance = None


class ScriptRepository:
    """CRUD, persistence and compile-then-register for connector scripts.

    Parameters
    ----------
    scripting_service:
        Compiler used by :meth:`compile_and_register`.
    scripts_dir:
        Storage directory.  Defaults to ``Settings.scripts_dir``.
    registry:
        Registry receiving compiled connectors.  Defaults to the
        process-wide :func:`~mscc.connectors.registry.get_registry`.
    """

    def __init__(
        self,
        scripting_service: ScriptingService,
        scripts_dir: Path | str | None = None,
        registry: ConnectorRegistry | None = None,
    ) -> None:
        cfg = get_settings()
        self._service = scripting_service
        self._dir = Path(scripts_dir) if scripts_dir is not None else cfg.scripts_dir
        self._suffix = cfg.scripting.source_suffix
        self._registry = registry if registry is not None else get_registry()
        self._scripts: dict[str, ConnectorScript] = {}
        self._compiled: dict[str, DataSourceConnector] = {}
        self._ensure_directory()

    @property
    def scripts_dir(self) -> Path:
        return self._dir

    @property
    def registry(self) -> ConnectorRegistry:
        return self._registry

    def _ensure_directory(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    # -- in-memory CRUD -----------------------------------------------------

    def create(self, name: str, description: str = "") -> ConnectorScript:
        """Create a script from the template under a fresh id (not saved)."""
        metadata = ScriptMetadata(name=name, description=description)
        script = ConnectorScript(
            metadata=metadata,
            source_code=self._service.get_template(name, metadata.id),
        )
        self._scripts[metadata.id] = script
        logger.info("Created script '%s' (%s).", name, metadata.id)
        return script

    def get_by_id(self, script_id: str) -> ConnectorScript | None:
        return self._scripts.get(script_id)

    def get_all(self) -> list[ConnectorScript]:
        return list(self._scripts.values())

    def get_compiled_connector(self, script_id: str) -> DataSourceConnector | None:
        """The connector produced by the script's last successful compile."""
        return self._compiled.get(script_id)

    def update(self, script: ConnectorScript) -> bool:
        """Accept edits to a known script; ``False`` if the id is unknown.

        The script must be recompiled before its changes reach the registry.
        """
        if script.id not in self._scripts:
            logger.debug("Update ignored for unknown script %s.", script.id)
            return False

        script.metadata.modified_at = datetime.now()
        script.is_compiled = False
        self._scripts[script.id] = script
        self._compiled.pop(script.id, None)
        return True

    def set_enabled(self, script_id: str, enabled: bool) -> bool:
        """Toggle whether :meth:`compile_all_async` picks the script up."""
        script = self._scripts.get(script_id)
        if script is None:
            return False
        script.metadata.is_enabled = enabled
        return self.update(script)

    def delete(self, script_id: str) -> bool:
        """Forget a script and delete its files (missing files are fine)."""
        script = self._scripts.pop(script_id, None)
        if script is None:
            return False

        if script.file_path is not None:
            self._remove_files(script.file_path)
        self._compiled.pop(script_id, None)
        logger.info("Deleted script '%s' (%s).", script.metadata.name, script_id)
        return True

    # -- persistence --------------------------------------------------------

    def _path_for(self, script: ConnectorScript) -> Path:
        stem = f"{sanitize_file_name(script.metadata.name)}_{script.id[:8]}"
        return self._dir / f"{stem}{self._suffix}"

    @staticmethod
    def _meta_path(source_path: Path) -> Path:
        return source_path.with_name(source_path.name + META_SUFFIX)

    def _remove_files(self, source_path: Path) -> None:
        for path in (source_path, self._meta_path(source_path)):
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete %s: %s", path, exc)

    def save(self, script: ConnectorScript) -> bool:
        """Write source and sidecar; ``False`` on any I/O failure."""
        try:
            self._ensure_directory()
            path = self._path_for(script)
            script.metadata.modified_at = datetime.now()
            path.write_text(script.source_code, encoding="utf-8")
            self._meta_path(path).write_text(script.metadata.to_json(), encoding="utf-8")
        except OSError as exc:
            logger.error("Saving script '%s' failed: %s", script.metadata.name, exc)
            return False

        previous = script.file_path
        script.file_path = path
        if previous is not None and previous != path and previous.parent == self._dir:
            # Renamed: drop the stale pair so a reload does not see it twice.
            self._remove_files(previous)
        logger.info("Saved script '%s' to %s", script.metadata.name, path)
        return True

    async def load_from_file_async(self, file_path: Path | str) -> ConnectorScript | None:
        """Read a script and its sidecar; ``None`` if the source is missing.

        A missing or unreadable sidecar falls back to metadata named after
        the file.
        """
        path = Path(file_path)
        if not path.is_file():
            return None

        source = await asyncio.to_thread(path.read_text, encoding="utf-8")
        script = ConnectorScript(source_code=source, file_path=path)

        meta_path = self._meta_path(path)
        if meta_path.is_file():
            try:
                raw = await asyncio.to_thread(meta_path.read_text, encoding="utf-8")
                script.metadata = ScriptMetadata.model_validate_json(raw)
                return script
            except (OSError, UnicodeDecodeError, ValidationError) as exc:
                logger.warning("Unreadable sidecar %s (%s); using file name.", meta_path, exc)

        script.metadata.name = path.stem
        return script

    async def load_all_async(self) -> int:
        """Load every script in the scripts directory; returns the count.

        A file that fails to load is logged and skipped.
        """
        self._ensure_directory()
        files = sorted(self._dir.glob(f"*{self._suffix}"))
        logger.debug("Found %d script files in %s", len(files), self._dir)

        count = 0
        for file_path in files:
            try:
                script = await self.load_from_file_async(file_path)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Error loading script from %s: %s", file_path, exc)
                continue
            if script is None:
                continue
            self._scripts[script.id] = script
            count += 1
            logger.debug(
                "Loaded script '%s' (id=%s, enabled=%s)",
                script.metadata.name, script.id, script.metadata.is_enabled,
            )

        logger.info("Loaded %d scripts from %s", count, self._dir)
        return count

    async def import_async(self, source_path: Path | str) -> ConnectorScript | None:
        """Import a script from anywhere under a freshly generated id.

        The imported script has no ``file_path``; call :meth:`save` to store
        it under repository naming.
        """
        try:
            script = await self.load_from_file_async(source_path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Import of %s failed: %s", source_path, exc)
            return None
        if script is None:
            logger.warning("Import failed: %s does not exist.", source_path)
            return None

        script.metadata.id = str(uuid.uuid4())
        script.metadata.created_at = datetime.now()
        script.file_path = None
        self._scripts[script.id] = script
        logger.info("Imported '%s' from %s as %s", script.metadata.name, source_path, script.id)
        return script

    def export(self, script_id: str, target_path: Path | str) -> bool:
        """Write the script's current source verbatim to *target_path*."""
        script = self._scripts.get(script_id)
        if script is None:
            return False
        try:
            Path(target_path).write_text(script.source_code, encoding="utf-8")
        except OSError as exc:
            logger.error("Export of %s to %s failed: %s", script_id, target_path, exc)
            return False
        return True

    # -- compile ------------------------------------------------------------

    def compile_and_register(self, script: ConnectorScript) -> CompilationResult:
        """Compile *script* and register its connector if one was produced."""
        result = self._service.compile(script)
        if result.is_usable:
            _check_connector_id(result)

        if result.is_usable:
            assert result.connector_instance is not None
            script.is_compiled = True
            script.compilation_errors.clear()
            self._compiled[script.id] = result.connector_instance
            self._registry.register(result.connector_instance)
            logger.info(
                "Compiled '%s' and registered connector '%s'.",
                script.metadata.name, result.connector_instance.id,
            )
        else:
            script.is_compiled = False
            script.compilation_errors = [e.message for e in result.errors] + [
                w.message for w in result.warnings if w.kind is DiagnosticKind.INSTANTIATION
            ]
            logger.info(
                "Script '%s' not registered: %s",
                script.metadata.name, "; ".join(script.compilation_errors) or "no connector",
            )

        return result

    async def compile_all_async(self) -> tuple[int, int]:
        """Compile enabled scripts one after another.

        Each compile (including registration) finishes before the next one
        starts, which keeps registry mutation order deterministic.

        Returns
        -------
        tuple[int, int]
            ``(succeeded, failed)``; success means a connector was registered.
        """
        enabled = [s for s in self._scripts.values() if s.metadata.is_enabled]
        logger.debug("Compiling %d enabled scripts", len(enabled))

        succeeded = failed = 0
        for script in enabled:
            result = await asyncio.to_thread(self.compile_and_register, script)
            if result.is_usable:
                succeeded += 1
            else:
                failed += 1

        logger.info(
            "Compilation complete: %d succeeded, %d failed; %d connectors registered.",
            succeeded, failed, len(self._registry),
        )
        return succeeded, failed
