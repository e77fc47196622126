"""Tests for ScriptingService.compile."""

from __future__ import annotations

import sys

import pytest

from mscc.scripting import (
    DiagnosticKind,
    ScriptedConnectorBase,
    ScriptingService,
    Severity,
)
from mscc.scripting import diagnostics
from mscc.scripting.references import ReferenceSurface


class TestCompileSuccess:
    def test_minimal_connector(self, service, make_script) -> None:
        result = service.compile(make_script())

        assert result.success is True
        assert result.errors == []
        assert result.is_usable
        assert isinstance(result.connector_instance, ScriptedConnectorBase)
        assert result.connector_instance.id == "echo"
        assert result.connector_instance.name == "Echo"
        assert result.connector_instance.version == "1.0.0"

    def test_compiled_unit_is_loaded(self, service, make_script) -> None:
        result = service.compile(make_script())

        unit = result.compiled_unit
        assert unit is not None
        assert unit.image
        assert unit.module is not None
        assert sys.modules[unit.unit_name] is unit.module
        assert type(result.connector_instance).__module__ == unit.unit_name

    @pytest.mark.asyncio
    async def test_compiled_connector_searches(self, service, make_script) -> None:
        connector = service.compile(make_script()).connector_instance
        assert connector is not None

        assert await connector.initialize({"Key": "value"}) is True
        results = await connector.search("hello")

        assert len(results) == 1
        assert results[0].title == "hello"
        assert results[0].connector_id == "echo"
        assert results[0].source_name == "Echo"

    def test_first_declared_connector_wins(self, service, make_script, make_connector_source) -> None:
        second = make_connector_source("second", "SecondConnector").split("\n\n\n", 1)[1]
        source = make_connector_source("first", "FirstConnector") + "\n\n" + second

        result = service.compile(make_script(source))

        assert type(result.connector_instance).__name__ == "FirstConnector"

    def test_template_compiles(self, service, make_script) -> None:
        source = service.get_template("Sample Source", "sample-id")

        result = service.compile(make_script(source))

        assert result.success is True
        assert result.errors == []
        assert result.warnings == []
        assert result.connector_instance.id == "sample-id"
        assert result.connector_instance.name == "Sample Source"

    @pytest.mark.asyncio
    async def test_compile_async(self, service, make_script) -> None:
        result = await service.compile_async(make_script())
        assert result.is_usable


class TestCompileFailure:
    def test_syntax_error(self, service, make_script) -> None:
        result = service.compile(make_script("class Broken(:\n    pass\n"))

        assert result.success is False
        assert result.connector_instance is None
        assert result.compiled_unit is None
        error = result.errors[0]
        assert error.kind is DiagnosticKind.SYNTAX
        assert error.severity is Severity.ERROR
        assert error.error_id == "SyntaxError"
        assert error.line == 1
        assert error.column > 0

    def test_import_outside_surface(self, service, make_script, echo_source) -> None:
        result = service.compile(make_script("import os\n" + echo_source))

        assert result.success is False
        assert result.compiled_unit is None
        error = result.errors[0]
        assert error.error_id == diagnostics.REFERENCE_NOT_AVAILABLE
        assert error.kind is DiagnosticKind.SEMANTIC
        assert (error.line, error.column) == (1, 8)
        assert "'os'" in error.message

    def test_from_import_outside_surface(self, service, make_script) -> None:
        result = service.compile(make_script("x = 1\nfrom subprocess import run\n"))

        assert result.errors[0].error_id == diagnostics.REFERENCE_NOT_AVAILABLE
        assert result.errors[0].line == 2

    def test_relative_import(self, service, make_script) -> None:
        result = service.compile(make_script("from . import sibling\n"))

        assert result.errors[0].error_id == diagnostics.RELATIVE_IMPORT

    def test_every_offending_import_reported(self, service, make_script) -> None:
        result = service.compile(make_script("import os\nimport sys\nimport math\n"))

        assert [e.line for e in result.errors] == [1, 2]

    def test_dynamic_import_blocked_at_load(self, service, make_script) -> None:
        result = service.compile(make_script("x = 1\nmod = __import__('os')\n"))

        assert result.success is False
        error = result.errors[0]
        assert error.error_id == diagnostics.LOAD_FAILED
        assert error.kind is DiagnosticKind.LOAD
        assert error.line == 2
        assert "ReferenceNotAvailableError" in error.message

    def test_module_body_raises(self, service, make_script) -> None:
        result = service.compile(make_script("raise RuntimeError('boom')\n"))

        assert result.success is False
        assert result.connector_instance is None
        assert result.errors[0].error_id == diagnostics.LOAD_FAILED
        assert "boom" in result.errors[0].message

    def test_system_exit_in_module_body(self, service, make_script) -> None:
        result = service.compile(make_script("raise SystemExit(3)\n"))

        assert result.success is False
        assert result.errors[0].error_id == diagnostics.LOAD_FAILED

    def test_internal_failure_becomes_diagnostic(self, service, make_script, monkeypatch) -> None:
        def explode(script_id: str) -> str:
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(service, "_unit_name", explode)

        result = service.compile(make_script())

        assert result.success is False
        assert result.connector_instance is None
        error = result.errors[0]
        assert error.error_id == diagnostics.INTERNAL_ERROR
        assert error.kind is DiagnosticKind.INTERNAL
        assert error.message == "Compilation failed: disk on fire"


class TestInstantiation:
    def test_no_connector_type(self, service, make_script) -> None:
        result = service.compile(make_script("VALUE = 42\n"))

        assert result.success is True
        assert result.errors == []
        assert result.connector_instance is None
        assert not result.is_usable
        warning = result.warnings[0]
        assert warning.error_id == diagnostics.NO_CONNECTOR_TYPE
        assert warning.kind is DiagnosticKind.INSTANTIATION
        assert warning.severity is Severity.WARNING

    def test_abstract_connector_is_skipped(self, service, make_script) -> None:
        source = (
            "from mscc.scripting.base import ScriptedConnectorBase\n"
            "\n"
            "class Unfinished(ScriptedConnectorBase):\n"
            "    id = 'unfinished'\n"
        )
        result = service.compile(make_script(source))

        assert result.success is True
        assert result.connector_instance is None
        assert result.warnings[0].error_id == diagnostics.NO_CONNECTOR_TYPE

    def test_constructor_failure(self, service, make_script, echo_source) -> None:
        source = echo_source + (
            "\n"
            "    def __init__(self):\n"
            "        raise ValueError('missing key')\n"
        )
        result = service.compile(make_script(source))

        assert result.success is True
        assert result.connector_instance is None
        warning = result.warnings[0]
        assert warning.error_id == diagnostics.CONSTRUCTOR_FAILED
        assert warning.kind is DiagnosticKind.INSTANTIATION
        assert "missing key" in warning.message
        assert warning.line == source.count("\n")


class TestWarnings:
    def test_compiler_warning_is_reported(self, service, make_script, echo_source) -> None:
        source = echo_source + "\nCHECK = (1 is 1)\n"
        result = service.compile(make_script(source))

        assert result.is_usable
        syntax_warnings = [w for w in result.warnings if w.error_id == "SyntaxWarning"]
        assert syntax_warnings
        assert syntax_warnings[0].line == source.count("\n")

    def test_star_import_warns(self, service, make_script, echo_source) -> None:
        result = service.compile(make_script("from math import *\n" + echo_source))

        assert result.is_usable
        assert result.warnings[0].error_id == diagnostics.STAR_IMPORT
        assert result.warnings[0].line == 1


class TestGenerations:
    def test_recompile_retires_previous_unit(self, service, make_script) -> None:
        script = make_script()
        first = service.compile(script)
        second = service.compile(script)

        assert first.compiled_unit.unit_name != second.compiled_unit.unit_name
        assert first.compiled_unit.unit_name not in sys.modules
        assert second.compiled_unit.unit_name in sys.modules

    @pytest.mark.asyncio
    async def test_retired_instance_keeps_working(self, service, make_script) -> None:
        script = make_script()
        old = service.compile(script).connector_instance
        service.compile(script)

        results = await old.search("still here")
        assert results[0].title == "still here"

    def test_failed_recompile_keeps_previous_unit(self, service, make_script) -> None:
        script = make_script()
        first = service.compile(script)

        script.source_code = "def broken(:\n"
        second = service.compile(script)

        assert second.success is False
        assert first.compiled_unit.unit_name in sys.modules

    def test_separate_services_never_share_names(self, make_script) -> None:
        script = make_script()
        a = ScriptingService().compile(script)
        b = ScriptingService().compile(script)

        assert a.compiled_unit.unit_name != b.compiled_unit.unit_name
        assert a.compiled_unit.unit_name in sys.modules


class TestSurface:
    def test_extra_module_granted(self, make_script, echo_source) -> None:
        service = ScriptingService(surface=ReferenceSurface.default(["textwrap"]))

        result = service.compile(make_script("import textwrap\n" + echo_source))

        assert result.is_usable

    def test_default_service_rejects_extra_module(self, service, make_script) -> None:
        result = service.compile(make_script("import textwrap\n"))
        assert result.errors[0].error_id == diagnostics.REFERENCE_NOT_AVAILABLE


class TestEdgeCases:
    @pytest.mark.parametrize("source", ["", "   \n\t\n"])
    def test_empty_source(self, service, make_script, source: str) -> None:
        result = service.compile(make_script(source))

        assert result.success is True
        assert result.errors == []
        assert result.connector_instance is None
        assert [w.error_id for w in result.warnings] == [diagnostics.NO_CONNECTOR_TYPE]

    def test_module_without_classes(self, service, make_script) -> None:
        result = service.compile(make_script("def helper():\n    return 1\n"))

        assert result.success is True
        assert result.connector_instance is None

    def test_compile_stage_error_is_semantic(self, service, make_script) -> None:
        result = service.compile(make_script("x = 1\nreturn x\n"))

        assert result.success is False
        assert result.compiled_unit is None
        assert result.errors[0].kind is DiagnosticKind.SEMANTIC
        assert result.errors[0].line == 2
