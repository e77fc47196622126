"""Tests for the connector script template."""

from __future__ import annotations

import pytest

from mscc.scripting.templates import class_name_fragment, connector_template


class TestClassNameFragment:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Wiki Search", "WikiSearch"),
            ("My-Source 2!", "MySource2"),
            ("123 Data", "Custom123Data"),
            ("!!!", "Custom"),
            ("", "Custom"),
        ],
    )
    def test_fragment(self, name: str, expected: str) -> None:
        assert class_name_fragment(name) == expected


class TestConnectorTemplate:
    def test_header_and_class(self) -> None:
        source = connector_template("Wiki  Search", "wiki-1")

        assert source.splitlines()[0] == "# Connector script: Wiki Search"
        assert "class WikiSearchConnector(ScriptedConnectorBase):" in source
        assert 'id = "wiki-1"' in source

    def test_id_embedded_verbatim(self) -> None:
        source = connector_template("X", "3f2b9c1e-aaaa-bbbb-cccc-000000000000")
        assert 'id = "3f2b9c1e-aaaa-bbbb-cccc-000000000000"' in source

    def test_template_validates(self, service) -> None:
        assert service.validate(connector_template("Anything", "abc")) == []

    def test_quoted_name_survives(self, service, make_script) -> None:
        name = 'He said "hi" \\ bye'

        result = service.compile(make_script(connector_template(name, "quoted")))

        assert result.is_usable
        assert result.connector_instance.name == name

    def test_service_template_matches(self, service) -> None:
        assert service.get_template("A", "b") == connector_template("A", "b")

    @pytest.mark.asyncio
    async def test_template_behaviour(self, service, make_script) -> None:
        connector = service.compile(make_script(connector_template("Demo", "demo"))).connector_instance

        results = await connector.search("term", max_results=3)
        assert [r.title for r in results] == [
            "Result 1: term",
            "Result 2: term",
            "Result 3: term",
        ]
        assert results[0].relevance_score == 95
        assert results[0].original_reference == "ref-1"

        view = connector.get_detail_view_configuration(results[0])
        assert [a.id for a in view.actions] == ["open", "copy"]
        assert await connector.execute_action(results[0], "open") is True
        assert await connector.execute_action(results[0], "unknown") is False

        params = connector.configuration_parameters
        assert [p.name for p in params] == ["ApiUrl"]
        assert params[0].is_required is True

    def test_acme_template_compiles(self, service, make_script) -> None:
        source = service.get_template("Acme", "abc-123")

        result = service.compile(make_script(source))

        assert "class AcmeConnector" in source
        assert '"abc-123"' in source
        assert result.success is True
        assert result.errors == []
        assert result.connector_instance.id == "abc-123"

    @pytest.mark.parametrize("name", ["Null\x00Byte", "Bell\x07 Tab\t", "Vertical\x0bTab"])
    def test_control_characters_in_name(self, service, make_script, name: str) -> None:
        source = connector_template(name, "ctl")

        assert service.validate(source) == []
        assert source.splitlines()[0].isprintable()
        result = service.compile(make_script(source))
        assert result.is_usable
        assert result.connector_instance.name == name
