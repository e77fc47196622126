"""Tests for ScriptedConnectorBase defaults and helpers."""

from __future__ import annotations

import logging

import pytest

from mscc.connectors.base import DetailViewType
from mscc.models.search import SearchResult
from mscc.scripting.base import ScriptedConnectorBase


class MinimalConnector(ScriptedConnectorBase):
    id = "minimal"
    name = "Minimal"
    description = "Only the required members."

    async def search(self, search_term: str, max_results: int = 100) -> list[SearchResult]:
        return [self.create_result(search_term, "found")]


class OwnInitConnector(MinimalConnector):
    def __init__(self) -> None:
        self.calls = 0


@pytest.fixture()
def connector() -> MinimalConnector:
    return MinimalConnector()


class TestDefaults:
    def test_identity(self, connector: MinimalConnector) -> None:
        assert connector.version == "1.0.0"
        assert connector.configuration_parameters == []
        assert connector.configuration == {}

    def test_abstract_without_search(self) -> None:
        class NoSearch(ScriptedConnectorBase):
            id = "x"
            name = "x"
            description = "x"

        with pytest.raises(TypeError):
            NoSearch()  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_contract_defaults(self, connector: MinimalConnector) -> None:
        result = SearchResult(metadata={"Author": "a", "Size": 3})

        assert await connector.test_connection() is True
        assert await connector.execute_action(result, "open") is False
        assert connector.create_custom_detail_view(result) is None
        view = connector.get_detail_view_configuration(result)
        assert view.view_type is DetailViewType.DEFAULT
        assert view.display_properties == ["Author", "Size"]
        connector.dispose()

    @pytest.mark.asyncio
    async def test_initialize_copies_configuration(self, connector: MinimalConnector) -> None:
        config = {"ApiUrl": "https://example.org"}

        assert await connector.initialize(config) is True
        config["ApiUrl"] = "changed"

        assert connector.get_config("ApiUrl") == "https://example.org"

    @pytest.mark.asyncio
    async def test_subclass_init_without_super(self) -> None:
        connector = OwnInitConnector()

        assert connector.get_config("missing", "d") == "d"
        await connector.initialize({"Key": "v"})
        assert connector.get_config("Key") == "v"

    @pytest.mark.asyncio
    async def test_create_result(self, connector: MinimalConnector) -> None:
        results = await connector.search("term")

        assert results[0].title == "term"
        assert results[0].description == "found"
        assert results[0].source_name == "Minimal"
        assert results[0].connector_id == "minimal"
        assert results[0].original_reference == ""


class TestConfigHelpers:
    @pytest.mark.asyncio
    async def test_get_config_int(self, connector: MinimalConnector) -> None:
        await connector.initialize({"Count": " 42 ", "Bad": "forty"})
        assert connector.get_config_int("Count") == 42
        assert connector.get_config_int("Bad", 7) == 7
        assert connector.get_config_int("Missing", 3) == 3

    @pytest.mark.asyncio
    async def test_get_config_bool(self, connector: MinimalConnector) -> None:
        await connector.initialize({"On": "TRUE", "Off": "false", "Maybe": "yes"})
        assert connector.get_config_bool("On") is True
        assert connector.get_config_bool("Off", True) is False
        assert connector.get_config_bool("Maybe", True) is True
        assert connector.get_config_bool("Missing") is False


class TestLogging:
    def test_log(self, connector: MinimalConnector, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="mscc.scripts"):
            connector.log("hello")

        record = caplog.records[-1]
        assert record.name == "mscc.scripts.Minimal"
        assert record.getMessage() == "[Minimal] hello"

    def test_log_error_with_exception(
        self, connector: MinimalConnector, caplog: pytest.LogCaptureFixture,
    ) -> None:
        try:
            raise ValueError("bad value")
        except ValueError as exc:
            with caplog.at_level(logging.ERROR, logger="mscc.scripts"):
                connector.log_error("search failed", exc)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.getMessage() == "[Minimal] ERROR: search failed"
        assert record.exc_info[0] is ValueError

    def test_log_survives_broken_name(self, caplog: pytest.LogCaptureFixture) -> None:
        class BrokenName(MinimalConnector):
            @property
            def name(self) -> str:
                raise RuntimeError("no name")

        with caplog.at_level(logging.INFO, logger="mscc.scripts"):
            BrokenName().log("still logs")

        assert caplog.records[-1].getMessage() == "[BrokenName] still logs"
