"""
Unit tests for the Snowflake spatial registry client.

The aiohttp session is mocked; no network calls are made.
"""

import json
import re
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from services.registry import SnowflakeRegistryClient, new_node_id, parse_node, sanitize_account
from services.registry.snowflake_client import (
    CREATE_TABLE_SQL,
    GOLDEN_PATH_SQL,
    INSERT_SQL,
    SEARCH_SQL,
    error_hint,
    looks_like_bare_locator,
    non_json_hint,
)
from visionbuddy.exceptions import (
    RegistryConnectionError,
    RegistryQueryError,
    RegistrySaveError,
)
from visionbuddy.types import Coordinates, NewSpatialNode


ROW = ["node_abc123xyz", "uni_library_main", '{"x": 12.5, "y": 40}', "Elevator by the stairs", "true"]


def make_response(status=200, body=None, text="", content_type="application/json"):
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": content_type}
    response.json = AsyncMock(return_value=body if body is not None else {})
    response.text = AsyncMock(return_value=text)
    return response


def make_session(*responses):
    def context(response):
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=response)
        cm.__aexit__ = AsyncMock(return_value=False)
        return cm

    session = MagicMock()
    session.post = MagicMock(side_effect=[context(r) for r in responses])
    return session


def make_client(session, **kwargs):
    defaults = dict(
        account="myorg-myaccount",
        token="secret-token",
        database="VISION",
        schema="PUBLIC",
        warehouse="COMPUTE_WH",
    )
    defaults.update(kwargs)
    return SnowflakeRegistryClient(session=session, **defaults)


def posted_body(session, call=0):
    return session.post.call_args_list[call].kwargs["json"]


class TestHelpers:
    """Tests for module-level helpers."""

    @pytest.mark.parametrize("raw", [
        "myorg-myaccount",
        "https://myorg-myaccount.snowflakecomputing.com",
        "https://myorg-myaccount.snowflakecomputing.com/",
        "  myorg-myaccount.snowflakecomputing.com ",
    ])
    def test_sanitize_account(self, raw):
        assert sanitize_account(raw) == "myorg-myaccount"

    def test_bare_locator(self):
        assert looks_like_bare_locator("UF75979") is True
        assert looks_like_bare_locator("UF75979.us-east-1") is False
        assert looks_like_bare_locator("myorg-myaccount") is False

    def test_new_node_id_format(self):
        ids = {new_node_id() for _ in range(20)}
        assert all(re.fullmatch(r"node_[a-z0-9]{9}", i) for i in ids)
        assert len(ids) == 20

    def test_parse_node(self):
        node = parse_node(ROW)
        assert node.id == "node_abc123xyz"
        assert node.coordinates == Coordinates(12.5, 40.0)
        assert node.is_golden_path is True

    def test_parse_node_short_row(self):
        with pytest.raises(ValueError):
            parse_node(ROW[:3])

    def test_error_hints(self):
        assert "SNOWFLAKE_WAREHOUSE" in error_hint(422, "No active warehouse selected")
        assert "SNOWFLAKE_SCHEMA" in error_hint(422, "schema does not exist")
        assert "table does not exist" in error_hint(400, "SQL compilation error")
        assert error_hint(500, "internal error") is None

    def test_non_json_hints(self):
        assert "branded error page" in non_json_hint(403, "<div class='ErrorContainer'>", "acct")
        assert "401" in non_json_hint(401, "<html>", "acct")
        assert '"acct"' in non_json_hint(404, "<html>", "acct")


class TestRequestShape:
    """Tests for headers and statement bodies."""

    def test_url(self):
        client = make_client(None, account="https://myorg-myaccount.snowflakecomputing.com")
        assert client.url == "https://myorg-myaccount.snowflakecomputing.com/api/v2/statements"

    def test_from_config(self):
        config = MagicMock(
            account="acct-x", token="t", database="D", schema_name="S",
            warehouse="W", role="R", token_type=None, timeout=30,
        )
        client = SnowflakeRegistryClient.from_config(config)
        assert client.schema == "S"
        assert client.timeout == 30
        assert client.configured is True

    def test_jwt_token_type_detected(self):
        client = make_client(None, token="eyJhbGciOi")
        assert client._headers()["X-Snowflake-Authorization-Token-Type"] == "KEYPAIR_JWT"

    def test_plain_token_has_no_type_header(self):
        headers = make_client(None)._headers()
        assert headers["Authorization"] == "Bearer secret-token"
        assert "X-Snowflake-Authorization-Token-Type" not in headers

    def test_explicit_token_type(self):
        client = make_client(None, token="eyJhbGciOi", token_type="PROGRAMMATIC_ACCESS_TOKEN")
        assert client._headers()["X-Snowflake-Authorization-Token-Type"] == "PROGRAMMATIC_ACCESS_TOKEN"

    @pytest.mark.asyncio
    async def test_search_uses_bindings(self):
        """Test user text is bound, never spliced into the SQL."""
        session = make_session(make_response(body={"data": [ROW]}))
        client = make_client(session)

        nodes = await client.search("Elevator", "uni_library_main")

        body = posted_body(session)
        assert body["statement"] == SEARCH_SQL
        assert body["bindings"] == {
            "1": {"type": "TEXT", "value": "uni_library_main"},
            "2": {"type": "TEXT", "value": "%elevator%"},
        }
        assert body["database"] == "VISION"
        assert body["warehouse"] == "COMPUTE_WH"
        assert [n.id for n in nodes] == ["node_abc123xyz"]

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self):
        session = make_session(make_response(body={"data": [ROW, ["bad"], ROW[:4] + ["false"]]}))
        nodes = await make_client(session).fetch_verified("uni_library_main")

        assert posted_body(session)["statement"] == GOLDEN_PATH_SQL
        assert len(nodes) == 2
        assert nodes[1].is_golden_path is False

    @pytest.mark.asyncio
    async def test_no_rows(self):
        session = make_session(make_response(body={"code": "090001"}))
        assert await make_client(session).search("cafe", "uni_library_main") == []


class TestErrors:
    """Tests for error translation."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        client = SnowflakeRegistryClient(account=None, token=None)
        with pytest.raises(RegistryConnectionError, match="credentials missing"):
            await client.search("exit", "uni_library_main")

    @pytest.mark.asyncio
    async def test_json_error_with_hint(self):
        session = make_session(make_response(422, {"message": "No active warehouse selected in the current session."}))

        with pytest.raises(RegistryQueryError) as exc_info:
            await make_client(session).search("exit", "uni_library_main")

        assert exc_info.value.status == 422
        assert "SNOWFLAKE_WAREHOUSE" in exc_info.value.hint

    @pytest.mark.asyncio
    async def test_html_error_page(self):
        session = make_session(make_response(404, text="<html>Not Found</html>", content_type="text/html"))

        with pytest.raises(RegistryQueryError) as exc_info:
            await make_client(session).search("exit", "uni_library_main")

        assert "HTML error page" in exc_info.value.message
        assert "myorg-myaccount" in exc_info.value.hint
        assert exc_info.value.detail == "<html>Not Found</html>"

    @pytest.mark.asyncio
    async def test_statement_still_running(self):
        session = make_session(make_response(202, {"message": "Asynchronous execution in progress."}))
        with pytest.raises(RegistryQueryError, match="still running"):
            await make_client(session).fetch_verified("uni_library_main")

    @pytest.mark.asyncio
    async def test_malformed_json_body(self):
        """Test a JSON content type with an unparseable body."""
        response = make_response(200, text="not json at all")
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "not json at all", 0))

        with pytest.raises(RegistryQueryError, match="malformed JSON") as exc_info:
            await make_client(make_session(response)).search("exit", "uni_library_main")

        assert exc_info.value.status == 200
        assert exc_info.value.detail == "not json at all"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["unexpected", "list"], "a bare string", 42])
    async def test_non_object_json(self, body):
        response = make_response(200)
        response.json = AsyncMock(return_value=body)

        with pytest.raises(RegistryQueryError, match="unexpected response shape"):
            await make_client(make_session(response)).fetch_verified("uni_library_main")

    @pytest.mark.asyncio
    async def test_malformed_json_on_save_is_save_error(self):
        response = make_response(200, text="<truncated")
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<truncated", 0))

        with pytest.raises(RegistrySaveError):
            await make_client(make_session(response)).save(TestSave.NODE)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        session = MagicMock()
        session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(RegistryConnectionError, match="Failed to communicate"):
            await make_client(session).search("exit", "uni_library_main")


class TestSave:
    """Tests for saving nodes."""

    NODE = NewSpatialNode(
        building_id="uni_library_main",
        coordinates=Coordinates(42.0, 7.5),
        description="Printer station near the west windows",
    )

    @pytest.mark.asyncio
    async def test_save_creates_table_then_inserts(self):
        session = make_session(make_response(), make_response())

        node_id = await make_client(session).save(self.NODE)

        assert posted_body(session, 0)["statement"] == CREATE_TABLE_SQL
        insert = posted_body(session, 1)
        assert insert["statement"] == INSERT_SQL
        bindings = insert["bindings"]
        assert bindings["1"]["value"] == node_id
        assert json.loads(bindings["3"]["value"]) == {"x": 42.0, "y": 7.5}
        assert bindings["4"]["value"] == "Printer station near the west windows"
        assert bindings["5"] == {"type": "BOOLEAN", "value": "false"}
        assert re.fullmatch(r"node_[a-z0-9]{9}", node_id)

    @pytest.mark.asyncio
    async def test_table_created_once(self):
        session = make_session(make_response(), make_response(), make_response())
        client = make_client(session)

        await client.save(self.NODE)
        await client.save(self.NODE)

        assert session.post.call_count == 3

    @pytest.mark.asyncio
    async def test_save_failure_carries_hint(self):
        session = make_session(make_response(422, {"message": "Database 'VISION' does not exist or not authorized."}))

        with pytest.raises(RegistrySaveError) as exc_info:
            await make_client(session).save(self.NODE)

        assert exc_info.value.message.startswith("Snowflake Save Failed")
        assert "SNOWFLAKE_DATABASE" in exc_info.value.hint
        assert "Hint:" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_save_without_credentials(self):
        with pytest.raises(RegistrySaveError):
            await SnowflakeRegistryClient().save(self.NODE)


class TestSessionLifecycle:
    """Tests for session ownership."""

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        session = MagicMock()
        session.close = AsyncMock()
        client = make_client(session)

        await client.close()

        session.close.assert_not_called()
