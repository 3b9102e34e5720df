"""
Vision Buddy Spatial Registry Client
Snowflake SQL API v2

Stores building locations in a SPATIAL_REGISTRY table and reads them
back for navigation lookups and the golden path (audited nodes).

Statements go to https://<account>.snowflakecomputing.com/api/v2/statements
with a bearer token. Values are always sent as bindings, never spliced
into the SQL text.

Failures raise RegistryError subclasses; the interaction layer decides
whether that means "no match", a registry status indicator, or a spoken
apology for a lost pin.
"""

import asyncio
import json
import logging
import random
import re
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from visionbuddy.exceptions import (
    RegistryConnectionError,
    RegistryError,
    RegistryQueryError,
    RegistrySaveError,
)
from visionbuddy.types import Coordinates, NewSpatialNode, SpatialNode

logger = logging.getLogger("visionbuddy.registry")


TABLE_NAME = "SPATIAL_REGISTRY"

CREATE_TABLE_SQL = f"""CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    ID STRING,
    BUILDING_ID STRING,
    COORDINATES STRING,
    DESCRIPTION STRING,
    IS_GOLDEN_PATH BOOLEAN
)"""

SELECT_COLUMNS = "ID, BUILDING_ID, COORDINATES, DESCRIPTION, IS_GOLDEN_PATH"

SEARCH_SQL = (
    f"SELECT {SELECT_COLUMNS} FROM {TABLE_NAME} "
    "WHERE BUILDING_ID = ? AND LOWER(DESCRIPTION) LIKE ?"
)

GOLDEN_PATH_SQL = (
    f"SELECT {SELECT_COLUMNS} FROM {TABLE_NAME} "
    "WHERE BUILDING_ID = ? AND IS_GOLDEN_PATH = TRUE"
)

INSERT_SQL = (
    f"INSERT INTO {TABLE_NAME} ({SELECT_COLUMNS}) "
    "VALUES (?, ?, ?, ?, ?)"
)

NODE_ID_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_account(account: str) -> str:
    """Strip a URL scheme and the .snowflakecomputing.com suffix."""
    account = re.sub(r"^https?://", "", account.strip())
    return re.sub(r"\.snowflakecomputing\.com/?$", "", account)


def looks_like_bare_locator(account: str) -> bool:
    """True for a 7-character locator with no region (e.g. UF75979)."""
    return len(account) == 7 and "." not in account and "-" not in account


def new_node_id() -> str:
    """Registry id of the form node_<9 chars>."""
    return "node_" + "".join(random.choices(NODE_ID_ALPHABET, k=9))


def error_hint(status: int, message: str) -> Optional[str]:
    """Configuration hint for a JSON error reply."""
    lowered = message.lower()
    if "warehouse" in lowered:
        return (
            "No warehouse was specified or the specified warehouse is invalid. "
            "Check SNOWFLAKE_WAREHOUSE."
        )
    if "database" in lowered or "schema" in lowered:
        return (
            "The database or schema was not found. "
            "Check SNOWFLAKE_DATABASE and SNOWFLAKE_SCHEMA."
        )
    if "x-snowflake-authorization-token-type" in lowered:
        return (
            "Snowflake rejected the authorization header type. "
            "Set registry.token_type to match your token (KEYPAIR_JWT, OAUTH or PROGRAMMATIC_ACCESS_TOKEN)."
        )
    if status == 400:
        return (
            "The SQL is invalid or the table does not exist yet. "
            "If no locations have been pinned, this is normal."
        )
    return None


def non_json_hint(status: int, body: str, account: str) -> str:
    """Configuration hint for an HTML (or other non-JSON) error reply."""
    if "ErrorContainer" in body:
        return (
            "Snowflake returned a branded error page. The URL is valid but the request "
            "was rejected (IP blocking or invalid credentials)."
        )
    if status == 401:
        return "Authentication failed (401). SNOWFLAKE_TOKEN is invalid or expired."
    if status == 403:
        return (
            "Forbidden (403). The token may not have permission to use the SQL API, "
            "or your IP may be blocked by a network policy."
        )
    if status == 404:
        return f'Snowflake returned a 404. The account identifier "{account}" might be incorrect.'
    return "Snowflake returned a non-JSON response. Check SNOWFLAKE_ACCOUNT and SNOWFLAKE_TOKEN."


def _binding(value: Any) -> Dict[str, Any]:
    if isinstance(value, bool):
        return {"type": "BOOLEAN", "value": "true" if value else "false"}
    return {"type": "TEXT", "value": str(value)}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1")


def parse_node(row: List[Any]) -> SpatialNode:
    """
    Convert a result row to a SpatialNode.

    Raises:
        ValueError: If the row is short or the coordinates are not JSON
    """
    if len(row) < 5:
        raise ValueError(f"Expected 5 columns, got {len(row)}")
    coords = json.loads(row[2]) if isinstance(row[2], str) else row[2]
    return SpatialNode(
        id=str(row[0]),
        building_id=str(row[1]),
        coordinates=Coordinates(float(coords["x"]), float(coords["y"])),
        description=row[3] or "",
        is_golden_path=_parse_bool(row[4]),
    )


@dataclass
class StatementResult:
    """Successful statement execution."""
    code: Optional[str] = None
    message: Optional[str] = None
    rows: List[List[Any]] = field(default_factory=list)


class SnowflakeRegistryClient:
    """
    Async spatial registry over the Snowflake SQL API.

    API Documentation: https://docs.snowflake.com/en/developer-guide/sql-api/reference
    """

    def __init__(
        self,
        account: Optional[str] = None,
        token: Optional[str] = None,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        warehouse: Optional[str] = None,
        role: Optional[str] = None,
        token_type: Optional[str] = None,
        timeout: int = 60,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.account = sanitize_account(account or "")
        self.token = token
        self.database = database
        self.schema = schema
        self.warehouse = warehouse
        self.role = role
        self.token_type = token_type
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._table_ready = False

        if self.account and looks_like_bare_locator(self.account):
            logger.warning(
                f"SNOWFLAKE_ACCOUNT {self.account!r} looks like a locator without a region. "
                "This will likely fail with a 404."
            )

    @classmethod
    def from_config(cls, config, session: Optional[aiohttp.ClientSession] = None) -> "SnowflakeRegistryClient":
        """Build from a RegistryConfig."""
        return cls(
            account=config.account,
            token=config.token,
            database=config.database,
            schema=config.schema_name,
            warehouse=config.warehouse,
            role=config.role,
            token_type=config.token_type,
            timeout=config.timeout,
            session=session,
        )

    @property
    def configured(self) -> bool:
        return bool(self.account and self.token)

    @property
    def url(self) -> str:
        return f"https://{self.account}.snowflakecomputing.com/api/v2/statements"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={'User-Agent': 'VisionBuddy/1.0 (spatial-registry)'}
            )
        return self._session

    async def close(self):
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        token_type = self.token_type
        if token_type is None and self.token and self.token.startswith("ey"):
            token_type = "KEYPAIR_JWT"
        if token_type:
            headers["X-Snowflake-Authorization-Token-Type"] = token_type
        return headers

    def _body(self, statement: str, bindings: Optional[List[Any]]) -> Dict[str, Any]:
        body: Dict[str, Any] = {"statement": statement, "timeout": self.timeout}
        if self.database:
            body["database"] = self.database
        if self.schema:
            body["schema"] = self.schema
        if self.warehouse:
            body["warehouse"] = self.warehouse
        if self.role:
            body["role"] = self.role
        if bindings:
            body["bindings"] = {str(i): _binding(v) for i, v in enumerate(bindings, start=1)}
        return body

    async def execute(self, statement: str, bindings: Optional[List[Any]] = None) -> StatementResult:
        """
        Run one SQL statement.

        Args:
            statement: SQL with ? placeholders
            bindings: Values for the placeholders, in order

        Returns:
            StatementResult with the result rows

        Raises:
            RegistryConnectionError: Credentials missing or Snowflake unreachable
            RegistryQueryError: Snowflake rejected the statement or sent a
                reply that is not a JSON object
        """
        if not self.configured:
            raise RegistryConnectionError("Snowflake credentials missing in environment.")

        logger.debug(f"Executing Snowflake SQL on {self.url}")

        try:
            session = await self._get_session()
            async with session.post(
                self.url,
                json=self._body(statement, bindings),
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout + 10),
            ) as response:
                status = response.status
                content_type = response.headers.get("Content-Type", "")

                if "application/json" not in content_type:
                    text = await response.text()
                    logger.error(f"Snowflake non-JSON error ({status}): {text[:1000]}")
                    raise RegistryQueryError(
                        "Snowflake returned an HTML error page instead of JSON.",
                        statement=statement,
                        status=status,
                        hint=non_json_hint(status, text, self.account),
                        detail=text[:200],
                    )

                try:
                    data = await response.json()
                except ValueError as e:
                    text = await response.text()
                    logger.error(f"Snowflake returned malformed JSON ({status}): {text[:1000]}")
                    raise RegistryQueryError(
                        "Snowflake returned a malformed JSON response.",
                        statement=statement,
                        status=status,
                        detail=text[:200],
                    ) from e

        except aiohttp.ClientError as e:
            raise RegistryConnectionError(f"Failed to communicate with Snowflake: {e}") from e
        except asyncio.TimeoutError as e:
            raise RegistryConnectionError(f"Snowflake request timed out after {self.timeout + 10}s") from e

        if not isinstance(data, dict):
            logger.error(f"Snowflake returned {type(data).__name__} instead of an object ({status})")
            raise RegistryQueryError(
                "Snowflake returned an unexpected response shape.",
                statement=statement,
                status=status,
                detail=str(data)[:200],
            )

        if status >= 400:
            message = data.get("message") or data.get("error") or "Snowflake API Error"
            logger.error(f"Snowflake API error {status}: {message}")
            raise RegistryQueryError(
                message,
                statement=statement,
                status=status,
                hint=error_hint(status, message),
            )

        if status == 202:
            raise RegistryQueryError(
                "Statement still running after the timeout",
                statement=statement,
                status=status,
                hint="Increase registry.timeout or check warehouse load.",
            )

        return StatementResult(
            code=data.get("code"),
            message=data.get("message"),
            rows=data.get("data") or [],
        )

    def _parse_rows(self, rows: List[List[Any]]) -> List[SpatialNode]:
        nodes = []
        for row in rows:
            try:
                nodes.append(parse_node(row))
            except (ValueError, KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed registry row: {e}")
        return nodes

    async def search(self, query: str, building_id: str) -> List[SpatialNode]:
        """Nodes in the building whose description contains the query."""
        result = await self.execute(SEARCH_SQL, [building_id, f"%{query.lower()}%"])
        return self._parse_rows(result.rows)

    async def fetch_verified(self, building_id: str) -> List[SpatialNode]:
        """Golden path (audited) nodes for the building."""
        result = await self.execute(GOLDEN_PATH_SQL, [building_id])
        return self._parse_rows(result.rows)

    async def ensure_table(self) -> None:
        """Create the registry table if it does not exist yet."""
        if self._table_ready:
            return
        await self.execute(CREATE_TABLE_SQL)
        self._table_ready = True

    async def save(self, node: NewSpatialNode) -> str:
        """
        Save a new node.

        Returns:
            The generated node id

        Raises:
            RegistrySaveError: With a configuration hint when one applies
        """
        node_id = new_node_id()
        coordinates = json.dumps({"x": node.coordinates.x, "y": node.coordinates.y})

        try:
            await self.ensure_table()
            await self.execute(
                INSERT_SQL,
                [node_id, node.building_id, coordinates, node.description, node.is_golden_path],
            )
        except RegistryQueryError as e:
            raise RegistrySaveError(
                f"Snowflake Save Failed: {e.message}",
                hint=e.hint,
                detail=e.detail,
                status=e.status,
            ) from e
        except RegistryError as e:
            raise RegistrySaveError(f"Snowflake Save Failed: {e.message}") from e

        logger.info(f"Saved registry node {node_id} in {node.building_id}")
        return node_id
