"""
Graph query executor for the recipe knowledge graph.

This is the only component that talks to the graph store. It runs one
query string through the neo4j async driver and renders the resulting rows
as plain text for the model.

Trust boundary: query text is executed as-is. No validation, parameter
binding or sanitization happens here; the text is written by the model and
constrained only by the system prompt. Run the service against a database
user whose permissions match what the model is allowed to do (typically
read-only).
"""

from typing import Any, Dict, List, Optional, Sequence

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.graph import Node, Path, Relationship

from ..config import Settings
from ..errors import QueryExecutionFailure
from ..utils.logging import get_logger

logger = get_logger(__name__)

NO_RESULTS = "Query returned no results."

Row = Dict[str, Any]


def _plain_value(value: Any) -> Any:
    """Convert driver graph and temporal types into plain Python values."""
    if isinstance(value, (Node, Relationship)):
        return dict(value.items())
    if isinstance(value, Path):
        return [dict(node.items()) for node in value.nodes]
    if isinstance(value, list):
        return [_plain_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain_value(v) for k, v in value.items()}
    if hasattr(value, "iso_format"):
        return value.iso_format()
    return value


def render_row(row: Row) -> str:
    """Render one row as ``key: value`` pairs, skipping null columns."""
    return ", ".join(f"{key}: {value}" for key, value in row.items() if value is not None)


def render_as_text(rows: Sequence[Row]) -> str:
    """
    Render query rows as model-readable text.

    One line per row, columns as ``key: value`` joined by ``", "`` and rows
    joined by newlines. Rows whose columns are all null are dropped. An empty
    result renders as the fixed ``NO_RESULTS`` sentinel.
    """
    lines = [line for line in (render_row(row) for row in rows) if line]
    if not lines:
        return NO_RESULTS
    return "\n".join(lines)


class GraphQueryExecutor:
    """
    Execute opaque query strings against the graph store.

    The driver is injected so tests and alternative deployments can supply
    their own; ``build_graph_driver`` creates the default one from settings.
    """

    def __init__(self, driver: AsyncDriver, database: Optional[str] = None):
        self.driver = driver
        self.database = database

    async def execute(self, query_text: str) -> List[Row]:
        """
        Run a query and return its rows.

        Args:
            query_text: Query string, executed without modification

        Returns:
            One dict per record, mapping column name to value

        Raises:
            QueryExecutionFailure: If the store rejects or fails the query
        """
        try:
            records, summary, keys = await self.driver.execute_query(
                query_text, database_=self.database
            )
        except Exception as e:
            # Includes socket and timeout errors raised outside the driver hierarchy
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.warning(
                "Graph query failed",
                error=message,
                error_type=type(e).__name__,
            )
            raise QueryExecutionFailure(message) from e

        rows = [
            {key: _plain_value(value) for key, value in record.items()}
            for record in records
        ]
        logger.debug("Graph query executed", row_count=len(rows), columns=list(keys))
        return rows

    async def run_as_text(self, query_text: str) -> str:
        """Execute a query and render its rows as text."""
        rows = await self.execute(query_text)
        return render_as_text(rows)

    async def verify_connectivity(self) -> None:
        """Raise if the graph store cannot be reached."""
        await self.driver.verify_connectivity()

    async def close(self) -> None:
        await self.driver.close()


def build_graph_driver(settings: Settings) -> AsyncDriver:
    """Create the neo4j async driver from settings."""
    auth = (
        (settings.neo4j_user, settings.neo4j_password)
        if settings.neo4j_password
        else None
    )
    driver = AsyncGraphDatabase.driver(settings.neo4j_uri, auth=auth)
    logger.info(
        "Graph driver created",
        uri=settings.neo4j_uri,
        database=settings.neo4j_database or "default",
    )
    return driver
