"""
Tool registry exposed to the model.

A registry is an immutable set of tool specs passed explicitly into the
agent loop. Dispatching never raises into the loop: unknown tools resolve to
an empty result and handler failures come back as error text the model can
read.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping

from pydantic_ai.tools import ToolDefinition

from ..errors import QueryExecutionFailure
from ..utils.logging import get_logger
from .graph_query import GraphQueryExecutor

logger = get_logger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[str]]

EXECUTE_QUERY_TOOL = "execute_query"
EXECUTE_QUERY_DESCRIPTION = (
    "Execute a query against the knowledge graph and return the results."
)
EXECUTE_QUERY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": "The Cypher query to execute",
        }
    },
    "required": ["query"],
    "additionalProperties": False,
}


@dataclass(frozen=True)
class ToolSpec:
    """Declaration and handler of one callable tool."""

    name: str
    description: str
    parameters_json_schema: Dict[str, Any]
    handler: ToolHandler = field(compare=False)

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters_json_schema=self.parameters_json_schema,
        )


class ToolRegistry:
    """Immutable lookup of tools by name."""

    def __init__(self, tools: Iterable[ToolSpec]):
        specs: Dict[str, ToolSpec] = {}
        for spec in tools:
            if spec.name in specs:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            specs[spec.name] = spec
        self._tools: Mapping[str, ToolSpec] = MappingProxyType(specs)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def declarations(self) -> List[ToolDefinition]:
        """Tool definitions in the form the model client sends them."""
        return [spec.definition() for spec in self._tools.values()]

    async def dispatch(self, tool_name: str, args: Dict[str, Any]) -> str:
        """
        Run a tool by name and return its text result.

        Args:
            tool_name: Name requested by the model
            args: Parsed arguments requested by the model

        Returns:
            The tool's text result; an empty string for an unknown tool
        """
        spec = self._tools.get(tool_name)
        if spec is None:
            logger.warning("Model requested unknown tool", tool_name=tool_name)
            return ""
        return await spec.handler(args)


def execute_query_tool(executor: GraphQueryExecutor) -> ToolSpec:
    """Build the ``execute_query`` tool around a graph query executor."""

    async def handle(args: Dict[str, Any]) -> str:
        query = args.get("query") if isinstance(args, dict) else None
        if not isinstance(query, str) or not query.strip():
            return "Error executing query: a non-empty string 'query' argument is required."
        try:
            return await executor.run_as_text(query)
        except QueryExecutionFailure as e:
            return f"Error executing query: {e.message}"

    return ToolSpec(
        name=EXECUTE_QUERY_TOOL,
        description=EXECUTE_QUERY_DESCRIPTION,
        parameters_json_schema=EXECUTE_QUERY_SCHEMA,
        handler=handle,
    )


def build_query_registry(executor: GraphQueryExecutor) -> ToolRegistry:
    """Registry holding the single knowledge-graph query tool."""
    return ToolRegistry([execute_query_tool(executor)])
