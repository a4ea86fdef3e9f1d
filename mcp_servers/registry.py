"""
Tool Registry

Holds the tools and auxiliary resources an MCP server exposes. The registry
knows nothing about JSON-RPC: it looks tools up, validates their arguments,
runs their handlers and hands back ToolResults.
"""

import json
import logging
from typing import Any, Dict, List, Type

from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel

from error_handling import CalcufyError, ToolExecutionError, ToolNotFoundError, get_tracer
from mcp_servers.base import ResourceDescriptor, ToolDefinition, ToolResult
from mcp_servers.schema import build_model, to_json_schema, validate_arguments

logger = logging.getLogger("mcp_servers.registry")


class ToolRegistry:
    """Name-keyed tool and resource registry. Iteration order is registration order."""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}
        self._resources: Dict[str, ResourceDescriptor] = {}
        self._models: Dict[str, Type[BaseModel]] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool. A later registration under the same name replaces the earlier one."""
        if tool.name in self._tools:
            logger.warning(f"Replacing previously registered tool: {tool.name}")
        self._models[tool.name] = build_model(tool.input_schema, f"{tool.name}_arguments")
        self._tools[tool.name] = tool
        logger.info(f"Registered tool: {tool.name}")

    def register_resource(self, name: str, resource: ResourceDescriptor) -> None:
        self._resources[name] = resource
        logger.info(f"Registered resource: {name}")

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> List[Dict[str, Any]]:
        """Describe every registered tool for ``tools/list``."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": to_json_schema(tool.input_schema),
                "_meta": dict(tool.metadata),
            }
            for tool in self._tools.values()
        ]

    def list_resources(self) -> List[Dict[str, Any]]:
        return [{"name": name, **resource.to_dict()} for name, resource in self._resources.items()]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolResult:
        """
        Validate arguments and execute a tool.

        Args:
            name: Registered tool name
            arguments: Raw arguments from the client

        Returns:
            The handler's ToolResult

        Raises:
            ToolNotFoundError: no tool is registered under ``name``
            ValidationError: ``arguments`` do not match the input schema
            ToolExecutionError: the handler raised
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        tracer = get_tracer(__name__)
        with tracer.start_as_current_span(f"mcp.tool.{name}") as span:
            span.set_attribute("mcp.tool.name", name)
            span.set_attribute("mcp.tool.arguments", json.dumps(arguments, default=str))

            try:
                validated = validate_arguments(tool.input_schema, arguments, model=self._models[name])
            except CalcufyError as e:
                span.set_attribute("mcp.tool.status", "invalid_arguments")
                span.set_status(Status(StatusCode.ERROR, e.message))
                raise

            try:
                result = await tool.handler(validated)
            except Exception as e:
                span.set_attribute("mcp.tool.status", "error")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.warning(f"Tool {name} failed: {e}")
                raise ToolExecutionError(name, str(e) or e.__class__.__name__, arguments, cause=e) from e

            span.set_attribute("mcp.tool.status", "success")
            return result
