"""
MCP Servers Module

This module contains the tool layer of the Calcufy MCP server:

- Schema: tagged parameter schemas, JSON Schema translation, validation
- Registry: tool and resource lookup, validation and dispatch
- Calculator: arithmetic operations and the calculator tools/widgets
"""

from mcp_servers.base import ContentBlock, ResourceDescriptor, ToolDefinition, ToolResult
from mcp_servers.registry import ToolRegistry
from mcp_servers.calculator_server import create_calculator_registry

__all__ = [
    "ContentBlock",
    "ResourceDescriptor",
    "ToolDefinition",
    "ToolResult",
    "ToolRegistry",
    "create_calculator_registry",
]
