"""
Base MCP Server Utilities

Provides shared functionality for the MCP tool layer including:
- Tool definitions and tool results
- Content blocks and widget resource descriptors
- Configuration helpers (environment, public base URL)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from mcp_servers.schema import ObjectSchema

logger = logging.getLogger("mcp_servers")

ContentType = Literal["text", "image", "structured", "widget"]

OUTPUT_TEMPLATE_KEY = "openai/outputTemplate"


@dataclass
class ContentBlock:
    """A single block of tool output, tagged by its type."""
    type: ContentType
    text: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    image_url: Optional[str] = None
    widget_url: Optional[str] = None

    @classmethod
    def text_block(cls, text: str) -> "ContentBlock":
        return cls(type="text", text=text)

    @classmethod
    def structured_block(cls, data: Dict[str, Any]) -> "ContentBlock":
        return cls(type="structured", data=data)

    @classmethod
    def image_block(cls, image_url: str) -> "ContentBlock":
        return cls(type="image", image_url=image_url)

    @classmethod
    def widget_block(cls, widget_url: str) -> "ContentBlock":
        return cls(type="widget", widget_url=widget_url)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        if self.text is not None:
            result["text"] = self.text
        if self.data is not None:
            result["data"] = self.data
        if self.image_url is not None:
            result["imageUrl"] = self.image_url
        if self.widget_url is not None:
            result["widgetUrl"] = self.widget_url
        return result


@dataclass
class ToolResult:
    """Standard result structure for MCP tool calls."""
    content: List[ContentBlock]
    structured_content: Optional[Dict[str, Any]] = None
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as the ``result`` of a successful ``tools/call``."""
        result: Dict[str, Any] = {
            "content": [block.to_dict() for block in self.content],
            "isError": False,
            "_meta": self.meta or {},
        }
        if self.structured_content is not None:
            result["structuredContent"] = self.structured_content
        return result


ToolHandler = Callable[[Dict[str, Any]], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    A named, schema-validated tool.

    Definitions are registered once at start-up and never mutated.
    """
    name: str
    description: str
    input_schema: ObjectSchema
    handler: ToolHandler
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResourceDescriptor:
    """An addressable auxiliary resource, e.g. a widget page."""
    url: str
    description: str
    type: str = "widget"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "url": self.url, "description": self.description}


def get_env_or_default(key: str, default: str) -> str:
    """Get environment variable or return default."""
    return os.environ.get(key, default)


def get_base_url() -> str:
    """
    Resolve the public base URL widgets are served from.

    Checks, in order: BASE_URL, VERCEL_URL, RENDER_EXTERNAL_URL,
    RAILWAY_STATIC_URL, then falls back to localhost on MCP_PORT.
    """
    if os.environ.get("BASE_URL"):
        return os.environ["BASE_URL"].rstrip("/")
    if os.environ.get("VERCEL_URL"):
        return f"https://{os.environ['VERCEL_URL']}"
    if os.environ.get("RENDER_EXTERNAL_URL"):
        return os.environ["RENDER_EXTERNAL_URL"].rstrip("/")
    if os.environ.get("RAILWAY_STATIC_URL"):
        return os.environ["RAILWAY_STATIC_URL"].rstrip("/")
    return f"http://localhost:{get_env_or_default('MCP_PORT', '8000')}"


def get_full_url(path: str) -> str:
    clean_path = path if path.startswith("/") else f"/{path}"
    return f"{get_base_url()}{clean_path}"


def get_widget_url(widget_name: str) -> str:
    return get_full_url(f"/widgets/{widget_name}")
