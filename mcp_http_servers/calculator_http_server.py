"""
Calcufy MCP HTTP Server

Exposes the calculator tools over the stateful MCP Streamable HTTP transport.
Run: python -m mcp_http_servers.calculator_http_server
  or uvicorn --factory mcp_http_servers.calculator_http_server:create_app

Server listens on http://127.0.0.1:8000/mcp by default (MCP_HOST / MCP_PORT).
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from error_handling import ErrorHandlingConfig, setup_app
from mcp_servers.calculator_server import create_calculator_registry
from mcp_servers.registry import ToolRegistry
from mcp_http_servers.cors import CORSHeadersMiddleware
from mcp_http_servers.sessions import SessionStore
from mcp_http_servers.transport import DEFAULT_KEEPALIVE_SECONDS, DEFAULT_PROTOCOL_VERSION, MCPTransport

# Load environment variables
load_dotenv()

SERVICE_NAME = "calcufy-mcp"

logger = logging.getLogger(SERVICE_NAME)


@dataclass
class ServerSettings:
    """MCP server settings, normally read from the environment."""
    server_name: str = "Calcufy"
    server_version: str = "1.0.0"
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    host: str = "127.0.0.1"
    port: int = 8000
    keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS
    session_ttl_seconds: Optional[float] = None

    @classmethod
    def from_env(cls) -> "ServerSettings":
        ttl = os.getenv("MCP_SESSION_TTL_SECONDS")
        return cls(
            server_name=os.getenv("MCP_SERVER_NAME", "Calcufy"),
            server_version=os.getenv("MCP_SERVER_VERSION", "1.0.0"),
            protocol_version=os.getenv("MCP_PROTOCOL_VERSION", DEFAULT_PROTOCOL_VERSION),
            host=os.getenv("MCP_HOST", "127.0.0.1"),
            port=int(os.getenv("MCP_PORT", "8000")),
            keepalive_seconds=float(os.getenv("MCP_KEEPALIVE_SECONDS", str(DEFAULT_KEEPALIVE_SECONDS))),
            session_ttl_seconds=float(ttl) if ttl else None,
        )


async def sweep_idle_sessions(sessions: SessionStore, ttl_seconds: float) -> None:
    """Periodically drop sessions idle for longer than ``ttl_seconds``."""
    interval = max(ttl_seconds / 2, 1.0)
    while True:
        await asyncio.sleep(interval)
        sessions.prune_idle(ttl_seconds)


def create_app(
    settings: Optional[ServerSettings] = None,
    config: Optional[ErrorHandlingConfig] = None,
    registry: Optional[ToolRegistry] = None,
) -> FastAPI:
    """
    Build the MCP HTTP application.

    The tool registry, session store and transport are created once here and
    shared by every request through ``app.state``.

    Args:
        settings: Server settings (defaults to ServerSettings.from_env())
        config: Error handling/tracing config (defaults to ErrorHandlingConfig.from_env())
        registry: Tool registry (defaults to the calculator registry)

    Returns:
        FastAPI application serving:
        - GET/POST /mcp -> MCP transport
        - OPTIONS *     -> CORS preflight
        - GET /health   -> {"status": "ok", ...}
    """
    settings = settings or ServerSettings.from_env()
    config = config or ErrorHandlingConfig.from_env(
        service_name=SERVICE_NAME,
        service_version=settings.server_version,
    )
    if registry is None:
        registry = create_calculator_registry()
    sessions = SessionStore()
    transport = MCPTransport(
        registry,
        sessions,
        server_name=settings.server_name,
        server_version=settings.server_version,
        protocol_version=settings.protocol_version,
        keepalive_interval=settings.keepalive_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: start and stop the optional idle-session sweeper."""
        logger.info(f"{settings.server_name} MCP server starting with {len(registry)} tools")

        sweeper = None
        if settings.session_ttl_seconds:
            sweeper = asyncio.create_task(sweep_idle_sessions(sessions, settings.session_ttl_seconds))
            logger.info(f"Idle session sweep enabled (ttl={settings.session_ttl_seconds}s)")

        yield

        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
        logger.info(f"{settings.server_name} MCP server shut down ({len(sessions)} sessions dropped)")

    app = FastAPI(
        title=f"{settings.server_name} MCP Server",
        version=settings.server_version,
        description="Calculator tools over the Model Context Protocol (Streamable HTTP)",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.sessions = sessions
    app.state.transport = transport

    # Set up error handling, tracing, and request ID middleware
    app = setup_app(app, config)

    # Outermost: preflights are answered before anything else runs
    app.add_middleware(CORSHeadersMiddleware, debug=config.environment == "development")

    @app.get("/mcp")
    async def mcp_stream(request: Request):
        """Open the session event stream."""
        return await request.app.state.transport.handle_get(request)

    @app.post("/mcp")
    async def mcp_messages(request: Request):
        """Handle a JSON-RPC message or batch."""
        return await request.app.state.transport.handle_post(request)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for monitoring."""
        return {
            "status": "ok",
            "service": settings.server_name,
            "version": settings.server_version,
            "tools": len(request.app.state.registry),
            "sessions": len(request.app.state.sessions),
        }

    return app


if __name__ == "__main__":
    import uvicorn

    server_settings = ServerSettings.from_env()
    uvicorn.run(create_app(server_settings), host=server_settings.host, port=server_settings.port)
