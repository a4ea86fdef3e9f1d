"""
HTTP MCP Server for Calcufy

This package implements the MCP Streamable HTTP transport (JSON-RPC 2.0 over
HTTP POST, SSE streams over GET) and the FastAPI application that serves the
calculator tools on /mcp.

Start the server with:
    python -m mcp_http_servers.calculator_http_server
"""
