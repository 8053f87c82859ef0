"""mcp-keeper: keep MCP server entries in sync across AI clients."""

__version__ = "0.4.0"
