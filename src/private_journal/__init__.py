"""Private journal with semantic search, served over MCP."""

__version__ = "1.0.0"
