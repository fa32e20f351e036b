"""Policy section server: MCP tools for fetching § sections from Markdown policy files."""

__version__ = "0.1.0"
