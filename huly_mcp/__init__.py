"""Huly MCP server: tool dispatch and failure classification for a Huly workspace."""

__version__ = "0.1.0"
