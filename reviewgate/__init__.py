"""reviewgate: change review for skill, command and MCP server repositories."""

__version__ = "0.1.0"
