"""GitLab MCP server: issues, labels, epics and CI pipelines over the Model Context Protocol."""

__version__ = "0.1.0"
