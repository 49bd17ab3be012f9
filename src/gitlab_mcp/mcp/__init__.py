"""MCP protocol surface: tool definitions, server handlers and transports."""
