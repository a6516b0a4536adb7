"""Service layer around service_scheduling: order database sync, artifacts, MCP tools."""
