"""MCP stdio server exposing the outline store and vault sync as tools."""
