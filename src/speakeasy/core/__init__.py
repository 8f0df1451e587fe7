"""Core business logic: scoring, feedback, the analysis client, and data models.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or any server framework, and the scoring engine does no I/O at all.
"""
