"""SpeakEasy MCP server.

Send a speech recording to the analysis service and get back an overall
communication score, a qualitative band, and improvement tips.
"""

__version__ = "0.1.0"
