"""toolgate-mcp - policy-filtered MCP tool catalog with schema negotiation."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("toolgate-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

from toolgate_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
