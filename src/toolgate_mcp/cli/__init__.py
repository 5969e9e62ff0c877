"""toolgate CLI - inspect the tool catalog a deployment would serve."""

from toolgate_mcp.cli.main import cli
from toolgate_mcp.cli.output import emit, emit_error, emit_success

__all__ = [
    "cli",
    "emit",
    "emit_error",
    "emit_success",
]
