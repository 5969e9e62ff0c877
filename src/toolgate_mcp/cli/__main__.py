"""toolgate CLI module entry point.

Enables running the CLI via: python -m toolgate_mcp.cli
"""

from toolgate_mcp.cli.main import cli

if __name__ == "__main__":
    cli()
