"""toolgate CLI entry point.

Inspect the tool catalog a deployment would serve without starting the MCP
server:

    toolgate list-tools                 # tierless view of the current env
    toolgate list-tools --export        # every tool, canonical schemas
    toolgate list-tools --tool NAME     # one tool's served schema
    toolgate list-tools --env           # policy variables in effect
    toolgate explain NAME               # why NAME is hidden
"""

import json
import os
from typing import List, NoReturn, Optional, Tuple

import click

from toolgate_mcp.cli.output import emit_error, emit_success
from toolgate_mcp.config import ENV_PREFIX, ServerConfig
from toolgate_mcp.core.errors import RegistryLoadError, ToolNotFoundError
from toolgate_mcp.core.loader import load_registries
from toolgate_mcp.core.registry import RegistryAggregator, ToolDefinition

POLICY_VARIABLES = (
    "DENIED_ACTIONS",
    "DENIED_TOOLS_REGEX",
    "READ_ONLY_MODE",
    "SCHEMA_MODE",
)
OVERRIDE_FAMILIES = ("TOOL_", "ACTION_", "PARAM_")


def _fail(as_json: bool, message: str, code: str, error_type: str, **data) -> NoReturn:
    if as_json:
        emit_error(message, code, error_type=error_type, data=data or None)
    raise click.ClickException(message)


def _build_aggregator(ctx: click.Context, as_json: bool) -> RegistryAggregator:
    modules: List[str] = ctx.obj["modules"]
    try:
        registries = load_registries(modules)
    except RegistryLoadError as e:
        _fail(
            as_json,
            str(e),
            "INTERNAL_ERROR",
            "internal",
            module=e.module_path,
        )
    return RegistryAggregator(registries)


def _policy_environment(aggregator: RegistryAggregator) -> List[Tuple[str, str]]:
    rows: List[Tuple[str, str]] = []
    for suffix in POLICY_VARIABLES:
        name = f"{ENV_PREFIX}{suffix}"
        rows.append((name, os.environ.get(name, "")))

    override_prefixes = tuple(f"{ENV_PREFIX}{family}" for family in OVERRIDE_FAMILIES)
    for name in sorted(os.environ):
        if name.startswith(override_prefixes) and os.environ[name]:
            rows.append((name, os.environ[name]))

    seen = set()
    for registry in aggregator.registries:
        gate = registry.gate
        if gate is None or gate.env_var in seen:
            continue
        seen.add(gate.env_var)
        value = os.environ.get(gate.env_var)
        rows.append(
            (gate.env_var, value if value is not None else f"{gate.default_value} (default)")
        )
    return rows


@click.group()
@click.option(
    "--registry-module",
    "-m",
    "registry_modules",
    multiple=True,
    help="Dotted path of an entity registry module (repeatable)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=False),
    help="Path to a toolgate-mcp.toml config file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    registry_modules: Tuple[str, ...],
    config_file: Optional[str],
) -> None:
    """toolgate - inspect the policy-filtered MCP tool catalog."""
    config = ServerConfig.from_env(config_file)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["modules"] = list(registry_modules) or config.registry_modules


@cli.command("list-tools")
@click.option("--export", is_flag=True, help="List every tool with its canonical schema")
@click.option("--json", "as_json", is_flag=True, help="Emit the response envelope")
@click.option("--tool", "tool_name", help="Show the schema of a single tool")
@click.option("--env", "show_env", is_flag=True, help="Show the policy variables in effect")
@click.pass_context
def list_tools(
    ctx: click.Context,
    export: bool,
    as_json: bool,
    tool_name: Optional[str],
    show_env: bool,
) -> None:
    """List the tools the current environment would serve."""
    aggregator = _build_aggregator(ctx, as_json)

    if show_env:
        rows = _policy_environment(aggregator)
        if as_json:
            emit_success({"environment": dict(rows)})
        else:
            for name, value in rows:
                click.echo(f"{name}={value}")
        return

    view = "unfiltered" if export else "tierless"
    definitions: List[ToolDefinition] = (
        aggregator.get_all_tool_definitions_unfiltered()
        if export
        else aggregator.get_all_tool_definitions_tierless()
    )

    if tool_name:
        match = next((d for d in definitions if d.name == tool_name), None)
        if match is None:
            _fail(
                as_json,
                f"Tool '{tool_name}' not found in the {view} view",
                "NOT_FOUND",
                "not_found",
                tool=tool_name,
                view=view,
            )
        if as_json:
            emit_success({"tool": match.to_dict(), "view": view})
        else:
            click.echo(f"{match.name}: {match.description}")
            click.echo(json.dumps(match.input_schema, indent=2))
        return

    if as_json:
        emit_success(
            {
                "tools": [d.to_dict() for d in definitions],
                "count": len(definitions),
                "view": view,
            }
        )
        return

    for definition in definitions:
        click.echo(f"{definition.name}: {definition.description}")
    click.echo(f"{len(definitions)} tools ({view})")


@cli.command("explain")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Emit the response envelope")
@click.pass_context
def explain(ctx: click.Context, name: str, as_json: bool) -> None:
    """Explain why a tool is missing from the runtime catalog."""
    aggregator = _build_aggregator(ctx, as_json)

    try:
        decision = aggregator.explain_tool(name)
    except ToolNotFoundError as e:
        _fail(as_json, str(e), "NOT_FOUND", "not_found", tool=name)

    if decision is None:
        if as_json:
            emit_success({"tool": name, "available": True})
        else:
            click.echo(f"{name}: available")
        return

    if as_json:
        emit_success({"available": False, **decision.to_dict()})
        return

    line = f"{name}: hidden ({decision.reason.value}) by registry '{decision.registry}'"
    if decision.detail:
        line += f": {decision.detail}"
    click.echo(line)


if __name__ == "__main__":
    cli()
