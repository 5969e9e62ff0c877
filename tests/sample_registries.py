"""Entity registries used across the test suite.

Importable as ``sample_registries`` so registry loading can be exercised
with a real dotted module path.
"""

from typing import Any, Dict, List

from toolgate_mcp.core.registry import (
    EnhancedToolDefinition,
    EntityRegistry,
    FeatureGate,
)


def _prop(description: str, type_: str = "string") -> Dict[str, Any]:
    return {"type": type_, "description": description}


def manage_milestone_schema() -> Dict[str, Any]:
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "oneOf": [
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "const": "create"},
                    "project": _prop("Project path"),
                    "title": _prop("Milestone title"),
                },
                "required": ["action", "project", "title"],
            },
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "const": "update"},
                    "project": _prop("Project path"),
                    "milestone_id": _prop("Milestone ID"),
                    "title": _prop("New milestone title, if renaming"),
                },
                "required": ["action", "project", "milestone_id"],
            },
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "enum": ["delete"]},
                    "project": _prop("Project path"),
                    "milestone_id": _prop("Milestone ID"),
                },
                "required": ["action", "project", "milestone_id"],
            },
        ],
    }


def browse_milestones_schema() -> Dict[str, Any]:
    return {
        "oneOf": [
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "const": "list"},
                    "project": _prop("Project path"),
                },
                "required": ["action", "project"],
            },
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "const": "get"},
                    "project": _prop("Project path"),
                    "milestone_id": _prop("Milestone ID"),
                },
                "required": ["action", "project", "milestone_id"],
            },
        ],
    }


def browse_refs_schema() -> Dict[str, Any]:
    # Legacy flat schema
    return {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": ["branches", "tags"],
                "description": "Which refs to list",
            },
            "project": _prop("Project path"),
        },
        "required": ["action", "project"],
    }


def manage_pipeline_schema() -> Dict[str, Any]:
    return {
        "oneOf": [
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "const": "retry"},
                    "pipeline_id": _prop("Pipeline ID"),
                },
                "required": ["action", "pipeline_id"],
            },
            {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "const": "cancel"},
                    "pipeline_id": _prop("Pipeline ID"),
                },
                "required": ["action", "pipeline_id"],
            },
        ],
    }


def _echo(tool_name: str):
    def handler(args: Dict[str, Any]) -> Dict[str, Any]:
        return {"tool": tool_name, "args": args}

    return handler


async def _manage_pipeline(args: Dict[str, Any]) -> Dict[str, Any]:
    return {"tool": "manage_pipeline", "status": "queued", "args": args}


def milestones_registry() -> EntityRegistry:
    return EntityRegistry.from_tools(
        "milestones",
        [
            EnhancedToolDefinition(
                name="browse_milestones",
                description="List and inspect project milestones",
                input_schema=browse_milestones_schema(),
                handler=_echo("browse_milestones"),
            ),
            EnhancedToolDefinition(
                name="manage_milestone",
                description="Create, update or delete a milestone",
                input_schema=manage_milestone_schema(),
                handler=_echo("manage_milestone"),
            ),
        ],
        read_only=["browse_milestones"],
        gate=FeatureGate(env_var="USE_MILESTONE", default_value=True),
    )


def refs_registry() -> EntityRegistry:
    return EntityRegistry.from_tools(
        "refs",
        [
            EnhancedToolDefinition(
                name="browse_refs",
                description="List branches and tags",
                input_schema=browse_refs_schema(),
                handler=_echo("browse_refs"),
            ),
        ],
        read_only=["browse_refs"],
    )


def pipelines_registry() -> EntityRegistry:
    return EntityRegistry.from_tools(
        "pipelines",
        [
            EnhancedToolDefinition(
                name="manage_pipeline",
                description="Retry or cancel a pipeline",
                input_schema=manage_pipeline_schema(),
                handler=_manage_pipeline,
            ),
        ],
        gate=FeatureGate(env_var="USE_PIPELINE", default_value=False),
    )


def get_registry() -> List[EntityRegistry]:
    return [milestones_registry(), refs_registry(), pipelines_registry()]
