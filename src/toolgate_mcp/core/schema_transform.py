"""
Tool schema transformation pipeline.

Canonical tool schemas are discriminated unions: a ``oneOf`` list of object
branches, each tagged by a literal ``action`` property. Before a schema is
served it goes through three stages:

1. Filter denied actions (drop branches, or enum literals for legacy flat
   schemas).
2. Apply description overrides (action- and param-level).
3. Flatten the union into a single object when the effective schema mode
   is ``flat``.

The transformer never mutates its input and applying it twice under the
same policy yields the same schema.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from toolgate_mcp.core.policy import PolicySnapshot
from toolgate_mcp.core.schema_mode import SchemaMode, SchemaModeState

logger = logging.getLogger(__name__)

ACTION_PROPERTY = "action"
REQUIRED_FOR_MARKER = "Required for"

Schema = Dict[str, Any]


@dataclass(frozen=True)
class SchemaBranch:
    """One variant of a discriminated union, keyed by its action identity.

    ``action`` is None for branches that carry no ``const`` or singleton
    ``enum`` action; those branches are never filtered.
    """

    action: Optional[str]
    schema: Schema

    @property
    def properties(self) -> Dict[str, Any]:
        props = self.schema.get("properties")
        return props if isinstance(props, dict) else {}

    @property
    def required(self) -> List[str]:
        return list(self.schema.get("required") or [])


def action_identity(branch: Any) -> Optional[str]:
    """Return the literal action a union branch is tagged with, if any."""
    if not isinstance(branch, dict):
        return None
    props = branch.get("properties")
    if not isinstance(props, dict):
        return None
    action = props.get(ACTION_PROPERTY)
    if not isinstance(action, dict):
        return None

    const = action.get("const")
    if isinstance(const, str) and const:
        return const
    enum = action.get("enum")
    if isinstance(enum, list) and len(enum) == 1 and isinstance(enum[0], str):
        return enum[0]
    return None


def parse_branches(schema: Schema) -> List[SchemaBranch]:
    """Split a union schema's ``oneOf`` list into tagged branches."""
    branches = schema.get("oneOf")
    if not isinstance(branches, list):
        return []
    return [
        SchemaBranch(action=action_identity(b), schema=b)
        for b in branches
        if isinstance(b, dict)
    ]


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


def _flat_action_enum(schema: Schema) -> Optional[List[Any]]:
    props = schema.get("properties")
    if not isinstance(props, dict):
        return None
    action = props.get(ACTION_PROPERTY)
    if not isinstance(action, dict):
        return None
    enum = action.get("enum")
    return enum if isinstance(enum, list) else None


def extract_actions_from_schema(schema: Schema) -> List[str]:
    """List the action names a schema declares.

    Flat schemas report their ``action`` enum; unions report the identity
    of each tagged branch, in branch order.
    """
    enum = _flat_action_enum(schema)
    if enum is not None:
        return [value for value in enum if isinstance(value, str)]
    return [b.action for b in parse_branches(schema) if b.action is not None]


def should_remove_tool(
    policy: PolicySnapshot,
    tool_name: str,
    actions: List[str],
) -> bool:
    """Whether every declared action of ``tool_name`` is denied."""
    denied = policy.denied_actions_for(tool_name)
    if not denied or not actions:
        return False
    return all(action.lower() in denied for action in actions)


def _override_applied(description: Any, override: str) -> bool:
    if not isinstance(description, str):
        return False
    return description == override or description.startswith(
        f"{override} {REQUIRED_FOR_MARKER}"
    )


def _action_list_description(actions: List[str]) -> str:
    return f"Action to perform: {', '.join(actions)}"


class SchemaTransformer:
    """Applies one policy snapshot to tool schemas."""

    def __init__(
        self,
        policy: PolicySnapshot,
        mode_state: Optional[SchemaModeState] = None,
    ):
        self.policy = policy
        self.mode_state = mode_state or SchemaModeState(policy.schema_mode)

    def transform(self, tool_name: str, schema: Schema) -> Schema:
        """Run the full pipeline for one tool and return a new schema."""
        result = self.filter_denied_actions(tool_name, schema)
        result = self.apply_description_overrides(tool_name, result)

        if self.mode_state.effective_mode() is SchemaMode.FLAT and parse_branches(
            result
        ):
            result = self.flatten(result)
            result = self._reapply_action_override(tool_name, result)

        if result is schema:
            result = copy.deepcopy(schema)
        return result

    # Stage A

    def filter_denied_actions(self, tool_name: str, schema: Schema) -> Schema:
        denied = self.policy.denied_actions_for(tool_name)
        if not denied:
            return schema

        if isinstance(schema.get("oneOf"), list):
            return self._filter_union(tool_name, schema, denied)
        if _flat_action_enum(schema) is not None:
            return self._filter_flat(tool_name, schema, denied)
        return schema

    def _filter_union(self, tool_name: str, schema: Schema, denied: frozenset) -> Schema:
        kept: List[Schema] = []
        for branch in schema["oneOf"]:
            identity = action_identity(branch)
            if identity is not None and identity.lower() in denied:
                logger.debug(
                    "Tool '%s': filtered out action '%s' from schema",
                    tool_name,
                    identity,
                    extra={"tool": tool_name, "action": identity},
                )
                continue
            kept.append(branch)

        if not kept:
            logger.warning(
                "Tool '%s': all actions filtered out",
                tool_name,
                extra={"tool": tool_name},
            )
            return {"type": "object", "properties": {}}

        if len(kept) == len(schema["oneOf"]):
            return schema

        result = {k: v for k, v in schema.items() if k != "oneOf"}
        result = copy.deepcopy(result)
        result["oneOf"] = copy.deepcopy(kept)
        return result

    def _filter_flat(self, tool_name: str, schema: Schema, denied: frozenset) -> Schema:
        original = _flat_action_enum(schema) or []
        allowed = [
            value
            for value in original
            if not (isinstance(value, str) and value.lower() in denied)
        ]

        if not allowed:
            # Legacy flat schemas keep their enum rather than advertise nothing
            logger.warning(
                "Tool '%s': all actions filtered out from flat schema, leaving it unchanged",
                tool_name,
                extra={"tool": tool_name},
            )
            return schema
        if len(allowed) == len(original):
            return schema

        result = copy.deepcopy(schema)
        action = result["properties"][ACTION_PROPERTY]
        action["enum"] = allowed
        action["description"] = _action_list_description([str(a) for a in allowed])
        logger.debug(
            "Tool '%s': filtered flat schema actions %s -> %s",
            tool_name,
            original,
            allowed,
        )
        return result

    # Stage B

    def apply_description_overrides(self, tool_name: str, schema: Schema) -> Schema:
        overrides = self.policy.overrides
        if not overrides.has_schema_overrides(tool_name):
            return schema

        result = copy.deepcopy(schema)
        branches = result.get("oneOf")
        if isinstance(branches, list):
            for branch in branches:
                if not isinstance(branch, dict):
                    continue
                self._override_branch_description(tool_name, branch)
                props = branch.get("properties")
                if isinstance(props, dict):
                    self._override_properties(tool_name, props)
            return result

        props = result.get("properties")
        if isinstance(props, dict):
            self._override_properties(tool_name, props)
        return result

    def _override_branch_description(self, tool_name: str, branch: Schema) -> None:
        identity = action_identity(branch)
        if identity is None or identity.lower() == ACTION_PROPERTY:
            return
        text = self.policy.overrides.action_description(tool_name, identity)
        if text and not _override_applied(branch.get("description"), text):
            branch["description"] = text

    def _override_properties(self, tool_name: str, props: Dict[str, Any]) -> None:
        overrides = self.policy.overrides
        for name, prop in props.items():
            if not isinstance(prop, dict):
                continue

            if name == ACTION_PROPERTY:
                text = self._action_property_override(tool_name)
            else:
                text = overrides.param_description(tool_name, name)

            if text and not _override_applied(prop.get("description"), text):
                prop["description"] = text
                logger.debug(
                    "Applied description override for '%s.%s'",
                    tool_name,
                    name,
                    extra={"tool": tool_name, "property": name},
                )

    # Stage C

    def flatten(self, schema: Schema) -> Schema:
        """Merge a union's branches into one object schema."""
        branches = parse_branches(schema)
        if not branches:
            return schema

        action_values: List[str] = []
        merged: Dict[str, Dict[str, Any]] = {}
        declared_by: Dict[str, List[SchemaBranch]] = {}
        required_everywhere: Optional[List[str]] = None

        for branch in branches:
            props = branch.properties
            if not props:
                continue

            action = props.get(ACTION_PROPERTY)
            if isinstance(action, dict):
                if isinstance(action.get("const"), str):
                    action_values.append(action["const"])
                elif isinstance(action.get("enum"), list):
                    action_values.extend(v for v in action["enum"] if isinstance(v, str))

            for name, definition in props.items():
                if name == ACTION_PROPERTY:
                    continue
                declared_by.setdefault(name, []).append(branch)
                if name not in merged:
                    merged[name] = copy.deepcopy(definition) if isinstance(definition, dict) else {}
                    continue
                incoming = definition.get("description") if isinstance(definition, dict) else None
                existing = merged[name].get("description") or ""
                if isinstance(incoming, str) and len(incoming) > len(existing):
                    merged[name]["description"] = incoming

            branch_required = [
                r for r in branch.required if r != ACTION_PROPERTY and r in props
            ]
            if required_everywhere is None:
                required_everywhere = branch_required
            else:
                required_everywhere = [r for r in required_everywhere if r in branch_required]

        actions = _dedupe(action_values)
        flat: Schema = {
            "type": "object",
            "properties": {
                ACTION_PROPERTY: {
                    "type": "string",
                    "enum": actions,
                    "description": _action_list_description(actions),
                },
                **merged,
            },
            "required": [ACTION_PROPERTY, *(required_everywhere or [])],
        }

        total = len(branches)
        for name, owners in declared_by.items():
            if len(owners) >= total:
                continue
            named = [b.action for b in owners if b.action is not None]
            if not named:
                continue
            prop = flat["properties"][name]
            current = prop.get("description") or ""
            if REQUIRED_FOR_MARKER in current:
                continue
            quoted = ", ".join(f"'{a}'" for a in named)
            clause = f"{REQUIRED_FOR_MARKER} {quoted} action(s)."
            prop["description"] = f"{current} {clause}" if current else clause

        if "$schema" in schema:
            flat["$schema"] = schema["$schema"]

        return flat

    def _action_property_override(self, tool_name: str) -> Optional[str]:
        overrides = self.policy.overrides
        return overrides.action_description(
            tool_name, ACTION_PROPERTY
        ) or overrides.param_description(tool_name, ACTION_PROPERTY)

    def _reapply_action_override(self, tool_name: str, schema: Schema) -> Schema:
        text = self._action_property_override(tool_name)
        if text:
            schema["properties"][ACTION_PROPERTY]["description"] = text
        return schema


__all__ = [
    "SchemaBranch",
    "SchemaTransformer",
    "action_identity",
    "parse_branches",
    "extract_actions_from_schema",
    "should_remove_tool",
]
