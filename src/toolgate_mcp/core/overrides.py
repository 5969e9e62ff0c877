"""
Denied-action and description-override parsing.

Turns environment-style key/value pairs into the lookup maps the schema
pipeline and the registry aggregator consult:

- ``TOOLGATE_DENIED_ACTIONS="manage_milestone:delete,browse_events:user"``
  becomes ``{"manage_milestone": {"delete"}, "browse_events": {"user"}}``.
- ``TOOLGATE_TOOL_<NAME>`` overrides a tool description.
- ``TOOLGATE_ACTION_<TOOL>_<ACTION>`` overrides an action description.
- ``TOOLGATE_PARAM_<TOOL>_<PARAM>`` overrides a parameter description.

Action and param keys are split at the last underscore, so tool names that
contain underscores stay intact (``ACTION_MANAGE_MILESTONE_DELETE`` maps to
``manage_milestone:delete``). All keys are stored lower-cased.

None of the parsers raise. Malformed entries are logged and skipped so a
misconfigured deployment still serves its catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "TOOLGATE_"

DeniedActionsIndex = Dict[str, FrozenSet[str]]


@dataclass(frozen=True)
class OverrideMaps:
    """Description overrides keyed by lower-cased names.

    Attributes:
        tools: tool name -> tool description
        actions: "tool:action" -> action description
        params: "tool:param" -> parameter description
    """

    tools: Dict[str, str] = field(default_factory=dict)
    actions: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)

    def tool_description(self, tool_name: str) -> Optional[str]:
        return self.tools.get(tool_name.lower())

    def action_description(self, tool_name: str, action: str) -> Optional[str]:
        return self.actions.get(f"{tool_name.lower()}:{action.lower()}")

    def param_description(self, tool_name: str, param: str) -> Optional[str]:
        return self.params.get(f"{tool_name.lower()}:{param.lower()}")

    def has_schema_overrides(self, tool_name: str) -> bool:
        """Whether any action- or param-level override targets this tool."""
        prefix = f"{tool_name.lower()}:"
        return any(key.startswith(prefix) for key in self.actions) or any(
            key.startswith(prefix) for key in self.params
        )

    def __len__(self) -> int:
        return len(self.tools) + len(self.actions) + len(self.params)


def parse_denied_actions(raw: Optional[str]) -> DeniedActionsIndex:
    """Parse a comma-separated list of ``tool:action`` pairs.

    Args:
        raw: Raw variable value (may be None or empty)

    Returns:
        Mapping of lower-cased tool name to the set of denied action names
    """
    if not raw:
        return {}

    collected: Dict[str, set] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue

        tool, sep, action = entry.partition(":")
        tool = tool.strip().lower()
        action = action.strip().lower()
        if not sep or not tool or not action:
            logger.debug(
                "Skipping malformed denied action entry: %r",
                entry,
                extra={"entry": entry},
            )
            continue

        collected.setdefault(tool, set()).add(action)

    return {tool: frozenset(actions) for tool, actions in collected.items()}


def _split_last_underscore(suffix: str) -> Optional[tuple]:
    head, sep, tail = suffix.rpartition("_")
    if not sep or not head or not tail:
        return None
    return head.lower(), tail.lower()


def parse_description_overrides(
    environ: Mapping[str, Optional[str]],
    prefix: str = DEFAULT_PREFIX,
) -> OverrideMaps:
    """Collect the three override families from an environment mapping.

    Args:
        environ: Environment-like mapping (usually ``os.environ``)
        prefix: Variable prefix shared by the override families

    Returns:
        OverrideMaps with lower-cased keys; empty values are ignored
    """
    tool_prefix = f"{prefix}TOOL_"
    action_prefix = f"{prefix}ACTION_"
    param_prefix = f"{prefix}PARAM_"

    tools: Dict[str, str] = {}
    actions: Dict[str, str] = {}
    params: Dict[str, str] = {}

    for key, value in environ.items():
        if not value:
            continue

        if key.startswith(tool_prefix):
            name = key[len(tool_prefix):]
            if name:
                tools[name.lower()] = value
        elif key.startswith(action_prefix) or key.startswith(param_prefix):
            is_action = key.startswith(action_prefix)
            suffix = key[len(action_prefix if is_action else param_prefix):]
            split = _split_last_underscore(suffix)
            if split is None:
                logger.debug(
                    "Skipping override without tool/name separator: %s",
                    key,
                    extra={"variable": key},
                )
                continue
            tool, name = split
            target = actions if is_action else params
            target[f"{tool}:{name}"] = value

    if tools or actions or params:
        logger.debug(
            "Loaded description overrides: %d tool, %d action, %d param",
            len(tools),
            len(actions),
            len(params),
        )

    return OverrideMaps(tools=tools, actions=actions, params=params)


def has_overrides_for(maps: OverrideMaps, tool_name: str) -> bool:
    """Whether ``maps`` carries any description override for ``tool_name``."""
    return maps.tool_description(tool_name) is not None or maps.has_schema_overrides(
        tool_name
    )


def is_action_denied(index: DeniedActionsIndex, tool_name: str, action: str) -> bool:
    """Check whether ``action`` is denied for ``tool_name`` (case-insensitive)."""
    denied = index.get(tool_name.lower())
    if not denied:
        return False
    return action.lower() in denied


def get_allowed_actions(
    index: DeniedActionsIndex,
    tool_name: str,
    actions: Iterable[str],
) -> List[str]:
    """Filter ``actions`` down to the ones not denied, keeping order and case."""
    denied = index.get(tool_name.lower())
    if not denied:
        return list(actions)
    return [action for action in actions if action.lower() not in denied]


__all__ = [
    "DEFAULT_PREFIX",
    "DeniedActionsIndex",
    "OverrideMaps",
    "parse_denied_actions",
    "parse_description_overrides",
    "has_overrides_for",
    "is_action_denied",
    "get_allowed_actions",
]
