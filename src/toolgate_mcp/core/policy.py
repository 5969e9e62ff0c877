"""
Frozen snapshot of the catalog policies read from the environment.

Policy variables (prefix ``TOOLGATE_``):
- DENIED_ACTIONS: comma-separated ``tool:action`` pairs
- DENIED_TOOLS_REGEX: tools whose name matches are hidden
- READ_ONLY_MODE: expose only tools registries declare read-only
- SCHEMA_MODE: flat, discriminated or auto
- TOOL_* / ACTION_* / PARAM_*: description overrides

Feature-gate variables are named by each registry's ``FeatureGate`` and are
looked up in the same captured environment.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Mapping, Optional

from toolgate_mcp.config import parse_bool
from toolgate_mcp.core.overrides import (
    DEFAULT_PREFIX,
    DeniedActionsIndex,
    OverrideMaps,
    parse_denied_actions,
    parse_description_overrides,
)
from toolgate_mcp.core.schema_mode import SchemaMode, parse_schema_mode

if TYPE_CHECKING:
    from toolgate_mcp.core.registry import FeatureGate

logger = logging.getLogger(__name__)


def _compile_regex(raw: Optional[str], variable: str) -> Optional[re.Pattern[str]]:
    if not raw:
        return None
    try:
        return re.compile(raw)
    except re.error as e:
        logger.warning(
            "Ignoring invalid %s pattern %r: %s",
            variable,
            raw,
            e,
            extra={"variable": variable, "pattern": raw},
        )
        return None


@dataclass(frozen=True)
class PolicySnapshot:
    """Everything the catalog pipeline needs to know about the deployment."""

    denied_actions: DeniedActionsIndex = field(default_factory=dict)
    overrides: OverrideMaps = field(default_factory=OverrideMaps)
    read_only: bool = False
    denied_tools_regex: Optional[re.Pattern[str]] = None
    schema_mode: SchemaMode = SchemaMode.FLAT
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> "PolicySnapshot":
        """Capture the policy from ``environ`` (``os.environ`` by default)."""
        env: Dict[str, str] = dict(os.environ if environ is None else environ)

        regex_var = f"{prefix}DENIED_TOOLS_REGEX"
        snapshot = cls(
            denied_actions=parse_denied_actions(env.get(f"{prefix}DENIED_ACTIONS")),
            overrides=parse_description_overrides(env, prefix=prefix),
            read_only=parse_bool(env.get(f"{prefix}READ_ONLY_MODE")),
            denied_tools_regex=_compile_regex(env.get(regex_var), regex_var),
            schema_mode=parse_schema_mode(env.get(f"{prefix}SCHEMA_MODE")),
            environ=env,
        )
        logger.debug(
            "Loaded policy snapshot",
            extra={
                "read_only": snapshot.read_only,
                "denied_tools": sorted(snapshot.denied_actions),
                "schema_mode": snapshot.schema_mode.value,
                "override_count": len(snapshot.overrides),
            },
        )
        return snapshot

    def gate_enabled(self, gate: Optional["FeatureGate"]) -> bool:
        """Evaluate a feature gate; an unset variable falls back to its default."""
        if gate is None:
            return True
        raw = self.environ.get(gate.env_var)
        if raw is None or raw == "":
            return gate.default_value
        return parse_bool(raw)

    def denied_actions_for(self, tool_name: str) -> frozenset:
        return self.denied_actions.get(tool_name.lower(), frozenset())

    def is_tool_name_denied(self, tool_name: str) -> bool:
        """Whether the denied-tools regex matches anywhere in ``tool_name``."""
        if self.denied_tools_regex is None:
            return False
        return self.denied_tools_regex.search(tool_name) is not None


__all__ = ["PolicySnapshot"]
