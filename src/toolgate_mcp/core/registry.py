"""
Tool registries and the catalog aggregator.

Entity registries group related tools behind an optional feature gate.
:class:`RegistryAggregator` combines them and answers three questions:

- Runtime view: which tools does this process serve right now? Built once
  into an immutable snapshot and rebuilt by ``refresh_cache()``. A policy
  passed to the constructor stays in force across refreshes.
- Tierless view: which tools would be served by the current environment,
  ignoring the version/tier capability oracle? Re-reads the environment on
  every call; used for documentation and export.
- Unfiltered view: every tool of every registry with its canonical schema.

Served schemas are copies; mutating one never reaches the registries.

Runtime filtering order, per tool:

1. Feature gate of the owning registry (and of the tool itself)
2. Read-only mode: keep only names the included registries declare read-only
3. Denied-tools regex
4. Capability oracle
5. All actions denied
6. Schema transform, then the tool description override
"""

from __future__ import annotations

import copy
import inspect
import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from toolgate_mcp.core.errors import ActionDeniedError, ToolNotFoundError
from toolgate_mcp.core.overrides import is_action_denied
from toolgate_mcp.core.policy import PolicySnapshot
from toolgate_mcp.core.schema_mode import SchemaModeState
from toolgate_mcp.core.schema_transform import (
    SchemaTransformer,
    extract_actions_from_schema,
    should_remove_tool,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class FeatureGate:
    """Boolean environment switch enabling a group of tools.

    Attributes:
        env_var: Variable name, e.g. ``USE_MILESTONE``
        default_value: Value used when the variable is unset
    """

    env_var: str
    default_value: bool = True


@dataclass
class ToolDefinition:
    """A tool as advertised to clients."""

    name: str
    description: str
    input_schema: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class EnhancedToolDefinition(ToolDefinition):
    """A tool definition plus the handler that executes it."""

    handler: Optional[ToolHandler] = None
    gate: Optional[FeatureGate] = None

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )


def _no_read_only_tools() -> Iterable[str]:
    return ()


@dataclass
class EntityRegistry:
    """Tools of one remote-service entity (milestones, refs, releases...).

    Attributes:
        name: Registry name used in logs and drop explanations
        tools: Tool name -> definition, in registration order
        read_only_tools: Returns the names that are safe in read-only mode
        gate: Optional feature gate for the whole registry
    """

    name: str
    tools: Dict[str, EnhancedToolDefinition] = field(default_factory=dict)
    read_only_tools: Callable[[], Iterable[str]] = _no_read_only_tools
    gate: Optional[FeatureGate] = None

    @classmethod
    def from_tools(
        cls,
        name: str,
        tools: Iterable[EnhancedToolDefinition],
        read_only: Iterable[str] = (),
        gate: Optional[FeatureGate] = None,
    ) -> "EntityRegistry":
        read_only_names = tuple(read_only)
        return cls(
            name=name,
            tools={tool.name: tool for tool in tools},
            read_only_tools=lambda: read_only_names,
            gate=gate,
        )

    def read_only_tool_names(self) -> List[str]:
        return list(self.read_only_tools())


@runtime_checkable
class CapabilityOracle(Protocol):
    """Answers whether the connected service supports a tool."""

    def is_tool_available(self, tool_name: str) -> bool: ...

    def get_unavailable_reason(self, tool_name: str) -> Optional[str]: ...


class AllToolsAvailable:
    """Oracle used when no version/tier detection is configured."""

    def is_tool_available(self, tool_name: str) -> bool:
        return True

    def get_unavailable_reason(self, tool_name: str) -> Optional[str]:
        return None


class DropReason(str, Enum):
    """Why a tool is missing from a filtered view."""

    GATE = "gate"
    READ_ONLY = "read_only"
    DENIED_REGEX = "denied_regex"
    UNAVAILABLE = "unavailable"
    ALL_ACTIONS_DENIED = "all_actions_denied"
    ERROR = "error"


@dataclass(frozen=True)
class DropDecision:
    tool: str
    registry: str
    reason: DropReason
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "registry": self.registry,
            "reason": self.reason.value,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class _CatalogSnapshot:
    policy: PolicySnapshot
    tools: Mapping[str, EnhancedToolDefinition]
    drops: Mapping[str, DropDecision]


class RegistryAggregator:
    """Combines entity registries into filtered, cached tool catalogs."""

    def __init__(
        self,
        registries: Sequence[EntityRegistry],
        oracle: Optional[CapabilityOracle] = None,
        policy: Optional[PolicySnapshot] = None,
        mode_state: Optional[SchemaModeState] = None,
    ):
        self.registries = list(registries)
        self.oracle: CapabilityOracle = oracle or AllToolsAvailable()
        self._fixed_policy = policy
        initial_policy = policy or PolicySnapshot.from_environ()
        self.mode_state = mode_state or SchemaModeState(initial_policy.schema_mode)
        self._index = self._index_tools(self.registries)
        self._lock = threading.Lock()
        self._snapshot = self._build(initial_policy, self.mode_state, use_oracle=True)

    @staticmethod
    def _index_tools(
        registries: Sequence[EntityRegistry],
    ) -> Dict[str, Tuple[EntityRegistry, EnhancedToolDefinition]]:
        index: Dict[str, Tuple[EntityRegistry, EnhancedToolDefinition]] = {}
        for registry in registries:
            for name, tool in registry.tools.items():
                if name in index:
                    logger.warning(
                        "Duplicate tool '%s' in registry '%s'; keeping the one from '%s'",
                        name,
                        registry.name,
                        index[name][0].name,
                        extra={"tool": name, "registry": registry.name},
                    )
                    continue
                index[name] = (registry, tool)
        return index

    # ------------------------------------------------------------------
    # Catalog construction
    # ------------------------------------------------------------------

    def _drop(
        self,
        drops: Dict[str, DropDecision],
        name: str,
        registry: EntityRegistry,
        reason: DropReason,
        detail: Optional[str] = None,
    ) -> None:
        drops[name] = DropDecision(
            tool=name, registry=registry.name, reason=reason, detail=detail
        )
        logger.debug(
            "Tool '%s' dropped: %s",
            name,
            reason.value,
            extra={"tool": name, "reason": reason.value, "registry": registry.name},
        )

    def _build(
        self,
        policy: PolicySnapshot,
        mode_state: SchemaModeState,
        use_oracle: bool,
    ) -> _CatalogSnapshot:
        transformer = SchemaTransformer(policy, mode_state)
        tools: Dict[str, EnhancedToolDefinition] = {}
        drops: Dict[str, DropDecision] = {}

        included = {
            registry.name
            for registry in self.registries
            if policy.gate_enabled(registry.gate)
        }
        read_only_names: set = set()
        if policy.read_only:
            for registry in self.registries:
                if registry.name in included:
                    read_only_names.update(registry.read_only_tool_names())

        for name, (registry, tool) in self._index.items():
            if registry.name not in included:
                self._drop(drops, name, registry, DropReason.GATE, registry.gate.env_var)
                continue
            if not policy.gate_enabled(tool.gate):
                self._drop(drops, name, registry, DropReason.GATE, tool.gate.env_var)
                continue
            if policy.read_only and name not in read_only_names:
                self._drop(drops, name, registry, DropReason.READ_ONLY)
                continue
            if policy.is_tool_name_denied(name):
                self._drop(
                    drops,
                    name,
                    registry,
                    DropReason.DENIED_REGEX,
                    policy.denied_tools_regex.pattern,
                )
                continue

            try:
                if use_oracle and not self.oracle.is_tool_available(name):
                    self._drop(
                        drops,
                        name,
                        registry,
                        DropReason.UNAVAILABLE,
                        self.oracle.get_unavailable_reason(name),
                    )
                    continue

                actions = extract_actions_from_schema(tool.input_schema)
                if should_remove_tool(policy, name, actions):
                    logger.warning(
                        "Tool '%s': every action is denied, removing tool",
                        name,
                        extra={"tool": name, "reason": DropReason.ALL_ACTIONS_DENIED.value},
                    )
                    self._drop(drops, name, registry, DropReason.ALL_ACTIONS_DENIED)
                    continue

                schema = transformer.transform(name, tool.input_schema)
            except Exception as e:
                logger.exception(
                    "Failed to prepare tool '%s'",
                    name,
                    extra={"tool": name, "reason": DropReason.ERROR.value},
                )
                self._drop(drops, name, registry, DropReason.ERROR, str(e))
                continue

            description = policy.overrides.tool_description(name) or tool.description
            tools[name] = replace(tool, description=description, input_schema=schema)

        logger.debug(
            "Built tool catalog: %d tools, %d dropped",
            len(tools),
            len(drops),
            extra={"tool_count": len(tools), "dropped_count": len(drops)},
        )
        return _CatalogSnapshot(policy=policy, tools=tools, drops=drops)

    def refresh_cache(self, policy: Optional[PolicySnapshot] = None) -> None:
        """Reload the policy and rebuild the runtime view.

        An explicit ``policy`` replaces the one in force. Without one, an
        aggregator constructed with a policy keeps it, along with the
        configured schema mode; otherwise the policy is re-read from the
        environment.
        """
        with self._lock:
            if policy is None and self._fixed_policy is not None:
                policy = self._fixed_policy
            else:
                if policy is None:
                    policy = PolicySnapshot.from_environ()
                else:
                    self._fixed_policy = policy
                self.mode_state.configured = policy.schema_mode
            snapshot = self._build(policy, self.mode_state, use_oracle=True)
            self._snapshot = snapshot
        logger.info(
            "Tool cache refreshed",
            extra={"tool_count": len(snapshot.tools)},
        )

    def rebuild_cache(self) -> None:
        """Rebuild the runtime view under the policy already in force.

        Used when only the effective schema mode has changed.
        """
        with self._lock:
            policy = self._snapshot.policy
            snapshot = self._build(policy, self.mode_state, use_oracle=True)
            self._snapshot = snapshot
        logger.info(
            "Tool cache rebuilt",
            extra={"tool_count": len(snapshot.tools)},
        )

    # ------------------------------------------------------------------
    # Runtime view
    # ------------------------------------------------------------------

    @property
    def policy(self) -> PolicySnapshot:
        return self._snapshot.policy

    def get_tool(self, name: str) -> Optional[EnhancedToolDefinition]:
        return self._snapshot.tools.get(name)

    def has_tool_handler(self, name: str) -> bool:
        tool = self._snapshot.tools.get(name)
        return tool is not None and tool.handler is not None

    def get_all_tool_definitions(self) -> List[ToolDefinition]:
        return [tool.definition() for tool in self._snapshot.tools.values()]

    def get_available_tool_names(self) -> List[str]:
        return list(self._snapshot.tools)

    async def execute_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """Run a tool's handler after checking it against the runtime view.

        Raises:
            ToolNotFoundError: ``name`` is not served by this process
            ActionDeniedError: ``args["action"]`` is denied for the tool
        """
        snapshot = self._snapshot
        tool = snapshot.tools.get(name)
        if tool is None or tool.handler is None:
            raise ToolNotFoundError(name)

        arguments = dict(args or {})
        action = arguments.get("action")
        if isinstance(action, str) and is_action_denied(
            snapshot.policy.denied_actions, name, action
        ):
            logger.warning(
                "Rejected denied action '%s' for tool '%s'",
                action,
                name,
                extra={"tool": name, "action": action},
            )
            raise ActionDeniedError(name, action)

        result = tool.handler(arguments)
        if inspect.isawaitable(result):
            result = await result
        return result

    def explain_tool(self, name: str) -> Optional[DropDecision]:
        """Why ``name`` is missing from the runtime view.

        Returns None when the tool is served.

        Raises:
            ToolNotFoundError: no registry defines ``name``
        """
        snapshot = self._snapshot
        if name in snapshot.tools:
            return None
        decision = snapshot.drops.get(name)
        if decision is None:
            raise ToolNotFoundError(name, reason="not defined by any registry")
        return decision

    # ------------------------------------------------------------------
    # Tierless and unfiltered views
    # ------------------------------------------------------------------

    def get_all_tool_definitions_tierless(self) -> List[ToolDefinition]:
        """Tools allowed by the current environment, without the oracle."""
        policy = PolicySnapshot.from_environ()
        mode_state = self.mode_state.with_configured(policy.schema_mode)
        snapshot = self._build(policy, mode_state, use_oracle=False)
        return [tool.definition() for tool in snapshot.tools.values()]

    def get_all_tool_definitions_unfiltered(self) -> List[ToolDefinition]:
        return [
            replace(tool.definition(), input_schema=copy.deepcopy(tool.input_schema))
            for _, tool in self._index.values()
        ]


__all__ = [
    "AllToolsAvailable",
    "CapabilityOracle",
    "DropDecision",
    "DropReason",
    "EnhancedToolDefinition",
    "EntityRegistry",
    "FeatureGate",
    "RegistryAggregator",
    "ToolDefinition",
    "ToolHandler",
]
