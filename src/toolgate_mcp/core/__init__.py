"""Core catalog functionality for toolgate-mcp."""

from toolgate_mcp.core.errors import (
    ActionDeniedError,
    RegistryLoadError,
    ToolgateError,
    ToolNotFoundError,
)
from toolgate_mcp.core.overrides import (
    OverrideMaps,
    get_allowed_actions,
    has_overrides_for,
    is_action_denied,
    parse_denied_actions,
    parse_description_overrides,
)
from toolgate_mcp.core.policy import PolicySnapshot
from toolgate_mcp.core.registry import (
    AllToolsAvailable,
    CapabilityOracle,
    DropDecision,
    DropReason,
    EnhancedToolDefinition,
    EntityRegistry,
    FeatureGate,
    RegistryAggregator,
    ToolDefinition,
)
from toolgate_mcp.core.schema_mode import (
    SchemaMode,
    SchemaModeState,
    detect_schema_mode,
    parse_schema_mode,
)
from toolgate_mcp.core.schema_transform import (
    SchemaBranch,
    SchemaTransformer,
    action_identity,
    extract_actions_from_schema,
    should_remove_tool,
)

__all__ = [
    # errors
    "ToolgateError",
    "ToolNotFoundError",
    "ActionDeniedError",
    "RegistryLoadError",
    # overrides
    "OverrideMaps",
    "parse_denied_actions",
    "parse_description_overrides",
    "is_action_denied",
    "get_allowed_actions",
    "has_overrides_for",
    # policy
    "PolicySnapshot",
    # schema mode
    "SchemaMode",
    "SchemaModeState",
    "parse_schema_mode",
    "detect_schema_mode",
    # schema transform
    "SchemaBranch",
    "SchemaTransformer",
    "action_identity",
    "extract_actions_from_schema",
    "should_remove_tool",
    # registry
    "AllToolsAvailable",
    "CapabilityOracle",
    "DropDecision",
    "DropReason",
    "EnhancedToolDefinition",
    "EntityRegistry",
    "FeatureGate",
    "RegistryAggregator",
    "ToolDefinition",
]
