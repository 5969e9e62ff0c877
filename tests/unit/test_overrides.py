"""
Tests for denied-action and description-override parsing.
"""

from toolgate_mcp.core.overrides import (
    OverrideMaps,
    get_allowed_actions,
    has_overrides_for,
    is_action_denied,
    parse_denied_actions,
    parse_description_overrides,
)


class TestParseDeniedActions:
    """Tests for parse_denied_actions."""

    def test_empty_and_none_yield_empty_index(self):
        assert parse_denied_actions(None) == {}
        assert parse_denied_actions("") == {}

    def test_groups_actions_by_tool(self):
        index = parse_denied_actions("a:x,b:y,b:z")
        assert index == {"a": frozenset({"x"}), "b": frozenset({"y", "z"})}

    def test_trims_and_lowercases(self):
        index = parse_denied_actions("  Manage_Milestone : DELETE , browse_events:User ")
        assert index == {
            "manage_milestone": frozenset({"delete"}),
            "browse_events": frozenset({"user"}),
        }

    def test_skips_malformed_entries(self):
        """Entries without a colon or with an empty side are ignored."""
        index = parse_denied_actions("nocolon,:action,tool:,,good:one")
        assert index == {"good": frozenset({"one"})}

    def test_splits_on_first_colon(self):
        index = parse_denied_actions("tool:act:ion")
        assert index == {"tool": frozenset({"act:ion"})}


class TestParseDescriptionOverrides:
    """Tests for parse_description_overrides."""

    def test_action_override_splits_at_last_underscore(self):
        maps = parse_description_overrides(
            {"TOOLGATE_ACTION_MANAGE_MILESTONE_DELETE": "Remove permanently"}
        )
        assert maps.actions == {"manage_milestone:delete": "Remove permanently"}

    def test_param_override_splits_at_last_underscore(self):
        maps = parse_description_overrides(
            {"TOOLGATE_PARAM_MANAGE_MILESTONE_TITLE": "Milestone name"}
        )
        assert maps.params == {"manage_milestone:title": "Milestone name"}

    def test_tool_override_keeps_full_name(self):
        maps = parse_description_overrides({"TOOLGATE_TOOL_BROWSE_REFS": "Refs"})
        assert maps.tools == {"browse_refs": "Refs"}

    def test_empty_values_are_not_set(self):
        maps = parse_description_overrides(
            {
                "TOOLGATE_TOOL_BROWSE_REFS": "",
                "TOOLGATE_ACTION_MANAGE_MILESTONE_DELETE": "",
            }
        )
        assert len(maps) == 0

    def test_suffix_without_underscore_is_skipped(self):
        maps = parse_description_overrides(
            {"TOOLGATE_ACTION_DELETE": "x", "TOOLGATE_PARAM_TITLE": "y"}
        )
        assert maps.actions == {}
        assert maps.params == {}

    def test_unrelated_variables_are_ignored(self):
        maps = parse_description_overrides(
            {"PATH": "/usr/bin", "TOOLGATE_DENIED_ACTIONS": "a:b"}
        )
        assert len(maps) == 0

    def test_custom_prefix(self):
        maps = parse_description_overrides(
            {"GITLAB_ACTION_MANAGE_MILESTONE_DELETE": "Remove"},
            prefix="GITLAB_",
        )
        assert maps.action_description("manage_milestone", "delete") == "Remove"


class TestOverrideMaps:
    """Tests for OverrideMaps lookups."""

    def test_lookups_are_case_insensitive(self):
        maps = OverrideMaps(
            tools={"browse_refs": "T"},
            actions={"manage_milestone:delete": "A"},
            params={"manage_milestone:title": "P"},
        )
        assert maps.tool_description("BROWSE_REFS") == "T"
        assert maps.action_description("Manage_Milestone", "Delete") == "A"
        assert maps.param_description("manage_milestone", "TITLE") == "P"

    def test_has_overrides_for(self):
        maps = OverrideMaps(
            tools={"browse_refs": "T"},
            params={"manage_milestone:title": "P"},
        )
        assert has_overrides_for(maps, "browse_refs")
        assert has_overrides_for(maps, "manage_milestone")
        assert not has_overrides_for(maps, "manage_pipeline")

    def test_schema_overrides_ignore_tool_level_text(self):
        maps = OverrideMaps(tools={"browse_refs": "T"})
        assert not maps.has_schema_overrides("browse_refs")


class TestActionChecks:
    """Tests for is_action_denied and get_allowed_actions."""

    def test_is_action_denied_case_insensitive(self):
        index = parse_denied_actions("manage_milestone:delete")
        assert is_action_denied(index, "MANAGE_MILESTONE", "Delete")
        assert not is_action_denied(index, "manage_milestone", "create")
        assert not is_action_denied(index, "browse_refs", "delete")

    def test_get_allowed_actions_preserves_order_and_case(self):
        index = parse_denied_actions("manage_milestone:delete")
        allowed = get_allowed_actions(
            index, "manage_milestone", ["Update", "DELETE", "create"]
        )
        assert allowed == ["Update", "create"]

    def test_get_allowed_actions_without_denials(self):
        assert get_allowed_actions({}, "tool", ["a", "b"]) == ["a", "b"]
