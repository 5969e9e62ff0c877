"""
Tests for PolicySnapshot loading and feature gate evaluation.
"""

import os
from unittest.mock import patch

from toolgate_mcp.core.policy import PolicySnapshot
from toolgate_mcp.core.registry import FeatureGate
from toolgate_mcp.core.schema_mode import SchemaMode


class TestFromEnviron:
    """Tests for PolicySnapshot.from_environ."""

    def test_defaults(self):
        policy = PolicySnapshot.from_environ({})
        assert policy.denied_actions == {}
        assert len(policy.overrides) == 0
        assert policy.read_only is False
        assert policy.denied_tools_regex is None
        assert policy.schema_mode is SchemaMode.FLAT

    def test_reads_all_policy_variables(self):
        policy = PolicySnapshot.from_environ(
            {
                "TOOLGATE_DENIED_ACTIONS": "manage_milestone:delete",
                "TOOLGATE_DENIED_TOOLS_REGEX": "^manage_",
                "TOOLGATE_READ_ONLY_MODE": "true",
                "TOOLGATE_SCHEMA_MODE": "discriminated",
                "TOOLGATE_TOOL_BROWSE_REFS": "Refs",
            }
        )
        assert policy.denied_actions == {"manage_milestone": frozenset({"delete"})}
        assert policy.denied_tools_regex.pattern == "^manage_"
        assert policy.read_only is True
        assert policy.schema_mode is SchemaMode.DISCRIMINATED
        assert policy.overrides.tool_description("browse_refs") == "Refs"

    def test_reads_process_environment_by_default(self):
        with patch.dict(os.environ, {"TOOLGATE_READ_ONLY_MODE": "1"}):
            policy = PolicySnapshot.from_environ()
        assert policy.read_only is True

    def test_snapshot_does_not_track_later_changes(self):
        with patch.dict(os.environ, {"TOOLGATE_READ_ONLY_MODE": "true"}):
            policy = PolicySnapshot.from_environ()
        assert policy.read_only is True
        assert "TOOLGATE_READ_ONLY_MODE" not in os.environ

    def test_invalid_regex_is_treated_as_unset(self, caplog):
        policy = PolicySnapshot.from_environ({"TOOLGATE_DENIED_TOOLS_REGEX": "(["})
        assert policy.denied_tools_regex is None
        assert not policy.is_tool_name_denied("anything")
        assert "Ignoring invalid" in caplog.text

    def test_read_only_accepts_only_truthy_values(self):
        for value in ("false", "0", "no", "maybe"):
            policy = PolicySnapshot.from_environ({"TOOLGATE_READ_ONLY_MODE": value})
            assert policy.read_only is False


class TestToolNameChecks:
    """Tests for the denied-tools regex helpers."""

    def test_regex_matches_anywhere(self):
        policy = PolicySnapshot.from_environ({"TOOLGATE_DENIED_TOOLS_REGEX": "milestone"})
        assert policy.is_tool_name_denied("manage_milestone")
        assert not policy.is_tool_name_denied("browse_refs")

    def test_denied_actions_for_is_case_insensitive(self):
        policy = PolicySnapshot.from_environ(
            {"TOOLGATE_DENIED_ACTIONS": "manage_milestone:delete"}
        )
        assert policy.denied_actions_for("MANAGE_MILESTONE") == frozenset({"delete"})
        assert policy.denied_actions_for("browse_refs") == frozenset()


class TestGateEnabled:
    """Tests for PolicySnapshot.gate_enabled."""

    def test_no_gate_is_enabled(self):
        assert PolicySnapshot.from_environ({}).gate_enabled(None)

    def test_unset_gate_uses_default(self):
        policy = PolicySnapshot.from_environ({})
        assert policy.gate_enabled(FeatureGate("USE_MILESTONE", True))
        assert not policy.gate_enabled(FeatureGate("USE_PIPELINE", False))

    def test_set_gate_is_parsed(self):
        policy = PolicySnapshot.from_environ(
            {"USE_MILESTONE": "false", "USE_PIPELINE": "yes"}
        )
        assert not policy.gate_enabled(FeatureGate("USE_MILESTONE", True))
        assert policy.gate_enabled(FeatureGate("USE_PIPELINE", False))
