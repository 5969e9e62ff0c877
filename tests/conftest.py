"""
Root pytest configuration and shared fixtures.
"""

import json
import os
from typing import Any, Dict, Union
from unittest.mock import patch

import pytest
from mcp.types import TextContent

import sample_registries
from toolgate_mcp.core.policy import PolicySnapshot
from toolgate_mcp.core.registry import RegistryAggregator

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"

_POLICY_PREFIXES = ("TOOLGATE_", "USE_")


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from a tool result, handling both dict and TextContent."""
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(f"Expected dict or TextContent, got {type(result).__name__}")


@pytest.fixture(autouse=True)
def isolated_environment():
    """Strip policy and gate variables inherited from the host environment."""
    cleaned = {k: v for k, v in os.environ.items() if not k.startswith(_POLICY_PREFIXES)}
    with patch.dict(os.environ, cleaned, clear=True):
        yield


@pytest.fixture
def registries():
    return sample_registries.get_registry()


@pytest.fixture
def make_aggregator(registries):
    """Build an aggregator from the sample registries and a policy mapping."""

    def _make(env: Dict[str, str] = None, **kwargs) -> RegistryAggregator:
        policy = PolicySnapshot.from_environ(env or {})
        return RegistryAggregator(registries, policy=policy, **kwargs)

    return _make
