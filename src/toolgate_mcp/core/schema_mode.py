"""
Schema mode resolution.

A tool schema is served either as a discriminated union (``oneOf`` branches
keyed by ``action``) or flattened into a single object. The configured mode
comes from ``TOOLGATE_SCHEMA_MODE``; in ``auto`` mode the connecting client's
self-reported name picks one.

The detected mode lives in a single :class:`SchemaModeState` owned by the
server process. It is not keyed by session: when several clients share one
transport, the last client to initialize decides the mode for all of them.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SchemaMode(str, Enum):
    """How tool input schemas are presented to clients."""

    FLAT = "flat"
    DISCRIMINATED = "discriminated"
    AUTO = "auto"


# Client families; matched exactly or as "<family>-..." prefixes
_CLIENT_FAMILIES = (
    ("mcp-inspector", SchemaMode.DISCRIMINATED),
    ("inspector", SchemaMode.DISCRIMINATED),
    ("claude", SchemaMode.FLAT),
    ("cursor", SchemaMode.FLAT),
)


def parse_schema_mode(raw: Optional[str]) -> SchemaMode:
    """Parse a configured schema mode; unknown or empty values mean flat."""
    if not raw:
        return SchemaMode.FLAT
    value = raw.strip().lower()
    try:
        return SchemaMode(value)
    except ValueError:
        logger.debug("Unknown schema mode %r, using flat", raw)
        return SchemaMode.FLAT


def detect_schema_mode(client_name: Optional[str]) -> SchemaMode:
    """Pick a schema mode from a client's self-reported name.

    >>> detect_schema_mode("claude-ai")
    <SchemaMode.FLAT: 'flat'>
    >>> detect_schema_mode("mcp-inspector-v2")
    <SchemaMode.DISCRIMINATED: 'discriminated'>
    """
    if not client_name:
        return SchemaMode.FLAT

    name = client_name.strip().lower()
    for family, mode in _CLIENT_FAMILIES:
        if name == family or name.startswith(f"{family}-"):
            return mode
    return SchemaMode.FLAT


class SchemaModeState:
    """Configured schema mode plus the mode detected from the last client.

    Owned by the server and shared by every session it serves.
    """

    def __init__(self, configured: SchemaMode = SchemaMode.FLAT):
        self.configured = configured
        self._detected: Optional[SchemaMode] = None
        self._lock = threading.Lock()

    @property
    def detected(self) -> Optional[SchemaMode]:
        return self._detected

    def on_client_initialized(self, client_name: Optional[str]) -> SchemaMode:
        """Record a client's name and return the resulting effective mode.

        Detection only happens when the configured mode is ``auto``.
        """
        if self.configured is SchemaMode.AUTO:
            mode = detect_schema_mode(client_name)
            with self._lock:
                previous = self._detected
                self._detected = mode
            if previous is not None and previous is not mode:
                logger.warning(
                    "Schema mode switched from %s to %s by client %r; "
                    "the detected mode is shared by all sessions",
                    previous.value,
                    mode.value,
                    client_name,
                )
            else:
                logger.info(
                    "Detected schema mode %s for client %r",
                    mode.value,
                    client_name,
                    extra={"client": client_name, "schema_mode": mode.value},
                )
        return self.effective_mode()

    def with_configured(self, configured: SchemaMode) -> "SchemaModeState":
        """Copy of this state with a different configured mode."""
        state = SchemaModeState(configured)
        state._detected = self._detected
        return state

    def clear(self) -> None:
        with self._lock:
            self._detected = None

    def effective_mode(self) -> SchemaMode:
        if self.configured is not SchemaMode.AUTO:
            return self.configured
        detected = self._detected
        return detected if detected is not None else SchemaMode.FLAT


__all__ = [
    "SchemaMode",
    "SchemaModeState",
    "parse_schema_mode",
    "detect_schema_mode",
]
