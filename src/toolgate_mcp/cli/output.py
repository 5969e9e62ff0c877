"""Output helpers for the toolgate CLI.

``--json`` output goes through the same response-v2 envelope the MCP server
returns, so scripts can parse CLI and server results alike.
"""

import json
import sys
from typing import Any, Mapping, NoReturn, Optional, Sequence

from toolgate_mcp.core.responses import (
    error_response,
    generate_correlation_id,
    success_response,
)


def emit(data: Any) -> None:
    """Emit minified JSON to stdout."""
    print(json.dumps(data, separators=(",", ":"), default=str))


def emit_error(
    message: str,
    code: str = "INTERNAL_ERROR",
    *,
    error_type: str = "internal",
    remediation: Optional[str] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> NoReturn:
    """Emit an error envelope to stderr and exit with code 1."""
    response = error_response(
        message,
        data=data,
        error_code=code,
        error_type=error_type,
        remediation=remediation,
        request_id=generate_correlation_id("cli"),
    )
    print(response.to_json(), file=sys.stderr)
    sys.exit(1)


def emit_success(
    data: Any,
    *,
    warnings: Optional[Sequence[str]] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> None:
    """Emit a success envelope to stdout; non-dict data lands under ``result``."""
    payload = data if isinstance(data, dict) else {"result": data}
    response = success_response(
        data=payload,
        warnings=warnings,
        meta=meta,
        request_id=generate_correlation_id("cli"),
    )
    emit(response.to_dict())
