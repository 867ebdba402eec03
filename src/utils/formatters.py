"""
Response formatting helpers for MCP tool output.
"""

import json
from typing import Any, Mapping


def format_json_response(payload: Mapping[str, Any]) -> str:
    """Serialize a tool payload as JSON text.

    Non-ASCII characters are kept as-is; null values are preserved so
    clients always see every key.
    """
    return json.dumps(payload, ensure_ascii=False)
