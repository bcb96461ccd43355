from __future__ import annotations

import json
from typing import Any


def extract_error_message(data: Any, fallback: str) -> str:
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return fallback


def parse_api_error_detail(details: str | None) -> dict | None:
    """Decode the JSON error body kept on ``ApiError.details``; None for text bodies."""
    if not details:
        return None
    try:
        data = json.loads(details)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
