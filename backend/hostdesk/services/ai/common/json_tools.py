"""Strict JSON object parsing for model output."""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1).strip() if match else stripped


def parse_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Return the JSON object in *text*, or ``None``.

    A single surrounding markdown code fence is tolerated; anything else
    around the object is not, so truncated or chatty output is rejected.
    """
    if not text or not text.strip():
        return None
    try:
        parsed = json.loads(strip_code_fence(text))
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None
