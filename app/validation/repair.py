from __future__ import annotations

import json
import re
from typing import Any

from json_repair import repair_json

from app.core.errors import SchemaViolation

_FENCE_RE = re.compile(r"^```[A-Za-z]*[ \t]*\r?\n?(?P<body>.*?)\r?\n?```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json fence and any chatter around the JSON body."""
    stripped = (text or "").strip()
    match = _FENCE_RE.match(stripped)
    if match:
        stripped = match.group("body").strip()
    if stripped and stripped[0] not in "{[":
        starts = [index for index in (stripped.find("{"), stripped.find("[")) if index >= 0]
        if starts:
            start = min(starts)
            end = max(stripped.rfind("}"), stripped.rfind("]"))
            if end > start:
                stripped = stripped[start : end + 1]
    return stripped


def repair(raw_text: str) -> str:
    """Return JSON text for an oracle reply; valid JSON passes through untouched.

    Malformed bodies (trailing commas, raw control characters in strings,
    single quotes) are rewritten by ``json_repair``.
    """
    candidate = strip_code_fence(raw_text)
    try:
        json.loads(candidate)
        return candidate
    except ValueError:
        return repair_json(candidate)


def parse_oracle_json(raw_text: str, *, stage: str | None = None) -> Any:
    candidate = repair(raw_text)
    try:
        payload = json.loads(candidate)
    except ValueError as exc:
        raise SchemaViolation(
            f"Oracle response is not valid JSON after repair: {exc}",
            code="malformed_json",
            stage=stage,
        ) from exc
    if not isinstance(payload, (dict, list)):
        raise SchemaViolation(
            f"Oracle response holds no JSON object or array (got {type(payload).__name__})",
            code="malformed_json",
            stage=stage,
        )
    return payload
