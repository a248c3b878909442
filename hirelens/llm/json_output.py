"""
hirelens/llm/json_output.py

Decoding of JSON objects out of free-form model text.

Models asked for "ONLY valid JSON" still wrap it in ```json fences, prepend a
sentence, or return nothing at all. parse_model_json() never raises; it returns
either Parsed(value) or ParseFailed(raw, reason) and the caller decides what the
placeholder looks like.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Union

from hirelens.errors import ParseError

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Parsed:
    value: Dict[str, Any]


@dataclass(frozen=True)
class ParseFailed:
    raw: str
    reason: str


ParseResult = Union[Parsed, ParseFailed]


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def _decode_object(text: str) -> Dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def parse_model_json(raw: str, *, extract_object: bool = False) -> ParseResult:
    """
    Strip fences, trim, decode.

    extract_object=True additionally retries on the outermost {...} span with
    line breaks collapsed, for prompts where models like to add prose around
    the object.
    """
    raw = raw or ""
    cleaned = strip_code_fences(raw)
    if not cleaned:
        return ParseFailed(raw=raw, reason="empty response")

    try:
        return Parsed(_decode_object(cleaned))
    except ValueError as exc:
        first_error = str(exc)

    if extract_object:
        m = _OBJECT_RE.search(cleaned)
        if m:
            candidate = " ".join(m.group(0).split())
            try:
                return Parsed(_decode_object(candidate))
            except ValueError as exc:
                return ParseFailed(raw=raw, reason=str(exc))
        return ParseFailed(raw=raw, reason="no JSON object found")

    return ParseFailed(raw=raw, reason=first_error)


def require_model_json(raw: str, *, extract_object: bool = False) -> Dict[str, Any]:
    """Strict variant of parse_model_json: raises ParseError instead of returning ParseFailed."""
    result = parse_model_json(raw, extract_object=extract_object)
    if isinstance(result, ParseFailed):
        raise ParseError(result.reason)
    return result.value
