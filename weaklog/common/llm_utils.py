"""Shared utilities for LLM responses and error text."""

from __future__ import annotations

import json
import re

from .errors import ParseError

# Credential-shaped substrings, most specific first
_SECRET_PATTERNS = [
    (re.compile(r"sk-ant-[A-Za-z0-9_\-]+"), "[API_KEY_REDACTED]"),
    (re.compile(r"sk-[A-Za-z0-9_\-]{8,}"), "[API_KEY_REDACTED]"),
    (re.compile(r"AIza[A-Za-z0-9_\-]+"), "[API_KEY_REDACTED]"),
    (re.compile(r"(authorization\"?'?\s*[:=]\s*\"?'?)(bearer\s+)?[^\s\"',}]+", re.IGNORECASE),
     r"\1[REDACTED]"),
    (re.compile(r"bearer\s+[A-Za-z0-9._\-]+", re.IGNORECASE), "Bearer [REDACTED]"),
    (re.compile(r"(x-api-key\"?'?\s*[:=]\s*\"?'?)[^\s\"',}]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"([?&]key=)[^&\s]+"), r"\1[REDACTED]"),
]


def redact_secrets(text: str) -> str:
    """Strip API keys and authorization headers from ``text``."""
    if not text:
        return text
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _strip_fences(text: str) -> str:
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def extract_json_object(raw: str) -> dict:
    """Parse the JSON object in an LLM response.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Extract substring between first '{' and last '}', then json.loads

    Raises:
        ParseError: empty input, no object found, malformed or non-object JSON
    """
    if not raw or not raw.strip():
        raise ParseError("Empty response")

    text = _strip_fences(raw.strip())

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = raw.find("{")
        end = raw.rfind("}") + 1
        if start < 0 or end <= start:
            raise ParseError("No JSON object found in response")
        try:
            data = json.loads(raw[start:end])
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
