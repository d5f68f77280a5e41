"""
Structured header codec for entry documents.

A document is a YAML header fenced by ``---`` lines followed by the body:

    ---
    weaklog_id: 2026-01-27_001
    created: '2026-01-27T09:00:00+09:00'
    cooldown_days: 7
    status: cooling
    ---
    body text
"""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

FENCE = "---"


class FrontmatterError(ValueError):
    """Header present but not valid YAML mapping."""


def _normalize(value: Any) -> Any:
    # Unquoted timestamps come back from YAML as datetime objects
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def parse(text: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """Split a document into (header, body).

    Returns ``(None, text)`` when the document has no header.
    """
    if not text.startswith(FENCE + "\n") and not text.startswith(FENCE + "\r\n"):
        return None, text

    lines = text.splitlines(keepends=True)
    for i in range(1, len(lines)):
        if lines[i].rstrip("\r\n") == FENCE:
            header_raw = "".join(lines[1:i])
            body = "".join(lines[i + 1:])
            break
    else:
        return None, text

    try:
        header = yaml.safe_load(header_raw) or {}
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Malformed header: {e}") from e
    if not isinstance(header, dict):
        raise FrontmatterError("Header is not a mapping")

    return {k: _normalize(v) for k, v in header.items()}, body


def render(header: Dict[str, Any], body: str) -> str:
    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True, width=10_000)
    return f"{FENCE}\n{dumped}{FENCE}\n{body}"


def read(path: Path) -> Tuple[Optional[Dict[str, Any]], str]:
    return parse(Path(path).read_text(encoding="utf-8"))


def write(path: Path, header: Dict[str, Any], body: str) -> None:
    """Replace the document atomically via a sibling temp file."""
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(render(header, body), encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def merge(path: Path, updates: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``updates`` into the header, leaving the body untouched.

    A value of ``None`` removes the key. Returns the new header.
    """
    header, body = read(path)
    header = dict(header or {})
    for key, value in updates.items():
        if value is None:
            header.pop(key, None)
        else:
            header[key] = value
    write(path, header, body)
    return header
