"""extract and repair json from llm responses"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def strip_code_fence(text: str) -> Optional[str]:
    """return the body of the first ``` / ```json fence, or none"""
    match = CODE_FENCE.search(text)
    if match:
        return match.group(1).strip()
    return None


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def _first_balanced_span(text: str) -> Optional[str]:
    start = text.find("{")
    while start >= 0:
        end = _balanced_end(text, start)
        if end is not None:
            return text[start:end + 1]
        start = text.find("{", start + 1)
    return None


def extract_json_object(text: str, marker: Optional[str] = None) -> Optional[str]:
    """best-effort scan for a {...} span in prose.

    with a marker (e.g. '"summary"'), tries each '{' before an occurrence of
    the marker, earliest first, and returns the first balanced span that
    reaches past it. occurrences are tried in order, so a marker quoted in the
    prose ahead of the object does not hide it. when no span qualifies, or
    there is no marker, returns the first balanced span in the text.

    limitation: braces are counted blindly. a '{' or '}' inside a string value
    shifts the depth, so the span may be cut short or never close. a short span
    usually fails json.loads downstream; a span that never closes yields none.
    """
    if not text:
        return None

    marker_at = text.find(marker) if marker else -1
    while marker_at >= 0:
        start = text.find("{")
        while 0 <= start < marker_at:
            end = _balanced_end(text, start)
            if end is not None and end > marker_at:
                return text[start:end + 1]
            start = text.find("{", start + 1)
        marker_at = text.find(marker, marker_at + 1)

    return _first_balanced_span(text)


def _strip_comments(text: str) -> str:
    """drop // and /* */ comments that sit outside string literals"""
    out = []
    index = 0
    in_string = False
    length = len(text)
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
        elif text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline < 0 else newline
            continue
        elif text.startswith("/*", index):
            close = text.find("*/", index + 2)
            index = length if close < 0 else close + 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


def repair_json(text: str) -> str:
    """remove comments and trailing commas"""
    text = _strip_comments(text)
    text = TRAILING_COMMA.sub(r"\1", text)
    return text.strip()


def _loads(candidate: Optional[str]) -> Any:
    if candidate is None:
        return None
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(repair_json(candidate))
    except json.JSONDecodeError:
        return None


def parse_json_object(text: str, marker: Optional[str] = None) -> Optional[dict]:
    """recover a json object from a model reply, or none.

    order: the whole reply, a fenced block, then the brace scan. anything that
    does not decode to an object (lists, numbers, strings) counts as a miss.
    """
    if not text or not text.strip():
        return None

    stripped = text.strip()
    candidates = [stripped, strip_code_fence(stripped)]
    for candidate in candidates:
        parsed = _loads(candidate)
        if isinstance(parsed, dict):
            return parsed

    parsed = _loads(extract_json_object(stripped, marker))
    if isinstance(parsed, dict):
        return parsed
    return None
