"""Tolerant decoding of JSON emitted by LLMs.

Models often wrap JSON in Markdown code fences (```json ... ```) or add a
sentence of prose before it.  :func:`parse_markdown_json` strips fences,
falls back to the outermost bracketed span, and raises
:class:`GenerationParseError` when nothing decodes.
"""

from __future__ import annotations

import json
from typing import Any

from study_assistant.utils.errors import GenerationParseError


def strip_code_fences(raw: str) -> str:
    """Remove Markdown fence lines (```json / ```) surrounding *raw*."""
    text = raw.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [line for line in lines if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def parse_markdown_json(raw: str) -> Any:
    """Decode *raw* LLM output as JSON, tolerating fences and surrounding prose.

    Raises
    ------
    GenerationParseError
        If no JSON value can be decoded.
    """
    text = strip_code_fences(raw)
    if not text:
        raise GenerationParseError("Generated output was empty")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # "Here is the quiz: [...]" -- try the outermost array or object.
    for opener, closer in (("[", "]"), ("{", "}")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                continue

    raise GenerationParseError(f"Generated output is not valid JSON: {text[:80]!r}")
