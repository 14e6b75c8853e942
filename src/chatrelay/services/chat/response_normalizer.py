# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the response normalizer unit so this responsibility stays isolated, testable, and easy to evolve.

Turns whatever the backend returned (a decoded object, a JSON-encoded string,
plain text or a bare scalar) into the text shown in the chat plus the tools
the assistant reported. ``parse_response_data`` never raises.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

NO_RESPONSE_TEXT = "No response received"
UNKNOWN_TOOL_NAME = "Unknown Tool"
NO_TOOL_DESCRIPTION = "No description available"

_RESPONSE_FIELD_RE = re.compile(r'"response"\s*:\s*"([^"]*)"')


@dataclass(frozen=True)
class Tool:
    """A tool the backend reports having invoked for one reply."""

    name: str = UNKNOWN_TOOL_NAME
    description: str = NO_TOOL_DESCRIPTION
    data: Any = None


@dataclass(frozen=True)
class NormalizedResponse:
    content: str
    tools: Optional[tuple[Tool, ...]] = None


def to_display_text(value: Any) -> str:
    """Text form of a non-string value: ``null``, ``4``, ``true``, JSON for containers."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return repr(value)
    except Exception:
        # Nested too deep or a broken __repr__; the identity form cannot fail.
        return object.__repr__(value)


def extract_quoted_response(text: str) -> Optional[str]:
    """Best-effort pull of a ``"response": "..."`` value out of free text.

    Only the first match is used. Escaped quotes and multiline values are not
    understood; callers fall back to the raw text when this returns ``None``.
    """
    match = _RESPONSE_FIELD_RE.search(text)
    if match:
        return match.group(1)
    return None


def parse_tool(raw_tool: Any) -> Tool:
    """Build a Tool from one backend tool descriptor, filling in defaults."""
    if not isinstance(raw_tool, Mapping):
        return Tool(data=raw_tool)
    name = raw_tool.get("name")
    description = raw_tool.get("description")
    data = raw_tool.get("data")
    return Tool(
        name=to_display_text(name) if name else UNKNOWN_TOOL_NAME,
        description=to_display_text(description) if description else NO_TOOL_DESCRIPTION,
        data=data if data is not None else raw_tool,
    )


def parse_tools(raw_tools: Any) -> Optional[tuple[Tool, ...]]:
    # Strings are sequences too; only real lists of descriptors count.
    if isinstance(raw_tools, (str, bytes)) or not isinstance(raw_tools, Sequence):
        return None
    return tuple(parse_tool(t) for t in raw_tools)


def _extract_from_mapping(data: Mapping[str, Any], fallback: str) -> NormalizedResponse:
    content = data.get("response")
    if content is None:
        content = data.get("message")
    if content is None:
        content = fallback
    return NormalizedResponse(
        content=to_display_text(content), tools=parse_tools(data.get("tools"))
    )


def _looks_like_json_object(text: str) -> bool:
    stripped = text.strip()
    return stripped.startswith("{") and stripped.endswith("}")


def parse_response_data(
    raw_data: Any, fallback: str = NO_RESPONSE_TEXT
) -> NormalizedResponse:
    """Normalize a backend reply into display text plus optional tools.

    Priority order, first match wins:

    1. Mapping: ``response``, then ``message``, then ``fallback``.
    2. String shaped like a JSON object that decodes to a mapping: same as 1,
       except the original string replaces ``fallback``.
    3. Any other string: the quoted ``"response"`` value if one can be found,
       otherwise the string itself.
    4. Anything else: its text form.

    ``tools`` is only set when the mapping carries a ``tools`` list.
    """
    try:
        if isinstance(raw_data, Mapping):
            return _extract_from_mapping(raw_data, fallback)

        if isinstance(raw_data, str):
            if _looks_like_json_object(raw_data):
                try:
                    parsed = json.loads(raw_data)
                except ValueError:
                    parsed = None
                if isinstance(parsed, Mapping):
                    return _extract_from_mapping(parsed, raw_data)

            extracted = extract_quoted_response(raw_data)
            return NormalizedResponse(
                content=extracted if extracted is not None else raw_data
            )

        return NormalizedResponse(content=to_display_text(raw_data))
    except Exception:
        # Display must never fail on odd backend payloads.
        return NormalizedResponse(content=to_display_text(raw_data))
