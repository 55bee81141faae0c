"""Backend response parsing.

Tolerates the three response shapes seen in practice (flat ``output_text``,
nested ``output[].content[].text``, chat-style ``choices[].message.content``)
and model output that ignores the plain-text instruction.
"""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def extract_output_text(payload: dict[str, Any]) -> str:
    """Return the generated text, or an empty string if there is none."""
    output_text = payload.get("output_text")
    if isinstance(output_text, str):
        return output_text

    output = payload.get("output")
    if isinstance(output, list):
        parts: list[str] = []
        for message in output:
            content = message.get("content") if isinstance(message, dict) else None
            if not isinstance(content, list):
                continue
            for segment in content:
                if isinstance(segment, dict) and isinstance(segment.get("text"), str):
                    parts.append(segment["text"])
        if parts:
            return "".join(parts)

    choices = payload.get("choices")
    if isinstance(choices, list):
        texts = []
        for choice in choices:
            message = choice.get("message") if isinstance(choice, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            texts.append(content if isinstance(content, str) else "")
        return "\n".join(texts)

    return ""


def _render(item: object) -> str:
    if isinstance(item, str):
        return item
    if item is None:
        return ""
    return json.dumps(item)


def clean_output(raw: str) -> str:
    """Strip a code-fence wrapper and unwrap JSON lists or strings.

    A JSON list becomes its items joined by blank lines, with null as an empty
    item and other non-strings in their JSON form. A JSON string becomes that
    string, and anything else is returned as the de-fenced text.
    """
    cleaned = _FENCE_RE.sub("", raw).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return cleaned
    if isinstance(parsed, list):
        return "\n\n".join(_render(item) for item in parsed)
    if isinstance(parsed, str):
        return parsed
    return cleaned
