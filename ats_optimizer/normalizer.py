from __future__ import annotations
import json
import re
from typing import Any, Dict
from .errors import MalformedGenerationError

_KIND_FENCES = {
    "json": re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE),
    "yaml": re.compile(r"```ya?ml\s*([\s\S]*?)\s*```", re.IGNORECASE),
}
_ANY_FENCE = re.compile(r"```[\w+-]*[ \t]*\n?([\s\S]*?)\s*```")


def extract_payload(text: str, kind: str = "json") -> str:
    """Pull one JSON object or YAML document out of free-form model output.

    Tries, in order: a fence tagged with ``kind``, any fenced block, and (for
    JSON only) the span from the first ``{`` to the last ``}``. Raises
    MalformedGenerationError when none of those match.
    """
    if kind not in _KIND_FENCES:
        raise ValueError(f"Unsupported payload kind: {kind}")
    text = text or ""
    m = _KIND_FENCES[kind].search(text) or _ANY_FENCE.search(text)
    if m:
        return m.group(1)
    if kind == "json":
        first_open = text.find("{")
        last_close = text.rfind("}")
        if first_open != -1 and last_close > first_open:
            return text[first_open:last_close + 1]
    raise MalformedGenerationError(text, kind)


def parse_json_payload(text: str) -> Dict[str, Any]:
    raw = extract_payload(text, "json")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedGenerationError(text, "json") from e
    if not isinstance(data, dict):
        raise MalformedGenerationError(text, "json")
    return data
