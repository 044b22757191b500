"""
``{{path}}`` placeholders in action parameters, filled from the event payload.

A string that is exactly one placeholder takes the resolved value with its
type intact (``"{{assignedToId}}"`` stays whatever the payload holds).
Placeholders embedded in longer text are rendered as text; unresolvable ones
render empty.
"""

import re
from typing import Any, Dict

from automation_kernel.conditions.values import as_text
from automation_kernel.models.event import MISSING, resolve_path

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.\-]+)\s*\}\}")


def render_value(value: Any, payload: Dict[str, Any]) -> Any:
    if isinstance(value, str):
        whole = _PLACEHOLDER.fullmatch(value.strip())
        if whole:
            resolved = resolve_path(payload, whole.group(1))
            return None if resolved is MISSING else resolved

        def _substitute(match: "re.Match[str]") -> str:
            resolved = resolve_path(payload, match.group(1))
            return "" if resolved is MISSING else as_text(resolved)

        return _PLACEHOLDER.sub(_substitute, value)
    if isinstance(value, dict):
        return {k: render_value(v, payload) for k, v in value.items()}
    if isinstance(value, list):
        return [render_value(v, payload) for v in value]
    return value


def render_params(params: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: render_value(value, payload) for key, value in params.items()}
