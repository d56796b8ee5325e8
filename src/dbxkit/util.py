"""Small helpers shared by providers.

- safe_json_stringify: json.dumps that never raises on odd values
- render_vars_in_object: substitute {{ var }} placeholders into nested
  dict/list/str structures (function and tool definitions)
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")

def safe_json_stringify(obj: Any, pretty: bool = False) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, indent=2 if pretty else None, default=str)
    except (TypeError, ValueError):
        # circular references end up here
        return str(obj)

def _lookup(vars: Dict[str, Any], path: str) -> Any:
    cur: Any = vars
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return ""
        cur = cur[part]
    return cur

def _render_string(template: str, vars: Dict[str, Any]) -> str:
    def repl(m: re.Match) -> str:
        v = _lookup(vars, m.group(1))
        if v is None:
            return ""
        if isinstance(v, (dict, list)):
            return json.dumps(v, ensure_ascii=False)
        return str(v)

    return _PLACEHOLDER.sub(repl, template)

def render_vars_in_object(obj: Any, vars: Optional[Dict[str, Any]]) -> Any:
    """Return a copy of obj with every string rendered against vars.

    Unknown placeholders render as empty strings. With no vars the object
    is returned untouched.
    """
    if not vars:
        return obj
    if isinstance(obj, str):
        return _render_string(obj, vars)
    if isinstance(obj, list):
        return [render_vars_in_object(item, vars) for item in obj]
    if isinstance(obj, dict):
        return {k: render_vars_in_object(v, vars) for k, v in obj.items()}
    return obj
