"""Chat prompt parsing.

Rules:
- A prompt starting with "- role:" is a YAML list of messages.
- A prompt that decodes as a JSON list is used as the messages as-is.
- Anything else is plain text and the caller's default messages are used.
- Text that looks like JSON ("{" or "[") but does not decode is an error,
  so a typo in a structured prompt is not silently sent as user text.
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, List

import yaml

from .errors import PromptParseError
from .logging_util import get_logger

logger = get_logger(__name__)

Messages = List[Dict[str, Any]]

def _require_json_prompts() -> bool:
    v = (os.environ.get("DBXKIT_REQUIRE_JSON_PROMPTS") or "").strip().lower()
    return v in ("1", "true", "y", "yes")

def parse_chat_prompt(prompt: str, default: Messages) -> Messages:
    trimmed = prompt.strip()

    if trimmed.startswith("- role:"):
        try:
            messages = yaml.safe_load(prompt)
        except yaml.YAMLError as e:
            raise PromptParseError(f"Chat Completion prompt is not a valid YAML string: {e}")
        logger.debug("Parsed YAML chat prompt with %d messages", len(messages))
        return messages

    try:
        parsed = json.loads(prompt)
    except ValueError as e:
        if _require_json_prompts() or trimmed.startswith("{") or trimmed.startswith("["):
            raise PromptParseError(f"Chat Completion prompt is not a valid JSON string: {e}")
        return default

    if isinstance(parsed, list):
        return parsed
    return default
