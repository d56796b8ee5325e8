"""Provider registry.

Provider ids:
- databricks:<model>
- databricks:chat:<model>

A providers YAML file looks like:

providers:
  - databricks:databricks-dbrx-instruct
  - id: databricks:chat:databricks-meta-llama-3-70b-instruct
    label: llama3-70b
    config:
      temperature: 0.2
      max_tokens: 512
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .adapters.base import ApiProvider
from .adapters.databricks import DatabricksChatCompletionProvider
from .errors import ConfigError
from .logging_util import get_logger
from .types import EnvOverrides

logger = get_logger(__name__)

def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        raise ConfigError(f"Provider config not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to load YAML: {path} ({e})")

def load_api_provider(
    provider_path: str,
    options: Optional[Dict[str, Any]] = None,
    env: Optional[EnvOverrides] = None,
) -> ApiProvider:
    options = options or {}
    parts = provider_path.split(":")

    if parts[0] != "databricks" or len(parts) < 2:
        raise ConfigError(f"Unknown provider: {provider_path}")

    if parts[1] == "chat":
        model_name = ":".join(parts[2:])
    else:
        model_name = ":".join(parts[1:])
    if not model_name:
        raise ConfigError(f"Missing model name in provider id: {provider_path}")

    logger.debug("Loading provider %s (model=%s)", provider_path, model_name)
    return DatabricksChatCompletionProvider(
        model_name,
        config=options.get("config"),
        id=options.get("id"),
        env=env,
    )

def load_providers_from_yaml(path: Path, env: Optional[EnvOverrides] = None) -> List[ApiProvider]:
    doc = _load_yaml(Path(path))
    entries = doc.get("providers") or []
    if not entries:
        raise ConfigError(f"No providers defined in {path}")

    providers: List[ApiProvider] = []
    for entry in entries:
        if isinstance(entry, str):
            providers.append(load_api_provider(entry, env=env))
            continue
        if not isinstance(entry, dict) or not entry.get("id"):
            raise ConfigError(f"Invalid provider entry in {path}: {entry!r}")
        providers.append(
            load_api_provider(
                entry["id"],
                options={"id": entry.get("label"), "config": entry.get("config")},
                env=env,
            )
        )
    return providers
