"""Simple CLI: one prompt, one provider call.

Usage examples:
- Inline prompt:
  dbxkit "Say hi" --provider databricks:databricks-dbrx-instruct

- Prompt file (prefix with @) and a providers YAML (first provider is used):
  dbxkit @prompt.json --config providers.yaml --var topic=tides --pretty

Exit codes: 0 ok, 1 provider returned an error, 2 config/input error.
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .errors import DbxKitError
from .logging_util import configure_logging, get_logger, log_step
from .registry import load_api_provider, load_providers_from_yaml
from .types import CallApiContext, CallApiOptions

logger = get_logger(__name__)

def _load_prompt(value: str) -> str:
    if value.startswith("@"):
        return Path(value[1:]).read_text(encoding="utf-8")
    return value

def _parse_vars(pairs: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for p in pairs:
        if "=" not in p:
            raise ValueError(f"--var expects key=value, got: {p}")
        k, v = p.split("=", 1)
        out[k.strip()] = v
    return out

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="dbxkit")
    ap.add_argument("prompt", help="Prompt text or @path/to/prompt")
    ap.add_argument("--provider", default="databricks:databricks-dbrx-instruct", help="Provider id")
    ap.add_argument("--config", help="Providers YAML file; overrides --provider")
    ap.add_argument("--var", action="append", default=[], help="Template variable key=value")
    ap.add_argument("--logprobs", action="store_true", help="Request per-token log probabilities")
    ap.add_argument("--pretty", action="store_true", help="Pretty print the output JSON")
    args = ap.parse_args(argv)
    configure_logging()

    try:
        log_step(logger, "1", "load prompt and provider")
        prompt = _load_prompt(args.prompt)
        vars = _parse_vars(args.var)
        if args.config:
            provider = load_providers_from_yaml(Path(args.config))[0]
        else:
            provider = load_api_provider(args.provider)

        log_step(logger, "2", f"call {provider.id()}")
        res = provider.call_api(
            prompt,
            CallApiContext(vars=vars),
            CallApiOptions(include_log_probs=args.logprobs),
        )
    except (DbxKitError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 2

    print(json.dumps(res.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None, default=str))
    return 1 if res.error else 0

if __name__ == "__main__":
    sys.exit(main())
