"""Databricks Model Serving chat.completions provider.

Databricks serves foundation models behind an OpenAI-compatible REST API:

    POST {base_url}/chat/completions
    Authorization: Bearer <token>

DatabricksGenericProvider resolves the connection settings (URL, key, id)
shared by every Databricks endpoint type; DatabricksChatCompletionProvider
does the actual chat round trip and maps the response onto ProviderResponse.

Config precedence (first hit wins):
    inline config > config["api_key_envar"] > env overrides > process env > default
"""
from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..cache import REQUEST_TIMEOUT_MS, fetch_with_cache
from ..errors import ConfigError, PromptParseError
from ..logging_util import get_logger
from ..prompts import parse_chat_prompt
from ..types import (
    CallApiContext,
    CallApiOptions,
    EnvOverrides,
    FetchResult,
    ModelCatalogEntry,
    ModelCost,
    ProviderConfig,
    ProviderResponse,
    TokenUsage,
)
from ..util import render_vars_in_object, safe_json_stringify
from .base import ApiProvider

logger = get_logger(__name__)

DEFAULT_API_URL = "https://cloud.databricks.com/v1"

DATABRICKS_CHAT_MODELS: List[ModelCatalogEntry] = [
    ModelCatalogEntry(
        id="databricks-dbrx-instruct",
        cost=ModelCost(input=0.0008 / 1000, output=0.0024 / 1000),
    ),
    ModelCatalogEntry(
        id="databricks-mixtral-8x7b-instruct",
        cost=ModelCost(input=0.0005 / 1000, output=0.001 / 1000),
    ),
    ModelCatalogEntry(
        id="databricks-meta-llama-3-70b-instruct",
        cost=ModelCost(input=0.0009 / 1000, output=0.0027 / 1000),
    ),
]

DATABRICKS_CHAT_MODEL_NAMES = [m.id for m in DATABRICKS_CHAT_MODELS]

Fetch = Callable[[str, Dict[str, Any], int], FetchResult]

def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(environ.get(key) or default)
    except ValueError:
        return default

def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(environ.get(key) or default)
    except ValueError:
        return default

def get_token_usage(data: Dict[str, Any], cached: bool) -> TokenUsage:
    usage = data.get("usage")
    if usage is None:
        return TokenUsage()
    if cached:
        return TokenUsage(cached=usage.get("total_tokens"), total=usage.get("total_tokens"))
    return TokenUsage(
        total=usage.get("total_tokens"),
        prompt=usage.get("prompt_tokens") or 0,
        completion=usage.get("completion_tokens") or 0,
    )

def calculate_cost(
    model_name: str,
    config: ProviderConfig,
    prompt_tokens: Optional[int],
    completion_tokens: Optional[int],
    catalog: Optional[List[ModelCatalogEntry]] = None,
) -> Optional[float]:
    """Estimate the USD cost of one call.

    A config["cost"] override replaces both the input and the output rate.
    """
    if not prompt_tokens or not completion_tokens:
        return None

    entries = DATABRICKS_CHAT_MODELS if catalog is None else catalog
    model = next((m for m in entries if m.id == model_name), None)
    if model is None or model.cost is None:
        return None

    override = config.get("cost")
    input_cost = override if override is not None else model.cost.input
    output_cost = override if override is not None else model.cost.output
    return input_cost * prompt_tokens + output_cost * completion_tokens or None

def format_databricks_error(data: Dict[str, Any]) -> str:
    err = data["error"]
    if not isinstance(err, dict):
        err = {"message": err}
    msg = f"API error: {err.get('message')}"
    if err.get("type"):
        msg += f", Type: {err['type']}"
    if err.get("code"):
        msg += f", Code: {err['code']}"
    msg += "\n\n" + safe_json_stringify(data, pretty=True)
    return msg

class DatabricksGenericProvider(ApiProvider):
    def __init__(
        self,
        model_name: str,
        config: Optional[ProviderConfig] = None,
        id: Optional[str] = None,
        env: Optional[EnvOverrides] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.model_name = model_name
        self.config: ProviderConfig = config or {}
        self.env: EnvOverrides = env or {}
        self._environ = environ
        self._id = id

    @property
    def environ(self) -> Mapping[str, str]:
        # read lazily so monkeypatched os.environ is honored
        return os.environ if self._environ is None else self._environ

    def id(self) -> str:
        if self._id:
            return self._id
        if self.config.get("api_host") or self.config.get("api_base_url"):
            return self.model_name
        return f"databricks:{self.model_name}"

    def __str__(self) -> str:
        return f"[Databricks Provider {self.model_name}]"

    def get_api_url_default(self) -> str:
        return DEFAULT_API_URL

    def get_api_url(self) -> str:
        api_host = (
            self.config.get("api_host")
            or self.env.get("DATABRICKS_API_HOST")
            or self.environ.get("DATABRICKS_API_HOST")
        )
        if api_host:
            return f"https://{api_host}"
        return (
            self.config.get("api_base_url")
            or self.env.get("DATABRICKS_API_BASE_URL")
            or self.env.get("DATABRICKS_BASE_URL")
            or self.environ.get("DATABRICKS_API_BASE_URL")
            or self.environ.get("DATABRICKS_BASE_URL")
            or self.get_api_url_default()
        )

    def get_api_key(self) -> Optional[str]:
        envar = self.config.get("api_key_envar")
        return (
            self.config.get("api_key")
            or ((self.environ.get(envar) or self.env.get(envar)) if envar else None)
            or self.env.get("DATABRICKS_API_KEY")
            or self.environ.get("DATABRICKS_API_KEY")
            or None
        )

    def call_api(
        self,
        prompt: str,
        context: Optional[CallApiContext] = None,
        options: Optional[CallApiOptions] = None,
    ) -> ProviderResponse:
        raise NotImplementedError("Not implemented")

class DatabricksChatCompletionProvider(DatabricksGenericProvider):
    DATABRICKS_CHAT_MODELS = DATABRICKS_CHAT_MODELS
    DATABRICKS_CHAT_MODEL_NAMES = DATABRICKS_CHAT_MODEL_NAMES

    def __init__(
        self,
        model_name: str,
        config: Optional[ProviderConfig] = None,
        id: Optional[str] = None,
        env: Optional[EnvOverrides] = None,
        environ: Optional[Mapping[str, str]] = None,
        catalog: Optional[List[ModelCatalogEntry]] = None,
        fetch: Optional[Fetch] = None,
    ):
        self.catalog = DATABRICKS_CHAT_MODELS if catalog is None else catalog
        if model_name not in [m.id for m in self.catalog]:
            logger.debug("Using unknown Databricks chat model: %s", model_name)
        super().__init__(model_name, config=config, id=id, env=env, environ=environ)
        self.fetch: Fetch = fetch or fetch_with_cache

    def _param(self, key: str, envar: str, default: Any) -> Any:
        v = self.config.get(key)
        if v is not None:
            return v
        if isinstance(default, int):
            return _env_int(self.environ, envar, default)
        return _env_float(self.environ, envar, default)

    def build_body(
        self,
        messages: List[Dict[str, Any]],
        context: Optional[CallApiContext] = None,
        options: Optional[CallApiOptions] = None,
    ) -> Dict[str, Any]:
        cfg = self.config
        vars = context.vars if context else None

        body: Dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "max_tokens": self._param("max_tokens", "DATABRICKS_MAX_TOKENS", 1024),
            "temperature": self._param("temperature", "DATABRICKS_TEMPERATURE", 0.0),
            "top_p": self._param("top_p", "DATABRICKS_TOP_P", 1.0),
            "presence_penalty": self._param("presence_penalty", "DATABRICKS_PRESENCE_PENALTY", 0.0),
            "frequency_penalty": self._param("frequency_penalty", "DATABRICKS_FREQUENCY_PENALTY", 0.0),
        }
        if cfg.get("functions") is not None:
            body["functions"] = render_vars_in_object(cfg["functions"], vars)
        if cfg.get("function_call"):
            body["function_call"] = cfg["function_call"]
        if cfg.get("tools") is not None:
            body["tools"] = render_vars_in_object(cfg["tools"], vars)
        if cfg.get("tool_choice"):
            body["tool_choice"] = cfg["tool_choice"]
        if cfg.get("response_format"):
            body["response_format"] = cfg["response_format"]
        if options and options.include_log_probs:
            body["logprobs"] = options.include_log_probs
        if cfg.get("stop") is not None:
            body["stop"] = cfg["stop"]

        # passthrough goes last and may override anything above
        body.update(cfg.get("passthrough") or {})
        return body

    def call_api(
        self,
        prompt: str,
        context: Optional[CallApiContext] = None,
        options: Optional[CallApiOptions] = None,
    ) -> ProviderResponse:
        api_key = self.get_api_key()
        if not api_key:
            raise ConfigError(
                "Databricks API key is not set. Set the DATABRICKS_API_KEY environment variable "
                "or add `api_key` to the provider config."
            )

        try:
            messages = parse_chat_prompt(prompt, [{"role": "user", "content": prompt}])
        except PromptParseError as e:
            return ProviderResponse(error=str(e))

        body = self.build_body(messages, context, options)
        logger.debug("Calling Databricks API: %s", safe_json_stringify(body))

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            **(self.config.get("headers") or {}),
        }
        try:
            res = self.fetch(
                f"{self.get_api_url()}/chat/completions",
                {"method": "POST", "headers": headers, "body": json.dumps(body)},
                REQUEST_TIMEOUT_MS,
            )
        except Exception as e:
            return ProviderResponse(error=f"API call error: {e}")

        data, cached = res.data, res.cached
        logger.debug("\tDatabricks chat completions API response: %s", safe_json_stringify(data))

        if isinstance(data, dict) and data.get("error"):
            return ProviderResponse(error=format_databricks_error(data))

        try:
            return self._to_response(data, cached)
        except Exception as e:
            return ProviderResponse(error=f"API error: {e}: {safe_json_stringify(data)}")

    def _to_response(self, data: Dict[str, Any], cached: bool) -> ProviderResponse:
        choice = data["choices"][0]
        message = choice["message"]

        content = message.get("content")
        function_call = message.get("function_call")
        tool_calls = message.get("tool_calls")

        if content and (function_call or tool_calls):
            output: Any = message
        elif content is None:
            output = function_call or tool_calls
        else:
            output = content

        logprobs = (choice.get("logprobs") or {}).get("content")
        log_probs = [lp["logprob"] for lp in logprobs] if logprobs is not None else None

        usage = data.get("usage") or {}
        token_usage = get_token_usage(data, cached)
        cost = calculate_cost(
            self.model_name,
            self.config,
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
            self.catalog,
        )

        callback_output = self._run_function_callbacks(function_call, tool_calls)
        if callback_output is not None:
            output = callback_output

        return ProviderResponse(
            output=output,
            token_usage=token_usage,
            cached=cached,
            log_probs=log_probs,
            cost=cost,
        )

    def _run_function_callbacks(
        self,
        function_call: Optional[Dict[str, Any]],
        tool_calls: Optional[List[Dict[str, Any]]],
    ) -> Optional[str]:
        callbacks = self.config.get("function_tool_callbacks")
        if not callbacks:
            return None

        if function_call:
            calls = [(function_call["name"], function_call.get("arguments"))]
        else:
            calls = [(c["function"]["name"], c["function"].get("arguments")) for c in tool_calls or []]

        for name, arguments in calls:
            callback = callbacks.get(name)
            if callback:
                logger.debug("Dispatching function tool callback: %s", name)
                return callback(arguments)
        return None

DefaultGradingProvider = DatabricksChatCompletionProvider("databricks-dbrx-instruct")
DefaultGradingJsonProvider = DatabricksChatCompletionProvider(
    "databricks-dbrx-instruct",
    config={"response_format": {"type": "json_object"}},
)
DefaultSuggestionsProvider = DatabricksChatCompletionProvider("databricks-dbrx-instruct")
