import json
import logging

import pytest

from dbxkit import cli
from dbxkit.types import ProviderResponse, TokenUsage

@pytest.fixture(autouse=True)
def _restore_logging():
    logger = logging.getLogger("dbxkit")
    saved = (list(logger.handlers), logger.propagate, logger.level)
    yield
    logger.handlers[:] = saved[0]
    logger.propagate = saved[1]
    logger.setLevel(saved[2])

class StubProvider:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def id(self):
        return "stub"

    def call_api(self, prompt, context=None, options=None):
        self.calls.append((prompt, context, options))
        return self.response

def test_cli_prints_response(monkeypatch, capsys, tmp_path):
    stub = StubProvider(ProviderResponse(output="hi", token_usage=TokenUsage(total=3, prompt=1, completion=2)))
    monkeypatch.setattr(cli, "load_api_provider", lambda provider_id: stub)
    prompt_file = tmp_path / "prompt.txt"
    prompt_file.write_text("Tell me about {{ topic }}", encoding="utf-8")

    rc = cli.main([f"@{prompt_file}", "--var", "topic=tides", "--logprobs"])

    assert rc == 0
    prompt, context, options = stub.calls[0]
    assert prompt == "Tell me about {{ topic }}"
    assert context.vars == {"topic": "tides"}
    assert options.include_log_probs is True
    out = json.loads(capsys.readouterr().out)
    assert out["output"] == "hi"
    assert out["tokenUsage"] == {"total": 3, "prompt": 1, "completion": 2}

def test_cli_error_response_exit_code(monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_api_provider", lambda provider_id: StubProvider(ProviderResponse(error="API error: boom")))
    assert cli.main(["hello"]) == 1
    assert json.loads(capsys.readouterr().out) == {"error": "API error: boom"}

def test_cli_missing_key_is_config_error(monkeypatch):
    monkeypatch.delenv("DATABRICKS_API_KEY", raising=False)
    monkeypatch.delenv("DATABRICKS_API_HOST", raising=False)
    assert cli.main(["hello"]) == 2

def test_cli_bad_var(monkeypatch):
    monkeypatch.setattr(cli, "load_api_provider", lambda provider_id: StubProvider(ProviderResponse(output="x")))
    assert cli.main(["hello", "--var", "novalue"]) == 2
