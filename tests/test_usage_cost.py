import pytest

from dbxkit.adapters.databricks import calculate_cost, format_databricks_error, get_token_usage
from dbxkit.types import ModelCatalogEntry, TokenUsage

def test_token_usage_cached():
    usage = get_token_usage({"usage": {"total_tokens": 30, "prompt_tokens": 10, "completion_tokens": 20}}, True)
    assert usage.to_dict() == {"cached": 30, "total": 30}

def test_token_usage_fresh():
    usage = get_token_usage({"usage": {"total_tokens": 30, "prompt_tokens": 10, "completion_tokens": 20}}, False)
    assert usage.to_dict() == {"total": 30, "prompt": 10, "completion": 20}

def test_token_usage_fresh_defaults_missing_phases_to_zero():
    usage = get_token_usage({"usage": {"total_tokens": 5}}, False)
    assert usage == TokenUsage(total=5, prompt=0, completion=0)

def test_token_usage_absent():
    assert get_token_usage({}, False).to_dict() == {}

def test_cost_known_model():
    cost = calculate_cost("databricks-dbrx-instruct", {}, 1000, 1000)
    assert cost == pytest.approx(0.0032)

def test_cost_unknown_model():
    assert calculate_cost("gpt-something", {}, 1000, 1000) is None

def test_cost_zero_prompt_tokens():
    assert calculate_cost("databricks-dbrx-instruct", {}, 0, 1000) is None
    assert calculate_cost("databricks-dbrx-instruct", {}, 1000, None) is None

def test_cost_override_applies_to_both_directions():
    cost = calculate_cost("databricks-mixtral-8x7b-instruct", {"cost": 0.001}, 100, 300)
    assert cost == pytest.approx(0.4)

def test_cost_zero_override_is_no_cost():
    assert calculate_cost("databricks-dbrx-instruct", {"cost": 0}, 100, 100) is None

def test_cost_catalog_entry_without_cost():
    catalog = [ModelCatalogEntry(id="free-model")]
    assert calculate_cost("free-model", {}, 100, 100, catalog) is None

def test_format_error_message_type_and_body():
    data = {"error": {"message": "bad request", "type": "invalid_request"}}
    msg = format_databricks_error(data)
    assert msg.startswith("API error: bad request, Type: invalid_request")
    assert "Code" not in msg
    assert '{\n  "error": {\n    "message": "bad request"' in msg

def test_format_error_with_code():
    msg = format_databricks_error({"error": {"message": "slow down", "code": "429"}})
    assert msg.startswith("API error: slow down, Code: 429\n\n")

def test_format_error_plain_string():
    assert format_databricks_error({"error": "boom"}).startswith("API error: boom\n\n")

def test_token_usage_empty_object_is_present():
    assert get_token_usage({"usage": {}}, False) == TokenUsage(total=None, prompt=0, completion=0)
