import pytest

from dbxkit.adapters.databricks import DatabricksChatCompletionProvider
from dbxkit.errors import ConfigError
from dbxkit.registry import load_api_provider, load_providers_from_yaml

def test_load_short_id():
    p = load_api_provider("databricks:databricks-dbrx-instruct")
    assert isinstance(p, DatabricksChatCompletionProvider)
    assert p.model_name == "databricks-dbrx-instruct"

def test_load_chat_id_with_options():
    p = load_api_provider("databricks:chat:my-endpoint", options={"id": "mine", "config": {"temperature": 0.3}})
    assert p.model_name == "my-endpoint"
    assert p.id() == "mine"
    assert p.config == {"temperature": 0.3}

@pytest.mark.parametrize("provider_id", ["openai:gpt-4o", "databricks:", "databricks:chat:"])
def test_bad_ids(provider_id):
    with pytest.raises(ConfigError):
        load_api_provider(provider_id)

def test_load_from_yaml(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text(
        "providers:\n"
        "  - databricks:databricks-dbrx-instruct\n"
        "  - id: databricks:chat:databricks-meta-llama-3-70b-instruct\n"
        "    label: llama3-70b\n"
        "    config:\n"
        "      max_tokens: 512\n",
        encoding="utf-8",
    )
    providers = load_providers_from_yaml(path, env={"DATABRICKS_API_KEY": "k"})
    assert [p.id() for p in providers] == ["databricks:databricks-dbrx-instruct", "llama3-70b"]
    assert providers[1].config == {"max_tokens": 512}
    assert providers[1].get_api_key() == "k"

def test_missing_yaml(tmp_path):
    with pytest.raises(ConfigError):
        load_providers_from_yaml(tmp_path / "nope.yaml")

def test_empty_yaml(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_providers_from_yaml(path)
