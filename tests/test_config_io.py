import json

import pytest
from pydantic import ValidationError

from tex_trans_lib.config_io import load_or_default, load_pipeline_config, write_pipeline_config
from tex_trans_lib.config_models import MaskingConfig, PipelineConfig
from tex_trans_lib.errors import LoadConfigError


def test_config_round_trip(tmp_path):
    config = PipelineConfig()
    config.translation.target_language = "French"
    config.translation.retry.attempts = 3
    config.masking.mask_commands.add("autoref")
    path = tmp_path / "conf" / "tex_trans_conf.json"

    write_pipeline_config(path, config)
    loaded = load_pipeline_config(path)

    assert loaded == config
    assert "autoref" in loaded.masking.mask_commands


def test_config_file_uses_camel_case(tmp_path):
    path = tmp_path / "tex_trans_conf.json"
    write_pipeline_config(path, PipelineConfig())
    data = json.loads(path.read_text(encoding="utf-8"))

    assert "saveIntermediateFiles" in data
    assert "maxChunkSize" in data["translation"]
    assert "bypassLlmTranslation" in data["translation"]
    assert "maskInlineMath" in data["masking"]


def test_snake_case_keys_are_accepted(tmp_path):
    path = tmp_path / "tex_trans_conf.json"
    path.write_text(json.dumps({"translation": {"target_language": "German", "max_chunk_size": 100}}),
                    encoding="utf-8")
    config = load_pipeline_config(path)
    assert config.translation.target_language == "German"
    assert config.translation.max_chunk_size == 100
    assert config.llm.service == "google"


def test_invalid_config_raises(tmp_path):
    path = tmp_path / "tex_trans_conf.json"
    path.write_text(json.dumps({"translation": {"maxChunkSize": 0}}), encoding="utf-8")
    with pytest.raises(LoadConfigError):
        load_pipeline_config(path)

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(LoadConfigError):
        load_pipeline_config(path)


def test_missing_config(tmp_path):
    with pytest.raises(LoadConfigError):
        load_pipeline_config(tmp_path / "missing.json")
    assert load_or_default(None) == PipelineConfig()


def test_api_key_from_environment(monkeypatch):
    config = PipelineConfig()
    monkeypatch.setenv("LLM_API_KEY", "secret")
    assert config.llm.get_api_key() == "secret"
    config.llm.api_key = "explicit"
    assert config.llm.get_api_key() == "explicit"


def test_token_format_is_checked():
    assert MaskingConfig(token_format="{{{id}}}").token_format == "{{{id}}}"
    with pytest.raises(ValidationError):
        MaskingConfig(token_format="{id}")
    with pytest.raises(ValidationError):
        MaskingConfig(token_format="<ph/>")
