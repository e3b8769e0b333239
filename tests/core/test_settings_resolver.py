"""
Tests for settings resolution: precedence between settings generations,
environment fallbacks and hardcoded defaults.
"""

import pytest

from chat_recall.core.settings_resolver import (
    DEFAULT_DATABASE_NAME,
    DEFAULT_HOSTED_MODEL,
    DEFAULT_LOCAL_MODEL,
    DEFAULT_LOCAL_URL,
    DEFAULT_SYSTEM_INSTRUCTION,
    EnvDefaults,
    ProviderKind,
    RESOLUTION_ORDER,
    resolve,
)


class TestDefaults:
    """Empty input resolves to a usable configuration."""

    @pytest.mark.parametrize("raw", [None, {}, {"llm": None, "database": None}, "not-a-dict", []])
    def test_empty_settings(self, raw):
        config = resolve(raw, EnvDefaults())

        assert config.provider is ProviderKind.HOSTED
        assert config.hosted_api_key is None
        assert config.hosted_model == DEFAULT_HOSTED_MODEL
        assert config.local_url == DEFAULT_LOCAL_URL
        assert config.local_model == DEFAULT_LOCAL_MODEL
        assert config.system_instruction == DEFAULT_SYSTEM_INSTRUCTION
        assert config.database_uri is None
        assert config.database_name == DEFAULT_DATABASE_NAME
        assert config.persistence_configured is False

    def test_env_argument_is_optional(self):
        assert resolve({}) == resolve({}, EnvDefaults())

    def test_resolution_is_deterministic(self):
        raw = {
            "llm": {"provider": "lmstudio", "lmstudio": {"url": "http://box:1234", "model": "qwen"}},
            "database": {"mongoUri": "mongodb://db:27017"},
            "systemInstruction": "Be brief.",
        }
        env = EnvDefaults(openai_api_key="sk-env", mongo_uri="mongodb://env", mongo_db="envdb")

        assert resolve(raw, env) == resolve(raw, env)


class TestProviderSelection:

    def test_explicit_local(self):
        assert resolve({"llm": {"provider": "lmstudio"}}).provider is ProviderKind.LOCAL

    def test_explicit_hosted(self):
        assert resolve({"llm": {"provider": "openai"}}).provider is ProviderKind.HOSTED

    def test_legacy_sentinel_infers_local(self):
        config = resolve({"llm": {"selectedModel": "local-model"}})
        assert config.provider is ProviderKind.LOCAL

    def test_explicit_provider_beats_legacy_sentinel(self):
        config = resolve({"llm": {"provider": "openai", "selectedModel": "local-model"}})
        assert config.provider is ProviderKind.HOSTED

    def test_unknown_provider_falls_back_to_hosted(self):
        assert resolve({"llm": {"provider": "anthropic"}}).provider is ProviderKind.HOSTED

    def test_other_selected_model_keeps_hosted(self):
        assert resolve({"llm": {"selectedModel": "gpt-4o"}}).provider is ProviderKind.HOSTED

    def test_active_model_follows_provider(self):
        hosted = resolve({"llm": {"openaiModel": "gpt-4o", "lmstudioModel": "qwen"}})
        local = resolve({"llm": {"provider": "lmstudio", "openaiModel": "gpt-4o", "lmstudioModel": "qwen"}})

        assert hosted.model == "gpt-4o"
        assert local.model == "qwen"


class TestHostedPrecedence:

    def test_nested_model_beats_flat_model(self):
        config = resolve({"llm": {"openai": {"model": "A"}, "openaiModel": "B"}})
        assert config.hosted_model == "A"

    def test_flat_model_beats_selected_model(self):
        config = resolve({"llm": {"openaiModel": "B", "selectedModel": "C"}})
        assert config.hosted_model == "B"

    def test_selected_model_used_when_nothing_newer(self):
        assert resolve({"llm": {"selectedModel": "gpt-4"}}).hosted_model == "gpt-4"

    def test_local_sentinel_never_becomes_hosted_model(self):
        config = resolve({"llm": {"provider": "openai", "selectedModel": "local-model"}})
        assert config.hosted_model == DEFAULT_HOSTED_MODEL

    def test_empty_strings_are_skipped(self):
        config = resolve({"llm": {"openai": {"model": ""}, "openaiModel": "B"}})
        assert config.hosted_model == "B"

    def test_non_string_values_are_skipped(self):
        config = resolve({"llm": {"openai": {"model": 42}, "openaiModel": None}})
        assert config.hosted_model == DEFAULT_HOSTED_MODEL

    def test_api_key_chain(self):
        env = EnvDefaults(openai_api_key="sk-env")

        assert resolve({"llm": {"openai": {"apiKey": "sk-nested"}, "openaiApiKey": "sk-flat"}}, env).hosted_api_key == "sk-nested"
        assert resolve({"llm": {"openaiApiKey": "sk-flat"}}, env).hosted_api_key == "sk-flat"
        assert resolve({}, env).hosted_api_key == "sk-env"

    def test_nested_shape_that_is_not_a_mapping(self):
        config = resolve({"llm": {"openai": "sk-wrong-place", "openaiApiKey": "sk-flat"}})
        assert config.hosted_api_key == "sk-flat"


class TestLocalPrecedence:

    def test_url_chain(self):
        assert resolve({"llm": {"lmstudio": {"url": "http://a:1"}, "lmstudioUrl": "http://b:2"}}).local_url == "http://a:1"
        assert resolve({"llm": {"lmstudioUrl": "http://b:2"}}).local_url == "http://b:2"

    def test_model_chain(self):
        assert resolve({"llm": {"lmstudio": {"model": "m1"}, "lmstudioModel": "m2"}}).local_model == "m1"
        assert resolve({"llm": {"lmstudioModel": "m2"}}).local_model == "m2"


class TestDatabasePrecedence:

    def test_settings_beat_environment(self):
        env = EnvDefaults(mongo_uri="mongodb://env:27017", mongo_db="envdb")
        config = resolve({"database": {"mongoUri": "mongodb://settings:27017", "mongoDb": "mine"}}, env)

        assert config.database_uri == "mongodb://settings:27017"
        assert config.database_name == "mine"

    def test_environment_fallback(self):
        env = EnvDefaults(mongo_uri="mongodb://env:27017", mongo_db="envdb")
        config = resolve({}, env)

        assert config.database_uri == "mongodb://env:27017"
        assert config.database_name == "envdb"
        assert config.persistence_configured is True


class TestSystemInstruction:

    def test_custom_instruction(self):
        assert resolve({"systemInstruction": "Talk like a pirate."}).system_instruction == "Talk like a pirate."

    def test_empty_instruction_uses_default(self):
        assert resolve({"systemInstruction": ""}).system_instruction == DEFAULT_SYSTEM_INSTRUCTION


class TestEnvDefaults:

    def test_from_environ(self):
        env = EnvDefaults.from_environ({"OPENAI_API_KEY": "sk-1", "MONGO_URI": "mongodb://x", "MONGO_DB": ""})

        assert env.openai_api_key == "sk-1"
        assert env.mongo_uri == "mongodb://x"
        assert env.mongo_db is None

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://from-env")
        assert EnvDefaults.from_environ().mongo_uri == "mongodb://from-env"


def test_resolution_order_covers_every_field():
    assert set(RESOLUTION_ORDER) == {
        "hosted_api_key", "hosted_model", "local_url", "local_model",
        "database_uri", "database_name", "system_instruction",
    }
