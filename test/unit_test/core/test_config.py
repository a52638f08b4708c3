"""Unit tests for the Settings model and its grouped configuration properties."""

import pytest

from cowork_ai.core.config import (
    AgentLoopConfig,
    ApprovalConfig,
    ContextConfig,
    OllamaConfig,
    OpenRouterConfig,
    SafetyConfig,
    Settings,
)


class TestSettingsDefaults:
    def test_defaults_without_environment(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("OPENROUTER_API_KEY", "COWORK_AI_PROVIDER", "COWORK_AI_MAX_STEPS", "OPENROUTER_MODEL"):
            monkeypatch.delenv(name, raising=False)

        s = Settings(_env_file=None)

        assert s.openrouter.api_key is None
        assert s.openrouter.base_url == "https://openrouter.ai/api/v1"
        assert s.openrouter.model == "anthropic/claude-sonnet-4"
        assert s.agent_loop.provider == "openrouter"
        assert s.agent_loop.max_steps == 15
        assert s.approval.timeout_seconds == 60.0
        assert s.context.compaction_threshold == 0.8
        assert s.context.keep_last == 6
        assert s.context.emergency_keep_last == 4
        assert s.context.default_limit == 100_000
        assert s.safety.app_database_name == "cowork-ai.db"


class TestSettingsFromEnvironment:
    def test_environment_variables_flow_into_grouped_configs(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-123")
        monkeypatch.setenv("COWORK_AI_PROVIDER", "ollama")
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://localhost:9999/v1")
        monkeypatch.setenv("COWORK_AI_MAX_STEPS", "7")
        monkeypatch.setenv("COWORK_AI_APPROVAL_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("COWORK_AI_HOME_DIR", "/Users/alex")

        s = Settings(_env_file=None)

        assert s.openrouter.api_key == "sk-or-123"
        assert s.ollama.base_url == "http://localhost:9999/v1"
        assert s.agent_loop == AgentLoopConfig(provider="ollama", max_steps=7)
        assert s.approval == ApprovalConfig(timeout_seconds=5.0)
        assert s.safety.home_dir == "/Users/alex"

    def test_env_file_is_read(self, tmp_path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("COWORK_AI_SUMMARY_MODEL", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("COWORK_AI_SUMMARY_MODEL=openai/gpt-4o-mini\n", encoding="utf-8")

        s = Settings(_env_file=str(env_file))

        assert s.context.summary_model == "openai/gpt-4o-mini"


class TestGroupedConfigModels:
    @pytest.mark.parametrize(
        "model,kwargs",
        [
            (OpenRouterConfig, {"api_key": "k", "model": "openai/gpt-4o"}),
            (OllamaConfig, {"base_url": "http://localhost:1/v1"}),
            (ContextConfig, {"keep_last": 3}),
            (SafetyConfig, {"home_dir": "/tmp/home"}),
        ],
    )
    def test_populate_by_field_name(self, model, kwargs):
        config = model(**kwargs)

        for key, value in kwargs.items():
            assert getattr(config, key) == value
