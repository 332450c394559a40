"""Tests for configuration loading and validation."""

import pytest
from pydantic import ValidationError

from chatbridge.core.config import Config, load_config
from chatbridge.core.config.loader import check_unexpanded_vars, expand_env_vars, expand_env_vars_recursive


class TestEnvExpansion:
    """${VAR} substitution."""

    def test_expand_known_var(self, monkeypatch):
        monkeypatch.setenv("BOT_TOKEN", "secret123")

        assert expand_env_vars("Token: ${BOT_TOKEN}") == "Token: secret123"

    def test_unknown_var_left_in_place(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)

        assert expand_env_vars("${NOT_SET_ANYWHERE}") == "${NOT_SET_ANYWHERE}"

    def test_recursive_expansion(self, monkeypatch):
        monkeypatch.setenv("KEY", "v")

        data = {"a": ["${KEY}", 1], "b": {"c": "${KEY}-x"}}

        assert expand_env_vars_recursive(data) == {"a": ["v", 1], "b": {"c": "v-x"}}

    def test_unresolved_vars_reported(self):
        with pytest.raises(ValueError, match="MISSING_KEY"):
            check_unexpanded_vars({"completion": {"api_key": "${MISSING_KEY}"}}, source="config.yaml")


class TestLoadConfig:
    """YAML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        config = load_config(path)

        assert config.rate_limit.max_messages == 2
        assert config.rate_limit.window_seconds == 60
        assert config.history.max_entries == 10
        assert config.history.context_size == 6
        assert config.cache.ttl_seconds == 3600
        assert config.typing.max_delay_ms == 5000
        assert config.sessions.max_age_hours == 24

    def test_values_and_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CHATBRIDGE_TEST_TOKEN", "123:abc")
        path = tmp_path / "config.yaml"
        path.write_text(
            "transport:\n"
            "  token: ${CHATBRIDGE_TEST_TOKEN}\n"
            "rate_limit:\n"
            "  max_messages: 5\n"
            "completion:\n"
            "  model: anthropic:claude-haiku\n"
        )

        config = load_config(path)

        assert config.transport.token == "123:abc"
        assert config.rate_limit.max_messages == 5
        assert config.completion.model == "anthropic:claude-haiku"

    def test_dotenv_next_to_config_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CHATBRIDGE_DOTENV_KEY", raising=False)
        (tmp_path / ".env").write_text("CHATBRIDGE_DOTENV_KEY=from-dotenv\n")
        path = tmp_path / "config.yaml"
        path.write_text("completion:\n  api_key: ${CHATBRIDGE_DOTENV_KEY}\n")

        try:
            config = load_config(path)
        finally:
            monkeypatch.delenv("CHATBRIDGE_DOTENV_KEY", raising=False)

        assert config.completion.api_key == "from-dotenv"

    def test_unresolved_var_fails(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CHATBRIDGE_UNSET", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("transport:\n  token: ${CHATBRIDGE_UNSET}\n")

        with pytest.raises(ValueError, match="CHATBRIDGE_UNSET"):
            load_config(path)


class TestValidation:
    """Model-level constraints."""

    def test_typing_bounds_checked(self):
        with pytest.raises(ValidationError):
            Config(typing={"min_base_ms": 4000, "max_base_ms": 1000})

    def test_rate_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            Config(rate_limit={"max_messages": 0})

    def test_unknown_transport_rejected(self):
        with pytest.raises(ValidationError):
            Config(transport={"type": "carrier-pigeon"})
