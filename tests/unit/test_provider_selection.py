"""
Unit tests for provider selection, adapter construction and API key resolution.
"""

import pytest

from agentforge.agentic.providers import (
    AnthropicProvider,
    GoogleProvider,
    LiteLLMProvider,
    OpenAIProvider,
    ProviderKind,
    create_provider,
    format_model_for_litellm,
    select_provider,
)
from agentforge.errors import AuthenticationError, MissingAPIKeyError
from agentforge.settings import LiteLLMSettings, LLMSettings

NO_GATEWAY = LiteLLMSettings(enabled=False, url=None, api_key=None, prefix_models=False)
NO_KEYS = LLMSettings(openai_api_key=None, anthropic_api_key=None, google_api_key=None)


class TestSelectProvider:
    @pytest.mark.parametrize(
        "model, expected",
        [
            ("gpt-4o", ProviderKind.OPENAI),
            ("gpt-3.5-turbo", ProviderKind.OPENAI),
            ("claude-3-opus", ProviderKind.ANTHROPIC),
            ("gemini-1.5-pro", ProviderKind.GOOGLE),
            ("gemini/gemini-pro", ProviderKind.LITELLM),
            ("anthropic/claude-3-haiku", ProviderKind.LITELLM),
            ("together_ai/some-model", ProviderKind.LITELLM),
            ("llama-3-70b", ProviderKind.LITELLM),
            ("mixtral-8x7b", ProviderKind.LITELLM),
            ("Mistral-7B", ProviderKind.LITELLM),
            ("some-unknown-model", ProviderKind.OPENAI),
        ],
    )
    def test_by_model_name(self, model, expected):
        assert select_provider(model, NO_GATEWAY) == expected

    def test_gateway_flag_wins(self):
        settings = LiteLLMSettings(enabled=True, url=None)
        assert select_provider("claude-3-opus", settings) == ProviderKind.LITELLM

    def test_gateway_url_wins(self):
        settings = LiteLLMSettings(enabled=False, url="http://gateway:4000")
        assert select_provider("gpt-4o", settings) == ProviderKind.LITELLM


class TestCreateProvider:
    def test_request_key_wins(self):
        provider = create_provider(
            ProviderKind.OPENAI, "sk-request", llm_settings=LLMSettings(openai_api_key="sk-env")
        )
        assert isinstance(provider, OpenAIProvider)
        assert provider.api_key == "sk-request"

    def test_environment_key_fallback(self):
        provider = create_provider(
            ProviderKind.ANTHROPIC, None, llm_settings=LLMSettings(anthropic_api_key="ak-env")
        )
        assert isinstance(provider, AnthropicProvider)
        assert provider.api_key == "ak-env"

    @pytest.mark.parametrize("kind", [ProviderKind.OPENAI, ProviderKind.ANTHROPIC, ProviderKind.GOOGLE])
    def test_missing_key(self, kind):
        with pytest.raises(MissingAPIKeyError) as exc_info:
            create_provider(kind, None, llm_settings=NO_KEYS)

        assert str(exc_info.value) == f"API key required for provider: {kind.value}"
        assert isinstance(exc_info.value, AuthenticationError)
        assert exc_info.value.status_code == 401

    def test_base_url_override(self):
        provider = create_provider(
            ProviderKind.GOOGLE, "g-key", "https://proxy.example.com/v1beta/", llm_settings=NO_KEYS
        )
        assert isinstance(provider, GoogleProvider)
        assert provider.base_url == "https://proxy.example.com/v1beta"

    def test_litellm_placeholder_key(self):
        provider = create_provider(
            ProviderKind.LITELLM,
            None,
            llm_settings=NO_KEYS,
            litellm_settings=LiteLLMSettings(enabled=True, url=None, api_key=None),
        )
        assert isinstance(provider, LiteLLMProvider)
        assert provider.api_key == "anything"
        assert provider.base_url == "http://localhost:4000"

    def test_litellm_configured_key_and_url(self):
        provider = create_provider(
            ProviderKind.LITELLM,
            None,
            llm_settings=NO_KEYS,
            litellm_settings=LiteLLMSettings(url="http://gateway:4000/", api_key="lk"),
        )
        assert provider.api_key == "lk"
        assert provider.base_url == "http://gateway:4000"


class TestLiteLLMModelNames:
    @pytest.mark.parametrize(
        "model, vendor, expected",
        [
            ("claude-3-opus", None, "anthropic/claude-3-opus-20240229"),
            ("gemini-pro", None, "gemini/gemini-pro"),
            ("gpt-4-turbo", None, "gpt-4-turbo-preview"),
            ("mixtral-8x7b", None, "together_ai/mistralai/Mixtral-8x7B-Instruct-v0.1"),
            ("anthropic/claude-3-opus", None, "anthropic/claude-3-opus"),
            ("my-model", "together", "together_ai/my-model"),
            ("my-model", "google", "gemini/my-model"),
            ("my-model", None, "my-model"),
        ],
    )
    def test_format(self, model, vendor, expected):
        assert format_model_for_litellm(model, vendor) == expected
