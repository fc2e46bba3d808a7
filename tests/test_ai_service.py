"""Tests for LLM provider selection, JSON extraction and the model cache."""

from unittest.mock import MagicMock, patch

import pytest

from app.config import settings
from app.core.encryption import encrypt_credential, encrypt_credentials_map
from app.modules.ai import service as ai_service
from app.modules.ai.providers import (
    FALLBACK_MODELS,
    AIProviderError,
    GEMINI_MAX_OUTPUT_TOKENS,
    ClaudeProvider,
    GeminiProvider,
    OpenAIProvider,
    extract_json_object,
)
from app.modules.ai.service import AIService, get_models
from app.modules.credentials.service import TABLE, CredentialsRepository
from tests.conftest import USER_ID
from tests.fakes.fake_supabase import FakeSupabase


def ai_credential(cred_id, service_name, secrets, is_default=False, configuration=None):
    sealed = encrypt_credentials_map(secrets)
    return {
        "id": cred_id,
        "user_id": USER_ID,
        "service_type": "ai_provider",
        "service_name": service_name,
        "display_name": service_name,
        "credentials_encrypted": sealed["encrypted"],
        "encryption_metadata": sealed["metadata"],
        "configuration": configuration or {},
        "is_active": True,
        "is_default": is_default,
    }


def make_service(*rows):
    return AIService(CredentialsRepository(FakeSupabase({TABLE: list(rows)})))


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_thinking_and_fences_are_dropped(self):
        reply = '<thinking>draft {"a": 0}</thinking>\n```json\n{"a": {"b": [1, 2]}}\n```'
        assert extract_json_object(reply) == {"a": {"b": [1, 2]}}

    def test_text_around_object(self):
        assert extract_json_object('Here you go: {"ok": true} Thanks!') == {"ok": True}

    def test_unbalanced(self):
        with pytest.raises(AIProviderError, match="matching closing brace"):
            extract_json_object('{"a": {"b": 1}')

    def test_no_object(self):
        with pytest.raises(AIProviderError, match="No JSON object"):
            extract_json_object("no json here")

    def test_angle_brackets_inside_strings_survive(self):
        reply = '<answer>{"budget": "budget <$1M, ROI >200%", "note": "<b>bold</b>"}</answer>'
        assert extract_json_object(reply) == {"budget": "budget <$1M, ROI >200%", "note": "<b>bold</b>"}

    def test_braces_inside_strings_are_not_counted(self):
        reply = 'Result: {"pattern": "close with }", "nested": {"open": "{"}} trailing'
        assert extract_json_object(reply) == {"pattern": "close with }", "nested": {"open": "{"}}


class TestProviders:
    def test_openai_generate_json(self):
        client = MagicMock()
        client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content='{"x": 1}'))]
        provider = OpenAIProvider(api_key="sk", model="gpt-4o", client=client)

        assert provider.generate_json("system", "user") == {"x": 1}
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    def test_openai_empty_reply(self):
        client = MagicMock()
        client.chat.completions.create.return_value.choices = []
        with pytest.raises(AIProviderError, match="No content received"):
            OpenAIProvider(api_key="sk", client=client).generate_json("s", "u")

    def test_claude_reply_is_extracted(self):
        client = MagicMock()
        client.messages.create.return_value.content = [MagicMock(text='<thinking>hm</thinking>{"y": 2}')]
        provider = ClaudeProvider(api_key="k", model="claude-test", client=client)

        assert provider.generate_json("system", "user") == {"y": 2}
        assert client.messages.create.call_args.kwargs["system"] == "system"
        assert provider.get_status()["provider"] == "Anthropic claude-test"

    def test_claude_requires_key(self):
        with pytest.raises(AIProviderError):
            ClaudeProvider(api_key="")

    def test_zero_temperature_is_passed_through(self):
        client = MagicMock()
        client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content='{}'))]
        OpenAIProvider(api_key="sk", client=client).generate_json("s", "u", temperature=0.0, max_tokens=0)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 0

        claude = MagicMock()
        claude.messages.create.return_value.content = [MagicMock(text='{}')]
        ClaudeProvider(api_key="k", client=claude).generate_json("s", "u", temperature=0.0)
        kwargs = claude.messages.create.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == settings.llm_max_tokens

    def test_gemini_generate_json(self):
        client = MagicMock()
        client.models.generate_content.return_value.text = '{"phases": []}'
        provider = GeminiProvider(api_key="g", model="gemini-1.5-flash", client=client)

        assert provider.generate_json("system", "user") == {"phases": []}
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-1.5-flash"
        assert kwargs["contents"] == "system\n\nuser"
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].temperature == settings.llm_temperature
        assert kwargs["config"].max_output_tokens == GEMINI_MAX_OUTPUT_TOKENS

    def test_gemini_explicit_sampling(self):
        client = MagicMock()
        client.models.generate_content.return_value.text = "{}"
        GeminiProvider(api_key="g", client=client).generate_json("s", "u", temperature=0.0, max_tokens=512)
        config = client.models.generate_content.call_args.kwargs["config"]
        assert config.temperature == 0.0
        assert config.max_output_tokens == 512

    def test_gemini_empty_reply(self):
        client = MagicMock()
        client.models.generate_content.return_value.text = ""
        with pytest.raises(AIProviderError, match="No content received from Google Gemini API"):
            GeminiProvider(api_key="g", client=client).generate_json("s", "u")

    def test_gemini_requires_key(self):
        with pytest.raises(AIProviderError, match="Google Gemini API key must be provided"):
            GeminiProvider(api_key="")


class TestProviderSelection:
    def test_default_credential_is_used(self):
        service = make_service(
            ai_credential("c1", "openai", {"api_key": "sk-openai"}),
            ai_credential("c2", "claude", {"api_key": "sk-claude"}, is_default=True,
                          configuration={"model": "claude-test"}),
        )
        with patch.object(ai_service, "create_provider") as create:
            service.get_configured_provider(USER_ID)
        create.assert_called_once_with("claude", "sk-claude", "claude-test")

    def test_preferred_provider_wins(self):
        service = make_service(
            ai_credential("c1", "openai", {"api_key": "sk-openai", "model": "gpt-4o-mini"}),
            ai_credential("c2", "claude", {"api_key": "sk-claude"}, is_default=True),
        )
        with patch.object(ai_service, "create_provider") as create:
            service.get_configured_provider(USER_ID, "openai")
        create.assert_called_once_with("openai", "sk-openai", "gpt-4o-mini")

    def test_single_string_credential_with_camel_case_key(self):
        sealed = encrypt_credential('{"apiKey": "sk-legacy"}')
        row = ai_credential("c1", "gemini", {"api_key": "unused"}, is_default=True)
        row["credentials_encrypted"] = sealed["encrypted"]
        row["encryption_metadata"] = {"iv": sealed["iv"], "authTag": sealed["auth_tag"]}

        with patch.object(ai_service, "create_provider") as create:
            make_service(row).get_configured_provider(USER_ID)
        create.assert_called_once_with("gemini", "sk-legacy", None)

    def test_unsupported_provider(self):
        service = make_service(ai_credential("c1", "mistral", {"api_key": "k"}, is_default=True))
        with pytest.raises(AIProviderError, match="not supported"):
            service.get_configured_provider(USER_ID)

    def test_no_credential(self):
        with pytest.raises(AIProviderError, match="No valid AI provider configured"):
            make_service().get_configured_provider(USER_ID)

    def test_undecryptable_credential(self):
        row = ai_credential("c1", "openai", {"api_key": "sk"}, is_default=True)
        row["encryption_metadata"]["api_key_iv"] = "00" * 16
        with pytest.raises(AIProviderError, match="Failed to decrypt"):
            make_service(row).get_configured_provider(USER_ID)


class TestStatus:
    def test_configured(self):
        service = make_service(ai_credential("c1", "claude", {"api_key": "k"}, is_default=True,
                                             configuration={"model": "claude-test"}))
        status = service.get_status(USER_ID)
        assert status == {"configured": True, "provider": "Anthropic claude-test", "api_key_status": "Set"}
        assert service.is_configured(USER_ID) is True

    def test_never_raises(self):
        status = make_service().get_status(USER_ID)
        assert status["configured"] is False
        assert status["api_key_status"].startswith("Error: No valid AI provider configured")

    def test_missing_user(self):
        assert make_service().get_status(None)["api_key_status"] == "Missing user ID"


class TestModelCache:
    MODELS = [{"id": "gpt-4o", "name": "gpt-4o", "description": "", "created": 1}]

    def test_second_call_is_cached(self):
        with patch.object(ai_service, "fetch_available_models", return_value=self.MODELS) as fetch:
            first = get_models("openai")
            second = get_models("openai")

        assert fetch.call_count == 1
        assert first["cached"] is False and "fetched_at" in first
        assert second["cached"] is True
        assert second["cached_at"] == first["fetched_at"]
        assert second["models"] == self.MODELS

    def test_force_refresh(self):
        with patch.object(ai_service, "fetch_available_models", return_value=self.MODELS) as fetch:
            get_models("openai")
            refreshed = get_models("openai", force_refresh=True)
        assert fetch.call_count == 2
        assert refreshed["cached"] is False

    def test_failure_returns_fallback(self):
        with patch.object(ai_service, "fetch_available_models", side_effect=RuntimeError("boom")):
            result = get_models("openai")

        assert result["success"] is False
        assert result["error"] == "boom"
        assert result["fallback_models"] == FALLBACK_MODELS["openai"]

        with patch.object(ai_service, "fetch_available_models", return_value=self.MODELS):
            assert get_models("openai")["cached"] is False

    def test_curated_lists(self):
        claude = get_models("claude")
        assert claude["success"] is True
        assert any(m["id"].startswith("claude-") for m in claude["models"])

    def test_unsupported_provider(self):
        with pytest.raises(AIProviderError, match="Valid providers: openai, gemini, claude"):
            get_models("mistral")
