"""Tests for live credential checks, with HTTP served by httpx.MockTransport."""

import httpx
import pytest
from fastapi import HTTPException

from app.modules.credentials.tester import CredentialTester, SharedHttpClient


def make_tester(handler):
    return CredentialTester(client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestDispatch:
    def test_unsupported_service_type(self):
        tester = make_tester(lambda request: httpx.Response(200))
        with pytest.raises(HTTPException) as exc:
            tester.test("payment_gateway", "stripe", {})
        assert exc.value.status_code == 400
        assert exc.value.detail["error"] == "Unsupported service type: payment_gateway"

    def test_unsupported_service_name_is_failed_result(self):
        tester = make_tester(lambda request: httpx.Response(200))
        result = tester.test("crm_system", "salesforce", {})
        assert result["success"] is False
        assert result["error"] == "Unsupported CRM system: salesforce"
        assert "timestamp" in result and result["duration"] >= 0

    def test_transport_error_is_failed_result(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        result = make_tester(handler).test("ai_provider", "openai", {"api_key": "sk"})
        assert result["success"] is False
        assert "connection refused" in result["error"]


class TestAIProviders:
    def test_openai_counts_gpt_models(self):
        def handler(request):
            assert request.headers["Authorization"] == "Bearer sk-good"
            return httpx.Response(200, json={"data": [{"id": "gpt-4o"}, {"id": "gpt-4o-mini"}, {"id": "whisper-1"}]})

        result = make_tester(handler).test("ai_provider", "openai", {"api_key": "sk-good"})

        assert result["success"] is True
        assert result["details"]["models_available"] == 2
        assert result["details"]["recommended_model"] == "gpt-4o"

    def test_openai_error_message(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})

        result = make_tester(handler).test("ai_provider", "openai", {"api_key": "sk-bad"})
        assert result["error"] == "OpenAI API error: 401 - Incorrect API key provided"

    def test_missing_key(self):
        result = make_tester(lambda request: httpx.Response(200)).test("ai_provider", "gemini", {})
        assert result["error"] == "Google API key is required"

    def test_claude_requires_model(self):
        result = make_tester(lambda request: httpx.Response(200)).test("ai_provider", "claude", {"api_key": "k"})
        assert result["error"] == "Anthropic model is required"

    def test_claude_sends_version_header(self):
        def handler(request):
            assert request.headers["x-api-key"] == "k"
            assert request.headers["anthropic-version"] == "2023-06-01"
            return httpx.Response(200, json={"content": []})

        result = make_tester(handler).test("ai_provider", "claude", {"api_key": "k"}, {"model": "claude-3-5-haiku-latest"})
        assert result["success"] is True
        assert result["details"]["recommended_model"] == "claude-3-5-haiku-latest"

    def test_gemini_passes_key_as_query_param(self):
        def handler(request):
            assert request.url.path == "/v1/models"
            assert request.url.params["key"] == "g-key"
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"models": [{"name": "models/gemini-1.5-pro"}, {"name": "models/gemini-1.5-flash"}]})

        result = make_tester(handler).test("ai_provider", "gemini", {"api_key": "g-key"})

        assert result["success"] is True
        assert result["message"] == "Google Gemini connection successful"
        assert result["details"]["models_available"] == 2
        assert result["details"]["recommended_model"] == "gemini-pro"

    def test_gemini_configured_model_and_empty_listing(self):
        result = make_tester(lambda request: httpx.Response(200, json={})).test(
            "ai_provider", "gemini", {"api_key": "g-key"}, {"model": "gemini-1.5-flash"}
        )
        assert result["details"]["models_available"] == 0
        assert result["details"]["recommended_model"] == "gemini-1.5-flash"

    def test_gemini_error_message(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "API key not valid"}})

        result = make_tester(handler).test("ai_provider", "gemini", {"api_key": "bad"})
        assert result["success"] is False
        assert result["error"] == "Gemini API error: 400 - API key not valid"


class TestServiceNow:
    def test_basic_auth_against_sanitized_instance(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization", "")
            return httpx.Response(200, json={"result": [{"sys_id": "1"}]})

        result = make_tester(handler).test(
            "integration_platform", "servicenow",
            {"username": "admin", "password": "pw"},
            {"instance_url": "dev1.service-now.com/"},
        )

        assert result["success"] is True
        assert seen["url"].startswith("https://dev1.service-now.com/api/now/table/sys_user")
        assert seen["auth"].startswith("Basic ")
        assert result["details"]["user_count"] == 1

    def test_foreign_domain_never_contacted(self):
        def handler(request):
            raise AssertionError("no request expected")

        result = make_tester(handler).test(
            "integration_platform", "servicenow",
            {"username": "admin", "password": "pw"},
            {"instance_url": "https://intranet.example.com"},
        )
        assert result["error"] == "Invalid ServiceNow domain"

    def test_missing_instance(self):
        result = make_tester(lambda request: httpx.Response(200)).test(
            "integration_platform", "servicenow", {"username": "a", "password": "b"}, {}
        )
        assert result["error"] == "ServiceNow instance URL is required in configuration"


class TestHubSpot:
    def test_account_details(self):
        def handler(request):
            assert request.headers["Authorization"] == "Bearer pat-1"
            return httpx.Response(200, json={"portalId": 42, "accountName": "Acme"})

        result = make_tester(handler).test("crm_system", "hubspot", {"api_key": "pat-1"})
        assert result["details"]["account_id"] == 42
        assert result["details"]["account_name"] == "Acme"

    def test_rejected_token(self):
        result = make_tester(lambda request: httpx.Response(403)).test("crm_system", "hubspot", {"api_key": "x"})
        assert result["error"] == "HubSpot API error: 403 - Authentication failed"


class TestSharedHttpClient:
    def test_testers_share_one_client(self):
        SharedHttpClient.close()
        try:
            first, second = CredentialTester(), CredentialTester()
            assert first.client is second.client
            assert not first.client.is_closed
        finally:
            SharedHttpClient.close()

    def test_close_releases_and_next_use_reopens(self):
        client = SharedHttpClient.get_client()
        SharedHttpClient.close()
        assert client.is_closed

        reopened = SharedHttpClient.get_client()
        assert reopened is not client
        assert not reopened.is_closed
        SharedHttpClient.close()
