"""
Live connection tests for third-party credentials.

One sequential HTTP request per service. Provider failures come back as a
failed result; only an unknown service type is an error for the caller.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from app.config import settings
from app.core.errors import api_error
from app.core.validation import validate_instance_url

logger = logging.getLogger(__name__)

OPENAI_API = "https://api.openai.com/v1"
GEMINI_API = "https://generativelanguage.googleapis.com/v1"
ANTHROPIC_API = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
HUBSPOT_API = "https://api.hubapi.com"


class CredentialTestError(Exception):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or default
    return default


class SharedHttpClient:
    """One pooled httpx client for every credential test in the process."""
    _client: Optional[httpx.Client] = None
    _lock = threading.Lock()

    @classmethod
    def get_client(cls) -> httpx.Client:
        with cls._lock:
            if cls._client is None or cls._client.is_closed:
                cls._client = httpx.Client(timeout=settings.http_timeout_seconds)
            return cls._client

    @classmethod
    def close(cls) -> None:
        with cls._lock:
            if cls._client is not None:
                cls._client.close()
            cls._client = None


class CredentialTester:
    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client or SharedHttpClient.get_client()
        self._testers: Dict[str, Dict[str, Callable]] = {
            "ai_provider": {
                "openai": self.test_openai,
                "gemini": self.test_gemini,
                "claude": self.test_claude,
            },
            "crm_system": {
                "hubspot": self.test_hubspot,
            },
            "integration_platform": {
                "servicenow": self.test_servicenow,
            },
        }
        self._labels = {
            "ai_provider": "AI provider",
            "crm_system": "CRM system",
            "integration_platform": "integration platform",
        }

    def test(
        self,
        service_type: str,
        service_name: str,
        credentials: Dict[str, Any],
        configuration: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run the test for one credential and return {success, message|error, details, timestamp, duration}."""
        if service_type not in self._testers:
            raise api_error(400, f"Unsupported service type: {service_type}")

        start = time.monotonic()
        try:
            tester = self._testers[service_type].get(service_name)
            if tester is None:
                raise CredentialTestError(f"Unsupported {self._labels[service_type]}: {service_name}")
            result = tester(credentials or {}, configuration or {})
            logger.info(f"Connection test for {service_type}/{service_name} succeeded")
        except (CredentialTestError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Connection test for {service_type}/{service_name} failed: {e}")
            result = {"success": False, "error": str(e) or e.__class__.__name__}

        result["timestamp"] = _now()
        result["duration"] = int((time.monotonic() - start) * 1000)
        return result

    def test_openai(self, credentials: Dict[str, Any], configuration: Dict[str, Any]) -> Dict[str, Any]:
        api_key = credentials.get("api_key")
        if not api_key:
            raise CredentialTestError("OpenAI API key is required")

        response = self.client.get(
            f"{OPENAI_API}/models",
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        )
        if response.status_code >= 400:
            message = _error_message(response, "Authentication failed")
            raise CredentialTestError(f"OpenAI API error: {response.status_code} - {message}")

        models = [m for m in response.json().get("data") or [] if "gpt" in m.get("id", "")]
        return {
            "success": True,
            "message": "OpenAI connection successful",
            "details": {
                "models_available": len(models),
                "recommended_model": configuration.get("model") or "gpt-4o",
                "endpoint": OPENAI_API,
            },
        }

    def test_gemini(self, credentials: Dict[str, Any], configuration: Dict[str, Any]) -> Dict[str, Any]:
        api_key = credentials.get("api_key")
        if not api_key:
            raise CredentialTestError("Google API key is required")

        response = self.client.get(
            f"{GEMINI_API}/models",
            params={"key": api_key},
            headers={"Content-Type": "application/json"},
        )
        if response.status_code >= 400:
            message = _error_message(response, "Authentication failed")
            raise CredentialTestError(f"Gemini API error: {response.status_code} - {message}")

        return {
            "success": True,
            "message": "Google Gemini connection successful",
            "details": {
                "models_available": len(response.json().get("models") or []),
                "recommended_model": configuration.get("model") or "gemini-pro",
                "endpoint": GEMINI_API,
            },
        }

    def test_claude(self, credentials: Dict[str, Any], configuration: Dict[str, Any]) -> Dict[str, Any]:
        api_key = credentials.get("api_key")
        if not api_key:
            raise CredentialTestError("Anthropic API key is required")

        model = configuration.get("model") or credentials.get("model")
        if not model:
            raise CredentialTestError("Anthropic model is required")

        response = self.client.post(
            f"{ANTHROPIC_API}/messages",
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
            json={"model": model, "max_tokens": 10, "messages": [{"role": "user", "content": "Test"}]},
        )
        if response.status_code >= 400:
            message = _error_message(response, "Authentication failed")
            raise CredentialTestError(f"Claude API error: {response.status_code} - {message}")

        return {
            "success": True,
            "message": "Anthropic Claude connection successful",
            "details": {"recommended_model": model, "endpoint": ANTHROPIC_API},
        }

    def test_servicenow(self, credentials: Dict[str, Any], configuration: Dict[str, Any]) -> Dict[str, Any]:
        if not configuration.get("instance_url"):
            raise CredentialTestError("ServiceNow instance URL is required in configuration")
        checked = validate_instance_url(configuration["instance_url"])
        if not checked.is_valid:
            raise CredentialTestError(checked.error)
        instance_url = checked.sanitized

        username = credentials.get("username")
        password = credentials.get("password")
        if not username or not password:
            raise CredentialTestError("ServiceNow username and password are required")

        response = self.client.get(
            f"{instance_url}/api/now/table/sys_user",
            params={"sysparm_limit": 1},
            auth=(username, password),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )
        if response.status_code >= 400:
            raise CredentialTestError(f"ServiceNow API error: {response.status_code} - Authentication failed")

        return {
            "success": True,
            "message": "ServiceNow connection successful",
            "details": {
                "instance_url": instance_url,
                "user_count": len(response.json().get("result") or []),
                "api_version": "v1",
            },
        }

    def test_hubspot(self, credentials: Dict[str, Any], configuration: Dict[str, Any]) -> Dict[str, Any]:
        api_key = credentials.get("api_key")
        if not api_key:
            raise CredentialTestError("HubSpot API key is required")

        response = self.client.get(
            f"{HUBSPOT_API}/account-info/v3/details",
            headers={"Authorization": f"Bearer {api_key}", "Accept": "application/json"},
        )
        if response.status_code >= 400:
            raise CredentialTestError(f"HubSpot API error: {response.status_code} - Authentication failed")

        data = response.json()
        return {
            "success": True,
            "message": "HubSpot connection successful",
            "details": {
                "account_id": data.get("portalId"),
                "account_name": data.get("accountName") or "Unknown",
                "endpoint": HUBSPOT_API,
            },
        }
