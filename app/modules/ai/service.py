"""
Central entry point for LLM calls. Picks the user's configured provider from
stored credentials and hides which SDK sits behind it.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from app.config import settings
from app.core.encryption import EncryptionError
from app.modules.ai.providers import (
    FALLBACK_MODELS,
    SUPPORTED_PROVIDERS,
    AIProviderError,
    ClaudeProvider,
    GeminiProvider,
    OpenAIProvider,
    create_provider,
)
from app.modules.credentials.service import CredentialsRepository

logger = logging.getLogger(__name__)

AI_SERVICE_TYPE = "ai_provider"

# provider -> (fetched_at monotonic, fetched_at iso, models)
_model_cache: Dict[str, Tuple[float, str, List[Dict[str, Any]]]] = {}


class AIService:
    def __init__(self, credentials: CredentialsRepository):
        self.credentials = credentials

    def get_configured_provider(self, user_id: str, preferred_provider: Optional[str] = None):
        """
        Build the provider for a user.

        A preferred provider is looked up by service name among the user's AI
        credentials; otherwise the default one is used. There is no system-wide
        fallback.
        """
        if not user_id:
            raise AIProviderError("User context is required to select an AI provider.")

        if preferred_provider:
            credential = next(
                (c for c in self.credentials.get_credentials(user_id, AI_SERVICE_TYPE)
                 if c.get("service_name") == preferred_provider),
                None,
            )
        else:
            credential = self.credentials.get_default_provider(user_id, AI_SERVICE_TYPE)

        if credential and credential.get("credentials_encrypted") and credential.get("encryption_metadata"):
            try:
                secrets = self.credentials.decrypt_credentials(credential)
            except EncryptionError as e:
                logger.error(f"Failed to decrypt provider credential {credential.get('id')}: {e}")
                raise AIProviderError("Failed to decrypt or instantiate user-configured provider.")

            api_key = secrets.get("api_key") or secrets.get("apiKey")
            model = secrets.get("model") or (credential.get("configuration") or {}).get("model")
            if api_key:
                service_name = (credential.get("service_name") or "").lower()
                if service_name not in SUPPORTED_PROVIDERS:
                    raise AIProviderError(
                        f"Selected provider '{credential.get('service_name')}' is not supported by the backend."
                    )
                return create_provider(service_name, api_key, model)

        raise AIProviderError("No valid AI provider configured for this user. Please check your provider selection.")

    def generate_json(self, system_prompt: str, user_prompt: str, user_id: str,
                      provider: Optional[str] = None) -> Dict[str, Any]:
        instance = self.get_configured_provider(user_id, provider)
        logger.info(f"Generating JSON with {instance.get_status()['provider']} for user {user_id}")
        return instance.generate_json(system_prompt, user_prompt)

    def get_status(self, user_id: str, provider: Optional[str] = None) -> Dict[str, Any]:
        """Provider status for the user; never raises"""
        if not user_id:
            return {"configured": False, "provider": "None", "api_key_status": "Missing user ID"}
        try:
            return self.get_configured_provider(user_id, provider).get_status()
        except Exception as e:
            return {"configured": False, "provider": "None", "api_key_status": f"Error: {e}"}

    def is_configured(self, user_id: str, provider: Optional[str] = None) -> bool:
        return self.get_status(user_id, provider)["configured"]


def fetch_available_models(provider: str) -> List[Dict[str, Any]]:
    if provider == "openai":
        return OpenAIProvider().fetch_available_models()
    if provider == "gemini":
        return GeminiProvider.fetch_available_models()
    if provider == "claude":
        return ClaudeProvider.fetch_available_models()
    raise AIProviderError(f"Unsupported provider: {provider}")


def get_models(provider: str, force_refresh: bool = False) -> Dict[str, Any]:
    """
    Model list for a provider, cached in-process.

    A failed fetch is reported with the static fallback list rather than raised.
    """
    if provider not in SUPPORTED_PROVIDERS:
        raise AIProviderError(
            f"Unsupported provider: {provider}. Valid providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    cached = _model_cache.get(provider)
    if not force_refresh and cached and time.monotonic() - cached[0] < settings.model_cache_ttl_seconds:
        return {"success": True, "provider": provider, "models": cached[2], "cached": True, "cached_at": cached[1]}

    fetched_at = datetime.now(timezone.utc).isoformat()
    try:
        models = fetch_available_models(provider)
    except Exception as e:
        logger.warning(f"Error fetching {provider} models, returning fallback list: {e}")
        return {
            "success": False,
            "provider": provider,
            "error": str(e),
            "fallback_models": FALLBACK_MODELS[provider],
            "timestamp": fetched_at,
        }

    _model_cache[provider] = (time.monotonic(), fetched_at, models)
    return {"success": True, "provider": provider, "models": models, "cached": False, "fetched_at": fetched_at}


def clear_model_cache() -> None:
    _model_cache.clear()
