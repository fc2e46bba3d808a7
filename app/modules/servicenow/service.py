"""
Resolves the ServiceNow connection a user has stored as an integration
platform credential.
"""

import logging
from typing import Any, Dict

from app.config import settings
from app.core.validation import sanitize_string, validate_instance_url, validate_scope_id
from app.modules.credentials.service import CredentialsRepository

logger = logging.getLogger(__name__)

SERVICE_TYPE = "integration_platform"
SERVICE_NAME = "servicenow"


def _clean_instance_url(value: Any) -> str:
    checked = validate_instance_url(value) if value else None
    if checked and not checked.is_valid:
        logger.warning(f"Ignoring stored ServiceNow instance URL: {checked.error}")
    return checked.sanitized if checked and checked.is_valid else ""


def _clean_scope_id(value: Any) -> str:
    checked = validate_scope_id(value) if value else None
    if checked and not checked.is_valid:
        logger.warning(f"Ignoring stored ServiceNow scope ID: {checked.error}")
    return checked.sanitized if checked and checked.is_valid else ""


class ServiceNowService:
    def __init__(self, credentials: CredentialsRepository):
        self.credentials = credentials

    def get_connection(self, user_id: str) -> Dict[str, Any]:
        """
        Default (or first) active ServiceNow credential, decrypted.

        Any failure falls back to the SERVICENOW_INSTANCE_URL / SERVICENOW_SCOPE_ID
        settings with has_credentials false.
        """
        try:
            candidates = [
                c for c in self.credentials.get_credentials(user_id, SERVICE_TYPE)
                if c.get("service_name") == SERVICE_NAME and c.get("is_active")
            ]
            if not candidates:
                return {"instance_url": "", "scope_id": "", "username": "", "password": "", "has_credentials": False}

            credential = next((c for c in candidates if c.get("is_default")), candidates[0])
            secrets = self.credentials.decrypt_credentials(credential)
            configuration = credential.get("configuration") or {}

            instance_url = _clean_instance_url(configuration.get("instance_url"))
            username = sanitize_string(secrets.get("username"))
            password = secrets.get("password") or ""
            return {
                "instance_url": instance_url,
                "scope_id": _clean_scope_id(configuration.get("scope_id")),
                "username": username,
                "password": password,
                "has_credentials": bool(instance_url and username and password),
            }
        except Exception as e:
            logger.error(f"Error getting ServiceNow credentials: {e}")
            return {
                "instance_url": settings.servicenow_instance_url or "",
                "scope_id": settings.servicenow_scope_id or "",
                "username": "",
                "password": "",
                "has_credentials": False,
            }
