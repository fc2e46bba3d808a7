"""
Stored third-party credentials (AI providers, CRM systems, integration platforms).

Secrets are encrypted field by field with AES-256-GCM before they reach the
table and are only decrypted server-side when a provider or tester needs them.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.core.encryption import (
    EncryptionError,
    EncryptionNotConfiguredError,
    decrypt_stored_credentials,
    encrypt_credentials_map,
)
from app.core.errors import api_error
from app.modules.credentials.tester import CredentialTester

logger = logging.getLogger(__name__)

TABLE = "external_service_credentials"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def encryption_not_configured() -> HTTPException:
    return api_error(
        503,
        "Credential encryption not configured",
        "ENCRYPTION_KEY environment variable is required. Please see setup documentation.",
        setup_required=True,
    )


class CredentialsRepository:
    def __init__(self, supabase: Client, tester: Optional[CredentialTester] = None):
        self.supabase = supabase
        self._tester = tester

    @property
    def tester(self) -> CredentialTester:
        if self._tester is None:
            self._tester = CredentialTester()
        return self._tester

    def get_credentials(self, user_id: Optional[str], service_type: Optional[str] = None) -> List[Dict[str, Any]]:
        if not user_id:
            return []
        try:
            query = self.supabase.table(TABLE).select("*").eq("user_id", user_id)
            if service_type:
                query = query.eq("service_type", service_type)
            result = query.order("service_type").order("display_name").execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error fetching credentials: {e}")
            raise api_error(500, "Failed to fetch service credentials", str(e))

    def get_credential(self, user_id: str, credential_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("id", credential_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching credential {credential_id}: {e}")
            raise api_error(500, "Failed to fetch credential", str(e))
        return result.data[0] if result.data else None

    def get_default_provider(self, user_id: Optional[str], service_type: Optional[str]) -> Optional[Dict[str, Any]]:
        """Active default credential for a service type, or None"""
        if not user_id or not service_type:
            return None
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .eq("service_type", service_type)\
                .eq("is_active", True)\
                .eq("is_default", True)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching default provider: {e}")
            return None
        return result.data[0] if result.data else None

    def save_credentials(self, user_id: str, credential_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Encrypt and store a credential. Creates when no id is given, else updates.

        An update with no credential fields keeps the stored secrets.
        """
        if not user_id:
            raise api_error(401, "User authentication required.")

        credential_id = credential_data.get("id")
        record = {
            "user_id": user_id,
            "service_type": credential_data["service_type"],
            "service_name": credential_data["service_name"],
            "display_name": credential_data["display_name"],
            "configuration": credential_data.get("configuration") or {},
            "is_active": credential_data.get("is_active", True),
            "is_default": credential_data.get("is_default", False),
            "updated_at": _now(),
        }

        secrets = credential_data.get("credentials") or {}
        if secrets or not credential_id:
            try:
                sealed = encrypt_credentials_map(secrets)
            except EncryptionNotConfiguredError:
                raise encryption_not_configured()
            except EncryptionError as e:
                raise api_error(500, "Encryption configuration error", str(e))
            record["credentials_encrypted"] = sealed["encrypted"]
            record["encryption_metadata"] = sealed["metadata"]

        try:
            if record["is_default"]:
                self._clear_other_defaults(user_id, record["service_type"], credential_id)

            if credential_id:
                result = self.supabase.table(TABLE)\
                    .update(record)\
                    .eq("id", credential_id)\
                    .eq("user_id", user_id)\
                    .execute()
                if not result.data:
                    raise api_error(404, "Credential not found")
            else:
                record["created_at"] = _now()
                result = self.supabase.table(TABLE).insert(record).execute()
                if not result.data:
                    raise api_error(500, "Failed to save credentials")

            saved = result.data[0]
            logger.info(f"Saved {saved['service_type']}/{saved['service_name']} credential {saved['id']} for user {user_id}")
            return saved
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Exception in save_credentials: {e}")
            raise api_error(500, f"Failed to save credentials: {e}")

    def delete_credentials(self, user_id: str, credential_id: str) -> bool:
        if not user_id or not credential_id:
            raise api_error(400, "User ID and credential ID required.")
        try:
            self.supabase.table(TABLE)\
                .delete()\
                .eq("id", credential_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Exception in delete_credentials: {e}")
            raise api_error(500, "Failed to delete credentials", str(e))

    def set_default_provider(self, user_id: str, credential_id: str) -> bool:
        """Make one credential the default for its service type and unset the rest"""
        if not user_id or not credential_id:
            raise api_error(400, "User ID and credential ID required.")

        credential = self.get_credential(user_id, credential_id)
        if not credential:
            raise api_error(404, "Credential not found")

        try:
            self._clear_other_defaults(user_id, credential["service_type"], credential_id)
            self.supabase.table(TABLE)\
                .update({"is_default": True, "updated_at": _now()})\
                .eq("id", credential_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Exception in set_default_provider: {e}")
            raise api_error(500, "Failed to set default provider", str(e))

    def _clear_other_defaults(self, user_id: str, service_type: str, keep_id: Optional[str]) -> None:
        query = self.supabase.table(TABLE)\
            .update({"is_default": False})\
            .eq("user_id", user_id)\
            .eq("service_type", service_type)\
            .eq("is_default", True)
        if keep_id:
            query = query.neq("id", keep_id)
        query.execute()

    def get_providers_by_type(self, user_id: Optional[str], service_type: Optional[str]) -> List[Dict[str, Any]]:
        if not user_id or not service_type:
            return []
        try:
            result = self.supabase.table(TABLE)\
                .select("service_name, display_name, is_default")\
                .eq("user_id", user_id)\
                .eq("service_type", service_type)\
                .eq("is_active", True)\
                .order("is_default", desc=True)\
                .order("display_name")\
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Exception in get_providers_by_type for {service_type}: {e}")
            raise api_error(500, f"Failed to fetch {service_type} providers", str(e))

    def decrypt_credentials(self, credential: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return decrypt_stored_credentials(
                credential.get("credentials_encrypted"),
                credential.get("encryption_metadata"),
            )
        except EncryptionNotConfiguredError:
            raise encryption_not_configured()

    def test_connection(self, user_id: str, credential_id: str) -> Dict[str, Any]:
        """Test a stored credential, recording testing -> success/failed on the row"""
        if not user_id or not credential_id:
            raise api_error(400, "User ID and credential ID required.")

        credential = self.get_credential(user_id, credential_id)
        if not credential:
            raise api_error(404, "Credential not found")

        try:
            self._update_test_status(user_id, credential_id, {"test_status": "testing"})

            result = self.tester.test(
                credential["service_type"],
                credential["service_name"],
                self.decrypt_credentials(credential),
                credential.get("configuration") or {},
            )

            self._update_test_status(user_id, credential_id, {
                "test_status": "success" if result["success"] else "failed",
                "test_result": result,
            })
            return result
        except Exception as e:
            message = e.detail.get("error") if isinstance(e, HTTPException) and isinstance(e.detail, dict) else str(e)
            logger.error(f"Connection test for credential {credential_id} raised: {message}")
            self._update_test_status(user_id, credential_id, {
                "test_status": "failed",
                "test_result": {"success": False, "error": message, "timestamp": _now()},
            })
            raise

    def test_new_credentials(self, credential_data: Dict[str, Any]) -> Dict[str, Any]:
        """Test plaintext credentials that have not been saved"""
        return self.tester.test(
            credential_data["service_type"],
            credential_data["service_name"],
            credential_data.get("credentials") or {},
            credential_data.get("configuration") or {},
        )

    def _update_test_status(self, user_id: str, credential_id: str, fields: Dict[str, Any]) -> None:
        self.supabase.table(TABLE)\
            .update({**fields, "last_tested_at": _now()})\
            .eq("id", credential_id)\
            .eq("user_id", user_id)\
            .execute()
