from fastapi import APIRouter, Depends, Request
from app.core.dependencies import get_current_user
from app.core.encryption import (
    ALGORITHM, EncryptionError, EncryptionNotConfiguredError,
    encrypt_credentials_map, generate_encryption_key, is_encryption_configured
)
from app.core.errors import api_error
from app.core.rate_limit import limiter
from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.ai.providers import SUPPORTED_PROVIDERS
from app.modules.ai.service import get_models
from app.modules.credentials.schemas import (
    CredentialSave, CredentialResponse, CredentialTestRequest, TestResult,
    EncryptRequest, EncryptResponse, FetchModelsRequest
)
from app.modules.credentials.service import CredentialsRepository, encryption_not_configured
from supabase import Client
from typing import List, Dict, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def get_credentials_repository(supabase: Client = Depends(get_service_supabase)) -> CredentialsRepository:
    return CredentialsRepository(supabase)


@router.get("/credentials", response_model=List[CredentialResponse])
async def list_credentials(
    service_type: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    """List stored credentials (secrets excluded)"""
    return repository.get_credentials(current_user["id"], service_type)


@router.post("/credentials", response_model=CredentialResponse)
async def save_credentials(
    credential_data: CredentialSave,
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    """Create or update a credential; secrets are encrypted before storage"""
    return repository.save_credentials(current_user["id"], credential_data.model_dump())


@router.delete("/credentials/{credential_id}")
async def delete_credentials(
    credential_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    repository.delete_credentials(current_user["id"], credential_id)
    return {"success": True}


@router.post("/credentials/{credential_id}/default")
async def set_default_credential(
    credential_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    repository.set_default_provider(current_user["id"], credential_id)
    return {"success": True}


@router.post("/credentials/{credential_id}/test", response_model=TestResult)
def test_connection(
    credential_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    """Test a stored credential and record the outcome"""
    try:
        return repository.test_connection(current_user["id"], credential_id)
    except EncryptionError as e:
        raise api_error(500, "Connection test failed", str(e))


@router.post("/test-credentials", response_model=TestResult)
def test_credentials(
    test_data: CredentialTestRequest,
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    """Test credentials before saving them"""
    logger.info(f"Testing {test_data.service_type}/{test_data.service_name} credentials for user {current_user['id']}")
    return repository.test_new_credentials(test_data.model_dump())


@router.post("/encrypt-credentials", response_model=EncryptResponse)
async def encrypt_credentials(
    encrypt_data: EncryptRequest,
    current_user: Dict = Depends(get_current_user)
):
    if not is_encryption_configured():
        raise encryption_not_configured()
    try:
        return encrypt_credentials_map(encrypt_data.credentials)
    except EncryptionNotConfiguredError:
        raise encryption_not_configured()
    except EncryptionError as e:
        logger.error(f"Credential encryption error: {e}")
        raise api_error(500, "Encryption configuration error",
                        "Please check your ENCRYPTION_KEY environment variable setup.")


@router.get("/generate-encryption-key")
async def generate_key():
    """Generate a fresh key for the ENCRYPTION_KEY setting"""
    encryption_key = generate_encryption_key()
    return {
        "success": True,
        "encryption_key": encryption_key,
        "instructions": [
            "1. Copy the encryption key below",
            "2. Add it to your .env file as ENCRYPTION_KEY=<key>",
            "3. Restart the API server",
            "4. Credential storage will now be available",
        ],
        "env_format": f"ENCRYPTION_KEY={encryption_key}",
        "security": {
            "key_length": len(encryption_key),
            "algorithm": ALGORITHM.upper(),
            "warning": "Keep this key secure and never commit it to version control!",
        },
    }


@router.post("/fetch-models")
@limiter.limit(settings.fetch_models_rate_limit)
def fetch_models(
    request: Request,
    models_request: FetchModelsRequest,
    current_user: Dict = Depends(get_current_user)
):
    """List models for an AI provider, served from a short-lived cache"""
    provider = models_request.provider
    if provider not in SUPPORTED_PROVIDERS:
        raise api_error(400, f"Unsupported provider: {provider}. Valid providers: {', '.join(SUPPORTED_PROVIDERS)}")
    return get_models(provider, models_request.force_refresh)
