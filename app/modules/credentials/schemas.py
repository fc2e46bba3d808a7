from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal
from datetime import datetime

ServiceType = Literal["ai_provider", "crm_system", "integration_platform"]


class CredentialSave(BaseModel):
    id: Optional[str] = None
    service_type: ServiceType
    service_name: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    credentials: Dict[str, Any] = Field(default_factory=dict)  # plaintext, encrypted before storage
    configuration: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    is_default: bool = False


class CredentialResponse(BaseModel):
    """Stored credential without the encrypted secrets"""
    id: str
    user_id: str
    service_type: str
    service_name: str
    display_name: Optional[str] = None
    configuration: Optional[Dict[str, Any]] = None
    is_active: bool = True
    is_default: bool = False
    test_status: Optional[str] = None
    test_result: Optional[Dict[str, Any]] = None
    last_tested_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CredentialTestRequest(BaseModel):
    service_type: str = Field(..., min_length=1)
    service_name: str = Field(..., min_length=1)
    credentials: Dict[str, Any]
    configuration: Optional[Dict[str, Any]] = None


class TestResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: str
    duration: int


class EncryptRequest(BaseModel):
    credentials: Dict[str, Any]


class EncryptResponse(BaseModel):
    encrypted: Dict[str, str]
    metadata: Dict[str, Any]


class FetchModelsRequest(BaseModel):
    provider: str = Field(..., min_length=1)
    force_refresh: bool = False
