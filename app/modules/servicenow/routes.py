from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user
from app.database.supabase_client import get_service_supabase
from app.modules.credentials.service import CredentialsRepository
from app.modules.servicenow.schemas import ServiceNowCredentials
from app.modules.servicenow.service import ServiceNowService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/servicenow", tags=["servicenow"])


def get_servicenow_service(supabase: Client = Depends(get_service_supabase)) -> ServiceNowService:
    return ServiceNowService(CredentialsRepository(supabase))


@router.get("/get-credentials", response_model=ServiceNowCredentials)
async def get_credentials(
    current_user: Dict = Depends(get_current_user),
    service: ServiceNowService = Depends(get_servicenow_service)
):
    """ServiceNow connection details for the current user"""
    return service.get_connection(current_user["id"])
