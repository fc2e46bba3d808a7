from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user
from app.core.errors import api_error
from app.database.supabase_client import get_service_supabase
from app.modules.ai.service import AIService
from app.modules.credentials.service import CredentialsRepository
from app.modules.markdown.service import generate_markdown
from app.modules.profiles.repository import ProfileRepository
from app.modules.profiles.service import ProfileService
from app.modules.timeline.schemas import (
    GenerateFromProfileRequest, TimelineResponse, CachedTimelineResponse,
    ProviderOption, TestAIRequest, TestAIResponse
)
from app.modules.timeline.service import TimelineGenerationError, TimelineService
from datetime import datetime, timezone
from supabase import Client
from typing import List, Dict, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timeline", tags=["timeline"])
test_router = APIRouter(tags=["timeline"])


def get_credentials_repository(supabase: Client = Depends(get_service_supabase)) -> CredentialsRepository:
    return CredentialsRepository(supabase)


def get_timeline_service(supabase: Client = Depends(get_service_supabase)) -> TimelineService:
    return TimelineService(AIService(CredentialsRepository(supabase)), ProfileRepository(supabase))


@router.post("/generate-from-profile", response_model=TimelineResponse)
def generate_from_profile(
    request: GenerateFromProfileRequest,
    current_user: Dict = Depends(get_current_user),
    service: TimelineService = Depends(get_timeline_service)
):
    """Generate (or load from cache) a timeline for a posted or stored profile"""
    logger.info(
        f"Timeline requested by {current_user['id']}: profile_id={request.profile_id}, "
        f"force={request.force_regenerate}, scenario={request.scenario_type}, provider={request.provider}"
    )
    return service.generate_from_profile(
        current_user["id"],
        profile=request.profile.model_dump(exclude_none=True) if request.profile else None,
        profile_id=request.profile_id,
        force_regenerate=request.force_regenerate,
        scenario_type=request.scenario_type,
        provider=request.provider,
    )


@router.get("/providers", response_model=List[ProviderOption])
async def get_providers(
    current_user: Dict = Depends(get_current_user),
    repository: CredentialsRepository = Depends(get_credentials_repository)
):
    """AI providers the user can pick from, default first"""
    return repository.get_providers_by_type(current_user["id"], "ai_provider")


@router.get("/{profile_id}", response_model=CachedTimelineResponse)
async def load_timeline(
    profile_id: str,
    scenario_type: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    service: TimelineService = Depends(get_timeline_service)
):
    if not service.repository.get_profile(profile_id, current_user["id"]):
        raise api_error(404, "Profile not found")

    entry = service.repository.get_cached_timeline(profile_id, current_user["id"])
    if not entry:
        return CachedTimelineResponse(message="No cached timeline found")

    if scenario_type and entry["scenario_type"] != scenario_type:
        return CachedTimelineResponse(
            scenario_mismatch=True,
            scenario_type=entry["scenario_type"],
            message=f"Cached timeline is for {entry['scenario_type']} scenario, but {scenario_type} was requested",
        )

    return CachedTimelineResponse(
        timeline=entry["timeline"],
        cached=True,
        generated_at=entry["generated_at"],
        scenario_type=entry["scenario_type"],
    )


@router.delete("/{profile_id}")
async def clear_timeline(
    profile_id: str,
    current_user: Dict = Depends(get_current_user),
    service: TimelineService = Depends(get_timeline_service)
):
    if not service.repository.get_profile(profile_id, current_user["id"]):
        raise api_error(404, "Profile not found")
    service.repository.clear_timeline_cache(profile_id, current_user["id"])
    return {"success": True, "message": "Timeline cache cleared"}


@test_router.post("/test-ai", response_model=TestAIResponse)
def test_ai(
    request: TestAIRequest,
    current_user: Dict = Depends(get_current_user),
    service: TimelineService = Depends(get_timeline_service)
):
    """Generate an uncached timeline for the user's latest profile"""
    user_id = current_user["id"]
    status = service.ai_service.get_status(user_id, request.provider)
    if not status["configured"]:
        raise api_error(503, "AI timeline generation not available", status["api_key_status"], configured=False)

    profile = service.repository.get_latest_profile(user_id)
    if not profile:
        raise api_error(404, "Profile not found for current user")

    scenario = request.scenario_type or ProfileService.determine_scenario_type(profile)
    try:
        timeline = service.generate_timeline(profile, scenario, user_id, request.provider)
    except TimelineGenerationError as e:
        raise api_error(500, "Timeline generation failed", str(e),
                        timestamp=datetime.now(timezone.utc).isoformat())

    return TestAIResponse(
        success=True,
        profile_id=profile["id"],
        profile_name=profile.get("company_name"),
        timeline=timeline,
        markdown=generate_markdown(profile) if request.use_markdown
        else "[Hidden - set use_markdown to true to view]",
        generated_at=datetime.now(timezone.utc).isoformat(),
        provider=status["provider"],
        method="Full Profile Context",
    )
