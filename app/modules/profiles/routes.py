from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user
from app.core.errors import api_error
from app.database.supabase_client import get_service_supabase
from app.modules.ai.service import AIService
from app.modules.credentials.service import CredentialsRepository
from app.modules.markdown.service import MarkdownParseError, generate_markdown, parse_markdown
from app.modules.profiles.extraction import ProfileExtractionService
from app.modules.profiles.opportunities import OpportunitiesService
from app.modules.profiles.repository import ProfileRepository
from app.modules.profiles.schemas import (
    ProfileData, ProfileResponse, SaveProfileResponse, CurrentProfileResponse,
    NormalizeRequest, ImportMarkdownRequest, ExtractMarkdownRequest, MarkdownResponse, OpportunitiesResponse
)
from app.modules.profiles.service import ProfileService
from app.modules.roi.service import ROICalculationService
from supabase import Client
from typing import List, Dict, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_repository(supabase: Client = Depends(get_service_supabase)) -> ProfileRepository:
    return ProfileRepository(supabase)


def get_profile_service(repository: ProfileRepository = Depends(get_profile_repository)) -> ProfileService:
    return ProfileService(repository)


def get_ai_service(supabase: Client = Depends(get_service_supabase)) -> AIService:
    return AIService(CredentialsRepository(supabase))


def get_opportunities_service(ai_service: AIService = Depends(get_ai_service)) -> OpportunitiesService:
    return OpportunitiesService(ai_service)


def get_extraction_service(ai_service: AIService = Depends(get_ai_service)) -> ProfileExtractionService:
    return ProfileExtractionService(ai_service)


def _get_owned_profile(repository: ProfileRepository, profile_id: str, user_id: str) -> Dict:
    profile = repository.get_profile(profile_id, user_id)
    if not profile:
        raise api_error(404, "Profile not found")
    return profile


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    """List the user's profiles, newest first"""
    return repository.get_profiles(current_user["id"])


@router.post("", response_model=ProfileResponse, status_code=201)
async def create_profile(
    profile_data: ProfileData,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    return repository.create_profile(profile_data.model_dump(exclude_unset=True), current_user["id"])


@router.post("/save", response_model=SaveProfileResponse)
async def save_profile(
    profile_data: ProfileData,
    current_user: Dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Create or update the profile (upsert on id)"""
    profile = service.save_profile(profile_data.model_dump(exclude_unset=True), current_user["id"])
    return SaveProfileResponse(profile=profile)


@router.get("/current", response_model=CurrentProfileResponse)
async def get_current_profile(
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    """Most recently updated profile, or null when the user has none"""
    return CurrentProfileResponse(profile=repository.get_latest_profile(current_user["id"]))


@router.post("/normalize")
async def normalize_profile(
    request: NormalizeRequest,
    current_user: Dict = Depends(get_current_user)
):
    profile = request.profile.model_dump(exclude_unset=True)
    return ProfileService.normalize_profile_data(profile, request.company_size)


@router.post("/import-markdown")
async def import_markdown(
    request: ImportMarkdownRequest,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    """Parse a rendered profile back into a document, optionally saving it"""
    try:
        parsed = parse_markdown(request.markdown)
    except MarkdownParseError as e:
        raise api_error(400, str(e))

    profile = {**parsed["company_overview"], "company_name": parsed["company_name"]}
    if request.save:
        profile = repository.create_profile(profile, current_user["id"])
    return {"success": True, "profile": profile, "saved": request.save}


@router.post("/extract-markdown")
def extract_markdown(
    request: ExtractMarkdownRequest,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository),
    service: ProfileExtractionService = Depends(get_extraction_service)
):
    """Extract a profile from free-form markdown with the user's AI provider"""
    result = service.extract(request.markdown, current_user["id"], request.provider)
    if request.save:
        result["mapped_profile"] = repository.create_profile(result["mapped_profile"], current_user["id"])
    result["saved"] = request.save
    return result


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    return _get_owned_profile(repository, profile_id, current_user["id"])


@router.put("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: str,
    profile_data: ProfileData,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    _get_owned_profile(repository, profile_id, current_user["id"])
    return repository.update_profile(profile_id, profile_data.model_dump(exclude_unset=True), current_user["id"])


@router.delete("/{profile_id}", status_code=204)
async def delete_profile(
    profile_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    _get_owned_profile(repository, profile_id, current_user["id"])
    repository.delete_profile(profile_id, current_user["id"])
    return None


@router.get("/{profile_id}/markdown", response_model=MarkdownResponse)
async def get_profile_markdown(
    profile_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    profile = _get_owned_profile(repository, profile_id, current_user["id"])
    markdown = profile.get("markdown") or generate_markdown(profile)
    return MarkdownResponse(profile_id=profile_id, markdown=markdown)


@router.get("/{profile_id}/roi")
async def get_profile_roi(
    profile_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    """ROI projection per strategic initiative plus the portfolio total"""
    profile = _get_owned_profile(repository, profile_id, current_user["id"])
    industry = profile.get("industry")
    initiatives = profile.get("strategic_initiatives") or []

    projections = []
    for initiative in initiatives:
        projection = ROICalculationService.calculate_roi_from_process_metrics(
            initiative.get("process_metrics"),
            initiative.get("investment_context"),
            industry,
        )
        projections.append({
            "initiative": initiative.get("initiative", ""),
            "projection": projection,
            "validation": ROICalculationService.validate_roi_projection(projection, industry),
        })

    return {
        "profile_id": profile_id,
        "industry": industry,
        "benchmarks": ROICalculationService.get_industry_benchmarks(industry),
        "initiatives": projections,
        "portfolio": ROICalculationService.aggregate_initiatives_roi(initiatives, industry),
    }


@router.get("/{profile_id}/opportunities", response_model=OpportunitiesResponse)
def get_profile_opportunities(
    profile_id: str,
    refresh: bool = False,
    provider: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository),
    service: OpportunitiesService = Depends(get_opportunities_service)
):
    """
    Cached opportunity analysis, regenerated on a miss or with refresh.

    Uses the user's AI provider when one is configured, otherwise one
    rule-based recommendation per business problem.
    """
    user_id = current_user["id"]
    profile = _get_owned_profile(repository, profile_id, user_id)

    if not refresh:
        cached = repository.get_cached_opportunities(profile_id, user_id)
        if cached:
            data = cached["opportunities"]
            return OpportunitiesResponse(
                profile_id=profile_id,
                opportunities=data.get("opportunities") or [],
                business_profile=data.get("business_profile"),
                provider=cached["provider"],
                generated_at=cached["generated_at"],
                cached=True,
                analysis=data.get("analysis"),
            )

    result = service.analyze(profile, user_id, provider)
    repository.save_opportunities(
        profile_id,
        {
            "opportunities": result["opportunities"],
            "business_profile": result["business_profile"],
            "analysis": result["analysis"],
        },
        result["provider"],
        user_id,
    )
    logger.info(f"Generated {len(result['opportunities'])} opportunities for profile {profile_id} ({result['provider']})")
    return OpportunitiesResponse(
        profile_id=profile_id,
        opportunities=result["opportunities"],
        business_profile=result["business_profile"],
        provider=result["provider"],
        cached=False,
        analysis=result["analysis"],
    )


@router.delete("/{profile_id}/opportunities")
async def clear_profile_opportunities(
    profile_id: str,
    current_user: Dict = Depends(get_current_user),
    repository: ProfileRepository = Depends(get_profile_repository)
):
    _get_owned_profile(repository, profile_id, current_user["id"])
    repository.clear_opportunities_cache(profile_id, current_user["id"])
    return {"success": True, "message": "Opportunities cache cleared"}
