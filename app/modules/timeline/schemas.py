from pydantic import BaseModel
from typing import Optional, Dict, Any, List
from app.modules.profiles.schemas import ProfileData


class GenerateFromProfileRequest(BaseModel):
    profile_id: Optional[str] = None
    profile: Optional[ProfileData] = None
    force_regenerate: bool = False
    scenario_type: Optional[str] = None
    provider: Optional[str] = None


class TimelineResponse(BaseModel):
    success: bool = True
    timeline: Optional[Dict[str, Any]] = None
    profile_id: Optional[str] = None
    profile_name: Optional[str] = None
    cached: bool = False
    generated_at: Optional[str] = None
    scenario_type: Optional[str] = None
    unsaved_profile: bool = False
    provider: Optional[str] = None
    method: Optional[str] = None


class CachedTimelineResponse(BaseModel):
    success: bool = True
    timeline: Optional[Dict[str, Any]] = None
    cached: bool = False
    generated_at: Optional[str] = None
    scenario_type: Optional[str] = None
    scenario_mismatch: bool = False
    message: Optional[str] = None


class ProviderOption(BaseModel):
    service_name: str
    display_name: Optional[str] = None
    is_default: bool = False


class TestAIRequest(BaseModel):
    use_markdown: bool = True
    scenario_type: Optional[str] = None
    provider: Optional[str] = None


class TestAIResponse(BaseModel):
    success: bool
    profile_id: str
    profile_name: Optional[str] = None
    timeline: Dict[str, Any]
    markdown: str
    generated_at: str
    provider: str
    method: str
