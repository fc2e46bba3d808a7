from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Dict, Any


class Contact(BaseModel):
    name: str = ""
    title: str = ""
    email: str = ""
    linkedin: str = ""
    phone: str = ""


class ProcessMetrics(BaseModel):
    process_complexity: Optional[str] = None
    labor_intensity: Optional[str] = None
    current_cost: Optional[str] = None
    current_cycle_time: Optional[str] = None

    class Config:
        extra = "allow"


class InvestmentContext(BaseModel):
    budget_range: Optional[str] = None
    implementation_readiness: Optional[str] = None
    stakeholder_buy_in: Optional[str] = None

    class Config:
        extra = "allow"


class StrategicInitiative(BaseModel):
    initiative: str = ""
    contact: Contact = Field(default_factory=Contact)
    business_problems: List[str] = Field(default_factory=list)
    expected_outcomes: List[str] = Field(default_factory=list)
    success_metrics: List[str] = Field(default_factory=list)
    target_timeline: Optional[str] = None
    estimated_budget: Optional[str] = None
    priority: Optional[Literal["High", "Medium", "Low"]] = None
    status: Optional[Literal["Planning", "In Progress", "On Hold", "Completed"]] = None
    linked_objective: Optional[str] = None
    process_metrics: Optional[ProcessMetrics] = None
    investment_context: Optional[InvestmentContext] = None

    class Config:
        extra = "allow"


class BusinessObjective(BaseModel):
    objective: str
    target_metric: Optional[str] = None


class SystemApplication(BaseModel):
    name: str = ""
    category: Optional[str] = None
    description: Optional[str] = None

    class Config:
        extra = "allow"


class ProfileData(BaseModel):
    """Client profile document. Framework and assessment sections pass through as extra keys."""
    id: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    employee_count: Optional[str] = None
    annual_revenue: Optional[str] = None
    primary_location: Optional[str] = None
    website_url: Optional[str] = None
    company_size: Optional[Literal["SMB", "Mid-Market", "Enterprise"]] = None
    strategic_initiatives: Optional[List[StrategicInitiative]] = None
    systems_and_applications: Optional[List[SystemApplication]] = None
    business_objectives: Optional[List[BusinessObjective]] = None
    business_goals: Optional[List[str]] = None
    key_challenges: Optional[List[str]] = None
    status: Optional[Literal["draft", "complete"]] = None

    class Config:
        extra = "allow"


class ProfileResponse(BaseModel):
    id: str
    company_name: Optional[str] = None
    industry: Optional[str] = None
    markdown: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    user_id: Optional[str] = None
    original_id: Optional[str] = None

    class Config:
        extra = "allow"
        from_attributes = True


class SaveProfileResponse(BaseModel):
    success: bool = True
    profile: ProfileResponse


class CurrentProfileResponse(BaseModel):
    success: bool = True
    profile: Optional[ProfileResponse] = None


class NormalizeRequest(BaseModel):
    profile: ProfileData
    company_size: Optional[Literal["SMB", "Mid-Market", "Enterprise"]] = None


class ImportMarkdownRequest(BaseModel):
    markdown: str = Field(..., min_length=1)
    save: bool = False


class MarkdownResponse(BaseModel):
    profile_id: str
    markdown: str


class OpportunitiesResponse(BaseModel):
    profile_id: str
    opportunities: List[Dict[str, Any]]
    business_profile: Optional[Dict[str, Any]] = None
    provider: str
    generated_at: Optional[str] = None
    cached: bool = False
    analysis: Optional[Dict[str, Any]] = None


class ExtractMarkdownRequest(BaseModel):
    markdown: str = Field(..., min_length=1)
    provider: Optional[str] = None
    save: bool = False
