"""
Checks around timeline generation: scenario names, profile completeness
before the LLM call and the shape of the generated timeline afterwards.
"""

import logging
from typing import Any, Dict, List, NamedTuple, Optional

from app.modules.roi.service import round_half_up
from app.modules.timeline.prompts import SCENARIO_TYPES

logger = logging.getLogger(__name__)

SCENARIO_SYNONYMS = {
    "conservative": ("conservative", "safe", "low-risk", "careful"),
    "balanced": ("balanced", "moderate", "medium", "standard"),
    "aggressive": ("aggressive", "fast", "rapid", "high-risk", "bold"),
}

REQUIRED_TIMELINE_FIELDS = ["current_state", "phases", "future_state", "summary"]
REQUIRED_SUMMARY_FIELDS = ["total_investment", "expected_roi", "time_to_value", "risk_level"]


class TimelineValidationError(ValueError):
    pass


class ScenarioValidation(NamedTuple):
    is_valid: bool
    corrected: str
    error: Optional[str] = None


def validate_scenario_type(scenario_type: Optional[str]) -> ScenarioValidation:
    if scenario_type in SCENARIO_TYPES:
        return ScenarioValidation(True, scenario_type)

    normalized = (scenario_type or "").strip().lower()
    for scenario, synonyms in SCENARIO_SYNONYMS.items():
        if normalized in synonyms:
            return ScenarioValidation(True, scenario)

    return ScenarioValidation(
        False,
        "balanced",
        f"Invalid scenario type: {scenario_type}. Must be one of: {', '.join(SCENARIO_TYPES)}",
    )


def _blank(value: Any) -> bool:
    return not value or not str(value).strip()


def _validate_initiatives(initiatives: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    errors, warnings, recommendations = [], [], []
    has_problems = has_contact = has_metrics = False

    for index, initiative in enumerate(initiatives, start=1):
        prefix = f"Initiative {index} ({initiative.get('initiative')})"

        if _blank(initiative.get("initiative")):
            errors.append(f"{prefix}: Initiative name is required")

        problems = initiative.get("business_problems") or []
        if not problems:
            warnings.append(f"{prefix}: No business problems specified - timeline may be generic")
        else:
            has_problems = True
            if any(_blank(p) for p in problems):
                warnings.append(f"{prefix}: Some business problems are empty")

        contact = initiative.get("contact") or {}
        if contact.get("name") and contact.get("title"):
            has_contact = True
        else:
            warnings.append(f"{prefix}: Contact information incomplete")

        if (initiative.get("expected_outcomes") or initiative.get("success_metrics")
                or initiative.get("estimated_budget") or initiative.get("target_timeline")):
            has_metrics = True

        if not initiative.get("priority"):
            warnings.append(f"{prefix}: Priority not set - may affect timeline sequencing")
        if not initiative.get("status"):
            warnings.append(f"{prefix}: Status not set - may affect timeline planning")

    if not has_problems:
        recommendations.append("Add specific business problems to initiatives for more targeted timeline recommendations")
    if not has_contact:
        recommendations.append("Add contact information to initiatives for stakeholder-specific timeline planning")
    if not has_metrics:
        recommendations.append("Add expected outcomes, success metrics, or budget information for more accurate ROI projections")

    return {"errors": errors, "warnings": warnings, "recommendations": recommendations}


def calculate_completeness_score(profile: Dict[str, Any]) -> int:
    """Profile data quality on a 0-100 scale"""
    score = 0
    initiatives = profile.get("strategic_initiatives") or []
    systems = profile.get("systems_and_applications") or []

    # Essentials: 40
    if profile.get("company_name"):
        score += 10
    if profile.get("industry"):
        score += 10
    if initiatives:
        score += 20

    # Company context: 20
    for key in ("employee_count", "annual_revenue", "primary_location", "website_url"):
        if profile.get(key):
            score += 5

    # Initiative quality: 25
    if initiatives:
        total = len(initiatives)
        with_problems = sum(1 for i in initiatives if i.get("business_problems"))
        with_contacts = sum(1 for i in initiatives if (i.get("contact") or {}).get("name"))
        with_metrics = sum(1 for i in initiatives if i.get("expected_outcomes") or i.get("success_metrics"))
        score += round_half_up(with_problems / total * 10)
        score += round_half_up(with_contacts / total * 8)
        score += round_half_up(with_metrics / total * 7)

    # Systems: 15
    if systems:
        score += 10
        if all(not _blank(s.get("category")) for s in systems):
            score += 5

    return min(score, 100)


def validate_profile_for_timeline(profile: Dict[str, Any]) -> Dict[str, Any]:
    errors: List[str] = []
    warnings: List[str] = []
    recommendations: List[str] = []

    if _blank(profile.get("company_name")):
        errors.append("Company name is required for timeline generation")
    if _blank(profile.get("industry")):
        errors.append("Industry is required for timeline generation")

    initiatives = profile.get("strategic_initiatives") or []
    if not initiatives:
        errors.append("At least one strategic initiative is required for meaningful timeline generation")
    else:
        checked = _validate_initiatives(initiatives)
        errors.extend(checked["errors"])
        warnings.extend(checked["warnings"])
        recommendations.extend(checked["recommendations"])

    if not profile.get("employee_count"):
        warnings.append("Employee count not provided - timeline sizing may be generic")
        recommendations.append("Add company size information for more accurate timeline recommendations")
    if not profile.get("annual_revenue"):
        warnings.append("Annual revenue not provided - ROI projections may be less accurate")
        recommendations.append("Add revenue information for better financial projections")
    if not profile.get("systems_and_applications"):
        warnings.append("No systems information provided - technology recommendations may be generic")
        recommendations.append("Add current systems information for more specific technology recommendations")

    return {
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "completeness_score": calculate_completeness_score(profile),
        "recommendations": recommendations,
    }


def validate_timeline_response(timeline: Dict[str, Any]) -> None:
    """Raise TimelineValidationError unless the timeline has every required section"""
    for field in REQUIRED_TIMELINE_FIELDS:
        if not timeline.get(field):
            raise TimelineValidationError(f"Invalid timeline response: missing {field}")

    phases = timeline["phases"]
    if not isinstance(phases, list) or not phases:
        raise TimelineValidationError("Invalid timeline response: phases must be an array and non-empty")

    for index, phase in enumerate(phases, start=1):
        if not phase.get("description") or not isinstance(phase.get("initiatives"), list):
            raise TimelineValidationError(f"Phase {index} is missing description or has invalid initiatives")

    for field in REQUIRED_SUMMARY_FIELDS:
        if not timeline["summary"].get(field):
            raise TimelineValidationError(f"Timeline summary is missing field: {field}")


def attempt_timeline_auto_fix(timeline: Dict[str, Any], profile: Dict[str, Any]) -> Dict[str, Any]:
    """Fill sections an LLM left out with generic placeholders"""
    fixed = dict(timeline)
    company = profile.get("company_name")

    if not fixed.get("future_state") and company:
        fixed["future_state"] = {
            "description": (
                f"{company} has successfully transformed into an AI-driven organization, achieving their "
                "strategic objectives through intelligent automation and data-driven decision making."
            ),
            "highlights": [
                {"label": "AI Integration", "value": "90%"},
                {"label": "Automation Level", "value": "75%"},
                {"label": "Process Efficiency", "value": "+60%"},
                {"label": "Decision Speed", "value": "+80%"},
            ],
        }

    if not fixed.get("summary"):
        fixed["summary"] = {
            "total_investment": "$1.5M - $3.5M",
            "expected_roi": "300% over 3 years",
            "time_to_value": "6-12 months",
            "risk_level": "Medium",
        }

    if not isinstance(fixed.get("phases"), list) or not fixed["phases"]:
        fixed["phases"] = [{
            "title": "Phase 1: Foundation & Assessment",
            "description": "Establish AI readiness and implement initial automation solutions.",
            "duration": "3-6 months",
            "initiatives": [{
                "title": "AI Readiness Assessment",
                "description": "Comprehensive evaluation of current capabilities and readiness for AI transformation.",
                "impact": "Establishes clear roadmap and identifies quick wins for immediate value.",
            }],
            "technologies": ["Process Automation", "Data Analytics"],
            "outcomes": [{
                "metric": "AI Readiness Score",
                "value": "60%",
                "description": "Improved organizational readiness for AI adoption",
            }],
            "highlights": [
                {"label": "ROI", "value": "150%"},
                {"label": "Time to Value", "value": "3 months"},
            ],
        }]

    if not fixed.get("current_state"):
        fixed["current_state"] = {
            "description": (
                f"{company or 'The organization'} is beginning their AI transformation journey "
                "with foundational systems and processes in place."
            ),
            "highlights": [
                {"label": "AI Readiness", "value": "30%"},
                {"label": "Automation Level", "value": "20%"},
                {"label": "Data Maturity", "value": "40%"},
            ],
        }

    added = [key for key in REQUIRED_TIMELINE_FIELDS if not timeline.get(key) and fixed.get(key)]
    if added:
        logger.info(f"Timeline auto-fix filled: {', '.join(added)}")
    return fixed
