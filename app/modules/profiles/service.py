"""
Profile business rules: upsert, normalization of SMB/enterprise input,
initiative generation, scenario selection and timeline enrichment.
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.modules.profiles.repository import ProfileRepository

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"High": 3, "Medium": 2, "Low": 1}

INITIATIVE_NAME_RULES = [
    (("cost", "expense"), "Cost Reduction Program"),
    (("revenue", "sales", "growth"), "Revenue Growth Program"),
    (("efficiency", "productivity"), "Operational Efficiency Program"),
    (("customer", "satisfaction"), "Customer Experience Enhancement Program"),
    (("digital", "automation"), "Digital Transformation Program"),
    (("quality", "improve"), "Quality Improvement Program"),
]

TARGET_METRIC_RULES = [
    (("cost", "expense"), "cost reduction"),
    (("revenue", "sales"), "revenue increase"),
    (("efficiency", "productivity"), "efficiency gain"),
    (("satisfaction",), "satisfaction improvement"),
]

COMPANY_SIZE_MAPPING = {
    "1-50": "startup",
    "51-250": "small",
    "251-1000": "medium",
    "1000+": "large",
}


def _empty_contact() -> Dict[str, str]:
    return {"name": "", "title": "", "email": "", "linkedin": "", "phone": ""}


def _numeric(value: Any) -> Optional[float]:
    """Leading number of a free-form value ("6 months" -> 6.0); None when there is none."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.match(r"\s*(-?\d+(?:\.\d+)?)", str(value))
    return float(match.group(1)) if match else None


def _ai_readiness(profile: Dict[str, Any]) -> float:
    assessment = profile.get("ai_opportunity_assessment")
    if not isinstance(assessment, dict):
        assessment = {}
    return _numeric(assessment.get("ai_readiness_score")) or _numeric(profile.get("ai_readiness_score")) or 5


class ProfileService:
    def __init__(self, repository: ProfileRepository):
        self.repository = repository

    def save_profile(self, profile_data: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        """Create or update depending on whether the document carries an id the user owns."""
        now = datetime.now(timezone.utc).isoformat()
        profile_to_save = {**profile_data, "updated_at": now}
        profile_id = profile_data.get("id")

        if profile_id and self.repository.get_profile(profile_id, user_id):
            logger.info(f"Updating profile {profile_id} for user {user_id}")
            return self.repository.update_profile(profile_id, profile_to_save, user_id)

        profile_to_save["created_at"] = now
        profile_to_save["status"] = "complete"
        return self.repository.create_profile(profile_to_save, user_id)

    @classmethod
    def normalize_profile_data(
        cls,
        profile_data: Dict[str, Any],
        company_size: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Bring SMB (goals/challenges) and enterprise (initiatives) input to one shape.

        Goals always become business objectives. SMB profiles without initiatives get
        generated ones; any profile with both goals and initiatives keeps the user's
        initiatives followed by the generated ones.
        """
        goals = profile_data.get("business_goals") or []
        challenges = profile_data.get("key_challenges") or []
        initiatives = profile_data.get("strategic_initiatives") or []

        normalized = {
            **profile_data,
            "company_size": company_size or "Enterprise",
            "business_objectives": list(profile_data.get("business_objectives") or []),
            "strategic_initiatives": list(initiatives),
        }

        if goals:
            normalized["business_objectives"].extend(
                {"objective": goal, "target_metric": cls.extract_target_metric(goal)} for goal in goals
            )

        if company_size == "SMB" and goals and not initiatives:
            normalized["strategic_initiatives"] = cls.generate_initiatives_from_objectives(goals, challenges)
            logger.info(f"Auto-generated {len(normalized['strategic_initiatives'])} initiatives for SMB")

        if goals and initiatives:
            normalized["strategic_initiatives"] = list(initiatives) + cls.generate_initiatives_from_objectives(
                goals, challenges
            )

        logger.info(
            f"Normalized profile: {len(normalized['business_objectives'])} objectives, "
            f"{len(normalized['strategic_initiatives'])} initiatives, size {normalized['company_size']}"
        )
        return normalized

    @classmethod
    def generate_initiatives_from_objectives(
        cls,
        business_goals: List[str],
        key_challenges: List[str],
    ) -> List[Dict[str, Any]]:
        if not business_goals:
            return []

        return [
            {
                "initiative": cls.generate_initiative_name(goal),
                "business_problems": cls.distribute_challenges(key_challenges, index, len(business_goals)),
                "expected_outcomes": [goal],
                "linked_objective": goal,
                "contact": _empty_contact(),
                "priority": "High",
                "status": "Planning",
            }
            for index, goal in enumerate(business_goals)
        ]

    @staticmethod
    def generate_initiative_name(goal: str) -> str:
        goal_lower = goal.lower()
        for keywords, name in INITIATIVE_NAME_RULES:
            if any(keyword in goal_lower for keyword in keywords):
                return name
        return "Strategic Business Program"

    @staticmethod
    def distribute_challenges(challenges: List[str], goal_index: int, total_goals: int) -> List[str]:
        if not challenges:
            return []

        # One challenge per goal while they last
        if total_goals >= len(challenges):
            return [challenges[goal_index]] if goal_index < len(challenges) else []

        per_goal = math.ceil(len(challenges) / total_goals)
        start = goal_index * per_goal
        return challenges[start:min(start + per_goal, len(challenges))]

    @staticmethod
    def extract_target_metric(goal: str) -> str:
        percent = re.search(r"(\d+)%", goal)
        if percent:
            goal_lower = goal.lower()
            for keywords, context in TARGET_METRIC_RULES:
                if any(keyword in goal_lower for keyword in keywords):
                    return f"{percent.group(1)}% {context}"
            return f"{percent.group(1)}% improvement"

        dollars = re.search(r"\$([0-9,]+[KMB]?)", goal)
        if dollars:
            return f"{dollars.group(0)} target"

        return "Measurable improvement"

    @classmethod
    def extract_business_profile(cls, profile: Dict[str, Any]) -> Dict[str, Any]:
        initiatives = profile.get("strategic_initiatives") or []
        first = initiatives[0] if initiatives else {}
        return {
            "company_name": profile.get("company_name"),
            "industry": profile.get("industry"),
            "company_size": COMPANY_SIZE_MAPPING.get(profile.get("size") or "medium", "medium"),
            "ai_maturity_level": cls._ai_maturity(profile),
            "primary_goals": [initiative.get("initiative") for initiative in initiatives],
            "current_tech_stack": [system.get("name") for system in profile.get("systems_and_applications") or []],
            "budget": first.get("estimated_budget") or "<100k",
            "timeframe": first.get("target_timeline") or "1year",
        }

    @staticmethod
    def _ai_maturity(profile: Dict[str, Any]) -> str:
        score = _ai_readiness(profile)
        if score <= 3:
            return "beginner"
        if score <= 6:
            return "emerging"
        if score <= 8:
            return "developing"
        return "advanced"

    @staticmethod
    def determine_scenario_type(profile: Dict[str, Any]) -> str:
        readiness = _ai_readiness(profile)
        decision_timeline = _numeric(profile.get("decision_timeline")) or 12
        risk_tolerance = str(profile.get("risk_tolerance") or "medium").strip().lower()

        if readiness >= 8 and decision_timeline <= 6 and risk_tolerance == "high":
            return "aggressive"
        if readiness <= 4 or decision_timeline >= 18 or risk_tolerance == "low":
            return "conservative"
        return "balanced"

    @staticmethod
    def generate_opportunity_recommendations(profile: Dict[str, Any]) -> List[Dict[str, Any]]:
        """One recommendation per business problem, highest priority first."""
        opportunities = []
        for initiative in profile.get("strategic_initiatives") or []:
            name = initiative.get("initiative", "")
            for problem in initiative.get("business_problems") or []:
                opportunities.append({
                    "department": name,
                    "title": f"AI solution for: {problem}",
                    "description": (
                        f"Develop an AI-driven approach to address the business problem "
                        f"'{problem}' within the '{name}' initiative."
                    ),
                    "impact": "High",
                    "effort": "Medium",
                    "timeline": "3-6 months",
                    "priority": initiative.get("priority") or "Medium",
                })

        return sorted(opportunities, key=lambda o: PRIORITY_ORDER.get(o["priority"], 1), reverse=True)

    @classmethod
    def enhance_timeline_with_profile(cls, timeline: Dict[str, Any], profile: Dict[str, Any]) -> Dict[str, Any]:
        if timeline.get("phases"):
            timeline["phases"] = [
                {
                    **phase,
                    "profile_insights": cls.get_phase_insights(profile, index),
                    "specific_opportunities": [],
                }
                for index, phase in enumerate(timeline["phases"])
            ]

        timeline["risk_factors"] = cls.identify_risk_factors(profile)
        timeline["competitive_context"] = {
            "urgency": "High" if profile.get("competitive_pressure") else "Medium",
            "differentiators": profile.get("differentiation_requirements") or [],
            "market_position": "Fast-moving" if profile.get("industry") == "Technology" else "Traditional",
        }
        return timeline

    @staticmethod
    def get_phase_insights(profile: Dict[str, Any], phase_index: int) -> str:
        metrics = ", ".join(profile.get("success_metrics") or [])
        insights = {
            0: f"Focus on {profile.get('primary_business_issue') or 'core challenges'} while building foundation",
            1: f"Address {profile.get('top_problem') or 'key issues'} with targeted automation",
            2: f"Scale successful pilots across {profile.get('size') or 'the organization'}",
            3: f"Optimize for {metrics or 'key performance'} improvements",
        }
        return insights.get(phase_index, "Continue systematic AI adoption")

    @staticmethod
    def identify_risk_factors(profile: Dict[str, Any]) -> List[Dict[str, str]]:
        risks = []
        if _ai_readiness(profile) < 4:
            risks.append({
                "type": "Technical Readiness",
                "level": "High",
                "description": "Low AI readiness score may slow implementation",
            })
        if profile.get("change_management_capability") == "Low":
            risks.append({
                "type": "Change Management",
                "level": "Medium",
                "description": "Limited change management capability requires extra support",
            })
        return risks
