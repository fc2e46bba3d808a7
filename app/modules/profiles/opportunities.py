"""
AI opportunity analysis for a client profile.

With an AI provider configured the analysis (executive summary, ranked
opportunities, recommendations, readiness score and next steps) comes from the
LLM, with missing sections filled in locally. Without one, the rule-based
recommendations derived from the profile's business problems are returned.
"""

import logging
from typing import Any, Dict, List, Optional

from app.core.errors import api_error
from app.modules.ai.providers import AIProviderError
from app.modules.ai.service import AIService
from app.modules.profiles.service import ProfileService, _numeric

logger = logging.getLogger(__name__)

RULES_PROVIDER = "rule-based"
ANALYSIS_VERSION = "1.0"

ANALYSIS_FIELDS = [
    "executive_summary",
    "priority_recommendations",
    "industry_context",
    "overall_readiness_score",
    "next_steps",
    "analysis_metadata",
]

OPPORTUNITY_CATEGORIES = [
    "Process Automation",
    "Decision Support",
    "Customer Experience",
    "Data Analytics",
    "Workforce Augmentation",
    "Risk Management",
]

DEFAULT_PRIORITY_RECOMMENDATIONS = [
    "Start with highest ROI opportunity identified in the analysis",
    "Establish AI governance framework and change management processes",
    "Invest in employee training and skill development for AI adoption",
    "Create pilot programs to validate AI solutions before full deployment",
    "Develop partnerships with AI technology providers and integrators",
]

DEFAULT_NEXT_STEPS = [
    "Conduct comprehensive AI readiness assessment with stakeholder interviews",
    "Develop detailed AI strategy aligned with business objectives and strategic initiatives",
    "Establish AI project governance framework and success metrics",
    "Begin pilot implementation with highest-ROI opportunity identified",
    "Create change management and employee training programs",
    "Establish partnerships with AI technology providers and implementation partners",
]

INDUSTRY_CONTEXTS = {
    "Technology": (
        "Technology companies are leading AI adoption with 85% planning major AI investments, leveraging "
        "existing digital infrastructure for rapid implementation and competitive advantage."
    ),
    "Healthcare": (
        "Healthcare organizations are increasingly adopting AI for clinical decision support and operational "
        "efficiency, with strong ROI in diagnostic assistance and workflow optimization."
    ),
    "Manufacturing": (
        "Manufacturing sector shows excellent AI adoption potential with proven use cases in predictive "
        "maintenance, quality control, and supply chain optimization."
    ),
    "Finance": (
        "Financial services industry leads in AI maturity with applications in risk assessment, fraud "
        "detection, and automated compliance showing consistent positive returns."
    ),
    "Other": (
        "Industry-wide AI adoption is accelerating with 73% of organizations planning significant AI "
        "investments within the next 24 months."
    ),
}

OPPORTUNITIES_SYSTEM_PROMPT = """You are a senior AI transformation consultant with deep expertise in agentic AI technologies, business process optimization and strategic implementation.

EXPERTISE AREAS:
- Agentic AI Systems: multi-agent workflows, autonomous decision-making, intelligent orchestration
- Process Intelligence: business process analysis, bottleneck identification, automation opportunity mapping
- Industry Applications: sector-specific AI use cases, regulatory considerations, implementation patterns
- ROI Analysis: financial modeling, investment planning, risk assessment, value realization timelines

OPPORTUNITY CATEGORIES AND TYPICAL RETURNS:
1. Process Automation: multi-step workflow automation with decision points (250-400% within 18 months)
2. Decision Support: real-time business rules and predictive decisions (180-300% within 12 months)
3. Customer Experience: conversational AI and proactive customer success (200-350% within 15 months)
4. Data Analytics: automated pipelines, forecasting and insight generation (300-500% within 24 months)
5. Workforce Augmentation: AI assistants, task routing and workload balancing (220-380% within 18 months)
6. Risk Management: continuous monitoring and compliance automation (150-250% within 12 months)

OUTPUT REQUIREMENTS:
- Recommendations must be specific to the client's initiatives, business problems and systems
- ROI estimates must be realistic for the company's size and industry
- Respond with ONLY a valid JSON object using snake_case keys, no text before or after it"""

OPPORTUNITIES_JSON_TEMPLATE = """{
  "executive_summary": "3-4 sentence summary of AI transformation potential",
  "opportunities": [
    {
      "title": "Specific opportunity name",
      "description": "Detailed explanation of the AI solution",
      "category": "Process Automation",
      "business_impact": {
        "primary_metrics": ["Metric 1", "Metric 2", "Metric 3"],
        "estimated_roi": "250-400% within 18 months",
        "time_to_value": "3-6 months",
        "confidence_level": "High"
      },
      "implementation": {
        "complexity": "Medium",
        "timeframe": "4-8 months",
        "prerequisites": ["Prerequisite 1"],
        "risk_factors": ["Risk 1"]
      },
      "relevant_initiatives": ["Initiative name"],
      "ai_technologies": ["RPA", "Machine Learning"]
    }
  ],
  "priority_recommendations": ["Recommendation 1", "Recommendation 2", "Recommendation 3"],
  "industry_context": "2-3 sentences about industry-specific AI trends",
  "overall_readiness_score": 85,
  "next_steps": ["Action item 1", "Action item 2", "Action item 3", "Action item 4"]
}"""


def _or_unspecified(value: Any) -> str:
    return value or "Not specified"


def _joined(values: Optional[List[str]]) -> str:
    return "; ".join(values) if values else "None specified"


def build_opportunities_user_prompt(profile: Dict[str, Any]) -> str:
    lines = [
        "Analyze the following client profile and generate a comprehensive AI opportunities assessment. "
        "Focus on agentic AI solutions that align with their strategic initiatives, address their business "
        "problems and leverage their existing systems.",
        "",
        "CLIENT PROFILE:",
        f"Company: {profile.get('company_name')}",
        f"Industry: {profile.get('industry')}",
        f"Size: {_or_unspecified(profile.get('employee_count'))} employees",
        f"Revenue: {_or_unspecified(profile.get('annual_revenue'))}",
        f"Location: {_or_unspecified(profile.get('primary_location'))}",
        "",
        "STRATEGIC INITIATIVES:",
    ]
    for index, initiative in enumerate(profile.get("strategic_initiatives") or [], start=1):
        contact = initiative.get("contact") or {}
        lines += [
            f"{index}. {initiative.get('initiative')}",
            f"   - Contact: {_or_unspecified(contact.get('name'))} ({_or_unspecified(contact.get('title'))})",
            f"   - Priority: {_or_unspecified(initiative.get('priority'))}",
            f"   - Status: {_or_unspecified(initiative.get('status'))}",
            f"   - Timeline: {_or_unspecified(initiative.get('target_timeline'))}",
            f"   - Budget: {_or_unspecified(initiative.get('estimated_budget'))}",
            f"   - Business Problems: {_joined(initiative.get('business_problems'))}",
            f"   - Expected Outcomes: {_joined(initiative.get('expected_outcomes'))}",
            f"   - Success Metrics: {_joined(initiative.get('success_metrics'))}",
        ]

    lines += ["", "SYSTEMS & APPLICATIONS:"]
    for index, system in enumerate(profile.get("systems_and_applications") or [], start=1):
        lines += [
            f"{index}. {system.get('name')} ({system.get('category')})",
            f"   - Vendor: {_or_unspecified(system.get('vendor'))}",
            f"   - Criticality: {_or_unspecified(system.get('criticality'))}",
        ]

    lines += [
        "",
        "Identify the top 3-5 opportunities. Each category must be one of: " + ", ".join(OPPORTUNITY_CATEGORIES) + ".",
        "The readiness score is 0-100. Provide 3-5 priority recommendations and 4-6 next steps.",
        "",
        "CRITICAL: Return ONLY a valid JSON object with this exact structure:",
        OPPORTUNITIES_JSON_TEMPLATE,
    ]
    return "\n".join(lines)


def validate_opportunities_response(response: Dict[str, Any]) -> List[str]:
    warnings = []

    summary = response.get("executive_summary")
    if not isinstance(summary, str) or len(summary) < 200:
        warnings.append("Executive summary should be comprehensive (200+ characters)")

    opportunities = response.get("opportunities") or []
    if len(opportunities) < 2:
        warnings.append("Should identify at least 2-3 meaningful AI opportunities")

    for index, opportunity in enumerate(opportunities, start=1):
        if not isinstance(opportunity, dict):
            warnings.append(f"Opportunity {index} missing required fields")
            continue
        if not opportunity.get("title") or not opportunity.get("description") or not opportunity.get("category"):
            warnings.append(f"Opportunity {index} missing required fields")
        impact = opportunity.get("business_impact")
        if not isinstance(impact, dict) or not impact.get("estimated_roi") or not impact.get("time_to_value"):
            warnings.append(f"Opportunity {index} missing business impact metrics")

    score = response.get("overall_readiness_score")
    if not isinstance(score, (int, float)) or not 0 < score <= 100:
        warnings.append("Readiness score should be between 0-100")

    return warnings


def estimate_readiness_score(profile: Dict[str, Any]) -> int:
    score = 50
    if profile.get("strategic_initiatives"):
        score += 20
    if profile.get("systems_and_applications"):
        score += 15
    employees = _numeric(str(profile.get("employee_count") or "").replace(",", ""))
    if employees and employees > 100:
        score += 10
    if profile.get("annual_revenue"):
        score += 5
    return min(score, 95)


def attempt_opportunities_auto_fix(response: Dict[str, Any], profile: Dict[str, Any]) -> Dict[str, Any]:
    """Fill sections an LLM left out; returns a new dict"""
    fixed = dict(response)
    added = []

    if not fixed.get("priority_recommendations"):
        fixed["priority_recommendations"] = list(DEFAULT_PRIORITY_RECOMMENDATIONS)
        added.append("priority_recommendations")
    if not fixed.get("industry_context"):
        industry = profile.get("industry") or "Technology"
        fixed["industry_context"] = INDUSTRY_CONTEXTS.get(industry, INDUSTRY_CONTEXTS["Other"])
        added.append("industry_context")
    if not fixed.get("overall_readiness_score"):
        fixed["overall_readiness_score"] = estimate_readiness_score(profile)
        added.append("overall_readiness_score")
    if not fixed.get("next_steps"):
        fixed["next_steps"] = list(DEFAULT_NEXT_STEPS)
        added.append("next_steps")

    if added:
        logger.warning(f"Opportunities analysis was missing {', '.join(added)}; filled with defaults")
    return fixed


def _analysis_metadata(profile: Dict[str, Any], provider: str) -> Dict[str, Any]:
    initiatives = profile.get("strategic_initiatives") or []
    problems = [p for i in initiatives for p in i.get("business_problems") or [] if p and p.strip()]
    return {
        "initiative_count": len(initiatives),
        "problem_count": len(problems),
        "system_count": len(profile.get("systems_and_applications") or []),
        "industry_focus": profile.get("industry"),
        "company_size": profile.get("employee_count") or "Unknown",
        "provider": provider,
        "version": ANALYSIS_VERSION,
    }


class OpportunitiesService:
    def __init__(self, ai_service: AIService):
        self.ai_service = ai_service

    def analyze(self, profile: Dict[str, Any], user_id: str, provider: Optional[str] = None) -> Dict[str, Any]:
        """
        Opportunities for a profile as {opportunities, business_profile, provider, analysis}.

        analysis is None for the rule-based fallback.
        """
        business_profile = ProfileService.extract_business_profile(profile)
        status = self.ai_service.get_status(user_id, provider)
        if not status["configured"]:
            return {
                "opportunities": ProfileService.generate_opportunity_recommendations(profile),
                "business_profile": business_profile,
                "provider": RULES_PROVIDER,
                "analysis": None,
            }

        provider_label = status["provider"]
        logger.info(f"Analyzing opportunities for {profile.get('company_name')} with {provider_label}")
        try:
            response = self.ai_service.generate_json(
                OPPORTUNITIES_SYSTEM_PROMPT, build_opportunities_user_prompt(profile), user_id, provider
            )
        except AIProviderError as e:
            logger.error(f"Opportunities analysis failed for user {user_id}: {e}")
            message = str(e).lower()
            if "rate limit" in message or "quota" in message:
                raise api_error(429, "AI service rate limit exceeded. Please try again later.")
            raise api_error(500, "Failed to generate AI opportunities analysis", str(e))

        if not isinstance(response, dict) or not isinstance(response.get("opportunities"), list):
            logger.error(f"Invalid opportunities response from {provider_label}: {response!r:.200}")
            raise api_error(502, "AI service returned an invalid response. Please try again.")

        warnings = validate_opportunities_response(response)
        if warnings:
            logger.warning(f"Opportunities response warnings: {warnings}")
        if any("missing required fields" in warning for warning in warnings):
            raise api_error(502, "AI service returned an invalid response. Please try again.",
                            "Invalid AI response structure: missing required fields")

        fixed = attempt_opportunities_auto_fix(response, profile)
        analysis = {field: fixed.get(field) for field in ANALYSIS_FIELDS if field != "analysis_metadata"}
        analysis["analysis_metadata"] = {
            **(fixed.get("analysis_metadata") or {}),
            **_analysis_metadata(profile, provider_label),
        }
        return {
            "opportunities": fixed["opportunities"],
            "business_profile": business_profile,
            "provider": provider_label,
            "analysis": analysis,
        }
