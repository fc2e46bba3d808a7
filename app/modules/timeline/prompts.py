"""
Prompt text for timeline generation.

The system prompt is fixed; the user prompt is assembled from the profile and
the scenario configuration. Timelines are requested with snake_case keys.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SCENARIO_TYPES = ["conservative", "balanced", "aggressive"]

TIMELINE_SYSTEM_PROMPT = """You are an expert AI transformation consultant with deep expertise in enterprise AI adoption strategies. You create detailed, actionable transformation roadmaps that consider:

1. **Business Context**: Industry dynamics, company size, current capabilities, and strategic goals
2. **Technical Feasibility**: Available technologies, integration complexity, and infrastructure requirements
3. **Change Management**: Organizational readiness, training needs, and cultural transformation
4. **Financial Planning**: Realistic cost estimates, ROI projections, and budget considerations
5. **Risk Management**: Implementation risks, mitigation strategies, and contingency planning

Your timeline recommendations are practical for the company's profile, based on real-world implementations, financially realistic and organizationally viable.

**CRITICAL JSON RESPONSE REQUIREMENTS:**
- ALWAYS respond with ONLY a valid JSON object
- NO markdown formatting (no ```json blocks)
- NO explanatory text before or after the JSON
- Start immediately with { and end with }
- Must include ALL required fields: current_state, phases, future_state, summary
- Ensure proper JSON syntax with quotes around all keys and string values

**COMPANY-SPECIFIC REQUIREMENTS:**
- Incorporate all company-specific information from the profile into the timeline
- Make timelines specific to the company's industry, size, and stated problems
- Reference specific strategic initiatives and business problems in the timeline phases
- Use the company's actual name throughout the timeline content
- Address their specific technology systems and infrastructure

**AI TECHNOLOGIES EXPERTISE:**
- Agentic AI Systems: Multi-agent workflows, autonomous agents, orchestration
- Process Automation: RPA, workflow automation, intelligent document processing
- Data & Analytics: Machine learning, predictive analytics, business intelligence
- Customer Experience: Conversational AI, personalization, sentiment analysis
- Decision Support: Recommendation systems, optimization, forecasting
- Risk Management: Anomaly detection, compliance automation, security AI

**JSON STRUCTURE VALIDATION:**
Before responding, verify your JSON includes:
1. current_state (with description and highlights array)
2. phases (array with at least 1 phase, each having title, description, duration, initiatives, technologies, outcomes, highlights)
3. future_state (with description and highlights array)
4. summary (with total_investment, expected_roi, time_to_value, risk_level)

Always create timelines that directly address the company's specific business problems and strategic initiatives rather than generic AI adoption strategies."""

SCENARIO_CONFIGS: Dict[str, Dict[str, Any]] = {
    "conservative": {
        "description": "Low-risk approach with proven technologies and extended timelines",
        "instructions": (
            "Focus on proven technologies, lower risk, extended timelines, and gradual adoption. "
            "Prioritize stability and incremental improvements. Use established AI technologies with "
            "strong track records. Implement extensive testing and validation phases. Emphasize change "
            "management and user training."
        ),
        "characteristics": {
            "risk_tolerance": "Low",
            "implementation_speed": "Slow",
            "technology_focus": "Proven",
            "investment_level": "Conservative",
        },
        "timeline_guidance": {
            "total_duration": "24-36 months",
            "phase_duration": "6-12 months per phase",
            "pilot_approach": "Extensive piloting with multiple validation stages",
        },
    },
    "balanced": {
        "description": "Balanced approach mixing innovation with practicality",
        "instructions": (
            "Balance innovation with practicality. Use a mix of proven and emerging technologies with "
            "moderate timelines and measured risk. Combine stable foundations with selective innovation. "
            "Implement in phases with reasonable risk tolerance. Focus on sustainable growth and learning."
        ),
        "characteristics": {
            "risk_tolerance": "Medium",
            "implementation_speed": "Moderate",
            "technology_focus": "Mixed",
            "investment_level": "Moderate",
        },
        "timeline_guidance": {
            "total_duration": "18-24 months",
            "phase_duration": "4-8 months per phase",
            "pilot_approach": "Strategic pilots with measured expansion",
        },
    },
    "aggressive": {
        "description": "Fast-paced approach with cutting-edge technologies and higher risk tolerance",
        "instructions": (
            "Emphasize cutting-edge technologies, rapid implementation, and transformational change. "
            "Accept higher risk for greater potential returns. Use latest AI capabilities and emerging "
            "technologies. Implement rapid prototyping and fast iterations. Focus on competitive "
            "advantage and market leadership."
        ),
        "characteristics": {
            "risk_tolerance": "High",
            "implementation_speed": "Fast",
            "technology_focus": "Cutting-edge",
            "investment_level": "Aggressive",
        },
        "timeline_guidance": {
            "total_duration": "12-18 months",
            "phase_duration": "2-6 months per phase",
            "pilot_approach": "Rapid prototyping with quick scaling decisions",
        },
    },
}

TIMELINE_JSON_TEMPLATE = """{{
  "current_state": {{
    "description": "Current AI maturity and capabilities specific to {company}, referencing their actual systems and initiatives.",
    "highlights": [
      {{"label": "AI Readiness", "value": "25%"}},
      {{"label": "Automation Level", "value": "15%"}},
      {{"label": "Data Maturity", "value": "30%"}}
    ]
  }},
  "phases": [
    {{
      "title": "Phase 1: Foundation & Quick Wins",
      "description": "Establish core data infrastructure and deliver immediate value on the business problems identified for {company}.",
      "duration": "6 months",
      "initiatives": [
        {{
          "title": "Initiative that directly addresses a specific strategic goal or business problem",
          "description": "Detailed description that references specific problems, systems, or initiatives from the profile.",
          "impact": "Quantifiable business impact tied to the company's specific context and goals."
        }}
      ],
      "technologies": ["Technology appropriate for the company's industry"],
      "outcomes": [
        {{
          "metric": "Specific metric that addresses an identified business problem",
          "value": "Realistic percentage improvement",
          "description": "Outcome description that directly references the company's context."
        }}
      ],
      "highlights": [
        {{"label": "ROI", "value": "150%"}},
        {{"label": "Time to Value", "value": "3 months"}}
      ]
    }}
  ],
  "future_state": {{
    "description": "Vision of {company} after successful AI transformation.",
    "highlights": [
      {{"label": "AI Integration", "value": "95%"}},
      {{"label": "Automation Level", "value": "80%"}},
      {{"label": "Revenue Impact", "value": "+45%"}}
    ]
  }},
  "summary": {{
    "total_investment": "$2.5M - $4.2M",
    "expected_roi": "425% over 3 years",
    "time_to_value": "6-9 months",
    "risk_level": "Medium"
  }}
}}"""


def get_timeline_system_prompt(customizations: Optional[List[str]] = None) -> str:
    prompt = TIMELINE_SYSTEM_PROMPT
    if customizations:
        prompt += "\n\n**ADDITIONAL INSTRUCTIONS:**\n" + "\n".join(customizations)
    return prompt


def get_scenario_config(scenario_type: str) -> Dict[str, Any]:
    return SCENARIO_CONFIGS[scenario_type]


def get_scenario_timeline_guidance(scenario_type: str) -> str:
    config = SCENARIO_CONFIGS[scenario_type]
    guidance = config["timeline_guidance"]
    characteristics = config["characteristics"]
    return (
        f"**{scenario_type.upper()} SCENARIO GUIDANCE:**\n"
        f"- Total Implementation Duration: {guidance['total_duration']}\n"
        f"- Phase Duration: {guidance['phase_duration']}\n"
        f"- Risk Tolerance: {characteristics['risk_tolerance']}\n"
        f"- Technology Focus: {characteristics['technology_focus']}\n"
        f"- Implementation Speed: {characteristics['implementation_speed']}\n"
        f"- Pilot Approach: {guidance['pilot_approach']}"
    )


def _company_basics(profile: Dict[str, Any]) -> str:
    fields = [
        ("company_name", "Company Name", "{}"),
        ("industry", "Industry", "{}"),
        ("employee_count", "Company Size", "{} employees"),
        ("annual_revenue", "Annual Revenue", "{}"),
        ("primary_location", "Location", "{}"),
        ("website_url", "Website", "{}"),
    ]
    return "\n".join(
        f"**{label}:** {template.format(profile[key])}"
        for key, label, template in fields
        if profile.get(key)
    )


def _strategic_context(initiatives: List[Dict[str, Any]]) -> str:
    if not initiatives:
        return "**Strategic Initiatives:** None specified"

    sections = ["**Strategic Initiatives:**"]
    for index, initiative in enumerate(initiatives, start=1):
        lines = [f"{index}. **{initiative.get('initiative', '')}**"]
        contact = initiative.get("contact") or {}
        if contact.get("name"):
            lines.append(f"   - **Contact:** {contact['name']} ({contact.get('title') or 'Title not specified'})")
        for key, label in (("priority", "Priority"), ("status", "Status"),
                           ("target_timeline", "Target Timeline"), ("estimated_budget", "Estimated Budget")):
            if initiative.get(key):
                lines.append(f"   - **{label}:** {initiative[key]}")
        for key, label in (("expected_outcomes", "Expected Outcomes"), ("success_metrics", "Success Metrics")):
            if initiative.get(key):
                lines.append(f"   - **{label}:**")
                lines.extend(f"     • {item}" for item in initiative[key])
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def _business_problems(initiatives: List[Dict[str, Any]]) -> str:
    if not initiatives:
        return "**Business Problems:** None specified"
    problems = [
        f"• {problem} (from \"{initiative.get('initiative', '')}\")"
        for initiative in initiatives
        for problem in initiative.get("business_problems") or []
        if problem and problem.strip()
    ]
    if not problems:
        return "**Business Problems:** None specified in strategic initiatives"
    return "**Business Problems to Address:**\n" + "\n".join(problems)


def _systems_context(systems: List[Dict[str, Any]]) -> str:
    if not systems:
        return "**Current Systems:** None specified"

    by_category: Dict[str, List[Dict[str, Any]]] = {}
    for system in systems:
        by_category.setdefault(system.get("category") or "Other", []).append(system)

    sections = ["**Current Systems & Applications:**"]
    for category in sorted(by_category):
        sections.append(f"\n**{category}:**")
        for system in by_category[category]:
            line = f"• {system.get('name', '')}"
            if system.get("vendor"):
                line += f" ({system['vendor']})"
            if system.get("criticality"):
                line += f" - {system['criticality']} criticality"
            if system.get("description"):
                line += f"\n    {system['description']}"
            sections.append(line)
    return "\n".join(sections)


def _key_data_summary(profile: Dict[str, Any]) -> str:
    initiatives = profile.get("strategic_initiatives") or []
    systems = profile.get("systems_and_applications") or []
    points = []

    if profile.get("company_name") and profile.get("industry"):
        points.append(f"**Company:** {profile['company_name']} ({profile['industry']})")
    if profile.get("employee_count"):
        points.append(f"**Scale:** {profile['employee_count']} employees")
    if initiatives:
        high_priority = [i.get("initiative", "") for i in initiatives if i.get("priority") == "High"]
        if high_priority:
            points.append(f"**High Priority Initiatives:** {', '.join(high_priority)}")
        points.append(f"**All Strategic Initiatives:** {', '.join(i.get('initiative', '') for i in initiatives)}")

    problems = [p for i in initiatives for p in i.get("business_problems") or [] if p and p.strip()]
    if problems:
        points.append("**Key Business Problems:**\n" + "\n".join(f"  • {p}" for p in problems))

    if systems:
        categories = list(dict.fromkeys(s.get("category") for s in systems if s.get("category")))
        points.append(f"**Technology Categories:** {', '.join(categories)}")
    if profile.get("annual_revenue"):
        points.append(f"**Revenue Context:** {profile['annual_revenue']}")

    return "\n\n".join(points)


def build_timeline_user_prompt(profile: Dict[str, Any], scenario_type: str) -> str:
    initiatives = profile.get("strategic_initiatives") or []
    company = profile.get("company_name") or "the company"
    config = SCENARIO_CONFIGS[scenario_type]

    logger.debug(
        f"Building timeline prompt for {profile.get('company_name')}: "
        f"{len(initiatives)} initiatives, scenario {scenario_type}"
    )

    return f"""Generate a comprehensive AI transformation timeline based on the provided business profile.

**BUSINESS PROFILE:**
{_company_basics(profile)}

{_strategic_context(initiatives)}

{_business_problems(initiatives)}

{_systems_context(profile.get("systems_and_applications") or [])}

---
**CRITICAL INSTRUCTIONS**
---

1. **Scenario Requirements:** Generate a **{scenario_type.upper()}** timeline following these guidelines:
   {config["instructions"]}

2. **Timeline Guidance:**
{get_scenario_timeline_guidance(scenario_type)}

3. **Mandatory Focus:** Your timeline MUST be specifically tailored to {profile.get("company_name") or "this company"}. Reference their strategic initiatives, business problems, and current systems directly. Do not provide generic AI adoption advice.

**KEY PROFILE SUMMARY FOR FOCUSED ANALYSIS:**
{_key_data_summary(profile)}

4. **Company-Specific Requirements:**
   - All timeline phases must directly address the business problems listed above
   - Reference specific strategic initiatives by name in your recommendations
   - Consider the company's industry ({profile.get("industry") or "not specified"}) in your technology choices
   - Account for their current systems architecture in integration planning
   - Ensure ROI projections are realistic for a company of their size ({profile.get("employee_count") or "size not specified"})

5. **Output Format:** You MUST respond with ONLY a valid JSON object. No markdown formatting, no explanations, no additional text.

**REQUIRED JSON STRUCTURE - ALL FIELDS ARE MANDATORY:**

{TIMELINE_JSON_TEMPLATE.format(company=company)}

**REMINDER:** Your response should be pure JSON only, starting with {{ and ending with }}. No other text."""
