"""
Markdown rendering and parsing for client profiles.

Two layouts are rendered. The agentic layout is used when a profile carries
expected_outcome, problems or solutions sections; everything else gets the
standard layout (overview, agentic AI framework, architecture assessment,
summary). Sections are separated by horizontal rules.
"""

import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"

DEPARTMENTS = [
    ("finance", "Finance Department"),
    ("hr", "HR Department"),
    ("it", "IT Department"),
    ("customer_service", "Customer Service"),
    ("operations", "Operations"),
]

READINESS_CRITERIA = [
    ("data_quality", "Data availability and quality"),
    ("integration", "System integration capability"),
    ("technical_team", "Technical team readiness"),
    ("leadership", "Leadership support"),
    ("change_management", "Change management capability"),
]

OVERVIEW_PATTERNS = {
    "company_name": re.compile(r"\*\*Company Name\*\*:\s*(.+)"),
    "industry": re.compile(r"\*\*Industry\*\*:\s*(.+)"),
    "size": re.compile(r"\*\*Size\*\*:\s*(.+)"),
    "annual_revenue": re.compile(r"\*\*Annual Revenue\*\*:\s*\$(.+)"),
    "employee_count": re.compile(r"\*\*Employee Count\*\*:\s*(.+)"),
    "primary_location": re.compile(r"\*\*Primary Location\*\*:\s*(.+)"),
}

HEADER_PATTERN = re.compile(r"^# Client Profile: (.+)$", re.MULTILINE)

NEXT_STEP_PLACEHOLDER = "[ ] [Specific action item with owner and date]"


class MarkdownParseError(ValueError):
    pass


def _parse_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.match(r"\s*(-?\d+(?:\.\d+)?)", str(value))
    return float(match.group(1)) if match else None


def _format_amount(value: Any, placeholder: str) -> str:
    number = _parse_number(value)
    if number is None:
        return placeholder
    return f"{int(number):,}"


def _checked(items: Optional[List[str]], other: Optional[str] = None) -> str:
    content = "".join(f"- [x] {item}\n" for item in items or [])
    if other:
        content += f"- [x] Other: {other}\n"
    return content


def _bullets(items: Optional[List[str]], bold: bool = False) -> str:
    if bold:
        return "".join(f"- **{item}**\n" for item in items or [])
    return "".join(f"- {item}\n" for item in items or [])


def generate_markdown(profile: Dict[str, Any]) -> str:
    if profile.get("expected_outcome") or profile.get("problems") or profile.get("solutions"):
        return generate_agentic_markdown(profile)

    sections = [
        generate_header(profile),
        generate_company_overview(profile),
        generate_agentic_ai_framework(profile),
        generate_architecture_assessment(profile),
        generate_summary(profile),
    ]
    return SECTION_SEPARATOR.join(section for section in sections if section)


def generate_agentic_markdown(profile: Dict[str, Any]) -> str:
    sections = [
        generate_header(profile),
        generate_company_overview(profile),
        _expected_outcome(profile),
        _problems_and_opportunities(profile),
        _solutions_and_value(profile),
        _current_architecture(profile),
        _agentic_summary(profile),
    ]
    return SECTION_SEPARATOR.join(section for section in sections if section)


def generate_header(profile: Dict[str, Any]) -> str:
    return f"# Client Profile: {profile.get('company_name') or '[Client Name]'}"


def generate_company_overview(profile: Dict[str, Any]) -> str:
    size = profile.get("size") or "[Small (50-500) / Mid-Market (500-5K) / Enterprise (5K+)]"
    return (
        "## Company Overview\n"
        f"- **Company Name**: {profile.get('company_name') or '[Enter company name]'}\n"
        f"- **Industry**: {profile.get('industry') or '[Enter industry]'}\n"
        f"- **Size**: {size}\n"
        f"- **Annual Revenue**: ${profile.get('annual_revenue') or '[Enter amount]'}\n"
        f"- **Employee Count**: {profile.get('employee_count') or '[Enter number]'}\n"
        f"- **Primary Location**: {profile.get('primary_location') or '[Enter location]'}\n"
        "\n---"
    )


def _expected_outcome(profile: Dict[str, Any]) -> str:
    outcome = profile.get("expected_outcome") or {}
    content = "## Expected Business Outcome\n\n### Strategic Initiatives\n"
    for index, initiative in enumerate(outcome.get("strategic_initiatives") or [], start=1):
        content += f"#### {index}. {initiative.get('initiative', '')}\n"
        contact = initiative.get("contact")
        if contact:
            content += f"**Contact**: {contact.get('name', '')} ({contact.get('title', '')})\n"
            content += f"- Email: {contact.get('email', '')}\n"
            content += f"- LinkedIn: {contact.get('linkedin', '')}\n"
            content += f"- Phone: {contact.get('phone', '')}\n\n"
    if outcome.get("business_objectives"):
        content += f"### Business Objectives\n{outcome['business_objectives']}\n"
    return content


def _problems_and_opportunities(profile: Dict[str, Any]) -> str:
    problems = profile.get("problems") or {}
    content = "## Problems & Agentic AI Opportunities\n\n### Current Business Problems\n"
    content += _bullets(problems.get("business_problems"))
    content += "\n### Agentic Workflow Opportunities\n"
    content += _bullets(problems.get("agentic_opportunities"), bold=True)
    return content


def _solutions_and_value(profile: Dict[str, Any]) -> str:
    solutions = profile.get("solutions") or {}
    value = profile.get("value") or {}

    content = "## Solutions & Value Proposition\n\n### Capabilities\n"
    content += _bullets(solutions.get("capabilities"))
    content += "\n### Key Differentiators\n"
    content += _bullets(solutions.get("differentiators"))
    if solutions.get("competitor_gaps"):
        content += "\n### Competitor Gaps\n" + _bullets(solutions["competitor_gaps"])

    business_value = value.get("business_value")
    if business_value:
        content += "\n### Business Value\n"
        for key, label in [
            ("revenue_impact", "Revenue Impact"),
            ("cost_reduction", "Cost Reduction"),
            ("operational_efficiency", "Operational Efficiency"),
        ]:
            if business_value.get(key):
                content += f"**{label}**: {business_value[key]}\n\n"
        if business_value.get("kpi_improvements"):
            content += "**KPI Improvements**:\n" + _bullets(business_value["kpi_improvements"]) + "\n"
        if business_value.get("total_annual_impact"):
            content += f"**Total Annual Impact**: {business_value['total_annual_impact']}\n\n"

    personal_value = value.get("personal_value")
    if personal_value:
        content += "### Personal Value\n"
        for key, label in [
            ("executive_win", "Executive Win"),
            ("team_win", "Team Win"),
            ("career_impact", "Career Impact"),
            ("organizational_benefit", "Organizational Benefit"),
        ]:
            if personal_value.get(key):
                content += f"**{label}**: {personal_value[key]}\n\n"

    return content


def _current_architecture(profile: Dict[str, Any]) -> str:
    architecture = profile.get("current_architecture") or {}
    content = "## Current Architecture\n\n### Core Systems\n"
    content += _bullets(architecture.get("core_systems"))
    if architecture.get("integrations"):
        content += f"\n**Integrations**: {architecture['integrations']}\n"
    if architecture.get("data_quality"):
        content += f"**Data Quality**: {architecture['data_quality']}\n"
    if architecture.get("technical_debt"):
        content += f"**Technical Debt**: {architecture['technical_debt']}\n"
    if architecture.get("ai_readiness"):
        content += f"**AI Readiness**: {architecture['ai_readiness']}\n"
    return content


def _agentic_summary(profile: Dict[str, Any]) -> str:
    outcome = profile.get("expected_outcome") or {}
    business_value = (profile.get("value") or {}).get("business_value") or {}

    content = "## Executive Summary\n\n"
    content += (
        f"**Company**: {profile.get('company_name', '')} "
        f"({profile.get('industry', '')}, {profile.get('size', '')})\n\n"
    )
    if outcome.get("business_objectives"):
        content += f"**Strategic Objective**: {outcome['business_objectives']}\n\n"
    if business_value.get("total_annual_impact"):
        content += f"**Financial Impact**: {business_value['total_annual_impact']}\n\n"

    content += "### Key Contacts\n"
    for initiative in outcome.get("strategic_initiatives") or []:
        contact = initiative.get("contact")
        if contact:
            content += f"- **{contact.get('name', '')}** ({contact.get('title', '')}) - {contact.get('email', '')}\n"
    return content


def generate_agentic_ai_framework(profile: Dict[str, Any]) -> str:
    framework = profile.get("agentic_ai_framework") or {}

    content = "## Agentic AI Framework\n\n"
    content += "### 1. Business Issue\n**High-level strategic priority or C-level concern:**\n"
    content += _checked(framework.get("business_issues"), framework.get("business_issues_other"))
    if framework.get("business_issue_details"):
        content += f"\n**Details**: {framework['business_issue_details']}\n"

    content += "\n### 2. Problems / Challenges\n**Specific operational issues identified:**\n\n"
    departmental = framework.get("departmental_problems") or {}
    for key, name in DEPARTMENTS:
        problems = departmental.get(key) or []
        if problems:
            content += f"#### {name}\n" + _checked(problems) + "\n"
    if framework.get("additional_challenges"):
        content += f"**Additional Challenges**: {framework['additional_challenges']}\n"

    content += "\n### 3. Root Cause\n**Why do these challenges exist?**\n"
    content += _checked(framework.get("root_causes"), framework.get("root_causes_other"))
    if framework.get("root_cause_details"):
        content += f"\n**Details**: {framework['root_cause_details']}\n"

    content += "\n### 4. Impact\n**Quantified effects:**\n\n"
    content += _impact(framework)

    content += "\n### 5. Solution\n**Capabilities needed to solve these challenges:**\n"
    content += _checked(framework.get("solution_capabilities"), framework.get("solution_capabilities_other"))
    content += "\n**Differentiation Requirements:**\n"
    content += _checked(framework.get("differentiation_requirements"), framework.get("differentiation_other"))

    content += "\n**Value / ROI Expectations:**\n"
    expectations = framework.get("roi_expectations") or {}
    for key, label in [
        ("cost_reduction", "Target cost reduction"),
        ("efficiency_improvement", "Target efficiency improvement"),
        ("payback_period", "Expected payback period"),
        ("target_roi", "Target ROI"),
        ("time_to_first_value", "Time to first value"),
    ]:
        if expectations.get(key):
            content += f"- {label}: {expectations[key]}\n"

    content += "\n**Success Metrics:**\n"
    content += _checked(framework.get("success_metrics"))
    if framework.get("success_metrics_targets"):
        content += f"\n**Specific Targets**: {framework['success_metrics_targets']}\n"

    content += "\n### 6. Decision\n**Decision makers and buying process:**\n\n"
    content += _decision(framework)
    return content


def _impact(framework: Dict[str, Any]) -> str:
    hard_costs = framework.get("hard_costs") or {}
    content = "#### Hard Costs (Annual)\n"
    content += f"- Labor costs from manual processes: ${hard_costs.get('labor_costs') or '[Amount]'}\n"
    content += f"- Error correction costs: ${hard_costs.get('error_costs') or '[Amount]'}\n"
    content += f"- System downtime costs: ${hard_costs.get('downtime_costs') or '[Amount]'}\n"
    content += f"- Compliance penalties/risk: ${hard_costs.get('compliance_costs') or '[Amount]'}\n"

    total = sum(_parse_number(cost) or 0 for cost in hard_costs.values())
    content += f"- **Total Hard Costs**: ${_format_amount(total, '[Sum]') if total > 0 else '[Sum]'}\n\n"

    soft_costs = framework.get("soft_costs") or {}
    content += "#### Soft Costs\n"
    for key, label in [
        ("employee_frustration", "Employee frustration/turnover impact"),
        ("customer_satisfaction", "Customer satisfaction decline"),
        ("competitive_disadvantage", "Competitive disadvantage"),
        ("missed_opportunities", "Missed opportunities/growth"),
    ]:
        content += f"- {label}: {soft_costs.get(key) or '[High/Medium/Low]'}\n"
    return content


def _decision(framework: Dict[str, Any]) -> str:
    decision_makers = framework.get("decision_makers") or {}
    content = "#### Key Decision Makers\n"
    for key, label in [("economic_buyer", "Economic Buyer"), ("technical_buyer", "Technical Buyer"), ("champion", "Champion")]:
        person = decision_makers.get(key) or {}
        if not person.get("name"):
            continue
        content += f"**{label}**: {person['name']}"
        if person.get("title"):
            content += f" ({person['title']})"
        if key == "economic_buyer" and person.get("budget"):
            content += f" - Budget Authority: ${_format_amount(person['budget'], '0')}"
        content += "\n"
    if decision_makers.get("influencers"):
        content += f"**Influencers**: {decision_makers['influencers']}\n"

    buying_process = framework.get("buying_process") or {}
    content += "\n#### Buying Process\n"
    if buying_process.get("timeline"):
        content += f"- **Decision timeline**: {buying_process['timeline']}\n"
    if buying_process.get("budget_cycle"):
        content += f"- **Budget cycle**: {buying_process['budget_cycle']}\n"
    if buying_process.get("evaluation_criteria"):
        content += "- **Evaluation criteria**:\n"
        content += "".join(f"  - {criteria}\n" for criteria in buying_process["evaluation_criteria"])
    if buying_process.get("evaluation_other"):
        content += f"  - {buying_process['evaluation_other']}\n"

    risks = framework.get("risks_of_inaction") or {}
    content += "\n#### Risks of Inaction\n"
    if risks.get("cost_escalation"):
        content += f"- **Continued cost escalation**: ${_format_amount(risks['cost_escalation'], '0')} annually\n"
    if risks.get("employee_attrition"):
        content += f"- **Employee attrition risk**: {risks['employee_attrition']}\n"
    if risks.get("three_year_cost"):
        content += f"- **Estimated cost of inaction (3 years)**: ${_format_amount(risks['three_year_cost'], '0')}\n"
    if risks.get("competitive_disadvantage"):
        content += f"- **Competitive disadvantage**: {risks['competitive_disadvantage']}\n"
    if risks.get("customer_satisfaction"):
        content += f"- **Customer satisfaction decline**: {risks['customer_satisfaction']}\n"
    if risks.get("compliance_risk"):
        content += f"- **Regulatory compliance risk**: {risks['compliance_risk']}\n"
    return content


def generate_architecture_assessment(profile: Dict[str, Any]) -> str:
    assessment = profile.get("current_architecture_assessment") or {}
    technology = assessment.get("current_technology") or {}

    content = "## Current Architecture Assessment\n\n### Current Technology Landscape\n"
    content += f"- **Primary ERP**: {technology.get('erp') or '[Not specified]'}\n"
    content += f"- **CRM System**: {technology.get('crm') or '[Not specified]'}\n"
    content += f"- **Collaboration Tools**: {technology.get('collaboration') or '[Not specified]'}\n"
    content += f"- **Integration Maturity**: {technology.get('integration_maturity') or '[Not assessed]'}\n"
    content += f"- **Data Quality**: {technology.get('data_quality') or '[Not assessed]'}\n"
    if technology.get("automation"):
        content += f"- **Current Automation**: {technology['automation']}\n"

    content += "\n### AI Readiness Score\n"
    scoring = assessment.get("readiness_scoring") or {}
    for key, label in READINESS_CRITERIA:
        content += f"- **{label}**: {scoring.get(key) or 0}/2\n"
    total_score = sum(score or 0 for score in scoring.values())
    content += f"\n**Total AI Readiness Score: {total_score}/10**\n"

    content += "\n### Top AI Opportunities (Prioritized)\n"
    opportunities = sorted(
        assessment.get("opportunities") or [],
        key=lambda opportunity: opportunity.get("priority_score") or 0,
        reverse=True,
    )
    if opportunities:
        for index, opportunity in enumerate(opportunities, start=1):
            content += f"\n#### {index}. {opportunity.get('name') or 'Unnamed Opportunity'}\n"
            content += f"- **Department**: {opportunity.get('department') or 'Not specified'}\n"
            content += f"- **Process**: {opportunity.get('process') or 'Not specified'}\n"
            content += f"- **Current State**: {opportunity.get('current_state') or 'Not described'}\n"
            content += f"- **AI Solution**: {opportunity.get('ai_solution') or 'Not specified'}\n"
            content += f"- **Estimated Impact**: ${_format_amount(opportunity.get('estimated_impact'), '[Not quantified]')}\n"
            content += f"- **Implementation Effort**: {opportunity.get('implementation_effort') or 'Medium'}\n"
            content += f"- **Timeline**: {opportunity.get('timeline') or 'Not specified'}\n"
            content += f"- **Priority Score**: {opportunity.get('priority_score') or 5}/10\n"
    else:
        content += "No specific opportunities identified yet.\n"

    content += "\n### Quick Wins (0-6 months)\n"
    quick_wins = assessment.get("quick_wins") or []
    if quick_wins:
        for index, quick_win in enumerate(quick_wins, start=1):
            content += f"{index}. **{quick_win.get('name') or 'Unnamed Quick Win'}**\n"
            content += f"   - Impact: ${_format_amount(quick_win.get('impact'), '[Not quantified]')}\n"
            content += f"   - Timeline: {quick_win.get('timeline') or 'Not specified'}\n"
    else:
        content += "No quick wins identified yet.\n"

    return content


def generate_summary(profile: Dict[str, Any]) -> str:
    summary = profile.get("summary") or {}
    expected = summary.get("expected_value") or {}
    current_state = summary.get("current_state") or "[Brief description of key challenges and costs]"
    approach = summary.get("recommended_approach") or "[High-level strategy recommendation]"
    notes = summary.get("notes") or (
        "[Free text area for additional observations, quotes from stakeholders, competitive insights, etc.]"
    )

    return (
        "## Summary & Next Steps\n\n"
        "### Executive Summary\n"
        f"**Current State**: {current_state}\n\n"
        f"**Recommended Approach**: {approach}\n\n"
        "**Expected Value**: \n"
        f"- Total 3-year benefit: ${expected.get('three_year_benefit') or '[Amount]'}\n"
        f"- Investment required: ${expected.get('investment') or '[Amount]'}\n"
        f"- Net ROI: {expected.get('net_roi') or '[X]%'}\n"
        f"- Payback period: {expected.get('payback_period') or '[X] months'}\n\n"
        "### Immediate Next Steps\n"
        f"{generate_next_steps(summary.get('next_steps'))}\n\n"
        "### Notes & Additional Context\n"
        f"{notes}\n\n"
        "---"
    )


def generate_next_steps(steps: Optional[List[Dict[str, Any]]] = None) -> str:
    if not steps:
        return "\n".join(f"{index}. {NEXT_STEP_PLACEHOLDER}" for index in range(1, 4))
    return "\n".join(
        f"{index}. [ ] {step.get('action') or '[Specific action item]'} - "
        f"{step.get('owner') or '[Owner]'} - {step.get('date') or '[Date]'}"
        for index, step in enumerate(steps, start=1)
    )


def parse_markdown(markdown: str) -> Dict[str, Any]:
    """
    Parse a rendered client profile back into profile fields.

    Only the header and the company overview are recovered; the remaining
    sections are free-form.
    """
    match = HEADER_PATTERN.search(markdown or "")
    if not match:
        raise MarkdownParseError("Invalid markdown format: missing client profile header")

    return {
        "company_name": match.group(1).strip(),
        "company_overview": parse_company_overview(markdown),
    }


def parse_company_overview(markdown: str) -> Dict[str, str]:
    section = extract_section(markdown, "## Company Overview")
    overview = {}
    for key, pattern in OVERVIEW_PATTERNS.items():
        match = pattern.search(section)
        if match:
            overview[key] = match.group(1).strip()
    return overview


def extract_section(markdown: str, heading: str) -> str:
    pattern = re.escape(heading) + r"\n([\s\S]*?)(?=\n##|\Z)"
    match = re.search(pattern, markdown or "")
    return match.group(1).strip() if match else ""
