"""
Profile extraction from free-form markdown.

The user's LLM provider returns every field as {"value", "confidence"}. When no
provider is configured the rendered-profile parser is used instead and every
field it recovers is reported with full confidence.
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

from app.core.errors import api_error
from app.modules.ai.providers import AIProviderError
from app.modules.ai.service import AIService
from app.modules.markdown.service import MarkdownParseError, parse_markdown

logger = logging.getLogger(__name__)

MIN_MARKDOWN_LENGTH = 50
CONFIDENCE_THRESHOLD = 0.3
LOW_CONFIDENCE = 0.5
HIGH_CONFIDENCE = 0.8

AI_METHOD = "ai"
PATTERN_METHOD = "pattern"

CRITICAL_FIELDS = [
    "company_name",
    "industry",
    "employee_count",
    "annual_revenue",
    "primary_location",
    "website_url",
    "strategic_initiatives",
]
STRING_FIELDS = CRITICAL_FIELDS[:6]
ARRAY_FIELDS = ["strategic_initiatives", "systems_and_applications"]
CONTACT_FIELDS = ["name", "title", "email", "linkedin", "phone"]

WEBSITE_PATTERN = re.compile(r"^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w .-]*)*/?$", re.IGNORECASE)

EXTRACTION_SYSTEM_PROMPT = """You are an expert business analyst who extracts structured client profile data from unstructured markdown documents.

Extract ALL relevant business information, in particular:
- Company information (name, industry, size, revenue, location, website)
- Strategic initiatives with their contact details AND the business problems each initiative addresses
- Systems and applications the organization runs

EXTRACTION PRINCIPLES:
- Look beyond exact section headers and analyze what the content means
- Extract from lists, paragraphs and tables alike
- When business problems are listed under or near an initiative, attach them to that initiative
- Keep confidence scores honest

For each field provide the extracted value and a confidence score between 0 and 1:
- 0.9-1.0: explicitly stated with clear labels
- 0.7-0.8: clearly implied, good context
- 0.5-0.6: requires interpretation
- 0.3-0.4: significant interpretation needed
- below 0.3: mostly guessed

OUTPUT RULES:
- Respond with ONLY one valid JSON object, no text before or after it
- Use the snake_case field names given in the request
- Arrays stay arrays even for a single item; missing contact fields are empty strings
- Omit fields that cannot be found"""

EXTRACTION_JSON_TEMPLATE = """{
  "company_name": {"value": "Company Name", "confidence": 0.9},
  "industry": {"value": "Industry Sector", "confidence": 0.8},
  "employee_count": {"value": "Employee count", "confidence": 0.7},
  "annual_revenue": {"value": "Revenue amount", "confidence": 0.8},
  "primary_location": {"value": "Location", "confidence": 0.9},
  "website_url": {"value": "https://website.com", "confidence": 0.8},
  "strategic_initiatives": {
    "value": [
      {
        "initiative": "Initiative Name",
        "contact": {"name": "", "title": "", "email": "", "linkedin": "", "phone": ""},
        "business_problems": ["Specific business problem"],
        "priority": "High",
        "status": "In Progress",
        "target_timeline": "Q3 2025",
        "estimated_budget": "$2.5M",
        "expected_outcomes": ["Reduce operational costs by 25%"],
        "success_metrics": ["Processing time < 2 hours"]
      }
    ],
    "confidence": 0.8
  },
  "systems_and_applications": {
    "value": [
      {"name": "System Name", "category": "CRM", "vendor": "Vendor", "version": "", "description": "", "criticality": "High"}
    ],
    "confidence": 0.8
  }
}"""


def build_extraction_user_prompt(markdown: str) -> str:
    return (
        "Extract client profile information from the following markdown document:\n\n"
        f"---\n{markdown}\n---\n\n"
        "Priority is one of High, Medium, Low. Status is one of Planning, In Progress, On Hold, Completed. "
        "System categories: CRM, ERP, Cloud Platform, Database, Analytics, Communication, Security, DevOps, Other.\n\n"
        f"Return a JSON object with exactly these field names:\n{EXTRACTION_JSON_TEMPLATE}"
    )


def _scored_fields(data: Dict[str, Any]):
    for name, field in data.items():
        if isinstance(field, dict) and isinstance(field.get("confidence"), (int, float)):
            yield name, field


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_extracted_field(name: str, value: Any) -> List[str]:
    warnings = []

    if name == "strategic_initiatives":
        if not isinstance(value, list):
            return [f"{name} should be an array of strategic initiative objects"]
        if not value:
            return [f"{name} array is empty - no strategic initiatives extracted"]
        for index, initiative in enumerate(value):
            prefix = f"{name}[{index}]"
            if not isinstance(initiative, dict):
                warnings.append(f"{prefix} should be an object")
                continue
            if _blank(initiative.get("initiative")):
                warnings.append(f"{prefix}.initiative is missing or empty")
            contact = initiative.get("contact")
            if not isinstance(contact, dict):
                warnings.append(f"{prefix}.contact should be an object with contact details")
            elif all(_blank(contact.get(key)) for key in CONTACT_FIELDS):
                warnings.append(f"{prefix}.contact has no contact information provided")
            problems = initiative.get("business_problems")
            if problems is not None and not isinstance(problems, list):
                warnings.append(f"{prefix}.business_problems should be an array of problem strings")
            elif problems:
                for problem_index, problem in enumerate(problems):
                    if _blank(problem):
                        warnings.append(f"{prefix}.business_problems[{problem_index}] should be a non-empty string")
        return warnings

    if name in ARRAY_FIELDS and not isinstance(value, list):
        warnings.append(f"{name} should be an array")

    if name in STRING_FIELDS and _blank(value):
        warnings.append(f"{name} should be a non-empty string")

    if name == "website_url" and isinstance(value, str) and value and not WEBSITE_PATTERN.match(value):
        warnings.append(f"{name} should be a valid URL format")

    return warnings


def analyze_extraction(data: Dict[str, Any]) -> Dict[str, Any]:
    low_confidence = []
    warnings = []
    total = 0.0
    count = 0

    for name, field in _scored_fields(data):
        count += 1
        total += field["confidence"]
        if field["confidence"] < LOW_CONFIDENCE:
            low_confidence.append(name)
        warnings.extend(validate_extracted_field(name, field.get("value")))

    return {
        "has_low_confidence_fields": bool(low_confidence),
        "low_confidence_fields": low_confidence,
        "validation_warnings": warnings,
        "average_confidence": round(total / count, 3) if count else 0,
    }


def generate_extraction_summary(data: Dict[str, Any]) -> Dict[str, Any]:
    summary = {
        "total_fields": 0,
        "high_confidence_fields": 0,
        "medium_confidence_fields": 0,
        "low_confidence_fields": 0,
        "extracted_sections": [],
    }
    for name, field in _scored_fields(data):
        summary["total_fields"] += 1
        if field["confidence"] >= HIGH_CONFIDENCE:
            summary["high_confidence_fields"] += 1
        elif field["confidence"] >= LOW_CONFIDENCE:
            summary["medium_confidence_fields"] += 1
        else:
            summary["low_confidence_fields"] += 1
        section = name.split(".")[0]
        if section not in summary["extracted_sections"]:
            summary["extracted_sections"].append(section)
    return summary


def analyze_critical_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Which of the fields a timeline depends on were found, and the share found."""
    found, missing = [], []
    for name in CRITICAL_FIELDS:
        field = data.get(name)
        value = field.get("value") if isinstance(field, dict) else None
        if value is None:
            missing.append(name)
        elif isinstance(value, list) and not value:
            missing.append(f"{name} (empty array)")
        elif isinstance(value, str) and not value.strip():
            missing.append(f"{name} (empty string)")
        else:
            found.append(name)

    return {
        "fields_found": found,
        "fields_missing": missing,
        "found_count": len(found),
        "missing_count": len(missing),
        "extraction_rate": f"{len(found) / len(CRITICAL_FIELDS) * 100:.1f}%",
    }


def _clean_initiatives(value: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(value, list):
        return None

    cleaned = []
    for item in value:
        if not isinstance(item, dict) or _blank(item.get("initiative")):
            continue
        initiative = dict(item)
        contact = initiative.get("contact") if isinstance(initiative.get("contact"), dict) else {}
        initiative["contact"] = {key: contact.get(key) or "" for key in CONTACT_FIELDS}
        problems = initiative.get("business_problems")
        initiative["business_problems"] = [
            problem.strip() for problem in problems if not _blank(problem)
        ] if isinstance(problems, list) else []
        cleaned.append(initiative)
    return cleaned


def clean_value(name: str, value: Any) -> Any:
    """Normalised value for a profile field, or None to drop it"""
    if name == "strategic_initiatives":
        return _clean_initiatives(value)
    if name == "systems_and_applications":
        return [item for item in value if isinstance(item, dict) and item.get("name")] \
            if isinstance(value, list) else None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        if name == "website_url" and not trimmed.startswith(("http://", "https://")):
            return f"https://{trimmed}"
        return trimmed
    return value


def map_to_profile(data: Dict[str, Any], min_confidence: float = CONFIDENCE_THRESHOLD) -> Dict[str, Any]:
    """Profile document from the extracted fields at or above min_confidence"""
    profile: Dict[str, Any] = {}
    if not isinstance(data, dict):
        return profile

    for path, field in data.items():
        if not isinstance(field, dict):
            continue
        confidence = field.get("confidence")
        if isinstance(confidence, (int, float)) and confidence < min_confidence:
            continue
        value = clean_value(path.split(".")[-1], field.get("value"))
        if value is None:
            continue

        target = profile
        parts = path.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    profile.setdefault("strategic_initiatives", [])
    profile.setdefault("systems_and_applications", [])
    return profile


def pattern_extraction(markdown: str) -> Dict[str, Any]:
    """Fields the rendered-profile parser recovers, scored as explicit matches."""
    parsed = parse_markdown(markdown)
    fields = {**parsed["company_overview"], "company_name": parsed["company_name"]}
    return {name: {"value": value, "confidence": 1.0} for name, value in fields.items() if value}


class ProfileExtractionService:
    def __init__(self, ai_service: AIService):
        self.ai_service = ai_service

    def extract(self, markdown: str, user_id: str, provider: Optional[str] = None) -> Dict[str, Any]:
        """
        Extract a profile from markdown.

        Uses the user's AI provider when one is configured, otherwise the
        rendered-profile parser. Raises HTTPException when neither can read
        the document or the provider call fails.
        """
        if not markdown or len(markdown.strip()) < MIN_MARKDOWN_LENGTH:
            raise api_error(400, "Markdown content is too short for meaningful extraction")

        start = time.monotonic()
        status = self.ai_service.get_status(user_id, provider)

        if status["configured"]:
            method = AI_METHOD
            provider_label = status["provider"]
            try:
                data = self.ai_service.generate_json(
                    EXTRACTION_SYSTEM_PROMPT, build_extraction_user_prompt(markdown), user_id, provider
                )
            except AIProviderError as e:
                logger.error(f"Profile extraction failed for user {user_id} ({provider_label}): {e}")
                if "rate limit" in str(e).lower() or "429" in str(e):
                    raise api_error(429, "Rate limit exceeded. Please try again later.")
                raise api_error(500, "Failed to extract profile data. Please try again.", str(e))
        else:
            method = PATTERN_METHOD
            provider_label = None
            try:
                data = pattern_extraction(markdown)
            except MarkdownParseError:
                raise api_error(
                    400,
                    "No AI provider configured. Please configure at least one AI provider in the admin dashboard.",
                    "Without an AI provider only rendered client profiles can be imported.",
                )

        if not isinstance(data, dict):
            raise api_error(502, "AI service returned an invalid response. Please try again.")

        analysis = analyze_extraction(data)
        critical = analyze_critical_fields(data)
        if critical["fields_missing"]:
            logger.warning(f"Extraction for user {user_id} is missing fields: {critical['fields_missing']}")

        duration = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Extracted {critical['found_count']}/{len(CRITICAL_FIELDS)} key fields for user {user_id} "
            f"via {method} in {duration}ms (average confidence {analysis['average_confidence']})"
        )
        return {
            "success": True,
            "method": method,
            "provider": provider_label,
            "extraction_time": duration,
            "data": data,
            **analysis,
            "mapped_profile": map_to_profile(data),
            "summary": generate_extraction_summary(data),
            "field_analysis": critical,
        }
