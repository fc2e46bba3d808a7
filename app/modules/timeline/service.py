"""
Timeline generation: validates the profile, prompts the user's LLM provider
and caches the result on the profile row.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException

from app.core.errors import api_error
from app.modules.ai.providers import AIProviderError
from app.modules.ai.service import AIService
from app.modules.profiles.repository import ProfileRepository
from app.modules.profiles.service import ProfileService
from app.modules.timeline.prompts import build_timeline_user_prompt, get_timeline_system_prompt
from app.modules.timeline.validation import (
    TimelineValidationError,
    attempt_timeline_auto_fix,
    validate_profile_for_timeline,
    validate_scenario_type,
    validate_timeline_response,
)

logger = logging.getLogger(__name__)

CACHE_PROVIDER = "Database Cache"
GENERATION_METHOD = "modular"
GENERATION_VERSION = "2.0"


class TimelineGenerationError(Exception):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TimelineService:
    def __init__(self, ai_service: AIService, repository: ProfileRepository):
        self.ai_service = ai_service
        self.repository = repository

    def generate_timeline(self, profile: Dict[str, Any], scenario_type: str, user_id: str,
                          provider: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a timeline for a profile with the user's AI provider.

        Raises TimelineGenerationError for configuration, validation or LLM failures.
        """
        if not user_id:
            raise TimelineGenerationError("User ID is required for timeline generation.")

        try:
            status = self.ai_service.get_status(user_id, provider)
            if not status["configured"]:
                raise TimelineGenerationError(
                    "AI provider not configured. Please configure a provider in the admin settings."
                )

            scenario = validate_scenario_type(scenario_type)
            if not scenario.is_valid:
                logger.warning(f"Invalid scenario type '{scenario_type}', using '{scenario.corrected}'")

            profile_check = validate_profile_for_timeline(profile)
            if not profile_check["is_valid"]:
                raise TimelineGenerationError(f"Profile validation failed: {', '.join(profile_check['errors'])}")
            if profile_check["warnings"]:
                logger.warning(f"Profile validation warnings: {profile_check['warnings']}")

            timeline = self.ai_service.generate_json(
                get_timeline_system_prompt(),
                build_timeline_user_prompt(profile, scenario.corrected),
                user_id,
                provider,
            )

            if not timeline.get("future_state"):
                logger.warning("Generated timeline is missing future_state, attempting auto-fix")
                fixed = attempt_timeline_auto_fix(timeline, profile)
                timeline["future_state"] = fixed.get("future_state")
                timeline["summary"] = timeline.get("summary") or fixed["summary"]

            validate_timeline_response(timeline)

            company = profile.get("company_name") or ""
            if company not in json.dumps(timeline):
                logger.warning("Generated timeline does not contain the company name - may be too generic")

            return self.enhance_timeline_with_metadata(timeline, profile, scenario.corrected,
                                                       profile_check["completeness_score"])
        except TimelineGenerationError:
            raise
        except (AIProviderError, TimelineValidationError) as e:
            logger.error(f"Timeline generation error for {profile.get('company_name')}: {e}")
            raise TimelineGenerationError(f"Timeline generation failed: {e}")

    @staticmethod
    def enhance_timeline_with_metadata(timeline: Dict[str, Any], profile: Dict[str, Any],
                                       scenario_type: str, completeness_score: int) -> Dict[str, Any]:
        return {
            **timeline,
            "metadata": {
                "generated_at": _now(),
                "scenario_type": scenario_type,
                "profile_data": {
                    "company_name": profile.get("company_name"),
                    "industry": profile.get("industry"),
                    "completeness_score": completeness_score,
                },
                "generation": {"method": GENERATION_METHOD, "version": GENERATION_VERSION},
            },
        }

    def generate_from_profile(
        self,
        user_id: str,
        profile: Optional[Dict[str, Any]] = None,
        profile_id: Optional[str] = None,
        force_regenerate: bool = False,
        scenario_type: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Timeline for a posted or stored profile, served from the profile's cache
        when the scenario matches and no regeneration is forced.
        """
        if not self.ai_service.is_configured(user_id, provider):
            raise api_error(
                503,
                "AI provider not configured",
                "Please configure an AI provider in the admin settings.",
                configured=False,
            )

        if not profile and not profile_id:
            raise api_error(400, "Either profile data or profile_id is required")

        target = profile
        if not target:
            target = self.repository.get_profile(profile_id, user_id)
            if not target:
                raise api_error(404, "Profile not found")

        if not target.get("company_name"):
            raise api_error(400, "Invalid profile data", "Profile must include company name")

        target_id = target.get("id")
        final_scenario = scenario_type or ProfileService.determine_scenario_type(target)
        timeline = None
        cached = False
        generated_at = _now()

        if target_id and not force_regenerate:
            entry = self.repository.get_cached_timeline(target_id, user_id)
            if entry and (not scenario_type or entry["scenario_type"] == scenario_type):
                logger.info(f"Using cached timeline for profile {target_id} (scenario: {entry['scenario_type']})")
                timeline = entry["timeline"]
                cached = True
                generated_at = entry["generated_at"]
                final_scenario = entry["scenario_type"]

        if timeline is None:
            try:
                generated = self.generate_timeline(target, final_scenario, user_id, provider)
            except TimelineGenerationError as e:
                raise api_error(500, "AI timeline generation failed", str(e), timestamp=_now())
            timeline = ProfileService.enhance_timeline_with_profile(generated, target)

            if target_id:
                try:
                    self.repository.save_timeline(target_id, timeline, final_scenario, user_id)
                except HTTPException as e:
                    logger.warning(f"Could not save timeline to cache for profile {target_id}: {e.detail}")

        provider_label = CACHE_PROVIDER if cached else self.ai_service.get_status(user_id, provider)["provider"]
        unsaved = not target_id
        return {
            "success": True,
            "timeline": timeline,
            "profile_id": target_id,
            "profile_name": target.get("company_name"),
            "cached": cached,
            "generated_at": generated_at,
            "scenario_type": final_scenario,
            "unsaved_profile": unsaved,
            "provider": provider_label,
            "method": "Profile-Based Generation (Unsaved)" if unsaved
            else "Profile-Based Generation with Caching",
        }
