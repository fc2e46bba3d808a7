"""Tests for timeline prompts, validation and the generation flow."""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from app.modules.ai.providers import AIProviderError
from app.modules.ai.service import AIService
from app.modules.profiles.repository import ProfileRepository
from app.modules.profiles.service import ProfileService
from app.modules.timeline.prompts import (
    build_timeline_user_prompt,
    get_scenario_timeline_guidance,
    get_timeline_system_prompt,
)
from app.modules.timeline.service import CACHE_PROVIDER, TimelineGenerationError, TimelineService
from app.modules.timeline.validation import (
    TimelineValidationError,
    attempt_timeline_auto_fix,
    calculate_completeness_score,
    validate_profile_for_timeline,
    validate_scenario_type,
    validate_timeline_response,
)
from tests.conftest import USER_ID
from tests.fakes.fake_supabase import FakeSupabase


def valid_timeline(company="Acme Manufacturing"):
    return {
        "current_state": {"description": f"{company} today", "highlights": []},
        "phases": [{
            "title": "Phase 1",
            "description": "Foundation",
            "duration": "6 months",
            "initiatives": [{"title": "Pilot", "description": "d", "impact": "i"}],
            "technologies": [],
            "outcomes": [],
            "highlights": [],
        }],
        "future_state": {"description": "AI-first", "highlights": []},
        "summary": {
            "total_investment": "$1M",
            "expected_roi": "200%",
            "time_to_value": "6 months",
            "risk_level": "Medium",
        },
    }


@pytest.fixture
def ai_service():
    mock = MagicMock(spec=AIService)
    mock.is_configured.return_value = True
    mock.get_status.return_value = {"configured": True, "provider": "OpenAI gpt-4o", "api_key_status": "Set"}
    mock.generate_json.return_value = valid_timeline()
    return mock


@pytest.fixture
def stored_profile(sample_profile):
    return {
        "id": "p1",
        "user_id": USER_ID,
        "profile_data": sample_profile,
        "markdown_content": "# Client Profile: Acme Manufacturing",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }


@pytest.fixture
def db(stored_profile):
    return FakeSupabase({"client_profiles": [stored_profile]})


@pytest.fixture
def service(ai_service, db):
    return TimelineService(ai_service, ProfileRepository(db))


class TestScenarioType:
    @pytest.mark.parametrize("given,expected", [
        ("conservative", "conservative"),
        ("Safe", "conservative"),
        ("moderate", "balanced"),
        (" RAPID ", "aggressive"),
    ])
    def test_known_names_and_synonyms(self, given, expected):
        result = validate_scenario_type(given)
        assert result.is_valid and result.corrected == expected

    def test_unknown_falls_back_to_balanced(self):
        result = validate_scenario_type("yolo")
        assert not result.is_valid
        assert result.corrected == "balanced"
        assert result.error == "Invalid scenario type: yolo. Must be one of: conservative, balanced, aggressive"


class TestProfileValidation:
    def test_completeness_score(self, sample_profile):
        assert calculate_completeness_score(sample_profile) == 88
        assert calculate_completeness_score({}) == 0

    def test_valid_profile_collects_warnings(self, sample_profile):
        result = validate_profile_for_timeline(sample_profile)
        assert result["is_valid"] is True
        assert "Initiative 2 (Customer Service Automation): Contact information incomplete" in result["warnings"]
        assert "Initiative 2 (Customer Service Automation): Status not set - may affect timeline planning" in result["warnings"]

    def test_missing_essentials(self):
        result = validate_profile_for_timeline({"company_name": "  "})
        assert result["errors"] == [
            "Company name is required for timeline generation",
            "Industry is required for timeline generation",
            "At least one strategic initiative is required for meaningful timeline generation",
        ]


class TestTimelineResponse:
    def test_valid(self):
        validate_timeline_response(valid_timeline())

    def test_missing_section(self):
        timeline = valid_timeline()
        del timeline["future_state"]
        with pytest.raises(TimelineValidationError, match="missing future_state"):
            validate_timeline_response(timeline)

    def test_phase_without_initiatives(self):
        timeline = valid_timeline()
        timeline["phases"][0]["initiatives"] = "none"
        with pytest.raises(TimelineValidationError, match="Phase 1"):
            validate_timeline_response(timeline)

    def test_summary_field(self):
        timeline = valid_timeline()
        timeline["summary"]["risk_level"] = ""
        with pytest.raises(TimelineValidationError, match="risk_level"):
            validate_timeline_response(timeline)

    def test_auto_fix_fills_every_section(self, sample_profile):
        fixed = attempt_timeline_auto_fix({}, sample_profile)
        validate_timeline_response(fixed)
        assert fixed["future_state"]["description"].startswith("Acme Manufacturing has successfully transformed")
        assert fixed["summary"]["total_investment"] == "$1.5M - $3.5M"

    def test_auto_fix_needs_company_for_future_state(self):
        assert "future_state" not in attempt_timeline_auto_fix({}, {})


class TestPrompts:
    def test_user_prompt_carries_profile_and_guidance(self, sample_profile):
        prompt = build_timeline_user_prompt(sample_profile, "aggressive")
        assert "Acme Manufacturing" in prompt
        assert "Supply Chain Modernization" in prompt
        assert "Manual purchase order entry" in prompt
        assert "SAP S/4HANA" in prompt
        assert "**AGGRESSIVE SCENARIO GUIDANCE:**" in prompt

    def test_guidance(self):
        assert "24-36 months" in get_scenario_timeline_guidance("conservative")

    def test_system_prompt_customizations(self):
        prompt = get_timeline_system_prompt(["Focus on healthcare compliance."])
        assert prompt.endswith("Focus on healthcare compliance.")
        assert "future_state" in prompt


class TestGenerateTimeline:
    def test_metadata(self, service, ai_service, sample_profile):
        timeline = service.generate_timeline(sample_profile, "balanced", USER_ID)

        metadata = timeline["metadata"]
        assert metadata["scenario_type"] == "balanced"
        assert metadata["profile_data"] == {
            "company_name": "Acme Manufacturing",
            "industry": "Manufacturing",
            "completeness_score": 88,
        }
        assert metadata["generation"] == {"method": "modular", "version": "2.0"}
        system_prompt, user_prompt, user_id, provider = ai_service.generate_json.call_args.args
        assert "BALANCED" in user_prompt and user_id == USER_ID and provider is None

    def test_invalid_scenario_uses_balanced(self, service, sample_profile):
        assert service.generate_timeline(sample_profile, "yolo", USER_ID)["metadata"]["scenario_type"] == "balanced"

    def test_missing_future_state_is_fixed(self, service, ai_service, sample_profile):
        reply = valid_timeline()
        del reply["future_state"]
        ai_service.generate_json.return_value = reply

        timeline = service.generate_timeline(sample_profile, "balanced", USER_ID)
        assert timeline["future_state"]["description"].startswith("Acme Manufacturing")

    def test_not_configured(self, service, ai_service, sample_profile):
        ai_service.get_status.return_value = {"configured": False, "provider": "None", "api_key_status": "Error"}
        with pytest.raises(TimelineGenerationError, match="AI provider not configured"):
            service.generate_timeline(sample_profile, "balanced", USER_ID)

    def test_invalid_profile(self, service):
        with pytest.raises(TimelineGenerationError, match="Profile validation failed"):
            service.generate_timeline({"company_name": "Acme"}, "balanced", USER_ID)

    def test_provider_error_is_wrapped(self, service, ai_service, sample_profile):
        ai_service.generate_json.side_effect = AIProviderError("rate limited")
        with pytest.raises(TimelineGenerationError, match="Timeline generation failed: rate limited"):
            service.generate_timeline(sample_profile, "balanced", USER_ID)


class TestGenerateFromProfile:
    def test_generates_and_caches(self, service, ai_service, db, sample_profile):
        result = service.generate_from_profile(USER_ID, profile_id="p1", scenario_type="aggressive")

        assert result["cached"] is False
        assert result["scenario_type"] == "aggressive"
        assert result["provider"] == "OpenAI gpt-4o"
        assert result["profile_name"] == "Acme Manufacturing"
        assert result["method"] == "Profile-Based Generation with Caching"
        assert result["timeline"]["risk_factors"] == ProfileService.identify_risk_factors(sample_profile)

        stored = db.rows("client_profiles")[0]["timeline_data"]
        assert stored["scenario_type"] == "aggressive"

        again = service.generate_from_profile(USER_ID, profile_id="p1")
        assert again["cached"] is True
        assert again["provider"] == CACHE_PROVIDER
        assert again["scenario_type"] == "aggressive"
        assert ai_service.generate_json.call_count == 1

    def test_scenario_mismatch_regenerates(self, service, ai_service):
        service.generate_from_profile(USER_ID, profile_id="p1", scenario_type="aggressive")
        result = service.generate_from_profile(USER_ID, profile_id="p1", scenario_type="conservative")
        assert result["cached"] is False
        assert ai_service.generate_json.call_count == 2

    def test_force_regenerate(self, service, ai_service):
        service.generate_from_profile(USER_ID, profile_id="p1", scenario_type="balanced")
        service.generate_from_profile(USER_ID, profile_id="p1", force_regenerate=True)
        assert ai_service.generate_json.call_count == 2

    def test_default_scenario_comes_from_profile(self, service, sample_profile):
        result = service.generate_from_profile(USER_ID, profile=sample_profile)
        assert result["scenario_type"] == ProfileService.determine_scenario_type(sample_profile)
        assert result["unsaved_profile"] is True
        assert result["profile_id"] is None
        assert result["method"] == "Profile-Based Generation (Unsaved)"

    def test_not_configured_is_503(self, service, ai_service):
        ai_service.is_configured.return_value = False
        with pytest.raises(HTTPException) as exc:
            service.generate_from_profile(USER_ID, profile_id="p1")
        assert exc.value.status_code == 503
        assert exc.value.detail["configured"] is False

    def test_requires_profile_or_id(self, service):
        with pytest.raises(HTTPException) as exc:
            service.generate_from_profile(USER_ID)
        assert exc.value.status_code == 400

    def test_unknown_profile_is_404(self, service):
        with pytest.raises(HTTPException) as exc:
            service.generate_from_profile(USER_ID, profile_id="missing")
        assert exc.value.status_code == 404

    def test_company_name_required(self, service):
        with pytest.raises(HTTPException) as exc:
            service.generate_from_profile(USER_ID, profile={"industry": "Retail"})
        assert exc.value.detail == {"error": "Invalid profile data", "details": "Profile must include company name"}

    def test_generation_failure_is_500(self, service, ai_service):
        ai_service.generate_json.side_effect = AIProviderError("quota exceeded")
        with pytest.raises(HTTPException) as exc:
            service.generate_from_profile(USER_ID, profile_id="p1", scenario_type="balanced")
        assert exc.value.status_code == 500
        assert exc.value.detail["error"] == "AI timeline generation failed"
        assert "quota exceeded" in exc.value.detail["details"]
