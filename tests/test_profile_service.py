"""Tests for profile normalization, scenario selection and timeline enrichment."""

from app.modules.profiles.repository import ProfileRepository
from app.modules.profiles.service import ProfileService
from tests.fakes.fake_supabase import FakeSupabase

USER_ID = "user-1"


class TestNormalizeProfileData:
    def test_smb_goals_generate_initiatives(self):
        normalized = ProfileService.normalize_profile_data(
            {
                "business_goals": ["Reduce costs by 20%", "Grow revenue to $5M"],
                "key_challenges": ["Manual invoicing", "No CRM", "Slow onboarding"],
            },
            company_size="SMB",
        )

        assert normalized["company_size"] == "SMB"
        assert normalized["business_objectives"] == [
            {"objective": "Reduce costs by 20%", "target_metric": "20% cost reduction"},
            {"objective": "Grow revenue to $5M", "target_metric": "$5M target"},
        ]
        initiatives = normalized["strategic_initiatives"]
        assert [i["initiative"] for i in initiatives] == ["Cost Reduction Program", "Revenue Growth Program"]
        assert initiatives[0]["business_problems"] == ["Manual invoicing", "No CRM"]
        assert initiatives[1]["business_problems"] == ["Slow onboarding"]
        assert initiatives[0]["priority"] == "High"
        assert initiatives[0]["status"] == "Planning"

    def test_existing_initiatives_are_kept_first(self):
        existing = {"initiative": "ERP Upgrade", "business_problems": []}
        normalized = ProfileService.normalize_profile_data(
            {"business_goals": ["Improve quality"], "strategic_initiatives": [existing]},
        )

        assert normalized["company_size"] == "Enterprise"
        assert normalized["strategic_initiatives"][0] == existing
        assert normalized["strategic_initiatives"][1]["initiative"] == "Quality Improvement Program"

    def test_no_goals_leaves_initiatives_alone(self):
        normalized = ProfileService.normalize_profile_data({"strategic_initiatives": []}, "SMB")
        assert normalized["strategic_initiatives"] == []
        assert normalized["business_objectives"] == []


class TestHelpers:
    def test_initiative_names(self):
        assert ProfileService.generate_initiative_name("Boost customer satisfaction") == \
            "Customer Experience Enhancement Program"
        assert ProfileService.generate_initiative_name("Enter new markets") == "Strategic Business Program"

    def test_distribute_challenges_one_per_goal(self):
        challenges = ["a", "b"]
        assert ProfileService.distribute_challenges(challenges, 0, 3) == ["a"]
        assert ProfileService.distribute_challenges(challenges, 2, 3) == []

    def test_target_metric_fallbacks(self):
        assert ProfileService.extract_target_metric("Lift throughput 15%") == "15% improvement"
        assert ProfileService.extract_target_metric("Be better") == "Measurable improvement"

    def test_business_profile_extraction(self, sample_profile):
        business = ProfileService.extract_business_profile({**sample_profile, "size": "1000+"})

        assert business["company_size"] == "large"
        assert business["ai_maturity_level"] == "emerging"
        assert business["primary_goals"] == ["Supply Chain Modernization", "Customer Service Automation"]
        assert business["current_tech_stack"] == ["SAP S/4HANA", "Salesforce"]
        assert business["budget"] == "<100k"


class TestScenarioSelection:
    def test_defaults_to_balanced(self):
        assert ProfileService.determine_scenario_type({}) == "balanced"

    def test_ready_fast_and_bold_is_aggressive(self):
        profile = {"ai_readiness_score": 9, "decision_timeline": 3, "risk_tolerance": "high"}
        assert ProfileService.determine_scenario_type(profile) == "aggressive"

    def test_low_readiness_from_assessment_is_conservative(self):
        profile = {"ai_opportunity_assessment": {"ai_readiness_score": 3}}
        assert ProfileService.determine_scenario_type(profile) == "conservative"

    def test_free_text_decision_timeline(self):
        profile = {"ai_readiness_score": "9", "decision_timeline": "6 months", "risk_tolerance": "High"}
        assert ProfileService.determine_scenario_type(profile) == "aggressive"
        assert ProfileService.determine_scenario_type({"decision_timeline": "24 months"}) == "conservative"

    def test_non_numeric_values_fall_back_to_defaults(self):
        profile = {"decision_timeline": "ASAP", "ai_readiness_score": "unknown", "risk_tolerance": None}
        assert ProfileService.determine_scenario_type(profile) == "balanced"

    def test_non_dict_assessment_is_ignored(self):
        profile = {"ai_opportunity_assessment": "pending review", "ai_readiness_score": 2}
        assert ProfileService.determine_scenario_type(profile) == "conservative"
        assert ProfileService.determine_scenario_type({"ai_opportunity_assessment": ["x"]}) == "balanced"


class TestOpportunities:
    def test_one_recommendation_per_problem_high_priority_first(self):
        profile = {
            "strategic_initiatives": [
                {"initiative": "Ops", "business_problems": ["Slow close"], "priority": "Low"},
                {"initiative": "Sales", "business_problems": ["Lead leakage", "Manual quotes"], "priority": "High"},
            ]
        }
        recommendations = ProfileService.generate_opportunity_recommendations(profile)

        assert [r["title"] for r in recommendations] == [
            "AI solution for: Lead leakage",
            "AI solution for: Manual quotes",
            "AI solution for: Slow close",
        ]
        assert recommendations[0]["department"] == "Sales"


class TestTimelineEnrichment:
    def test_phases_gain_insights_and_risks(self):
        timeline = {"phases": [{"title": "One"}, {"title": "Two"}, {"title": "Three"}, {"title": "Four"}, {"title": "Five"}]}
        profile = {"ai_readiness_score": 2, "top_problem": "claims backlog", "industry": "Technology"}

        enhanced = ProfileService.enhance_timeline_with_profile(timeline, profile)

        assert enhanced["phases"][0]["profile_insights"] == "Focus on core challenges while building foundation"
        assert enhanced["phases"][1]["profile_insights"] == "Address claims backlog with targeted automation"
        assert enhanced["phases"][4]["profile_insights"] == "Continue systematic AI adoption"
        assert enhanced["phases"][0]["specific_opportunities"] == []
        assert enhanced["risk_factors"][0]["type"] == "Technical Readiness"
        assert enhanced["competitive_context"]["market_position"] == "Fast-moving"


class TestSaveProfile:
    def test_creates_when_no_id(self, sample_profile):
        db = FakeSupabase()
        service = ProfileService(ProfileRepository(db))

        saved = service.save_profile(sample_profile, USER_ID)

        row = db.rows("client_profiles")[0]
        assert saved["id"] == row["id"]
        assert row["user_id"] == USER_ID
        assert row["profile_data"]["status"] == "complete"
        assert row["description"] == "Manufacturing profile for Acme Manufacturing"

    def test_updates_owned_profile(self, sample_profile):
        db = FakeSupabase({"client_profiles": [
            {"id": "p1", "user_id": USER_ID, "profile_data": {"company_name": "Old"}, "markdown_content": ""},
        ]})
        service = ProfileService(ProfileRepository(db))

        saved = service.save_profile({**sample_profile, "id": "p1"}, USER_ID)

        assert saved["id"] == "p1"
        assert len(db.rows("client_profiles")) == 1
        assert db.rows("client_profiles")[0]["name"] == "Acme Manufacturing"

    def test_foreign_id_creates_a_new_profile(self, sample_profile):
        db = FakeSupabase({"client_profiles": [{"id": "p1", "user_id": "someone-else", "profile_data": {}}]})
        service = ProfileService(ProfileRepository(db))

        saved = service.save_profile({**sample_profile, "id": "p1"}, USER_ID)

        assert saved["id"] != "p1"
        assert saved["original_id"] is None
        assert len(db.rows("client_profiles")) == 2
