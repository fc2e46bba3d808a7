"""Tests for ProfileRepository against the in-memory Supabase fake."""

import pytest
from fastapi import HTTPException

from app.modules.profiles.repository import ProfileRepository
from tests.fakes.fake_supabase import FakeSupabase

USER_ID = "user-1"


def _row(profile_id, user_id=USER_ID, **extra):
    row = {
        "id": profile_id,
        "user_id": user_id,
        "profile_data": {"company_name": f"Company {profile_id}"},
        "markdown_content": "# Client Profile: x",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    row.update(extra)
    return row


@pytest.fixture
def db():
    return FakeSupabase({"client_profiles": [
        _row("p1", created_at="2024-01-01T00:00:00+00:00", updated_at="2024-03-01T00:00:00+00:00"),
        _row("p2", created_at="2024-02-01T00:00:00+00:00", updated_at="2024-02-15T00:00:00+00:00"),
        _row("p3", user_id="user-2"),
    ]})


@pytest.fixture
def repository(db):
    return ProfileRepository(db)


class TestReads:
    def test_profiles_are_scoped_and_newest_first(self, repository):
        profiles = repository.get_profiles(USER_ID)
        assert [p["id"] for p in profiles] == ["p2", "p1"]

    def test_no_user_means_no_profiles(self, repository):
        assert repository.get_profiles(None) == []

    def test_other_users_profile_is_invisible(self, repository):
        assert repository.get_profile("p3", USER_ID) is None

    def test_latest_profile_by_update_time(self, repository):
        assert repository.get_latest_profile(USER_ID)["id"] == "p1"

    def test_missing_user_is_unauthorized(self, repository):
        with pytest.raises(HTTPException) as exc:
            repository.get_profile("p1", "")
        assert exc.value.status_code == 401

    def test_database_failure_is_500(self):
        repository = ProfileRepository(FakeSupabase(fail_tables={"client_profiles"}))
        with pytest.raises(HTTPException) as exc:
            repository.get_profiles(USER_ID)
        assert exc.value.status_code == 500
        assert exc.value.detail["error"] == "Failed to fetch profiles"


class TestTransform:
    def test_row_id_wins_and_stored_id_is_kept_as_original(self):
        profile = ProfileRepository.transform_from_database({
            "id": "row-id",
            "user_id": USER_ID,
            "profile_data": {"id": "old-id", "company_name": "Acme", "strategic_initiatives": [{"initiative": "X"}]},
            "markdown_content": "md",
        })

        assert profile["id"] == "row-id"
        assert profile["original_id"] == "old-id"
        assert profile["markdown"] == "md"
        assert profile["strategic_initiatives"] == [{"initiative": "X", "business_problems": []}]


class TestWrites:
    def test_update_missing_profile_is_404(self, repository):
        with pytest.raises(HTTPException) as exc:
            repository.update_profile("p3", {"company_name": "Hijack"}, USER_ID)
        assert exc.value.status_code == 404

    def test_delete_only_touches_own_rows(self, repository, db):
        repository.delete_profile("p3", USER_ID)
        repository.delete_profile("p1", USER_ID)
        assert sorted(row["id"] for row in db.rows("client_profiles")) == ["p2", "p3"]


class TestCaches:
    def test_timeline_cache_round_trip(self, repository):
        assert repository.get_cached_timeline("p1", USER_ID) is None

        repository.save_timeline("p1", {"phases": []}, "aggressive", USER_ID)
        entry = repository.get_cached_timeline("p1", USER_ID)

        assert entry["scenario_type"] == "aggressive"
        assert entry["timeline"]["version"] == "1.0"
        assert entry["generated_at"] == entry["timeline"]["generated_at"]

        repository.clear_timeline_cache("p1", USER_ID)
        assert repository.get_cached_timeline("p1", USER_ID) is None

    def test_opportunities_cache_round_trip(self, repository):
        repository.save_opportunities("p2", {"opportunities": [{"title": "A"}]}, "rule-based", USER_ID)
        entry = repository.get_cached_opportunities("p2", USER_ID)

        assert entry["provider"] == "rule-based"
        assert entry["opportunities"]["opportunities"] == [{"title": "A"}]

        repository.clear_opportunities_cache("p2", USER_ID)
        assert repository.get_cached_opportunities("p2", USER_ID) is None

    def test_cache_read_failure_is_a_miss(self):
        repository = ProfileRepository(FakeSupabase(fail_tables={"client_profiles"}))
        assert repository.get_cached_timeline("p1", USER_ID) is None
