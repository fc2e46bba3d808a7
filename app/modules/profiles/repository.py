"""
Data access for client profiles.

Every call is scoped by user id. The service-role client bypasses RLS, so the
user_id filter on each query is what keeps tenants apart.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.core.errors import api_error
from app.modules.markdown.service import generate_markdown

logger = logging.getLogger(__name__)

TABLE = "client_profiles"
CACHE_VERSION = "1.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_user(user_id: Optional[str], action: str) -> None:
    if not user_id:
        raise api_error(401, f"User authentication is required to {action}.")


class ProfileRepository:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_profile(self, profile_data: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        """Insert a profile row; markdown is rendered from the document."""
        _require_user(user_id, "create a profile")
        try:
            data_for_json = {k: v for k, v in profile_data.items() if k not in ("markdown", "id")}
            company = profile_data.get("company_name")
            result = self.supabase.table(TABLE).insert({
                "user_id": user_id,
                "name": company,
                "description": f"{profile_data.get('industry')} profile for {company}",
                "industry": profile_data.get("industry"),
                "company_size": profile_data.get("size"),
                "profile_data": data_for_json,
                "markdown_content": generate_markdown(profile_data),
            }).execute()

            if not result.data:
                raise api_error(500, "Failed to create profile")

            logger.info(f"Created profile {result.data[0]['id']} for user {user_id}")
            return self.transform_from_database(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Supabase create error: {e}")
            raise api_error(500, "Failed to create profile", str(e))

    def get_profiles(self, user_id: Optional[str]) -> List[Dict[str, Any]]:
        if not user_id:
            return []
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return [self.transform_from_database(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Supabase get_profiles error: {e}")
            raise api_error(500, "Failed to fetch profiles", str(e))

    def get_profile(self, profile_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        _require_user(user_id, "fetch a profile")
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Supabase get_profile error: {e}")
            raise api_error(500, "Failed to fetch profile", str(e))

        if not result.data:
            return None
        return self.transform_from_database(result.data[0])

    def get_latest_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        _require_user(user_id, "fetch a profile")
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .order("updated_at", desc=True)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Supabase get_latest_profile error: {e}")
            raise api_error(500, "Failed to fetch profile", str(e))

        if not result.data:
            return None
        return self.transform_from_database(result.data[0])

    def update_profile(self, profile_id: str, updates: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        """Replace the profile document, re-render markdown and stamp updated_at."""
        _require_user(user_id, "update a profile")
        try:
            data_for_json = {k: v for k, v in updates.items() if k not in ("markdown", "id")}
            update_data = {
                "profile_data": data_for_json,
                "markdown_content": generate_markdown(updates),
                "updated_at": _now(),
            }
            company = updates.get("company_name")
            if company:
                update_data["name"] = company
                update_data["description"] = f"{updates.get('industry') or ''} profile for {company}"
            if updates.get("industry"):
                update_data["industry"] = updates["industry"]
            if updates.get("size"):
                update_data["company_size"] = updates["size"]

            result = self.supabase.table(TABLE)\
                .update(update_data)\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise api_error(404, "Profile not found")

            return self.transform_from_database(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Supabase update error: {e}")
            raise api_error(500, "Failed to update profile", str(e))

    def delete_profile(self, profile_id: str, user_id: str) -> bool:
        _require_user(user_id, "delete a profile")
        try:
            self.supabase.table(TABLE)\
                .delete()\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .execute()
            logger.info(f"Deleted profile {profile_id} for user {user_id}")
            return True
        except Exception as e:
            logger.error(f"Supabase delete error: {e}")
            raise api_error(500, "Failed to delete profile", str(e))

    # Timeline cache

    def get_cached_timeline(self, profile_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        if not user_id:
            logger.warning("No user_id provided to get_cached_timeline")
            return None
        try:
            result = self.supabase.table(TABLE)\
                .select("timeline_data, last_timeline_generated_at")\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Supabase get_cached_timeline error: {e}")
            return None

        if not result.data or not result.data[0].get("timeline_data"):
            return None

        row = result.data[0]
        return {
            "timeline": row["timeline_data"],
            "generated_at": row.get("last_timeline_generated_at"),
            "scenario_type": row["timeline_data"].get("scenario_type") or "balanced",
        }

    def save_timeline(self, profile_id: str, timeline: Dict[str, Any], scenario_type: str, user_id: str) -> bool:
        _require_user(user_id, "save timeline")
        generated_at = _now()
        timeline_with_meta = {
            **timeline,
            "scenario_type": scenario_type,
            "generated_at": generated_at,
            "version": CACHE_VERSION,
        }
        try:
            self.supabase.table(TABLE)\
                .update({
                    "timeline_data": timeline_with_meta,
                    "last_timeline_generated_at": generated_at,
                })\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Supabase save_timeline error: {e}")
            raise api_error(500, "Failed to save timeline to database", str(e))

    def clear_timeline_cache(self, profile_id: str, user_id: str) -> bool:
        _require_user(user_id, "clear timeline cache")
        try:
            self.supabase.table(TABLE)\
                .update({"timeline_data": None, "last_timeline_generated_at": None})\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Supabase clear_timeline_cache error: {e}")
            raise api_error(500, "Failed to clear timeline cache", str(e))

    # Opportunities cache

    def get_cached_opportunities(self, profile_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        if not user_id:
            logger.warning("No user_id provided to get_cached_opportunities")
            return None
        try:
            result = self.supabase.table(TABLE)\
                .select("opportunities_data, last_opportunities_generated_at")\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Supabase get_cached_opportunities error: {e}")
            return None

        if not result.data or not result.data[0].get("opportunities_data"):
            return None

        row = result.data[0]
        return {
            "opportunities": row["opportunities_data"],
            "generated_at": row.get("last_opportunities_generated_at"),
            "provider": row["opportunities_data"].get("provider") or "unknown",
        }

    def save_opportunities(self, profile_id: str, opportunities: Dict[str, Any], provider: str, user_id: str) -> bool:
        _require_user(user_id, "save opportunities")
        generated_at = _now()
        opportunities_with_meta = {
            **opportunities,
            "provider": provider,
            "generated_at": generated_at,
            "version": CACHE_VERSION,
        }
        try:
            self.supabase.table(TABLE)\
                .update({
                    "opportunities_data": opportunities_with_meta,
                    "last_opportunities_generated_at": generated_at,
                })\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Supabase save_opportunities error: {e}")
            raise api_error(500, "Failed to save opportunities to database", str(e))

    def clear_opportunities_cache(self, profile_id: str, user_id: str) -> bool:
        _require_user(user_id, "clear opportunities cache")
        try:
            self.supabase.table(TABLE)\
                .update({"opportunities_data": None, "last_opportunities_generated_at": None})\
                .eq("id", profile_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Supabase clear_opportunities_cache error: {e}")
            raise api_error(500, "Failed to clear opportunities cache", str(e))

    @classmethod
    def transform_from_database(cls, row: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten a row into a profile document. The row id wins over any stored id."""
        profile_data = dict(row.get("profile_data") or {})
        old_id = profile_data.pop("id", None)
        migrated = cls.migrate_profile_data(profile_data)

        return {
            **migrated,
            "id": row["id"],
            "markdown": row.get("markdown_content"),
            "created_at": row.get("created_at"),
            "updated_at": row.get("updated_at"),
            "user_id": row.get("user_id"),
            "original_id": old_id,
        }

    @staticmethod
    def migrate_profile_data(profile_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Older documents may lack business_problems on their initiatives."""
        if not profile_data:
            return profile_data

        migrated = dict(profile_data)
        initiatives = migrated.get("strategic_initiatives")
        if isinstance(initiatives, list):
            migrated["strategic_initiatives"] = [
                initiative if isinstance(initiative.get("business_problems"), list)
                else {**initiative, "business_problems": []}
                for initiative in initiatives
                if isinstance(initiative, dict)
            ]
        return migrated
