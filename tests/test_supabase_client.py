"""Tests for Supabase client selection."""

from unittest.mock import patch

import pytest

from app.config import settings
from app.database import supabase_client
from app.database.supabase_client import SupabaseClient, check_database_connection
from tests.fakes.fake_supabase import FakeSupabase


@pytest.fixture(autouse=True)
def fresh_clients(monkeypatch):
    monkeypatch.setattr(SupabaseClient, "_client", None)
    monkeypatch.setattr(SupabaseClient, "_service_client", None)


class TestClients:
    def test_service_client_uses_service_role_key(self, monkeypatch):
        monkeypatch.setattr(settings, "supabase_service_role_key", "service-key")
        with patch.object(supabase_client, "create_client") as create:
            first = supabase_client.get_service_supabase()
            second = supabase_client.get_service_supabase()
        create.assert_called_once_with(settings.supabase_url, "service-key")
        assert first is second

    def test_service_client_falls_back_to_anon_client(self, monkeypatch):
        monkeypatch.setattr(settings, "supabase_service_role_key", None)
        with patch.object(supabase_client, "create_client") as create:
            client = supabase_client.get_service_supabase()
        create.assert_called_once_with(settings.supabase_url, settings.supabase_key)
        assert client is supabase_client.get_supabase()


class TestReadiness:
    def test_reachable(self):
        assert check_database_connection(FakeSupabase()) is True

    def test_unreachable(self):
        assert check_database_connection(FakeSupabase(fail_tables={"client_profiles"})) is False
