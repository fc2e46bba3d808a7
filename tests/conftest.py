"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")
os.environ.setdefault("ENCRYPTION_KEY", "0123456789abcdef" * 4)
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.core.dependencies import get_current_user
from app.core.rate_limit import limiter
from app.database.supabase_client import get_service_supabase, get_supabase
from app.main import app
from app.modules.ai.service import clear_model_cache
from app.modules.auth.service import clear_auth_cache
from tests.fakes.fake_supabase import FakeSupabase

TEST_KEY = "0123456789abcdef" * 4
USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", TEST_KEY)
    clear_auth_cache()
    clear_model_cache()
    limiter.reset()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def client(fake_db):
    """TestClient authenticated as USER_ID against the in-memory database."""
    app.dependency_overrides[get_current_user] = lambda: {"id": USER_ID, "email": "owner@example.com"}
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    app.dependency_overrides[get_supabase] = lambda: fake_db
    return TestClient(app)


@pytest.fixture
def anonymous_client(fake_db):
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    app.dependency_overrides[get_supabase] = lambda: fake_db
    return TestClient(app)


@pytest.fixture
def sample_profile():
    return {
        "company_name": "Acme Manufacturing",
        "industry": "Manufacturing",
        "employee_count": "1200",
        "annual_revenue": "$250M",
        "primary_location": "Chicago, IL",
        "website_url": "https://acme.example.com",
        "strategic_initiatives": [
            {
                "initiative": "Supply Chain Modernization",
                "contact": {"name": "Dana Reyes", "title": "COO", "email": "", "linkedin": "", "phone": ""},
                "business_problems": ["Manual purchase order entry", "Late supplier visibility"],
                "expected_outcomes": ["Faster order cycle"],
                "priority": "High",
                "status": "Planning",
            },
            {
                "initiative": "Customer Service Automation",
                "contact": {"name": "", "title": "", "email": "", "linkedin": "", "phone": ""},
                "business_problems": [],
                "priority": "Medium",
            },
        ],
        "systems_and_applications": [
            {"name": "SAP S/4HANA", "category": "ERP", "vendor": "SAP"},
            {"name": "Salesforce", "category": "CRM"},
        ],
    }
