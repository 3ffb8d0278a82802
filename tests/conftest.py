from datetime import UTC, datetime

import pytest

from app.auth.verify import auth_dependency
from app.features.onboarding_reminders.domain.models import OnboardingSessionSnapshot

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def make_session():
    def _make(**overrides) -> OnboardingSessionSnapshot:
        data = {
            "id": "session-1",
            "access_token": "tok-abc",
            "project_name": "Website Redesign",
            "organization_name": "Acme Agency",
            "status": "in_progress",
            "created_at": T0,
            "completion_percentage": 40,
            "current_step": 4,
            "total_steps": 10,
            "client_email": "client@example.com",
            "client_name": "Jane",
            "organization_id": "org-1",
            "owner_id": "user-123",
            "reminder_schedule": "standard",
        }
        data.update(overrides)
        return OnboardingSessionSnapshot(**data)

    return _make
