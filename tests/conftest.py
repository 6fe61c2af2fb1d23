"""Shared fixtures.

Services are exercised against AsyncMock repositories; no database is needed.
"""
import os
import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to path so tests can import the packages
sys.path.insert(0, str(Path(__file__).parent.parent))
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from core.event_bus import event_bus
from database import audit as audit_db
from database import notifications as notifications_db
from database import profiles as profiles_db

ADMIN_ID = "00000000-0000-4000-8000-000000000001"
CHARITY_USER_ID = "00000000-0000-4000-8000-000000000002"
DONOR_ID = "00000000-0000-4000-8000-000000000003"
OTHER_DONOR_ID = "00000000-0000-4000-8000-000000000004"
CHARITY_ID = "00000000-0000-4000-8000-000000000010"
CAMPAIGN_ID = "00000000-0000-4000-8000-000000000020"
MILESTONE_ID = "00000000-0000-4000-8000-000000000030"


def profile_row(user_id: str, role: str, **overrides) -> dict:
    row = {
        "id": user_id,
        "email": f"{role}-{user_id[-2:]}@example.org",
        "full_name": f"Test {role.title()}",
        "role": role,
        "is_verified": True,
        "is_active": True,
    }
    row.update(overrides)
    return row


def charity_row(**overrides) -> dict:
    row = {
        "id": CHARITY_ID,
        "user_id": CHARITY_USER_ID,
        "organization_name": "Bayanihan Relief",
        "verification_status": "approved",
        "available_balance": Decimal("5000.00"),
        "total_received": Decimal("5000.00"),
        "total_withdrawn": Decimal("0"),
    }
    row.update(overrides)
    return row


def campaign_row(**overrides) -> dict:
    row = {
        "id": CAMPAIGN_ID,
        "charity_id": CHARITY_ID,
        "title": "Clean Water for Tondo",
        "goal_amount": Decimal("10000.00"),
        "current_amount": Decimal("2500.00"),
        "status": "active",
        "seed_released_at": None,
        "charity_name": "Bayanihan Relief",
        "charity_verification_status": "approved",
        "charity_user_id": CHARITY_USER_ID,
    }
    row.update(overrides)
    return row


@pytest.fixture(autouse=True)
def side_effects(monkeypatch):
    """Audit, notification and event writes are recorded instead of stored."""
    mocks = {
        "audit": AsyncMock(),
        "notify": AsyncMock(return_value=None),
        "emit": AsyncMock(),
    }
    monkeypatch.setattr(audit_db, "insert_log", mocks["audit"])
    monkeypatch.setattr(notifications_db, "insert_notification", mocks["notify"])
    monkeypatch.setattr(event_bus, "emit", mocks["emit"])
    return mocks


@pytest.fixture
def profiles(monkeypatch):
    """Admin, charity owner and two donors, looked up by id."""
    rows = {
        ADMIN_ID: profile_row(ADMIN_ID, "admin"),
        CHARITY_USER_ID: profile_row(CHARITY_USER_ID, "charity"),
        DONOR_ID: profile_row(DONOR_ID, "donor"),
        OTHER_DONOR_ID: profile_row(OTHER_DONOR_ID, "donor"),
    }

    async def get_profile(user_id):
        return rows.get(str(user_id))

    monkeypatch.setattr(profiles_db, "get_profile", get_profile)
    return rows
