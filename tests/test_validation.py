"""
Tests for input schemas and cross-field checks.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

import config
from core.errors import ErrorCode, PlatformError
from core.validation import (
    CampaignCreateSchema, CampaignFilterSchema, SignUpSchema, WithdrawalRequestSchema,
    validate_campaign_dates, validate_data, validate_milestone_amounts,
)


def campaign_payload(**overrides):
    data = {
        "title": "Clean Water for Tondo",
        "description": "Filtration units and pipes for three barangays in Tondo.",
        "goalAmount": 10000,
        "milestones": [
            {"title": "Buy filters", "description": "Purchase ten filtration units", "targetAmount": 4000},
        ],
    }
    data.update(overrides)
    return data


class TestSignUp:
    """Tests for SignUpSchema."""

    def test_accepts_camel_case(self):
        payload = validate_data(SignUpSchema, {
            "email": "Donor@Example.org", "password": "Str0ng!pass", "fullName": "Maria Santos",
        })
        assert payload.email == "donor@example.org"
        assert payload.full_name == "Maria Santos"
        assert payload.role == "donor"

    @pytest.mark.parametrize("password, message", [
        ("weak", "password: String should have at least 8 characters"),
        ("alllowercase1!", "password: Password must contain at least one uppercase letter"),
        ("NoDigits!!", "password: Password must contain at least one number"),
        ("NoSpecial123", "password: Password must contain at least one special character"),
    ])
    def test_password_rules(self, password, message):
        with pytest.raises(PlatformError) as exc:
            validate_data(SignUpSchema, {"email": "a@b.co", "password": password, "fullName": "Maria"})
        assert exc.value.message == message

    def test_admin_role_not_self_assignable(self):
        with pytest.raises(PlatformError) as exc:
            validate_data(SignUpSchema, {
                "email": "a@b.co", "password": "Str0ng!pass", "fullName": "Maria", "role": "admin",
            })
        assert exc.value.code == ErrorCode.VALIDATION_ERROR


class TestCampaignCreate:
    """Tests for CampaignCreateSchema."""

    def test_valid_payload(self):
        payload = validate_data(CampaignCreateSchema, campaign_payload())
        assert payload.goal_amount == Decimal("10000")
        assert payload.milestones[0].target_amount == Decimal("4000")

    def test_requires_a_milestone(self):
        with pytest.raises(PlatformError) as exc:
            validate_data(CampaignCreateSchema, campaign_payload(milestones=[]))
        assert exc.value.message.startswith("milestones:")

    def test_goal_must_be_positive(self):
        with pytest.raises(PlatformError) as exc:
            validate_data(CampaignCreateSchema, campaign_payload(goalAmount=0))
        assert exc.value.message.startswith("goalAmount:")


class TestCampaignDates:
    """Tests for validate_campaign_dates."""

    def test_past_start_rejected(self):
        now = config.get_now()
        with pytest.raises(PlatformError) as exc:
            validate_campaign_dates(now - timedelta(hours=2), now + timedelta(days=10), now)
        assert exc.value.message == "startDate: Start date cannot be in the past"

    def test_small_clock_skew_allowed(self):
        now = config.get_now()
        validate_campaign_dates(now - timedelta(minutes=30), now + timedelta(days=10), now)

    def test_end_before_start(self):
        now = config.get_now()
        with pytest.raises(PlatformError) as exc:
            validate_campaign_dates(now + timedelta(days=5), now + timedelta(days=2), now)
        assert exc.value.message == "endDate: End date must be after start date"

    def test_longer_than_two_years(self):
        now = config.get_now()
        with pytest.raises(PlatformError):
            validate_campaign_dates(now, now + timedelta(days=config.MAX_CAMPAIGN_DURATION_DAYS + 1), now)

    def test_naive_dates_use_platform_timezone(self):
        now = config.get_now()
        naive_end = (now + timedelta(days=3)).replace(tzinfo=None)
        start, end = validate_campaign_dates(None, naive_end, now)
        assert start is None
        assert end.tzinfo is not None
        assert end - now > timedelta(days=2)


class TestMilestoneAmounts:
    """Tests for validate_milestone_amounts."""

    def test_total_within_goal(self):
        validate_milestone_amounts([{"target_amount": 4000}, {"targetAmount": 6000}], Decimal("10000"))

    def test_total_over_goal(self):
        with pytest.raises(PlatformError) as exc:
            validate_milestone_amounts([{"target_amount": 6000}, {"target_amount": 6000}], Decimal("10000"))
        assert "cannot exceed campaign goal" in exc.value.message


class TestMisc:
    """Tests for smaller schemas."""

    def test_goal_range_order(self):
        with pytest.raises(PlatformError) as exc:
            validate_data(CampaignFilterSchema, {"minGoal": 500, "maxGoal": 100})
        assert "minGoal cannot be greater than maxGoal" in exc.value.message

    def test_account_number_normalised(self):
        payload = validate_data(WithdrawalRequestSchema, {
            "amount": 100, "bankName": "BPI", "accountNumber": "1234 5678-90", "accountHolder": "Juan",
        })
        assert payload.account_number == "1234567890"

    def test_none_payload_reports_missing_field(self):
        with pytest.raises(PlatformError) as exc:
            validate_data(SignUpSchema, None)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR
