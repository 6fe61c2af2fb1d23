"""
Tests for campaign reviews and charity feedback eligibility.
"""
from unittest.mock import AsyncMock

import pytest

from core.errors import ErrorCode, PlatformError
from database import campaigns as campaigns_db
from database import charities as charities_db
from database import donations as donations_db
from database import feedback as feedback_db
from database import reviews as reviews_db
from services import charity_feedback_service, review_service

from tests.conftest import (
    ADMIN_ID, CAMPAIGN_ID, CHARITY_ID, DONOR_ID, OTHER_DONOR_ID, campaign_row, charity_row,
)

REVIEW_ID = "00000000-0000-4000-8000-000000000300"
FEEDBACK_ID = "00000000-0000-4000-8000-000000000400"


@pytest.fixture
def review_repo(monkeypatch):
    """Reviews keyed by (user, campaign); DONOR_ID has donated, OTHER_DONOR_ID has not."""
    reviews = {}

    async def has_completed_donation(user_id, campaign_id):
        return user_id == DONOR_ID

    async def get_user_review(user_id, campaign_id):
        return reviews.get((user_id, campaign_id))

    async def create_review(campaign_id, user_id, rating, comment):
        row = {"id": REVIEW_ID, "campaign_id": campaign_id, "user_id": user_id,
               "rating": rating, "comment": comment, "status": "approved"}
        reviews[(user_id, campaign_id)] = row
        return row

    async def get_review(review_id):
        return next((r for r in reviews.values() if r["id"] == review_id), None)

    monkeypatch.setattr(campaigns_db, "get_campaign", AsyncMock(return_value=campaign_row()))
    monkeypatch.setattr(donations_db, "has_completed_donation", has_completed_donation)
    monkeypatch.setattr(reviews_db, "get_user_review", get_user_review)
    monkeypatch.setattr(reviews_db, "create_review", create_review)
    monkeypatch.setattr(reviews_db, "get_review", get_review)
    return reviews


@pytest.fixture
def feedback_repo(monkeypatch):
    feedback = {}

    async def has_completed_donation_to_charity(user_id, charity_id):
        return user_id == DONOR_ID

    async def get_donor_feedback(donor_id, charity_id):
        return feedback.get((donor_id, charity_id))

    async def create_feedback(charity_id, donor_id, rating, comment):
        row = {"id": FEEDBACK_ID, "charity_id": charity_id, "donor_id": donor_id,
               "rating": rating, "comment": comment}
        feedback[(donor_id, charity_id)] = row
        return row

    monkeypatch.setattr(charities_db, "get_charity", AsyncMock(return_value=charity_row()))
    monkeypatch.setattr(donations_db, "has_completed_donation_to_charity", has_completed_donation_to_charity)
    monkeypatch.setattr(feedback_db, "get_donor_feedback", get_donor_feedback)
    monkeypatch.setattr(feedback_db, "create_feedback", create_feedback)
    return feedback


class TestCreateReview:
    """Tests for review_service.create_review."""

    @pytest.mark.asyncio
    async def test_donor_can_review(self, profiles, review_repo):
        review = await review_service.create_review(
            {"campaignId": CAMPAIGN_ID, "rating": 5, "comment": "Water station is running"}, DONOR_ID
        )
        assert review["rating"] == 5
        assert review["status"] == "approved"

    @pytest.mark.asyncio
    async def test_non_donor_rejected(self, profiles, review_repo):
        with pytest.raises(PlatformError) as exc:
            await review_service.create_review({"campaignId": CAMPAIGN_ID, "rating": 4}, OTHER_DONOR_ID)
        assert exc.value.status_code == 403
        assert exc.value.message == "You must donate to this campaign before leaving a review"
        assert review_repo == {}

    @pytest.mark.asyncio
    async def test_second_review_rejected(self, profiles, review_repo):
        await review_service.create_review({"campaignId": CAMPAIGN_ID, "rating": 5}, DONOR_ID)
        with pytest.raises(PlatformError) as exc:
            await review_service.create_review({"campaignId": CAMPAIGN_ID, "rating": 3}, DONOR_ID)
        assert exc.value.code == ErrorCode.DUPLICATE_REVIEW

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, profiles, review_repo):
        with pytest.raises(PlatformError) as exc:
            await review_service.create_review({"campaignId": CAMPAIGN_ID, "rating": 6}, DONOR_ID)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR


class TestEditReview:
    """Tests for review edits after moderation."""

    @pytest.mark.asyncio
    async def test_rejected_review_is_locked(self, profiles, review_repo, monkeypatch):
        await review_service.create_review({"campaignId": CAMPAIGN_ID, "rating": 2}, DONOR_ID)
        review_repo[(DONOR_ID, CAMPAIGN_ID)]["status"] = "rejected"
        monkeypatch.setattr(reviews_db, "update_review", AsyncMock())

        with pytest.raises(PlatformError) as exc:
            await review_service.update_review(REVIEW_ID, {"rating": 5}, DONOR_ID)
        assert exc.value.status_code == 403
        reviews_db.update_review.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_author_can_delete(self, profiles, review_repo, monkeypatch):
        await review_service.create_review({"campaignId": CAMPAIGN_ID, "rating": 4}, DONOR_ID)
        monkeypatch.setattr(reviews_db, "delete_review", AsyncMock(return_value=True))

        with pytest.raises(PlatformError) as exc:
            await review_service.delete_review(REVIEW_ID, OTHER_DONOR_ID)
        assert exc.value.status_code == 404
        assert await review_service.delete_review(REVIEW_ID, DONOR_ID) is True


class TestReviewStats:
    """Tests for get_campaign_review_stats."""

    @pytest.mark.asyncio
    async def test_only_approved_count_toward_average(self, monkeypatch):
        rows = [
            {"rating": 5, "status": "approved"},
            {"rating": 4, "status": "approved"},
            {"rating": 4, "status": "approved"},
            {"rating": 1, "status": "rejected"},
        ]
        monkeypatch.setattr(reviews_db, "list_campaign_ratings", AsyncMock(return_value=rows))
        stats = await review_service.get_campaign_review_stats(CAMPAIGN_ID)

        assert stats["totalReviews"] == 4
        assert stats["approvedReviews"] == 3
        assert stats["averageRating"] == 4.33
        assert stats["ratingDistribution"] == {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1}


class TestCharityFeedback:
    """Tests for charity_feedback_service."""

    @pytest.mark.asyncio
    async def test_donor_can_leave_feedback(self, profiles, feedback_repo):
        feedback = await charity_feedback_service.create_feedback(
            {"charityId": CHARITY_ID, "rating": 4, "comment": "Clear reporting"}, DONOR_ID
        )
        assert feedback["charityId"] == CHARITY_ID
        assert feedback["rating"] == 4

    @pytest.mark.asyncio
    async def test_non_donor_rejected(self, profiles, feedback_repo):
        with pytest.raises(PlatformError) as exc:
            await charity_feedback_service.create_feedback({"charityId": CHARITY_ID, "rating": 4}, OTHER_DONOR_ID)
        assert exc.value.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, profiles, feedback_repo):
        await charity_feedback_service.create_feedback({"charityId": CHARITY_ID, "rating": 4}, DONOR_ID)
        with pytest.raises(PlatformError) as exc:
            await charity_feedback_service.create_feedback({"charityId": CHARITY_ID, "rating": 2}, DONOR_ID)
        assert exc.value.code == ErrorCode.DUPLICATE_FEEDBACK

    @pytest.mark.asyncio
    async def test_eligible_excludes_rated(self, profiles, monkeypatch):
        other_charity = "00000000-0000-4000-8000-000000000011"
        supported = [
            {"id": CHARITY_ID, "organization_name": "Bayanihan Relief", "donation_count": 2, "total_donated": 1500},
            {"id": other_charity, "organization_name": "Kalinga Kids", "donation_count": 1, "total_donated": 300},
        ]
        monkeypatch.setattr(donations_db, "list_supported_charities", AsyncMock(return_value=supported))
        monkeypatch.setattr(feedback_db, "list_rated_charity_ids", AsyncMock(return_value=[CHARITY_ID]))

        eligible = await charity_feedback_service.get_eligible_charities_for_feedback(DONOR_ID)
        assert [c["charityId"] for c in eligible] == [other_charity]

    @pytest.mark.asyncio
    async def test_admin_removal_needs_reason(self, profiles, monkeypatch):
        monkeypatch.setattr(feedback_db, "get_feedback", AsyncMock(return_value={
            "id": FEEDBACK_ID, "charity_id": CHARITY_ID, "donor_id": DONOR_ID, "rating": 1,
        }))
        monkeypatch.setattr(feedback_db, "delete_feedback", AsyncMock(return_value=True))

        with pytest.raises(PlatformError) as exc:
            await charity_feedback_service.admin_delete_feedback(FEEDBACK_ID, "", ADMIN_ID)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR
        assert await charity_feedback_service.admin_delete_feedback(FEEDBACK_ID, "Abusive language", ADMIN_ID)
