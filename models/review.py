"""
Review Models - campaign reviews and charity feedback
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from models.base import uid, iso

REVIEW_STATUSES = ("pending", "approved", "rejected")
RATINGS = (1, 2, 3, 4, 5)


@dataclass
class CampaignReview:
    """A donor's rating of a campaign they funded"""
    id: str
    campaign_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    status: str = "approved"
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_avatar_url: Optional[str] = None
    campaign_title: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'CampaignReview':
        return cls(
            id=uid(row['id']),
            campaign_id=uid(row['campaign_id']),
            user_id=uid(row['user_id']),
            rating=row['rating'],
            comment=row.get('comment'),
            status=row.get('status', 'approved'),
            admin_notes=row.get('admin_notes'),
            reviewed_by=uid(row.get('reviewed_by')),
            reviewed_at=row.get('reviewed_at'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            user_name=row.get('user_name'),
            user_avatar_url=row.get('user_avatar_url'),
            campaign_title=row.get('campaign_title'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaignId": self.campaign_id,
            "userId": self.user_id,
            "rating": self.rating,
            "comment": self.comment,
            "status": self.status,
            "adminNotes": self.admin_notes,
            "reviewedBy": self.reviewed_by,
            "reviewedAt": iso(self.reviewed_at),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "user": {"fullName": self.user_name, "avatarUrl": self.user_avatar_url} if self.user_name else None,
            "campaignTitle": self.campaign_title,
        }


@dataclass
class CharityFeedback:
    """A donor's rating of a charity they have given to"""
    id: str
    charity_id: str
    donor_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    donor_name: Optional[str] = None
    donor_avatar_url: Optional[str] = None
    charity_name: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'CharityFeedback':
        return cls(
            id=uid(row['id']),
            charity_id=uid(row['charity_id']),
            donor_id=uid(row['donor_id']),
            rating=row['rating'],
            comment=row.get('comment'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            donor_name=row.get('donor_name'),
            donor_avatar_url=row.get('donor_avatar_url'),
            charity_name=row.get('charity_name'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "charityId": self.charity_id,
            "donorId": self.donor_id,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "donor": {"fullName": self.donor_name, "avatarUrl": self.donor_avatar_url} if self.donor_name else None,
            "charityName": self.charity_name,
        }
