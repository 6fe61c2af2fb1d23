"""
Donation Model
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from models.base import uid, iso, money

DONATION_STATUSES = ("pending", "completed", "failed", "refunded")

ANONYMOUS_DONOR = "Anonymous"


@dataclass
class Donation:
    """Represents a donor's payment to a campaign"""
    id: str
    user_id: str
    campaign_id: str
    amount: Decimal
    status: str = "pending"
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    is_anonymous: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    campaign_title: Optional[str] = None
    charity_id: Optional[str] = None
    charity_user_id: Optional[str] = None
    donor_name: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'Donation':
        return cls(
            id=uid(row['id']),
            user_id=uid(row['user_id']),
            campaign_id=uid(row['campaign_id']),
            amount=row['amount'],
            status=row.get('status', 'pending'),
            payment_method=row.get('payment_method'),
            transaction_id=row.get('transaction_id'),
            message=row.get('message'),
            is_anonymous=row.get('is_anonymous', False),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            campaign_title=row.get('campaign_title'),
            charity_id=uid(row.get('charity_id')),
            charity_user_id=uid(row.get('charity_user_id')),
            donor_name=row.get('donor_name'),
        )

    def to_dict(self, public: bool = False) -> Dict[str, Any]:
        """public=True hides anonymous donors' identity"""
        hide = public and self.is_anonymous
        return {
            "id": self.id,
            "userId": None if hide else self.user_id,
            "campaignId": self.campaign_id,
            "amount": money(self.amount),
            "status": self.status,
            "paymentMethod": None if public else self.payment_method,
            "transactionId": None if public else self.transaction_id,
            "message": self.message,
            "isAnonymous": self.is_anonymous,
            "donorName": ANONYMOUS_DONOR if hide else self.donor_name,
            "campaignTitle": self.campaign_title,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
