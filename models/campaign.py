"""
Campaign Model - campaigns, milestones, proofs, disbursements, updates and categories
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.base import uid, iso, money, calculate_percentage

CAMPAIGN_STATUSES = ("draft", "pending", "active", "paused", "completed", "cancelled")
MILESTONE_STATUSES = ("pending", "in_progress", "completed", "verified")
DISBURSEMENT_TYPES = ("seed", "milestone", "final", "manual")


@dataclass
class Milestone:
    """A sub-goal whose verified completion releases part of the funds"""
    id: str
    campaign_id: str
    title: str
    description: Optional[str] = None
    target_amount: Decimal = Decimal("0")
    evidence_description: Optional[str] = None
    status: str = "pending"
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    funds_released: bool = False
    released_amount: Decimal = Decimal("0")
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'Milestone':
        return cls(
            id=uid(row['id']),
            campaign_id=uid(row['campaign_id']),
            title=row['title'],
            description=row.get('description'),
            target_amount=row.get('target_amount') or Decimal("0"),
            evidence_description=row.get('evidence_description'),
            status=row.get('status', 'pending'),
            verified_at=row.get('verified_at'),
            verified_by=uid(row.get('verified_by')),
            funds_released=row.get('funds_released', False),
            released_amount=row.get('released_amount') or Decimal("0"),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaignId": self.campaign_id,
            "title": self.title,
            "description": self.description,
            "targetAmount": money(self.target_amount),
            "evidenceDescription": self.evidence_description,
            "status": self.status,
            "verifiedAt": iso(self.verified_at),
            "verifiedBy": self.verified_by,
            "fundsReleased": self.funds_released,
            "releasedAmount": money(self.released_amount),
            "createdAt": iso(self.created_at),
        }


@dataclass
class Campaign:
    """Represents a charity's fundraising campaign"""
    id: str
    charity_id: str
    title: str
    description: Optional[str] = None
    goal_amount: Decimal = Decimal("0")
    current_amount: Decimal = Decimal("0")
    image_url: Optional[str] = None
    status: str = "draft"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category: Optional[str] = None
    location: Optional[str] = None
    seed_amount_released: Decimal = Decimal("0")
    milestone_amount_released: Decimal = Decimal("0")
    seed_released_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    charity: Optional[Dict[str, Any]] = None
    milestones: List[Milestone] = field(default_factory=list)

    @classmethod
    def from_db_row(cls, row: dict, milestones: Optional[List[dict]] = None) -> 'Campaign':
        charity = None
        if row.get('charity_name') is not None:
            charity = {
                "id": uid(row['charity_id']),
                "organizationName": row['charity_name'],
                "logoUrl": row.get('charity_logo_url'),
                "verificationStatus": row.get('charity_verification_status'),
                "userId": uid(row.get('charity_user_id')),
            }
        return cls(
            id=uid(row['id']),
            charity_id=uid(row['charity_id']),
            title=row['title'],
            description=row.get('description'),
            goal_amount=row.get('goal_amount') or Decimal("0"),
            current_amount=row.get('current_amount') or Decimal("0"),
            image_url=row.get('image_url'),
            status=row.get('status', 'draft'),
            start_date=row.get('start_date'),
            end_date=row.get('end_date'),
            category=row.get('category'),
            location=row.get('location'),
            seed_amount_released=row.get('seed_amount_released') or Decimal("0"),
            milestone_amount_released=row.get('milestone_amount_released') or Decimal("0"),
            seed_released_at=row.get('seed_released_at'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            charity=charity,
            milestones=[Milestone.from_db_row(m) for m in (milestones or [])],
        )

    @property
    def owner_id(self) -> Optional[str]:
        return self.charity.get("userId") if self.charity else None

    @property
    def progress(self) -> int:
        return calculate_percentage(self.current_amount, self.goal_amount)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "charityId": self.charity_id,
            "title": self.title,
            "description": self.description,
            "goalAmount": money(self.goal_amount),
            "currentAmount": money(self.current_amount),
            "progress": self.progress,
            "imageUrl": self.image_url,
            "status": self.status,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "category": self.category,
            "location": self.location,
            "seedAmountReleased": money(self.seed_amount_released),
            "milestoneAmountReleased": money(self.milestone_amount_released),
            "seedReleasedAt": iso(self.seed_released_at),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if self.charity:
            data["charity"] = self.charity
        if self.milestones:
            data["milestones"] = [m.to_dict() for m in self.milestones]
        return data


@dataclass
class MilestoneProof:
    """Evidence a charity submits for a completed milestone"""
    id: str
    milestone_id: str
    proof_url: str
    description: Optional[str] = None
    verification_status: str = "pending"
    verification_notes: Optional[str] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    milestone_title: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_title: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'MilestoneProof':
        return cls(
            id=uid(row['id']),
            milestone_id=uid(row['milestone_id']),
            proof_url=row['proof_url'],
            description=row.get('description'),
            verification_status=row.get('verification_status', 'pending'),
            verification_notes=row.get('verification_notes'),
            verified_by=uid(row.get('verified_by')),
            verified_at=row.get('verified_at'),
            submitted_at=row.get('submitted_at'),
            milestone_title=row.get('milestone_title'),
            campaign_id=uid(row.get('campaign_id')),
            campaign_title=row.get('campaign_title'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "milestoneId": self.milestone_id,
            "proofUrl": self.proof_url,
            "description": self.description,
            "verificationStatus": self.verification_status,
            "verificationNotes": self.verification_notes,
            "verifiedBy": self.verified_by,
            "verifiedAt": iso(self.verified_at),
            "submittedAt": iso(self.submitted_at),
            "milestoneTitle": self.milestone_title,
            "campaignId": self.campaign_id,
            "campaignTitle": self.campaign_title,
        }


@dataclass
class FundDisbursement:
    """A recorded release of funds into a charity's available balance"""
    id: str
    campaign_id: str
    charity_id: str
    amount: Decimal
    disbursement_type: str
    milestone_id: Optional[str] = None
    status: str = "completed"
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    campaign_title: Optional[str] = None
    milestone_title: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'FundDisbursement':
        return cls(
            id=uid(row['id']),
            campaign_id=uid(row['campaign_id']),
            charity_id=uid(row['charity_id']),
            amount=row['amount'],
            disbursement_type=row['disbursement_type'],
            milestone_id=uid(row.get('milestone_id')),
            status=row.get('status', 'completed'),
            approved_by=uid(row.get('approved_by')),
            approved_at=row.get('approved_at'),
            notes=row.get('notes'),
            created_at=row.get('created_at'),
            campaign_title=row.get('campaign_title'),
            milestone_title=row.get('milestone_title'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaignId": self.campaign_id,
            "charityId": self.charity_id,
            "milestoneId": self.milestone_id,
            "amount": money(self.amount),
            "disbursementType": self.disbursement_type,
            "status": self.status,
            "approvedBy": self.approved_by,
            "approvedAt": iso(self.approved_at),
            "notes": self.notes,
            "createdAt": iso(self.created_at),
            "campaignTitle": self.campaign_title,
            "milestoneTitle": self.milestone_title,
        }


@dataclass
class CampaignUpdate:
    """A news post a charity publishes on its campaign"""
    id: str
    campaign_id: str
    charity_id: str
    title: str
    content: str
    update_type: str = "general"
    status: str = "published"
    created_by: Optional[str] = None
    milestone_id: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    charity_user_id: Optional[str] = None
    charity_name: Optional[str] = None
    milestone_title: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'CampaignUpdate':
        return cls(
            id=uid(row['id']),
            campaign_id=uid(row['campaign_id']),
            charity_id=uid(row['charity_id']),
            title=row['title'],
            content=row['content'],
            update_type=row.get('update_type', 'general'),
            status=row.get('status', 'published'),
            created_by=uid(row.get('created_by')),
            milestone_id=uid(row.get('milestone_id')),
            image_url=row.get('image_url'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            charity_user_id=uid(row.get('charity_user_id')),
            charity_name=row.get('charity_name'),
            milestone_title=row.get('milestone_title'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaignId": self.campaign_id,
            "charityId": self.charity_id,
            "createdBy": self.created_by,
            "title": self.title,
            "content": self.content,
            "updateType": self.update_type,
            "milestoneId": self.milestone_id,
            "milestoneTitle": self.milestone_title,
            "imageUrl": self.image_url,
            "status": self.status,
            "charityName": self.charity_name,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class CampaignCategory:
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    display_order: int = 0
    is_active: bool = True

    @classmethod
    def from_db_row(cls, row: dict) -> 'CampaignCategory':
        return cls(
            id=uid(row['id']),
            name=row['name'],
            slug=row['slug'],
            description=row.get('description'),
            icon=row.get('icon'),
            color=row.get('color'),
            display_order=row.get('display_order') or 0,
            is_active=row.get('is_active', True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "displayOrder": self.display_order,
            "isActive": self.is_active,
        }
