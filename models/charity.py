"""
Charity Model
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.base import uid, iso, money

VERIFICATION_STATUSES = ("pending", "under_review", "approved", "rejected", "resubmission_required")


@dataclass
class Charity:
    """Represents a charity organization and its fund balances"""
    id: str
    user_id: str
    organization_name: str
    description: Optional[str] = None
    website_url: Optional[str] = None
    logo_url: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    registration_number: Optional[str] = None
    verification_status: str = "pending"
    verification_notes: Optional[str] = None
    document_urls: List[str] = field(default_factory=list)
    available_balance: Decimal = Decimal("0")
    total_received: Decimal = Decimal("0")
    total_withdrawn: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'Charity':
        return cls(
            id=uid(row['id']),
            user_id=uid(row['user_id']),
            organization_name=row['organization_name'],
            description=row.get('description'),
            website_url=row.get('website_url'),
            logo_url=row.get('logo_url'),
            contact_email=row.get('contact_email'),
            contact_phone=row.get('contact_phone'),
            address=row.get('address'),
            registration_number=row.get('registration_number'),
            verification_status=row.get('verification_status', 'pending'),
            verification_notes=row.get('verification_notes'),
            document_urls=list(row.get('document_urls') or []),
            available_balance=row.get('available_balance') or Decimal("0"),
            total_received=row.get('total_received') or Decimal("0"),
            total_withdrawn=row.get('total_withdrawn') or Decimal("0"),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    @property
    def is_approved(self) -> bool:
        return self.verification_status == "approved"

    def funds(self) -> Dict[str, float]:
        return {
            "availableBalance": money(self.available_balance),
            "totalReceived": money(self.total_received),
            "totalWithdrawn": money(self.total_withdrawn),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "organizationName": self.organization_name,
            "description": self.description,
            "websiteUrl": self.website_url,
            "logoUrl": self.logo_url,
            "contactEmail": self.contact_email,
            "contactPhone": self.contact_phone,
            "address": self.address,
            "registrationNumber": self.registration_number,
            "verificationStatus": self.verification_status,
            "verificationNotes": self.verification_notes,
            "documentUrls": self.document_urls,
            **self.funds(),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
