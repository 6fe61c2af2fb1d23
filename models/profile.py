"""
Profile Model - Typed representation of a platform account
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from models.base import uid, iso

ROLES = ("admin", "charity", "donor")


@dataclass
class Profile:
    """Represents a registered user (donor, charity owner or admin)"""
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    role: str = "donor"
    is_verified: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'Profile':
        """Create Profile from database row (password hash is never carried)"""
        return cls(
            id=uid(row['id']),
            email=row['email'],
            full_name=row.get('full_name'),
            avatar_url=row.get('avatar_url'),
            phone=row.get('phone'),
            role=row.get('role', 'donor'),
            is_verified=row.get('is_verified', False),
            is_active=row.get('is_active', True),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "avatarUrl": self.avatar_url,
            "phone": self.phone,
            "role": self.role,
            "isVerified": self.is_verified,
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
