"""
Activity Models - withdrawals, audit entries and notifications
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from models.base import uid, iso, money


def _json(value: Any) -> Dict[str, Any]:
    if isinstance(value, str):
        return json.loads(value) if value else {}
    return dict(value or {})


@dataclass
class WithdrawalTransaction:
    """A transfer out of a charity's available balance"""
    id: str
    charity_id: str
    amount: Decimal
    bank_name: str
    bank_account_last4: str
    transaction_reference: str
    status: str = "completed"
    account_holder: Optional[str] = None
    processed_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'WithdrawalTransaction':
        return cls(
            id=uid(row['id']),
            charity_id=uid(row['charity_id']),
            amount=row['amount'],
            bank_name=row['bank_name'],
            bank_account_last4=row['bank_account_last4'],
            transaction_reference=row['transaction_reference'],
            status=row.get('status', 'completed'),
            account_holder=row.get('account_holder'),
            processed_at=row.get('processed_at'),
            notes=row.get('notes'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "charityId": self.charity_id,
            "amount": money(self.amount),
            "bankName": self.bank_name,
            "bankAccountLast4": self.bank_account_last4,
            "accountHolder": self.account_holder,
            "transactionReference": self.transaction_reference,
            "status": self.status,
            "processedAt": iso(self.processed_at),
            "notes": self.notes,
        }


@dataclass
class AuditLog:
    id: str
    action: str
    entity_type: str
    user_id: Optional[str] = None
    entity_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'AuditLog':
        return cls(
            id=uid(row['id']),
            action=row['action'],
            entity_type=row['entity_type'],
            user_id=uid(row.get('user_id')),
            entity_id=row.get('entity_id'),
            details=_json(row.get('details')),
            ip_address=row.get('ip_address'),
            user_agent=row.get('user_agent'),
            created_at=row.get('created_at'),
            user_email=row.get('user_email'),
            user_name=row.get('user_name'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "details": self.details,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "createdAt": iso(self.created_at),
            "user": {"email": self.user_email, "fullName": self.user_name} if self.user_email else None,
        }


@dataclass
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> 'Notification':
        return cls(
            id=uid(row['id']),
            user_id=uid(row['user_id']),
            type=row['type'],
            title=row['title'],
            message=row['message'],
            action_url=row.get('action_url'),
            metadata=_json(row.get('metadata')),
            is_read=row.get('is_read', False),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "actionUrl": self.action_url,
            "metadata": self.metadata,
            "isRead": self.is_read,
            "createdAt": iso(self.created_at),
        }
