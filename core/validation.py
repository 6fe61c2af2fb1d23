"""
Input Validation

Pydantic schemas for every service input. Payloads arrive camelCase from
the API and may also be passed snake_case by internal callers.
"""
import re
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

import config
from core.errors import ErrorCode, PlatformError, validation_error

T = TypeVar("T", bound=BaseModel)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^[+]?[1-9][\d]{0,15}$"
URL_PATTERN = r"^https?://[^\s/$.?#].[^\s]*$"
UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

Money = Decimal


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def changes(self) -> Dict[str, Any]:
        """Fields the caller actually sent, snake_case"""
        return self.model_dump(exclude_unset=True)


# === Auth & Profiles ===

class SignUpSchema(Schema):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8, max_length=128)
    full_name: str = Field(min_length=2, max_length=100)
    role: Literal["donor", "charity"] = "donor"

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one number")
        if not re.search(r"[^A-Za-z0-9]", v):
            raise ValueError("Password must contain at least one special character")
        return v


class SignInSchema(Schema):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ProfileUpdateSchema(Schema):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    avatar_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)


class RoleUpdateSchema(Schema):
    role: Literal["admin", "charity", "donor"]


class UserStatusSchema(Schema):
    is_active: bool


# === Charities ===

class CharityRegistrationSchema(Schema):
    organization_name: str = Field(min_length=2, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    website_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    logo_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    contact_email: str = Field(pattern=EMAIL_PATTERN)
    contact_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[str] = Field(None, min_length=10, max_length=500)
    registration_number: Optional[str] = Field(None, max_length=50)
    document_urls: List[str] = Field(default_factory=list)


class CharityUpdateSchema(Schema):
    organization_name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    website_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    logo_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    contact_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    contact_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[str] = Field(None, min_length=10, max_length=500)
    registration_number: Optional[str] = Field(None, max_length=50)
    document_urls: Optional[List[str]] = None


class CharityVerificationSchema(Schema):
    status: Literal["approved", "rejected", "under_review", "resubmission_required"]
    notes: Optional[str] = Field(None, max_length=2000)


# === Campaigns ===

class MilestoneSchema(Schema):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=1000)
    target_amount: Money = Field(gt=0)
    evidence_description: Optional[str] = Field(None, max_length=1000)


class CampaignCreateSchema(Schema):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=5000)
    goal_amount: Money = Field(gt=0, le=config.MAX_GOAL_AMOUNT)
    image_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, min_length=2, max_length=100)
    milestones: List[MilestoneSchema] = Field(min_length=1)


class CampaignUpdateSchema(Schema):
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20, max_length=5000)
    goal_amount: Optional[Money] = Field(None, gt=0, le=config.MAX_GOAL_AMOUNT)
    image_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, min_length=2, max_length=100)


class CampaignPostSchema(Schema):
    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=10, max_length=10000)
    update_type: Literal["milestone", "impact", "general"] = "general"
    milestone_id: Optional[str] = Field(None, pattern=UUID_PATTERN)
    image_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    status: Literal["draft", "published", "archived"] = "published"

    @model_validator(mode="after")
    def milestone_reference(self):
        if self.update_type == "milestone" and not self.milestone_id:
            raise ValueError("Milestone updates must reference a milestone")
        return self


class CampaignPostEditSchema(Schema):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    content: Optional[str] = Field(None, min_length=10, max_length=10000)
    update_type: Optional[Literal["milestone", "impact", "general"]] = None
    milestone_id: Optional[str] = Field(None, pattern=UUID_PATTERN)
    image_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    status: Optional[Literal["draft", "published", "archived"]] = None


class CampaignStatusSchema(Schema):
    status: Literal["draft", "pending", "active", "paused", "completed", "cancelled"]


class CampaignFilterSchema(Schema):
    status: Optional[List[str]] = None
    category: Optional[List[str]] = None
    location: Optional[List[str]] = None
    min_goal: Optional[Money] = Field(None, ge=0)
    max_goal: Optional[Money] = Field(None, ge=0)
    search: Optional[str] = Field(None, max_length=200)
    charity_id: Optional[str] = Field(None, pattern=UUID_PATTERN)

    @model_validator(mode="after")
    def goal_range(self):
        if self.min_goal is not None and self.max_goal is not None and self.min_goal > self.max_goal:
            raise ValueError("minGoal cannot be greater than maxGoal")
        return self


class PaginationSchema(Schema):
    page: int = Field(1, ge=1)
    limit: int = Field(config.DEFAULT_PAGE_LIMIT, ge=1, le=config.MAX_PAGE_LIMIT)


# === Milestones ===

class MilestoneStatusSchema(Schema):
    status: Literal["pending", "in_progress", "completed", "verified"]


class MilestoneProofSchema(Schema):
    proof_url: str = Field(min_length=1, max_length=1000)
    description: Optional[str] = Field(None, max_length=2000)


class ProofDecisionSchema(Schema):
    reason: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)


# === Donations ===

class DonationCreateSchema(Schema):
    campaign_id: str = Field(pattern=UUID_PATTERN)
    amount: Money = Field(gt=0, le=config.MAX_DONATION_AMOUNT)
    payment_method: str = Field(min_length=1, max_length=50)
    message: Optional[str] = Field(None, max_length=500)
    is_anonymous: bool = False


class DonationStatusSchema(Schema):
    status: Literal["pending", "completed", "failed", "refunded"]
    transaction_id: Optional[str] = Field(None, max_length=100)


class RefundSchema(Schema):
    reason: str = Field(min_length=3, max_length=500)


# === Reviews & Feedback ===

class ReviewCreateSchema(Schema):
    campaign_id: str = Field(pattern=UUID_PATTERN)
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class ReviewUpdateSchema(Schema):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class ReviewModerationSchema(Schema):
    status: Literal["approved", "rejected"]
    admin_notes: Optional[str] = Field(None, max_length=1000)


class FeedbackCreateSchema(Schema):
    charity_id: str = Field(pattern=UUID_PATTERN)
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class FeedbackUpdateSchema(Schema):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class AdminDeleteSchema(Schema):
    reason: str = Field(min_length=3, max_length=500)


# === Withdrawals ===

class WithdrawalRequestSchema(Schema):
    amount: Money = Field(gt=0)
    bank_name: str = Field(min_length=2, max_length=100)
    account_number: str = Field(min_length=4, max_length=34)
    account_holder: str = Field(min_length=2, max_length=200)

    @field_validator("account_number")
    @classmethod
    def digits_only(cls, v: str) -> str:
        v = v.replace(" ", "").replace("-", "")
        if not v.isdigit():
            raise ValueError("Account number must contain digits only")
        return v


# === Helpers ===

def _format_error(err: Dict[str, Any]) -> PlatformError:
    field = ".".join(str(p) for p in err.get("loc", ())) or "input"
    message = err.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return validation_error(field, message)


def validate_data(schema: Type[T], data: Any) -> T:
    """Parse data with schema; the first problem becomes a VALIDATION_ERROR"""
    if isinstance(data, schema):
        return data
    if data is None:
        data = {}
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        raise _format_error(errors[0]) from None


def aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach the platform timezone to a naive datetime"""
    if dt is not None and dt.tzinfo is None:
        return config.TIMEZONE.localize(dt)
    return dt


def validate_campaign_dates(
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    now: Optional[datetime] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Check the campaign window; returns both dates timezone-aware"""
    now = now or config.get_now()
    start_date, end_date = aware(start_date), aware(end_date)
    if start_date:
        # One hour grace for clock skew between client and server
        if start_date < now - timedelta(hours=1):
            raise validation_error("startDate", "Start date cannot be in the past")
    if end_date:
        if end_date <= now:
            raise validation_error("endDate", "End date must be in the future")
    if start_date and end_date:
        validate_campaign_window(start_date, end_date)
    return start_date, end_date


def validate_campaign_window(start_date: datetime, end_date: datetime) -> None:
    start_date, end_date = aware(start_date), aware(end_date)
    if end_date <= start_date:
        raise validation_error("endDate", "End date must be after start date")
    if end_date - start_date > timedelta(days=config.MAX_CAMPAIGN_DURATION_DAYS):
        raise validation_error("endDate", "Campaign duration cannot exceed 2 years")


def validate_milestone_amounts(milestones: Sequence[Any], goal_amount: Decimal) -> None:
    total = sum((Decimal(str(_target(m))) for m in milestones), Decimal("0"))
    if total > Decimal(str(goal_amount)):
        raise PlatformError(
            ErrorCode.VALIDATION_ERROR,
            f"milestones: Total milestone amounts ({total}) cannot exceed campaign goal ({goal_amount})",
            400,
            {"field": "milestones"},
        )


def _target(milestone: Any) -> Any:
    if isinstance(milestone, dict):
        return milestone.get("target_amount", milestone.get("targetAmount", 0))
    return milestone.target_amount
