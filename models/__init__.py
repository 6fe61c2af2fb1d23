"""
Data Models - Typed dataclasses for platform entities
"""
from .profile import Profile
from .charity import Charity
from .campaign import (
    Campaign, CampaignCategory, CampaignUpdate, Milestone, MilestoneProof, FundDisbursement,
)
from .donation import Donation
from .review import CampaignReview, CharityFeedback
from .activity import WithdrawalTransaction, AuditLog, Notification

__all__ = [
    'Profile', 'Charity', 'Campaign', 'CampaignCategory', 'CampaignUpdate',
    'Milestone', 'MilestoneProof', 'FundDisbursement',
    'Donation', 'CampaignReview', 'CharityFeedback', 'WithdrawalTransaction',
    'AuditLog', 'Notification',
]
