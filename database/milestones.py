"""
Milestone and milestone-proof queries.
"""
import logging
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, transaction

logger = logging.getLogger(__name__)

MILESTONE_WITH_OWNER = """
    SELECT m.*,
           c.charity_id, c.status AS campaign_status, c.title AS campaign_title,
           ch.user_id AS charity_user_id
    FROM milestones m
    JOIN campaigns c ON c.id = m.campaign_id
    JOIN charities ch ON ch.id = c.charity_id
"""

PROOF_WITH_OWNER = """
    SELECT p.*,
           m.title AS milestone_title, m.status AS milestone_status,
           m.campaign_id, m.target_amount,
           c.title AS campaign_title, c.charity_id,
           ch.user_id AS charity_user_id
    FROM milestone_proofs p
    JOIN milestones m ON m.id = p.milestone_id
    JOIN campaigns c ON c.id = m.campaign_id
    JOIN charities ch ON ch.id = c.charity_id
"""


async def list_by_campaign(campaign_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch(
            "SELECT * FROM milestones WHERE campaign_id = $1 ORDER BY target_amount, created_at",
            campaign_id
        )


async def get_milestone(milestone_id: str) -> Optional[Dict]:
    """Milestone with its campaign status and the owning charity's user"""
    async with get_connection() as db:
        return await db.fetchrow(f"{MILESTONE_WITH_OWNER} WHERE m.id = $1", milestone_id)


async def set_status(milestone_id: str, status: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            UPDATE milestones SET status = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, milestone_id, status)


async def create_proof(milestone_id: str, proof_url: str, description: Optional[str]) -> Dict:
    """Store a pending proof and mark the milestone as completed"""
    async with transaction() as db:
        proof = await db.fetchrow("""
            INSERT INTO milestone_proofs (milestone_id, proof_url, description)
            VALUES ($1, $2, $3)
            RETURNING *
        """, milestone_id, proof_url, description)
        await db.execute("""
            UPDATE milestones SET status = 'completed', updated_at = NOW()
            WHERE id = $1 AND status IN ('pending', 'in_progress')
        """, milestone_id)
    return proof


async def get_proof(proof_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(f"{PROOF_WITH_OWNER} WHERE p.id = $1", proof_id)


async def list_proofs(milestone_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch(
            "SELECT * FROM milestone_proofs WHERE milestone_id = $1 ORDER BY submitted_at DESC",
            milestone_id
        )


async def list_pending_proofs(limit: int, offset: int) -> Tuple[List[Dict], int]:
    async with get_connection() as db:
        total = await db.fetchval(
            "SELECT COUNT(*) FROM milestone_proofs WHERE verification_status = 'pending'"
        )
        rows = await db.fetch(f"""
            {PROOF_WITH_OWNER}
            WHERE p.verification_status = 'pending'
            ORDER BY p.submitted_at
            LIMIT $1 OFFSET $2
        """, limit, offset)
    return rows, total or 0


async def has_pending_proof(milestone_id: str) -> bool:
    async with get_connection() as db:
        return bool(await db.fetchval("""
            SELECT EXISTS(
                SELECT 1 FROM milestone_proofs
                WHERE milestone_id = $1 AND verification_status = 'pending'
            )
        """, milestone_id))


async def approve_proof(proof_id: str, milestone_id: str, admin_id: str, notes: Optional[str]) -> Optional[Dict]:
    """
    Approve the proof and verify its milestone together.

    Returns None, changing nothing, when the milestone is already verified
    or paid out or the proof is no longer pending.
    """
    async with transaction() as db:
        milestone = await db.fetchrow(
            "SELECT status, funds_released FROM milestones WHERE id = $1 FOR UPDATE", milestone_id
        )
        if not milestone or milestone["status"] == "verified" or milestone["funds_released"]:
            return None
        proof = await db.fetchrow("""
            UPDATE milestone_proofs
            SET verification_status = 'approved', verification_notes = $2,
                verified_by = $3, verified_at = NOW()
            WHERE id = $1 AND verification_status = 'pending'
            RETURNING *
        """, proof_id, notes, admin_id)
        if not proof:
            return None
        await db.execute("""
            UPDATE milestones
            SET status = 'verified', verified_at = NOW(), verified_by = $2, updated_at = NOW()
            WHERE id = $1
        """, milestone_id, admin_id)
    return proof


async def reject_proof(proof_id: str, milestone_id: str, admin_id: str,
                       status: str, notes: str) -> Optional[Dict]:
    """Reject or send back a pending proof; the milestone returns to in_progress"""
    async with transaction() as db:
        proof = await db.fetchrow("""
            UPDATE milestone_proofs
            SET verification_status = $2, verification_notes = $3,
                verified_by = $4, verified_at = NOW()
            WHERE id = $1 AND verification_status = 'pending'
            RETURNING *
        """, proof_id, status, notes, admin_id)
        if not proof:
            return None
        await db.execute("""
            UPDATE milestones SET status = 'in_progress', updated_at = NOW()
            WHERE id = $1 AND status <> 'verified'
        """, milestone_id)
    return proof


async def has_approved_proof(milestone_id: str) -> bool:
    async with get_connection() as db:
        return bool(await db.fetchval("""
            SELECT EXISTS(
                SELECT 1 FROM milestone_proofs
                WHERE milestone_id = $1 AND verification_status = 'approved'
            )
        """, milestone_id))


async def count_by_status(campaign_id: str) -> Dict[str, int]:
    async with get_connection() as db:
        rows = await db.fetch("""
            SELECT status, COUNT(*) AS count FROM milestones
            WHERE campaign_id = $1 GROUP BY status
        """, campaign_id)
    return {r["status"]: r["count"] for r in rows}
