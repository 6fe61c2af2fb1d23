"""Admin router: verification, approvals, fund release, moderation, users, audit"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from api.core import RouterConfig
from api.utils.responses import paginated, success
from services import (
    audit_service, campaign_service, charity_feedback_service, charity_service,
    donation_service, fund_service, milestone_service, review_service, user_service,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def setup_routes(cfg: RouterConfig):
    admin_only = cfg.role("admin")

    # === Charities ===

    @router.get("/charities")
    async def charities(page: int = 1, limit: int = 20, status: Optional[str] = None,
                        search: Optional[str] = None, user: Dict = Depends(admin_only)):
        items, total = await charity_service.list_charities(
            {"verification_status": status, "search": search}, page, limit
        )
        return paginated(items, total, page, limit)

    @router.patch("/charities/{charity_id}/verification")
    async def verify_charity(charity_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        charity = await charity_service.verify_charity(
            charity_id, data.get("status"), data.get("notes"), user["id"]
        )
        return success(charity, "Verification updated")

    @router.delete("/charities/{charity_id}")
    async def delete_charity(charity_id: str, user: Dict = Depends(admin_only)):
        await charity_service.delete_charity(charity_id, user["id"])
        return success(message="Charity deleted")

    # === Campaigns and funds ===

    @router.patch("/campaigns/{campaign_id}/status")
    async def campaign_status(campaign_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        campaign = await campaign_service.update_campaign_status(campaign_id, data.get("status"), user["id"])
        return success(campaign, "Campaign status updated")

    @router.post("/campaigns/{campaign_id}/seed-release")
    async def release_seed(campaign_id: str, data: Dict[str, Any] = Body(default={}),
                           user: Dict = Depends(admin_only)):
        disbursement = await fund_service.release_seed_funds(campaign_id, user["id"], data.get("notes"))
        return success(disbursement, "Seed funds released")

    @router.get("/milestones/{milestone_id}/can-release")
    async def can_release(milestone_id: str, user: Dict = Depends(admin_only)):
        return success({"canRelease": await milestone_service.can_release_funds(milestone_id)})

    @router.post("/milestones/{milestone_id}/release")
    async def release_milestone(milestone_id: str, data: Dict[str, Any] = Body(default={}),
                                user: Dict = Depends(admin_only)):
        disbursement = await fund_service.release_milestone_funds(milestone_id, user["id"], data.get("notes"))
        return success(disbursement, "Milestone funds released")

    # === Milestone proofs ===

    @router.get("/proofs")
    async def pending_proofs(page: int = 1, limit: int = 20, user: Dict = Depends(admin_only)):
        items, total = await milestone_service.list_pending_proofs(user["id"], page, limit)
        return paginated(items, total, page, limit)

    @router.post("/proofs/{proof_id}/approve")
    async def approve_proof(proof_id: str, data: Dict[str, Any] = Body(default={}),
                            user: Dict = Depends(admin_only)):
        result = await milestone_service.approve_milestone_proof(proof_id, data.get("notes"), user["id"])
        return success(result, "Proof approved")

    @router.post("/proofs/{proof_id}/reject")
    async def reject_proof(proof_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        result = await milestone_service.reject_milestone_proof(
            proof_id, data.get("reason"), data.get("notes"), user["id"]
        )
        return success(result, "Proof rejected")

    @router.post("/proofs/{proof_id}/resubmit")
    async def request_resubmission(proof_id: str, data: Dict[str, Any] = Body(...),
                                   user: Dict = Depends(admin_only)):
        result = await milestone_service.request_proof_resubmission(
            proof_id, data.get("reason"), data.get("notes"), user["id"]
        )
        return success(result, "Resubmission requested")

    # === Donations ===

    @router.patch("/donations/{donation_id}/status")
    async def donation_status(donation_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        donation = await donation_service.update_donation_status(
            donation_id, data.get("status"), data.get("transactionId"), user["id"]
        )
        return success(donation, "Donation updated")

    @router.post("/donations/{donation_id}/refund")
    async def refund(donation_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        donation = await donation_service.refund_donation(donation_id, data.get("reason"), user["id"])
        return success(donation, "Donation refunded")

    # === Moderation ===

    @router.get("/reviews")
    async def reviews(page: int = 1, limit: int = 20, status: Optional[str] = None,
                      campaign_id: Optional[str] = None, user: Dict = Depends(admin_only)):
        items, total = await review_service.list_reviews(
            {"status": status, "campaign_id": campaign_id}, page, limit, user["id"]
        )
        return paginated(items, total, page, limit)

    @router.patch("/reviews/{review_id}")
    async def moderate_review(review_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        review = await review_service.moderate_review(
            review_id, data.get("status"), data.get("adminNotes"), user["id"]
        )
        return success(review, "Review moderated")

    @router.delete("/feedback/{feedback_id}")
    async def remove_feedback(feedback_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        await charity_feedback_service.admin_delete_feedback(feedback_id, data.get("reason"), user["id"])
        return success(message="Feedback removed")

    # === Users ===

    @router.get("/users")
    async def users(q: Optional[str] = None, role: Optional[str] = None, page: int = 1, limit: int = 20,
                    user: Dict = Depends(admin_only)):
        items, total = await user_service.search_users(q, role, page, limit, user["id"])
        return paginated(items, total, page, limit)

    @router.patch("/users/{user_id}/role")
    async def user_role(user_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        return success(await user_service.update_user_role(user_id, data.get("role"), user["id"]), "Role updated")

    @router.post("/users/{user_id}/verify")
    async def verify_user(user_id: str, user: Dict = Depends(admin_only)):
        return success(await user_service.verify_user(user_id, user["id"]), "User verified")

    @router.patch("/users/{user_id}/status")
    async def user_status(user_id: str, data: Dict[str, Any] = Body(...), user: Dict = Depends(admin_only)):
        profile = await user_service.toggle_user_status(user_id, data.get("isActive"), user["id"])
        return success(profile, "User status updated")

    # === Audit and statistics ===

    @router.get("/audit-logs")
    async def audit_logs(page: int = 1, limit: int = 50, action: Optional[str] = None,
                         entity_type: Optional[str] = None, entity_id: Optional[str] = None,
                         user_id: Optional[str] = None, user: Dict = Depends(admin_only)):
        filters = {"action": action, "entity_type": entity_type, "entity_id": entity_id, "user_id": user_id}
        items, total = await audit_service.get_audit_logs(user["id"], filters, page, limit)
        return paginated(items, total, page, limit)

    @router.get("/statistics")
    async def statistics(user: Dict = Depends(admin_only)):
        return success(await audit_service.get_platform_statistics(user["id"]))

    return router
