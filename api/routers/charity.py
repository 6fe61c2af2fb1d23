"""Charity router: organisation profile, funds, withdrawals, milestone proofs"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from api.core import RouterConfig
from api.utils.responses import created, paginated, success
from services import (
    charity_feedback_service, charity_service, milestone_service, withdrawal_service,
)

router = APIRouter(prefix="/api/charities", tags=["charity"])


def setup_routes(cfg: RouterConfig):
    charity_only = cfg.role("charity", "admin")

    async def own_charity_id(user: Dict) -> str:
        return (await charity_service.get_charity_by_user_id(user["id"]))["id"]

    @router.get("")
    async def list_charities(page: int = 1, limit: int = 20, search: Optional[str] = None):
        filters = {"verification_status": "approved", "search": search}
        items, total = await charity_service.list_charities(filters, page, limit)
        return paginated(items, total, page, limit)

    @router.post("")
    async def register(data: Dict[str, Any] = Body(...), user: Dict = Depends(charity_only)):
        return created(await charity_service.register_charity(data, user["id"]), "Charity registered")

    @router.get("/me")
    async def my_charity(user: Dict = Depends(charity_only)):
        return success(await charity_service.get_charity_by_user_id(user["id"]))

    @router.patch("/me")
    async def update_my_charity(data: Dict[str, Any] = Body(...), user: Dict = Depends(charity_only)):
        charity_id = await own_charity_id(user)
        return success(await charity_service.update_charity(charity_id, data, user["id"]), "Charity updated")

    @router.get("/me/funds")
    async def funds(user: Dict = Depends(charity_only)):
        return success(await charity_service.get_charity_funds(await own_charity_id(user), user["id"]))

    @router.get("/me/disbursements")
    async def disbursements(user: Dict = Depends(charity_only)):
        return success(await charity_service.get_charity_disbursements(await own_charity_id(user), user["id"]))

    @router.get("/me/statistics")
    async def statistics(user: Dict = Depends(charity_only)):
        return success(await charity_service.get_charity_statistics(await own_charity_id(user), user["id"]))

    @router.post("/me/withdrawals")
    async def withdraw(data: Dict[str, Any] = Body(...), user: Dict = Depends(charity_only)):
        bank_details = {k: v for k, v in data.items() if k != "amount"}
        withdrawal = await withdrawal_service.process_withdrawal(
            await own_charity_id(user), data.get("amount"), bank_details, user["id"]
        )
        return created(withdrawal, "Withdrawal processed")

    @router.get("/me/withdrawals")
    async def withdrawals(user: Dict = Depends(charity_only)):
        return success(await withdrawal_service.get_withdrawal_history(await own_charity_id(user), user["id"]))

    @router.get("/me/feedback")
    async def received_feedback(page: int = 1, limit: int = 20, user: Dict = Depends(charity_only)):
        items, total = await charity_feedback_service.list_feedback(
            {"charity_id": await own_charity_id(user)}, page, limit
        )
        return paginated(items, total, page, limit)

    @router.post("/milestones/{milestone_id}/proofs")
    async def submit_proof(milestone_id: str, data: Dict[str, Any] = Body(...),
                           user: Dict = Depends(charity_only)):
        proof = await milestone_service.submit_milestone_proof(
            milestone_id, data.get("proofUrl") or data.get("proof_url"), data.get("description"), user["id"]
        )
        return created(proof, "Proof submitted for verification")

    @router.patch("/milestones/{milestone_id}/status")
    async def milestone_status(milestone_id: str, data: Dict[str, Any] = Body(...),
                               user: Dict = Depends(charity_only)):
        milestone = await milestone_service.update_milestone_status(milestone_id, data.get("status"), user["id"])
        return success(milestone, "Milestone updated")

    @router.get("/milestones/{milestone_id}/proofs")
    async def milestone_proofs(milestone_id: str, user: Dict = Depends(cfg.get_current_user)):
        return success(await milestone_service.get_milestone_proofs(milestone_id))

    @router.get("/{charity_id}")
    async def get_charity(charity_id: str):
        return success(await charity_service.get_charity_by_id(charity_id))

    @router.get("/{charity_id}/feedback")
    async def charity_feedback(charity_id: str, page: int = 1, limit: int = 20, rating: Optional[int] = None):
        items, total = await charity_feedback_service.list_feedback(
            {"charity_id": charity_id, "rating": rating}, page, limit
        )
        return paginated(items, total, page, limit)

    @router.get("/{charity_id}/feedback/stats")
    async def charity_feedback_stats(charity_id: str):
        return success(await charity_feedback_service.get_charity_feedback_stats(charity_id))

    return router
