"""Authentication router: signup, login, session"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

import config
from api.auth import COOKIE_NAME
from api.core import RouterConfig
from api.utils.responses import created, success
from services import auth_service, user_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _with_cookie(response: JSONResponse, session: Dict[str, Any]) -> JSONResponse:
    response.set_cookie(
        COOKIE_NAME, session["accessToken"], httponly=True, samesite="lax",
        max_age=config.TOKEN_EXPIRE_HOURS * 3600,
    )
    return response


def setup_routes(cfg: RouterConfig):
    """Setup routes with the shared dependencies"""

    @router.post("/signup")
    async def signup(data: Dict[str, Any] = Body(...)):
        session = await auth_service.sign_up(data)
        return _with_cookie(created(session, "Account created"), session)

    @router.post("/login")
    async def login(data: Dict[str, Any] = Body(...)):
        session = await auth_service.sign_in(data.get("email"), data.get("password"))
        return _with_cookie(success(session), session)

    @router.get("/me")
    async def me(user: Dict = Depends(cfg.get_current_user)):
        return success(await user_service.get_user_profile(user["id"]))

    @router.post("/logout")
    async def logout():
        response = success(message="Signed out")
        response.delete_cookie(COOKIE_NAME)
        return response

    return router
