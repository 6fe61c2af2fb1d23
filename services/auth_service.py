"""
Auth Service - sign up, sign in and bearer tokens
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import jwt, JWTError

import config
from core.errors import ErrorCode, PlatformError, forbidden, with_error_handling
from core.validation import SignInSchema, SignUpSchema, validate_data
from database import profiles as profiles_db
from models import Profile

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_token(user_id: str, role: str) -> str:
    """Create JWT token for user"""
    expire = datetime.now(timezone.utc) + timedelta(hours=config.TOKEN_EXPIRE_HOURS)
    return jwt.encode({"sub": str(user_id), "role": role, "exp": expire}, config.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    """Decode a JWT; user id and role, or None when invalid or expired"""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return {"id": payload["sub"], "role": payload.get("role", "donor")}


def _session(profile: Profile) -> Dict[str, Any]:
    return {
        "user": profile.to_dict(),
        "accessToken": create_token(profile.id, profile.role),
        "tokenType": "bearer",
        "expiresIn": config.TOKEN_EXPIRE_HOURS * 3600,
    }


@with_error_handling
async def sign_up(data: Dict) -> Dict[str, Any]:
    payload = validate_data(SignUpSchema, data)

    if await profiles_db.get_profile_by_email(payload.email):
        raise PlatformError(ErrorCode.ALREADY_EXISTS, "An account with this email already exists", 409)

    row = await profiles_db.create_profile(
        payload.email, hash_password(payload.password), payload.full_name, payload.role
    )
    profile = Profile.from_db_row(row)
    logger.info(f"New {profile.role} account: {profile.email}")
    return _session(profile)


@with_error_handling
async def sign_in(email: str, password: str) -> Dict[str, Any]:
    payload = validate_data(SignInSchema, {"email": email, "password": password})

    row = await profiles_db.get_profile_by_email(payload.email)
    if not row or not check_password(payload.password, row["password_hash"]):
        raise PlatformError(ErrorCode.INVALID_CREDENTIALS, "Invalid email or password", 401)

    profile = Profile.from_db_row(row)
    if not profile.is_active:
        raise forbidden("This account has been deactivated")
    return _session(profile)


async def ensure_bootstrap_admin(email: str, password: str) -> None:
    """Create the first admin account from configuration if it is missing"""
    if not email or not password:
        return
    existing = await profiles_db.get_profile_by_email(email)
    if existing:
        if existing["role"] != "admin":
            logger.warning(f"Bootstrap admin {email} exists with role {existing['role']}")
        return
    await profiles_db.create_profile(email, hash_password(password), "Administrator", "admin", is_verified=True)
    logger.info(f"Created bootstrap admin: {email}")
