# ---------- routes/auth_routes.py ----------
"""
Auth routes backed by Supabase Auth.
Auth errors (bad credentials, unconfirmed email) are returned verbatim and
never retried.
"""
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, EmailStr, Field

from schemas import Role, User
from services.state_service import StateService, get_state_service
from supabase_client import AuthError, sign_in_user, sign_up_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])

AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


# ── Pydantic schemas ──────────────────────────────────────────────
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SignupRequest(LoginRequest):
    name: str = Field(..., min_length=1, max_length=100)


def _session_payload(session) -> dict:
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_in": session.expires_in,
    }


# ── Routes ────────────────────────────────────────────────────────
@router.post("/signup")
async def signup(body: SignupRequest, state: StateService = Depends(get_state_service)):
    """Create the auth user and its profile; the very first profile is the admin."""
    try:
        resp = await run_in_threadpool(sign_up_user, body.email, body.password, {"full_name": body.name})
    except AuthError as e:
        raise HTTPException(status_code=400, detail=e.message)

    if resp.user is None:
        raise HTTPException(status_code=400, detail="Sign-up did not return a user")

    is_first_user = await run_in_threadpool(state.store.count_profiles) == 0
    profile = User(
        id=resp.user.id,
        email=body.email,
        name=body.name,
        role=Role.ADMIN if is_first_user else Role.MEMBER,
        avatar_url=AVATAR_URL.format(seed=quote(body.name)),
    )
    await state.mutate(state.store.create_profile, profile)
    logger.info(f"Created {profile.role.value} profile {profile.id}")

    if resp.session is None:
        # Email confirmation pending
        return {"status": "verification_sent", "data": {"email": body.email}}
    return {"status": "success", "data": _session_payload(resp.session)}


@router.post("/login")
async def login(body: LoginRequest):
    try:
        resp = await run_in_threadpool(sign_in_user, body.email, body.password)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.message)
    return {"status": "success", "data": _session_payload(resp.session)}
