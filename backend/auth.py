from fastapi import Depends, Request, HTTPException, status
from jose import jwt, JWTError

from config import SUPABASE_JWT_SECRET, SUPABASE_JWT_AUDIENCE
from schemas import Role, User
from services.state_service import StateService, get_state_service

JWT_ALGORITHM = "HS256"


def verify_token(token: str) -> dict | None:
    """Decode and verify a Supabase access token. Returns the payload or None on failure."""
    try:
        payload = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
        return payload
    except JWTError:
        return None


async def get_current_user(request: Request) -> str:
    """
    FastAPI dependency — extracts the Bearer token from the Authorization
    header, verifies it, and returns the auth user id (`sub`).
    Raises HTTP 401 if the token is missing or invalid.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header.split(" ", 1)[1]
    payload = verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token payload missing required claims",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_id


def get_current_profile(
    user_id: str = Depends(get_current_user),
    state: StateService = Depends(get_state_service),
) -> User:
    """The signed-in user's profile; 401 if the account has no profile (deleted)."""
    user = next((u for u in state.snapshot().users if u.id == user_id), None)
    if user is None:
        user = next((u for u in state.snapshot(force=True).users if u.id == user_id), None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No profile for this account")
    return user


def require_admin(user: User = Depends(get_current_profile)) -> User:
    if user.role != Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
