"""
Authentication Routes

Endpoints:
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile

Sign-in happens in the account service, which sets the same HttpOnly
'access_token' cookie this API verifies.
"""

from fastapi import APIRouter, Response, status

from willing_tree.api.deps import CurrentUser
from willing_tree.config import get_settings
from willing_tree.schemas.user import UserRead

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication session.

    Note: This only clears the cookie. If the client stored the JWT
    elsewhere, it remains valid until expiry.
    """
    response.delete_cookie(
        key="access_token",
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
    )


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's profile."""
    return UserRead.model_validate(current_user)
