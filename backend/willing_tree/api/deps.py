"""
FastAPI Dependencies for Authentication and the workflow services.

Key patterns:
1. get_current_user: Extracts and validates JWT, returns User object
2. Services are built per request around the request's AsyncSession
3. Workflow errors are translated to HTTPException at the route boundary

Security model:
- JWT stored in HttpOnly cookie (recommended) or Authorization header
- Tokens are issued by the account service; this API only verifies them
- Partnership checks happen in the services, not middleware
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from willing_tree.config import Settings, get_settings, sanitize_error
from willing_tree.db.models import User
from willing_tree.db.session import get_db
from willing_tree.services.capability_gate import CapabilityGate
from willing_tree.services.entity_store import EntityStore, SqlEntityStore
from willing_tree.services.innermosts import InnermostService
from willing_tree.services.weekly_cycle import WeeklyCycleService
from willing_tree.workflow.errors import (
    AlreadySubmitted,
    DocumentClosed,
    FeatureUnavailable,
    IncompleteScoringInput,
    InvalidPayload,
    NotAPartner,
    NotFound,
    PhaseCacheDrift,
    PhaseMismatch,
    RelationshipInactive,
    RelationshipLimitReached,
    RevisionNotAllowed,
    StorageUnavailable,
    WorkflowError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(user_id: UUID, settings: Settings | None = None) -> str:
    """
    Create a JWT access token for a user.

    Token payload contains:
    - sub: user_id as string (standard JWT subject claim)
    - exp: expiration timestamp
    """
    settings = settings or get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> UUID | None:
    """
    Decode and validate a JWT access token.

    Returns user_id if valid, None if invalid/expired.
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return UUID(user_id_str)
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    Supports two methods (in order of preference):
    1. HttpOnly cookie named 'access_token'
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Validate JWT and return the current authenticated user.

    Raises 401 if the token is missing, invalid or expired, or if the user
    no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = decode_access_token(token)
    if user_id is None:
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================


def get_entity_store(db: DbSession) -> EntityStore:
    return SqlEntityStore(db)


def get_capability_gate() -> CapabilityGate:
    return CapabilityGate(get_settings())


def get_weekly_cycle_service(
    store: Annotated[EntityStore, Depends(get_entity_store)],
    gate: Annotated[CapabilityGate, Depends(get_capability_gate)],
) -> WeeklyCycleService:
    return WeeklyCycleService(store, gate, get_settings())


def get_innermost_service(
    store: Annotated[EntityStore, Depends(get_entity_store)],
    gate: Annotated[CapabilityGate, Depends(get_capability_gate)],
) -> InnermostService:
    return InnermostService(store, gate)


WeeklyCycle = Annotated[WeeklyCycleService, Depends(get_weekly_cycle_service)]
Innermosts = Annotated[InnermostService, Depends(get_innermost_service)]


# =============================================================================
# ERROR TRANSLATION
# =============================================================================


def to_http_exception(error: WorkflowError) -> HTTPException:
    """
    Map a workflow error to the HTTP response the client sees.

    Integrity failures are logged and their detail is only exposed in
    development.
    """
    if isinstance(error, PhaseMismatch):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"This week is in the '{error.actual}' step. Wait for your partner to finish before moving on.",
        )
    if isinstance(error, AlreadySubmitted):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already submitted for this step. Wait for your partner.",
        )
    if isinstance(error, (DocumentClosed, RevisionNotAllowed, RelationshipInactive)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, InvalidPayload):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, (RelationshipLimitReached, FeatureUnavailable)):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(error))
    if isinstance(error, NotAPartner):
        # Same 404 as a missing relationship, to not reveal that it exists
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relationship not found")
    if isinstance(error, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, StorageUnavailable):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage is temporarily unavailable. Please try again.",
        )

    if isinstance(error, (IncompleteScoringInput, PhaseCacheDrift)):
        logger.error("Workflow integrity error: %s", str(error))
    else:
        logger.error("Unhandled workflow error %s: %s", type(error).__name__, str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=sanitize_error(error),
    )
