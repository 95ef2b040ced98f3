"""Relationship-pair routes: list, invite, accept, archive."""

from uuid import UUID

from fastapi import APIRouter, status

from willing_tree.api.deps import CurrentUser, Innermosts, to_http_exception
from willing_tree.schemas.innermosts import InnermostCreate, InnermostRead
from willing_tree.workflow.errors import WorkflowError

router = APIRouter(prefix="/innermosts", tags=["innermosts"])


@router.get("/", response_model=list[InnermostRead])
async def list_innermosts(
    current_user: CurrentUser,
    service: Innermosts,
) -> list[InnermostRead]:
    """List the user's relationships, including invitations addressed to them."""
    try:
        innermosts = await service.list_for_user(current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return [InnermostRead.model_validate(i) for i in innermosts]


@router.post("/", response_model=InnermostRead, status_code=status.HTTP_201_CREATED)
async def invite_partner(
    data: InnermostCreate,
    current_user: CurrentUser,
    service: Innermosts,
) -> InnermostRead:
    """Invite a partner by email. The inviter becomes partner A."""
    try:
        innermost = await service.invite(current_user, data.partner_email, data.invite_message)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return InnermostRead.model_validate(innermost)


@router.post("/{innermost_id}/accept", response_model=InnermostRead)
async def accept_invitation(
    innermost_id: UUID,
    current_user: CurrentUser,
    service: Innermosts,
) -> InnermostRead:
    try:
        innermost = await service.accept(innermost_id, current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return InnermostRead.model_validate(innermost)


@router.post("/{innermost_id}/archive", response_model=InnermostRead)
async def archive_innermost(
    innermost_id: UUID,
    current_user: CurrentUser,
    service: Innermosts,
) -> InnermostRead:
    try:
        innermost = await service.archive(innermost_id, current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return InnermostRead.model_validate(innermost)
