"""Entity store: loads and saves innermosts, weekly documents and score records."""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from willing_tree.db.models import Innermost, InnermostStatus, User, WeeklyScore, WillingBox
from willing_tree.workflow.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityStore(Protocol):
    """Storage contract the services depend on."""

    async def load_innermost(self, innermost_id: UUID) -> Innermost | None: ...

    async def list_innermosts_for_user(self, user: User) -> list[Innermost]: ...

    async def count_active_innermosts(self, user_id: UUID) -> int: ...

    async def save_innermost(self, innermost: Innermost) -> Innermost: ...

    async def load_document(self, innermost_id: UUID, week_number: int) -> WillingBox | None: ...

    async def load_latest_document(self, innermost_id: UUID) -> WillingBox | None: ...

    async def save_document(self, document: WillingBox) -> WillingBox: ...

    async def load_score(self, innermost_id: UUID, week_number: int) -> WeeklyScore | None: ...

    async def list_scores(self, innermost_id: UUID) -> list[WeeklyScore]: ...

    async def save_score(self, record: WeeklyScore) -> WeeklyScore: ...

    async def commit(self) -> None: ...


def _storage_call(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Surface driver and connection failures as StorageUnavailable."""

    @functools.wraps(method)
    async def wrapper(*args, **kwargs) -> T:
        try:
            return await method(*args, **kwargs)
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Entity store call %s failed: %s", method.__name__, str(e))
            raise StorageUnavailable(f"Storage unavailable during {method.__name__}") from e

    return wrapper


class SqlEntityStore:
    """EntityStore backed by the request's AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # -------------------------------------------------------------------------
    # Users and innermosts
    # -------------------------------------------------------------------------

    @_storage_call
    async def load_innermost(self, innermost_id: UUID) -> Innermost | None:
        result = await self.db.execute(select(Innermost).where(Innermost.id == innermost_id))
        return result.scalar_one_or_none()

    @_storage_call
    async def list_innermosts_for_user(self, user: User) -> list[Innermost]:
        """Innermosts where the user is either partner or the pending invitee, newest first."""
        conditions = [Innermost.partner_a_id == user.id, Innermost.partner_b_id == user.id]
        if user.email:
            conditions.append(
                (Innermost.invite_email == user.email.lower())
                & (Innermost.status == InnermostStatus.PENDING.value)
            )
        result = await self.db.execute(
            select(Innermost).where(or_(*conditions)).order_by(Innermost.created_at.desc())
        )
        return list(result.scalars())

    @_storage_call
    async def count_active_innermosts(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Innermost.id)).where(
                or_(Innermost.partner_a_id == user_id, Innermost.partner_b_id == user_id),
                Innermost.status == InnermostStatus.ACTIVE.value,
            )
        )
        return result.scalar_one()

    @_storage_call
    async def save_innermost(self, innermost: Innermost) -> Innermost:
        self.db.add(innermost)
        await self.db.flush()
        await self.db.refresh(innermost)
        return innermost

    # -------------------------------------------------------------------------
    # Weekly documents
    # -------------------------------------------------------------------------

    @_storage_call
    async def load_document(self, innermost_id: UUID, week_number: int) -> WillingBox | None:
        result = await self.db.execute(
            select(WillingBox).where(
                WillingBox.innermost_id == innermost_id,
                WillingBox.week_number == week_number,
            )
        )
        return result.scalar_one_or_none()

    @_storage_call
    async def load_latest_document(self, innermost_id: UUID) -> WillingBox | None:
        result = await self.db.execute(
            select(WillingBox)
            .where(WillingBox.innermost_id == innermost_id)
            .order_by(WillingBox.week_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @_storage_call
    async def save_document(self, document: WillingBox) -> WillingBox:
        # Only changed columns are written, so partners updating their own
        # slots concurrently do not overwrite each other
        self.db.add(document)
        await self.db.flush()
        await self.db.refresh(document)
        return document

    # -------------------------------------------------------------------------
    # Score records
    # -------------------------------------------------------------------------

    @_storage_call
    async def load_score(self, innermost_id: UUID, week_number: int) -> WeeklyScore | None:
        result = await self.db.execute(
            select(WeeklyScore).where(
                WeeklyScore.innermost_id == innermost_id,
                WeeklyScore.week_number == week_number,
            )
        )
        return result.scalar_one_or_none()

    @_storage_call
    async def list_scores(self, innermost_id: UUID) -> list[WeeklyScore]:
        result = await self.db.execute(
            select(WeeklyScore)
            .where(WeeklyScore.innermost_id == innermost_id)
            .order_by(WeeklyScore.week_number.asc())
        )
        return list(result.scalars())

    @_storage_call
    async def save_score(self, record: WeeklyScore) -> WeeklyScore:
        """
        Persist a score record, or return the one a concurrent writer stored first.

        Concurrent writers compute the same record from the same document, so
        the first one stored under unique_innermost_week_score wins.
        """
        try:
            async with self.db.begin_nested():
                self.db.add(record)
                await self.db.flush()
        except IntegrityError:
            existing = await self.load_score(record.innermost_id, record.week_number)
            if existing is None:
                raise
            logger.info(
                "Score for innermost_id=%s week=%s already stored by another writer",
                record.innermost_id,
                record.week_number,
            )
            return existing
        await self.db.refresh(record)
        return record

    @_storage_call
    async def commit(self) -> None:
        await self.db.commit()
