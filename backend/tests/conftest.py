"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "development")

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from willing_tree.api.deps import get_capability_gate, get_current_user, get_entity_store
from willing_tree.config import Settings
from willing_tree.db.models import Innermost, InnermostStatus, User, WeeklyScore, WillingBox
from willing_tree.main import app
from willing_tree.services.capability_gate import CapabilityGate
from willing_tree.services.innermosts import InnermostService
from willing_tree.services.weekly_cycle import WeeklyCycleService


class InMemoryEntityStore:
    """EntityStore kept in dicts. Returns the stored objects, like a session identity map."""

    def __init__(self) -> None:
        self.innermosts: dict[UUID, Innermost] = {}
        self.documents: dict[tuple[UUID, int], WillingBox] = {}
        self.scores: dict[tuple[UUID, int], WeeklyScore] = {}
        self.commits = 0
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        # Strictly increasing so created_at ordering is deterministic
        self._clock += timedelta(seconds=1)
        return self._clock

    def _stamp(self, obj, *fields: str) -> None:
        if getattr(obj, "id", None) is None:
            obj.id = uuid4()
        now = self._now()
        for field in fields:
            if getattr(obj, field, None) is None:
                setattr(obj, field, now)
        if hasattr(obj, "updated_at"):
            obj.updated_at = now

    async def load_innermost(self, innermost_id: UUID) -> Innermost | None:
        return self.innermosts.get(innermost_id)

    async def list_innermosts_for_user(self, user: User) -> list[Innermost]:
        email = (user.email or "").lower()
        found = [
            i
            for i in self.innermosts.values()
            if user.id in (i.partner_a_id, i.partner_b_id)
            or (email and i.invite_email == email and i.status == InnermostStatus.PENDING.value)
        ]
        return sorted(found, key=lambda i: i.created_at, reverse=True)

    async def count_active_innermosts(self, user_id: UUID) -> int:
        return sum(
            1
            for i in self.innermosts.values()
            if user_id in (i.partner_a_id, i.partner_b_id) and i.status == InnermostStatus.ACTIVE.value
        )

    async def save_innermost(self, innermost: Innermost) -> Innermost:
        self._stamp(innermost, "created_at")
        self.innermosts[innermost.id] = innermost
        return innermost

    async def load_document(self, innermost_id: UUID, week_number: int) -> WillingBox | None:
        return self.documents.get((innermost_id, week_number))

    async def load_latest_document(self, innermost_id: UUID) -> WillingBox | None:
        weeks = [doc for (iid, _), doc in self.documents.items() if iid == innermost_id]
        return max(weeks, key=lambda d: d.week_number, default=None)

    async def save_document(self, document: WillingBox) -> WillingBox:
        self._stamp(document, "created_at")
        self.documents[(document.innermost_id, document.week_number)] = document
        return document

    async def load_score(self, innermost_id: UUID, week_number: int) -> WeeklyScore | None:
        return self.scores.get((innermost_id, week_number))

    async def list_scores(self, innermost_id: UUID) -> list[WeeklyScore]:
        return sorted(
            (s for (iid, _), s in self.scores.items() if iid == innermost_id),
            key=lambda s: s.week_number,
        )

    async def save_score(self, record: WeeklyScore) -> WeeklyScore:
        self._stamp(record, "created_at")
        self.scores[(record.innermost_id, record.week_number)] = record
        return record

    async def commit(self) -> None:
        self.commits += 1


def make_user(name: str, email: str, **kwargs) -> User:
    kwargs.setdefault("subscription_status", "free")
    return User(id=uuid4(), name=name, email=email, **kwargs)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret_key="test-secret-key", billing_enabled=False)


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def gate(settings: Settings) -> CapabilityGate:
    return CapabilityGate(settings)


@pytest.fixture
def alice() -> User:
    return make_user("Alice", "alice@example.com")


@pytest.fixture
def bob() -> User:
    return make_user("Bob", "bob@example.com")


@pytest.fixture
def innermost_service(store: InMemoryEntityStore, gate: CapabilityGate) -> InnermostService:
    return InnermostService(store, gate)


@pytest.fixture
def cycle(store: InMemoryEntityStore, gate: CapabilityGate, settings: Settings) -> WeeklyCycleService:
    return WeeklyCycleService(store, gate, settings)


@pytest.fixture
async def pair(innermost_service: InnermostService, alice: User, bob: User) -> Innermost:
    """An active innermost with alice as partner A and bob as partner B."""
    innermost = await innermost_service.invite(alice, bob.email)
    return await innermost_service.accept(innermost.id, bob)


@pytest.fixture
def act_as() -> Callable[[User], None]:
    """Switch the user the API sees as authenticated."""

    def _act_as(user: User) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _act_as


@pytest.fixture
async def client(store: InMemoryEntityStore, gate: CapabilityGate) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the in-memory store."""
    app.dependency_overrides[get_entity_store] = lambda: store
    app.dependency_overrides[get_capability_gate] = lambda: gate
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
