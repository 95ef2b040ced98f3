"""
Weekly cycle orchestration.

Ties the entity store to the workflow core for one partner action:

    load -> apply/revise -> evaluate -> advance (score when leaving guessing) -> save -> commit

StorageUnavailable from the store is never caught here.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from willing_tree.config import Settings, get_settings
from willing_tree.db.models import Innermost, InnermostStatus, User, WeekPhase, WeeklyScore, WillingBox
from willing_tree.services.capability_gate import CapabilityGate
from willing_tree.services.entity_store import EntityStore
from willing_tree.services.innermosts import load_partnership
from willing_tree.workflow.completion import advance, evaluate
from willing_tree.workflow.errors import (
    FeatureUnavailable,
    IncompleteScoringInput,
    NotFound,
    PhaseCacheDrift,
    RelationshipInactive,
)
from willing_tree.workflow.phases import (
    PHASE_ORDER,
    PartnerRole,
    apply_partner_input,
    check_phase_consistency,
    current_phase,
    new_willing_box,
    revise_partner_input,
)
from willing_tree.workflow.scoring import ScoringPolicy, priority_weighted, score
from willing_tree.workflow.stats import Stats, summarize

logger = logging.getLogger(__name__)

Payload = Iterable[Mapping[str, Any]]


class WeeklyCycleService:
    """Runs partner actions against weekly documents."""

    def __init__(
        self,
        store: EntityStore,
        gate: CapabilityGate,
        settings: Settings | None = None,
        policy: ScoringPolicy = priority_weighted,
    ):
        self.store = store
        self.gate = gate
        self.settings = settings or get_settings()
        self.policy = policy

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_active(innermost: Innermost) -> None:
        if innermost.status != InnermostStatus.ACTIVE.value:
            raise RelationshipInactive(f"Relationship is {innermost.status}")

    async def _load_week(self, innermost: Innermost, week_number: int) -> WillingBox:
        document = await self.store.load_document(innermost.id, week_number)
        if document is None:
            raise NotFound(f"Week {week_number} not found")
        return document

    def _score(self, document: WillingBox, existing: WeeklyScore | None) -> WeeklyScore:
        try:
            return score(
                document,
                existing=existing,
                policy=self.policy,
                completed_at=datetime.now(timezone.utc),
            )
        except IncompleteScoringInput:
            logger.error(
                "Scoring input incomplete for innermost_id=%s week=%s despite guessing being complete",
                document.innermost_id,
                document.week_number,
            )
            raise

    async def _settle(self, document: WillingBox) -> WillingBox:
        """
        Evaluate and advance until the cached phase catches up with the data.

        Normally a single step. Looping lets a document that a concurrent
        writer left behind converge in one pass.
        """
        for _ in PHASE_ORDER:
            existing = None
            if current_phase(document) is WeekPhase.GUESSING:
                existing = await self.store.load_score(document.innermost_id, document.week_number)

            evaluation = evaluate(document, existing)
            if not evaluation.advanced:
                break

            if evaluation.triggers_scoring:
                record = self._score(document, existing)
                record = await self.store.save_score(record)
                logger.info(
                    "Scored innermost_id=%s week=%s: A=%s B=%s",
                    document.innermost_id,
                    document.week_number,
                    record.partner_a_score,
                    record.partner_b_score,
                )
            advance(document, evaluation)
            logger.info(
                "innermost_id=%s week=%s advanced to %s",
                document.innermost_id,
                document.week_number,
                evaluation.new_phase.value,
            )

        try:
            check_phase_consistency(document)
        except PhaseCacheDrift:
            logger.error(
                "Phase cache drift on innermost_id=%s week=%s", document.innermost_id, document.week_number
            )
            raise

        await self.store.save_document(document)
        return document

    # -------------------------------------------------------------------------
    # Weeks
    # -------------------------------------------------------------------------

    async def start_week(self, innermost_id: UUID, user: User) -> WillingBox:
        """
        Open the next week.

        Returns the latest week unchanged while it is still in progress, so
        both partners pressing "start" is harmless.
        """
        innermost, _ = await load_partnership(self.store, innermost_id, user)
        self._require_active(innermost)

        latest = await self.store.load_latest_document(innermost.id)
        if latest is not None and current_phase(latest) is not WeekPhase.COMPLETE:
            return latest

        week_number = (latest.week_number if latest is not None else 0) + 1
        document = new_willing_box(innermost, week_number)
        await self.store.save_document(document)
        innermost.current_week = week_number
        await self.store.save_innermost(innermost)
        await self.store.commit()
        logger.info("Started week %s for innermost_id=%s", week_number, innermost.id)
        return document

    async def submit(
        self,
        innermost_id: UUID,
        week_number: int,
        user: User,
        phase_kind: WeekPhase | str,
        payload: Payload,
    ) -> WillingBox:
        """Submit a partner's input for the week's current phase."""
        innermost, role = await load_partnership(self.store, innermost_id, user)
        self._require_active(innermost)
        document = await self._load_week(innermost, week_number)

        apply_partner_input(document, role, phase_kind, payload)
        logger.debug("Partner %s submitted for innermost_id=%s week=%s", role.value, innermost.id, week_number)
        await self._settle(document)
        await self.store.commit()
        return document

    async def revise(
        self,
        innermost_id: UUID,
        week_number: int,
        user: User,
        phase_kind: WeekPhase | str,
        payload: Payload,
    ) -> WillingBox:
        """Replace a partner's input while their partner has not yet submitted."""
        innermost, role = await load_partnership(self.store, innermost_id, user)
        self._require_active(innermost)
        document = await self._load_week(innermost, week_number)

        revise_partner_input(document, role, phase_kind, payload)
        await self._settle(document)
        await self.store.commit()
        return document

    async def get_week(self, innermost_id: UUID, week_number: int, user: User) -> tuple[WillingBox, PartnerRole]:
        """Load a week for display, reconciled first."""
        innermost, role = await load_partnership(self.store, innermost_id, user)
        document = await self._load_week(innermost, week_number)
        if innermost.status == InnermostStatus.ACTIVE.value:
            await self._settle(document)
            await self.store.commit()
        return document, role

    async def role_for(self, innermost_id: UUID, user: User) -> PartnerRole:
        """Which side of the pair the user is on."""
        _, role = await load_partnership(self.store, innermost_id, user)
        return role

    async def reconcile(self, innermost_id: UUID, week_number: int, user: User) -> WillingBox:
        """Re-run completion detection on a week. Safe to call any number of times."""
        document, _ = await self.get_week(innermost_id, week_number, user)
        return document

    # -------------------------------------------------------------------------
    # Scores and stats
    # -------------------------------------------------------------------------

    async def get_score(self, innermost_id: UUID, week_number: int, user: User) -> WeeklyScore:
        innermost, _ = await load_partnership(self.store, innermost_id, user)
        if week_number < innermost.current_week and not self.gate.has_extended_history(user):
            raise FeatureUnavailable("Past weeks require extended history")
        record = await self.store.load_score(innermost.id, week_number)
        if record is None:
            raise NotFound(f"No score for week {week_number}")
        return record

    async def list_scores(self, innermost_id: UUID, user: User) -> list[WeeklyScore]:
        """Score history. Without extended history only the current week is returned."""
        innermost, _ = await load_partnership(self.store, innermost_id, user)
        scores = await self.store.list_scores(innermost.id)
        if self.gate.has_extended_history(user):
            return scores
        return [s for s in scores if s.week_number == innermost.current_week]

    async def stats_for_user(self, user: User) -> Stats:
        """Recompute the user's statistics from current state."""
        innermosts = await self.store.list_innermosts_for_user(user)
        weekly_scores: dict[UUID, list[WeeklyScore]] = {}
        weekly_documents: dict[UUID, WillingBox | None] = {}
        for innermost in innermosts:
            if innermost.status != InnermostStatus.ACTIVE.value:
                continue
            weekly_scores[innermost.id] = await self.store.list_scores(innermost.id)
            weekly_documents[innermost.id] = await self.store.load_latest_document(innermost.id)

        return summarize(
            innermosts,
            weekly_scores,
            weekly_documents,
            cycle_length=self.settings.cycle_length_weeks,
            progress_overflow=self.settings.progress_overflow,
        )
