"""Relationship statistics folded from innermosts, score records and current documents."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

from willing_tree.db.models import Innermost, InnermostStatus, WeekPhase, WeeklyScore, WillingBox
from willing_tree.workflow.phases import PartnerRole, both_submitted, current_phase, has_submitted

ProgressOverflow = Literal["clamp", "allow"]


@dataclass(frozen=True)
class Stats:
    total_trees: int = 0
    active_trees: int = 0
    pending_trees: int = 0
    archived_trees: int = 0
    total_leaves_grown: int = 0
    total_score: int = 0
    average_tree_growth: int = 0
    current_week_activities: int = 0
    needs_action: bool = False
    needs_action_by_innermost: dict[UUID, bool] = field(default_factory=dict)


def week_needs_action(document: WillingBox | None, scores: Sequence[WeeklyScore] = ()) -> bool:
    """
    Whether someone still has to act on this week.

    guessing looks at the score record rather than the guess slots: the week
    is only settled once its score is complete.
    """
    if document is None:
        return False

    phase = current_phase(document)
    if phase is WeekPhase.COMPLETE:
        return False
    if phase is WeekPhase.GUESSING:
        week_score = next((s for s in scores if s.week_number == document.week_number), None)
        return week_score is None or not week_score.is_complete
    return not both_submitted(document, phase)


def _growth(completed_per_tree: list[int], cycle_length: int, overflow: ProgressOverflow) -> int:
    if not completed_per_tree or cycle_length <= 0:
        return 0
    if overflow == "clamp":
        completed_per_tree = [min(count, cycle_length) for count in completed_per_tree]
    # Percentage rounded half up, in integers so 12.5 always becomes 13
    numerator = sum(completed_per_tree) * 100
    denominator = len(completed_per_tree) * cycle_length
    return (2 * numerator + denominator) // (2 * denominator)


def summarize(
    innermosts: Sequence[Innermost],
    weekly_scores: Mapping[UUID, Sequence[WeeklyScore]],
    weekly_documents: Mapping[UUID, WillingBox | None],
    *,
    cycle_length: int = 12,
    progress_overflow: ProgressOverflow = "clamp",
) -> Stats:
    """
    Fold current state into Stats.

    Pure and cheap, so it is recomputed on every request instead of being
    maintained incrementally. weekly_documents holds each innermost's
    current (latest) week.
    """
    by_status = {status: 0 for status in InnermostStatus}
    completed_per_tree: list[int] = []
    total_score = 0
    needs_action_by_innermost: dict[UUID, bool] = {}

    for innermost in innermosts:
        status = InnermostStatus(innermost.status)
        by_status[status] += 1
        if status is not InnermostStatus.ACTIVE:
            continue

        scores = weekly_scores.get(innermost.id, ())
        finished = [s for s in scores if s.is_complete]
        completed_per_tree.append(len(finished))
        total_score += sum(s.partner_a_score + s.partner_b_score for s in finished)
        needs_action_by_innermost[innermost.id] = week_needs_action(
            weekly_documents.get(innermost.id), scores
        )

    activities = sum(needs_action_by_innermost.values())
    return Stats(
        total_trees=len(innermosts),
        active_trees=by_status[InnermostStatus.ACTIVE],
        pending_trees=by_status[InnermostStatus.PENDING],
        archived_trees=by_status[InnermostStatus.ARCHIVED],
        total_leaves_grown=sum(completed_per_tree),
        total_score=total_score,
        average_tree_growth=_growth(completed_per_tree, cycle_length, progress_overflow),
        current_week_activities=activities,
        needs_action=activities > 0,
        needs_action_by_innermost=needs_action_by_innermost,
    )


def pending_roles(document: WillingBox) -> list[PartnerRole]:
    """Partners who still owe input for the document's current phase."""
    phase = current_phase(document)
    if phase is WeekPhase.COMPLETE:
        return []
    return [role for role in PartnerRole if not has_submitted(document, role, phase)]
