"""
Scoring engine for completed guessing rounds.

Partner A's score measures how well A's guesses predict partner B's actual
willingness list, and vice versa. How a guess is matched and weighted is a
ScoringPolicy, so the rule can change without touching phase transitions.
"""

from collections.abc import Callable, Sequence
from datetime import datetime

from willing_tree.db.models import WeekPhase, WeeklyScore, WillingBox
from willing_tree.workflow.errors import IncompleteScoringInput
from willing_tree.workflow.phases import PartnerRole, get_slot

# (guesser's guesses, partner's actual willing items, guesser's own wish list) -> points
ScoringPolicy = Callable[[Sequence[dict], Sequence[dict], Sequence[dict]], int]

PRIORITY_POINTS: dict[int, int] = {1: 40, 2: 35, 3: 25}
LOW_PRIORITY_POINTS = 15
MOST_WANTED_BONUS = 20
MAX_WEEKLY_SCORE = 100


def priority_weighted(
    guesses: Sequence[dict],
    actual_willing: Sequence[dict],
    wish_list: Sequence[dict],
) -> int:
    """
    Default policy.

    Each guess naming a wish the partner actually chose earns points by the
    partner's priority for it (40/35/25, 15 past the third), plus a bonus
    when the guesser marked that wish most-wanted. Capped at 100.
    """
    willing_by_wish = {str(item["wish_id"]): item for item in actual_willing}
    most_wanted = {str(wish["id"]) for wish in wish_list if wish.get("is_most_wanted")}

    total = 0
    for guess in guesses:
        wish_id = str(guess["wish_id"])
        item = willing_by_wish.get(wish_id)
        if item is None:
            continue
        total += PRIORITY_POINTS.get(int(item.get("priority") or 0), LOW_PRIORITY_POINTS)
        if wish_id in most_wanted:
            total += MOST_WANTED_BONUS
    return min(total, MAX_WEEKLY_SCORE)


def _normalize_effort(value: object) -> str:
    return str(value or "").strip().lower()


def exact_matches(
    guesses: Sequence[dict],
    actual_willing: Sequence[dict],
    wish_list: Sequence[dict],
) -> int:
    """Count guesses that name a chosen wish AND its effort level."""
    effort_by_wish = {
        str(item["wish_id"]): _normalize_effort(item.get("effort_level"))
        for item in actual_willing
    }
    return sum(
        1
        for guess in guesses
        if str(guess["wish_id"]) in effort_by_wish
        and effort_by_wish[str(guess["wish_id"])] == _normalize_effort(guess.get("effort"))
    )


def _require(document: WillingBox, role: PartnerRole, phase: WeekPhase, label: str) -> list[dict]:
    items = get_slot(document, role, phase)
    if not items:
        raise IncompleteScoringInput(
            f"Week {document.week_number}: partner {role.value} has no {label}"
        )
    return items


def _run_policy(policy: ScoringPolicy, guesses: list[dict], willing: list[dict], wishes: list[dict]) -> int:
    points = int(policy(guesses, willing, wishes))
    if points < 0:
        raise ValueError(f"Scoring policy returned a negative score: {points}")
    return points


def score(
    document: WillingBox,
    *,
    existing: WeeklyScore | None = None,
    policy: ScoringPolicy = priority_weighted,
    completed_at: datetime | None = None,
) -> WeeklyScore:
    """
    Compute the week's score record.

    If `existing` is already complete it is returned untouched, so repeated
    or concurrent invocations never re-score a week. An unfinished `existing`
    record is filled in place.

    The record depends only on the arguments: identical input gives identical
    records. completed_at is left for the caller to stamp when it persists
    the record.

    Raises:
        IncompleteScoringInput: a guess or willingness list is missing
    """
    if existing is not None and existing.is_complete:
        return existing

    guesses = {
        role: _require(document, role, WeekPhase.GUESSING, "guesses") for role in PartnerRole
    }
    willing = {
        role: _require(document, role, WeekPhase.SELECTING_WILLING, "willingness list")
        for role in PartnerRole
    }
    wishes = {role: get_slot(document, role, WeekPhase.PLANTING_TREES) for role in PartnerRole}

    partner_a_score = _run_policy(
        policy, guesses[PartnerRole.A], willing[PartnerRole.B], wishes[PartnerRole.A]
    )
    partner_b_score = _run_policy(
        policy, guesses[PartnerRole.B], willing[PartnerRole.A], wishes[PartnerRole.B]
    )

    record = existing or WeeklyScore(
        innermost_id=document.innermost_id,
        week_number=document.week_number,
    )
    record.partner_a_score = partner_a_score
    record.partner_b_score = partner_b_score
    record.is_complete = True
    record.completed_at = completed_at
    return record
