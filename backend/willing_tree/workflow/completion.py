"""
Completion detection for weekly documents.

evaluate() looks at the union of both partners' committed input and says
whether the cached phase should move on. It never mutates anything, so any
number of writers can run it against the same state and get the same
answer. advance() applies an evaluation to the cached phase field.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from willing_tree.db.models import WeekPhase, WeeklyScore, WillingBox
from willing_tree.workflow.phases import both_submitted, current_phase, next_phase


@dataclass(frozen=True)
class Evaluation:
    """Outcome of a completion check."""

    advanced: bool
    new_phase: WeekPhase
    # True only when leaving guessing with no finished score on record
    triggers_scoring: bool = False


def evaluate(document: WillingBox, score: WeeklyScore | None = None) -> Evaluation:
    """
    Decide whether the document's current phase is jointly complete.

    - planting_trees: both wish lists filled
    - selecting_willing: both willing lists filled
    - guessing: both guesses filled; scoring is only triggered when `score`
      is missing or unfinished
    - complete: never advances

    At most one phase is advanced per call.
    """
    phase = current_phase(document)
    if phase is WeekPhase.COMPLETE or not both_submitted(document, phase):
        return Evaluation(advanced=False, new_phase=phase)

    target = next_phase(phase)
    if phase is WeekPhase.GUESSING:
        already_scored = score is not None and score.is_complete
        return Evaluation(advanced=True, new_phase=target, triggers_scoring=not already_scored)
    return Evaluation(advanced=True, new_phase=target)


def advance(
    document: WillingBox,
    evaluation: Evaluation,
    *,
    now: datetime | None = None,
) -> WillingBox:
    """
    Store an evaluation's phase on the document.

    The phase column is a cache that can always be re-derived, so the last
    writer wins. Entering guessing stamps locked_at, since willingness is
    frozen from then on.
    """
    if not evaluation.advanced:
        return document

    document.phase = evaluation.new_phase.value
    if evaluation.new_phase is WeekPhase.GUESSING and document.locked_at is None:
        document.locked_at = now or datetime.now(timezone.utc)
    return document
