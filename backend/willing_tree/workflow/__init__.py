"""
Weekly workflow core: phase engine, completion detection, scoring, statistics.

Everything in this package is synchronous and works on already-loaded
documents. Loading and saving is the entity store's job.
"""

from willing_tree.workflow.completion import Evaluation, advance, evaluate
from willing_tree.workflow.phases import (
    PHASE_ORDER,
    PartnerRole,
    apply_partner_input,
    check_phase_consistency,
    derive_phase,
    new_willing_box,
    revise_partner_input,
)
from willing_tree.workflow.scoring import ScoringPolicy, exact_matches, priority_weighted, score
from willing_tree.workflow.stats import Stats, summarize, week_needs_action

__all__ = [
    # Phases
    "PHASE_ORDER",
    "PartnerRole",
    "apply_partner_input",
    "check_phase_consistency",
    "derive_phase",
    "new_willing_box",
    "revise_partner_input",
    # Completion
    "Evaluation",
    "advance",
    "evaluate",
    # Scoring
    "ScoringPolicy",
    "exact_matches",
    "priority_weighted",
    "score",
    # Stats
    "Stats",
    "summarize",
    "week_needs_action",
]
