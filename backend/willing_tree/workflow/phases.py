"""
Phase engine for weekly exercise documents.

A WillingBox moves through a fixed, total order of phases:

    planting_trees -> selecting_willing -> guessing -> complete

Each partner writes only to their own slot for the current phase. The
functions here validate and apply that write; they never move the document
to the next phase. Advancement belongs to workflow.completion, so a retried
submission and a redundant completion check stay independent of each other.
"""

from collections.abc import Iterable, Mapping
from enum import Enum as PyEnum
from typing import Any

from willing_tree.db.models import Innermost, WeekPhase, WillingBox
from willing_tree.workflow.errors import (
    AlreadySubmitted,
    DocumentClosed,
    InvalidPayload,
    PhaseCacheDrift,
    PhaseMismatch,
    RevisionNotAllowed,
)


class PartnerRole(str, PyEnum):
    """Which side of the relationship-pair a user is on."""

    A = "A"
    B = "B"

    @property
    def other(self) -> "PartnerRole":
        return PartnerRole.B if self is PartnerRole.A else PartnerRole.A


PHASE_ORDER: tuple[WeekPhase, ...] = (
    WeekPhase.PLANTING_TREES,
    WeekPhase.SELECTING_WILLING,
    WeekPhase.GUESSING,
    WeekPhase.COMPLETE,
)

# Phases that accept partner input, mapped to the slot suffix they write
INPUT_SLOTS: dict[WeekPhase, str] = {
    WeekPhase.PLANTING_TREES: "wish_list",
    WeekPhase.SELECTING_WILLING: "willing_list",
    WeekPhase.GUESSING: "guesses",
}

_ROLE_PREFIX = {PartnerRole.A: "partner_a", PartnerRole.B: "partner_b"}


# =============================================================================
# SLOT ACCESS
# =============================================================================


def slot_name(role: PartnerRole, phase: WeekPhase) -> str:
    """Column name holding a partner's input for a phase, e.g. partner_b_willing_list."""
    return f"{_ROLE_PREFIX[role]}_{INPUT_SLOTS[phase]}"


def get_slot(document: WillingBox, role: PartnerRole, phase: WeekPhase) -> list[dict]:
    """Return a copy of a partner's slot. Unset slots read as empty."""
    return list(getattr(document, slot_name(role, phase)) or [])


def has_submitted(document: WillingBox, role: PartnerRole, phase: WeekPhase) -> bool:
    return bool(getattr(document, slot_name(role, phase)))


def both_submitted(document: WillingBox, phase: WeekPhase) -> bool:
    return has_submitted(document, PartnerRole.A, phase) and has_submitted(document, PartnerRole.B, phase)


# =============================================================================
# PHASE DERIVATION
# =============================================================================


def current_phase(document: WillingBox) -> WeekPhase:
    """The cached phase stored on the document."""
    return WeekPhase(document.phase or WeekPhase.PLANTING_TREES)


def next_phase(phase: WeekPhase) -> WeekPhase:
    """The phase after `phase`. complete is terminal and maps to itself."""
    index = PHASE_ORDER.index(phase)
    return PHASE_ORDER[min(index + 1, len(PHASE_ORDER) - 1)]


def derive_phase(document: WillingBox) -> WeekPhase:
    """
    Compute the phase purely from which partner slots are filled.

    The check is cumulative: a phase only counts as done when every earlier
    phase is done too.
    """
    for phase in PHASE_ORDER[:-1]:
        if not both_submitted(document, phase):
            return phase
    return WeekPhase.COMPLETE


def check_phase_consistency(document: WillingBox) -> None:
    """Raise PhaseCacheDrift if the cached phase disagrees with the derived one."""
    cached = current_phase(document)
    derived = derive_phase(document)
    if cached is not derived:
        raise PhaseCacheDrift(cached.value, derived.value)


def new_willing_box(innermost: Innermost, week_number: int) -> WillingBox:
    """Create an empty document for a week, in planting_trees."""
    return WillingBox(
        innermost_id=innermost.id,
        week_number=week_number,
        phase=WeekPhase.PLANTING_TREES.value,
        partner_a_wish_list=[],
        partner_b_wish_list=[],
        partner_a_willing_list=[],
        partner_b_willing_list=[],
        partner_a_guesses=[],
        partner_b_guesses=[],
        locked_at=None,
    )


# =============================================================================
# PAYLOAD VALIDATION
# =============================================================================


def _wish_ids(items: Iterable[Mapping[str, Any]]) -> set[str]:
    return {str(item["id"]) for item in items if item.get("id")}


def _validate_payload(
    document: WillingBox,
    role: PartnerRole,
    phase: WeekPhase,
    payload: Iterable[Mapping[str, Any]],
) -> list[dict]:
    """
    Normalize a payload into plain dicts and check its references.

    - wish lists need unique item ids
    - willing items pick wishes from the OTHER partner's wish list
    - guesses predict which of the guesser's OWN wishes the partner picked
    """
    items = [dict(item) for item in payload]
    if not items:
        raise InvalidPayload("At least one item is required")

    if phase is WeekPhase.PLANTING_TREES:
        key, allowed = "id", None
    elif phase is WeekPhase.SELECTING_WILLING:
        key, allowed = "wish_id", _wish_ids(get_slot(document, role.other, WeekPhase.PLANTING_TREES))
    else:
        key, allowed = "wish_id", _wish_ids(get_slot(document, role, WeekPhase.PLANTING_TREES))

    seen: set[str] = set()
    for item in items:
        ref = item.get(key)
        if not ref:
            raise InvalidPayload(f"Every item needs a {key!r}")
        ref = str(ref)
        if ref in seen:
            raise InvalidPayload(f"Duplicate {key} {ref!r}")
        if allowed is not None and ref not in allowed:
            raise InvalidPayload(f"Unknown wish {ref!r}")
        seen.add(ref)
        item[key] = ref
    return items


def _check_phase(document: WillingBox, phase_kind: WeekPhase | str) -> WeekPhase:
    phase = current_phase(document)
    if phase is WeekPhase.COMPLETE:
        raise DocumentClosed(document.week_number)
    try:
        phase_kind = WeekPhase(phase_kind)
    except ValueError as e:
        raise InvalidPayload(f"Unknown phase {phase_kind!r}") from e
    if phase_kind is not phase:
        raise PhaseMismatch(phase_kind.value, phase.value)
    return phase


# =============================================================================
# MUTATIONS
# =============================================================================


def apply_partner_input(
    document: WillingBox,
    role: PartnerRole,
    phase_kind: WeekPhase | str,
    payload: Iterable[Mapping[str, Any]],
) -> WillingBox:
    """
    Write a partner's input for the current phase into their slot.

    Raises:
        DocumentClosed: the week is complete
        PhaseMismatch: phase_kind is not the document's current phase
        AlreadySubmitted: the partner's slot for this phase is already filled
        InvalidPayload: empty payload, duplicates, or unknown wish references

    The document is returned un-advanced.
    """
    phase = _check_phase(document, phase_kind)
    if has_submitted(document, role, phase):
        raise AlreadySubmitted(role.value, phase.value)

    items = _validate_payload(document, role, phase, payload)
    # Reassign rather than mutate so the ORM sees the change
    setattr(document, slot_name(role, phase), items)
    return document


def revise_partner_input(
    document: WillingBox,
    role: PartnerRole,
    phase_kind: WeekPhase | str,
    payload: Iterable[Mapping[str, Any]],
) -> WillingBox:
    """
    Replace a partner's input for the current phase.

    Only allowed while the partner has submitted and the other partner has
    not: once both slots are filled the phase is jointly complete and the
    submission is final.
    """
    phase = _check_phase(document, phase_kind)
    if not has_submitted(document, role, phase):
        raise RevisionNotAllowed("Nothing to revise yet, submit first")
    if has_submitted(document, role.other, phase):
        raise RevisionNotAllowed("Your partner has already submitted for this phase")

    items = _validate_payload(document, role, phase, payload)
    setattr(document, slot_name(role, phase), items)
    return document
