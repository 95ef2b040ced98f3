"""Tests for the phase engine."""

from uuid import uuid4

import pytest

from willing_tree.db.models import Innermost, WeekPhase, WillingBox
from willing_tree.workflow.errors import (
    AlreadySubmitted,
    DocumentClosed,
    InvalidPayload,
    PhaseCacheDrift,
    PhaseMismatch,
    RevisionNotAllowed,
)
from willing_tree.workflow.phases import (
    PartnerRole,
    apply_partner_input,
    check_phase_consistency,
    derive_phase,
    get_slot,
    new_willing_box,
    next_phase,
    revise_partner_input,
)

A, B = PartnerRole.A, PartnerRole.B

WISHES_A = [{"id": "coffee", "text": "Bring me coffee"}, {"id": "walks", "text": "Evening walks"}]
WISHES_B = [{"id": "movies", "text": "Movie night"}]


@pytest.fixture
def document() -> WillingBox:
    return new_willing_box(Innermost(id=uuid4()), 1)


def planted(document: WillingBox) -> WillingBox:
    document.partner_a_wish_list = list(WISHES_A)
    document.partner_b_wish_list = list(WISHES_B)
    document.phase = WeekPhase.SELECTING_WILLING.value
    return document


class TestDerivation:
    def test_new_document_starts_planting(self, document):
        assert document.phase == "planting_trees"
        assert derive_phase(document) is WeekPhase.PLANTING_TREES
        check_phase_consistency(document)

    def test_derivation_is_cumulative(self, document):
        # Guesses without willingness lists do not skip ahead
        document.partner_a_wish_list = WISHES_A
        document.partner_b_wish_list = WISHES_B
        document.partner_a_guesses = [{"wish_id": "coffee"}]
        document.partner_b_guesses = [{"wish_id": "movies"}]
        assert derive_phase(document) is WeekPhase.SELECTING_WILLING

    def test_unset_slots_read_as_empty(self):
        document = WillingBox(innermost_id=uuid4(), week_number=1, phase="planting_trees")
        assert get_slot(document, A, WeekPhase.PLANTING_TREES) == []
        assert derive_phase(document) is WeekPhase.PLANTING_TREES

    def test_drift_is_detected(self, document):
        document.phase = WeekPhase.GUESSING.value
        with pytest.raises(PhaseCacheDrift) as exc:
            check_phase_consistency(document)
        assert exc.value.cached == "guessing"
        assert exc.value.derived == "planting_trees"

    def test_complete_is_terminal(self):
        assert next_phase(WeekPhase.GUESSING) is WeekPhase.COMPLETE
        assert next_phase(WeekPhase.COMPLETE) is WeekPhase.COMPLETE


class TestApplyPartnerInput:
    def test_writes_only_own_slot_and_does_not_advance(self, document):
        apply_partner_input(document, A, WeekPhase.PLANTING_TREES, WISHES_A)

        assert get_slot(document, A, WeekPhase.PLANTING_TREES) == WISHES_A
        assert get_slot(document, B, WeekPhase.PLANTING_TREES) == []
        assert document.phase == "planting_trees"

    def test_phase_kind_accepts_plain_strings(self, document):
        apply_partner_input(document, B, "planting_trees", WISHES_B)
        assert document.partner_b_wish_list == WISHES_B

    def test_second_submission_is_rejected(self, document):
        apply_partner_input(document, A, WeekPhase.PLANTING_TREES, WISHES_A)
        with pytest.raises(AlreadySubmitted):
            apply_partner_input(document, A, WeekPhase.PLANTING_TREES, [{"id": "other"}])
        assert document.partner_a_wish_list == WISHES_A

    def test_wrong_phase_is_rejected(self, document):
        with pytest.raises(PhaseMismatch) as exc:
            apply_partner_input(document, A, WeekPhase.GUESSING, [{"wish_id": "coffee"}])
        assert exc.value.expected == "guessing"
        assert exc.value.actual == "planting_trees"

    def test_unknown_phase_is_invalid(self, document):
        with pytest.raises(InvalidPayload):
            apply_partner_input(document, A, "harvesting", WISHES_A)

    def test_complete_document_is_closed(self, document):
        document.phase = WeekPhase.COMPLETE.value
        with pytest.raises(DocumentClosed):
            apply_partner_input(document, A, WeekPhase.COMPLETE, WISHES_A)

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            [{"text": "no id"}],
            [{"id": "coffee"}, {"id": "coffee"}],
        ],
    )
    def test_invalid_wish_lists(self, document, payload):
        with pytest.raises(InvalidPayload):
            apply_partner_input(document, A, WeekPhase.PLANTING_TREES, payload)
        assert document.partner_a_wish_list == []

    def test_willing_items_must_reference_partner_wishes(self, document):
        planted(document)
        # coffee is A's own wish, A can only pick from B's list
        with pytest.raises(InvalidPayload):
            apply_partner_input(document, A, WeekPhase.SELECTING_WILLING, [{"wish_id": "coffee", "priority": 1}])

        apply_partner_input(document, A, WeekPhase.SELECTING_WILLING, [{"wish_id": "movies", "priority": 1}])
        assert document.partner_a_willing_list == [{"wish_id": "movies", "priority": 1}]

    def test_guesses_must_reference_own_wishes(self, document):
        planted(document)
        document.partner_a_willing_list = [{"wish_id": "movies", "priority": 1}]
        document.partner_b_willing_list = [{"wish_id": "coffee", "priority": 1}]
        document.phase = WeekPhase.GUESSING.value

        with pytest.raises(InvalidPayload):
            apply_partner_input(document, B, WeekPhase.GUESSING, [{"wish_id": "coffee"}])
        apply_partner_input(document, B, WeekPhase.GUESSING, [{"wish_id": "movies"}])
        assert document.partner_b_guesses == [{"wish_id": "movies"}]


class TestRevise:
    def test_revise_replaces_before_partner_submits(self, document):
        apply_partner_input(document, A, WeekPhase.PLANTING_TREES, WISHES_A)
        revise_partner_input(document, A, WeekPhase.PLANTING_TREES, [{"id": "dinner"}])
        assert document.partner_a_wish_list == [{"id": "dinner"}]

    def test_revise_needs_a_prior_submission(self, document):
        with pytest.raises(RevisionNotAllowed):
            revise_partner_input(document, A, WeekPhase.PLANTING_TREES, WISHES_A)

    def test_revise_closed_once_partner_submitted(self, document):
        apply_partner_input(document, A, WeekPhase.PLANTING_TREES, WISHES_A)
        apply_partner_input(document, B, WeekPhase.PLANTING_TREES, WISHES_B)
        with pytest.raises(RevisionNotAllowed):
            revise_partner_input(document, A, WeekPhase.PLANTING_TREES, [{"id": "dinner"}])
