"""Errors raised by the weekly workflow and the services around it."""


class WorkflowError(Exception):
    """Base class for all workflow errors."""


class PhaseMismatch(WorkflowError):
    """The action belongs to a different phase than the document is in."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Document is in phase {actual!r}, not {expected!r}")


class AlreadySubmitted(WorkflowError):
    """The partner already has input for the current phase."""

    def __init__(self, role: str, phase: str):
        self.role = role
        self.phase = phase
        super().__init__(f"Partner {role} already submitted for {phase!r}")


class DocumentClosed(WorkflowError):
    """The week is complete and accepts no more input."""

    def __init__(self, week_number: int):
        self.week_number = week_number
        super().__init__(f"Week {week_number} is complete")


class InvalidPayload(WorkflowError):
    """The submitted items are empty or reference unknown wishes."""


class RevisionNotAllowed(WorkflowError):
    """A revision was requested when there is nothing, or no longer anything, to revise."""


class IncompleteScoringInput(WorkflowError):
    """
    Guess or willingness data is missing at scoring time.

    This means the completion check and the scoring step disagree about the
    document, which is a data-integrity bug rather than a user error.
    """


class PhaseCacheDrift(WorkflowError):
    """The stored phase disagrees with the phase derived from the partner slots."""

    def __init__(self, cached: str, derived: str):
        self.cached = cached
        self.derived = derived
        super().__init__(f"Cached phase {cached!r} does not match derived phase {derived!r}")


class StorageUnavailable(WorkflowError):
    """The entity store could not be reached. Propagated untouched, never retried here."""


class RelationshipInactive(WorkflowError):
    """The relationship-pair is pending or archived and cannot run weekly cycles."""


class RelationshipLimitReached(WorkflowError):
    """The user's plan does not allow another active relationship-pair."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Plan allows at most {limit} active relationship(s)")


class NotAPartner(WorkflowError):
    """The user is not a partner in the relationship-pair."""


class NotFound(WorkflowError):
    """The requested relationship-pair, week or score does not exist."""


class FeatureUnavailable(WorkflowError):
    """The user's plan does not include this feature."""
