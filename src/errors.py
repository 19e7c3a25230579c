"""
Error taxonomy for scoring and reconciliation.

Fatal conditions derive from ReconciliationError and abort the current run
before anything is written. UnresolvedTeam is a warning: it is collected on
the run result instead of being raised.
"""


class ReconciliationError(Exception):
    """Base class for errors that abort a reconciliation run"""
    pass


class InputInvariantViolation(ReconciliationError):
    """A prediction or snapshot is not a full permutation of positions 1..N"""
    pass


class UpstreamUnavailable(ReconciliationError):
    """The standings provider could not be reached or returned malformed data"""
    pass


class PersistenceFailure(ReconciliationError):
    """A store could not be read or rejected a write"""
    pass


class ReconciliationWarning(UserWarning):
    """Base class for non-fatal conditions surfaced on a run result"""
    pass


class UnresolvedTeam(ReconciliationWarning):
    """A predicted team is absent from the current standings snapshot."""

    def __init__(self, participant: str, team: str, predicted_position: int):
        self.participant = participant
        self.team = team
        self.predicted_position = predicted_position
        super().__init__(
            f"{participant or 'prediction'}: '{team}' (predicted #{predicted_position}) "
            f"not found in standings, left unscored"
        )
