"""Survivor reconciliation error taxonomy."""


class SurvivorError(Exception):
    """Base class for reconciliation failures."""


class DataUnavailable(SurvivorError):
    """A store read or write failed. The affected user is skipped, not eliminated."""


class InvalidPickShape(SurvivorError):
    """A stored pick record could not be read as a pick.

    ``has_team`` tells the evaluator whether a team was present: without one
    the record counts as no pick, with one the week stays pending.
    """

    def __init__(self, message: str, *, has_team: bool):
        super().__init__(message)
        self.has_team = has_team
