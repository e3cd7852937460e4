"""Survivor pool models: one pick per week, eliminated on a loss or a missed week."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class GamePhase(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class GameOutcome(str, Enum):
    PENDING = "pending"
    HOME_WIN = "home_win"
    AWAY_WIN = "away_win"
    TIE = "tie"


class Verdict(str, Enum):
    SURVIVED = "survived"
    ELIMINATED = "eliminated"
    PENDING = "pending"


class IssueKind(str, Enum):
    DATA_UNAVAILABLE = "data_unavailable"
    UNRESOLVABLE_GAME = "unresolvable_game"
    AMBIGUOUS_GAME_MATCH = "ambiguous_game_match"
    INVALID_PICK_SHAPE = "invalid_pick_shape"
    REPEATED_TEAM = "repeated_team"
    UNEXPECTED_ERROR = "unexpected_error"


class PoolMember(BaseModel):
    user_id: str
    display_name: Optional[str] = None


class Pick(BaseModel):
    """A user's team selection for one week. ``team`` as entered, not normalized."""
    user_id: str
    week: int = Field(ge=1)
    team: Optional[str] = None
    game_id: Optional[str] = None

    @field_validator("game_id", mode="before")
    @classmethod
    def _game_id_as_str(cls, value):
        if value is None or value == "":
            return None
        return str(value)


class GameResult(BaseModel):
    game_id: str
    week: int = Field(ge=1)
    home_team: str
    away_team: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: Optional[str] = None

    @field_validator("game_id", mode="before")
    @classmethod
    def _game_id_as_str(cls, value):
        return str(value)

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def _score_or_none(cls, value):
        # Feeds send "" or "-" before kickoff
        if value is None or (isinstance(value, str) and not value.strip().isdigit()):
            return None
        return value


class SurvivorStatus(BaseModel):
    """Persisted per-user status. A missing document means alive."""
    user_id: str
    eliminated: bool = False
    eliminated_week: Optional[int] = None
    elimination_reason: Optional[str] = None
    last_updated: Optional[datetime] = None


class Elimination(BaseModel):
    """Change-set entry written to the status store."""
    user_id: str
    eliminated: bool = True
    eliminated_week: int
    elimination_reason: str
    last_updated: datetime


class ApplyOutcome(BaseModel):
    """Batch elimination write: users written, and users whose write failed (user id -> error)."""
    written: list[str] = []
    failed: dict[str, str] = {}


class ReconciliationIssue(BaseModel):
    user_id: Optional[str] = None
    week: Optional[int] = None
    kind: IssueKind
    message: str


class WeekEvaluation(BaseModel):
    user_id: str
    week: int
    verdict: Verdict
    picked_team: Optional[str] = None
    game_id: Optional[str] = None
    winner: Optional[str] = None
    reason: str


class ReconciliationSummary(BaseModel):
    members: int = 0
    evaluated: int = 0
    survived: int = 0
    pending: int = 0
    eliminated: int = 0
    already_eliminated: int = 0
    errors: int = 0


class ReconciliationResult(BaseModel):
    week: int
    dry_run: bool = False
    eliminations: dict[str, Elimination] = {}
    applied: list[str] = []
    evaluations: list[WeekEvaluation] = []
    issues: list[ReconciliationIssue] = []
    summary: ReconciliationSummary = Field(default_factory=ReconciliationSummary)


class MemberAudit(BaseModel):
    """Derived season history for one member next to what is stored."""
    user_id: str
    stored: SurvivorStatus
    derived_eliminated: bool = False
    derived_week: Optional[int] = None
    derived_reason: Optional[str] = None
    weeks: list[WeekEvaluation] = []


class AuditReport(BaseModel):
    through_week: int
    applied: list[str] = []
    correct_eliminations: list[str] = []
    missed_eliminations: list[str] = []
    incorrect_eliminations: list[str] = []
    week_mismatches: list[str] = []
    correct_survivors: list[str] = []
    members: dict[str, MemberAudit] = {}
    issues: list[ReconciliationIssue] = []


class PoolSummary(BaseModel):
    total: int
    alive: int
    eliminated: int
    no_pick_eliminations: int
    by_week: dict[int, int] = {}
