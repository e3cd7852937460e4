"""
backend/pickem/services/survivor_evaluator.py

Purpose:
    Decide one member's survivor outcome for one week from their pick (or lack
    of one) and that week's game results. Pure: no I/O, no clock.

Notes:
    - Only members who are still alive are evaluated; the caller skips the
      eliminated ones.
    - Anything the data cannot settle (unknown game, unfinished game, missing
      scores) is PENDING. Elimination is permanent, so doubt never eliminates.

Dependencies:
    - pickem.config
    - pickem.models.survivor
    - pickem.services.game_resolver
    - pickem.services.game_status
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from pickem.config import settings
from pickem.models.survivor import (
    GameOutcome,
    GameResult,
    IssueKind,
    Pick,
    ReconciliationIssue,
    Verdict,
    WeekEvaluation,
)
from pickem.services.game_resolver import resolve_game
from pickem.services.game_status import determine_outcome, week_has_final_game, week_has_started
from pickem.services.team_normalizer import normalize_team, teams_equal

NO_PICK_REASON = "no pick made"
TIE_REASON = "picked tied game"
NO_PICK_RULES = ("week_started", "first_final")


@dataclass(frozen=True)
class EvaluationPolicy:
    """Product rules the source system never settled; see DESIGN.md."""
    tie_eliminates: bool = True
    no_pick_rule: str = "week_started"

    def __post_init__(self) -> None:
        if self.no_pick_rule not in NO_PICK_RULES:
            raise ValueError(f"Unknown no-pick rule: {self.no_pick_rule!r}")

    @classmethod
    def from_settings(cls) -> "EvaluationPolicy":
        return cls(
            tie_eliminates=settings.SURVIVOR_TIE_ELIMINATES,
            no_pick_rule=settings.SURVIVOR_NO_PICK_RULE,
        )


def losing_reason(winner: str) -> str:
    return f"picked losing team, {winner} won"


def _no_pick_deadline_passed(results: Mapping[str, GameResult], policy: EvaluationPolicy) -> bool:
    games = list(results.values())
    if policy.no_pick_rule == "first_final":
        return week_has_final_game(games)
    return week_has_started(games)


def evaluate_week(
    user_id: str,
    week: int,
    pick: Optional[Pick],
    results: Mapping[str, GameResult],
    policy: EvaluationPolicy = EvaluationPolicy(),
) -> tuple[WeekEvaluation, list[ReconciliationIssue]]:
    """Evaluate ``pick`` against the week's ``results`` (keyed by game id)."""
    issues: list[ReconciliationIssue] = []

    if pick is None or not (pick.team or "").strip():
        if _no_pick_deadline_passed(results, policy):
            return WeekEvaluation(
                user_id=user_id, week=week, verdict=Verdict.ELIMINATED, reason=NO_PICK_REASON,
            ), issues
        return WeekEvaluation(
            user_id=user_id, week=week, verdict=Verdict.PENDING,
            reason="no pick yet, week has not started",
        ), issues

    picked_team = normalize_team(pick.team.strip())
    resolution = resolve_game(pick, results)
    if not resolution.resolved:
        message = f"{pick.team!r} has no game in week {week}"
        if pick.game_id:
            message += f" (pick references game {pick.game_id})"
        issues.append(ReconciliationIssue(
            user_id=user_id, week=week, kind=IssueKind.UNRESOLVABLE_GAME, message=message,
        ))
        return WeekEvaluation(
            user_id=user_id, week=week, verdict=Verdict.PENDING,
            picked_team=picked_team, game_id=pick.game_id, reason="pick could not be matched to a game",
        ), issues

    if resolution.ambiguous:
        issues.append(ReconciliationIssue(
            user_id=user_id, week=week, kind=IssueKind.AMBIGUOUS_GAME_MATCH,
            message=(
                f"{pick.team!r} matches games {', '.join(resolution.candidates)}; "
                f"using {resolution.game.game_id}"
            ),
        ))

    game = resolution.game
    outcome = determine_outcome(game)
    base = dict(user_id=user_id, week=week, picked_team=picked_team, game_id=game.game_id)

    if outcome is GameOutcome.PENDING:
        return WeekEvaluation(
            **base, verdict=Verdict.PENDING, reason=f"game not final (status: {game.status or 'unknown'})",
        ), issues

    if outcome is GameOutcome.TIE:
        if policy.tie_eliminates:
            return WeekEvaluation(**base, verdict=Verdict.ELIMINATED, winner="TIE", reason=TIE_REASON), issues
        return WeekEvaluation(**base, verdict=Verdict.SURVIVED, winner="TIE", reason="tied game survives"), issues

    winner_raw = game.home_team if outcome is GameOutcome.HOME_WIN else game.away_team
    winner = normalize_team(winner_raw)
    if teams_equal(pick.team, winner_raw):
        return WeekEvaluation(**base, verdict=Verdict.SURVIVED, winner=winner, reason=f"{winner} won"), issues
    return WeekEvaluation(**base, verdict=Verdict.ELIMINATED, winner=winner, reason=losing_reason(winner)), issues
