"""
backend/pickem/services/game_status.py

Purpose:
    Collapse the heterogeneous game-status vocabulary of the score feeds
    ("Final", "F", "STATUS_FINAL", "Q3", "Halftime", "Scheduled", ...) into a
    three-phase lifecycle, and classify a game's outcome from it.

Notes:
    - Final markers are checked first, so "Final/OT" is final, not overtime.
    - Unknown status strings are treated as not started. A game the feed cannot
      describe never starts a week and never decides a pick.
    - A final game without both scores stays PENDING.

Dependencies:
    - pickem.models.survivor
    - pickem.services.team_normalizer
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from pickem.models.survivor import GameOutcome, GamePhase, GameResult
from pickem.services.team_normalizer import normalize_team

TIE = "TIE"

_FINAL_MARKERS = {"final", "f", "f/ot", "complete", "completed", "status_final", "post"}
_SCHEDULED_MARKERS = {
    "",
    "not started",
    "scheduled",
    "status_scheduled",
    "pre",
    "pregame",
    "tbd",
    "postponed",
    "status_postponed",
    "canceled",
    "cancelled",
    "status_canceled",
    "delayed",
}
_IN_PROGRESS_MARKERS = {
    "in progress",
    "status_in_progress",
    "status_halftime",
    "status_end_period",
    "status_end_of_period",
    "live",
    "in",
}
_QUARTER_RE = re.compile(r"(\bq[1-4]\b|\b[1-4]q\b|\b[1-4](st|nd|rd|th)\b|\bqtr\b|\bquarter\b)")
_IN_PROGRESS_WORDS = ("half", "overtime", "end of")
_OT_RE = re.compile(r"\bot\b")


def classify_status(raw: Optional[str]) -> GamePhase:
    text = str(raw or "").strip().lower()
    if text in _FINAL_MARKERS or text.startswith("final"):
        return GamePhase.FINAL
    if text in _SCHEDULED_MARKERS:
        return GamePhase.SCHEDULED
    if text in _IN_PROGRESS_MARKERS:
        return GamePhase.IN_PROGRESS
    if _QUARTER_RE.search(text) or _OT_RE.search(text):
        return GamePhase.IN_PROGRESS
    if any(word in text for word in _IN_PROGRESS_WORDS):
        return GamePhase.IN_PROGRESS
    return GamePhase.SCHEDULED


def determine_outcome(game: GameResult) -> GameOutcome:
    if classify_status(game.status) is not GamePhase.FINAL:
        return GameOutcome.PENDING
    if game.home_score is None or game.away_score is None:
        return GameOutcome.PENDING
    if game.home_score > game.away_score:
        return GameOutcome.HOME_WIN
    if game.away_score > game.home_score:
        return GameOutcome.AWAY_WIN
    return GameOutcome.TIE


def winner_of(game: GameResult) -> Optional[str]:
    """Canonical name of the winning team, ``TIE``, or None while undecided."""
    outcome = determine_outcome(game)
    if outcome is GameOutcome.HOME_WIN:
        return normalize_team(game.home_team)
    if outcome is GameOutcome.AWAY_WIN:
        return normalize_team(game.away_team)
    if outcome is GameOutcome.TIE:
        return TIE
    return None


def week_has_started(results: Iterable[GameResult]) -> bool:
    return any(classify_status(g.status) is not GamePhase.SCHEDULED for g in results)


def week_has_final_game(results: Iterable[GameResult]) -> bool:
    return any(classify_status(g.status) is GamePhase.FINAL for g in results)


def week_is_complete(results: Iterable[GameResult]) -> bool:
    games = list(results)
    return bool(games) and all(classify_status(g.status) is GamePhase.FINAL for g in games)
