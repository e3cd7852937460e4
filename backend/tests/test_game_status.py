"""
backend/tests/test_game_status.py

Purpose:
    Status vocabulary normalization and outcome classification across the
    different score feeds.
"""

from __future__ import annotations

import pytest

from pickem.models.survivor import GameOutcome, GamePhase
from pickem.services.game_status import (
    classify_status,
    determine_outcome,
    week_has_final_game,
    week_has_started,
    week_is_complete,
    winner_of,
)


@pytest.mark.parametrize("raw", ["Final", "FINAL", "F", "Complete", "STATUS_FINAL", "Final/OT", "F/OT", "final"])
def test_final_markers(raw):
    assert classify_status(raw) is GamePhase.FINAL


@pytest.mark.parametrize("raw", ["Not Started", "Scheduled", "STATUS_SCHEDULED", "", None, "Postponed", "TBD"])
def test_not_started_markers(raw):
    assert classify_status(raw) is GamePhase.SCHEDULED


@pytest.mark.parametrize(
    "raw",
    ["Q1", "Q4", "1st Qtr", "3rd Quarter", "Half", "Halftime", "Overtime", "OT", "In Progress",
     "STATUS_IN_PROGRESS", "STATUS_HALFTIME", "End of 3rd", "2:35 - Q2",
     "3Q 5:00", "2Q", "STATUS_END_OF_PERIOD", "STATUS_END_PERIOD", "Q4 12:15"],
)
def test_in_progress_markers(raw):
    assert classify_status(raw) is GamePhase.IN_PROGRESS


def test_unknown_status_counts_as_not_started():
    assert classify_status("Weather Watch") is GamePhase.SCHEDULED


def test_outcomes(game):
    assert determine_outcome(game("1", "Kansas City Chiefs", "Buffalo Bills", 27, 20)) is GameOutcome.HOME_WIN
    assert determine_outcome(game("1", "Kansas City Chiefs", "Buffalo Bills", 17, 20)) is GameOutcome.AWAY_WIN
    assert determine_outcome(game("1", "Kansas City Chiefs", "Buffalo Bills", 20, 20)) is GameOutcome.TIE
    assert determine_outcome(game("1", "Kansas City Chiefs", "Buffalo Bills", 27, 20, "Q4")) is GameOutcome.PENDING


def test_final_without_scores_is_pending(game):
    assert determine_outcome(game("1", "KC", "BUF", None, None, "Final")) is GameOutcome.PENDING
    assert determine_outcome(game("1", "KC", "BUF", "", "-", "Final")) is GameOutcome.PENDING


def test_string_scores_are_parsed(game):
    assert determine_outcome(game("1", "KC", "BUF", "24", "21", "STATUS_FINAL")) is GameOutcome.HOME_WIN


def test_winner_of_returns_canonical_name(game):
    assert winner_of(game("1", "KC Chiefs", "BUF", 27, 20)) == "Kansas City Chiefs"
    assert winner_of(game("1", "KC", "BUF", 10, 20)) == "Buffalo Bills"
    assert winner_of(game("1", "KC", "BUF", 20, 20)) == "TIE"
    assert winner_of(game("1", "KC", "BUF", None, None, "Scheduled")) is None


def test_week_progress_helpers(game):
    scheduled = [game("1", "KC", "BUF", status="Scheduled"), game("2", "DAL", "NYG", status="Not Started")]
    live = scheduled + [game("3", "SF", "SEA", 7, 3, "Q2")]
    final = live + [game("4", "GB", "CHI", 21, 14, "Final")]

    assert not week_has_started(scheduled)
    assert week_has_started(live)
    assert not week_has_final_game(live)
    assert week_has_final_game(final)
    assert not week_is_complete(final)
    assert week_is_complete([game("4", "GB", "CHI", 21, 14, "Final")])
    assert not week_is_complete([])


def test_live_game_in_short_quarter_form_starts_the_week(game):
    week = [game("1", "KC", "BUF", status="Scheduled"), game("2", "DAL", "NYG", 7, 3, "3Q 5:00")]

    assert week_has_started(week)
