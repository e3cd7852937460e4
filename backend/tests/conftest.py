"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: backend import path plus small builders for
    survivor picks, game results and in-memory stores.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from pickem.models.survivor import GameResult, Pick  # noqa: E402


def make_game(
    game_id,
    home,
    away,
    home_score=None,
    away_score=None,
    status="Final",
    week=1,
) -> GameResult:
    return GameResult(
        game_id=game_id,
        week=week,
        home_team=home,
        away_team=away,
        home_score=home_score,
        away_score=away_score,
        status=status,
    )


def make_pick(user_id, week, team, game_id=None) -> Pick:
    return Pick(user_id=user_id, week=week, team=team, game_id=game_id)


@pytest.fixture
def game():
    return make_game


@pytest.fixture
def pick():
    return make_pick
