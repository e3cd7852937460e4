"""
backend/pickem/services/game_resolver.py

Purpose:
    Find the one game of a week that a survivor pick refers to.

Notes:
    - An explicit game_id wins, but only when the picked team actually plays
      in that game. Otherwise the team scan decides.
    - Several matching games (duplicated or malformed feed data) resolve to
      the lowest game id; the candidates are returned so callers can report it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from pickem.models.survivor import GameResult, Pick
from pickem.services.team_normalizer import teams_equal


@dataclass
class GameResolution:
    game: Optional[GameResult] = None
    via: Optional[str] = None  # game_id | team
    candidates: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.game is not None

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


def game_id_sort_key(game_id: str) -> tuple[int, int, str]:
    """Numeric ids compare numerically and sort before non-numeric ones."""
    text = str(game_id)
    if text.isdigit():
        return (0, int(text), text)
    return (1, 0, text)


def plays_in(team: str, game: GameResult) -> bool:
    return teams_equal(team, game.home_team) or teams_equal(team, game.away_team)


def resolve_game(pick: Pick, results: Mapping[str, GameResult]) -> GameResolution:
    team = (pick.team or "").strip()
    if not team:
        return GameResolution()

    if pick.game_id and pick.game_id in results:
        game = results[pick.game_id]
        if plays_in(team, game):
            return GameResolution(game=game, via="game_id", candidates=[pick.game_id])

    matches = sorted(
        (game_id for game_id, game in results.items() if plays_in(team, game)),
        key=game_id_sort_key,
    )
    if not matches:
        return GameResolution()
    return GameResolution(game=results[matches[0]], via="team", candidates=matches)
