"""
backend/pickem/services/survivor_stores.py

Purpose:
    Store boundary of the survivor reconciliation: roster, picks, weekly game
    results (read-only) and survivor status (the only state written).

Notes:
    - Store failures surface as DataUnavailable; the reconciler turns them
      into per-user skips.
    - apply_eliminations is per user: one failed write does not stop the
      rest of the batch. It is conditional ("only if not already eliminated"),
      so overlapping or repeated runs converge without a lock.

Dependencies:
    - pickem.database
    - pymongo.errors
    - pydantic
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

import pickem.database as _db
from pickem.models.survivor import (
    ApplyOutcome,
    Elimination,
    GameResult,
    Pick,
    PoolMember,
    SurvivorStatus,
)
from pickem.services.survivor_errors import DataUnavailable, InvalidPickShape

logger = logging.getLogger("pickem.survivor_stores")


class MembershipStore(ABC):
    @abstractmethod
    async def list_members(self) -> list[PoolMember]:
        """Authoritative roster snapshot for the pool."""
        ...


class PickStore(ABC):
    @abstractmethod
    async def get_pick(self, user_id: str, week: int) -> Optional[Pick]:
        """The member's pick for ``week``, or None.

        Raises InvalidPickShape when a record exists but cannot be read.
        """
        ...


class ResultStore(ABC):
    @abstractmethod
    async def get_week_results(self, week: int) -> dict[str, GameResult]:
        """All games of ``week`` keyed by game id."""
        ...


class StatusStore(ABC):
    @abstractmethod
    async def get_status(self, user_id: str) -> SurvivorStatus:
        """Stored status; members without a document are alive."""
        ...

    @abstractmethod
    async def list_statuses(self) -> dict[str, SurvivorStatus]:
        ...

    @abstractmethod
    async def apply_eliminations(self, change_set: dict[str, Elimination]) -> ApplyOutcome:
        """Write eliminations for users not yet eliminated.

        A failed write for one user is recorded in ``failed`` and the rest of
        the batch is still attempted.
        """
        ...


def _parse_pick(doc: dict, user_id: str, week: int) -> Pick:
    try:
        return Pick(
            user_id=user_id,
            week=week,
            team=doc.get("team"),
            game_id=doc.get("game_id", doc.get("gameId")),
        )
    except ValidationError as exc:
        raise InvalidPickShape(
            f"Unreadable pick for user {user_id} week {week}: {exc.errors()[0].get('msg')}",
            has_team=bool(doc.get("team")),
        ) from exc


class MongoSurvivorStores(MembershipStore, PickStore, ResultStore, StatusStore):
    """Motor-backed stores over pool_members, survivor_picks, survivor_games, survivor_status."""

    def __init__(self, pool_id: str):
        self.pool_id = pool_id

    async def list_members(self) -> list[PoolMember]:
        try:
            docs = await _db.db.pool_members.find({"pool_id": self.pool_id}).to_list(length=5000)
        except PyMongoError as exc:
            raise DataUnavailable(f"Pool roster unavailable: {exc}") from exc
        return [
            PoolMember(user_id=str(doc.get("user_id") or doc["_id"]), display_name=doc.get("display_name"))
            for doc in docs
        ]

    async def get_pick(self, user_id: str, week: int) -> Optional[Pick]:
        try:
            doc = await _db.db.survivor_picks.find_one(
                {"pool_id": self.pool_id, "user_id": user_id, "week": week},
            )
        except PyMongoError as exc:
            raise DataUnavailable(f"Pick unavailable for user {user_id} week {week}: {exc}") from exc
        if not doc:
            return None
        return _parse_pick(doc, user_id, week)

    async def get_week_results(self, week: int) -> dict[str, GameResult]:
        try:
            docs = await _db.db.survivor_games.find({"week": week}).to_list(length=100)
        except PyMongoError as exc:
            raise DataUnavailable(f"Week {week} results unavailable: {exc}") from exc

        results: dict[str, GameResult] = {}
        for doc in docs:
            try:
                game = GameResult(**{k: v for k, v in doc.items() if k != "_id"})
            except ValidationError as exc:
                logger.warning("Skipping malformed game doc %s in week %d: %s", doc.get("_id"), week, exc)
                continue
            results[game.game_id] = game
        return results

    async def get_status(self, user_id: str) -> SurvivorStatus:
        try:
            doc = await _db.db.survivor_status.find_one({"pool_id": self.pool_id, "user_id": user_id})
        except PyMongoError as exc:
            raise DataUnavailable(f"Status unavailable for user {user_id}: {exc}") from exc
        return _status_from_doc(user_id, doc)

    async def list_statuses(self) -> dict[str, SurvivorStatus]:
        try:
            docs = await _db.db.survivor_status.find({"pool_id": self.pool_id}).to_list(length=5000)
        except PyMongoError as exc:
            raise DataUnavailable(f"Survivor statuses unavailable: {exc}") from exc
        statuses: dict[str, SurvivorStatus] = {}
        for doc in docs:
            if not doc.get("user_id"):
                logger.warning("Skipping survivor status doc %s without user_id", doc.get("_id"))
                continue
            user_id = str(doc["user_id"])
            statuses[user_id] = _status_from_doc(user_id, doc)
        return statuses

    async def apply_eliminations(self, change_set: dict[str, Elimination]) -> ApplyOutcome:
        outcome = ApplyOutcome()
        for user_id, elimination in change_set.items():
            try:
                result = await _db.db.survivor_status.update_one(
                    {"pool_id": self.pool_id, "user_id": user_id, "eliminated": {"$ne": True}},
                    {"$set": {
                        "eliminated": True,
                        "eliminated_week": elimination.eliminated_week,
                        "elimination_reason": elimination.elimination_reason,
                        "last_updated": elimination.last_updated,
                    }},
                    upsert=True,
                )
            except DuplicateKeyError:
                # Upsert raced an existing eliminated document: nothing to write.
                logger.debug("Survivor status for %s already eliminated", user_id)
                continue
            except PyMongoError as exc:
                logger.warning("Survivor status write failed for %s: %s", user_id, exc)
                outcome.failed[user_id] = f"Status write failed for user {user_id}: {exc}"
                continue
            if result.modified_count or result.upserted_id is not None:
                outcome.written.append(user_id)
        return outcome


def _status_from_doc(user_id: str, doc: Optional[dict]) -> SurvivorStatus:
    if not doc:
        return SurvivorStatus(user_id=user_id)
    return SurvivorStatus(
        user_id=user_id,
        eliminated=bool(doc.get("eliminated")),
        eliminated_week=doc.get("eliminated_week"),
        elimination_reason=doc.get("elimination_reason"),
        last_updated=doc.get("last_updated"),
    )


class InMemorySurvivorStores(MembershipStore, PickStore, ResultStore, StatusStore):
    """Dict-backed stores for scripts, dry runs and tests."""

    def __init__(
        self,
        members: Iterable[PoolMember | str] = (),
        picks: Iterable[Pick] = (),
        results: Iterable[GameResult] = (),
        statuses: Iterable[SurvivorStatus] = (),
    ):
        self.members = [m if isinstance(m, PoolMember) else PoolMember(user_id=m) for m in members]
        self.picks: dict[tuple[str, int], Pick] = {(p.user_id, p.week): p for p in picks}
        self.results: dict[int, dict[str, GameResult]] = {}
        for game in results:
            self.results.setdefault(game.week, {})[game.game_id] = game
        self.statuses: dict[str, SurvivorStatus] = {s.user_id: s for s in statuses}
        self.pick_reads: list[tuple[str, int]] = []

    async def list_members(self) -> list[PoolMember]:
        return list(self.members)

    async def get_pick(self, user_id: str, week: int) -> Optional[Pick]:
        self.pick_reads.append((user_id, week))
        return self.picks.get((user_id, week))

    async def get_week_results(self, week: int) -> dict[str, GameResult]:
        return dict(self.results.get(week, {}))

    async def get_status(self, user_id: str) -> SurvivorStatus:
        return self.statuses.get(user_id) or SurvivorStatus(user_id=user_id)

    async def list_statuses(self) -> dict[str, SurvivorStatus]:
        return dict(self.statuses)

    async def apply_eliminations(self, change_set: dict[str, Elimination]) -> ApplyOutcome:
        outcome = ApplyOutcome()
        for user_id, elimination in change_set.items():
            current = self.statuses.get(user_id)
            if current and current.eliminated:
                continue
            self.statuses[user_id] = SurvivorStatus(
                user_id=user_id,
                eliminated=True,
                eliminated_week=elimination.eliminated_week,
                elimination_reason=elimination.elimination_reason,
                last_updated=elimination.last_updated,
            )
            outcome.written.append(user_id)
        return outcome
