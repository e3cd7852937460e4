"""Survivor pool: pool summary and reconciler wiring for the API and scripts."""

import logging
from collections import Counter
from typing import Optional

from pickem.config import settings
from pickem.models.survivor import PoolSummary
from pickem.services.survivor_evaluator import NO_PICK_REASON, EvaluationPolicy
from pickem.services.survivor_stores import MembershipStore, MongoSurvivorStores, StatusStore
from pickem.workers.survivor_reconciler import SurvivorReconciler

logger = logging.getLogger("pickem.survivor_service")


def build_reconciler(
    pool_id: Optional[str] = None,
    policy: Optional[EvaluationPolicy] = None,
) -> SurvivorReconciler:
    """Reconciler over the Mongo stores of ``pool_id`` (default: configured pool)."""
    stores = MongoSurvivorStores(pool_id or settings.SURVIVOR_POOL_ID)
    return SurvivorReconciler(stores, stores, stores, stores, policy=policy)


async def get_pool_summary(members: MembershipStore, statuses: StatusStore) -> PoolSummary:
    """Alive/eliminated counts for the current roster.

    Status documents of users no longer on the roster are ignored.
    """
    roster = await members.list_members()
    stored = await statuses.list_statuses()

    eliminated = [stored[m.user_id] for m in roster if m.user_id in stored and stored[m.user_id].eliminated]
    by_week = Counter(s.eliminated_week for s in eliminated if s.eliminated_week is not None)
    no_pick = sum(1 for s in eliminated if s.elimination_reason == NO_PICK_REASON)

    summary = PoolSummary(
        total=len(roster),
        alive=len(roster) - len(eliminated),
        eliminated=len(eliminated),
        no_pick_eliminations=no_pick,
        by_week=dict(sorted(by_week.items())),
    )
    logger.debug("Survivor pool summary: %s", summary.model_dump())
    return summary
