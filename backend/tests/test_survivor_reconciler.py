"""
backend/tests/test_survivor_reconciler.py

Purpose:
    Weekly reconciliation and full-season audit over in-memory stores:
    idempotent reruns, permanence of eliminations, per-user fault isolation,
    and agreement between week-by-week runs and a single audit.

Dependencies:
    - pickem.workers.survivor_reconciler
    - pickem.services.survivor_stores
"""

from __future__ import annotations

import pytest

from pickem.models.survivor import ApplyOutcome, IssueKind, SurvivorStatus, Verdict
from pickem.services.survivor_errors import DataUnavailable, InvalidPickShape
from pickem.services.survivor_evaluator import NO_PICK_REASON, EvaluationPolicy
from pickem.services.survivor_stores import InMemorySurvivorStores
from pickem.workers.survivor_reconciler import SurvivorReconciler

from conftest import make_game, make_pick

MEMBERS = ["alice", "bob", "carol", "dave", "erin"]

RESULTS = [
    make_game("1", "Kansas City Chiefs", "Buffalo Bills", 27, 20, week=1),
    make_game("2", "Dallas Cowboys", "New York Giants", 17, 17, week=1),
    make_game("3", "Green Bay Packers", "Chicago Bears", 21, 14, week=2),
    make_game("4", "San Francisco 49ers", "Seattle Seahawks", 10, 24, week=2),
    make_game("5", "Miami Dolphins", "New England Patriots", status="Scheduled", week=3),
]

PICKS = [
    make_pick("alice", 1, "KC Chiefs"),
    make_pick("alice", 2, "Packers"),
    make_pick("alice", 3, "MIA"),
    make_pick("bob", 1, "Buffalo Bills"),
    make_pick("carol", 1, "Chiefs"),
    make_pick("carol", 2, "SF 49ers"),
    make_pick("erin", 1, "NY Giants"),
]


class _FlakyStores(InMemorySurvivorStores):
    """In-memory stores whose roster, pick reads or status writes can be made to fail."""

    def __init__(self, *args, failing=None, roster_error=None, write_error=None, unwritable=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.failing = failing or {}
        self.roster_error = roster_error
        self.write_error = write_error
        self.unwritable = set(unwritable)

    async def list_members(self):
        if self.roster_error:
            raise self.roster_error
        return await super().list_members()

    async def get_pick(self, user_id, week):
        if user_id in self.failing:
            self.pick_reads.append((user_id, week))
            raise self.failing[user_id]
        return await super().get_pick(user_id, week)

    async def apply_eliminations(self, change_set):
        if self.write_error:
            raise self.write_error
        writable = {u: e for u, e in change_set.items() if u not in self.unwritable}
        outcome = await super().apply_eliminations(writable)
        failed = {u: "status write failed" for u in change_set if u in self.unwritable}
        return ApplyOutcome(written=outcome.written, failed=failed)


def _stores(statuses=(), **kwargs):
    return _FlakyStores(MEMBERS, PICKS, RESULTS, statuses, **kwargs)


def _reconciler(stores, policy=None):
    return SurvivorReconciler(stores, stores, stores, stores, policy=policy or EvaluationPolicy())


def _status_view(stores):
    return {
        user_id: (s.eliminated, s.eliminated_week, s.elimination_reason)
        for user_id, s in stores.statuses.items()
    }


@pytest.mark.asyncio
async def test_week_one_eliminations():
    stores = _stores()
    result = await _reconciler(stores).reconcile_week(1)

    assert set(result.eliminations) == {"bob", "dave", "erin"}
    assert result.eliminations["bob"].elimination_reason == "picked losing team, Kansas City Chiefs won"
    assert result.eliminations["dave"].elimination_reason == NO_PICK_REASON
    assert sorted(result.applied) == ["bob", "dave", "erin"]
    assert result.summary.members == 5
    assert result.summary.survived == 2
    assert result.summary.eliminated == 3
    assert result.summary.errors == 0
    assert stores.statuses["bob"].eliminated_week == 1


@pytest.mark.asyncio
async def test_rerun_is_idempotent():
    stores = _stores()
    reconciler = _reconciler(stores)
    await reconciler.reconcile_week(1)
    before = _status_view(stores)

    second = await reconciler.reconcile_week(1)

    assert second.eliminations == {}
    assert second.applied == []
    assert second.summary.already_eliminated == 3
    assert _status_view(stores) == before


@pytest.mark.asyncio
async def test_eliminated_members_are_never_read_or_revived():
    stores = _stores(statuses=[
        SurvivorStatus(user_id="alice", eliminated=True, eliminated_week=1, elimination_reason="manual"),
    ])
    result = await _reconciler(stores).reconcile_week(2)

    assert ("alice", 2) not in stores.pick_reads
    assert "alice" not in result.eliminations
    assert stores.statuses["alice"].elimination_reason == "manual"
    assert result.summary.already_eliminated == 1


@pytest.mark.asyncio
async def test_dry_run_writes_nothing():
    stores = _stores()
    result = await _reconciler(stores).reconcile_week(1, apply=False)

    assert result.dry_run
    assert set(result.eliminations) == {"bob", "dave", "erin"}
    assert result.applied == []
    assert stores.statuses == {}


@pytest.mark.asyncio
async def test_unstarted_week_leaves_everyone_pending():
    stores = _stores()
    result = await _reconciler(stores).reconcile_week(3)

    assert result.eliminations == {}
    assert result.summary.pending == 5


@pytest.mark.asyncio
async def test_one_users_data_error_does_not_abort_the_batch():
    stores = _stores(failing={
        "bob": DataUnavailable("picks shard offline"),
        "carol": RuntimeError("boom"),
    })
    result = await _reconciler(stores).reconcile_week(1)

    assert set(result.eliminations) == {"dave", "erin"}
    assert "bob" not in stores.statuses
    assert result.summary.errors == 2
    kinds = {issue.user_id: issue.kind for issue in result.issues}
    assert kinds["bob"] is IssueKind.DATA_UNAVAILABLE
    assert kinds["carol"] is IssueKind.UNEXPECTED_ERROR


@pytest.mark.asyncio
async def test_roster_failure_aborts_without_writes():
    stores = _stores(roster_error=DataUnavailable("members unavailable"))
    result = await _reconciler(stores).reconcile_week(1)

    assert result.eliminations == {}
    assert result.summary.errors == 1
    assert result.issues[0].kind is IssueKind.DATA_UNAVAILABLE
    assert stores.statuses == {}


@pytest.mark.asyncio
async def test_failed_write_is_reported():
    stores = _stores(write_error=DataUnavailable("status store read-only"))
    result = await _reconciler(stores).reconcile_week(1)

    assert set(result.eliminations) == {"bob", "dave", "erin"}
    assert result.applied == []
    assert any(issue.kind is IssueKind.DATA_UNAVAILABLE for issue in result.issues)


@pytest.mark.asyncio
async def test_unreadable_pick_with_team_stays_pending():
    stores = _stores(failing={"bob": InvalidPickShape("bad week field", has_team=True)})
    result = await _reconciler(stores).reconcile_week(1)

    assert "bob" not in result.eliminations
    evaluation = next(e for e in result.evaluations if e.user_id == "bob")
    assert evaluation.verdict is Verdict.PENDING
    assert any(i.kind is IssueKind.INVALID_PICK_SHAPE and i.user_id == "bob" for i in result.issues)


@pytest.mark.asyncio
async def test_unreadable_pick_without_team_counts_as_no_pick():
    stores = _stores(failing={"bob": InvalidPickShape("no team", has_team=False)})
    result = await _reconciler(stores).reconcile_week(1)

    assert result.eliminations["bob"].elimination_reason == NO_PICK_REASON


@pytest.mark.asyncio
async def test_week_must_be_positive():
    with pytest.raises(ValueError):
        await _reconciler(_stores()).reconcile_week(0)


@pytest.mark.asyncio
async def test_weekly_runs_match_full_audit():
    incremental = _stores()
    reconciler = _reconciler(incremental)
    for week in (1, 2, 3):
        await reconciler.reconcile_week(week)

    audited = _stores()
    report = await _reconciler(audited).audit_season(3, apply=True)

    assert _status_view(incremental) == _status_view(audited)
    assert sorted(report.applied) == ["bob", "carol", "dave", "erin"]
    assert incremental.statuses["carol"].eliminated_week == 2
    assert incremental.statuses["carol"].elimination_reason == "picked losing team, Seattle Seahawks won"


@pytest.mark.asyncio
async def test_audit_classifies_stored_status():
    stores = _stores(statuses=[
        SurvivorStatus(user_id="bob", eliminated=True, eliminated_week=1),
        SurvivorStatus(user_id="carol", eliminated=True, eliminated_week=1),
        SurvivorStatus(user_id="alice", eliminated=True, eliminated_week=2),
        SurvivorStatus(user_id="erin", eliminated=True, eliminated_week=1),
    ])
    report = await _reconciler(stores).audit_season(2)

    assert sorted(report.correct_eliminations) == ["bob", "carol", "erin"]
    assert report.week_mismatches == ["carol"]
    assert report.incorrect_eliminations == ["alice"]
    assert report.missed_eliminations == ["dave"]
    assert report.correct_survivors == []
    assert report.applied == []
    assert "dave" not in stores.statuses
    assert stores.statuses["alice"].eliminated
    assert report.members["carol"].derived_week == 2


@pytest.mark.asyncio
async def test_audit_apply_writes_only_missed():
    stores = _stores(statuses=[SurvivorStatus(user_id="bob", eliminated=True, eliminated_week=1)])
    report = await _reconciler(stores).audit_season(1, apply=True)

    assert sorted(report.applied) == ["dave", "erin"]
    assert stores.statuses["dave"].elimination_reason == NO_PICK_REASON


@pytest.mark.asyncio
async def test_audit_stops_history_at_elimination():
    report = await _reconciler(_stores()).audit_season(3)

    assert [e.week for e in report.members["bob"].weeks] == [1]
    assert [e.verdict for e in report.members["alice"].weeks] == [
        Verdict.SURVIVED, Verdict.SURVIVED, Verdict.PENDING,
    ]


@pytest.mark.asyncio
async def test_audit_warns_on_repeated_team_without_eliminating():
    stores = InMemorySurvivorStores(
        ["frank"],
        [make_pick("frank", 1, "Kansas City Chiefs"), make_pick("frank", 2, "Chiefs")],
        RESULTS + [make_game("6", "Kansas City Chiefs", "Denver Broncos", 30, 10, week=2)],
    )
    report = await _reconciler(stores).audit_season(2)

    repeated = [i for i in report.issues if i.kind is IssueKind.REPEATED_TEAM]
    assert len(repeated) == 1
    assert repeated[0].week == 2
    assert report.correct_survivors == ["frank"]


@pytest.mark.asyncio
async def test_failed_write_for_one_user_keeps_the_others():
    stores = _stores(unwritable={"dave"})
    result = await _reconciler(stores).reconcile_week(1)

    assert sorted(result.applied) == ["bob", "erin"]
    assert "dave" not in stores.statuses
    assert result.summary.errors == 1
    failed = [i for i in result.issues if i.kind is IssueKind.DATA_UNAVAILABLE]
    assert [(i.user_id, i.week) for i in failed] == [("dave", 1)]


@pytest.mark.asyncio
async def test_audit_survives_unexpected_error_for_one_member():
    stores = _stores(failing={"alice": RuntimeError("boom")})
    report = await _reconciler(stores).audit_season(1)

    assert "alice" not in report.members
    assert sorted(report.missed_eliminations) == ["bob", "dave", "erin"]
    assert report.correct_survivors == ["carol"]
    errors = [i for i in report.issues if i.kind is IssueKind.UNEXPECTED_ERROR]
    assert [(i.user_id, i.message) for i in errors] == [("alice", "boom")]
