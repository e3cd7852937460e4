"""
backend/pickem/workers/survivor_reconciler.py

Purpose:
    Reconcile survivor picks against game results: a weekly pass over the
    roster that emits the minimal set of new eliminations, and a full-season
    audit that re-derives every member's history and compares it with what is
    stored.

Notes:
    - Already-eliminated members are skipped outright; their picks are never
      read. Eliminations are never reverted here.
    - One member's data error never aborts the batch; it becomes an issue and
      the member stays as they were.
    - Weekly runs and the audit share evaluate_week, so running weeks 1..N one
      at a time and auditing 1..N in one go produce the same eliminations.

Dependencies:
    - pickem.services.survivor_evaluator
    - pickem.services.survivor_stores
    - pickem.workers._state (scheduled entry point)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from pickem.models.survivor import (
    ApplyOutcome,
    AuditReport,
    Elimination,
    GameResult,
    IssueKind,
    MemberAudit,
    Pick,
    PoolMember,
    ReconciliationIssue,
    ReconciliationResult,
    SurvivorStatus,
    Verdict,
    WeekEvaluation,
)
from pickem.services.survivor_errors import DataUnavailable, InvalidPickShape
from pickem.services.survivor_evaluator import EvaluationPolicy, evaluate_week
from pickem.services.survivor_stores import MembershipStore, PickStore, ResultStore, StatusStore
from pickem.services.team_normalizer import normalize_team
from pickem.utils import utcnow

logger = logging.getLogger("pickem.survivor_reconciler")


class SurvivorReconciler:
    """Drives evaluate_week over a roster. Stores are injected."""

    def __init__(
        self,
        members: MembershipStore,
        picks: PickStore,
        results: ResultStore,
        statuses: StatusStore,
        policy: Optional[EvaluationPolicy] = None,
    ):
        self.members = members
        self.picks = picks
        self.results = results
        self.statuses = statuses
        self.policy = policy or EvaluationPolicy.from_settings()

    async def reconcile_week(self, week: int, *, apply: bool = True) -> ReconciliationResult:
        """Evaluate every alive member for ``week`` and write new eliminations."""
        if week < 1:
            raise ValueError(f"Week must be >= 1, got {week}")

        result = ReconciliationResult(week=week, dry_run=not apply)
        try:
            roster = await self.members.list_members()
            week_results = await self.results.get_week_results(week)
        except DataUnavailable as exc:
            logger.error("Survivor week %d aborted: %s", week, exc)
            result.issues.append(ReconciliationIssue(
                week=week, kind=IssueKind.DATA_UNAVAILABLE, message=str(exc),
            ))
            result.summary.errors += 1
            return result

        result.summary.members = len(roster)
        now = utcnow()

        for member in roster:
            user_id = member.user_id
            try:
                prior = await self.statuses.get_status(user_id)
                if prior.eliminated:
                    result.summary.already_eliminated += 1
                    continue

                _, evaluation, issues = await self._evaluate(user_id, week, week_results)
            except DataUnavailable as exc:
                logger.warning("Survivor user %s skipped for week %d: %s", user_id, week, exc)
                result.issues.append(ReconciliationIssue(
                    user_id=user_id, week=week, kind=IssueKind.DATA_UNAVAILABLE, message=str(exc),
                ))
                result.summary.errors += 1
                continue
            except Exception as exc:
                logger.exception("Survivor user %s failed for week %d", user_id, week)
                result.issues.append(ReconciliationIssue(
                    user_id=user_id, week=week, kind=IssueKind.UNEXPECTED_ERROR, message=str(exc),
                ))
                result.summary.errors += 1
                continue

            for issue in issues:
                logger.warning("Survivor week %d user %s: %s", week, user_id, issue.message)
            result.issues.extend(issues)
            result.evaluations.append(evaluation)
            result.summary.evaluated += 1

            if evaluation.verdict is Verdict.SURVIVED:
                result.summary.survived += 1
            elif evaluation.verdict is Verdict.PENDING:
                result.summary.pending += 1
            else:
                result.summary.eliminated += 1
                result.eliminations[user_id] = _elimination(evaluation, now)
                logger.info(
                    "Survivor eliminated: user=%s week=%d reason=%s",
                    user_id, week, evaluation.reason,
                )

        if apply and result.eliminations:
            outcome = await self._apply(result.eliminations, result.issues)
            result.applied = outcome.written
            result.summary.errors += len(outcome.failed)

        logger.info(
            "Survivor week %d reconciled: %d members, %d survived, %d pending, %d eliminated, %d skipped, %d errors%s",
            week, result.summary.members, result.summary.survived, result.summary.pending,
            result.summary.eliminated, result.summary.already_eliminated, result.summary.errors,
            "" if apply else " (dry run)",
        )
        return result

    async def audit_season(self, through_week: int, *, apply: bool = False) -> AuditReport:
        """Re-derive weeks 1..through_week for every member and compare with stored status.

        Stored eliminations are never reverted; disagreements are reported.
        With ``apply`` the missed eliminations are written.
        """
        if through_week < 1:
            raise ValueError(f"through_week must be >= 1, got {through_week}")

        report = AuditReport(through_week=through_week)
        try:
            roster = await self.members.list_members()
            stored = await self.statuses.list_statuses()
            weeks = {week: await self.results.get_week_results(week) for week in range(1, through_week + 1)}
        except DataUnavailable as exc:
            logger.error("Survivor audit aborted: %s", exc)
            report.issues.append(ReconciliationIssue(kind=IssueKind.DATA_UNAVAILABLE, message=str(exc)))
            return report

        now = utcnow()
        missed: dict[str, Elimination] = {}

        for member in roster:
            user_id = member.user_id
            audit = MemberAudit(user_id=user_id, stored=stored.get(user_id) or SurvivorStatus(user_id=user_id))
            try:
                await self._derive_history(member, weeks, audit, report)
            except DataUnavailable as exc:
                logger.warning("Survivor audit skipped user %s: %s", user_id, exc)
                report.issues.append(ReconciliationIssue(
                    user_id=user_id, kind=IssueKind.DATA_UNAVAILABLE, message=str(exc),
                ))
                continue
            except Exception as exc:
                logger.exception("Survivor audit failed for user %s", user_id)
                report.issues.append(ReconciliationIssue(
                    user_id=user_id, kind=IssueKind.UNEXPECTED_ERROR, message=str(exc),
                ))
                continue
            report.members[user_id] = audit

            if audit.derived_eliminated and audit.stored.eliminated:
                report.correct_eliminations.append(user_id)
                if audit.stored.eliminated_week != audit.derived_week:
                    report.week_mismatches.append(user_id)
            elif audit.derived_eliminated:
                report.missed_eliminations.append(user_id)
                missed[user_id] = _elimination(audit.weeks[-1], now)
            elif audit.stored.eliminated:
                report.incorrect_eliminations.append(user_id)
            else:
                report.correct_survivors.append(user_id)

        if report.incorrect_eliminations:
            logger.warning(
                "Survivor audit: %d stored eliminations not supported by results (admin review): %s",
                len(report.incorrect_eliminations), ", ".join(report.incorrect_eliminations),
            )
        if apply and missed:
            report.applied = (await self._apply(missed, report.issues)).written

        logger.info(
            "Survivor audit through week %d: %d correct, %d missed, %d incorrect, %d survivors, %d applied",
            through_week, len(report.correct_eliminations), len(report.missed_eliminations),
            len(report.incorrect_eliminations), len(report.correct_survivors), len(report.applied),
        )
        return report

    async def _derive_history(
        self,
        member: PoolMember,
        weeks: dict[int, dict[str, GameResult]],
        audit: MemberAudit,
        report: AuditReport,
    ) -> None:
        user_id = member.user_id
        seen_teams: dict[str, int] = {}
        for week, week_results in weeks.items():
            pick, evaluation, issues = await self._evaluate(user_id, week, week_results)
            report.issues.extend(issues)
            audit.weeks.append(evaluation)

            if pick is not None and pick.team:
                team = normalize_team(pick.team.strip())
                if team in seen_teams:
                    report.issues.append(ReconciliationIssue(
                        user_id=user_id, week=week, kind=IssueKind.REPEATED_TEAM,
                        message=f"{team} already picked in week {seen_teams[team]}",
                    ))
                else:
                    seen_teams[team] = week

            if evaluation.verdict is Verdict.ELIMINATED:
                audit.derived_eliminated = True
                audit.derived_week = week
                audit.derived_reason = evaluation.reason
                return

    async def _evaluate(
        self, user_id: str, week: int, week_results: dict[str, GameResult],
    ) -> tuple[Optional[Pick], WeekEvaluation, list[ReconciliationIssue]]:
        try:
            pick = await self.picks.get_pick(user_id, week)
        except InvalidPickShape as exc:
            issue = ReconciliationIssue(
                user_id=user_id, week=week, kind=IssueKind.INVALID_PICK_SHAPE, message=str(exc),
            )
            if exc.has_team:
                # A team was entered but the record is unreadable: stay pending.
                return None, WeekEvaluation(
                    user_id=user_id, week=week, verdict=Verdict.PENDING, reason="pick record unreadable",
                ), [issue]
            evaluation, issues = evaluate_week(user_id, week, None, week_results, self.policy)
            return None, evaluation, [issue, *issues]

        evaluation, issues = evaluate_week(user_id, week, pick, week_results, self.policy)
        return pick, evaluation, issues

    async def _apply(
        self,
        change_set: dict[str, Elimination],
        issues: list[ReconciliationIssue],
    ) -> ApplyOutcome:
        try:
            outcome = await self.statuses.apply_eliminations(change_set)
        except DataUnavailable as exc:
            logger.error("Survivor eliminations not written: %s", exc)
            outcome = ApplyOutcome(failed={user_id: str(exc) for user_id in change_set})

        for user_id, message in outcome.failed.items():
            issues.append(ReconciliationIssue(
                user_id=user_id, week=change_set[user_id].eliminated_week,
                kind=IssueKind.DATA_UNAVAILABLE, message=message,
            ))
        present = len(change_set) - len(outcome.written) - len(outcome.failed)
        if present:
            logger.info(
                "Survivor: %d of %d eliminations already present in store", present, len(change_set),
            )
        return outcome


def _elimination(evaluation: WeekEvaluation, now: datetime) -> Elimination:
    return Elimination(
        user_id=evaluation.user_id,
        eliminated_week=evaluation.week,
        elimination_reason=evaluation.reason,
        last_updated=now,
    )


async def reconcile_current_week() -> None:
    """Scheduled pass over the current and previous NFL week.

    Smart sleep: a week whose games are all final and that was reconciled
    after that point has nothing left to decide.
    """
    from pickem.config import settings
    from pickem.services.game_status import week_is_complete
    from pickem.services.survivor_stores import MongoSurvivorStores
    from pickem.utils import current_nfl_week
    from pickem.workers._state import get_state, set_synced

    stores = MongoSurvivorStores(settings.SURVIVOR_POOL_ID)
    reconciler = SurvivorReconciler(stores, stores, stores, stores)
    current = current_nfl_week(utcnow(), settings.SURVIVOR_SEASON_START, settings.SURVIVOR_SEASON_WEEKS)

    for week in sorted({max(1, current - 1), current}):
        state_key = f"survivor_reconciler:{settings.SURVIVOR_POOL_ID}:{week}"
        try:
            week_results = await stores.get_week_results(week)
        except DataUnavailable as exc:
            logger.error("Survivor scheduled run skipped week %d: %s", week, exc)
            continue
        state = await get_state(state_key)
        if state and state.get("week_complete"):
            logger.debug("Smart sleep: survivor week %d complete and reconciled", week)
            continue

        result = await reconciler.reconcile_week(week)
        if not any(issue.kind is IssueKind.DATA_UNAVAILABLE for issue in result.issues):
            await set_synced(
                state_key,
                week=week,
                eliminated=len(result.applied),
                pending=result.summary.pending,
                week_complete=(
                    week_is_complete(week_results.values())
                    and result.summary.pending == 0
                    and result.summary.errors == 0
                ),
            )
