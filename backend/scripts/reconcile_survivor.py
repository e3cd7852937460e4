"""
backend/scripts/reconcile_survivor.py

Purpose:
    Admin tool to reconcile survivor eliminations for one week, or to audit
    the whole season against stored status. Dry-run unless --execute is given.

Usage:
    cd backend && python -m scripts.reconcile_survivor --week 5
    cd backend && python -m scripts.reconcile_survivor --week 5 --execute
    cd backend && python -m scripts.reconcile_survivor --audit --through-week 5
    cd backend && python -m scripts.reconcile_survivor --audit --through-week 5 --execute
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

import pickem.database as _db
from pickem.config import settings
from pickem.middleware.logging import setup_logging
from pickem.services.survivor_evaluator import EvaluationPolicy
from pickem.services.survivor_service import build_reconciler


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile survivor pool eliminations.")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--week", type=int, help="Reconcile a single week.")
    mode.add_argument("--audit", action="store_true", help="Audit weeks 1..--through-week.")
    parser.add_argument("--through-week", type=int, default=None)
    parser.add_argument("--pool", default=settings.SURVIVOR_POOL_ID)
    parser.add_argument("--execute", action="store_true", help="Write eliminations (default: dry-run).")
    parser.add_argument("--ties-survive", action="store_true", help="A tied game does not eliminate.")
    parser.add_argument(
        "--no-pick-rule",
        choices=("week_started", "first_final"),
        default=settings.SURVIVOR_NO_PICK_RULE,
    )
    args = parser.parse_args(argv)
    if args.audit and not args.through_week:
        parser.error("--audit requires --through-week")
    return args


def _summarize_audit(report: Any) -> dict[str, Any]:
    return {
        "through_week": report.through_week,
        "correct_eliminations": len(report.correct_eliminations),
        "missed_eliminations": report.missed_eliminations,
        "incorrect_eliminations": report.incorrect_eliminations,
        "week_mismatches": report.week_mismatches,
        "correct_survivors": len(report.correct_survivors),
        "applied": report.applied,
        "issues": [issue.model_dump(mode="json") for issue in report.issues],
    }


async def _run(args: argparse.Namespace) -> int:
    policy = EvaluationPolicy(
        tie_eliminates=not args.ties_survive and settings.SURVIVOR_TIE_ELIMINATES,
        no_pick_rule=args.no_pick_rule,
    )
    await _db.connect_db()
    try:
        reconciler = build_reconciler(args.pool, policy=policy)
        if args.audit:
            report = await reconciler.audit_season(args.through_week, apply=args.execute)
            print(json.dumps({"mode": "execute" if args.execute else "dry-run", **_summarize_audit(report)}, indent=2))
            return 0

        result = await reconciler.reconcile_week(args.week, apply=args.execute)
        print(json.dumps({
            "mode": "execute" if args.execute else "dry-run",
            "week": result.week,
            "summary": result.summary.model_dump(),
            "eliminations": {
                uid: e.elimination_reason for uid, e in result.eliminations.items()
            },
            "applied": result.applied,
            "issues": [issue.model_dump(mode="json") for issue in result.issues],
        }, indent=2))
        return 1 if result.summary.errors else 0
    finally:
        await _db.close_db()


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    return asyncio.run(_run(_parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
