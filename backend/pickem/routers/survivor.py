"""Survivor pool endpoints: reconcile a week, audit the season, read status."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pickem.config import settings
from pickem.services import survivor_service
from pickem.services.survivor_stores import MongoSurvivorStores
from pickem.workers.survivor_reconciler import SurvivorReconciler

router = APIRouter(prefix="/api/survivor", tags=["survivor"])


def get_stores() -> MongoSurvivorStores:
    return MongoSurvivorStores(settings.SURVIVOR_POOL_ID)


def get_reconciler() -> SurvivorReconciler:
    return survivor_service.build_reconciler()


def _check_week(week: int) -> None:
    if not 1 <= week <= settings.SURVIVOR_SEASON_WEEKS:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Week must be between 1 and {settings.SURVIVOR_SEASON_WEEKS}.",
        )


@router.post("/reconcile/{week}")
async def reconcile_week(
    week: int,
    dry_run: bool = Query(False),
    reconciler: SurvivorReconciler = Depends(get_reconciler),
):
    """Evaluate alive members for one week and write new eliminations."""
    _check_week(week)
    result = await reconciler.reconcile_week(week, apply=not dry_run)
    return result.model_dump(mode="json")


@router.post("/audit")
async def audit_season(
    through_week: int = Query(...),
    apply: bool = Query(False),
    reconciler: SurvivorReconciler = Depends(get_reconciler),
):
    """Re-derive weeks 1..through_week and compare with stored status."""
    _check_week(through_week)
    report = await reconciler.audit_season(through_week, apply=apply)
    return report.model_dump(mode="json")


@router.get("/status/{user_id}")
async def get_status(user_id: str, stores: MongoSurvivorStores = Depends(get_stores)):
    """Stored survivor status; users without a record are alive."""
    survivor_status = await stores.get_status(user_id)
    return survivor_status.model_dump(mode="json")


@router.get("/summary")
async def get_summary(stores: MongoSurvivorStores = Depends(get_stores)):
    """Alive/eliminated counts for the pool roster."""
    summary = await survivor_service.get_pool_summary(stores, stores)
    return summary.model_dump(mode="json")
