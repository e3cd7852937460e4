"""Persistent worker state: last run per scheduled survivor pass.

Keyed by pool and week so a restart does not re-run weeks that are already
settled. Uses a lightweight `worker_state` collection in MongoDB.
"""

from typing import Any

import pickem.database as _db
from pickem.utils import ensure_utc, utcnow


async def get_state(state_key: str) -> dict[str, Any] | None:
    """Last recorded pass for the key, with synced_at as aware UTC."""
    doc = await _db.db.worker_state.find_one({"_id": state_key})
    if not doc:
        return None
    doc["synced_at"] = ensure_utc(doc["synced_at"])
    return doc


async def set_synced(state_key: str, **details: Any) -> None:
    """Record a completed pass, with an optional run summary."""
    await _db.db.worker_state.update_one(
        {"_id": state_key},
        {"$set": {"synced_at": utcnow(), **details}},
        upsert=True,
    )
