"""Persistent worker state: last run time per scheduled job, kept across restarts.

Lets a freshly restarted process skip a pass that ran moments ago.
Stored in the `worker_state` collection.
"""

from datetime import datetime, timedelta

import tipster.database as _db
from tipster.utils import ensure_utc, utcnow


async def get_synced_at(worker_id: str) -> datetime | None:
    doc = await _db.db.worker_state.find_one({"_id": worker_id})
    return ensure_utc(doc["synced_at"]) if doc else None


async def set_synced(worker_id: str, summary: dict | None = None) -> None:
    """Record a completed run, optionally with its counters."""
    fields: dict = {"synced_at": utcnow()}
    if summary is not None:
        fields["last_summary"] = summary
    await _db.db.worker_state.update_one(
        {"_id": worker_id},
        {"$set": fields},
        upsert=True,
    )


async def recently_synced(worker_id: str, max_age: timedelta) -> bool:
    last = await get_synced_at(worker_id)
    if not last:
        return False
    return (utcnow() - last) < max_age
