"""
backend/tipster/workers/archive_worker.py

Purpose:
    Daily archive job: flag settled tips older than ARCHIVE_AFTER_DAYS so
    read paths can exclude them. Tips are never deleted.

Dependencies:
    - tipster.services.tip_store
"""

import logging

from tipster.config import settings
from tipster.services import tip_store as tip_store_module
from tipster.utils import days_ago
from tipster.workers._state import set_synced

logger = logging.getLogger("tipster.archive_worker")

STATE_KEY = "tip_archive"


async def run_archive() -> int:
    cutoff = days_ago(settings.ARCHIVE_AFTER_DAYS)
    archived = await tip_store_module.tip_store.archive_older_than(cutoff)
    await set_synced(STATE_KEY, {"archived": archived})
    if archived:
        logger.info("Archived %d tips settled before %s", archived, cutoff.date().isoformat())
    return archived
