"""
backend/tipster/services/tip_store.py

Purpose:
    Persistence boundary for tips and accumulators. BaseTipStore is the
    contract the engine depends on; MongoTipStore implements it on Motor.
    Each call is atomic on its own; nothing is transactional across calls.

Dependencies:
    - tipster.database
    - bson / pymongo
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import BulkWriteError

import tipster.database as _db
from tipster.config import settings
from tipster.models.accumulator import AccumulatorInDB, AccumulatorWithMembers
from tipster.models.tip import TERMINAL_STATUSES, TieredPrediction, TipInDB, TipStatus
from tipster.utils import ensure_utc, utcnow

logger = logging.getLogger("tipster.tip_store")

_DUPLICATE_KEY = 11000


class BaseTipStore(ABC):
    @abstractmethod
    async def find_pending(self, league: Optional[str] = None, *, before: datetime) -> list[TipInDB]:
        """Pending tips whose match kicked off before `before`."""
        ...

    @abstractmethod
    async def batch_update_status(
        self,
        ids: list[str],
        status: TipStatus,
        result: Optional[str],
        actual_result: Optional[str] = None,
    ) -> int:
        """Set status/result on every id still pending. Returns the number modified."""
        ...

    @abstractmethod
    async def find_accumulators(self, status: TipStatus) -> list[AccumulatorWithMembers]:
        """Accumulators in `status` with member tip statuses joined in one query."""
        ...

    @abstractmethod
    async def batch_update_accumulator_status(self, ids: list[str], status: TipStatus) -> int:
        """Set status on every id still pending. Returns the number modified."""
        ...

    @abstractmethod
    async def find_existing_match_ids(self, league: str, match_ids: list[str]) -> set[str]:
        ...

    @abstractmethod
    async def insert_tips(self, league: str, tips: list[TieredPrediction]) -> int:
        """Insert new pending tips; duplicates of (league, match_id) are skipped."""
        ...

    @abstractmethod
    async def find_tips(self, ids: list[str]) -> list[TipInDB]:
        ...

    @abstractmethod
    async def insert_accumulator(self, accumulator: AccumulatorInDB) -> str:
        ...

    @abstractmethod
    async def find_settled(self, league: Optional[str] = None) -> list[TipInDB]:
        """Won, lost and void tips, most recent match first."""
        ...

    @abstractmethod
    async def count_pending(self, league: Optional[str] = None) -> int:
        ...

    @abstractmethod
    async def archive_older_than(self, cutoff: datetime) -> int:
        """Flag settled tips with match_date before cutoff as archived."""
        ...


def _object_ids(ids: list[str]) -> list[ObjectId]:
    oids = []
    for raw in ids:
        try:
            oids.append(ObjectId(raw))
        except (InvalidId, TypeError):
            logger.warning("Ignoring invalid document id %r", raw)
    return oids


def tip_from_doc(doc: dict[str, Any]) -> TipInDB:
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = str(doc["_id"])
    if data.get("match_date") is not None:
        data["match_date"] = ensure_utc(data["match_date"])
    return TipInDB(**data)


class MongoTipStore(BaseTipStore):
    """Tip store on the `tips` and `accumulators` collections."""

    async def find_pending(self, league: Optional[str] = None, *, before: datetime) -> list[TipInDB]:
        query: dict[str, Any] = {
            "status": TipStatus.pending.value,
            "match_date": {"$lt": before},
        }
        if league == settings.DEFAULT_LEAGUE:
            # legacy tips without a league settle under the default one
            query["league"] = {"$in": [league, None]}
        elif league:
            query["league"] = league
        docs = await _db.db.tips.find(query).sort("match_date", 1).to_list(length=5000)
        return [tip_from_doc(doc) for doc in docs]

    async def batch_update_status(
        self,
        ids: list[str],
        status: TipStatus,
        result: Optional[str],
        actual_result: Optional[str] = None,
    ) -> int:
        oids = _object_ids(ids)
        if not oids:
            return 0
        res = await _db.db.tips.update_many(
            # status guard: a concurrent pass that got here first turns this into a no-op
            {"_id": {"$in": oids}, "status": TipStatus.pending.value},
            {"$set": {
                "status": TipStatus(status).value,
                "result": result,
                "actual_result": actual_result,
                "settled_at": utcnow(),
            }},
        )
        return res.modified_count

    async def find_accumulators(self, status: TipStatus) -> list[AccumulatorWithMembers]:
        pipeline = [
            {"$match": {"status": TipStatus(status).value}},
            {"$lookup": {
                "from": "tips",
                "localField": "legs.tip_id",
                "foreignField": "_id",
                "as": "members",
            }},
            {"$project": {"status": 1, "legs": 1, "members.status": 1}},
        ]
        out: list[AccumulatorWithMembers] = []
        async for doc in _db.db.accumulators.aggregate(pipeline):
            statuses = [TipStatus(m.get("status", "pending")) for m in doc.get("members", [])]
            # A leg whose tip cannot be joined is never treated as settled
            missing = len(doc.get("legs", [])) - len(statuses)
            if missing > 0:
                logger.warning("Accumulator %s: %d member tips not found", doc["_id"], missing)
                statuses.extend([TipStatus.pending] * missing)
            out.append(AccumulatorWithMembers(
                id=str(doc["_id"]),
                status=TipStatus(doc["status"]),
                member_statuses=statuses,
            ))
        return out

    async def batch_update_accumulator_status(self, ids: list[str], status: TipStatus) -> int:
        oids = _object_ids(ids)
        if not oids:
            return 0
        res = await _db.db.accumulators.update_many(
            {"_id": {"$in": oids}, "status": TipStatus.pending.value},
            {"$set": {"status": TipStatus(status).value, "settled_at": utcnow()}},
        )
        return res.modified_count

    async def find_existing_match_ids(self, league: str, match_ids: list[str]) -> set[str]:
        if not match_ids:
            return set()
        docs = await _db.db.tips.find(
            {"league": league, "match_id": {"$in": list(match_ids)}},
            {"match_id": 1},
        ).to_list(length=len(match_ids))
        return {doc["match_id"] for doc in docs}

    async def insert_tips(self, league: str, tips: list[TieredPrediction]) -> int:
        if not tips:
            return 0
        now = utcnow()
        docs = []
        for tip in tips:
            doc = tip.model_dump(mode="python")
            doc.update({
                "league": league,
                "tier": tip.tier.value,
                "status": TipStatus.pending.value,
                "result": None,
                "actual_result": None,
                "archived": False,
                "created_at": now,
                "settled_at": None,
            })
            docs.append(doc)
        try:
            res = await _db.db.tips.insert_many(docs, ordered=False)
            return len(res.inserted_ids)
        except BulkWriteError as e:
            details = e.details or {}
            non_dup = [w for w in details.get("writeErrors", []) if w.get("code") != _DUPLICATE_KEY]
            if non_dup:
                raise
            inserted = details.get("nInserted", 0)
            logger.info(
                "Tip insert for %s: %d inserted, %d duplicates rejected",
                league, inserted, len(docs) - inserted,
            )
            return inserted

    async def find_tips(self, ids: list[str]) -> list[TipInDB]:
        oids = _object_ids(ids)
        if not oids:
            return []
        docs = await _db.db.tips.find({"_id": {"$in": oids}}).to_list(length=len(oids))
        by_id = {str(d["_id"]): tip_from_doc(d) for d in docs}
        return [by_id[i] for i in ids if i in by_id]

    async def insert_accumulator(self, accumulator: AccumulatorInDB) -> str:
        doc = accumulator.model_dump(mode="python", exclude={"id"})
        doc["tier"] = accumulator.tier.value
        doc["status"] = accumulator.status.value
        doc["legs"] = [
            {"tip_id": ObjectId(leg.tip_id), "position": leg.position}
            for leg in accumulator.legs
        ]
        res = await _db.db.accumulators.insert_one(doc)
        return str(res.inserted_id)

    async def find_settled(self, league: Optional[str] = None) -> list[TipInDB]:
        query: dict[str, Any] = {"status": {"$in": sorted(s.value for s in TERMINAL_STATUSES)}}
        if league:
            query["league"] = league
        docs = await _db.db.tips.find(query).sort("match_date", -1).to_list(length=5000)
        return [tip_from_doc(doc) for doc in docs]

    async def count_pending(self, league: Optional[str] = None) -> int:
        query: dict[str, Any] = {"status": TipStatus.pending.value}
        if league:
            query["league"] = league
        return await _db.db.tips.count_documents(query)

    async def archive_older_than(self, cutoff: datetime) -> int:
        res = await _db.db.tips.update_many(
            {
                "archived": {"$ne": True},
                "status": {"$ne": TipStatus.pending.value},
                "match_date": {"$lt": cutoff},
            },
            {"$set": {"archived": True, "archived_at": utcnow()}},
        )
        return res.modified_count


tip_store = MongoTipStore()
