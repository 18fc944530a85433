"""
backend/tipster/routers/tips.py

Purpose:
    Tier-filtered tip listing, the public track record and accumulator
    creation. Authentication lives
    in front of this service; the caller's subscription tier arrives as a
    query parameter.

Dependencies:
    - tipster.services.tier_service
    - tipster.services.accumulator_service
    - tipster.services.track_record_service
    - tipster.database
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

import tipster.database as _db
from tipster.models.tip import Tier, TipInDB, TipStatus
from tipster.models.track_record import TrackRecord
from tipster.services import accumulator_service
from tipster.services import tip_store as tip_store_module
from tipster.services import track_record_service
from tipster.services.accumulator_service import AccumulatorError
from tipster.services.tier_service import has_access
from tipster.services.tip_store import tip_from_doc

logger = logging.getLogger("tipster.tips")

router = APIRouter(prefix="/api", tags=["tips"])


class AccumulatorCreate(BaseModel):
    tip_ids: list[str] = Field(min_length=2)
    risk_level: int = Field(ge=1, le=3)
    tier: Tier
    name: str = ""


@router.get("/tips", response_model=list[TipInDB])
async def list_tips(
    tier: Tier = Query(Tier.free, description="Subscription tier of the caller"),
    league: Optional[str] = Query(None),
    status_filter: Optional[TipStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
):
    """Tips visible to `tier` (free < pro < vip), newest match first."""
    visible = [t.value for t in Tier if has_access(tier, t)]
    query: dict = {"tier": {"$in": visible}, "archived": {"$ne": True}}
    if league:
        query["league"] = league
    if status_filter:
        query["status"] = status_filter.value
    docs = await _db.db.tips.find(query).sort("match_date", -1).to_list(length=limit)
    return [tip_from_doc(doc) for doc in docs]


@router.get("/track-record", response_model=TrackRecord)
async def track_record(league: Optional[str] = Query(None)):
    """Win rate, ROI and monthly breakdown over every settled tip, all tiers."""
    return await track_record_service.get_track_record(league, tip_store_module.tip_store)


@router.post("/accumulators", status_code=status.HTTP_201_CREATED)
async def create_accumulator(body: AccumulatorCreate):
    try:
        acc_id = await accumulator_service.create_accumulator(
            tip_store_module.tip_store,
            body.tip_ids,
            body.risk_level,
            body.tier,
            body.name,
        )
    except AccumulatorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"id": acc_id}
