"""Activity ticks and the learner's own time-on-platform summary.

The front end starts a timer when the tab is visible and focused, and
stops it on blur or navigation.  Every tick POSTs the seconds since the
previous tick:

  Client -> POST /v1/activity/ticks {"seconds": 30}
  -> INCRBY today's counter
  -> 202 Accepted

A stalled timer that catches up sends several ticks back to back; each
is added, none replaces another.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from learning_progress.api.dependencies import get_activity
from learning_progress.core.config import SETTINGS
from learning_progress.core.errors import InvalidDuration
from learning_progress.services.activity_log import (
    ActivityLogAggregator,
    format_duration,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/activity", tags=["activity"])


class ActivityTickIn(BaseModel):
    seconds: int = Field(ge=0, le=SETTINGS.activity_max_tick_seconds)


class ActivitySummaryOut(BaseModel):
    today_seconds: int
    last_7_days_seconds: int
    today: str
    last_7_days: str


@router.post("/ticks", status_code=status.HTTP_202_ACCEPTED)
async def record_tick(
    tick: ActivityTickIn,
    activity: Annotated[ActivityLogAggregator, Depends(get_activity)],
) -> dict[str, int]:
    try:
        await activity.record_activity(tick.seconds)
    except InvalidDuration as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from None
    return {"seconds": tick.seconds}


@router.get("/summary", response_model=ActivitySummaryOut)
async def get_summary(
    activity: Annotated[ActivityLogAggregator, Depends(get_activity)],
) -> ActivitySummaryOut:
    summary = await activity.summary()
    return ActivitySummaryOut(
        today_seconds=summary.today_seconds,
        last_7_days_seconds=summary.last_7_days_seconds,
        today=format_duration(summary.today_seconds),
        last_7_days=format_duration(summary.last_7_days_seconds),
    )
