from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learning_progress.api.dependencies import require_role
from learning_progress.models.principal import Principal
from learning_progress.services.activity_log import (
    ActivityLogAggregator,
    activity_label,
)
from learning_progress.services.progress_store import (
    ProgressStore,
    list_tracked_users,
    progress_backend,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class UserActivityOut(BaseModel):
    user_id: str
    today_seconds: int
    last_7_days_seconds: int
    activity: str


@router.get("/users/activity", response_model=list[UserActivityOut])
async def admin_user_activity(
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> list[UserActivityOut]:
    """Activity column of the admin user list, one row per tracked user."""
    logger.info("Admin activity list requested by user=%s", principal.user_id)

    rows = []
    for user_id in await list_tracked_users(progress_backend):
        summary = await ActivityLogAggregator(
            ProgressStore(progress_backend, user_id)
        ).summary()
        rows.append(
            UserActivityOut(
                user_id=user_id,
                today_seconds=summary.today_seconds,
                last_7_days_seconds=summary.last_7_days_seconds,
                activity=activity_label(summary),
            )
        )
    return rows
