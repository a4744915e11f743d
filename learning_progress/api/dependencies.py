from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from learning_progress.models.principal import Principal
from learning_progress.services import token_service
from learning_progress.services.activity_log import ActivityLogAggregator
from learning_progress.services.catalog import course_catalog
from learning_progress.services.completion_tracker import LessonCompletionTracker
from learning_progress.services.progress_aggregator import ProgressAggregator
from learning_progress.services.progress_store import ProgressStore, progress_backend

logger = logging.getLogger(__name__)

# Tokens come from the identity provider; tokenUrl only feeds the docs UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def _roles_claim(raw: object) -> frozenset[str]:
    # Only a list of strings grants roles; a bare "admin" string must not
    # become {"a", "d", "m", "i", "n"}
    if not isinstance(raw, list):
        return frozenset()
    return frozenset(role for role in raw if isinstance(role, str))


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=str(claims["sub"]),
        roles=_roles_claim(claims.get("roles")),
    )
    logger.debug(
        "Token validated for user=%s roles=%s", principal.user_id, principal.roles
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role, else 403.

    Usage: Depends(require_role("admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s", principal.user_id, role
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


# ---------------------------------------------------------------------------
# Per-request progress services, bound to the caller's namespace
# ---------------------------------------------------------------------------


def get_progress_store(
    principal: Annotated[Principal, Depends(require_user)],
) -> ProgressStore:
    return ProgressStore(progress_backend, principal.user_id)


def get_tracker(
    store: Annotated[ProgressStore, Depends(get_progress_store)],
) -> LessonCompletionTracker:
    return LessonCompletionTracker(store)


def get_aggregator(
    tracker: Annotated[LessonCompletionTracker, Depends(get_tracker)],
) -> ProgressAggregator:
    return ProgressAggregator(tracker, course_catalog)


def get_activity(
    store: Annotated[ProgressStore, Depends(get_progress_store)],
) -> ActivityLogAggregator:
    return ActivityLogAggregator(store)
