"""Bearer-token authentication for schedule endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import settings
from ..db.supabase import get_user_id_for_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_caller_id(
    user_id: str,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Return the authenticated caller's user id.

    With ``auth_enabled`` off the path user id is trusted as-is.
    """
    if not settings.auth_enabled:
        return user_id

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        caller_id = await run_in_threadpool(get_user_id_for_token, credentials.credentials)
    except RuntimeError as exc:
        logger.error(f"Token verification unavailable: {exc}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service is not configured",
        ) from exc
    except Exception as exc:
        logger.warning(f"Rejected access token: {exc}")
        caller_id = None

    if not caller_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller_id


async def require_schedule_owner(user_id: str, caller_id: str = Depends(get_caller_id)) -> str:
    """Allow access only to the owner of the schedule in the path."""
    if caller_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this schedule is forbidden")
    return user_id
