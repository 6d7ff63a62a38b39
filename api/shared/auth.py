"""Caller identity dependency.

Authentication happens upstream (gateway / auth middleware), which forwards
the verified user id in the ``X-User-Id`` header.
"""
from typing import Optional

from fastapi import Header, HTTPException, status


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user identity",
        )
    return x_user_id.strip()
