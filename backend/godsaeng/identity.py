"""Request identity supplied by the upstream authentication gateway."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status

USER_ID_HEADER = "X-User-Id"


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    # The gateway has already authenticated the caller; the header is trusted as-is.
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{USER_ID_HEADER} header is required.",
        )
    return x_user_id.strip()


__all__ = ["USER_ID_HEADER", "get_current_user_id"]
