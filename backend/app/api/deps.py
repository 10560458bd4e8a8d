"""
Travel desk settlement - API dependencies
FastAPI dependency functions
"""

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from app.core.security import decode_access_token


# Bearer token scheme
security = HTTPBearer()


class CurrentUser(BaseModel):
    """Caller identity taken from the access token"""
    id: UUID
    business_id: UUID


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Return the calling user

    The business is read from the ``business_id`` claim; business owners carry
    their own id as the business id, so ``sub`` is the fallback.

    Raises:
        HTTPException: when the token is invalid
    """
    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_TOKEN", "message": "Invalid token"}
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_TOKEN", "message": "Token carries no user"}
        )

    try:
        return CurrentUser(
            id=UUID(user_id),
            business_id=UUID(payload.get("business_id") or user_id),
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_TOKEN", "message": "Malformed user or business id"}
        )
