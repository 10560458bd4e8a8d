"""
Travel desk settlement - security
JWT access token encode/decode. Users and sessions live in the auth service;
this service only needs to read who is calling and for which business.
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from app.core.config import settings


def create_access_token(
    subject: str,
    business_id: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token

    Args:
        subject: token subject (team member / business owner id)
        business_id: business the caller acts for (defaults to subject)
        expires_delta: lifetime (default: settings)

    Returns:
        encoded JWT
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "sub": subject,
        "business_id": business_id or subject,
        "exp": expire,
        "iat": datetime.utcnow(),
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_access_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT access token

    Returns:
        payload, or None when verification fails
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        return None
