"""Authentication utilities for Gather.

Identity is issued by the platform's auth service; this module only
verifies bearer tokens and extracts the user id.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from gather.core.config import settings

# Bearer scheme for token handling
bearer_scheme = HTTPBearer(auto_error=False)

# JWT settings
JWT_SECRET_KEY = settings.JWT_SECRET_KEY
JWT_ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


class TokenData(BaseModel):
    """Data embedded in JWT token."""

    user_id: str
    exp: datetime

    def model_dump(self, **kwargs):
        """Serialize exp as a timestamp for JWT."""
        data = super().model_dump(**kwargs)
        if isinstance(data["exp"], datetime):
            data["exp"] = int(data["exp"].timestamp())
        return data

    @classmethod
    def from_payload(cls, payload: dict):
        """Create TokenData from JWT payload, converting timestamp back to datetime."""
        data = payload.copy()
        if "exp" in data and isinstance(data["exp"], (int, float)):
            data["exp"] = datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        return cls(**data)


def create_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a new JWT token."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = TokenData(user_id=user_id, exp=expire).model_dump()
    encoded_jwt = jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)
    return str(encoded_jwt)


def create_access_token(user_id: str) -> str:
    """Create a new access token."""
    return create_token(user_id, timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


def decode_token(token: str) -> TokenData:
    """Decode and validate a token. Raises JWTError when invalid or expired."""
    payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    try:
        token_data = TokenData.from_payload(payload)
    except ValidationError as e:
        raise JWTError(f"Malformed token payload: {e}") from e

    if datetime.now(timezone.utc) > token_data.exp:
        raise JWTError("Token expired")
    return token_data


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Dependency to get the authenticated user's id from the bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        token_data = decode_token(credentials.credentials)
    except JWTError:
        raise credentials_exception from None

    return token_data.user_id
