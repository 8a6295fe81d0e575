"""
security.py — Authentication Utilities (Password Hashing & JWT Encoding)

Purpose:
- Hash & verify passwords (never store raw passwords).
- Issue and validate JWT access tokens identifying the requesting actor.
- Extract the current actor id from a request.

Key Constraints:
- Access tokens only (no refresh tokens).
- Requests without a token are served as the anonymous actor (id 0); the
  controllers decide what anonymous actors may see.

This module does NOT:
- Define API routes → those live in wrdsb_rest/api/v1/
- Decide capabilities → that is services/authorization.py
"""

import datetime
from typing import Optional, Dict, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from wrdsb_rest.core.config import settings
from wrdsb_rest.core.errors import RestError

ANONYMOUS_ACTOR_ID = 0

# -----------------------------------------------------------------------------
# Password Hashing
# -----------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

def hash_password(raw_password: str) -> str:
    """
    Hash a plaintext password.
    """
    return pwd_context.hash(raw_password)

def verify_password(raw_password: str, hashed_password: str) -> bool:
    """
    Verify that a raw password matches its hashed stored version.
    """
    return pwd_context.verify(raw_password, hashed_password)


# -----------------------------------------------------------------------------
# JWT Token Handling
# -----------------------------------------------------------------------------

def create_access_token(data: Dict[str, Any], expires_minutes: int = None) -> str:
    """
    Create a JWT access token with expiration.

    Expected payload format:
        data = {"sub": str(user_id)}

    Returns:
        Encoded JWT string.
    """
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRE_MINUTES
    expire_at = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(minutes=minutes)
    to_encode.update({"exp": expire_at})

    token = jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )
    return token


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT token.
    Returns the payload dict if valid, None if invalid.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


# -----------------------------------------------------------------------------
# Current Actor Dependency
# -----------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    """
    Return the id of the actor making the request.

    Flow:
    - No Authorization header → anonymous actor (0).
    - Decode token; reject invalid/expired tokens with 401.
    - Return the integer `sub` claim.
    """
    if credentials is None:
        return ANONYMOUS_ACTOR_ID

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise RestError("rest_invalid_token", "The access token is invalid or expired.", 401)

    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise RestError("rest_invalid_token", "The access token does not name a user.", 401)
