"""
Bearer token authentication.

Tokens are issued by the main BoligDeposit API; this service only verifies
them. ``sub`` carries the user id and an optional ``role`` claim of
``admin`` unlocks the admin routes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt

from boligdeposit.constants.auth import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_ROLE, ALGORITHM, SECRET_KEY
from boligdeposit.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

# OAuth2 scheme for token extraction; missing tokens are handled per route
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass
class CurrentUser:
    id: str
    role: Optional[str] = None
    token: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (user id) in token data.")
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Token expired")
        raise TokenExpiredError()
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenError()

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("Token is missing 'sub' claim")
        raise InvalidTokenError("Token does not contain a 'sub' claim")
    return CurrentUser(id=str(user_id), role=payload.get("role"), token=token)


async def get_optional_user(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[CurrentUser]:
    """The caller if a valid token was sent, otherwise None. Invalid tokens still fail."""
    if not token:
        return None
    user = decode_access_token(token)
    request.state.user = user
    return user


async def get_current_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        logger.warning("User %s denied access to admin route", user.id)
        raise AuthorizationError(required_role=ADMIN_ROLE)
    return user
