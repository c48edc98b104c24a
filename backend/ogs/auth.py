"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens and FastAPI
dependencies that resolve the calling account, enforce roles, resolve
the caller's staff record and authenticate RFID readers by API key.

Token verification raises HTTPExceptions on failure so it can be used
directly inside route dependencies; role and device checks raise the
domain errors rendered by the application's error handler.
"""

from typing import Optional
from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .config import settings
from .database import get_session
from . import errors, models, repositories
from .services import AuthService, DeviceService

bearer_scheme = HTTPBearer()


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_current_account(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.Account:
    """FastAPI dependency that returns the authenticated account.

    Raises HTTPException(401) for any authentication issue, including a
    disabled account.
    """
    payload = decode_token(credentials.credentials)
    account_id = payload.get('account_id')
    if not account_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    account = repositories.AccountRepository(db).get(account_id)
    if not account or not account.is_active:
        raise HTTPException(status_code=401, detail='account not found')
    return account


def require_admin(account: models.Account = Depends(get_current_account)) -> models.Account:
    if account.role != "admin":
        raise errors.PermissionDeniedError("admin role required")
    return account


def require_staff(
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_session),
) -> models.Staff:
    """Resolve the staff record behind the calling account."""
    staff = AuthService(db).staff_for_account(account)
    if not staff:
        raise errors.PermissionDeniedError("user must be a staff member")
    return staff


def get_device(
    x_device_key: Optional[str] = Header(default=None),
    db: Session = Depends(get_session),
) -> models.Device:
    """Authenticate an RFID reader by its `X-Device-Key` header."""
    return DeviceService(db).authenticate(x_device_key)
