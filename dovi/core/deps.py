from __future__ import annotations

import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from dovi.core.errors import ForbiddenError, UnauthorizedError
from dovi.core.security import decode_access_token
from dovi.db.session import get_db
from dovi.models.enums import UserRole
from dovi.models.users import User

logger = logging.getLogger(__name__)

# auto_error=False so a missing token renders as our UNAUTHORIZED body.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def _user_from_token(token: str | None, db: Session) -> User | None:
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise UnauthorizedError("Invalid token") from None
    user_id: str | None = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise UnauthorizedError("User inactive or not found")
    return user


def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    user = _user_from_token(token, db)
    if user is None:
        raise UnauthorizedError("Not authenticated")
    return user


def get_optional_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    return _user_from_token(token, db)


def require_role(*allowed: UserRole):
    allowed_values = {r.value for r in allowed}

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_values:
            logger.info("User %s (%s) denied admin access", user.id, user.role)
            raise ForbiddenError()
        return user

    return _dep


require_admin = require_role(UserRole.admin, UserRole.super_admin)
