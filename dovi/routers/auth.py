from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dovi.core.config import settings
from dovi.core.errors import EmailTaken, InvalidCredentials, UnauthorizedError
from dovi.core.rate_limit import rate_limit
from dovi.core.security import create_access_token, get_password_hash, verify_password
from dovi.db.session import get_db
from dovi.models.users import User
from dovi.schemas.auth import RegisterRequest, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=201,
    dependencies=[rate_limit("register", limit=settings.auth_rate_limit, window_seconds=settings.auth_rate_window_seconds)],
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    email = payload.email.lower()
    if db.scalar(select(User.id).where(User.email == email)):
        raise EmailTaken()

    user = User(name=payload.name.strip(), email=email, password_hash=get_password_hash(payload.password))
    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailTaken() from None
    db.refresh(user)

    logger.info("User %s registered", user.id)
    return TokenResponse(access_token=create_access_token(user.id, role=user.role))


@router.post(
    "/token",
    response_model=TokenResponse,
    dependencies=[rate_limit("login", limit=settings.auth_rate_limit, window_seconds=settings.auth_rate_window_seconds)],
)
def login(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)) -> TokenResponse:
    user = db.scalar(select(User).where(User.email == form.username.lower()))
    if not user or not verify_password(form.password, user.password_hash):
        raise InvalidCredentials()
    if not user.is_active:
        raise UnauthorizedError("User inactive")

    return TokenResponse(access_token=create_access_token(user.id, role=user.role))
