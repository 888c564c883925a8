from __future__ import annotations

import logging
import os
import time
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Header, status
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..rate_limit import rate_limit
from ..roles import dashboard_path

router = APIRouter()
logger = logging.getLogger("keyat.auth")

JWT_SECRET: str = os.getenv("KEYAT_JWT_SECRET", "dev-secret-change-me")
JWT_ALG: str = "HS256"
JWT_TTL_SECONDS: int = int(os.getenv("KEYAT_JWT_TTL_SECONDS", str(60 * 60 * 24 * 7)))
# bcrypt_sha256 sidesteps bcrypt's 72-byte input limit
pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")


# ----------------
# Helpers
# ----------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(*, user: models.User) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + JWT_TTL_SECONDS,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


# ----------------
# Dependencies
# ----------------
def bearer_token_from_auth_header(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header missing")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization header")
    return parts[1]


def _user_from_token(db: Session, token: str) -> models.User:
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    user = db.get(models.User, int(user_id))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_current_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> models.User:
    return _user_from_token(db, bearer_token_from_auth_header(authorization))


def get_current_user_optional(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[models.User]:
    """
    The session user when a valid Bearer token is present, otherwise None.

    For public endpoints that answer differently to signed-in users.
    """
    if not authorization:
        return None
    try:
        return _user_from_token(db, bearer_token_from_auth_header(authorization))
    except HTTPException:
        return None


# ----------------
# Routes
# ----------------
@router.post(
    "/auth/signup",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(payload: schemas.SignupRequest, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    email = payload.email
    existing = db.query(models.User).filter(models.User.email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    # Account and profile row are written in one transaction
    try:
        user = models.User(
            email=email,
            password_hash=hash_password(payload.password),
            role=payload.role,
        )
        db.add(user)
        db.flush()
        db.add(
            models.Profile(
                id=user.id,
                first_name=payload.first_name or email.split("@", 1)[0],
                last_name=payload.last_name or "",
                email=email,
                phone=payload.phone,
                role=payload.role,
                id_verified=False,
            )
        )
        db.commit()
        db.refresh(user)
    except Exception as exc:
        db.rollback()
        logger.exception("auth.signup_failed", extra={"email": email})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to register: {exc}")

    logger.info("auth.signup", extra={"user_id": user.id, "role": user.role})
    return schemas.TokenResponse(
        access_token=create_access_token(user=user),
        user=schemas.UserRead.model_validate(user),
        dashboard_path=dashboard_path(user.role),
    )


@router.post(
    "/auth/login",
    response_model=schemas.TokenResponse,
    dependencies=[Depends(rate_limit("login"))],
)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    user = db.query(models.User).filter(models.User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    # Land the user on the dashboard their profile role points to
    profile = db.get(models.Profile, user.id)
    role = profile.role if profile and profile.role else user.role
    return schemas.TokenResponse(
        access_token=create_access_token(user=user),
        user=schemas.UserRead.model_validate(user),
        dashboard_path=dashboard_path(role),
    )
