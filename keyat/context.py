# Request-scoped identity: session user, profile row and resolved role, built once per request.
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from . import models
from .db import get_db
from .roles import Role, email_prefix, resolve_role, signup_role
from .routes.auth import get_current_user, get_current_user_optional

logger = logging.getLogger("keyat.context")


@dataclass
class AuthContext:
    user: models.User
    profile: models.Profile
    # Role used for authorization
    role: Role
    # False when `profile` is a placeholder derived from the user record
    profile_found: bool
    # Role whose navigation table is shown; differs from `role` only for placeholders
    navigation_role: Optional[Role] = None

    def __post_init__(self) -> None:
        if self.navigation_role is None:
            self.navigation_role = self.role

    @property
    def user_id(self) -> int:
        return self.user.id

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


def placeholder_profile(user: models.User, role: Role) -> models.Profile:
    """Transient profile for sessions whose profile row is missing (never added to the session)."""
    return models.Profile(
        id=user.id,
        first_name=email_prefix(user.email),
        last_name="",
        email=user.email,
        role=role,
        id_verified=False,
    )


def build_context(db: Session, user: models.User, path: Optional[str] = None) -> AuthContext:
    profile = db.get(models.Profile, user.id)
    if profile is not None:
        role = resolve_role(profile.role, True)
        return AuthContext(user=user, profile=profile, role=role, profile_found=True)

    role = signup_role(user.role)
    nav_role = resolve_role(None, False, path)
    logger.info(
        "context.placeholder_profile",
        extra={"user_id": user.id, "role": role, "navigation_role": nav_role},
    )
    return AuthContext(
        user=user,
        profile=placeholder_profile(user, role),
        role=role,
        profile_found=False,
        navigation_role=nav_role,
    )


def get_auth_context(
    path: Optional[str] = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> AuthContext:
    """Dependency for signed-in routes. `path` is the client route, used for navigation only when the profile row is missing."""
    return build_context(db, user, path)


def get_optional_context(
    path: Optional[str] = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
    user: Optional[models.User] = Depends(get_current_user_optional),
) -> Optional[AuthContext]:
    if user is None:
        return None
    return build_context(db, user, path)


def require_role(*roles: Role) -> Callable[..., AuthContext]:
    """Dependency factory: 403 unless the resolved role is one of `roles`."""

    def _dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return ctx

    return _dependency
