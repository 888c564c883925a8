# Session summary and role-based navigation selection.
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .. import schemas
from ..context import AuthContext, get_auth_context, get_optional_context
from ..navigation import select_navigation
from ..roles import dashboard_path, role_from_path

router = APIRouter()


def _navigation_payload(role: str) -> schemas.NavigationRead:
    nav = select_navigation(role)
    return schemas.NavigationRead(dashboard_path=dashboard_path(nav.role), **nav.as_dict())


@router.get("/navigation", response_model=schemas.NavigationRead)
def get_navigation(
    path: Optional[str] = Query(default=None, max_length=255),
    ctx: Optional[AuthContext] = Depends(get_optional_context),
) -> schemas.NavigationRead:
    """
    Navigation table for the caller.

    - Signed in: role from the profile row (or the path, when the row is missing).
    - Anonymous: role inferred from the `path` prefix.
    """
    role = ctx.navigation_role if ctx else role_from_path(path)
    return _navigation_payload(role)


@router.get("/auth/session", response_model=schemas.SessionRead)
def get_session(ctx: AuthContext = Depends(get_auth_context)) -> schemas.SessionRead:
    return schemas.SessionRead(
        user=schemas.UserRead.model_validate(ctx.user),
        profile=schemas.ProfileRead.model_validate(ctx.profile),
        profile_found=ctx.profile_found,
        role=ctx.role,
        dashboard_path=dashboard_path(ctx.navigation_role),
        navigation=_navigation_payload(ctx.navigation_role),
    )
