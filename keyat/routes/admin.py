# Admin console endpoints: user verification and listing moderation.
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..context import AuthContext, require_role
from ..rate_limit import rate_limit
from ..roles import normalize_role

router = APIRouter()
logger = logging.getLogger("keyat.admin")

require_admin = require_role("admin")


def _text_match(needle: str, *values: Optional[str]) -> bool:
    return any(needle in (v or "").lower() for v in values)


@router.get("/admin/users", response_model=List[schemas.ProfileRead])
def list_users(
    role: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(require_admin),
) -> List[models.Profile]:
    """All profiles, newest first, narrowed by resolved role and by name or e-mail text."""
    rows = db.query(models.Profile).order_by(models.Profile.created_at.desc(), models.Profile.id.desc()).all()
    if role and role != "all":
        wanted = normalize_role(role)
        rows = [p for p in rows if normalize_role(p.role) == wanted]
    needle = (q or "").strip().lower()
    if needle:
        rows = [p for p in rows if _text_match(needle, p.first_name, p.last_name, p.email)]
    return rows


@router.post(
    "/admin/users/{user_id}/verify",
    response_model=schemas.ProfileRead,
    dependencies=[Depends(rate_limit("write"))],
)
def verify_user(
    user_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> models.Profile:
    profile = db.get(models.Profile, user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    try:
        profile.id_verified = True
        # Provider listings carry the owner's verified badge
        db.query(models.ServiceProvider).filter(models.ServiceProvider.owner_id == user_id).update(
            {models.ServiceProvider.verified: True}, synchronize_session=False
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except Exception as exc:
        db.rollback()
        logger.exception("admin.verify_failed", extra={"user_id": user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to verify user: {exc}")

    logger.info("admin.user_verified", extra={"user_id": user_id, "admin_id": ctx.user_id})
    return profile


@router.get("/admin/properties", response_model=List[schemas.PropertyRead])
def list_all_properties(
    status_filter: Optional[schemas.PropertyStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(require_admin),
) -> List[models.Property]:
    query = db.query(models.Property)
    if status_filter:
        query = query.filter(models.Property.status == status_filter)
    rows = query.order_by(models.Property.id.desc()).all()
    needle = (q or "").strip().lower()
    if needle:
        rows = [p for p in rows if _text_match(needle, p.title, p.location, p.city)]
    return rows


@router.patch(
    "/admin/properties/{property_id}/status",
    response_model=schemas.PropertyRead,
    dependencies=[Depends(rate_limit("write"))],
)
def set_property_status(
    property_id: int,
    payload: schemas.PropertyStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> models.Property:
    prop = db.get(models.Property, property_id)
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    previous = prop.status
    try:
        prop.status = payload.status
        db.add(prop)
        db.commit()
        db.refresh(prop)
    except Exception as exc:
        db.rollback()
        logger.exception("admin.property_status_failed", extra={"property_id": property_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update property: {exc}")

    logger.info(
        "admin.property_status_changed",
        extra={"property_id": property_id, "from": previous, "to": prop.status, "admin_id": ctx.user_id},
    )
    return prop
