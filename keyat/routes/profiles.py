# Profile endpoints: read, edit and avatar upload for the signed-in user.
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas, storage
from ..context import AuthContext, get_auth_context
from ..rate_limit import rate_limit

router = APIRouter()
logger = logging.getLogger("keyat.profiles")


@router.get("/profiles/me", response_model=schemas.ProfileRead)
def get_my_profile(ctx: AuthContext = Depends(get_auth_context)) -> models.Profile:
    """Profile row of the caller, or a placeholder (e-mail prefix as first name) when the row is missing."""
    return ctx.profile


def _ensure_profile_row(db: Session, ctx: AuthContext) -> models.Profile:
    # Edits on a placeholder materialise the row
    if ctx.profile_found:
        return ctx.profile
    profile = ctx.profile
    db.add(profile)
    return profile


@router.patch(
    "/profiles/me",
    response_model=schemas.ProfileRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_my_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> models.Profile:
    changes = payload.model_dump(exclude_unset=True)
    profile = _ensure_profile_row(db, ctx)
    try:
        for field, value in changes.items():
            setattr(profile, field, value)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except Exception as exc:
        db.rollback()
        logger.exception("profiles.update_failed", extra={"user_id": ctx.user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to save profile: {exc}")

    logger.info("profiles.updated", extra={"user_id": ctx.user_id, "fields": sorted(changes)})
    return profile


@router.post(
    "/profiles/me/avatar",
    response_model=schemas.ProfileRead,
    dependencies=[Depends(rate_limit("upload"))],
)
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> models.Profile:
    """Store the image in the avatars bucket and point the profile's avatar_url at it."""
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Avatar must be an image")
    data = await file.read()
    if len(data) > storage.max_upload_bytes():
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Avatar is too large")
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Avatar file is empty")

    try:
        path = storage.upload("avatars", storage.object_name(str(ctx.user_id), file.filename), data)
    except storage.StorageError as exc:
        logger.exception("profiles.avatar_store_failed", extra={"user_id": ctx.user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    profile = _ensure_profile_row(db, ctx)
    try:
        profile.avatar_url = storage.get_public_url("avatars", path)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except Exception as exc:
        db.rollback()
        storage.delete("avatars", path)
        logger.exception("profiles.avatar_update_failed", extra={"user_id": ctx.user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to save avatar: {exc}")
    return profile
