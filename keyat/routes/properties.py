# Property listing endpoints.
# Consumers and visitors search available listings; landlords and agents manage their own.
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas, storage
from ..context import AuthContext, require_role
from ..rate_limit import rate_limit
from ..search import PropertyFilters, active_filter_count, distinct_values, filter_properties, sort_properties

router = APIRouter()
logger = logging.getLogger("keyat.properties")

require_lister = require_role("landlord", "agent")
require_manager = require_role("landlord", "agent", "admin")


def _available(db: Session) -> List[models.Property]:
    return db.query(models.Property).filter(models.Property.status == "available").all()


def _get_property_or_404(db: Session, property_id: int) -> models.Property:
    prop = db.get(models.Property, property_id)
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return prop


def _ensure_can_manage(prop: models.Property, ctx: AuthContext) -> None:
    if ctx.role == "admin":
        return
    if ctx.user_id not in (prop.owner_id, prop.agent_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage this property")


def _display_name(profile: Optional[models.Profile]) -> Optional[str]:
    if profile is None:
        return None
    name = " ".join(p for p in (profile.first_name, profile.last_name) if p)
    return name or None


def _check_agent(db: Session, agent_id: Optional[int]) -> None:
    if agent_id is None:
        return
    profile = db.get(models.Profile, agent_id)
    if profile is None or profile.role != "agent":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="agent_id does not refer to an agent")


@router.get("/properties", response_model=schemas.PropertySearchResponse)
def search_properties(
    q: Optional[str] = Query(default=None, max_length=200),
    locations: List[str] = Query(default=[]),
    min_price: Optional[int] = Query(default=None, ge=0),
    max_price: Optional[int] = Query(default=None, ge=0),
    bedrooms: Optional[str] = Query(default=None, max_length=8),
    property_types: List[str] = Query(default=[]),
    amenities: List[str] = Query(default=[]),
    sort: str = Query(default="relevance"),
    db: Session = Depends(get_db),
) -> schemas.PropertySearchResponse:
    """
    Search available listings.

    All available rows are loaded and narrowed in memory: every active filter
    must match (query text, location set, price bounds, bedrooms, type set,
    amenity set), then the result is ordered by `sort`.

    `bedrooms` is an exact count ("3") or a floor ("3+"). Clients should
    send the plus as `%2B`; "3plus" is also accepted, and an unescaped "3+"
    (decoded to "3 ") is still read as a floor.
    """
    try:
        filters = PropertyFilters(
            query=q,
            locations=locations,
            min_price=min_price,
            max_price=max_price,
            bedrooms=bedrooms,
            property_types=property_types,
            amenities=amenities,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    items = sort_properties(filter_properties(_available(db), filters), sort)
    return schemas.PropertySearchResponse(
        items=[schemas.PropertyRead.model_validate(p) for p in items],
        total=len(items),
        sort=sort,
        active_filters=active_filter_count(filters),
    )


@router.get("/properties/featured", response_model=List[schemas.PropertyRead])
def list_featured(limit: int = Query(6, ge=1, le=50), db: Session = Depends(get_db)) -> List[models.Property]:
    return (
        db.query(models.Property)
        .filter(models.Property.status == "available", models.Property.is_featured.is_(True))
        .order_by(models.Property.created_at.desc(), models.Property.id.desc())
        .limit(limit)
        .all()
    )


@router.get("/properties/locations", response_model=List[str])
def list_locations(db: Session = Depends(get_db)) -> List[str]:
    return distinct_values(_available(db), "location")


@router.get("/properties/types", response_model=List[str])
def list_types(db: Session = Depends(get_db)) -> List[str]:
    return distinct_values(_available(db), "property_type")


@router.get("/properties/mine", response_model=List[schemas.PropertyRead])
def list_my_properties(
    status_filter: Optional[schemas.PropertyStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_lister),
) -> List[models.Property]:
    """Listings the caller owns or is the assigned agent for, newest first."""
    q = db.query(models.Property).filter(
        or_(models.Property.owner_id == ctx.user_id, models.Property.agent_id == ctx.user_id)
    )
    if status_filter:
        q = q.filter(models.Property.status == status_filter)
    return q.order_by(models.Property.id.desc()).all()


@router.get("/properties/{property_id}", response_model=schemas.PropertyDetail)
def get_property(property_id: int, db: Session = Depends(get_db)) -> schemas.PropertyDetail:
    prop = _get_property_or_404(db, property_id)

    try:
        prop.views = (prop.views or 0) + 1
        db.add(prop)
        db.commit()
        db.refresh(prop)
    except Exception as exc:
        db.rollback()
        logger.warning("properties.view_count_failed (property_id=%s): %s", property_id, exc)

    landlord = db.get(models.Profile, prop.owner_id) if prop.owner_id else None
    agent = db.get(models.Profile, prop.agent_id) if prop.agent_id else None
    detail = schemas.PropertyDetail.model_validate(prop)
    detail.landlord_name = _display_name(landlord)
    detail.landlord_phone = landlord.phone if landlord else None
    detail.agent_name = _display_name(agent)
    detail.agent_phone = agent.phone if agent else None
    return detail


@router.post(
    "/properties",
    response_model=schemas.PropertyRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_property(
    payload: schemas.PropertyCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_lister),
) -> models.Property:
    """Create a listing owned by the caller. Agents listing on their own are also its agent."""
    agent_id = payload.agent_id
    if agent_id is None and ctx.role == "agent":
        agent_id = ctx.user_id
    _check_agent(db, agent_id)

    data = payload.model_dump(exclude={"agent_id"})
    obj = models.Property(owner_id=ctx.user_id, agent_id=agent_id, images=[], **data)
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except Exception as exc:
        db.rollback()
        logger.exception("properties.create_failed", extra={"user_id": ctx.user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create property: {exc}")

    logger.info("properties.created", extra={"property_id": obj.id, "owner_id": ctx.user_id})
    return obj


@router.patch(
    "/properties/{property_id}",
    response_model=schemas.PropertyRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_property(
    property_id: int,
    payload: schemas.PropertyUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_manager),
) -> models.Property:
    prop = _get_property_or_404(db, property_id)
    _ensure_can_manage(prop, ctx)

    changes = payload.model_dump(exclude_unset=True)
    if "agent_id" in changes:
        _check_agent(db, changes["agent_id"])
    try:
        for field, value in changes.items():
            setattr(prop, field, value)
        db.add(prop)
        db.commit()
        db.refresh(prop)
    except Exception as exc:
        db.rollback()
        logger.exception("properties.update_failed", extra={"property_id": property_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update property: {exc}")
    return prop


@router.post(
    "/properties/{property_id}/images",
    response_model=schemas.ImageUploadResponse,
    dependencies=[Depends(rate_limit("upload"))],
)
async def upload_property_images(
    property_id: int,
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_manager),
) -> schemas.ImageUploadResponse:
    """
    Upload listing photos to the property-images bucket.

    Files that are not images or exceed the size cap are skipped and counted
    as failures. New URLs are appended to the existing image list; if nothing
    could be stored the request fails with 400.
    """
    prop = _get_property_or_404(db, property_id)
    _ensure_can_manage(prop, ctx)

    limit = storage.max_upload_bytes()
    stored: List[str] = []
    failed = 0
    for upload in files:
        data = await upload.read()
        if not (upload.content_type or "").startswith("image/"):
            logger.warning("properties.image_skipped_type (file=%s)", upload.filename)
            failed += 1
            continue
        if not data or len(data) > limit:
            logger.warning("properties.image_skipped_size (file=%s, size=%s)", upload.filename, len(data))
            failed += 1
            continue
        try:
            stored.append(storage.upload("property-images", storage.object_name(str(prop.id), upload.filename), data))
        except storage.StorageError as exc:
            logger.error("properties.image_store_failed (file=%s): %s", upload.filename, exc)
            failed += 1

    if not stored:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No images were successfully uploaded. Please check file sizes and formats.",
        )

    urls = [storage.get_public_url("property-images", path) for path in stored]
    try:
        prop.images = list(prop.images or []) + urls
        db.add(prop)
        db.commit()
        db.refresh(prop)
    except Exception as exc:
        db.rollback()
        for path in stored:
            storage.delete("property-images", path)
        logger.exception("properties.images_update_failed", extra={"property_id": property_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to save images: {exc}")

    logger.info("properties.images_uploaded", extra={"property_id": prop.id, "uploaded": len(urls), "failed": failed})
    return schemas.ImageUploadResponse(property_id=prop.id, images=prop.images, uploaded=len(urls), failed=failed)
