# Services marketplace: browse providers by category and let providers manage their listings.
import logging
from typing import List, Literal, Optional, get_args

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..context import AuthContext, require_role
from ..rate_limit import rate_limit
from ..search import filter_services, sort_services

router = APIRouter()
logger = logging.getLogger("keyat.services")

require_provider = require_role("service_provider")


def _get_service_or_404(db: Session, service_id: int) -> models.ServiceProvider:
    obj = db.get(models.ServiceProvider, service_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return obj


@router.get("/services", response_model=List[schemas.ServiceProviderRead])
def list_services(
    q: Optional[str] = Query(default=None, max_length=200),
    category: str = Query("all"),
    sort: Literal["rating", "reviews", "price-low", "price-high"] = Query("rating"),
    db: Session = Depends(get_db),
) -> List[models.ServiceProvider]:
    rows = db.query(models.ServiceProvider).order_by(models.ServiceProvider.id.asc()).all()
    return sort_services(filter_services(rows, q, category), sort)


@router.get("/services/categories", response_model=List[schemas.ServiceCategoryCount])
def list_categories(db: Session = Depends(get_db)) -> List[schemas.ServiceCategoryCount]:
    """Every category id with its live listing count, led by the 'all' bucket."""
    rows = db.query(models.ServiceProvider.category).all()
    counts = {cat: 0 for cat in get_args(schemas.ServiceCategory)}
    for (cat,) in rows:
        counts[cat] = counts.get(cat, 0) + 1
    out = [schemas.ServiceCategoryCount(id="all", count=len(rows))]
    out.extend(schemas.ServiceCategoryCount(id=cat, count=n) for cat, n in counts.items())
    return out


@router.get("/services/mine", response_model=List[schemas.ServiceProviderRead])
def list_my_services(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_provider),
) -> List[models.ServiceProvider]:
    return (
        db.query(models.ServiceProvider)
        .filter(models.ServiceProvider.owner_id == ctx.user_id)
        .order_by(models.ServiceProvider.id.desc())
        .all()
    )


@router.get("/services/{service_id}", response_model=schemas.ServiceProviderRead)
def get_service(service_id: int, db: Session = Depends(get_db)) -> models.ServiceProvider:
    return _get_service_or_404(db, service_id)


@router.post(
    "/services",
    response_model=schemas.ServiceProviderRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_service(
    payload: schemas.ServiceProviderCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_provider),
) -> models.ServiceProvider:
    # Rating, reviews and the verified badge are not client-settable
    obj = models.ServiceProvider(owner_id=ctx.user_id, verified=bool(ctx.profile.id_verified), **payload.model_dump())
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except Exception as exc:
        db.rollback()
        logger.exception("services.create_failed", extra={"user_id": ctx.user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create service: {exc}")

    logger.info("services.created", extra={"service_id": obj.id, "owner_id": ctx.user_id})
    return obj


@router.patch(
    "/services/{service_id}",
    response_model=schemas.ServiceProviderRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_service(
    service_id: int,
    payload: schemas.ServiceProviderUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_provider),
) -> models.ServiceProvider:
    obj = _get_service_or_404(db, service_id)
    if obj.owner_id != ctx.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to edit this service")

    try:
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(obj, field, value)
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except Exception as exc:
        db.rollback()
        logger.exception("services.update_failed", extra={"service_id": service_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update service: {exc}")
    return obj
