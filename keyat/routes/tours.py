# Tour endpoints: book, list, view, cancel, confirm, complete and reschedule property viewings.
# Status changes go through keyat.tours so every route applies the same lifecycle rules.
from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..context import AuthContext, get_auth_context, require_role
from ..rate_limit import rate_limit
from ..tours import (
    AGENT_PLACEHOLDER_NAME,
    AGENT_PLACEHOLDER_PHONE,
    INITIAL_STATUS,
    TourTransitionError,
    is_terminal,
    matches_tab,
    transition,
)

router = APIRouter()
logger = logging.getLogger("keyat.tours")

require_consumer = require_role("consumer")


def _viewing_datetime(day: date, viewing_time: str) -> datetime:
    hours, minutes = (int(part) for part in viewing_time.split(":"))
    return datetime.combine(day, time(hours, minutes), tzinfo=timezone.utc)


def _check_not_past(day: date) -> None:
    if day < datetime.now(timezone.utc).date():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="preferred_date cannot be in the past")


def _is_tenant(tour: models.Tour, ctx: AuthContext) -> bool:
    return tour.tenant_id == ctx.user_id


def _is_host(tour: models.Tour, prop: Optional[models.Property], ctx: AuthContext) -> bool:
    """Owner or agent of the toured property, or the agent assigned to the tour."""
    if tour.agent_id == ctx.user_id:
        return True
    return prop is not None and ctx.user_id in (prop.owner_id, prop.agent_id)


def _get_visible_tour(db: Session, tour_id: int, ctx: AuthContext) -> tuple[models.Tour, Optional[models.Property]]:
    # Tours outside the caller's reach are reported as missing
    tour = db.get(models.Tour, tour_id)
    if not tour:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tour not found")
    prop = db.get(models.Property, tour.property_id)
    if ctx.role != "admin" and not (_is_tenant(tour, ctx) or _is_host(tour, prop, ctx)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tour not found")
    return tour, prop


def _agent_contact(db: Session, agent_id: Optional[int]) -> Dict[str, Optional[str]]:
    profile = db.get(models.Profile, agent_id) if agent_id else None
    if profile is None:
        return {"agent_name": AGENT_PLACEHOLDER_NAME, "agent_phone": AGENT_PLACEHOLDER_PHONE, "agent_email": None}
    name = " ".join(p for p in (profile.first_name, profile.last_name) if p)
    return {
        "agent_name": name or AGENT_PLACEHOLDER_NAME,
        "agent_phone": profile.phone or AGENT_PLACEHOLDER_PHONE,
        "agent_email": profile.email,
    }


def _to_detail(db: Session, tour: models.Tour, prop: Optional[models.Property]) -> schemas.TourDetail:
    data = schemas.TourRead.model_validate(tour).model_dump()
    if prop is not None:
        data.update(
            property_title=prop.title,
            property_location=prop.location,
            property_image=(prop.images or [None])[0],
            property_price=prop.price or 0,
            property_beds=prop.bedrooms or 0,
            property_baths=prop.bathrooms or 0,
            property_area=prop.area,
        )
    data.update(_agent_contact(db, tour.agent_id))
    return schemas.TourDetail(**data)


def _apply_transition(db: Session, tour: models.Tour, target: str, ctx: AuthContext) -> models.Tour:
    try:
        new_status = transition(tour.status, target)
    except TourTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    previous = tour.status
    try:
        tour.status = new_status
        db.add(tour)
        db.commit()
        db.refresh(tour)
    except Exception as exc:
        db.rollback()
        logger.exception("tours.transition_failed", extra={"tour_id": tour.id, "target": target})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update tour: {exc}")

    logger.info(
        "tours.status_changed",
        extra={"tour_id": tour.id, "from": previous, "to": new_status, "user_id": ctx.user_id},
    )
    return tour


@router.post(
    "/tours",
    response_model=schemas.TourRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_tour(
    payload: schemas.TourCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_consumer),
) -> models.Tour:
    prop = db.get(models.Property, payload.property_id)
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if prop.status != "available":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Property is not available for tours")
    _check_not_past(payload.preferred_date)

    obj = models.Tour(
        property_id=prop.id,
        tenant_id=ctx.user_id,
        # Agent is copied from the listing and may be empty
        agent_id=prop.agent_id,
        preferred_date=_viewing_datetime(payload.preferred_date, payload.viewing_time),
        viewing_time=payload.viewing_time,
        notes=payload.notes,
        meeting_point=payload.meeting_point,
        duration=payload.duration,
        status=INITIAL_STATUS,
    )
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except Exception as exc:
        db.rollback()
        logger.exception("tours.create_failed", extra={"property_id": prop.id, "user_id": ctx.user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to schedule tour: {exc}")

    logger.info("tours.created", extra={"tour_id": obj.id, "property_id": prop.id, "tenant_id": ctx.user_id})
    return obj


@router.get("/tours/me", response_model=List[schemas.TourDetail])
def list_my_tours(
    tab: Literal["upcoming", "past", "all"] = Query("upcoming"),
    q: Optional[str] = Query(default=None, max_length=200),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> List[schemas.TourDetail]:
    """
    Tours relevant to the caller.

    - consumer: tours they booked
    - landlord/agent: tours on properties they own or are assigned to
    - admin: every tour

    `tab` narrows by lifecycle stage; `q` matches property title or location.
    """
    query = db.query(models.Tour)
    if ctx.role in ("landlord", "agent"):
        query = query.outerjoin(models.Property, models.Property.id == models.Tour.property_id).filter(
            or_(
                models.Property.owner_id == ctx.user_id,
                models.Property.agent_id == ctx.user_id,
                models.Tour.agent_id == ctx.user_id,
            )
        )
    elif ctx.role != "admin":
        query = query.filter(models.Tour.tenant_id == ctx.user_id)

    tours = query.order_by(models.Tour.preferred_date.asc(), models.Tour.id.asc()).all()
    tours = [t for t in tours if matches_tab(t.status, tab)]

    prop_ids = {t.property_id for t in tours}
    props = {
        p.id: p
        for p in (db.query(models.Property).filter(models.Property.id.in_(prop_ids)).all() if prop_ids else [])
    }

    needle = (q or "").strip().lower()
    items: List[schemas.TourDetail] = []
    for tour in tours:
        prop = props.get(tour.property_id)
        if needle:
            haystack = " ".join([(prop.title or "") if prop else "", (prop.location or "") if prop else ""]).lower()
            if needle not in haystack:
                continue
        items.append(_to_detail(db, tour, prop))
    return items


@router.get("/tours/{tour_id}", response_model=schemas.TourDetail)
def get_tour(
    tour_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> schemas.TourDetail:
    tour, prop = _get_visible_tour(db, tour_id, ctx)
    return _to_detail(db, tour, prop)


@router.delete(
    "/tours/{tour_id}",
    response_model=schemas.TourRead,
    dependencies=[Depends(rate_limit("write"))],
)
def cancel_tour(
    tour_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> models.Tour:
    """Cancel a tour. Only the status column changes; repeating the call is a no-op."""
    tour, _ = _get_visible_tour(db, tour_id, ctx)
    if tour.status == "cancelled":
        return tour
    return _apply_transition(db, tour, "cancelled", ctx)


def _host_transition(db: Session, tour_id: int, target: str, ctx: AuthContext) -> models.Tour:
    tour, prop = _get_visible_tour(db, tour_id, ctx)
    if ctx.role != "admin" and not _is_host(tour, prop, ctx):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the property owner or agent can do this")
    return _apply_transition(db, tour, target, ctx)


@router.post(
    "/tours/{tour_id}/confirm",
    response_model=schemas.TourRead,
    dependencies=[Depends(rate_limit("write"))],
)
def confirm_tour(
    tour_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> models.Tour:
    return _host_transition(db, tour_id, "confirmed", ctx)


@router.post(
    "/tours/{tour_id}/complete",
    response_model=schemas.TourRead,
    dependencies=[Depends(rate_limit("write"))],
)
def complete_tour(
    tour_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> models.Tour:
    return _host_transition(db, tour_id, "completed", ctx)


@router.post(
    "/tours/{tour_id}/reschedule",
    response_model=schemas.TourRead,
    dependencies=[Depends(rate_limit("write"))],
)
def reschedule_tour(
    tour_id: int,
    payload: schemas.TourReschedule,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> models.Tour:
    """Move an open tour to a new slot. The tour goes back to `scheduled` for the host to confirm again."""
    tour, _ = _get_visible_tour(db, tour_id, ctx)
    if not _is_tenant(tour, ctx):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the tenant can reschedule a tour")
    if is_terminal(tour.status):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Cannot reschedule a {tour.status} tour")
    _check_not_past(payload.preferred_date)

    try:
        tour.preferred_date = _viewing_datetime(payload.preferred_date, payload.viewing_time)
        tour.viewing_time = payload.viewing_time
        tour.status = INITIAL_STATUS
        db.add(tour)
        db.commit()
        db.refresh(tour)
    except Exception as exc:
        db.rollback()
        logger.exception("tours.reschedule_failed", extra={"tour_id": tour_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to reschedule tour: {exc}")

    logger.info("tours.rescheduled", extra={"tour_id": tour.id, "user_id": ctx.user_id})
    return tour
