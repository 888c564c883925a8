# Dashboard summaries. One endpoint; the figures returned depend on the caller's resolved role.
from datetime import datetime, timedelta, timezone
from typing import Dict, Union

from fastapi import APIRouter, Depends
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..context import AuthContext, get_auth_context
from ..roles import ROLES, normalize_role
from ..tours import TOUR_STATUSES, is_past, is_upcoming

router = APIRouter()

Stats = Dict[str, Union[int, float]]
PROPERTY_STATUSES = ("available", "rented", "maintenance", "unavailable")


def _count_by(db: Session, column, *criteria) -> Dict[str, int]:
    rows = db.query(column, func.count()).filter(*criteria).group_by(column).all()
    return {key: n for key, n in rows}


def _consumer_stats(db: Session, ctx: AuthContext) -> Stats:
    statuses = [s for (s,) in db.query(models.Tour.status).filter(models.Tour.tenant_id == ctx.user_id).all()]
    return {
        "total_tours": len(statuses),
        "upcoming_tours": sum(1 for s in statuses if is_upcoming(s)),
        "past_tours": sum(1 for s in statuses if is_past(s)),
    }


def _landlord_stats(db: Session, ctx: AuthContext) -> Stats:
    props = db.query(models.Property).filter(models.Property.owner_id == ctx.user_id).all()
    total = len(props)
    occupied = [p for p in props if p.status == "rented"]
    prop_ids = [p.id for p in props]
    tours = (
        _count_by(db, models.Tour.status, models.Tour.property_id.in_(prop_ids)) if prop_ids else {}
    )
    return {
        "total_properties": total,
        "occupied_properties": len(occupied),
        "vacant_properties": sum(1 for p in props if p.status == "available"),
        "maintenance_properties": sum(1 for p in props if p.status == "maintenance"),
        "occupancy_rate": round(len(occupied) * 100.0 / total, 1) if total else 0.0,
        "monthly_income": sum(p.price or 0 for p in occupied),
        "pending_tours": tours.get("scheduled", 0),
        "upcoming_tours": tours.get("scheduled", 0) + tours.get("confirmed", 0),
    }


def _agent_stats(db: Session, ctx: AuthContext) -> Stats:
    listings = _count_by(db, models.Property.status, models.Property.agent_id == ctx.user_id)
    tours = (
        db.query(models.Tour.status, func.count())
        .outerjoin(models.Property, models.Property.id == models.Tour.property_id)
        .filter(or_(models.Tour.agent_id == ctx.user_id, models.Property.agent_id == ctx.user_id))
        .group_by(models.Tour.status)
        .all()
    )
    stats: Stats = {
        "assigned_listings": sum(listings.values()),
        "active_listings": listings.get("available", 0),
    }
    by_status = dict(tours)
    for s in TOUR_STATUSES:
        stats[f"tours_{s}"] = by_status.get(s, 0)
    return stats


def _service_provider_stats(db: Session, ctx: AuthContext) -> Stats:
    rows = db.query(models.ServiceProvider).filter(models.ServiceProvider.owner_id == ctx.user_id).all()
    rated = [r.rating for r in rows if r.rating]
    return {
        "listings": len(rows),
        "average_rating": round(sum(rated) / len(rated), 2) if rated else 0.0,
        "total_reviews": sum(r.reviews or 0 for r in rows),
    }


def _admin_stats(db: Session) -> Stats:
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    # Alias tags (tenant, service) count towards their canonical role
    by_role: Dict[str, int] = {}
    for tag, n in _count_by(db, models.Profile.role).items():
        role = normalize_role(tag)
        by_role[role] = by_role.get(role, 0) + n
    stats: Stats = {
        "total_users": db.query(func.count(models.User.id)).scalar() or 0,
        "unverified_users": db.query(func.count(models.Profile.id)).filter(models.Profile.id_verified.is_(False)).scalar() or 0,
        # Landlords waiting on identity verification
        "pending_approvals": db.query(func.count(models.Profile.id))
        .filter(models.Profile.role == "landlord", models.Profile.id_verified.is_(False))
        .scalar()
        or 0,
        "new_users_7d": db.query(func.count(models.User.id)).filter(models.User.created_at >= week_ago).scalar() or 0,
    }
    for role in ROLES:
        stats[f"users_{role}"] = by_role.get(role, 0)
    props = _count_by(db, models.Property.status)
    stats["active_listings"] = props.get("available", 0)
    for s in PROPERTY_STATUSES:
        stats[f"properties_{s}"] = props.get(s, 0)
    tours = _count_by(db, models.Tour.status)
    for s in TOUR_STATUSES:
        stats[f"tours_{s}"] = tours.get(s, 0)
    return stats


@router.get("/dashboard", response_model=schemas.DashboardRead)
def get_dashboard(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> schemas.DashboardRead:
    if ctx.role == "landlord":
        stats = _landlord_stats(db, ctx)
    elif ctx.role == "agent":
        stats = _agent_stats(db, ctx)
    elif ctx.role == "service_provider":
        stats = _service_provider_stats(db, ctx)
    elif ctx.role == "admin":
        stats = _admin_stats(db)
    else:
        stats = _consumer_stats(db, ctx)
    return schemas.DashboardRead(role=ctx.role, stats=stats)
