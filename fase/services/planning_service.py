"""
Planning Service — month planning confirmation and weekly reviews.

A month's planning can be confirmed by its owner once every Big Rock of the
month has left CREADO.  Only roles allowed to unconfirm (ADMIN, SUPERADMIN)
can reopen it.  Weekly reviews are unique per user/company/week and feed
the gamification engine.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.core.exceptions import (
    AuthorizationDenied,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fase.core.roles import Visibility
from fase.models import db
from fase.models.auth import User
from fase.models.planning import BigRock, OpenMonth, WeeklyReview
from fase.services import gamification_service, supervisor_hierarchy
from fase.services.visibility import can_view_user
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)


def _open_month_row(user_id: int, month: str) -> OpenMonth | None:
    return db.session.execute(
        select(OpenMonth).where(OpenMonth.user_id == user_id, OpenMonth.month == month)
    ).scalar_one_or_none()


def _month_big_rocks(user_id: int, month: str, company_id: int | None) -> list[BigRock]:
    stmt = select(BigRock).where(BigRock.user_id == user_id, BigRock.month == month)
    if company_id is not None:
        stmt = stmt.where(BigRock.company_id == company_id)
    return list(db.session.execute(stmt).scalars().all())


def get_month_planning_status(ctx: RequestContext, month: str, *, user_id: int | None = None) -> dict:
    target = user_id or ctx.user_id
    if target != ctx.user_id and not can_view_user(ctx, target):
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    return _planning_status(target, month, ctx.company_id)


def _planning_status(user_id: int, month: str, company_id: int | None) -> dict:
    big_rocks = _month_big_rocks(user_id, month, company_id)
    row = _open_month_row(user_id, month)
    total = len(big_rocks)
    confirmed = sum(1 for br in big_rocks if br.status != "CREADO")
    is_confirmed = bool(row and row.is_planning_confirmed)
    return {
        "month": month,
        "userId": user_id,
        "totalBigRocks": total,
        "confirmedBigRocks": confirmed,
        "isPlanningConfirmed": is_confirmed,
        "planningConfirmedAt": (
            row.planning_confirmed_at.isoformat() if row and row.planning_confirmed_at else None
        ),
        "canConfirmPlanning": total > 0 and confirmed == total and not is_confirmed,
    }


def confirm_month_planning(ctx: RequestContext, month: str) -> dict:
    big_rocks = _month_big_rocks(ctx.user_id, month, ctx.company_id)
    if not big_rocks:
        raise ValidationError("No hay Big Rocks para este mes", details={"month": month})
    if any(br.status == "CREADO" for br in big_rocks):
        raise ValidationError(
            "Todos los Big Rocks deben estar confirmados antes de confirmar la planificacion del mes",
            details={"month": month},
        )

    row = _open_month_row(ctx.user_id, month)
    if row is None:
        row = OpenMonth(user_id=ctx.user_id, month=month)
        db.session.add(row)
    row.is_planning_confirmed = True
    row.planning_confirmed_at = datetime.now(timezone.utc)
    commit_or_raise("OpenMonth", "month")

    logger.info("User %d confirmed planning for %s", ctx.user_id, month)
    return _planning_status(ctx.user_id, month, ctx.company_id)


def unconfirm_month_planning(ctx: RequestContext, month: str, *, user_id: int | None = None) -> dict:
    if not ctx.policy.can_unconfirm_planning:
        raise AuthorizationDenied(
            "No tienes permiso para desconfirmar la planificacion", user_id=ctx.user_id,
        )
    target = user_id or ctx.user_id
    row = _open_month_row(target, month)
    if row is None or not row.is_planning_confirmed:
        raise ValidationError("La planificacion no esta confirmada", details={"month": month})

    row.is_planning_confirmed = False
    row.planning_confirmed_at = None
    commit_or_raise("OpenMonth", "month")

    logger.info("User %d unconfirmed planning of user %d for %s", ctx.user_id, target, month)
    return _planning_status(target, month, ctx.company_id)


def list_supervisees_planning(ctx: RequestContext, month: str) -> list[dict]:
    """Planning status of every user the requester directly supervises."""
    if ctx.policy.visibility is Visibility.SELF:
        raise AuthorizationDenied("No tienes permiso para ver supervisados", user_id=ctx.user_id)
    if ctx.company_id is None:
        ids = supervisor_hierarchy.supervisee_ids(ctx.user_id)
        users = db.session.execute(
            select(User).where(User.id.in_(ids)).order_by(User.name, User.email)
        ).scalars().all()
    else:
        users = supervisor_hierarchy.list_supervisees(ctx.user_id, ctx.company_id)
    return [
        {
            **user.to_summary(),
            "image": user.image,
            "planningStatus": _planning_status(user.id, month, ctx.company_id),
        }
        for user in users
    ]


# ── Weekly reviews ───────────────────────────────────────────────────────────

REVIEW_FIELDS = ("accomplishments", "blockers", "learnings", "next_week_focus")


def get_weekly_review(ctx: RequestContext, week: str) -> WeeklyReview | None:
    stmt = select(WeeklyReview).where(
        WeeklyReview.user_id == ctx.user_id,
        WeeklyReview.week == week,
    )
    if ctx.company_id is not None:
        stmt = stmt.where(WeeklyReview.company_id == ctx.company_id)
    return db.session.execute(stmt).scalars().first()


def create_weekly_review(ctx: RequestContext, data: dict) -> dict:
    if ctx.company_id is None:
        raise ValidationError("No se ha seleccionado empresa")
    if get_weekly_review(ctx, data["week"]) is not None:
        raise ConflictError("WeeklyReview", "week", data["week"])

    review = WeeklyReview(
        user_id=ctx.user_id,
        company_id=ctx.company_id,
        week=data["week"],
        **{field: data.get(field) or "" for field in REVIEW_FIELDS},
    )
    db.session.add(review)
    db.session.flush()
    result = gamification_service.record_weekly_review(ctx.user_id)
    commit_or_raise("WeeklyReview", "week")

    logger.info("User %d submitted weekly review %s", ctx.user_id, review.week)
    return {"review": review.to_dict(), "gamification": result}


def update_weekly_review(ctx: RequestContext, review_id: int, data: dict) -> WeeklyReview:
    review = db.session.get(WeeklyReview, review_id)
    if review is None or review.user_id != ctx.user_id:
        raise NotFoundError("Revision semanal", review_id)
    for field in REVIEW_FIELDS:
        if field in data:
            setattr(review, field, data[field] or "")
    commit_or_raise("WeeklyReview")
    return review
