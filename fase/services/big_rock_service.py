"""
Big Rock Service — monthly strategic goals.

Every mutation appends an ActivityLog row and commits once; creation also
feeds the gamification engine inside the same transaction.
"""

import logging

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.core.exceptions import AuthorizationDenied, NotFoundError, ValidationError
from fase.models import db
from fase.models.auth import User
from fase.models.planning import BIG_ROCK_STATUSES, BigRock
from fase.services import access, activity_log_service, gamification_service
from fase.services.visibility import can_view_user
from fase.utils.dates import is_past_month
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "indicator", "num_tars", "month", "status", "category")


def _target_user(ctx: RequestContext, user_id: int | None) -> int:
    if user_id is None or user_id == ctx.user_id:
        return ctx.user_id
    if not can_view_user(ctx, user_id):
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    return user_id


def list_big_rocks(ctx: RequestContext, *, user_id: int | None = None, month: str | None = None) -> list[BigRock]:
    """Big Rocks of the requester (or a user they may view), newest first."""
    target = _target_user(ctx, user_id)
    stmt = select(BigRock).where(BigRock.user_id == target)
    if month:
        stmt = stmt.where(BigRock.month == month)
    if ctx.company_id is not None:
        stmt = stmt.where(BigRock.company_id == ctx.company_id)
    stmt = stmt.order_by(BigRock.created_at.desc(), BigRock.id.desc())
    return list(db.session.execute(stmt).scalars().all())


def get_big_rock(ctx: RequestContext, big_rock_id: int) -> BigRock:
    return access.big_rock_for(ctx, big_rock_id)


def create_big_rock(ctx: RequestContext, data: dict) -> BigRock:
    if is_past_month(data["month"]):
        raise ValidationError(
            "No se pueden crear Big Rocks para meses pasados", details={"month": data["month"]},
        )

    big_rock = BigRock(
        user_id=ctx.user_id,
        company_id=ctx.company_id,
        title=data["title"],
        description=data["description"],
        indicator=data["indicator"],
        num_tars=data["num_tars"],
        month=data["month"],
        status=data.get("status") or "CREADO",
        category=data.get("category"),
    )
    db.session.add(big_rock)
    db.session.flush()

    activity_log_service.log_big_rock(ctx, "CREATE", big_rock)
    gamification_service.record_big_rock_created(ctx.user_id)
    commit_or_raise("BigRock")

    logger.info("BigRock %d created by user %d for %s", big_rock.id, ctx.user_id, big_rock.month)
    return big_rock


def update_big_rock(ctx: RequestContext, big_rock_id: int, data: dict) -> BigRock:
    big_rock = access.big_rock_for(ctx, big_rock_id, write=True)

    new_month = data.get("month")
    if new_month and is_past_month(new_month):
        raise ValidationError(
            "No se puede mover un Big Rock a un mes pasado", details={"month": new_month},
        )
    if "status" in data and data["status"] not in BIG_ROCK_STATUSES:
        raise ValidationError("Estado inválido", details={"status": data["status"]})

    changes = {}
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        old = getattr(big_rock, field)
        if old != data[field]:
            changes[field] = {"old": old, "new": data[field]}
            setattr(big_rock, field, data[field])

    if changes:
        activity_log_service.log_big_rock(ctx, "UPDATE", big_rock, changes)
        commit_or_raise("BigRock")
        logger.info("BigRock %d updated by user %d: %s", big_rock.id, ctx.user_id, sorted(changes))
    return big_rock


def delete_big_rock(ctx: RequestContext, big_rock_id: int) -> None:
    big_rock = access.big_rock_for(ctx, big_rock_id, write=True)
    activity_log_service.log_big_rock(ctx, "DELETE", big_rock)
    db.session.delete(big_rock)
    commit_or_raise("BigRock")
    logger.info("BigRock %d deleted by user %d", big_rock_id, ctx.user_id)


def get_month_stats(ctx: RequestContext, month: str, *, user_id: int | None = None) -> dict:
    """Status distribution and TAR progress of one month's Big Rocks."""
    big_rocks = list_big_rocks(ctx, user_id=user_id, month=month)

    distribution = {status: 0 for status in BIG_ROCK_STATUSES}
    total_tars = completed_tars = progress_sum = 0
    for big_rock in big_rocks:
        distribution[big_rock.status] = distribution.get(big_rock.status, 0) + 1
        for tar in big_rock.tars:
            total_tars += 1
            progress_sum += tar.progress or 0
            if tar.status == "COMPLETADA":
                completed_tars += 1

    return {
        "month": month,
        "totalBigRocks": len(big_rocks),
        "statusDistribution": distribution,
        "progress": {
            "totalTars": total_tars,
            "completedTars": completed_tars,
            "avgProgress": round(progress_sum / total_tars) if total_tars else 0,
            "completionRate": round(completed_tars * 100 / total_tars) if total_tars else 0,
        },
    }


def list_supervised(ctx: RequestContext, user_id: int, *, month: str | None = None) -> dict:
    """A supervisee's Big Rocks, for their supervisor (or an admin)."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Usuario", user_id)
    if user_id == ctx.user_id or not can_view_user(ctx, user_id):
        raise AuthorizationDenied("No eres supervisor de este usuario", user_id=ctx.user_id)
    big_rocks = list_big_rocks(ctx, user_id=user_id, month=month)
    return {
        "user": user.to_summary(),
        "bigRocks": [br.to_dict() for br in big_rocks],
    }
