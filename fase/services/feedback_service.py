"""
Feedback Service — supervisor comments on a supervisee's Big Rock or month plan.

Who may give feedback:
    - the owner's direct supervisor in the company of the target;
    - roles allowed to modify others (ADMIN, SUPERADMIN).
Nobody gives feedback on their own plan.

There is one feedback row per target.  Giving feedback again replaces the
comment and rating and records the new author.  Feedback on a CONFIRMADO
Big Rock of a current or future month moves it to FEEDBACK_RECIBIDO.

Reading follows the Big Rock / user visibility rules.  Only the author or
an ADMIN / SUPERADMIN deletes feedback.
"""

import logging

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.core.exceptions import AuthorizationDenied, NotFoundError, ValidationError
from fase.core.roles import Visibility
from fase.models import db
from fase.models.auth import User
from fase.models.feedback import Feedback
from fase.models.planning import BigRock
from fase.services import access, activity_log_service, supervisor_hierarchy
from fase.services.visibility import can_view_user
from fase.utils.dates import is_past_month
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

FEEDBACK_STATUS = "FEEDBACK_RECIBIDO"


def can_give_feedback(ctx: RequestContext, owner_id: int, company_id: int | None) -> bool:
    if owner_id == ctx.user_id:
        return False
    if ctx.policy.can_modify_others:
        return True
    if ctx.policy.visibility is not Visibility.TEAM or company_id is None:
        return False
    return supervisor_hierarchy.is_supervisor_of(ctx.user_id, owner_id, company_id)


def _check_can_give(ctx: RequestContext, owner_id: int, company_id: int | None) -> None:
    if owner_id == ctx.user_id:
        raise ValidationError("No puedes darte feedback a ti mismo")
    if not can_give_feedback(ctx, owner_id, company_id):
        logger.warning(
            "User %d denied feedback for user %d (company %s)", ctx.user_id, owner_id, company_id,
        )
        raise AuthorizationDenied(
            "No tienes permiso para dar feedback a este objetivo", user_id=ctx.user_id,
        )


def _month_stmt(user_id: int, month: str, company_id: int | None):
    stmt = select(Feedback).where(
        Feedback.target_type == "MONTH_PLANNING",
        Feedback.user_id == user_id,
        Feedback.month == month,
    )
    if company_id is None:
        return stmt.where(Feedback.company_id.is_(None))
    return stmt.where(Feedback.company_id == company_id)


def _apply(feedback: Feedback, ctx: RequestContext, comment: str, rating: int | None) -> None:
    feedback.comment = comment
    feedback.rating = rating
    feedback.supervisor_id = ctx.user_id


# ── Big Rock feedback ────────────────────────────────────────────────────────


def give_big_rock_feedback(
    ctx: RequestContext, big_rock_id: int, comment: str, rating: int | None = None,
) -> tuple[Feedback, bool]:
    """Create or replace the feedback on a Big Rock.  Returns ``(feedback, created)``."""
    big_rock = db.session.get(BigRock, big_rock_id)
    if big_rock is None:
        raise NotFoundError("Big Rock", big_rock_id)
    _check_can_give(ctx, big_rock.user_id, big_rock.company_id)

    feedback = big_rock.feedback
    created = feedback is None
    if created:
        feedback = Feedback(
            target_type="BIG_ROCK",
            big_rock=big_rock,
            user_id=big_rock.user_id,
            company_id=big_rock.company_id,
        )
        db.session.add(feedback)
    _apply(feedback, ctx, comment, rating)

    if big_rock.status == "CONFIRMADO" and not is_past_month(big_rock.month):
        big_rock.status = FEEDBACK_STATUS
        activity_log_service.log_big_rock(
            ctx, "UPDATE", big_rock, {"status": {"old": "CONFIRMADO", "new": FEEDBACK_STATUS}},
        )

    commit_or_raise("Feedback")
    logger.info(
        "User %d %s feedback on BigRock %d", ctx.user_id, "gave" if created else "updated", big_rock.id,
    )
    return feedback, created


def get_big_rock_feedback(ctx: RequestContext, big_rock_id: int) -> Feedback | None:
    return access.big_rock_for(ctx, big_rock_id).feedback


# ── Month planning feedback ──────────────────────────────────────────────────


def give_month_feedback(
    ctx: RequestContext, user_id: int, month: str, comment: str, rating: int | None = None,
) -> tuple[Feedback, bool]:
    """Create or replace the feedback on *user_id*'s plan for *month*."""
    if db.session.get(User, user_id) is None:
        raise NotFoundError("Usuario", user_id)
    _check_can_give(ctx, user_id, ctx.company_id)

    has_plan = db.session.execute(
        select(BigRock.id).where(BigRock.user_id == user_id, BigRock.month == month).limit(1)
    ).first()
    if has_plan is None:
        raise ValidationError("No hay Big Rocks para este mes", details={"month": month})

    feedback = db.session.execute(_month_stmt(user_id, month, ctx.company_id)).scalar_one_or_none()
    created = feedback is None
    if created:
        feedback = Feedback(
            target_type="MONTH_PLANNING", month=month, user_id=user_id, company_id=ctx.company_id,
        )
        db.session.add(feedback)
    _apply(feedback, ctx, comment, rating)
    commit_or_raise("Feedback")

    logger.info("User %d gave feedback on %s plan of user %d", ctx.user_id, month, user_id)
    return feedback, created


def get_month_feedback(ctx: RequestContext, month: str, *, user_id: int | None = None) -> Feedback | None:
    target = user_id or ctx.user_id
    if not can_view_user(ctx, target):
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    return db.session.execute(_month_stmt(target, month, ctx.company_id)).scalar_one_or_none()


# ── Delete ───────────────────────────────────────────────────────────────────


def delete_feedback(ctx: RequestContext, feedback_id: int) -> None:
    feedback = db.session.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback", feedback_id)
    if feedback.supervisor_id != ctx.user_id and not ctx.policy.can_modify_others:
        raise AuthorizationDenied(
            "No tienes permiso para eliminar este feedback", user_id=ctx.user_id,
        )
    db.session.delete(feedback)
    commit_or_raise("Feedback")
    logger.info("Feedback %d deleted by user %d", feedback_id, ctx.user_id)
