"""
Entity access checks shared by the planning services.

Read access to a Big Rock (and everything under it):
    owner, a role with ALL visibility, or the owner's direct supervisor in
    the Big Rock's company.

Write access:
    owner or a role allowed to modify others, and never in a past month.
"""

import logging

from fase.core.context import RequestContext
from fase.core.exceptions import AuthorizationDenied, NotFoundError
from fase.core.roles import Visibility
from fase.models import db
from fase.models.planning import TAR, Activity, BigRock, KeyMeeting, KeyPerson
from fase.services import supervisor_hierarchy
from fase.utils.dates import is_past_month

logger = logging.getLogger(__name__)


def can_read_big_rock(ctx: RequestContext, big_rock: BigRock) -> bool:
    if big_rock.user_id == ctx.user_id:
        return True
    if ctx.policy.visibility is Visibility.ALL:
        return True
    if ctx.policy.visibility is Visibility.TEAM and big_rock.company_id is not None:
        return supervisor_hierarchy.is_supervisor_of(
            ctx.user_id, big_rock.user_id, big_rock.company_id,
        )
    return False


def can_modify_big_rock(ctx: RequestContext, big_rock: BigRock) -> bool:
    if is_past_month(big_rock.month):
        return False
    return big_rock.user_id == ctx.user_id or ctx.policy.can_modify_others


def _check_write(ctx: RequestContext, big_rock: BigRock) -> None:
    if is_past_month(big_rock.month):
        raise AuthorizationDenied(
            "Los meses pasados son de solo lectura", user_id=ctx.user_id,
        )
    if not can_modify_big_rock(ctx, big_rock):
        logger.warning(
            "User %d denied write on BigRock %d owned by %d",
            ctx.user_id, big_rock.id, big_rock.user_id,
        )
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)


def big_rock_for(ctx: RequestContext, big_rock_id: int, *, write: bool = False) -> BigRock:
    """Load a Big Rock the requester may read (or modify, with ``write``)."""
    big_rock = db.session.get(BigRock, big_rock_id)
    if big_rock is None:
        raise NotFoundError("Big Rock", big_rock_id)
    if not can_read_big_rock(ctx, big_rock):
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    if write:
        _check_write(ctx, big_rock)
    return big_rock


def tar_for(ctx: RequestContext, tar_id: int, *, write: bool = False) -> TAR:
    tar = db.session.get(TAR, tar_id)
    if tar is None:
        raise NotFoundError("TAR", tar_id)
    big_rock_for(ctx, tar.big_rock_id, write=write)
    return tar


def activity_for(ctx: RequestContext, activity_id: int, *, write: bool = False) -> Activity:
    activity = db.session.get(Activity, activity_id)
    if activity is None:
        raise NotFoundError("Actividad", activity_id)
    big_rock_for(ctx, activity.tar.big_rock_id, write=write)
    return activity


def key_meeting_for(ctx: RequestContext, meeting_id: int, *, write: bool = False) -> KeyMeeting:
    meeting = db.session.get(KeyMeeting, meeting_id)
    if meeting is None:
        raise NotFoundError("Reunión clave", meeting_id)
    big_rock_for(ctx, meeting.big_rock_id, write=write)
    return meeting


def key_person_for(ctx: RequestContext, person_id: int) -> KeyPerson:
    """Key people are private to their owner; admins may manage them too."""
    person = db.session.get(KeyPerson, person_id)
    if person is None:
        raise NotFoundError("Persona clave", person_id)
    if person.user_id == ctx.user_id or ctx.policy.can_modify_others:
        return person
    raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
