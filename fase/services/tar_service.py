"""
TAR Service — sub-tasks of a Big Rock and their key-people links.

Completing a TAR credits the Big Rock owner in the gamification engine the
first time it reaches COMPLETADA.  Reopening and completing it again does
not pay twice (``TAR.completion_credited``).
"""

import logging

from fase.core.context import RequestContext
from fase.core.exceptions import ValidationError
from fase.models import db
from fase.models.planning import TAR
from fase.services import access, activity_log_service, gamification_service
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("description", "status", "progress")


def _credit_completion(tar: TAR) -> None:
    if tar.status != "COMPLETADA" or tar.completion_credited:
        return
    tar.completion_credited = True
    gamification_service.record_tar_completed(tar.big_rock.user_id)


def list_tars(ctx: RequestContext, big_rock_id: int) -> list[TAR]:
    return list(access.big_rock_for(ctx, big_rock_id).tars)


def get_tar(ctx: RequestContext, tar_id: int) -> TAR:
    return access.tar_for(ctx, tar_id)


def create_tar(ctx: RequestContext, big_rock_id: int, data: dict) -> TAR:
    big_rock = access.big_rock_for(ctx, big_rock_id, write=True)
    tar = TAR(
        big_rock=big_rock,
        description=data["description"],
        status=data.get("status") or "PENDIENTE",
        progress=data.get("progress") or 0,
    )
    db.session.add(tar)
    db.session.flush()

    activity_log_service.log_tar(ctx, "CREATE", tar)
    _credit_completion(tar)
    commit_or_raise("TAR")
    logger.info("TAR %d created under BigRock %d", tar.id, big_rock.id)
    return tar


def update_tar(ctx: RequestContext, tar_id: int, data: dict) -> TAR:
    tar = access.tar_for(ctx, tar_id, write=True)

    changes = {}
    for field in EDITABLE_FIELDS:
        if field in data and getattr(tar, field) != data[field]:
            changes[field] = {"old": getattr(tar, field), "new": data[field]}
            setattr(tar, field, data[field])

    if not changes:
        return tar

    activity_log_service.log_tar(ctx, "UPDATE", tar, changes)
    _credit_completion(tar)
    commit_or_raise("TAR")
    return tar


def delete_tar(ctx: RequestContext, tar_id: int) -> None:
    tar = access.tar_for(ctx, tar_id, write=True)
    activity_log_service.log_tar(ctx, "DELETE", tar)
    db.session.delete(tar)
    commit_or_raise("TAR")
    logger.info("TAR %d deleted by user %d", tar_id, ctx.user_id)


def link_key_person(ctx: RequestContext, tar_id: int, person_id: int) -> TAR:
    tar = access.tar_for(ctx, tar_id, write=True)
    person = access.key_person_for(ctx, person_id)
    if person.user_id != tar.big_rock.user_id:
        raise ValidationError(
            "La persona clave pertenece a otro usuario", details={"keyPersonId": person_id},
        )
    if person not in tar.key_people:
        tar.key_people.append(person)
        activity_log_service.log_tar(
            ctx, "UPDATE", tar, {"keyPeople": {"added": person.full_name}},
        )
        commit_or_raise("TAR")
    return tar


def unlink_key_person(ctx: RequestContext, tar_id: int, person_id: int) -> TAR:
    tar = access.tar_for(ctx, tar_id, write=True)
    person = access.key_person_for(ctx, person_id)
    if person in tar.key_people:
        tar.key_people.remove(person)
        activity_log_service.log_tar(
            ctx, "UPDATE", tar, {"keyPeople": {"removed": person.full_name}},
        )
        commit_or_raise("TAR")
    return tar
