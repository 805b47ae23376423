"""
Activity Log Service — write and query the planning audit trail.

Writes:
    ``log_<entity>_<action>`` helpers append one ActivityLog row through
    ``write_activity_log`` (flush only).  They are called by the entity
    services inside the same transaction as the mutation.

Reads:
    ``get_activity_logs`` returns a page of logs restricted to the
    requester's visibility set, newest first.
    ``get_supervisee_changes`` groups recent supervisee logs for the
    supervisor's notification feed.
"""

import logging
import math
from datetime import datetime

from sqlalchemy import func, select

from fase.core.context import RequestContext
from fase.core.exceptions import AuthorizationDenied, ValidationError
from fase.models import db
from fase.models.activity_log import (
    LOG_ACTIONS,
    LOG_ENTITY_TYPES,
    ActivityLog,
    write_activity_log,
)
from fase.models.planning import TAR, Activity, KeyMeeting
from fase.services import supervisor_hierarchy
from fase.services.visibility import viewable_user_ids

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
SUPERVISEE_CHANGES_LIMIT = 50
TAR_TITLE_MAX = 50


# ── Query ────────────────────────────────────────────────────────────────────


def get_activity_logs(
    ctx: RequestContext,
    *,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    entity_type: str | None = None,
    action: str | None = None,
    user_id: int | None = None,
) -> dict:
    """Return one page of activity logs visible to *ctx*.

    Args:
        ctx: Requester.
        page: 1-based page number.
        limit: Page size, 1..100.
        entity_type: Optional equality filter (BIG_ROCK, TAR, ...).
        action: Optional equality filter (CREATE, UPDATE, DELETE).
        user_id: Optional author filter; must be inside the visibility set.

    Returns:
        ``{"logs": [...], "pagination": {page, limit, total, totalPages, hasMore}}``

    Raises:
        ValidationError: page/limit out of range, unknown entity type or action.
        AuthorizationDenied: *user_id* is outside the requester's visibility set.
    """
    if page < 1:
        raise ValidationError("page debe ser mayor o igual a 1", details={"page": page})
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(
            f"limit debe estar entre 1 y {MAX_LIMIT}", details={"limit": limit},
        )
    if entity_type is not None and entity_type not in LOG_ENTITY_TYPES:
        raise ValidationError("entityType inválido", details={"entityType": entity_type})
    if action is not None and action not in LOG_ACTIONS:
        raise ValidationError("action inválida", details={"action": action})

    allowed = viewable_user_ids(ctx)
    if user_id is not None:
        if user_id not in allowed:
            logger.warning(
                "User %d requested activity logs of user %d outside visibility",
                ctx.user_id, user_id,
            )
            raise AuthorizationDenied(
                "No tienes permiso para ver la actividad de este usuario",
                user_id=ctx.user_id,
            )
        conditions = [ActivityLog.user_id == user_id]
    else:
        conditions = [ActivityLog.user_id.in_(allowed)]

    if entity_type:
        conditions.append(ActivityLog.entity_type == entity_type)
    if action:
        conditions.append(ActivityLog.action == action)

    total = db.session.execute(
        select(func.count(ActivityLog.id)).where(*conditions)
    ).scalar_one()

    stmt = (
        select(ActivityLog)
        .where(*conditions)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    logs = db.session.execute(stmt).scalars().all()

    return {
        "logs": [log.to_dict() for log in logs],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
            "hasMore": page * limit < total,
        },
    }


def get_supervisee_changes(ctx: RequestContext, since: datetime | None = None) -> list[dict]:
    """Latest changes by the requester's direct supervisees, grouped per supervisee."""
    supervisee_ids = supervisor_hierarchy.supervisee_ids(ctx.user_id, ctx.company_id)
    if not supervisee_ids:
        return []

    stmt = select(ActivityLog).where(ActivityLog.user_id.in_(supervisee_ids))
    if since is not None:
        stmt = stmt.where(ActivityLog.timestamp > since)
    stmt = stmt.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(
        SUPERVISEE_CHANGES_LIMIT
    )

    groups: dict[int, dict] = {}
    for log in db.session.execute(stmt).scalars().all():
        group = groups.get(log.user_id)
        if group is None:
            group = groups[log.user_id] = {
                "superviseeId": log.user_id,
                "superviseeName": log.user.name or log.user.email,
                "superviseeEmail": log.user.email,
                "changes": [],
            }
        group["changes"].append({
            "action": log.action,
            "entityType": log.entity_type,
            "entityId": log.entity_id,
            "entityTitle": log.entity_title,
            "description": log.description,
            "link": build_entity_link(log.entity_type, log.entity_id),
            "createdAt": log.timestamp.isoformat() if log.timestamp else None,
        })
    return list(groups.values())


def build_entity_link(entity_type: str, entity_id: int) -> str:
    """UI deep link for a logged entity; ``/big-rocks`` once it is gone."""
    if entity_type == "BIG_ROCK":
        return f"/big-rocks/{entity_id}"
    if entity_type == "TAR":
        tar = db.session.get(TAR, entity_id)
        if tar:
            return f"/big-rocks/{tar.big_rock_id}/tars/{entity_id}"
    elif entity_type == "ACTIVITY":
        activity = db.session.get(Activity, entity_id)
        if activity:
            return (
                f"/big-rocks/{activity.tar.big_rock_id}/tars/{activity.tar_id}"
                f"/activities/{entity_id}"
            )
    elif entity_type == "KEY_MEETING":
        meeting = db.session.get(KeyMeeting, entity_id)
        if meeting:
            return f"/big-rocks/{meeting.big_rock_id}/meetings/{entity_id}"
    elif entity_type == "KEY_PERSON":
        return f"/key-people/{entity_id}"
    return "/big-rocks"


# ── Writers ──────────────────────────────────────────────────────────────────

_VERBS = {"CREATE": "Creo", "UPDATE": "Actualizo", "DELETE": "Elimino"}
_NOUNS = {
    "BIG_ROCK": "el Big Rock",
    "TAR": "la TAR",
    "ACTIVITY": "la actividad",
    "KEY_MEETING": "la reunion clave",
    "KEY_PERSON": "la persona clave",
}


def truncate_title(text: str, max_len: int = TAR_TITLE_MAX) -> str:
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def record(
    ctx: RequestContext,
    action: str,
    entity_type: str,
    entity_id: int,
    title: str,
    *,
    company_id: int | None = None,
    changes: dict | None = None,
) -> ActivityLog:
    """Append a log row describing *action* on an entity, attributed to *ctx*."""
    description = f'{_VERBS[action]} {_NOUNS[entity_type]} "{title}"'
    metadata = {"changes": changes} if changes else None
    return write_activity_log(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_title=title,
        description=description,
        metadata=metadata,
        user_id=ctx.user_id,
        company_id=company_id if company_id is not None else ctx.company_id,
    )


def log_big_rock(ctx, action, big_rock, changes=None):
    return record(
        ctx, action, "BIG_ROCK", big_rock.id, big_rock.title,
        company_id=big_rock.company_id, changes=changes,
    )


def log_tar(ctx, action, tar, changes=None):
    return record(
        ctx, action, "TAR", tar.id, truncate_title(tar.description),
        company_id=tar.big_rock.company_id, changes=changes,
    )


def log_activity(ctx, action, activity, changes=None):
    return record(
        ctx, action, "ACTIVITY", activity.id, activity.title,
        company_id=activity.tar.big_rock.company_id, changes=changes,
    )


def log_key_meeting(ctx, action, meeting, changes=None):
    return record(
        ctx, action, "KEY_MEETING", meeting.id, meeting.title,
        company_id=meeting.big_rock.company_id, changes=changes,
    )


def log_key_person(ctx, action, person, changes=None):
    return record(
        ctx, action, "KEY_PERSON", person.id, person.full_name,
        company_id=person.company_id, changes=changes,
    )
