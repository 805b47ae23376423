"""Key Meeting Service — meetings tied to a Big Rock."""

import logging

from fase.core.context import RequestContext
from fase.models import db
from fase.models.planning import KeyMeeting
from fase.services import access, activity_log_service
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title", "description", "date", "completed", "outcome", "objective", "expected_decision",
)


def list_key_meetings(ctx: RequestContext, big_rock_id: int) -> list[KeyMeeting]:
    return list(access.big_rock_for(ctx, big_rock_id).key_meetings)


def get_key_meeting(ctx: RequestContext, meeting_id: int) -> KeyMeeting:
    return access.key_meeting_for(ctx, meeting_id)


def create_key_meeting(ctx: RequestContext, big_rock_id: int, data: dict) -> KeyMeeting:
    big_rock = access.big_rock_for(ctx, big_rock_id, write=True)
    meeting = KeyMeeting(
        big_rock=big_rock,
        title=data["title"],
        description=data.get("description"),
        date=data["date"],
        completed=bool(data.get("completed")),
        outcome=data.get("outcome"),
        objective=data.get("objective"),
        expected_decision=data.get("expected_decision"),
    )
    db.session.add(meeting)
    db.session.flush()
    activity_log_service.log_key_meeting(ctx, "CREATE", meeting)
    commit_or_raise("KeyMeeting")
    return meeting


def update_key_meeting(ctx: RequestContext, meeting_id: int, data: dict) -> KeyMeeting:
    meeting = access.key_meeting_for(ctx, meeting_id, write=True)
    changes = {}
    for field in EDITABLE_FIELDS:
        if field in data and getattr(meeting, field) != data[field]:
            old, new = getattr(meeting, field), data[field]
            changes[field] = {
                "old": old.isoformat() if field == "date" and old else old,
                "new": new.isoformat() if field == "date" and new else new,
            }
            setattr(meeting, field, new)
    if changes:
        activity_log_service.log_key_meeting(ctx, "UPDATE", meeting, changes)
        commit_or_raise("KeyMeeting")
    return meeting


def delete_key_meeting(ctx: RequestContext, meeting_id: int) -> None:
    meeting = access.key_meeting_for(ctx, meeting_id, write=True)
    activity_log_service.log_key_meeting(ctx, "DELETE", meeting)
    db.session.delete(meeting)
    commit_or_raise("KeyMeeting")
    logger.info("KeyMeeting %d deleted by user %d", meeting_id, ctx.user_id)
