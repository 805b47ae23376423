"""
Activity Service — weekly/daily actions under a TAR.

Marking an activity completed counts as the owner's daily log for the day
it happens (points + streak).  Each activity pays at most once per day, so
toggling it off and on again does not earn DAILY_LOG twice.
"""

import logging
from datetime import date

from fase.core.context import RequestContext
from fase.models import db
from fase.models.planning import Activity
from fase.services import access, activity_log_service, gamification_service
from fase.utils.dates import iso_week
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "type", "date", "week", "completed", "notes")


def _json_value(value):
    return value.isoformat() if hasattr(value, "isoformat") else value


def _credit_daily_log(activity: Activity) -> None:
    today = date.today()
    if not activity.completed or activity.credited_on == today:
        return
    activity.credited_on = today
    gamification_service.record_daily_log(activity.tar.big_rock.user_id, today)


def list_activities(ctx: RequestContext, tar_id: int) -> list[Activity]:
    return list(access.tar_for(ctx, tar_id).activities)


def get_activity(ctx: RequestContext, activity_id: int) -> Activity:
    return access.activity_for(ctx, activity_id)


def create_activity(ctx: RequestContext, tar_id: int, data: dict) -> Activity:
    tar = access.tar_for(ctx, tar_id, write=True)
    activity = Activity(
        tar=tar,
        title=data["title"],
        description=data.get("description"),
        type=data["type"],
        date=data["date"],
        week=data.get("week") or iso_week(data["date"]),
        completed=bool(data.get("completed")),
        notes=data.get("notes"),
    )
    db.session.add(activity)
    db.session.flush()

    activity_log_service.log_activity(ctx, "CREATE", activity)
    _credit_daily_log(activity)
    commit_or_raise("Activity")
    return activity


def update_activity(ctx: RequestContext, activity_id: int, data: dict) -> Activity:
    activity = access.activity_for(ctx, activity_id, write=True)

    if "date" in data and "week" not in data:
        data = {**data, "week": iso_week(data["date"])}

    changes = {}
    for field in EDITABLE_FIELDS:
        if field in data and getattr(activity, field) != data[field]:
            changes[field] = {
                "old": _json_value(getattr(activity, field)),
                "new": _json_value(data[field]),
            }
            setattr(activity, field, data[field])

    if not changes:
        return activity

    activity_log_service.log_activity(ctx, "UPDATE", activity, changes)
    if "completed" in changes:
        _credit_daily_log(activity)
    commit_or_raise("Activity")
    return activity


def toggle_activity(ctx: RequestContext, activity_id: int) -> Activity:
    activity = access.activity_for(ctx, activity_id, write=True)
    return update_activity(ctx, activity.id, {"completed": not activity.completed})


def delete_activity(ctx: RequestContext, activity_id: int) -> None:
    activity = access.activity_for(ctx, activity_id, write=True)
    activity_log_service.log_activity(ctx, "DELETE", activity)
    db.session.delete(activity)
    commit_or_raise("Activity")
    logger.info("Activity %d deleted by user %d", activity_id, ctx.user_id)
