"""
Calendar Aggregator — month, week and day projections of a user's plan.

Each projection carries the month ``state``:

    past           month before the current one (read-only)
    current        the current month
    future-open    a later month the user has opened for planning
    future-locked  a later month not opened yet

and a ``categorySummary`` with ``{total, completed}`` for every FASE
category.  The month view counts the TARs of the month's Big Rocks
(completed = COMPLETADA); week and day views count the activities and key
meetings inside the bucket (completed = flag).  Items whose Big Rock has no
category are left out of the summary.
"""

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.core.exceptions import AuthorizationDenied, ValidationError
from fase.models import db
from fase.models.planning import FASE_CATEGORIES, TAR, Activity, BigRock, KeyMeeting, OpenMonth
from fase.services.visibility import can_view_user
from fase.utils.dates import (
    current_month,
    format_month,
    is_future_month,
    iso_week,
    month_grid,
    month_label,
    week_bounds,
    week_label,
)
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

DAY_NAMES_ES = ("Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo")


# ── Helpers ──────────────────────────────────────────────────────────────────


def _target_user(ctx: RequestContext, user_id: int | None) -> int:
    if user_id is None or user_id == ctx.user_id:
        return ctx.user_id
    if not can_view_user(ctx, user_id):
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    return user_id


def open_months(user_id: int) -> list[str]:
    stmt = select(OpenMonth.month).where(OpenMonth.user_id == user_id).order_by(OpenMonth.month)
    return list(db.session.execute(stmt).scalars().all())


def month_state(month: str, opened: list[str], today: date | None = None) -> str:
    current = current_month(today)
    if month < current:
        return "past"
    if month == current:
        return "current"
    return "future-open" if month in opened else "future-locked"


def empty_category_summary() -> dict:
    return {category: {"total": 0, "completed": 0} for category in FASE_CATEGORIES}


def _count(summary: dict, category: str | None, completed: bool) -> None:
    if category not in summary:
        return
    summary[category]["total"] += 1
    if completed:
        summary[category]["completed"] += 1


def _big_rock_scope(stmt, user_id: int, ctx: RequestContext):
    stmt = stmt.where(BigRock.user_id == user_id)
    if ctx.company_id is not None:
        stmt = stmt.where(BigRock.company_id == ctx.company_id)
    return stmt


def _activities_between(ctx, user_id: int, start: date, end: date) -> list[Activity]:
    stmt = (
        select(Activity)
        .join(TAR, TAR.id == Activity.tar_id)
        .join(BigRock, BigRock.id == TAR.big_rock_id)
        .where(Activity.date >= start, Activity.date <= end)
    )
    stmt = _big_rock_scope(stmt, user_id, ctx).order_by(Activity.date, Activity.id)
    return list(db.session.execute(stmt).scalars().all())


def _meetings_between(ctx, user_id: int, start: date, end: date) -> list[KeyMeeting]:
    stmt = (
        select(KeyMeeting)
        .join(BigRock, BigRock.id == KeyMeeting.big_rock_id)
        .where(
            KeyMeeting.date >= datetime.combine(start, time.min),
            KeyMeeting.date < datetime.combine(end + timedelta(days=1), time.min),
        )
    )
    stmt = _big_rock_scope(stmt, user_id, ctx).order_by(KeyMeeting.date, KeyMeeting.id)
    return list(db.session.execute(stmt).scalars().all())


def _activity_summary(activity: Activity) -> dict:
    tar = activity.tar
    return {
        "id": activity.id,
        "title": activity.title,
        "completed": activity.completed,
        "type": activity.type,
        "tarId": tar.id,
        "tarDescription": tar.description,
        "bigRockId": tar.big_rock_id,
        "bigRockTitle": tar.big_rock.title,
        "category": tar.big_rock.category,
    }


def _meeting_summary(meeting: KeyMeeting) -> dict:
    return {
        "id": meeting.id,
        "title": meeting.title,
        "completed": meeting.completed,
        "date": meeting.date.isoformat(),
        "bigRockId": meeting.big_rock_id,
        "bigRockTitle": meeting.big_rock.title,
        "category": meeting.big_rock.category,
    }


def _bucket_summary(activities, meetings) -> dict:
    summary = empty_category_summary()
    for activity in activities:
        _count(summary, activity.tar.big_rock.category, activity.completed)
    for meeting in meetings:
        _count(summary, meeting.big_rock.category, meeting.completed)
    return summary


def _days(dates, month: str, activities, meetings, today: date) -> list[dict]:
    by_day_activities: dict[date, list] = {}
    for activity in activities:
        by_day_activities.setdefault(activity.date, []).append(_activity_summary(activity))
    by_day_meetings: dict[date, list] = {}
    for meeting in meetings:
        by_day_meetings.setdefault(meeting.date.date(), []).append(_meeting_summary(meeting))

    return [
        {
            "date": d.isoformat(),
            "dayOfMonth": d.day,
            "isToday": d == today,
            "isCurrentMonth": format_month(d) == month,
            "activities": by_day_activities.get(d, []),
            "meetings": by_day_meetings.get(d, []),
        }
        for d in dates
    ]


def week_month(week: str) -> str:
    """Month a week is filed under: the month of its Thursday (ISO rule)."""
    monday, _ = week_bounds(week)
    return format_month(monday + timedelta(days=3))


# ── Projections ──────────────────────────────────────────────────────────────


def get_month_calendar(
    ctx: RequestContext, month: str, *, user_id: int | None = None, today: date | None = None,
) -> dict:
    """Month grid with per-day items, Big Rock summaries and category totals."""
    today = today or date.today()
    target = _target_user(ctx, user_id)
    opened = open_months(target)

    grid = month_grid(month)
    grid_start, grid_end = grid[0][0], grid[-1][-1]
    activities = _activities_between(ctx, target, grid_start, grid_end)
    meetings = _meetings_between(ctx, target, grid_start, grid_end)

    stmt = _big_rock_scope(select(BigRock).where(BigRock.month == month), target, ctx)
    big_rocks = list(db.session.execute(stmt.order_by(BigRock.id)).scalars().all())

    summary = empty_category_summary()
    big_rock_summaries = []
    for big_rock in big_rocks:
        completed = 0
        for tar in big_rock.tars:
            done = tar.status == "COMPLETADA"
            completed += done
            _count(summary, big_rock.category, done)
        big_rock_summaries.append({
            "id": big_rock.id,
            "title": big_rock.title,
            "status": big_rock.status,
            "category": big_rock.category,
            "numTars": big_rock.num_tars,
            "completedTars": completed,
        })

    return {
        "month": month,
        "monthLabel": month_label(month),
        "userId": target,
        "state": month_state(month, opened, today),
        "weeks": [iso_week(week[0]) for week in grid],
        "days": _days([d for week in grid for d in week], month, activities, meetings, today),
        "bigRocks": big_rock_summaries,
        "openMonths": opened,
        "categorySummary": summary,
    }


def get_week_calendar(
    ctx: RequestContext, week: str, *, user_id: int | None = None, today: date | None = None,
) -> dict:
    """Seven days of an ISO week plus the TARs that have activities in it."""
    today = today or date.today()
    target = _target_user(ctx, user_id)
    monday, sunday = week_bounds(week)
    month = week_month(week)

    activities = _activities_between(ctx, target, monday, sunday)
    meetings = _meetings_between(ctx, target, monday, sunday)

    tars: dict[int, dict] = {}
    for activity in activities:
        tar = activity.tar
        entry = tars.get(tar.id)
        if entry is None:
            entry = tars[tar.id] = {
                "id": tar.id,
                "description": tar.description,
                "status": tar.status,
                "progress": tar.progress,
                "bigRockId": tar.big_rock_id,
                "bigRockTitle": tar.big_rock.title,
                "activities": [],
            }
        entry["activities"].append(_activity_summary(activity))

    dates = [monday + timedelta(days=i) for i in range(7)]
    return {
        "week": week,
        "weekLabel": week_label(week),
        "month": month,
        "userId": target,
        "state": month_state(month, open_months(target), today),
        "days": _days(dates, month, activities, meetings, today),
        "tars": list(tars.values()),
        "categorySummary": _bucket_summary(activities, meetings),
    }


def get_day_calendar(
    ctx: RequestContext, day: date, *, user_id: int | None = None, today: date | None = None,
) -> dict:
    """Every activity and meeting of one day, ordered by date."""
    today = today or date.today()
    target = _target_user(ctx, user_id)
    month = format_month(day)

    activities = _activities_between(ctx, target, day, day)
    meetings = _meetings_between(ctx, target, day, day)

    return {
        "date": day.isoformat(),
        "dateLabel": f"{DAY_NAMES_ES[day.weekday()]} {day.day} de {month_label(month)}",
        "week": iso_week(day),
        "month": month,
        "userId": target,
        "state": month_state(month, open_months(target), today),
        "activities": [
            {
                **activity.to_dict(),
                "tarDescription": activity.tar.description,
                "bigRockId": activity.tar.big_rock_id,
                "bigRockTitle": activity.tar.big_rock.title,
                "category": activity.tar.big_rock.category,
            }
            for activity in activities
        ],
        "meetings": [
            {
                **meeting.to_dict(),
                "bigRockTitle": meeting.big_rock.title,
                "category": meeting.big_rock.category,
            }
            for meeting in meetings
        ],
        "categorySummary": _bucket_summary(activities, meetings),
    }


def open_month(ctx: RequestContext, month: str, *, today: date | None = None) -> OpenMonth:
    """Open a future month for planning.  Opening it twice is a no-op."""
    if not is_future_month(month, today):
        raise ValidationError("Solo se pueden abrir meses futuros", details={"month": month})

    existing = db.session.execute(
        select(OpenMonth).where(OpenMonth.user_id == ctx.user_id, OpenMonth.month == month)
    ).scalar_one_or_none()
    if existing is not None:
        return existing

    row = OpenMonth(user_id=ctx.user_id, month=month)
    db.session.add(row)
    commit_or_raise("OpenMonth", "month")
    logger.info("User %d opened month %s", ctx.user_id, month)
    return row