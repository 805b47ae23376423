"""
Gamification Engine — points, levels, streaks, medals and leaderboard.

Business context:
    Users earn points for planning actions, keep a daily streak and unlock
    medals at fixed thresholds of their activity counters.

    Invariants:
      - points never decrease; level is always ``level_for_points(points)``.
      - longest_streak >= current_streak.
      - a medal (type, level) is held at most once per user.

    Domain events (``record_*``) only flush.  They run inside the caller's
    transaction so a rolled-back mutation awards nothing.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.core.exceptions import NotFoundError, ValidationError
from fase.models import db
from fase.models.auth import User, UserCompany
from fase.models.gamification import MEDAL_LEVELS, Gamification, Medal
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────

POINTS_CONFIG: dict[str, int] = {
    "CREATE_BIG_ROCK": 50,
    "WEEKLY_PLANNING": 30,
    "WEEKLY_REVIEW": 40,
    "DAILY_LOG": 10,
    "COMPLETE_TAR": 25,
    "STREAK_7_DAYS": 100,
    "STREAK_30_DAYS": 500,
}

STREAK_BONUSES: dict[int, str] = {
    7: "STREAK_7_DAYS",
    30: "STREAK_30_DAYS",
}

LEVEL_THRESHOLDS: tuple[int, ...] = (0, 100, 250, 500, 1000, 2000, 3500, 5000, 7500, 10000)

# medal type → (counter attribute, thresholds for BRONCE/PLATA/ORO/DIAMANTE)
MEDAL_CONFIG: dict[str, dict] = {
    "CONSTANCIA": {
        "label": "Constancia",
        "description": "Por mantener rachas consecutivas de registro",
        "field": "longest_streak",
        "thresholds": (7, 30, 90, 365),
    },
    "CLARIDAD": {
        "label": "Claridad",
        "description": "Por definir Big Rocks",
        "field": "big_rocks_created",
        "thresholds": (5, 15, 50, 100),
    },
    "EJECUCION": {
        "label": "Ejecucion",
        "description": "Por completar Tareas de Alto Rendimiento",
        "field": "tars_completed",
        "thresholds": (10, 50, 200, 500),
    },
    "MEJORA_CONTINUA": {
        "label": "Mejora Continua",
        "description": "Por realizar revisiones semanales",
        "field": "weekly_reviews",
        "thresholds": (10, 50, 200, 500),
    },
}

MAX_LEADERBOARD = 50


# ── Level curve ──────────────────────────────────────────────────────────────


def level_for_points(points: int) -> int:
    level = 1
    for idx, threshold in enumerate(LEVEL_THRESHOLDS):
        if points >= threshold:
            level = idx + 1
    return level


def points_to_next_level(points: int) -> int | None:
    """Points still missing for the next level; None at the top level."""
    level = level_for_points(points)
    if level >= len(LEVEL_THRESHOLDS):
        return None
    return LEVEL_THRESHOLDS[level] - points


def level_progress(points: int) -> int:
    """Percent (0-100) of the way from the current level to the next."""
    level = level_for_points(points)
    if level >= len(LEVEL_THRESHOLDS):
        return 100
    floor, ceiling = LEVEL_THRESHOLDS[level - 1], LEVEL_THRESHOLDS[level]
    return int((points - floor) * 100 / (ceiling - floor))


# ── Aggregate ────────────────────────────────────────────────────────────────


def get_or_create(user_id: int) -> Gamification:
    gam = db.session.execute(
        select(Gamification).where(Gamification.user_id == user_id)
    ).scalar_one_or_none()
    if gam is None:
        gam = Gamification(
            user_id=user_id, points=0, level=1, current_streak=0, longest_streak=0,
            big_rocks_created=0, tars_completed=0, weekly_reviews=0, daily_logs=0,
        )
        db.session.add(gam)
        db.session.flush()
    return gam


def award_points(user_id: int, action: str, custom_points: int | None = None) -> dict:
    """Add points for *action* (or *custom_points*) and recompute the level."""
    if action not in POINTS_CONFIG:
        raise ValidationError(f"Acción desconocida: {action}", details={"action": action})
    points = POINTS_CONFIG[action] if custom_points is None else custom_points
    if points < 0:
        raise ValidationError("Los puntos no pueden ser negativos", details={"points": points})

    gam = get_or_create(user_id)
    previous_level = gam.level
    gam.points += points
    gam.level = level_for_points(gam.points)
    db.session.flush()

    level_up = gam.level > previous_level
    if level_up:
        logger.info("User %d reached level %d", user_id, gam.level)
    return {
        "points": points,
        "newTotal": gam.points,
        "levelUp": level_up,
        "newLevel": gam.level,
    }


def update_streak(user_id: int, on_date: date | None = None) -> dict:
    """Register a qualifying action on *on_date* and maintain the streak.

    Same day as the last one → unchanged.  The next day → +1.  Any larger
    gap (or first ever) → 1.  Reaching 7 or 30 days awards the bonus once
    per run.
    """
    on_date = on_date or date.today()
    gam = get_or_create(user_id)
    last = gam.last_streak_date
    bonus = None

    if last is not None and on_date <= last:
        # same day, or an out-of-order backfill: counted already
        return {
            "currentStreak": gam.current_streak,
            "longestStreak": gam.longest_streak,
            "streakBonus": None,
            "newMedals": [],
        }

    if last is not None and on_date - last == timedelta(days=1):
        gam.current_streak += 1
    else:
        gam.current_streak = 1
    gam.last_streak_date = on_date
    gam.longest_streak = max(gam.longest_streak, gam.current_streak)

    bonus_action = STREAK_BONUSES.get(gam.current_streak)
    if bonus_action:
        bonus = award_points(user_id, bonus_action)["points"]
        logger.info("User %d streak bonus %s", user_id, bonus_action)

    db.session.flush()
    new_medals = check_medals(gam, ("CONSTANCIA",))
    return {
        "currentStreak": gam.current_streak,
        "longestStreak": gam.longest_streak,
        "streakBonus": bonus,
        "newMedals": new_medals,
    }


def check_medals(gam: Gamification, medal_types=None) -> list[dict]:
    """Award every reached, not yet held medal level.  Idempotent."""
    held = {(m.type, m.level) for m in gam.medals}
    awarded: list[dict] = []
    for medal_type in medal_types or MEDAL_CONFIG:
        cfg = MEDAL_CONFIG[medal_type]
        value = getattr(gam, cfg["field"]) or 0
        for level, threshold in zip(MEDAL_LEVELS, cfg["thresholds"]):
            if value < threshold or (medal_type, level) in held:
                continue
            medal = Medal(type=medal_type, level=level)
            gam.medals.append(medal)
            held.add((medal_type, level))
            awarded.append({"type": medal_type, "level": level})
            logger.info("User %d earned medal %s/%s", gam.user_id, medal_type, level)
    if awarded:
        db.session.flush()
    return awarded


def _increment(user_id: int, counter: str, medal_type: str | None) -> tuple[Gamification, list[dict]]:
    gam = get_or_create(user_id)
    setattr(gam, counter, (getattr(gam, counter) or 0) + 1)
    db.session.flush()
    medals = check_medals(gam, (medal_type,)) if medal_type else []
    return gam, medals


# ── Domain events ────────────────────────────────────────────────────────────


def record_big_rock_created(user_id: int) -> dict:
    result = award_points(user_id, "CREATE_BIG_ROCK")
    _gam, medals = _increment(user_id, "big_rocks_created", "CLARIDAD")
    return {**result, "newMedals": medals}


def record_tar_completed(user_id: int) -> dict:
    result = award_points(user_id, "COMPLETE_TAR")
    _gam, medals = _increment(user_id, "tars_completed", "EJECUCION")
    return {**result, "newMedals": medals}


def record_weekly_review(user_id: int) -> dict:
    result = award_points(user_id, "WEEKLY_REVIEW")
    _gam, medals = _increment(user_id, "weekly_reviews", "MEJORA_CONTINUA")
    return {**result, "newMedals": medals}


def record_daily_log(user_id: int, on_date: date | None = None) -> dict:
    result = award_points(user_id, "DAILY_LOG")
    _increment(user_id, "daily_logs", None)
    streak = update_streak(user_id, on_date)
    return {
        **result,
        "streakBonus": streak["streakBonus"],
        "currentStreak": streak["currentStreak"],
        "newMedals": streak["newMedals"],
    }


def grant_points(ctx: RequestContext, user_id: int, action: str, custom_points: int | None = None) -> dict:
    """Administrative award.  Unlike the ``record_*`` events this commits."""
    if db.session.get(User, user_id) is None:
        raise NotFoundError("Usuario", user_id)
    if ctx.company_id is not None and db.session.get(UserCompany, (user_id, ctx.company_id)) is None:
        raise NotFoundError("Usuario", user_id, company_id=ctx.company_id)
    result = award_points(user_id, action, custom_points)
    commit_or_raise("Gamification")
    logger.info(
        "User %d granted %d points (%s) to user %d", ctx.user_id, result["points"], action, user_id,
    )
    return result


# ── Read models ──────────────────────────────────────────────────────────────


def _medal_config_dict(medal_type: str) -> dict:
    cfg = MEDAL_CONFIG[medal_type]
    return {
        "label": cfg["label"],
        "description": cfg["description"],
        "thresholds": dict(zip(MEDAL_LEVELS, cfg["thresholds"])),
    }


def get_summary(user_id: int) -> dict:
    """Points, level, streaks, counters and medals; zeros when never active."""
    gam = db.session.execute(
        select(Gamification).where(Gamification.user_id == user_id)
    ).scalar_one_or_none()
    if gam is None:
        return {
            "userId": user_id,
            "points": 0,
            "level": 1,
            "levelProgress": 0,
            "pointsToNextLevel": points_to_next_level(0),
            "currentStreak": 0,
            "longestStreak": 0,
            "lastStreakDate": None,
            "counters": {
                "longestStreak": 0, "bigRocksCreated": 0, "tarsCompleted": 0,
                "weeklyReviews": 0, "dailyLogs": 0,
            },
            "medals": [],
        }
    # newest first; ids follow award order
    medals = sorted(gam.medals, key=lambda m: m.id, reverse=True)
    return {
        "userId": user_id,
        "points": gam.points,
        "level": level_for_points(gam.points),
        "levelProgress": level_progress(gam.points),
        "pointsToNextLevel": points_to_next_level(gam.points),
        "currentStreak": gam.current_streak,
        "longestStreak": gam.longest_streak,
        "lastStreakDate": gam.last_streak_date.isoformat() if gam.last_streak_date else None,
        "counters": gam.counters(),
        "medals": [{**m.to_dict(), "config": _medal_config_dict(m.type)} for m in medals],
    }


def get_medals(user_id: int) -> dict:
    """Earned medals plus progress toward the next level of every type."""
    summary = get_summary(user_id)
    held = {(m["type"], m["level"]) for m in summary["medals"]}
    counters = summary["counters"]
    counter_keys = {
        "longest_streak": "longestStreak",
        "big_rocks_created": "bigRocksCreated",
        "tars_completed": "tarsCompleted",
        "weekly_reviews": "weeklyReviews",
    }

    progress = []
    for medal_type, cfg in MEDAL_CONFIG.items():
        value = counters[counter_keys[cfg["field"]]]
        next_level = next_threshold = None
        for level, threshold in zip(MEDAL_LEVELS, cfg["thresholds"]):
            if (medal_type, level) not in held and value < threshold:
                next_level, next_threshold = level, threshold
                break
        progress.append({
            "type": medal_type,
            **_medal_config_dict(medal_type),
            "currentValue": value,
            "earnedLevels": [lvl for lvl in MEDAL_LEVELS if (medal_type, lvl) in held],
            "nextLevel": next_level,
            "nextThreshold": next_threshold,
        })

    return {"earned": summary["medals"], "progress": progress}


def get_leaderboard(ctx: RequestContext, limit: int = 10) -> list[dict]:
    """Users ranked by points (ties by user id), members of ctx.company_id when set."""
    if not 1 <= limit <= MAX_LEADERBOARD:
        raise ValidationError(
            f"limit debe estar entre 1 y {MAX_LEADERBOARD}", details={"limit": limit},
        )
    stmt = select(Gamification, User).join(User, User.id == Gamification.user_id)
    if ctx.company_id is not None:
        stmt = stmt.join(
            UserCompany,
            (UserCompany.user_id == Gamification.user_id)
            & (UserCompany.company_id == ctx.company_id),
        )
    stmt = stmt.order_by(Gamification.points.desc(), Gamification.user_id).limit(limit)

    return [
        {
            "rank": idx + 1,
            "userId": user.id,
            "userName": user.name or "Usuario",
            "userImage": user.image,
            "points": gam.points,
            "level": level_for_points(gam.points),
            "medalCount": len(gam.medals),
        }
        for idx, (gam, user) in enumerate(db.session.execute(stmt).all())
    ]
