"""
FASE Platform
Tests — calendar aggregator.

Covers:
    - month / week / day projections and their month state
    - category summaries (TARs for month, activities + meetings for week/day)
    - uncategorised Big Rocks excluded from the summary
    - userId outside visibility → 403
    - opening months: future only, idempotent
"""

from datetime import date, datetime

import pytest

from fase.core.exceptions import AuthorizationDenied, ValidationError
from fase.models import db
from fase.models.planning import TAR, Activity, BigRock, KeyMeeting, OpenMonth
from fase.services import calendar_service as cal
from fase.utils.dates import add_months, current_month, iso_week

TODAY = date(2025, 6, 10)


def _big_rock(user, month="2025-06", category="FOCUS", title="Big Rock"):
    br = BigRock(
        user_id=user.id,
        company_id=user.current_company_id,
        title=title,
        description="Descripcion del Big Rock",
        indicator="Indicador",
        num_tars=2,
        month=month,
        category=category,
    )
    db.session.add(br)
    db.session.commit()
    return br


def _tar(big_rock, status="PENDIENTE"):
    tar = TAR(big_rock_id=big_rock.id, description="TAR de prueba", status=status)
    db.session.add(tar)
    db.session.commit()
    return tar


def _activity(tar, on, completed=False, title="Actividad"):
    act = Activity(
        tar_id=tar.id, title=title, type="DIARIA", date=on, week=iso_week(on),
        completed=completed,
    )
    db.session.add(act)
    db.session.commit()
    return act


def _meeting(big_rock, at, completed=False):
    m = KeyMeeting(big_rock_id=big_rock.id, title="Reunion", date=at, completed=completed)
    db.session.add(m)
    db.session.commit()
    return m


# ═════════════════════════════════════════════════════════════════════════════
# MONTH
# ═════════════════════════════════════════════════════════════════════════════

class TestMonthCalendar:
    def test_summary_counts_tars(self, make_user, ctx_for):
        user = make_user()
        focus = _big_rock(user, category="FOCUS")
        _tar(focus, "COMPLETADA")
        _tar(focus)
        energia = _big_rock(user, category="ENERGIA")
        _tar(energia, "COMPLETADA")

        result = cal.get_month_calendar(ctx_for(user), "2025-06", today=TODAY)

        assert result["categorySummary"] == {
            "FOCUS": {"total": 2, "completed": 1},
            "ATENCION": {"total": 0, "completed": 0},
            "SISTEMAS": {"total": 0, "completed": 0},
            "ENERGIA": {"total": 1, "completed": 1},
        }
        assert result["state"] == "current"
        assert {b["id"]: b["completedTars"] for b in result["bigRocks"]} == {
            focus.id: 1, energia.id: 1,
        }

    def test_uncategorised_excluded(self, make_user, ctx_for):
        user = make_user()
        _tar(_big_rock(user, category=None), "COMPLETADA")
        result = cal.get_month_calendar(ctx_for(user), "2025-06", today=TODAY)
        assert all(v == {"total": 0, "completed": 0} for v in result["categorySummary"].values())
        assert len(result["bigRocks"]) == 1

    def test_days_cover_full_weeks(self, make_user, ctx_for):
        user = make_user()
        tar = _tar(_big_rock(user))
        _activity(tar, date(2025, 6, 3))
        result = cal.get_month_calendar(ctx_for(user), "2025-06", today=TODAY)

        assert len(result["days"]) % 7 == 0
        assert result["days"][0]["date"] == "2025-05-26"
        assert result["days"][0]["isCurrentMonth"] is False
        june3 = next(d for d in result["days"] if d["date"] == "2025-06-03")
        assert [a["title"] for a in june3["activities"]] == ["Actividad"]
        today_cell = next(d for d in result["days"] if d["isToday"])
        assert today_cell["date"] == "2025-06-10"

    @pytest.mark.parametrize("month,opened,state", [
        ("2025-05", [], "past"),
        ("2025-07", [], "future-locked"),
        ("2025-07", ["2025-07"], "future-open"),
    ])
    def test_states(self, make_user, ctx_for, month, opened, state):
        user = make_user()
        for m in opened:
            db.session.add(OpenMonth(user_id=user.id, month=m))
        db.session.commit()
        assert cal.get_month_calendar(ctx_for(user), month, today=TODAY)["state"] == state

    def test_other_users_month_forbidden(self, supervisor_team, ctx_for):
        _sup, ana, bruno, _other = supervisor_team
        with pytest.raises(AuthorizationDenied):
            cal.get_month_calendar(ctx_for(ana), "2025-06", user_id=bruno.id, today=TODAY)

    def test_supervisor_reads_supervisee_month(self, supervisor_team, ctx_for):
        sup, ana, _bruno, _other = supervisor_team
        _big_rock(ana, title="De Ana")
        result = cal.get_month_calendar(ctx_for(sup), "2025-06", user_id=ana.id, today=TODAY)
        assert result["userId"] == ana.id
        assert [b["title"] for b in result["bigRocks"]] == ["De Ana"]


# ═════════════════════════════════════════════════════════════════════════════
# WEEK + DAY
# ═════════════════════════════════════════════════════════════════════════════

class TestWeekCalendar:
    def test_summary_counts_activities_and_meetings(self, make_user, ctx_for):
        user = make_user()
        focus = _big_rock(user, category="FOCUS")
        tar = _tar(focus)
        _activity(tar, date(2025, 6, 9), completed=True)
        _activity(tar, date(2025, 6, 11))
        _meeting(focus, datetime(2025, 6, 12, 10, 0), completed=True)
        # next week, not counted
        _activity(tar, date(2025, 6, 16))

        result = cal.get_week_calendar(ctx_for(user), "2025-W24", today=TODAY)

        assert result["categorySummary"]["FOCUS"] == {"total": 3, "completed": 2}
        assert len(result["days"]) == 7
        assert result["days"][0]["date"] == "2025-06-09"
        assert len(result["tars"]) == 1
        assert len(result["tars"][0]["activities"]) == 2

    def test_week_straddling_months_uses_thursday(self, make_user, ctx_for):
        user = make_user()
        # 2025-W27 runs Mon 2025-06-30 .. Sun 2025-07-06
        result = cal.get_week_calendar(ctx_for(user), "2025-W27", today=TODAY)
        assert result["month"] == "2025-07"
        assert result["state"] == "future-locked"


class TestDayCalendar:
    def test_day_items(self, make_user, ctx_for):
        user = make_user()
        atencion = _big_rock(user, category="ATENCION")
        tar = _tar(atencion)
        _activity(tar, date(2025, 6, 10), title="Hoy")
        _activity(tar, date(2025, 6, 11), title="Mañana")
        _meeting(atencion, datetime(2025, 6, 10, 23, 30))

        result = cal.get_day_calendar(ctx_for(user), date(2025, 6, 10), today=TODAY)

        assert [a["title"] for a in result["activities"]] == ["Hoy"]
        assert len(result["meetings"]) == 1
        assert result["categorySummary"]["ATENCION"] == {"total": 2, "completed": 0}
        assert result["week"] == "2025-W24"
        assert result["dateLabel"] == "Martes 10 de Junio 2025"


# ═════════════════════════════════════════════════════════════════════════════
# OPEN MONTH
# ═════════════════════════════════════════════════════════════════════════════

class TestOpenMonth:
    def test_open_is_idempotent(self, make_user, ctx_for):
        user = make_user()
        first = cal.open_month(ctx_for(user), "2025-08", today=TODAY)
        second = cal.open_month(ctx_for(user), "2025-08", today=TODAY)
        assert first.id == second.id
        assert db.session.query(OpenMonth).count() == 1

    @pytest.mark.parametrize("month", ["2025-05", "2025-06"])
    def test_only_future_months(self, make_user, ctx_for, month):
        with pytest.raises(ValidationError):
            cal.open_month(ctx_for(make_user()), month, today=TODAY)


class TestCalendarAPI:
    def test_month_endpoint(self, client, make_user, auth_headers):
        user = make_user()
        res = client.get(f"/api/calendar/month/{current_month()}", headers=auth_headers(user))
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["state"] == "current"
        assert set(data["categorySummary"]) == {"FOCUS", "ATENCION", "SISTEMAS", "ENERGIA"}

    def test_bad_month_is_400(self, client, make_user, auth_headers):
        res = client.get("/api/calendar/month/2025-13", headers=auth_headers(make_user()))
        assert res.status_code == 400

    def test_bad_week_is_400(self, client, make_user, auth_headers):
        res = client.get("/api/calendar/week/2021-W53", headers=auth_headers(make_user()))
        assert res.status_code == 400

    def test_bad_day_is_400(self, client, make_user, auth_headers):
        res = client.get("/api/calendar/day/2025-02-30", headers=auth_headers(make_user()))
        assert res.status_code == 400

    def test_open_month_endpoint(self, client, make_user, auth_headers):
        user = make_user()
        month = add_months(current_month(), 2)
        res = client.post(f"/api/months/{month}/open", headers=auth_headers(user))
        assert res.status_code == 201
        assert res.get_json()["data"]["month"] == month

        res = client.get(f"/api/calendar/month/{month}", headers=auth_headers(user))
        assert res.get_json()["data"]["state"] == "future-open"

    def test_open_past_month_is_400(self, client, make_user, auth_headers):
        month = add_months(current_month(), -1)
        res = client.post(f"/api/months/{month}/open", headers=auth_headers(make_user()))
        assert res.status_code == 400

    def test_requires_token(self, client):
        res = client.get(f"/api/calendar/month/{current_month()}")
        assert res.status_code == 401
