"""
FASE Platform
Tests — activity log queries and supervisee change feed.

Covers:
    - pagination math (total, totalPages, hasMore) and newest-first order
    - repeating a query returns the same page, ties broken by id
    - entityType / action filters and their validation
    - userId filter restricted to the visibility set
    - viewable-users endpoint per role
    - supervisee-changes grouping + entity links
    - entity services write the log row in the same transaction
"""

from datetime import datetime, timedelta, timezone

import pytest

from fase.core.exceptions import AuthorizationDenied, ValidationError
from fase.core.roles import Role
from fase.models import db
from fase.models.activity_log import ActivityLog
from fase.services import activity_log_service as als
from fase.utils.dates import add_months, current_month

BASE_TS = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)


def _log(user, n, *, entity_type="BIG_ROCK", action="CREATE", company=None, timestamp=None):
    row = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=n,
        entity_title=f"Entidad {n}",
        description=f"Log {n}",
        user_id=user.id,
        company_id=company.id if company else user.current_company_id,
        timestamp=timestamp or BASE_TS + timedelta(minutes=n),
    )
    db.session.add(row)
    db.session.commit()
    return row


def _big_rock_payload(**kw):
    payload = {
        "title": "Lanzar producto",
        "description": "Descripcion suficientemente larga",
        "indicator": "Ventas > 100",
        "numTars": 3,
        "month": add_months(current_month(), 1),
        "category": "FOCUS",
    }
    payload.update(kw)
    return payload


# ═════════════════════════════════════════════════════════════════════════════
# SERVICE
# ═════════════════════════════════════════════════════════════════════════════

class TestGetActivityLogs:
    def test_pagination(self, make_user, ctx_for):
        user = make_user()
        for n in range(25):
            _log(user, n)

        page1 = als.get_activity_logs(ctx_for(user), page=1, limit=10)
        page3 = als.get_activity_logs(ctx_for(user), page=3, limit=10)

        assert page1["pagination"] == {
            "page": 1, "limit": 10, "total": 25, "totalPages": 3, "hasMore": True,
        }
        assert len(page3["logs"]) == 5
        assert page3["pagination"]["hasMore"] is False

    def test_same_query_twice_returns_same_page(self, make_user, ctx_for):
        user = make_user()
        for n in range(7):
            _log(user, n, timestamp=BASE_TS)
        ctx = ctx_for(user)

        pages = []
        for page in (1, 2, 3):
            first = als.get_activity_logs(ctx, page=page, limit=3)
            second = als.get_activity_logs(ctx, page=page, limit=3)
            assert first["logs"] == second["logs"]
            assert first["pagination"] == second["pagination"]
            pages.append(first)

        ids = [log["id"] for p in pages for log in p["logs"]]
        assert len(set(ids)) == 7
        # equal timestamps fall back to id, newest row first
        assert ids == sorted(ids, reverse=True)

    def test_newest_first(self, make_user, ctx_for):
        user = make_user()
        for n in range(3):
            _log(user, n)
        ids = [log["entityId"] for log in als.get_activity_logs(ctx_for(user))["logs"]]
        assert ids == [2, 1, 0]

    def test_empty_result(self, make_user, ctx_for):
        result = als.get_activity_logs(ctx_for(make_user()))
        assert result["logs"] == []
        assert result["pagination"]["total"] == 0
        assert result["pagination"]["totalPages"] == 0

    def test_filters(self, make_user, ctx_for):
        user = make_user()
        _log(user, 1, entity_type="TAR", action="UPDATE")
        _log(user, 2, entity_type="TAR", action="CREATE")
        _log(user, 3, entity_type="BIG_ROCK", action="UPDATE")

        result = als.get_activity_logs(ctx_for(user), entity_type="TAR", action="UPDATE")
        assert [log["entityId"] for log in result["logs"]] == [1]

    @pytest.mark.parametrize("kwargs", [
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"entity_type": "PROJECT"},
        {"action": "ARCHIVE"},
    ])
    def test_invalid_arguments(self, make_user, ctx_for, kwargs):
        with pytest.raises(ValidationError):
            als.get_activity_logs(ctx_for(make_user()), **kwargs)

    def test_user_sees_only_own_logs(self, supervisor_team, ctx_for):
        sup, ana, _bruno, _other = supervisor_team
        _log(sup, 1)
        _log(ana, 2)
        result = als.get_activity_logs(ctx_for(ana))
        assert [log["userId"] for log in result["logs"]] == [ana.id]

    def test_supervisor_sees_team_logs(self, supervisor_team, ctx_for):
        sup, ana, bruno, other = supervisor_team
        for n, user in enumerate((sup, ana, bruno, other)):
            _log(user, n)
        result = als.get_activity_logs(ctx_for(sup))
        assert {log["userId"] for log in result["logs"]} == {sup.id, ana.id, bruno.id}

    def test_user_filter_outside_visibility_is_denied(self, supervisor_team, ctx_for):
        sup, _ana, _bruno, other = supervisor_team
        with pytest.raises(AuthorizationDenied):
            als.get_activity_logs(ctx_for(sup), user_id=other.id)

    def test_user_filter_inside_visibility(self, supervisor_team, ctx_for):
        sup, ana, _bruno, _other = supervisor_team
        _log(sup, 1)
        _log(ana, 2)
        result = als.get_activity_logs(ctx_for(sup), user_id=ana.id)
        assert [log["userId"] for log in result["logs"]] == [ana.id]


class TestSuperviseeChanges:
    def test_grouped_by_supervisee(self, supervisor_team, ctx_for):
        sup, ana, bruno, other = supervisor_team
        _log(ana, 1)
        _log(bruno, 2)
        _log(ana, 3)
        _log(other, 4)

        groups = als.get_supervisee_changes(ctx_for(sup))
        by_id = {g["superviseeId"]: g for g in groups}
        assert set(by_id) == {ana.id, bruno.id}
        assert [c["entityId"] for c in by_id[ana.id]["changes"]] == [3, 1]
        assert by_id[ana.id]["superviseeName"] == "Ana"

    def test_since_filter(self, supervisor_team, ctx_for):
        sup, ana, _bruno, _other = supervisor_team
        _log(ana, 1)
        _log(ana, 5)
        since = (BASE_TS + timedelta(minutes=2)).replace(tzinfo=None)
        groups = als.get_supervisee_changes(ctx_for(sup), since)
        assert [c["entityId"] for c in groups[0]["changes"]] == [5]

    def test_user_without_supervisees(self, make_user, ctx_for):
        assert als.get_supervisee_changes(ctx_for(make_user())) == []

    def test_link_for_deleted_entity(self, make_user):
        assert als.build_entity_link("TAR", 999) == "/big-rocks"
        assert als.build_entity_link("BIG_ROCK", 7) == "/big-rocks/7"
        assert als.build_entity_link("KEY_PERSON", 3) == "/key-people/3"


# ═════════════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════════════

class TestActivityLogAPI:
    def test_create_big_rock_writes_log(self, client, make_user, auth_headers):
        user = make_user()
        res = client.post("/api/big-rocks", json=_big_rock_payload(), headers=auth_headers(user))
        assert res.status_code == 201

        res = client.get("/api/activity-logs", headers=auth_headers(user))
        assert res.status_code == 200
        logs = res.get_json()["data"]["logs"]
        assert len(logs) == 1
        assert logs[0]["action"] == "CREATE"
        assert logs[0]["entityType"] == "BIG_ROCK"
        assert logs[0]["description"] == 'Creo el Big Rock "Lanzar producto"'

    def test_update_log_carries_changes(self, client, make_user, auth_headers):
        user = make_user()
        br = client.post(
            "/api/big-rocks", json=_big_rock_payload(), headers=auth_headers(user),
        ).get_json()["data"]
        client.put(f"/api/big-rocks/{br['id']}", json={"title": "Nuevo titulo"},
                   headers=auth_headers(user))

        res = client.get("/api/activity-logs?action=UPDATE", headers=auth_headers(user))
        log = res.get_json()["data"]["logs"][0]
        assert log["metadata"]["changes"]["title"] == {"old": "Lanzar producto", "new": "Nuevo titulo"}

    def test_failed_mutation_writes_no_log(self, client, make_user, auth_headers):
        user = make_user()
        res = client.post(
            "/api/big-rocks",
            json=_big_rock_payload(month=add_months(current_month(), -1)),
            headers=auth_headers(user),
        )
        assert res.status_code == 400
        assert db.session.query(ActivityLog).count() == 0

    def test_user_filter_outside_visibility_is_403(self, client, supervisor_team, auth_headers):
        _sup, ana, bruno, _other = supervisor_team
        res = client.get(f"/api/activity-logs?userId={bruno.id}", headers=auth_headers(ana))
        assert res.status_code == 403
        assert res.get_json()["success"] is False

    def test_bad_limit_is_400(self, client, make_user, auth_headers):
        res = client.get("/api/activity-logs?limit=abc", headers=auth_headers(make_user()))
        assert res.status_code == 400

    def test_viewable_users(self, client, supervisor_team, auth_headers):
        sup, _ana, _bruno, _other = supervisor_team
        res = client.get("/api/activity-logs/viewable-users", headers=auth_headers(sup))
        assert [u["name"] for u in res.get_json()["data"]] == ["Ana", "Bruno", "Sofia Supervisora"]

    def test_supervisee_changes_bad_since(self, client, supervisor_team, auth_headers):
        sup, _ana, _bruno, _other = supervisor_team
        res = client.get(
            "/api/activity-logs/supervisee-changes?since=ayer", headers=auth_headers(sup),
        )
        assert res.status_code == 400

    def test_admin_sees_all(self, client, make_user, auth_headers):
        admin = make_user(Role.ADMIN)
        a = make_user()
        b = make_user()
        _log(a, 1)
        _log(b, 2)
        res = client.get("/api/activity-logs", headers=auth_headers(admin))
        assert res.get_json()["data"]["pagination"]["total"] == 2
