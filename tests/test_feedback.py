"""
FASE Platform
Tests — supervisor feedback on Big Rocks and month plans.

Covers:
    - direct supervisor gives Big Rock feedback, CONFIRMADO moves to FEEDBACK_RECIBIDO
    - giving it again replaces the single row
    - unrelated users and supervisors are refused, self-feedback is a 400
    - ADMIN gives feedback on anyone in the company
    - owner reads the feedback (null when there is none)
    - month plan feedback requires Big Rocks in that month
    - delete: author / ADMIN only, 404 on unknown id
    - payload validation and cascade on Big Rock delete
"""

import pytest

from fase.core.roles import Role
from fase.models import db
from fase.models.feedback import Feedback
from fase.models.planning import BigRock
from fase.utils.dates import add_months, current_month

NEXT_MONTH = add_months(current_month(), 1)


def _create_big_rock(client, headers, *, confirm=False, **kw):
    payload = {
        "title": "Mejorar retencion",
        "description": "Reducir la rotacion de clientes clave",
        "indicator": "Churn menor al 5%",
        "numTars": 2,
        "month": NEXT_MONTH,
    }
    payload.update(kw)
    res = client.post("/api/big-rocks", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    big_rock = res.get_json()["data"]
    if confirm:
        res = client.put(
            f"/api/big-rocks/{big_rock['id']}", json={"status": "CONFIRMADO"}, headers=headers,
        )
        assert res.status_code == 200
    return big_rock


def _give(client, headers, big_rock_id, **kw):
    payload = {"comment": "Buen enfoque, prioriza los clientes grandes", "rating": 4}
    payload.update(kw)
    return client.post(f"/api/feedback/big-rocks/{big_rock_id}", json=payload, headers=headers)


# ═════════════════════════════════════════════════════════════════════════════
# BIG ROCK FEEDBACK
# ═════════════════════════════════════════════════════════════════════════════

class TestBigRockFeedback:
    def test_supervisor_gives_feedback(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        br = _create_big_rock(client, auth_headers(ana), confirm=True)

        res = _give(client, auth_headers(sup), br["id"])
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["targetType"] == "BIG_ROCK"
        assert data["bigRockId"] == br["id"]
        assert data["userId"] == ana.id
        assert data["rating"] == 4
        assert data["supervisor"]["id"] == sup.id
        assert db.session.get(BigRock, br["id"]).status == "FEEDBACK_RECIBIDO"

    def test_second_feedback_replaces_first(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        br = _create_big_rock(client, auth_headers(ana), confirm=True)
        h = auth_headers(sup)
        _give(client, h, br["id"])

        res = _give(client, h, br["id"], comment="Ajusta el indicador", rating=None)
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["comment"] == "Ajusta el indicador"
        assert data["rating"] is None
        assert db.session.query(Feedback).filter_by(big_rock_id=br["id"]).count() == 1

    def test_created_big_rock_keeps_status(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        br = _create_big_rock(client, auth_headers(ana))
        assert _give(client, auth_headers(sup), br["id"]).status_code == 201
        assert db.session.get(BigRock, br["id"]).status == "CREADO"

    def test_unrelated_user_refused(self, client, supervisor_team, auth_headers):
        _, ana, _, zoe = supervisor_team
        br = _create_big_rock(client, auth_headers(ana), confirm=True)
        res = _give(client, auth_headers(zoe), br["id"])
        assert res.status_code == 403
        assert db.session.get(BigRock, br["id"]).status == "CONFIRMADO"

    def test_other_supervisor_refused(self, client, supervisor_team, make_user, auth_headers):
        _, ana, _, _ = supervisor_team
        stranger = make_user(Role.SUPERVISOR, name="Otro Supervisor")
        br = _create_big_rock(client, auth_headers(ana))
        assert _give(client, auth_headers(stranger), br["id"]).status_code == 403

    def test_self_feedback_rejected(self, client, make_user, auth_headers):
        h = auth_headers(make_user())
        br = _create_big_rock(client, h)
        assert _give(client, h, br["id"]).status_code == 400

    def test_admin_gives_feedback(self, client, supervisor_team, make_user, auth_headers):
        _, _, _, zoe = supervisor_team
        admin = make_user(Role.ADMIN)
        br = _create_big_rock(client, auth_headers(zoe), confirm=True)
        assert _give(client, auth_headers(admin), br["id"]).status_code == 201
        assert db.session.get(BigRock, br["id"]).status == "FEEDBACK_RECIBIDO"

    def test_unknown_big_rock(self, client, make_user, auth_headers):
        assert _give(client, auth_headers(make_user(Role.ADMIN)), 9999).status_code == 404

    def test_owner_reads_feedback(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        h = auth_headers(ana)
        br = _create_big_rock(client, h)

        res = client.get(f"/api/feedback/big-rocks/{br['id']}", headers=h)
        assert res.status_code == 200
        assert res.get_json()["data"] is None

        _give(client, auth_headers(sup), br["id"])
        res = client.get(f"/api/feedback/big-rocks/{br['id']}", headers=h)
        assert res.get_json()["data"]["comment"].startswith("Buen enfoque")

    def test_outsider_cannot_read(self, client, supervisor_team, auth_headers):
        _, ana, _, zoe = supervisor_team
        br = _create_big_rock(client, auth_headers(ana))
        res = client.get(f"/api/feedback/big-rocks/{br['id']}", headers=auth_headers(zoe))
        assert res.status_code == 403

    @pytest.mark.parametrize("payload,field", [
        ({"comment": ""}, "comment"),
        ({"rating": 5}, "comment"),
        ({"comment": "Bien", "rating": 0}, "rating"),
        ({"comment": "Bien", "rating": 6}, "rating"),
    ])
    def test_validation(self, client, supervisor_team, auth_headers, payload, field):
        sup, ana, _, _ = supervisor_team
        br = _create_big_rock(client, auth_headers(ana))
        res = client.post(
            f"/api/feedback/big-rocks/{br['id']}", json=payload, headers=auth_headers(sup),
        )
        assert res.status_code == 400
        assert field in res.get_json()["details"]

    def test_deleting_big_rock_removes_feedback(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        h = auth_headers(ana)
        br = _create_big_rock(client, h)
        _give(client, auth_headers(sup), br["id"])

        assert client.delete(f"/api/big-rocks/{br['id']}", headers=h).status_code == 200
        assert db.session.query(Feedback).count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# MONTH PLAN FEEDBACK
# ═════════════════════════════════════════════════════════════════════════════

class TestMonthFeedback:
    def _give_month(self, client, headers, user_id, **kw):
        payload = {"userId": user_id, "comment": "Plan equilibrado para el mes"}
        payload.update(kw)
        return client.post(f"/api/feedback/months/{NEXT_MONTH}", json=payload, headers=headers)

    def test_requires_big_rocks(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        res = self._give_month(client, auth_headers(sup), ana.id)
        assert res.status_code == 400

    def test_give_and_read(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        _create_big_rock(client, auth_headers(ana))
        sup_h = auth_headers(sup)

        res = self._give_month(client, sup_h, ana.id, rating=5)
        assert res.status_code == 201
        assert res.get_json()["data"]["targetType"] == "MONTH_PLANNING"

        res = self._give_month(client, sup_h, ana.id, comment="Revisa las fechas")
        assert res.status_code == 200

        res = client.get(f"/api/feedback/months/{NEXT_MONTH}", headers=auth_headers(ana))
        assert res.get_json()["data"]["comment"] == "Revisa las fechas"

        res = client.get(f"/api/feedback/months/{NEXT_MONTH}?userId={ana.id}", headers=sup_h)
        assert res.get_json()["data"]["userId"] == ana.id

    def test_missing_user_id(self, client, supervisor_team, auth_headers):
        sup, _, _, _ = supervisor_team
        res = client.post(
            f"/api/feedback/months/{NEXT_MONTH}", json={"comment": "Sin destinatario"},
            headers=auth_headers(sup),
        )
        assert res.status_code == 400
        assert "userId" in res.get_json()["details"]

    def test_bad_month(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        res = client.post(
            "/api/feedback/months/2025-13", json={"userId": ana.id, "comment": "Hola"},
            headers=auth_headers(sup),
        )
        assert res.status_code == 400

    def test_outsider_cannot_read(self, client, supervisor_team, auth_headers):
        _, ana, _, zoe = supervisor_team
        res = client.get(
            f"/api/feedback/months/{NEXT_MONTH}?userId={ana.id}", headers=auth_headers(zoe),
        )
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# DELETE
# ═════════════════════════════════════════════════════════════════════════════

class TestDeleteFeedback:
    def _feedback_id(self, client, sup, owner, auth_headers):
        br = _create_big_rock(client, auth_headers(owner))
        return _give(client, auth_headers(sup), br["id"]).get_json()["data"]["id"]

    def test_author_deletes(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        fid = self._feedback_id(client, sup, ana, auth_headers)
        res = client.delete(f"/api/feedback/{fid}", headers=auth_headers(sup))
        assert res.status_code == 200
        assert res.get_json()["data"] == {"deleted": True, "id": fid}
        assert db.session.get(Feedback, fid) is None

    def test_owner_cannot_delete(self, client, supervisor_team, auth_headers):
        sup, ana, _, _ = supervisor_team
        fid = self._feedback_id(client, sup, ana, auth_headers)
        assert client.delete(f"/api/feedback/{fid}", headers=auth_headers(ana)).status_code == 403

    def test_admin_deletes(self, client, supervisor_team, make_user, auth_headers):
        sup, ana, _, _ = supervisor_team
        fid = self._feedback_id(client, sup, ana, auth_headers)
        admin = make_user(Role.ADMIN)
        assert client.delete(f"/api/feedback/{fid}", headers=auth_headers(admin)).status_code == 200

    def test_unknown(self, client, make_user, auth_headers):
        res = client.delete("/api/feedback/9999", headers=auth_headers(make_user(Role.ADMIN)))
        assert res.status_code == 404
