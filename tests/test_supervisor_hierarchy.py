"""
FASE Platform
Tests — supervisor hierarchy resolver.

Covers:
    - is_supervisor_of: direct edge only, per company
    - list_supervisees / supervisee_ids
    - supervisor_chain ordering
    - would_create_cycle: self, direct, transitive, unrelated, pre-existing loop
    - chains deeper than MAX_CHAIN_DEPTH raise instead of answering
"""

import pytest

from fase.core.roles import Role
from fase.models import db
from fase.models.auth import User, UserCompany
from fase.services import supervisor_hierarchy as sh


def _set_supervisor(user, supervisor, company):
    membership = db.session.get(UserCompany, (user.id, company.id))
    membership.supervisor_id = supervisor.id if supervisor else None
    db.session.commit()


# ═════════════════════════════════════════════════════════════════════════════
# DIRECT EDGES
# ═════════════════════════════════════════════════════════════════════════════

class TestDirectEdges:
    def test_direct_supervisor(self, supervisor_team, company):
        sup, ana, _bruno, _other = supervisor_team
        assert sh.is_supervisor_of(sup.id, ana.id, company.id) is True

    def test_unrelated_user_is_not_supervised(self, supervisor_team, company):
        sup, _ana, _bruno, other = supervisor_team
        assert sh.is_supervisor_of(sup.id, other.id, company.id) is False

    def test_edge_is_per_company(self, supervisor_team, make_company):
        sup, ana, _bruno, _other = supervisor_team
        elsewhere = make_company("Otra")
        assert sh.is_supervisor_of(sup.id, ana.id, elsewhere.id) is False

    def test_none_arguments_are_false(self, supervisor_team):
        sup, ana, _bruno, _other = supervisor_team
        assert sh.is_supervisor_of(sup.id, ana.id, None) is False

    def test_grand_supervisor_is_not_direct(self, make_user, company):
        boss = make_user(Role.SUPERVISOR)
        mid = make_user(Role.SUPERVISOR, supervisor=boss)
        leaf = make_user(Role.USER, supervisor=mid)
        assert sh.is_supervisor_of(boss.id, leaf.id, company.id) is False

    def test_list_supervisees_one_level(self, make_user, company):
        boss = make_user(Role.SUPERVISOR)
        mid = make_user(Role.SUPERVISOR, name="Mid", supervisor=boss)
        make_user(Role.USER, supervisor=mid)
        assert [u.id for u in sh.list_supervisees(boss.id, company.id)] == [mid.id]

    def test_supervisee_ids_without_company_spans_companies(
        self, supervisor_team, make_company,
    ):
        sup, ana, bruno, _other = supervisor_team
        second = make_company("Segunda")
        db.session.add(UserCompany(user_id=sup.id, company_id=second.id))
        db.session.flush()
        carla = User(email="carla@example.com", name="Carla", role="USER",
                     current_company_id=second.id)
        db.session.add(carla)
        db.session.flush()
        db.session.add(UserCompany(user_id=carla.id, company_id=second.id, supervisor_id=sup.id))
        db.session.commit()

        assert sh.supervisee_ids(sup.id) == {ana.id, bruno.id, carla.id}
        assert sh.supervisee_ids(sup.id, second.id) == {carla.id}


# ═════════════════════════════════════════════════════════════════════════════
# CHAIN + CYCLE DETECTION
# ═════════════════════════════════════════════════════════════════════════════

class TestCycleDetection:
    def test_chain_nearest_first(self, make_user, company):
        a = make_user()
        b = make_user(supervisor=a)
        c = make_user(supervisor=b)
        assert sh.supervisor_chain(c.id, company.id) == [b.id, a.id]

    def test_self_assignment_is_a_cycle(self, make_user, company):
        a = make_user()
        assert sh.would_create_cycle(a.id, a.id, company.id) is True

    def test_direct_reverse_edge_is_a_cycle(self, make_user, company):
        a = make_user()
        b = make_user(supervisor=a)
        # b reports to a; making b supervise a closes the loop
        assert sh.would_create_cycle(b.id, a.id, company.id) is True

    def test_transitive_cycle(self, make_user, company):
        a = make_user()
        b = make_user(supervisor=a)
        c = make_user(supervisor=b)
        assert sh.would_create_cycle(c.id, a.id, company.id) is True

    def test_unrelated_assignment_is_not_a_cycle(self, make_user, company):
        a = make_user()
        b = make_user(supervisor=a)
        c = make_user()
        assert sh.would_create_cycle(b.id, c.id, company.id) is False

    def test_cycle_check_is_per_company(self, make_user, make_company, company):
        a = make_user()
        b = make_user(supervisor=a)
        other = make_company("Otra")
        assert sh.would_create_cycle(b.id, a.id, other.id) is False
        assert sh.would_create_cycle(b.id, a.id, company.id) is True

    def test_existing_loop_elsewhere_is_not_reported(self, make_user, company):
        x = make_user()
        y = make_user(supervisor=x)
        # corrupt data: x <-> y loop that does not involve the target
        _set_supervisor(x, y, company)
        target = make_user()
        assert sh.would_create_cycle(x.id, target.id, company.id) is False

    def test_chain_longer_than_depth_cap_raises(self, make_user, company, monkeypatch):
        monkeypatch.setattr(sh, "MAX_CHAIN_DEPTH", 4)
        top = make_user()
        node = top
        for _ in range(5):
            node = make_user(supervisor=node)
        target = make_user()
        with pytest.raises(sh.HierarchyTooDeep):
            sh.would_create_cycle(node.id, target.id, company.id)

    def test_chain_within_depth_cap_reaching_top_is_not_a_cycle(
        self, make_user, company, monkeypatch,
    ):
        monkeypatch.setattr(sh, "MAX_CHAIN_DEPTH", 8)
        node = make_user()
        for _ in range(5):
            node = make_user(supervisor=node)
        assert sh.would_create_cycle(node.id, make_user().id, company.id) is False

    def test_too_deep_assignment_is_rejected_over_api(
        self, client, make_user, company, auth_headers, monkeypatch,
    ):
        monkeypatch.setattr(sh, "MAX_CHAIN_DEPTH", 3)
        admin = make_user(Role.ADMIN)
        node = make_user()
        for _ in range(4):
            node = make_user(supervisor=node)
        target = make_user()
        res = client.put(
            f"/api/users/{target.id}/supervisor",
            json={"supervisorId": node.id}, headers=auth_headers(admin),
        )
        assert res.status_code == 400
        assert res.get_json()["details"]["maxDepth"] == 3
        assert db.session.get(UserCompany, (target.id, company.id)).supervisor_id is None
