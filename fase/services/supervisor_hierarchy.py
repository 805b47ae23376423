"""
Supervisor-Hierarchy Resolver.

The supervisor graph is stored per company on ``UserCompany.supervisor_id``:
one outgoing edge per (user, company).  The graph must stay acyclic; the
resolver answers direct-edge questions and detects cycles before an
assignment is written.

The resolver is read-only.  It never mutates memberships.
"""

import logging

from sqlalchemy import select

from fase.core.exceptions import ValidationError
from fase.models import db
from fase.models.auth import User, UserCompany

logger = logging.getLogger(__name__)

# Upper bound on chain length walked by the cycle check.
MAX_CHAIN_DEPTH = 256


class HierarchyTooDeep(ValidationError):
    """The supervisor chain is longer than ``MAX_CHAIN_DEPTH``."""


def _supervisor_of(user_id: int, company_id: int, *, for_update: bool = False) -> int | None:
    stmt = select(UserCompany.supervisor_id).where(
        UserCompany.user_id == user_id,
        UserCompany.company_id == company_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.session.execute(stmt).scalar_one_or_none()


def is_supervisor_of(supervisor_id: int, user_id: int, company_id: int) -> bool:
    """True iff *supervisor_id* is the direct supervisor of *user_id* in *company_id*."""
    if supervisor_id is None or user_id is None or company_id is None:
        return False
    return _supervisor_of(user_id, company_id) == supervisor_id


def supervisee_ids(supervisor_id: int, company_id: int | None = None) -> set[int]:
    """Direct supervisee ids; every company when *company_id* is None."""
    stmt = select(UserCompany.user_id).where(UserCompany.supervisor_id == supervisor_id)
    if company_id is not None:
        stmt = stmt.where(UserCompany.company_id == company_id)
    return set(db.session.execute(stmt).scalars().all())


def list_supervisees(supervisor_id: int, company_id: int) -> list[User]:
    """Users whose membership in *company_id* names *supervisor_id* (one level)."""
    stmt = (
        select(User)
        .join(UserCompany, UserCompany.user_id == User.id)
        .where(
            UserCompany.company_id == company_id,
            UserCompany.supervisor_id == supervisor_id,
        )
        .order_by(User.name, User.email)
    )
    return list(db.session.execute(stmt).scalars().all())


def supervisor_chain(user_id: int, company_id: int, *, for_update: bool = False) -> list[int]:
    """Ordered supervisor ids above *user_id*, nearest first.

    Stops at the first user without a supervisor, at a revisited node or at
    ``MAX_CHAIN_DEPTH``.  ``for_update`` locks each membership row read.
    """
    chain: list[int] = []
    visited = {user_id}
    current = user_id
    for _ in range(MAX_CHAIN_DEPTH):
        parent = _supervisor_of(current, company_id, for_update=for_update)
        if parent is None or parent in visited:
            break
        chain.append(parent)
        visited.add(parent)
        current = parent
    return chain


def would_create_cycle(
    candidate_supervisor_id: int,
    target_user_id: int,
    company_id: int,
    *,
    for_update: bool = False,
) -> bool:
    """Would making *candidate_supervisor_id* supervise *target_user_id* close a loop?

    Walks up from the candidate.  Reaching the target means the target is
    already above the candidate, so the new edge would form a cycle.
    Reaching the top, or a node already visited, means it would not.

    Raises:
        HierarchyTooDeep: the walk passed ``MAX_CHAIN_DEPTH`` levels without
            an answer.
    """
    if candidate_supervisor_id == target_user_id:
        return True

    visited: set[int] = set()
    current = candidate_supervisor_id
    for _ in range(MAX_CHAIN_DEPTH):
        if current == target_user_id:
            return True
        if current in visited:
            # pre-existing loop not involving the target
            logger.warning(
                "Supervisor loop detected in company %s at user %s", company_id, current,
            )
            return False
        visited.add(current)
        parent = _supervisor_of(current, company_id, for_update=for_update)
        if parent is None:
            return False
        current = parent

    logger.error(
        "Supervisor chain from user %s in company %s exceeds %d levels",
        candidate_supervisor_id, company_id, MAX_CHAIN_DEPTH,
    )
    raise HierarchyTooDeep(
        f"La cadena de supervisores supera {MAX_CHAIN_DEPTH} niveles",
        details={"supervisorId": candidate_supervisor_id, "maxDepth": MAX_CHAIN_DEPTH},
    )
