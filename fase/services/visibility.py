"""
Role-Based Visibility Filter.

Answers "whose records may this requester read?" from the role policy
table and the supervisor graph.  Pure read: no caching, so a supervisor
edge change is visible on the next call.

    ALL   → every user in the system
    TEAM  → self + direct supervisees (context company, or every company
            when the context has none)
    SELF  → self only
"""

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.core.roles import Visibility
from fase.models import db
from fase.models.auth import User
from fase.services import supervisor_hierarchy


def viewable_user_ids(ctx: RequestContext) -> set[int]:
    visibility = ctx.policy.visibility
    if visibility is Visibility.ALL:
        return set(db.session.execute(select(User.id)).scalars().all())
    if visibility is Visibility.TEAM:
        return {ctx.user_id} | supervisor_hierarchy.supervisee_ids(ctx.user_id, ctx.company_id)
    return {ctx.user_id}


def viewable_users(ctx: RequestContext) -> list[dict]:
    """``[{id, name, email}]`` for the requester's visibility set, ordered by name."""
    stmt = select(User).order_by(User.name, User.email, User.id)
    if ctx.policy.visibility is not Visibility.ALL:
        stmt = stmt.where(User.id.in_(viewable_user_ids(ctx)))
    return [u.to_summary() for u in db.session.execute(stmt).scalars().all()]


def can_view_user(ctx: RequestContext, user_id: int) -> bool:
    if user_id == ctx.user_id or ctx.policy.visibility is Visibility.ALL:
        return True
    if ctx.policy.visibility is Visibility.TEAM:
        return user_id in supervisor_hierarchy.supervisee_ids(ctx.user_id, ctx.company_id)
    return False
