"""
Auth Decorators — turn the JWT identity into an explicit RequestContext.

Usage:
    @bp.route("/big-rocks", methods=["GET"])
    @require_auth
    def list_big_rocks():
        ctx = current_context()
        ...

    @bp.route("/users", methods=["GET"])
    @require_auth
    @require_policy("can_manage_users")
    def list_users():
        ...

The user row is authoritative for role and status; the token only carries
the identity and the selected company.
"""

import functools
import logging

from flask import g

from fase.core.context import RequestContext
from fase.core.exceptions import AuthenticationRequired, AuthorizationDenied
from fase.core.roles import Role
from fase.models import db
from fase.models.auth import User, UserCompany

logger = logging.getLogger(__name__)


def build_request_context() -> RequestContext:
    """Resolve the caller from ``g.jwt_*`` into a RequestContext."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id is None:
        if getattr(g, "jwt_error", None) == "expired":
            raise AuthenticationRequired("Sesión expirada")
        raise AuthenticationRequired()

    user = db.session.get(User, user_id)
    if user is None:
        raise AuthenticationRequired()
    if user.status == "DEACTIVATED":
        raise AuthorizationDenied("Cuenta desactivada", user_id=user.id)

    role = Role(user.role)
    company_id = getattr(g, "jwt_company_id", None) or user.current_company_id
    if company_id is not None and role is not Role.SUPERADMIN:
        member = db.session.get(UserCompany, (user.id, company_id))
        if member is None:
            raise AuthorizationDenied("No perteneces a esta empresa", user_id=user.id)

    return RequestContext(user_id=user.id, role=role, company_id=company_id)


def current_context() -> RequestContext:
    ctx = getattr(g, "request_context", None)
    if ctx is None:
        raise AuthenticationRequired()
    return ctx


def require_auth(f):
    """Decorator: build ``g.request_context`` or fail with 401/403."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.request_context = build_request_context()
        return f(*args, **kwargs)
    return decorated


def require_policy(flag: str):
    """
    Decorator: require a truthy ``RolePolicy`` flag for the caller's role.

    Must be stacked below ``require_auth``.

    Args:
        flag: RolePolicy attribute, e.g. "can_manage_users"
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            ctx = current_context()
            if not getattr(ctx.policy, flag):
                logger.warning(
                    "User %d denied: role %s lacks '%s' on %s",
                    ctx.user_id, ctx.role.value, flag, f.__name__,
                )
                raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
            return f(*args, **kwargs)
        return decorated
    return decorator
