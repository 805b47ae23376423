"""
User Service — administration of users, memberships and supervisor edges.

Access rules:
    - ADMIN manages the members of its current company.
    - SUPERADMIN manages every user and company membership.
    - Nobody changes their own role or status.
    - Only SUPERADMIN grants the SUPERADMIN role.

Supervisor assignment reads the supervisor chain with row locks and writes
the edge in the same transaction, so two concurrent assignments cannot
close a loop between them.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy import func, or_, select

from fase.core.context import RequestContext
from fase.core.exceptions import (
    AuthorizationDenied,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fase.core.roles import VALID_ROLES, Role
from fase.models import db
from fase.models.auth import USER_STATUSES, Company, User, UserCompany
from fase.services import gamification_service, supervisor_hierarchy
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)


# ── Scope helpers ────────────────────────────────────────────────────────────


def _is_superadmin(ctx: RequestContext) -> bool:
    return ctx.policy.can_manage_companies


def _membership(user_id: int, company_id: int, *, for_update: bool = False) -> UserCompany | None:
    stmt = select(UserCompany).where(
        UserCompany.user_id == user_id, UserCompany.company_id == company_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.session.execute(stmt).scalar_one_or_none()


def _managed_user(ctx: RequestContext, user_id: int) -> User:
    """Load a user the requester may administer."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Usuario", user_id)
    if not ctx.policy.can_manage_users:
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    if _is_superadmin(ctx):
        return user
    if ctx.company_id is None or _membership(user_id, ctx.company_id) is None:
        raise AuthorizationDenied("El usuario no pertenece a tu empresa", user_id=ctx.user_id)
    return user


def normalize_email(email: str) -> str:
    try:
        return validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise ValidationError("Email inválido", details={"email": str(exc)}) from exc


# ── Queries ──────────────────────────────────────────────────────────────────


def list_users(
    ctx: RequestContext,
    *,
    page: int = 1,
    limit: int | None = None,
    search: str | None = None,
    role: str | None = None,
) -> dict:
    limit = limit or current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    stmt = select(User)
    if not _is_superadmin(ctx):
        stmt = stmt.join(UserCompany, UserCompany.user_id == User.id).where(
            UserCompany.company_id == ctx.company_id,
        )
    if search:
        like = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(User.name).like(like), func.lower(User.email).like(like)))
    if role:
        stmt = stmt.where(User.role == role)
    stmt = stmt.order_by(User.name, User.email, User.id)

    pagination = db.paginate(stmt, page=page, per_page=limit, error_out=False)
    return {
        "users": [_user_with_memberships(u) for u in pagination.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": pagination.total,
            "totalPages": pagination.pages,
            "hasMore": page * limit < (pagination.total or 0),
        },
    }


def _user_with_memberships(user: User) -> dict:
    return {**user.to_dict(), "companies": [m.to_dict() for m in user.memberships]}


def get_user(ctx: RequestContext, user_id: int) -> dict:
    if user_id != ctx.user_id:
        return _user_with_memberships(_managed_user(ctx, user_id))
    return _user_with_memberships(db.session.get(User, user_id))


# ── Mutations ────────────────────────────────────────────────────────────────


def update_user(ctx: RequestContext, user_id: int, data: dict) -> User:
    """Update the profile fields (name, image) of oneself or a managed user."""
    user = db.session.get(User, user_id) if user_id == ctx.user_id else _managed_user(ctx, user_id)
    for field in ("name", "image"):
        if field in data:
            setattr(user, field, data[field])
    commit_or_raise("User")
    return user


AI_CONTEXT_FIELDS = ("ai_context_role", "ai_context_area", "ai_context_notes")


def update_ai_context(ctx: RequestContext, user_id: int, company_id: int, data: dict) -> UserCompany:
    """Edit the per-company context the assistant reads for a member.

    The member edits their own; ADMIN edits members of its current company
    and SUPERADMIN any membership.
    """
    if user_id != ctx.user_id:
        _managed_user(ctx, user_id)
        if not _is_superadmin(ctx) and company_id != ctx.company_id:
            raise AuthorizationDenied("El usuario no pertenece a tu empresa", user_id=ctx.user_id)

    membership = _membership(user_id, company_id)
    if membership is None:
        raise NotFoundError("Usuario en empresa", user_id, company_id=company_id)

    changed = [f for f in AI_CONTEXT_FIELDS if f in data and getattr(membership, f) != data[f]]
    for field in changed:
        setattr(membership, field, data[field])
    if changed:
        commit_or_raise("UserCompany")
        logger.info(
            "User %d updated AI context (%s) of user %d in company %d",
            ctx.user_id, ", ".join(changed), user_id, company_id,
        )
    return membership


def update_user_role(ctx: RequestContext, user_id: int, role: str) -> User:
    if role not in VALID_ROLES:
        raise ValidationError("Rol inválido", details={"role": role})
    if user_id == ctx.user_id:
        raise ValidationError("No puedes cambiar tu propio rol")
    user = _managed_user(ctx, user_id)
    if not _is_superadmin(ctx) and Role.SUPERADMIN.value in (role, user.role):
        raise AuthorizationDenied("Solo un SUPERADMIN puede gestionar ese rol", user_id=ctx.user_id)

    old = user.role
    user.role = role
    commit_or_raise("User")
    logger.info("User %d changed role of user %d: %s -> %s", ctx.user_id, user_id, old, role)
    return user


def update_user_status(ctx: RequestContext, user_id: int, status: str) -> User:
    if status not in USER_STATUSES:
        raise ValidationError("Estado inválido", details={"status": status})
    if user_id == ctx.user_id:
        raise ValidationError("No puedes cambiar tu propio estado")
    user = _managed_user(ctx, user_id)
    user.status = status
    commit_or_raise("User")
    logger.info("User %d set status of user %d to %s", ctx.user_id, user_id, status)
    return user


def invite_user(ctx: RequestContext, data: dict) -> User:
    """Create an INVITED user inside the requester's company (or a given one)."""
    email = normalize_email(data["email"])
    company_id = data.get("company_id") if _is_superadmin(ctx) else ctx.company_id
    company_id = company_id or ctx.company_id
    if company_id is None:
        raise ValidationError("No se puede invitar usuarios sin una empresa asignada")
    if db.session.get(Company, company_id) is None:
        raise NotFoundError("Empresa", company_id)

    role = data.get("role") or Role.USER.value
    if role not in VALID_ROLES:
        raise ValidationError("Rol inválido", details={"role": role})
    if role == Role.SUPERADMIN.value and not _is_superadmin(ctx):
        raise AuthorizationDenied("Solo un SUPERADMIN puede gestionar ese rol", user_id=ctx.user_id)

    existing = db.session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing is not None:
        raise ConflictError("User", "email", email)

    supervisor_id = data.get("supervisor_id")
    if supervisor_id is not None and _membership(supervisor_id, company_id) is None:
        raise ValidationError(
            "Supervisor no encontrado", details={"supervisorId": supervisor_id},
        )

    user = User(
        email=email,
        name=data.get("name"),
        role=role,
        status="INVITED",
        current_company_id=company_id,
    )
    db.session.add(user)
    db.session.flush()
    db.session.add(UserCompany(user_id=user.id, company_id=company_id, supervisor_id=supervisor_id))
    gamification_service.get_or_create(user.id)
    commit_or_raise("User", "email")

    logger.info("User %d invited %s to company %d", ctx.user_id, email, company_id)
    return user


def assign_supervisor(
    ctx: RequestContext,
    user_id: int,
    supervisor_id: int | None,
    *,
    company_id: int | None = None,
) -> UserCompany:
    """Set (or clear, with ``None``) the supervisor of *user_id* in a company.

    Raises:
        ValidationError: self-assignment, supervisor outside the company,
            or the edge would create a cycle.
        NotFoundError: the user is not a member of the company.
    """
    company_id = company_id or ctx.company_id
    if company_id is None:
        raise ValidationError("Empresa requerida", details={"companyId": None})
    if not _is_superadmin(ctx) and company_id != ctx.company_id:
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    _managed_user(ctx, user_id)

    membership = _membership(user_id, company_id, for_update=True)
    if membership is None:
        raise NotFoundError("Usuario en empresa", user_id, company_id=company_id)

    if supervisor_id is not None:
        if supervisor_id == user_id:
            raise ValidationError(
                "Un usuario no puede ser su propio supervisor",
                details={"supervisorId": supervisor_id},
            )
        if _membership(supervisor_id, company_id) is None:
            raise ValidationError(
                "El supervisor no pertenece a la empresa",
                details={"supervisorId": supervisor_id},
            )
        if supervisor_hierarchy.would_create_cycle(
            supervisor_id, user_id, company_id, for_update=True,
        ):
            logger.warning(
                "Rejected supervisor %d for user %d in company %d: cycle",
                supervisor_id, user_id, company_id,
            )
            raise ValidationError(
                "La asignacion crearia una referencia circular",
                details={"supervisorId": supervisor_id},
            )

    membership.supervisor_id = supervisor_id
    commit_or_raise("UserCompany")
    logger.info(
        "User %d set supervisor of user %d in company %d to %s",
        ctx.user_id, user_id, company_id, supervisor_id,
    )
    return membership


def add_user_to_company(ctx: RequestContext, user_id: int, company_id: int) -> UserCompany:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Usuario", user_id)
    if db.session.get(Company, company_id) is None:
        raise NotFoundError("Empresa", company_id)
    if _membership(user_id, company_id) is not None:
        raise ConflictError("UserCompany", "companyId", str(company_id))

    membership = UserCompany(user_id=user_id, company_id=company_id)
    db.session.add(membership)
    if user.current_company_id is None:
        user.current_company_id = company_id
    commit_or_raise("UserCompany")
    logger.info("User %d added user %d to company %d", ctx.user_id, user_id, company_id)
    return membership


def remove_user_from_company(ctx: RequestContext, user_id: int, company_id: int) -> None:
    """Drop a membership.  Edges pointing at the user in that company are cleared."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Usuario", user_id)
    membership = _membership(user_id, company_id)
    if membership is None:
        raise NotFoundError("Usuario en empresa", user_id, company_id=company_id)
    remaining = [m.company_id for m in user.memberships if m.company_id != company_id]
    if not remaining:
        raise ValidationError("El usuario debe pertenecer al menos a una empresa")

    for supervised in db.session.execute(
        select(UserCompany).where(
            UserCompany.company_id == company_id, UserCompany.supervisor_id == user_id,
        )
    ).scalars():
        supervised.supervisor_id = None

    db.session.delete(membership)
    if user.current_company_id == company_id:
        user.current_company_id = remaining[0]
    commit_or_raise("UserCompany")
    logger.info("User %d removed user %d from company %d", ctx.user_id, user_id, company_id)
