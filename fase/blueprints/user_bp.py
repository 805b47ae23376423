"""
User Blueprint — user administration, supervisor edges and memberships.

Endpoints:
    GET    /api/users                                — list (?page&limit&search&role)   [ADMIN+]
    POST   /api/users                                — invite                            [ADMIN+]
    GET    /api/users/me                             — caller's profile + memberships
    GET    /api/users/<id>                           — detail                            [self / ADMIN+]
    PUT    /api/users/<id>                           — update name / image               [self / ADMIN+]
    PUT    /api/users/<id>/role                      — change role                       [ADMIN+]
    PUT    /api/users/<id>/status                    — activate / deactivate             [ADMIN+]
    PUT    /api/users/<id>/supervisor                — set or clear supervisor           [ADMIN+]
    POST   /api/users/<id>/companies/<company_id>    — add membership                    [SUPERADMIN]
    DELETE /api/users/<id>/companies/<company_id>    — remove membership                 [SUPERADMIN]
    PUT    /api/users/<id>/companies/<company_id>/ai-context
                                                     — assistant context of a membership [self / ADMIN+]
"""

from flask import Blueprint, request

from fase.blueprints import int_arg, json_body, present_fields
from fase.core.exceptions import ValidationError
from fase.core.roles import VALID_ROLES
from fase.middleware.auth_required import current_context, require_auth, require_policy
from fase.models.auth import USER_STATUSES
from fase.services import user_service
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

user_bp = Blueprint("users", __name__, url_prefix="/api/users")

MAX_PAGE_LIMIT = 100

_AI_CONTEXT_ALIASES = {
    "ai_context_role": "aiContextRole",
    "ai_context_area": "aiContextArea",
    "ai_context_notes": "aiContextNotes",
}


@user_bp.route("", methods=["GET"])
@require_auth
@require_policy("can_manage_users")
def list_users():
    page = int_arg("page", 1)
    limit = int_arg("limit", 20)
    if page < 1 or not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValidationError(
            "Paginación inválida", details={"page": page, "limit": limit},
        )
    role = request.args.get("role") or None
    if role is not None and role not in VALID_ROLES:
        raise ValidationError("Rol inválido", details={"role": role})
    result = user_service.list_users(
        current_context(),
        page=page,
        limit=limit,
        search=request.args.get("search") or None,
        role=role,
    )
    return api_success(result)


@user_bp.route("", methods=["POST"])
@require_auth
@require_policy("can_manage_users")
def invite_user():
    data = json_body()
    errs = FieldErrors(data)
    payload = {
        "email": errs.string("email", 3, 200),
        "name": errs.string("name", 1, 100, required=False),
        "role": errs.choice("role", VALID_ROLES, required=False),
        "supervisor_id": errs.integer("supervisorId", 1, required=False),
        "company_id": errs.integer("companyId", 1, required=False),
    }
    errs.raise_if_any()
    user = user_service.invite_user(current_context(), payload)
    return api_success(user.to_dict(), status=201)


@user_bp.route("/me", methods=["GET"])
@require_auth
def me():
    ctx = current_context()
    return api_success(user_service.get_user(ctx, ctx.user_id))


@user_bp.route("/<int:user_id>", methods=["GET"])
@require_auth
def get_user(user_id):
    return api_success(user_service.get_user(current_context(), user_id))


@user_bp.route("/<int:user_id>", methods=["PUT"])
@require_auth
def update_user(user_id):
    data = json_body()
    errs = FieldErrors(data, partial=True)
    payload = {
        "name": errs.string("name", 1, 100),
        "image": errs.string("image", 0, 500, required=False),
    }
    errs.raise_if_any()
    user = user_service.update_user(
        current_context(), user_id, present_fields(data, payload, nullable=("image",)),
    )
    return api_success(user.to_dict())


@user_bp.route("/<int:user_id>/role", methods=["PUT"])
@require_auth
@require_policy("can_manage_users")
def update_role(user_id):
    errs = FieldErrors(json_body())
    role = errs.choice("role", VALID_ROLES)
    errs.raise_if_any()
    return api_success(user_service.update_user_role(current_context(), user_id, role).to_dict())


@user_bp.route("/<int:user_id>/status", methods=["PUT"])
@require_auth
@require_policy("can_manage_users")
def update_status(user_id):
    errs = FieldErrors(json_body())
    status = errs.choice("status", USER_STATUSES)
    errs.raise_if_any()
    return api_success(
        user_service.update_user_status(current_context(), user_id, status).to_dict()
    )


@user_bp.route("/<int:user_id>/supervisor", methods=["PUT"])
@require_auth
@require_policy("can_manage_users")
def assign_supervisor(user_id):
    data = json_body()
    if "supervisorId" not in data:
        raise ValidationError("supervisorId es requerido", details={"supervisorId": "requerido"})
    errs = FieldErrors(data)
    supervisor_id = errs.integer("supervisorId", 1, required=False)
    company_id = errs.integer("companyId", 1, required=False)
    errs.raise_if_any()
    membership = user_service.assign_supervisor(
        current_context(), user_id, supervisor_id, company_id=company_id,
    )
    return api_success(membership.to_dict())


@user_bp.route("/<int:user_id>/companies/<int:company_id>", methods=["POST"])
@require_auth
@require_policy("can_manage_companies")
def add_to_company(user_id, company_id):
    membership = user_service.add_user_to_company(current_context(), user_id, company_id)
    return api_success(membership.to_dict(), status=201)


@user_bp.route("/<int:user_id>/companies/<int:company_id>/ai-context", methods=["PUT"])
@require_auth
def update_ai_context(user_id, company_id):
    data = json_body()
    errs = FieldErrors(data, partial=True)
    payload = {
        "ai_context_role": errs.string("aiContextRole", 0, 200, required=False),
        "ai_context_area": errs.string("aiContextArea", 0, 200, required=False),
        "ai_context_notes": errs.string("aiContextNotes", 0, 2000, required=False),
    }
    errs.raise_if_any()
    fields = present_fields(data, payload, _AI_CONTEXT_ALIASES, nullable=tuple(payload))
    # blank text clears the field
    fields = {key: value or None for key, value in fields.items()}
    membership = user_service.update_ai_context(current_context(), user_id, company_id, fields)
    return api_success(membership.to_dict())


@user_bp.route("/<int:user_id>/companies/<int:company_id>", methods=["DELETE"])
@require_auth
@require_policy("can_manage_companies")
def remove_from_company(user_id, company_id):
    user_service.remove_user_from_company(current_context(), user_id, company_id)
    return api_success({"removed": True, "userId": user_id, "companyId": company_id})
