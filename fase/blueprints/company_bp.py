"""
Company Blueprint — tenant administration.

Endpoints:
    GET  /api/companies        — all companies (SUPERADMIN) or the caller's memberships
    POST /api/companies        — create                [SUPERADMIN]
    PUT  /api/companies/<id>   — update name / slug / logo  [SUPERADMIN]
"""

import re

from flask import Blueprint

from fase.blueprints import json_body, present_fields
from fase.middleware.auth_required import current_context, require_auth, require_policy
from fase.services import company_service
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

company_bp = Blueprint("companies", __name__, url_prefix="/api/companies")

_SLUG_RE = re.compile(r"^[a-z0-9-]+$")


def _company_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "name": errs.string("name", 1, 100),
        "slug": errs.matches(
            "slug",
            lambda v: isinstance(v, str) and len(v) <= 50 and _SLUG_RE.match(v) is not None,
            "El identificador solo puede contener letras minusculas, numeros y guiones",
            required=False,
        ),
        "logo": errs.string("logo", 0, 500, required=False),
    }
    errs.raise_if_any()
    return present_fields(data, payload, nullable=("logo",)) if partial else payload


@company_bp.route("", methods=["GET"])
@require_auth
def list_companies():
    companies = company_service.list_companies(current_context())
    return api_success([c.to_dict() for c in companies])


@company_bp.route("", methods=["POST"])
@require_auth
@require_policy("can_manage_companies")
def create_company():
    company = company_service.create_company(current_context(), _company_payload(json_body()))
    return api_success(company.to_dict(), status=201)


@company_bp.route("/<int:company_id>", methods=["PUT"])
@require_auth
@require_policy("can_manage_companies")
def update_company(company_id):
    company = company_service.update_company(
        current_context(), company_id, _company_payload(json_body(), partial=True),
    )
    return api_success(company.to_dict())
