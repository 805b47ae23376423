"""
Key Person Blueprint — the caller's stakeholder address book.

Endpoints:
    GET    /api/key-people            — list (?search)
    POST   /api/key-people            — create
    GET    /api/key-people/<id>       — detail
    PUT    /api/key-people/<id>       — update
    DELETE /api/key-people/<id>       — delete
    GET    /api/key-people/<id>/tars  — TARs the person is linked to
"""

from flask import Blueprint, request

from fase.blueprints import json_body, present_fields
from fase.middleware.auth_required import current_context, require_auth
from fase.services import key_person_service
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

key_person_bp = Blueprint("key_people", __name__, url_prefix="/api/key-people")

_ALIASES = {"first_name": "firstName", "last_name": "lastName"}


def _key_person_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "first_name": errs.string("firstName", 2, 50),
        "last_name": errs.string("lastName", 2, 50),
        "role": errs.string("role", 0, 100, required=False),
        "contact": errs.string("contact", 0, 200, required=False),
    }
    errs.raise_if_any()
    if partial:
        return present_fields(data, payload, _ALIASES, ("role", "contact"))
    return payload


@key_person_bp.route("", methods=["GET"])
@require_auth
def list_key_people():
    people = key_person_service.list_key_people(
        current_context(), search=request.args.get("search") or None,
    )
    return api_success([p.to_dict() for p in people])


@key_person_bp.route("", methods=["POST"])
@require_auth
def create_key_person():
    person = key_person_service.create_key_person(
        current_context(), _key_person_payload(json_body()),
    )
    return api_success(person.to_dict(), status=201)


@key_person_bp.route("/<int:person_id>", methods=["GET"])
@require_auth
def get_key_person(person_id):
    return api_success(key_person_service.get_key_person(current_context(), person_id).to_dict())


@key_person_bp.route("/<int:person_id>", methods=["PUT"])
@require_auth
def update_key_person(person_id):
    person = key_person_service.update_key_person(
        current_context(), person_id, _key_person_payload(json_body(), partial=True),
    )
    return api_success(person.to_dict())


@key_person_bp.route("/<int:person_id>", methods=["DELETE"])
@require_auth
def delete_key_person(person_id):
    key_person_service.delete_key_person(current_context(), person_id)
    return api_success({"deleted": True, "id": person_id})


@key_person_bp.route("/<int:person_id>/tars", methods=["GET"])
@require_auth
def list_linked_tars(person_id):
    return api_success(key_person_service.list_linked_tars(current_context(), person_id))
