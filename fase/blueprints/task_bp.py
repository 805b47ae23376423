"""
Task Blueprints — TARs, their activities, and key meetings.

Three blueprints share this module because their payloads are validated by
the same helpers (also used by the Big Rock blueprint for nested creates).

Endpoints:
    TARs:
        GET    /api/tars/<id>                         — detail (+ activities)
        PUT    /api/tars/<id>                         — update
        DELETE /api/tars/<id>                         — delete
        GET    /api/tars/<id>/activities              — activities
        POST   /api/tars/<id>/activities              — create activity
        POST   /api/tars/<id>/key-people/<person_id>  — link key person
        DELETE /api/tars/<id>/key-people/<person_id>  — unlink key person

    Activities:
        GET    /api/activities/<id>                   — detail
        PUT    /api/activities/<id>                   — update
        POST   /api/activities/<id>/toggle            — flip completed
        DELETE /api/activities/<id>                   — delete

    Key meetings:
        GET    /api/key-meetings/<id>                 — detail
        PUT    /api/key-meetings/<id>                 — update
        DELETE /api/key-meetings/<id>                 — delete
"""

from flask import Blueprint

from fase.blueprints import json_body, present_fields
from fase.middleware.auth_required import current_context, require_auth
from fase.models.planning import ACTIVITY_TYPES, TAR_STATUSES
from fase.services import activity_service, key_meeting_service, tar_service
from fase.utils.dates import is_valid_week
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

tar_bp = Blueprint("tars", __name__, url_prefix="/api/tars")
activity_bp = Blueprint("activities", __name__, url_prefix="/api/activities")
key_meeting_bp = Blueprint("key_meetings", __name__, url_prefix="/api/key-meetings")


# ── Payloads ─────────────────────────────────────────────────────────────────


def tar_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "description": errs.string("description", 5, 2000),
        "status": errs.choice("status", TAR_STATUSES, required=False),
        "progress": errs.integer("progress", 0, 100, required=False),
    }
    errs.raise_if_any()
    return present_fields(data, payload) if partial else payload


def activity_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "title": errs.string("title", 3, 200),
        "description": errs.string("description", 0, 2000, required=False),
        "type": errs.choice("type", ACTIVITY_TYPES),
        "date": errs.date("date"),
        "week": errs.matches(
            "week", is_valid_week, "Formato de semana invalido (YYYY-Wnn)", required=False,
        ),
        "completed": errs.boolean("completed"),
        "notes": errs.string("notes", 0, 2000, required=False),
    }
    errs.raise_if_any()
    return present_fields(data, payload, nullable=("description", "notes")) if partial else payload


def key_meeting_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "title": errs.string("title", 3, 200),
        "description": errs.string("description", 0, 2000, required=False),
        "date": errs.datetime("date"),
        "completed": errs.boolean("completed"),
        "outcome": errs.string("outcome", 0, 2000, required=False),
        "objective": errs.string("objective", 5, 500, required=False),
        "expected_decision": errs.string("expectedDecision", 0, 500, required=False),
    }
    errs.raise_if_any()
    if partial:
        return present_fields(
            data, payload, {"expected_decision": "expectedDecision"},
            ("description", "outcome", "objective", "expected_decision"),
        )
    return payload


# ═════════════════════════════════════════════════════════════════════════════
# TARs
# ═════════════════════════════════════════════════════════════════════════════


@tar_bp.route("/<int:tar_id>", methods=["GET"])
@require_auth
def get_tar(tar_id):
    tar = tar_service.get_tar(current_context(), tar_id)
    return api_success(tar.to_dict(include_activities=True))


@tar_bp.route("/<int:tar_id>", methods=["PUT"])
@require_auth
def update_tar(tar_id):
    tar = tar_service.update_tar(current_context(), tar_id, tar_payload(json_body(), partial=True))
    return api_success(tar.to_dict())


@tar_bp.route("/<int:tar_id>", methods=["DELETE"])
@require_auth
def delete_tar(tar_id):
    tar_service.delete_tar(current_context(), tar_id)
    return api_success({"deleted": True, "id": tar_id})


@tar_bp.route("/<int:tar_id>/activities", methods=["GET"])
@require_auth
def list_activities(tar_id):
    activities = activity_service.list_activities(current_context(), tar_id)
    return api_success([a.to_dict() for a in activities])


@tar_bp.route("/<int:tar_id>/activities", methods=["POST"])
@require_auth
def create_activity(tar_id):
    activity = activity_service.create_activity(
        current_context(), tar_id, activity_payload(json_body()),
    )
    return api_success(activity.to_dict(), status=201)


@tar_bp.route("/<int:tar_id>/key-people/<int:person_id>", methods=["POST"])
@require_auth
def link_key_person(tar_id, person_id):
    tar = tar_service.link_key_person(current_context(), tar_id, person_id)
    return api_success(tar.to_dict())


@tar_bp.route("/<int:tar_id>/key-people/<int:person_id>", methods=["DELETE"])
@require_auth
def unlink_key_person(tar_id, person_id):
    tar = tar_service.unlink_key_person(current_context(), tar_id, person_id)
    return api_success(tar.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# Activities
# ═════════════════════════════════════════════════════════════════════════════


@activity_bp.route("/<int:activity_id>", methods=["GET"])
@require_auth
def get_activity(activity_id):
    return api_success(activity_service.get_activity(current_context(), activity_id).to_dict())


@activity_bp.route("/<int:activity_id>", methods=["PUT"])
@require_auth
def update_activity(activity_id):
    activity = activity_service.update_activity(
        current_context(), activity_id, activity_payload(json_body(), partial=True),
    )
    return api_success(activity.to_dict())


@activity_bp.route("/<int:activity_id>/toggle", methods=["POST"])
@require_auth
def toggle_activity(activity_id):
    activity = activity_service.toggle_activity(current_context(), activity_id)
    return api_success(activity.to_dict())


@activity_bp.route("/<int:activity_id>", methods=["DELETE"])
@require_auth
def delete_activity(activity_id):
    activity_service.delete_activity(current_context(), activity_id)
    return api_success({"deleted": True, "id": activity_id})


# ═════════════════════════════════════════════════════════════════════════════
# Key meetings
# ═════════════════════════════════════════════════════════════════════════════


@key_meeting_bp.route("/<int:meeting_id>", methods=["GET"])
@require_auth
def get_key_meeting(meeting_id):
    meeting = key_meeting_service.get_key_meeting(current_context(), meeting_id)
    return api_success(meeting.to_dict())


@key_meeting_bp.route("/<int:meeting_id>", methods=["PUT"])
@require_auth
def update_key_meeting(meeting_id):
    meeting = key_meeting_service.update_key_meeting(
        current_context(), meeting_id, key_meeting_payload(json_body(), partial=True),
    )
    return api_success(meeting.to_dict())


@key_meeting_bp.route("/<int:meeting_id>", methods=["DELETE"])
@require_auth
def delete_key_meeting(meeting_id):
    key_meeting_service.delete_key_meeting(current_context(), meeting_id)
    return api_success({"deleted": True, "id": meeting_id})
