"""
Big Rock Blueprint — monthly goals and their TAR / meeting children.

Endpoints:
    GET    /api/big-rocks                       — list (?month&userId)
    POST   /api/big-rocks                       — create
    GET    /api/big-rocks/<id>                  — detail (+ TARs, meetings)
    PUT    /api/big-rocks/<id>                  — update
    DELETE /api/big-rocks/<id>                  — delete (cascades)
    GET    /api/big-rocks/stats/<month>         — status / progress stats (?userId)
    GET    /api/big-rocks/supervised/<user_id>  — a supervisee's Big Rocks (?month)
    GET    /api/big-rocks/<id>/tars             — TARs
    POST   /api/big-rocks/<id>/tars             — create TAR
    GET    /api/big-rocks/<id>/meetings         — key meetings
    POST   /api/big-rocks/<id>/meetings         — create key meeting
"""

import logging

from flask import Blueprint, request

from fase.blueprints import int_arg, json_body, present_fields, require_month
from fase.blueprints.task_bp import key_meeting_payload, tar_payload
from fase.middleware.auth_required import current_context, require_auth
from fase.models.planning import BIG_ROCK_STATUSES, FASE_CATEGORIES
from fase.services import big_rock_service, key_meeting_service, tar_service
from fase.utils.dates import is_valid_month
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

logger = logging.getLogger(__name__)

big_rock_bp = Blueprint("big_rocks", __name__, url_prefix="/api/big-rocks")

_ALIASES = {"num_tars": "numTars"}


def _big_rock_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "title": errs.string("title", 3, 100),
        "description": errs.string("description", 10, 2000),
        "indicator": errs.string("indicator", 5, 500),
        "num_tars": errs.integer("numTars", 1, 20),
        "month": errs.matches("month", is_valid_month, "El mes debe estar en formato YYYY-MM"),
        "status": errs.choice("status", BIG_ROCK_STATUSES, required=False),
        "category": errs.choice("category", FASE_CATEGORIES, required=False),
    }
    errs.raise_if_any()
    return present_fields(data, payload, _ALIASES, ("category",)) if partial else payload


# ═════════════════════════════════════════════════════════════════════════════
# Big Rocks
# ═════════════════════════════════════════════════════════════════════════════


@big_rock_bp.route("", methods=["GET"])
@require_auth
def list_big_rocks():
    month = request.args.get("month")
    if month:
        require_month(month)
    big_rocks = big_rock_service.list_big_rocks(
        current_context(), user_id=int_arg("userId"), month=month,
    )
    return api_success([br.to_dict() for br in big_rocks])


@big_rock_bp.route("", methods=["POST"])
@require_auth
def create_big_rock():
    payload = _big_rock_payload(json_body())
    big_rock = big_rock_service.create_big_rock(current_context(), payload)
    return api_success(big_rock.to_dict(), status=201)


@big_rock_bp.route("/<int:big_rock_id>", methods=["GET"])
@require_auth
def get_big_rock(big_rock_id):
    big_rock = big_rock_service.get_big_rock(current_context(), big_rock_id)
    return api_success(big_rock.to_dict(include_children=True))


@big_rock_bp.route("/<int:big_rock_id>", methods=["PUT"])
@require_auth
def update_big_rock(big_rock_id):
    payload = _big_rock_payload(json_body(), partial=True)
    big_rock = big_rock_service.update_big_rock(current_context(), big_rock_id, payload)
    return api_success(big_rock.to_dict())


@big_rock_bp.route("/<int:big_rock_id>", methods=["DELETE"])
@require_auth
def delete_big_rock(big_rock_id):
    big_rock_service.delete_big_rock(current_context(), big_rock_id)
    return api_success({"deleted": True, "id": big_rock_id})


@big_rock_bp.route("/stats/<month>", methods=["GET"])
@require_auth
def month_stats(month):
    stats = big_rock_service.get_month_stats(
        current_context(), require_month(month), user_id=int_arg("userId"),
    )
    return api_success(stats)


@big_rock_bp.route("/supervised/<int:user_id>", methods=["GET"])
@require_auth
def supervised_big_rocks(user_id):
    month = request.args.get("month")
    if month:
        require_month(month)
    return api_success(big_rock_service.list_supervised(current_context(), user_id, month=month))


# ═════════════════════════════════════════════════════════════════════════════
# Children
# ═════════════════════════════════════════════════════════════════════════════


@big_rock_bp.route("/<int:big_rock_id>/tars", methods=["GET"])
@require_auth
def list_tars(big_rock_id):
    tars = tar_service.list_tars(current_context(), big_rock_id)
    return api_success([tar.to_dict() for tar in tars])


@big_rock_bp.route("/<int:big_rock_id>/tars", methods=["POST"])
@require_auth
def create_tar(big_rock_id):
    tar = tar_service.create_tar(current_context(), big_rock_id, tar_payload(json_body()))
    return api_success(tar.to_dict(), status=201)


@big_rock_bp.route("/<int:big_rock_id>/meetings", methods=["GET"])
@require_auth
def list_key_meetings(big_rock_id):
    meetings = key_meeting_service.list_key_meetings(current_context(), big_rock_id)
    return api_success([m.to_dict() for m in meetings])


@big_rock_bp.route("/<int:big_rock_id>/meetings", methods=["POST"])
@require_auth
def create_key_meeting(big_rock_id):
    meeting = key_meeting_service.create_key_meeting(
        current_context(), big_rock_id, key_meeting_payload(json_body()),
    )
    return api_success(meeting.to_dict(), status=201)
