"""
Feedback Blueprint — supervisor feedback on Big Rocks and month plans.

Endpoints:
    GET    /api/feedback/big-rocks/<id>     — feedback on a Big Rock (null if none)
    POST   /api/feedback/big-rocks/<id>     — give / replace it          [supervisor / ADMIN+]
    GET    /api/feedback/months/<month>     — feedback on a month plan (?userId)
    POST   /api/feedback/months/<month>     — give / replace it (body userId)
    DELETE /api/feedback/<id>               — delete                     [author / ADMIN+]
"""

from flask import Blueprint

from fase.blueprints import int_arg, json_body, require_month
from fase.middleware.auth_required import current_context, require_auth
from fase.models.feedback import MAX_RATING, MIN_RATING
from fase.services import feedback_service
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

feedback_bp = Blueprint("feedback", __name__, url_prefix="/api/feedback")


def _feedback_payload(data: dict, *, with_user: bool = False) -> dict:
    errs = FieldErrors(data)
    payload = {
        "comment": errs.string("comment", 1, 2000),
        "rating": errs.integer("rating", MIN_RATING, MAX_RATING, required=False),
    }
    if with_user:
        payload["user_id"] = errs.integer("userId", 1)
    errs.raise_if_any()
    return payload


def _saved(feedback, created):
    return api_success(feedback.to_dict(), status=201 if created else 200)


@feedback_bp.route("/big-rocks/<int:big_rock_id>", methods=["GET"])
@require_auth
def big_rock_feedback(big_rock_id):
    feedback = feedback_service.get_big_rock_feedback(current_context(), big_rock_id)
    return api_success(feedback.to_dict() if feedback else None)


@feedback_bp.route("/big-rocks/<int:big_rock_id>", methods=["POST"])
@require_auth
def give_big_rock_feedback(big_rock_id):
    payload = _feedback_payload(json_body())
    return _saved(*feedback_service.give_big_rock_feedback(
        current_context(), big_rock_id, payload["comment"], payload["rating"],
    ))


@feedback_bp.route("/months/<month>", methods=["GET"])
@require_auth
def month_feedback(month):
    feedback = feedback_service.get_month_feedback(
        current_context(), require_month(month), user_id=int_arg("userId"),
    )
    return api_success(feedback.to_dict() if feedback else None)


@feedback_bp.route("/months/<month>", methods=["POST"])
@require_auth
def give_month_feedback(month):
    month = require_month(month)
    payload = _feedback_payload(json_body(), with_user=True)
    return _saved(*feedback_service.give_month_feedback(
        current_context(), payload["user_id"], month, payload["comment"], payload["rating"],
    ))


@feedback_bp.route("/<int:feedback_id>", methods=["DELETE"])
@require_auth
def delete_feedback(feedback_id):
    feedback_service.delete_feedback(current_context(), feedback_id)
    return api_success({"deleted": True, "id": feedback_id})
