"""
Planning Blueprint — month planning confirmation and weekly reviews.

Endpoints:
    GET  /api/planning/<month>               — planning status (?userId)
    POST /api/planning/<month>/confirm       — confirm own month planning
    POST /api/planning/<month>/unconfirm     — reopen (ADMIN / SUPERADMIN; body userId)
    GET  /api/planning/<month>/supervisees   — planning status of direct supervisees

    POST /api/weekly-reviews                 — submit a weekly review
    GET  /api/weekly-reviews/<YYYY-Wnn>      — own review for a week (null if none)
    PUT  /api/weekly-reviews/<id>            — edit own review
"""

from flask import Blueprint

from fase.blueprints import int_arg, json_body, present_fields, require_month, require_week
from fase.middleware.auth_required import current_context, require_auth
from fase.services import planning_service
from fase.utils.dates import is_valid_week
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

planning_bp = Blueprint("planning", __name__, url_prefix="/api")


# ── Month planning ───────────────────────────────────────────────────────────


@planning_bp.route("/planning/<month>", methods=["GET"])
@require_auth
def planning_status(month):
    status = planning_service.get_month_planning_status(
        current_context(), require_month(month), user_id=int_arg("userId"),
    )
    return api_success(status)


@planning_bp.route("/planning/<month>/confirm", methods=["POST"])
@require_auth
def confirm_planning(month):
    return api_success(planning_service.confirm_month_planning(current_context(), require_month(month)))


@planning_bp.route("/planning/<month>/unconfirm", methods=["POST"])
@require_auth
def unconfirm_planning(month):
    errs = FieldErrors(json_body())
    user_id = errs.integer("userId", 1, required=False)
    errs.raise_if_any()
    status = planning_service.unconfirm_month_planning(
        current_context(), require_month(month), user_id=user_id,
    )
    return api_success(status)


@planning_bp.route("/planning/<month>/supervisees", methods=["GET"])
@require_auth
def supervisees_planning(month):
    return api_success(
        planning_service.list_supervisees_planning(current_context(), require_month(month))
    )


# ── Weekly reviews ───────────────────────────────────────────────────────────

_REVIEW_ALIASES = {"next_week_focus": "nextWeekFocus"}


def _review_payload(data: dict, *, partial: bool = False) -> dict:
    errs = FieldErrors(data, partial=partial)
    payload = {
        "accomplishments": errs.string("accomplishments", 1, 5000),
        "blockers": errs.string("blockers", 1, 5000),
        "learnings": errs.string("learnings", 0, 5000, required=False),
        "next_week_focus": errs.string("nextWeekFocus", 0, 5000, required=False),
    }
    if not partial:
        payload["week"] = errs.matches(
            "week", is_valid_week, "Formato de semana invalido (YYYY-Wnn)",
        )
    errs.raise_if_any()
    if partial:
        return present_fields(data, payload, _REVIEW_ALIASES, ("learnings", "next_week_focus"))
    return payload


@planning_bp.route("/weekly-reviews", methods=["POST"])
@require_auth
def create_weekly_review():
    result = planning_service.create_weekly_review(current_context(), _review_payload(json_body()))
    return api_success(result, status=201)


@planning_bp.route("/weekly-reviews/<week>", methods=["GET"])
@require_auth
def get_weekly_review(week):
    review = planning_service.get_weekly_review(current_context(), require_week(week))
    return api_success(review.to_dict() if review else None)


@planning_bp.route("/weekly-reviews/<int:review_id>", methods=["PUT"])
@require_auth
def update_weekly_review(review_id):
    review = planning_service.update_weekly_review(
        current_context(), review_id, _review_payload(json_body(), partial=True),
    )
    return api_success(review.to_dict())
