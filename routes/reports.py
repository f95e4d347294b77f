from flask import Blueprint, current_app, jsonify, request

from schemas import ValidationError
from services.report_service import (
    date_window,
    get_categories,
    get_category_summary,
    get_dashboard_summary,
    get_monthly_report,
)
from utils.decorators import login_required, current_user_id
from utils.helpers import parse_int


reports_bp = Blueprint("reports", __name__)


@reports_bp.route("/api/dashboard/summary", methods=["GET"])
@login_required
def api_dashboard_summary():
    try:
        start, end = date_window(request.args.get("start"), request.args.get("end"))
        return jsonify(dict(get_dashboard_summary(current_user_id(), start, end), success=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Get dashboard summary failed")
        return jsonify({"error": "Failed to fetch dashboard summary"}), 500


@reports_bp.route("/api/reports/monthly", methods=["GET"])
@login_required
def api_monthly_report():
    month = parse_int(request.args.get("month"))
    year = parse_int(request.args.get("year"))

    try:
        report = get_monthly_report(current_user_id(), month, year)
        return jsonify(dict(report, success=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Get monthly report failed")
        return jsonify({"error": "Failed to fetch monthly report"}), 500


@reports_bp.route("/api/categories", methods=["GET"])
@login_required
def api_categories():
    return jsonify({"categories": get_categories()})


@reports_bp.route("/api/categories/summary", methods=["GET"])
@login_required
def api_category_summary():
    try:
        return jsonify(get_category_summary(current_user_id()))
    except Exception:
        current_app.logger.exception("Get category summary failed")
        return jsonify({"error": "Failed to get category summary"}), 500
