from flask import Blueprint, current_app, jsonify, request

from schemas import ValidationError
from services.group_service import get_all_settlement_suggestions, GroupNotFoundError
from services.settlement_service import (
    mark_settlement_paid,
    serialize_settlement,
    SettlementPermissionError,
)
from utils.decorators import login_required, current_user_id


settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("/api/settlements", methods=["GET"])
@login_required
def api_all_settlements():
    try:
        return jsonify({"settlements": get_all_settlement_suggestions(current_user_id())})
    except Exception:
        current_app.logger.exception("Get all settlements failed")
        return jsonify({"error": "Failed to get settlements"}), 500


@settlements_bp.route("/api/settlements", methods=["POST"])
@login_required
def api_mark_settlement_paid():
    try:
        settlement = mark_settlement_paid(request.get_json(silent=True), current_user_id())
        return jsonify({"success": True, "settlement": serialize_settlement(settlement)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except GroupNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SettlementPermissionError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Mark settlement paid failed")
        return jsonify({"error": "Failed to mark settlement as paid"}), 500
