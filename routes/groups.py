from flask import Blueprint, current_app, jsonify, request

from schemas import ValidationError
from services.group_service import (
    create_expense,
    get_group_balances_view,
    get_group_settlement_suggestions,
    serialize_expense,
    GroupNotFoundError,
    NotGroupMemberError,
)
from services.settlement_service import get_group_settlements, serialize_settlement
from utils.decorators import login_required, current_user_id


groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/api/groups/<int:group_id>/balances", methods=["GET"])
@login_required
def api_group_balances(group_id):
    try:
        return jsonify(get_group_balances_view(group_id, current_user_id()))
    except GroupNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NotGroupMemberError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Get group balances failed")
        return jsonify({"error": "Failed to get balances"}), 500


@groups_bp.route("/api/groups/<int:group_id>/settlements", methods=["GET"])
@login_required
def api_group_settlements(group_id):
    try:
        data = get_group_settlement_suggestions(group_id, current_user_id())
        data["recorded"] = [serialize_settlement(s) for s in get_group_settlements(group_id)]
        return jsonify(data)
    except GroupNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NotGroupMemberError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Get group settlements failed")
        return jsonify({"error": "Failed to get settlements"}), 500


@groups_bp.route("/api/groups/<int:group_id>/expenses", methods=["POST"])
@login_required
def api_add_expense(group_id):
    try:
        expense = create_expense(current_user_id(), group_id, request.get_json(silent=True))
        return jsonify({"success": True, "expense": serialize_expense(expense)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except GroupNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NotGroupMemberError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Add expense failed")
        return jsonify({"error": "Failed to add expense"}), 500
