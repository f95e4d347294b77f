from flask import Blueprint, current_app, jsonify, request

from schemas import ValidationError
from services.ledger_service import (
    add_transaction,
    get_contact_detail,
    get_contacts_with_balances,
    get_ledger_summary,
    serialize_transaction,
    ContactNotFoundError,
)
from services.report_service import date_window
from utils.decorators import login_required, current_user_id


ledger_bp = Blueprint("ledger", __name__)


@ledger_bp.route("/api/ledger/contacts", methods=["GET"])
@login_required
def api_contacts():
    try:
        return jsonify({"contacts": get_contacts_with_balances(current_user_id())})
    except Exception:
        current_app.logger.exception("Get contacts failed")
        return jsonify({"error": "Failed to get contacts"}), 500


@ledger_bp.route("/api/ledger/contacts/<int:contact_id>", methods=["GET"])
@login_required
def api_contact_detail(contact_id):
    try:
        return jsonify(get_contact_detail(current_user_id(), contact_id))
    except ContactNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Get contact detail failed")
        return jsonify({"error": "Failed to get contact details"}), 500


@ledger_bp.route("/api/ledger/transactions", methods=["POST"])
@login_required
def api_add_transaction():
    try:
        txn = add_transaction(current_user_id(), request.get_json(silent=True))
        return jsonify({"success": True, "transaction": serialize_transaction(txn)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ContactNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Add transaction failed")
        return jsonify({"error": "Failed to add transaction"}), 500


@ledger_bp.route("/api/ledger/summary", methods=["GET"])
@login_required
def api_ledger_summary():
    try:
        start, end = date_window(request.args.get("start"), request.args.get("end"))
        return jsonify(get_ledger_summary(current_user_id(), start, end))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Get ledger summary failed")
        return jsonify({"error": "Failed to get ledger summary"}), 500
