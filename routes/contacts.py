from flask import Blueprint, current_app, jsonify, request

from schemas import ValidationError
from services.contact_profile_service import get_contact_profile, settle_contact_balance
from services.ledger_service import ContactNotFoundError
from utils.decorators import login_required, current_user_id


contacts_bp = Blueprint("contacts", __name__)


@contacts_bp.route("/api/contacts/<int:contact_id>/profile", methods=["GET"])
@login_required
def api_contact_profile(contact_id):
    try:
        profile = get_contact_profile(current_user_id(), contact_id)
        return jsonify(dict(profile, success=True))
    except ContactNotFoundError:
        return jsonify({"error": "Contact not found"}), 404
    except Exception:
        current_app.logger.exception("Get contact profile failed")
        return jsonify({"error": "Failed to fetch contact profile"}), 500


@contacts_bp.route("/api/contacts/<int:contact_id>/settle", methods=["POST"])
@login_required
def api_settle_contact(contact_id):
    try:
        result = settle_contact_balance(current_user_id(), contact_id, request.get_json(silent=True))
        return jsonify(dict(result, success=True, message="Settlement recorded successfully"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ContactNotFoundError:
        return jsonify({"error": "Contact not found"}), 404
    except Exception:
        current_app.logger.exception("Settle contact failed")
        return jsonify({"error": "Failed to settle balance"}), 500
