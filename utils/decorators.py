from functools import wraps
from flask import session, jsonify


def login_required(view):
    """
    Reject requests whose session carries no user_id.

    The session itself is populated by the auth service, which lives
    outside this application.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "authentication_required"}), 401
        return view(*args, **kwargs)
    return wrapper


def current_user_id():
    return session.get("user_id")
