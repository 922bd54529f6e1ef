# /backend/cheatsheet/user_login.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from flask import Blueprint, jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user

from .extensions import db, login_manager
from .models import User

log = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/api")

__all__ = ["bp", "login_required", "create_user", "authenticate"]

"""
# Example use
from flask import Blueprint, jsonify
from cheatsheet.user_login import login_required

bp = Blueprint("some_api", __name__, url_prefix="/api")

@bp.route("/data", methods=["GET"])
@login_required
def get_data():
    # Only runs if authenticated
    return jsonify(items=[1, 2, 3]), 200
"""


# -------- Flask-Login wiring --------

@login_manager.user_loader
def load_user(user_id: str) -> Optional[User]:
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    """API clients get JSON 401 instead of a redirect to a login page."""
    return jsonify(error="Not authenticated."), 401


# -------- Utilities --------

def create_user(username: str, password: str, overwrite: bool = False) -> User:
    """
    Insert a user (or update the password when ``overwrite`` is set).
    Raises ValueError on bad input or when the user exists and overwrite is False.
    The caller commits.
    """
    username = (username or "").strip()
    if not username:
        raise ValueError("Username must not be empty.")

    user = db.session.execute(db.select(User).filter_by(username=username)).scalar_one_or_none()
    if user is not None and not overwrite:
        raise ValueError(f"User '{username}' already exists.")
    if user is None:
        user = User(username=username)
        db.session.add(user)
    user.set_password(password)
    return user


def authenticate(username: str, password: str) -> Optional[User]:
    user = db.session.execute(db.select(User).filter_by(username=username)).scalar_one_or_none()
    if user is None or not user.check_password(password):
        return None
    return user


# -------- Session lifetime / refresh --------

@bp.record_once
def _configure_session_lifetime(setup_state):
    """
    Ensure the app uses a 30-day permanent session lifetime unless configured otherwise.
    Flask refreshes permanent sessions on each request as long as
    SESSION_REFRESH_EACH_REQUEST=True (default).
    """
    app = setup_state.app
    if not app.config.get("PERMANENT_SESSION_LIFETIME"):
        app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=30)


@bp.before_app_request
def _refresh_permanent_session():
    """When authenticated, keep the rolling expiry moving on activity."""
    if current_user.is_authenticated:
        session.permanent = True
        session.modified = True


# -------- Routes --------

@bp.route("/login", methods=["POST"])
def login():
    """
    Body: JSON { "username": "...", "password": "...", "remember": false }
    On success: logs the user in and returns 200 {ok, user_id}
    On failure: 401 (same message whether or not the username exists)
    """
    if not request.is_json:
        return jsonify(error="Expected JSON body."), 400

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Expected JSON body."), 400
    username = str(data.get("username") or "").strip()
    password = data.get("password")

    if not username or password is None:
        return jsonify(error="Missing 'username' or 'password'."), 400

    user = authenticate(username, str(password))
    if user is None:
        log.info("Failed login for %r", username)
        return jsonify(error="Invalid username or password."), 401

    login_user(user, remember=bool(data.get("remember")))
    session.permanent = True
    log.info("User %s logged in", user.username)
    return jsonify(ok=True, user_id=user.username), 200


@bp.route("/logout", methods=["POST", "GET"])
def logout():
    """Clears the login session."""
    logout_user()
    return jsonify(ok=True), 200


@bp.route("/whoami", methods=["GET"])
@login_required
def whoami():
    return jsonify(ok=True, user_id=current_user.username), 200
