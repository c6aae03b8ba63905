from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from models import db, login_manager
from routes.guards import json_body
from services import identity
from services.errors import ServiceError, Unauthorized

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _session_max_age() -> int:
    return int(timedelta(days=current_app.config["SESSION_TTL_DAYS"]).total_seconds())


@login_manager.request_loader
def load_user_from_cookie(req):
    token = req.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    if not token:
        return None
    try:
        claims = identity.verify_session(token, current_app.config["SECRET_KEY"], _session_max_age())
    except ServiceError:
        return None
    return identity.load_session_user(db.session, claims)


@login_manager.unauthorized_handler
def unauthorized():
    raise Unauthorized()


def _set_auth_cookie(resp, token: str) -> None:
    cfg = current_app.config
    resp.set_cookie(
        cfg["AUTH_COOKIE_NAME"],
        token,
        max_age=_session_max_age(),
        httponly=cfg["SESSION_COOKIE_HTTPONLY"],
        secure=cfg["SESSION_COOKIE_SECURE"],
        samesite=cfg["SESSION_COOKIE_SAMESITE"],
    )


@auth_bp.post("/login")
def login():
    data = json_body()
    email = data.get("email") or ""

    try:
        user = identity.authenticate(
            db.session,
            email,
            data.get("password") or "",
            method=current_app.config["PASSWORD_HASH_METHOD"],
        )
    except Unauthorized:
        current_app.logger.warning("Login recusado para %r", email)
        raise

    token = identity.issue_session(user, current_app.config["SECRET_KEY"])
    resp = jsonify({"id": user.id, "name": user.name, "role": user.role, "companyId": user.company_id})
    _set_auth_cookie(resp, token)
    return resp


@auth_bp.post("/logout")
def logout():
    cfg = current_app.config
    resp = jsonify({"success": True})
    resp.delete_cookie(
        cfg["AUTH_COOKIE_NAME"],
        httponly=cfg["SESSION_COOKIE_HTTPONLY"],
        secure=cfg["SESSION_COOKIE_SECURE"],
        samesite=cfg["SESSION_COOKIE_SAMESITE"],
    )
    return resp


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({
        "id": current_user.id,
        "companyId": current_user.company_id,
        "role": current_user.role,
        "name": current_user.name,
    })


@auth_bp.patch("/profile/password")
@login_required
def change_password():
    data = json_body()
    identity.change_password(
        db.session,
        current_user,
        data.get("currentPassword") or "",
        data.get("newPassword") or "",
        method=current_app.config["PASSWORD_HASH_METHOD"],
        min_length=current_app.config["MIN_PASSWORD_LENGTH"],
    )
    return jsonify({"success": True})
