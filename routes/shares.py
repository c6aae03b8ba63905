from flask import Blueprint, current_app, jsonify, request, url_for
from flask_login import current_user, login_required

from models import db
from routes.guards import json_body
from routes.quotes import csv_response
from services import shares as share_service
from services.errors import ValidationError

shares_bp = Blueprint("shares", __name__, url_prefix="/api/shares")


def _share_base_url() -> str:
    app_url = (current_app.config.get("APP_URL") or "").rstrip("/")
    path = url_for("shares.create").rstrip("/")
    if app_url:
        return f"{app_url}{path}"
    return f"{request.host_url.rstrip('/')}{path}"


@shares_bp.post("")
@login_required
def create():
    data = json_body()
    try:
        quote_id = int(data.get("quoteId"))
    except (TypeError, ValueError):
        raise ValidationError("quoteId inválido") from None

    link = share_service.create_share_link(
        db.session,
        current_user,
        quote_id,
        base_url=_share_base_url(),
        ttl_days=current_app.config["SHARE_TTL_DAYS"],
    )
    current_app.logger.info(
        "Link de compartilhamento criado: cotação %s por usuário %s (expira %s)",
        quote_id, current_user.id, link.expires_at.isoformat(),
    )
    return jsonify({"shareUrl": link.url, "expiresAt": link.expires_at.isoformat()})


@shares_bp.get("/<token>")
def resolve(token: str):
    """Download público (sem login) do CSV; 404 token inválido, 410 expirado."""
    payload = share_service.resolve_share(db.session, token)
    return csv_response(payload.content, payload.filename)
