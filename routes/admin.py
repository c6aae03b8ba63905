from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from models import db
from models.user import Role
from routes.guards import json_body, require_roles
from routes.quotes import csv_response
from services import catalog as catalog_service
from services import identity
from services.errors import ValidationError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# -------------------------
# Helpers
# -------------------------
def _iso(dt):
    return dt.isoformat() if dt else None


def _hash_method() -> str:
    return current_app.config["PASSWORD_HASH_METHOD"]


def _min_password() -> int:
    return current_app.config["MIN_PASSWORD_LENGTH"]


def _catalog_json(e) -> dict:
    return {
        "id": e.id,
        "barcode": e.barcode,
        "productName": e.product_name,
        "lastUsedAt": _iso(e.last_used_at),
        "createdAt": _iso(e.created_at),
        "updatedAt": _iso(e.updated_at),
    }


def _user_json(u) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "active": bool(u.is_active),
        "createdAt": _iso(u.created_at),
    }


# =========================
# CATÁLOGO (Admin empresa)
# =========================
@admin_bp.get("/catalog")
@login_required
@require_roles(Role.ADMIN)
def catalog_list():
    rows = catalog_service.list_catalog(
        db.session,
        current_user,
        search=request.args.get("search", ""),
        sort=request.args.get("sort", catalog_service.DEFAULT_SORT),
    )
    return jsonify([_catalog_json(e) for e in rows])


@admin_bp.patch("/catalog/<int:entry_id>")
@login_required
@require_roles(Role.ADMIN)
def catalog_rename(entry_id: int):
    data = json_body()
    catalog_service.rename_entry(db.session, current_user, entry_id, data.get("productName"))
    return jsonify({"success": True})


@admin_bp.get("/catalog/export")
@login_required
@require_roles(Role.ADMIN)
def catalog_export():
    content = catalog_service.export_catalog_csv(db.session, current_user)
    return csv_response(content, "catalogo-produtos.csv")


@admin_bp.post("/catalog/import")
@login_required
@require_roles(Role.ADMIN)
def catalog_import():
    """
    Importa o registro 0200 de um arquivo SPED.
    Aceita upload multipart (campo "file") ou corpo text/plain.
    """
    upload = request.files.get("file")
    if upload is not None:
        raw = upload.read()
    elif request.mimetype == "text/plain":
        raw = request.get_data()
    else:
        raise ValidationError("Nenhum arquivo enviado")

    company_id = current_user.company_id
    try:
        result = catalog_service.bulk_import(db.session, company_id, catalog_service.decode_import(raw))
    except Exception:
        current_app.logger.exception("Erro ao importar catálogo da empresa %s", company_id)
        return jsonify({"error": "Erro ao processar arquivo", "code": "import_failed"}), 500

    current_app.logger.info(
        "Importação de catálogo empresa %s: encontrados=%s inseridos=%s atualizados=%s ignorados=%s",
        company_id, result.found, result.inserted, result.updated, result.ignored,
    )
    return jsonify(result.to_dict())


# =========================
# USUÁRIOS (Admin empresa)
# =========================
@admin_bp.get("/users")
@login_required
@require_roles(Role.ADMIN)
def users_list():
    users = identity.list_users(db.session, current_user)
    return jsonify([_user_json(u) for u in users])


@admin_bp.post("/users")
@login_required
@require_roles(Role.ADMIN)
def users_create():
    data = json_body()
    new_id = identity.create_user(
        db.session,
        current_user,
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role") or Role.EMPLOYEE,
        method=_hash_method(),
        min_length=_min_password(),
    )
    current_app.logger.info("Usuário %s criado na empresa %s", new_id, current_user.company_id)
    return jsonify({"id": new_id}), 201


@admin_bp.patch("/users/<int:user_id>")
@login_required
@require_roles(Role.ADMIN)
def users_update(user_id: int):
    data = json_body()
    identity.update_user(db.session, current_user, user_id, name=data.get("name"), email=data.get("email"))
    return jsonify({"success": True})


@admin_bp.patch("/users/<int:user_id>/toggle")
@login_required
@require_roles(Role.ADMIN)
def users_toggle(user_id: int):
    """Ativa/Desativa o acesso do usuário (não remove)."""
    user = identity.toggle_user(db.session, current_user, user_id)
    return jsonify({"success": True, "active": bool(user.is_active)})


@admin_bp.post("/users/<int:user_id>/reset")
@login_required
@require_roles(Role.ADMIN)
def users_reset_password(user_id: int):
    data = json_body()
    identity.reset_password(
        db.session,
        current_user,
        user_id,
        data.get("password"),
        method=_hash_method(),
        min_length=_min_password(),
    )
    return jsonify({"success": True})
