import io

from flask import Blueprint, Response, current_app, jsonify, send_file
from flask_login import current_user, login_required

from models import db
from routes.guards import json_body
from services import quotes as quote_service
from services.access import is_admin

quotes_bp = Blueprint("quotes", __name__, url_prefix="/api")


# -------------------------
# Helpers
# -------------------------
def _iso(dt):
    return dt.isoformat() if dt else None


def _quote_json(q) -> dict:
    out = {
        "id": q.id,
        "companyId": q.company_id,
        "userId": q.user_id,
        "title": q.title,
        "status": q.status,
        "notes": q.notes,
        "createdAt": _iso(q.created_at),
        "updatedAt": _iso(q.updated_at),
    }
    if is_admin(current_user):
        out["userName"] = q.user.name if q.user else None
    return out


def _item_json(it) -> dict:
    return {
        "id": it.id,
        "quoteId": it.quote_id,
        "barcode": it.barcode,
        "productName": it.product_name,
        "quantity": it.quantity,
        "updatedByUserId": it.updated_by_user_id,
        "createdAt": _iso(it.created_at),
        "updatedAt": _iso(it.updated_at),
    }


def csv_response(content: str, filename: str) -> Response:
    """
    CSV como anexo. O título da cotação vai no nome do arquivo com acentos e
    espaços; send_file gera filename (ASCII) + filename* (UTF-8).
    """
    name = "".join(ch for ch in filename if ch.isprintable() and ch not in "/\\\"").strip()
    return send_file(
        io.BytesIO(content.encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=name or "export.csv",
    )


# =========================
# COTAÇÕES
# =========================
@quotes_bp.get("/quotes")
@login_required
def quotes_list():
    rows = quote_service.list_quotes(db.session, current_user)
    return jsonify([_quote_json(q) for q in rows])


@quotes_bp.post("/quotes")
@login_required
def quotes_create():
    data = json_body()
    quote = quote_service.create_quote(db.session, current_user, data.get("title"), data.get("notes"))
    return jsonify({"id": quote.id}), 201


@quotes_bp.get("/quotes/<int:quote_id>")
@login_required
def quotes_detail(quote_id: int):
    quote, items = quote_service.quote_items(db.session, current_user, quote_id)
    payload = _quote_json(quote)
    payload["items"] = [_item_json(it) for it in items]
    return jsonify(payload)


@quotes_bp.delete("/quotes/<int:quote_id>")
@login_required
def quotes_delete(quote_id: int):
    quote_service.delete_quote(db.session, current_user, quote_id)
    current_app.logger.info("Cotação %s removida por usuário %s", quote_id, current_user.id)
    return jsonify({"success": True})


@quotes_bp.patch("/quotes/<int:quote_id>/finalize")
@login_required
def quotes_finalize(quote_id: int):
    quote = quote_service.finalize_quote(db.session, current_user, quote_id)
    return jsonify({"success": True, "status": quote.status})


@quotes_bp.get("/quotes/<int:quote_id>/export")
@login_required
def quotes_export(quote_id: int):
    filename, content = quote_service.export_quote_csv(db.session, current_user, quote_id)
    return csv_response(content, filename)


# =========================
# ITENS
# =========================
@quotes_bp.post("/quotes/<int:quote_id>/items")
@login_required
def items_add(quote_id: int):
    data = json_body()
    item, merged = quote_service.add_item(
        db.session,
        current_user,
        quote_id,
        barcode=data.get("barcode"),
        product_name=data.get("productName"),
        quantity=data.get("quantity"),
        save_to_catalog=bool(data.get("saveToCatalog")),
    )
    return jsonify({"success": True, "updated": merged, "item": _item_json(item)})


@quotes_bp.patch("/items/<int:item_id>")
@login_required
def items_update(item_id: int):
    data = json_body()
    quote_service.update_item(
        db.session,
        current_user,
        item_id,
        quantity=data.get("quantity"),
        product_name=data.get("productName"),
    )
    return jsonify({"success": True})


@quotes_bp.delete("/items/<int:item_id>")
@login_required
def items_delete(item_id: int):
    quote_service.delete_item(db.session, current_user, item_id)
    return jsonify({"success": True})
