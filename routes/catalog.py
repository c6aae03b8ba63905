from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from models import db
from services import catalog as catalog_service

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("/<barcode>")
@login_required
def lookup(barcode: str):
    """
    Autopreenchimento do nome ao escanear/digitar um código.
    Sem resultado -> null (o cliente mostra o campo vazio para digitação).
    """
    hit = catalog_service.lookup(db.session, current_user.company_id, barcode)
    if not hit:
        return jsonify(None)
    return jsonify({"productName": hit.product_name, "source": hit.source})
