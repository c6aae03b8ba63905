from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.quote import Quote, QuoteItem, QuoteStatus
from models.share import Share
from services import catalog
from services.csv_export import export_filename, items_csv
from services.access import (
    ensure_owner_or_admin,
    ensure_quote_access,
    ensure_quote_open,
    ensure_same_company,
    is_admin,
)
from services.errors import ValidationError
from services.persistence import atomic, upsert_insert

MAX_BARCODE_LEN = 60


# -------------------------
# Validação de entrada
# -------------------------
def _clean_str(v: str | None) -> str:
    # JSON pode trazer número, lista, objeto...
    if v is None:
        return ""
    if not isinstance(v, str):
        raise ValidationError("Valor inválido")
    return v.strip()


def clean_barcode(value) -> str:
    barcode = _clean_str(str(value) if value is not None else None)
    if not barcode or len(barcode) > MAX_BARCODE_LEN or not (barcode.isascii() and barcode.isdigit()):
        raise ValidationError("Código de barras inválido")
    return barcode


def clean_product_name(value) -> str:
    name = _clean_str(value)
    if not name:
        raise ValidationError("Nome do produto é obrigatório")
    return name


def clean_quantity(value) -> int:
    """Quantidade inteira e positiva (aceita "3" vindo de formulário)."""
    if isinstance(value, bool):
        raise ValidationError("Quantidade inválida")
    try:
        qty = int(str(value).strip()) if not isinstance(value, int) else value
    except (TypeError, ValueError):
        raise ValidationError("Quantidade inválida") from None
    if qty <= 0:
        raise ValidationError("Quantidade deve ser maior que zero")
    return qty


# -------------------------
# Cotações
# -------------------------
def _get_company_quote(db: Session, actor, quote_id: int) -> Quote:
    quote = (
        db.query(Quote)
        .filter(Quote.id == quote_id, Quote.company_id == actor.company_id)
        .first()
    )
    ensure_same_company(actor, quote)
    return quote


def list_quotes(db: Session, actor) -> list[Quote]:
    """
    Admin: todas as cotações da empresa (com nome do criador).
    Funcionário: só as próprias.
    """
    q = db.query(Quote).filter(Quote.company_id == actor.company_id)
    if not is_admin(actor):
        q = q.filter(Quote.user_id == actor.id)
    return q.order_by(Quote.created_at.desc(), Quote.id.desc()).all()


def get_quote(db: Session, actor, quote_id: int) -> Quote:
    quote = db.get(Quote, quote_id)
    ensure_quote_access(actor, quote)
    return quote


def create_quote(db: Session, actor, title: str, notes: Optional[str] = None) -> Quote:
    title = _clean_str(title)
    if not title:
        raise ValidationError("Título é obrigatório")

    quote = Quote(
        company_id=actor.company_id,
        user_id=actor.id,
        title=title,
        notes=_clean_str(notes) or None,
        status=QuoteStatus.OPEN,
    )
    with atomic(db):
        db.add(quote)
    return quote


def delete_quote(db: Session, actor, quote_id: int) -> None:
    """
    Remove itens -> links -> cotação, na ordem das FKs, numa única transação.
    """
    quote = get_quote(db, actor, quote_id)

    with atomic(db):
        db.query(QuoteItem).filter(QuoteItem.quote_id == quote.id).delete(synchronize_session=False)
        db.query(Share).filter(Share.quote_id == quote.id).delete(synchronize_session=False)
        db.query(Quote).filter(Quote.id == quote.id).delete(synchronize_session=False)
    db.expunge(quote)


def finalize_quote(db: Session, actor, quote_id: int) -> Quote:
    """
    open -> closed. Finalizar de novo uma cotação fechada não faz nada.
    """
    quote = get_quote(db, actor, quote_id)

    if quote.is_closed:
        return quote

    with atomic(db):
        quote.status = QuoteStatus.CLOSED
        quote.updated_at = datetime.utcnow()
    return quote


# -------------------------
# Itens
# -------------------------
def _get_editable_item(db: Session, actor, item_id: int) -> QuoteItem:
    """
    Resolve item -> cotação e aplica as regras de edição:
    - empresa diferente -> NotFound
    - cotação fechada -> QuoteClosed (para qualquer usuário)
    - funcionário que não é o dono -> Forbidden
    """
    row = (
        db.query(QuoteItem, Quote)
        .join(Quote, Quote.id == QuoteItem.quote_id)
        .filter(QuoteItem.id == item_id, Quote.company_id == actor.company_id)
        .first()
    )
    ensure_same_company(actor, row[1] if row else None)
    item, quote = row
    ensure_quote_open(quote)
    ensure_owner_or_admin(actor, quote)
    return item


def add_item(db: Session, actor, quote_id: int, barcode, product_name, quantity,
             save_to_catalog: bool = False) -> tuple[QuoteItem, bool]:
    """
    Adiciona (ou soma) um item na cotação.

    INSERT ... ON CONFLICT (quote_id, barcode) DO UPDATE quantity = quantity + novo,
    então dois scans simultâneos do mesmo código somam sem duplicar linha.

    Catálogo na mesma transação:
      - save_to_catalog: grava/atualiza o nome
      - senão: só atualiza last_used_at (não sobrescreve nome curado)

    Retorna (item, merged) onde merged indica que o código já estava na cotação.
    """
    quote = _get_company_quote(db, actor, quote_id)
    ensure_quote_open(quote)
    ensure_owner_or_admin(actor, quote)

    barcode = clean_barcode(barcode)
    product_name = clean_product_name(product_name)
    quantity = clean_quantity(quantity)

    now = datetime.utcnow()
    stmt = upsert_insert(db, QuoteItem).values(
        quote_id=quote.id,
        company_id=quote.company_id,
        barcode=barcode,
        product_name=product_name,
        quantity=quantity,
        updated_by_user_id=actor.id,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["quote_id", "barcode"],
        set_={
            "quantity": QuoteItem.quantity + stmt.excluded.quantity,
            "product_name": stmt.excluded.product_name,
            "updated_by_user_id": stmt.excluded.updated_by_user_id,
            "updated_at": stmt.excluded.updated_at,
        },
    ).returning(QuoteItem.id, QuoteItem.quantity)

    with atomic(db):
        item_id, new_qty = db.execute(stmt).one()

        if save_to_catalog:
            catalog.upsert_on_use(db, quote.company_id, barcode, product_name, now=now)
        else:
            catalog.touch_only(db, quote.company_id, barcode, now=now)

    # quantidade é sempre > 0, então total maior que o enviado => já existia
    merged = new_qty != quantity

    item = (
        db.query(QuoteItem)
        .filter(QuoteItem.id == item_id)
        .populate_existing()
        .one()
    )
    return item, merged


def update_item(db: Session, actor, item_id: int, quantity=None, product_name=None) -> QuoteItem:
    item = _get_editable_item(db, actor, item_id)

    quantity = clean_quantity(quantity) if quantity is not None else item.quantity
    product_name = clean_product_name(product_name) if product_name is not None else item.product_name

    with atomic(db):
        item.quantity = quantity
        item.product_name = product_name
        item.updated_by_user_id = actor.id
        item.updated_at = datetime.utcnow()
    return item


def delete_item(db: Session, actor, item_id: int) -> None:
    item = _get_editable_item(db, actor, item_id)
    with atomic(db):
        db.delete(item)


def quote_items(db: Session, actor, quote_id: int) -> tuple[Quote, list[QuoteItem]]:
    quote = get_quote(db, actor, quote_id)
    items = (
        db.query(QuoteItem)
        .filter(QuoteItem.quote_id == quote.id, QuoteItem.company_id == actor.company_id)
        .order_by(QuoteItem.id.asc())
        .all()
    )
    return quote, items


def export_quote_csv(db: Session, actor, quote_id: int) -> tuple[str, str]:
    """(nome do arquivo, conteúdo CSV) dos itens da cotação."""
    quote, items = quote_items(db, actor, quote_id)
    return export_filename(quote.title), items_csv(items)
