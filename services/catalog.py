import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.catalog import ProductCatalog
from services.access import ensure_admin, ensure_same_company
from services.csv_export import catalog_csv
from services.errors import ValidationError
from services.persistence import atomic, upsert_insert


# Fallback de demonstração quando o código não está no catálogo da empresa.
DEMO_PRODUCTS = {
    "7891000100103": "Coca-Cola 350ml",
    "7891021001557": "Arroz Tio João 1kg",
    "7891000053508": "Nescau 400g",
    "7891991010856": "Cerveja Skol Latão",
}

SPED_PRODUCT_TAG = "|0200|"

_EAN13 = re.compile(r"[0-9]{13}")
_LINE_SPLIT = re.compile(r"\r?\n")

_SORTS = {
    "lastUsedAt_desc": ProductCatalog.last_used_at.desc(),
    "productName_asc": ProductCatalog.product_name.asc(),
    "productName_desc": ProductCatalog.product_name.desc(),
    "updatedAt_desc": ProductCatalog.updated_at.desc(),
}
DEFAULT_SORT = "lastUsedAt_desc"

UPSERT_BATCH_SIZE = 100


@dataclass(frozen=True)
class CatalogHit:
    product_name: str
    source: str  # "catalog" | "demo"


@dataclass
class ImportResult:
    found: int = 0
    inserted: int = 0
    updated: int = 0
    ignored: int = 0

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "inserted": self.inserted,
            "updated": self.updated,
            "ignored": self.ignored,
        }


def _upsert_rows(db: Session, company_id: int, rows: dict[str, str], now: datetime) -> None:
    """
    INSERT ... ON CONFLICT (company_id, barcode) DO UPDATE, em lotes
    (limite de parâmetros por statement do SQLite).
    """
    items = list(rows.items())
    for start in range(0, len(items), UPSERT_BATCH_SIZE):
        chunk = items[start:start + UPSERT_BATCH_SIZE]
        stmt = upsert_insert(db, ProductCatalog).values([
            {
                "company_id": company_id,
                "barcode": barcode,
                "product_name": name,
                "last_used_at": now,
                "created_at": now,
                "updated_at": now,
            }
            for barcode, name in chunk
        ])
        stmt = stmt.on_conflict_do_update(
            index_elements=["company_id", "barcode"],
            set_={
                "product_name": stmt.excluded.product_name,
                "last_used_at": stmt.excluded.last_used_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        db.execute(stmt)


# -------------------------
# Escrita pelo uso (itens de cotação)
# -------------------------
def upsert_on_use(db: Session, company_id: int, barcode: str, product_name: str,
                  now: Optional[datetime] = None) -> None:
    """
    INSERT ... ON CONFLICT (company_id, barcode) DO UPDATE.
    Sobrescreve o nome e atualiza last_used_at/updated_at.
    Não faz commit: roda dentro da transação de quem chama.
    """
    _upsert_rows(db, company_id, {barcode: product_name}, now or datetime.utcnow())


def touch_only(db: Session, company_id: int, barcode: str, now: Optional[datetime] = None) -> int:
    """
    Só atualiza last_used_at; não cria registro nem mexe no nome.
    Retorna a quantidade de linhas afetadas (0 ou 1).
    """
    return (
        db.query(ProductCatalog)
        .filter(ProductCatalog.company_id == company_id, ProductCatalog.barcode == barcode)
        .update({ProductCatalog.last_used_at: now or datetime.utcnow()}, synchronize_session="fetch")
    )


def lookup(db: Session, company_id: int, barcode: str) -> Optional[CatalogHit]:
    barcode = (barcode or "").strip()
    if not barcode:
        return None

    name = (
        db.query(ProductCatalog.product_name)
        .filter(ProductCatalog.company_id == company_id, ProductCatalog.barcode == barcode)
        .scalar()
    )
    if name:
        return CatalogHit(product_name=name, source="catalog")

    if barcode in DEMO_PRODUCTS:
        return CatalogHit(product_name=DEMO_PRODUCTS[barcode], source="demo")

    return None


# -------------------------
# Administração
# -------------------------
def list_catalog(db: Session, actor, search: str = "", sort: str = DEFAULT_SORT) -> list[ProductCatalog]:
    ensure_admin(actor)

    q = db.query(ProductCatalog).filter(ProductCatalog.company_id == actor.company_id)

    search = (search or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(ProductCatalog.product_name.ilike(like) | ProductCatalog.barcode.ilike(like))

    order = _SORTS.get(sort or DEFAULT_SORT, _SORTS[DEFAULT_SORT])
    return q.order_by(order, ProductCatalog.id.desc()).all()


def rename_entry(db: Session, actor, entry_id: int, product_name: str) -> ProductCatalog:
    ensure_admin(actor)

    if product_name is not None and not isinstance(product_name, str):
        raise ValidationError("Nome do produto inválido")
    product_name = (product_name or "").strip()
    if not product_name:
        raise ValidationError("Nome do produto é obrigatório")

    entry = (
        db.query(ProductCatalog)
        .filter(ProductCatalog.id == entry_id, ProductCatalog.company_id == actor.company_id)
        .first()
    )
    ensure_same_company(actor, entry)

    with atomic(db):
        entry.product_name = product_name
        entry.updated_at = datetime.utcnow()
    return entry


def export_entries(db: Session, actor) -> list[ProductCatalog]:
    ensure_admin(actor)
    return (
        db.query(ProductCatalog)
        .filter(ProductCatalog.company_id == actor.company_id)
        .order_by(ProductCatalog.last_used_at.desc(), ProductCatalog.id.desc())
        .all()
    )


def export_catalog_csv(db: Session, actor) -> str:
    return catalog_csv(export_entries(db, actor))


# =========================
# IMPORTAÇÃO SPED (registro 0200)
# =========================
def decode_import(raw: bytes) -> str:
    """
    Arquivos SPED costumam vir em ISO-8859-1; tenta UTF-8 (com BOM) antes.
    """
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def parse_product_line(line: str) -> Optional[tuple[str, str]]:
    """
    |0200|COD_ITEM|DESCR_ITEM|COD_BARRA|...

    Tokens vazios são descartados antes de indexar:
      [0] = 0200, [1] = código interno, [2] = nome, [3] = código de barras

    Retorna (barcode, nome) se a linha for válida, senão None.
    """
    parts = [p for p in line.split("|") if p != ""]
    name = parts[2].strip() if len(parts) > 2 else ""
    barcode = parts[3].strip() if len(parts) > 3 else ""
    if not name or not _EAN13.fullmatch(barcode):
        return None
    return barcode, name


def bulk_import(db: Session, company_id: int, text: str) -> ImportResult:
    """
    Importa produtos de um arquivo SPED.

    - Só linhas começando com "|0200|" são registros de produto.
    - Válida (EAN-13 + nome) -> found, e inserted/updated conforme já existia.
    - "|0200|" inválida -> ignored. Linhas em branco e outros registros não contam.
    - Tudo numa transação: ou todas as linhas válidas entram, ou nenhuma.
    """
    result = ImportResult()
    rows: dict[str, str] = {}

    existing = {
        b for (b,) in db.query(ProductCatalog.barcode).filter(ProductCatalog.company_id == company_id)
    }

    for line in _LINE_SPLIT.split(text or ""):
        if not line.startswith(SPED_PRODUCT_TAG):
            continue

        parsed = parse_product_line(line)
        if parsed is None:
            if line.strip():
                result.ignored += 1
            continue

        barcode, name = parsed
        result.found += 1
        if barcode in existing:
            result.updated += 1
        else:
            result.inserted += 1
            existing.add(barcode)

        # Mesmo código repetido no arquivo: o último nome vence
        rows[barcode] = name

    if not rows:
        return result

    with atomic(db):
        _upsert_rows(db, company_id, rows, datetime.utcnow())

    return result
