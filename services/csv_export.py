import csv
import io
from datetime import datetime


ITEM_HEADERS = ["Código de barras", "Nome do produto", "Quantidade a ser pedida"]
CATALOG_HEADERS = ["Código de barras", "Nome do produto", "Último uso", "Atualizado em"]


def _fmt_dt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def render_csv(headers, rows) -> str:
    """
    Cabeçalho + uma linha por registro, separador "," e linhas com "\\n",
    sem quebra de linha final.

    Campos com vírgula, aspas ou quebra de linha são citados (RFC-4180);
    os demais saem exatamente como o formato antigo.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    writer.writerows(rows)
    out = buf.getvalue()
    if out.endswith("\n"):
        out = out[:-1]
    return out


def items_csv(items) -> str:
    return render_csv(
        ITEM_HEADERS,
        [(it.barcode, it.product_name, it.quantity) for it in items],
    )


def catalog_csv(entries) -> str:
    return render_csv(
        CATALOG_HEADERS,
        [
            (e.barcode, e.product_name, _fmt_dt(e.last_used_at), _fmt_dt(e.updated_at))
            for e in entries
        ],
    )


def export_filename(title: str, when: datetime | None = None) -> str:
    # "<título>-AAAA-MM-DD.csv"
    day = (when or datetime.utcnow()).strftime("%Y-%m-%d")
    return f"{title}-{day}.csv"
