import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models.quote import Quote, QuoteItem
from models.share import Share
from services.csv_export import export_filename, items_csv
from services.errors import ShareExpired, ShareNotFound
from services.persistence import atomic
from services.quotes import get_quote

# 16 bytes = 128 bits -> 22 caracteres base64url
TOKEN_BYTES = 16


@dataclass(frozen=True)
class ShareLink:
    url: str
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class SharePayload:
    filename: str
    content: str


def new_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def create_share_link(db: Session, actor, quote_id: int, base_url: str, ttl_days: int = 7,
                      now: Optional[datetime] = None) -> ShareLink:
    """
    Link público (sem login) para baixar o CSV de uma cotação.
    Só admin da empresa ou dono da cotação.
    """
    quote = get_quote(db, actor, quote_id)

    now = now or datetime.utcnow()
    share = Share(
        quote_id=quote.id,
        token=new_token(),
        expires_at=now + timedelta(days=ttl_days),
        created_at=now,
    )
    with atomic(db):
        db.add(share)

    url = f"{base_url.rstrip('/')}/{share.token}"
    return ShareLink(url=url, token=share.token, expires_at=share.expires_at)


def resolve_share(db: Session, token: str, now: Optional[datetime] = None) -> SharePayload:
    """
    Token desconhecido -> ShareNotFound (404); vencido -> ShareExpired (410).
    """
    token = (token or "").strip()
    share = db.query(Share).filter(Share.token == token).first() if token else None
    if not share:
        raise ShareNotFound()

    now = now or datetime.utcnow()
    if share.is_expired(now):
        raise ShareExpired()

    quote = db.get(Quote, share.quote_id)
    if not quote:
        raise ShareNotFound()

    items = (
        db.query(QuoteItem)
        .filter(QuoteItem.quote_id == quote.id, QuoteItem.company_id == quote.company_id)
        .order_by(QuoteItem.id.asc())
        .all()
    )
    return SharePayload(filename=export_filename(quote.title, now), content=items_csv(items))
