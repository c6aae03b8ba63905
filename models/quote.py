from datetime import datetime
from . import db


class QuoteStatus:
    OPEN = "open"
    CLOSED = "closed"

    ALL = {OPEN, CLOSED}


class Quote(db.Model):
    """
    Cotação (lista de compras) de um funcionário.
    Ciclo de vida: open -> closed (terminal, sem reabertura).
    """
    __tablename__ = "quotes"

    id = db.Column(db.Integer, primary_key=True)

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(160), nullable=False)
    status = db.Column(db.String(10), nullable=False, default=QuoteStatus.OPEN)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Nome do criador para a listagem dos admins
    user = db.relationship("User", lazy="joined")

    items = db.relationship(
        "QuoteItem",
        backref="quote",
        order_by="QuoteItem.id",
        passive_deletes=True,
    )

    __table_args__ = (
        db.Index("ix_quotes_company_created", "company_id", "created_at"),
    )

    @property
    def is_closed(self) -> bool:
        return self.status == QuoteStatus.CLOSED

    def __repr__(self):
        return f"<Quote {self.id} {self.title!r} company={self.company_id} status={self.status}>"


class QuoteItem(db.Model):
    __tablename__ = "quote_items"

    id = db.Column(db.Integer, primary_key=True)

    quote_id = db.Column(db.Integer, db.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    # Denormalizado para consultas por empresa
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    barcode = db.Column(db.String(60), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("quote_id", "barcode", name="uq_quote_item_barcode"),
    )

    def __repr__(self):
        return f"<QuoteItem quote={self.quote_id} barcode={self.barcode} qty={self.quantity}>"
