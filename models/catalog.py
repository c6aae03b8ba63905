from datetime import datetime

from models import db


class ProductCatalog(db.Model):
    """Dicionário barcode -> nome por empresa.

    Alimentado pelos itens das cotações e pela importação SPED.
    Um registro por (company_id, barcode).
    """

    __tablename__ = "product_catalog"

    id = db.Column(db.Integer, primary_key=True)

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    barcode = db.Column(db.String(60), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    last_used_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "barcode", name="uq_catalog_company_barcode"),
    )

    def __repr__(self):
        return f"<ProductCatalog {self.barcode} {self.product_name!r} company={self.company_id}>"
