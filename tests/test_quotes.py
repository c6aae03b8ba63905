"""
Tests for quotes and their items.
"""

import pytest
from sqlalchemy import event

from models.catalog import ProductCatalog
from models.quote import Quote, QuoteItem, QuoteStatus
from models.share import Share
from services import catalog, quotes, shares
from services.errors import Forbidden, NotFound, QuoteClosed, ValidationError

COCA = "7891000100103"
ARROZ = "7891021001557"


@pytest.fixture
def quote(session, users):
    return quotes.create_quote(session, users["emp_a"], "Pedido semanal", "entregar segunda")


class TestCreateAndList:
    """Tests for create_quote() / list_quotes()."""

    def test_create_quote(self, session, users, quote):
        assert quote.id is not None
        assert quote.status == QuoteStatus.OPEN
        assert quote.company_id == users["emp_a"].company_id
        assert quote.user_id == users["emp_a"].id
        assert quote.notes == "entregar segunda"

    def test_blank_title_is_rejected(self, session, users):
        with pytest.raises(ValidationError):
            quotes.create_quote(session, users["emp_a"], "   ")

    def test_employee_sees_only_own_quotes(self, session, users, quote):
        other = quotes.create_quote(session, users["emp2_a"], "Outro")

        assert [q.id for q in quotes.list_quotes(session, users["emp_a"])] == [quote.id]
        assert [q.id for q in quotes.list_quotes(session, users["emp2_a"])] == [other.id]

    def test_admin_sees_whole_company_newest_first(self, session, users, quote):
        other = quotes.create_quote(session, users["emp2_a"], "Outro")
        quotes.create_quote(session, users["emp_b"], "Mercado B")

        listed = quotes.list_quotes(session, users["admin_a"])
        assert [q.id for q in listed] == [other.id, quote.id]

    def test_other_tenant_sees_nothing(self, session, users, quote):
        assert quotes.list_quotes(session, users["admin_b"]) == []


class TestQuoteAccess:
    """Tests for get_quote() and the ownership rules."""

    def test_owner_and_admin_can_read(self, session, users, quote):
        assert quotes.get_quote(session, users["emp_a"], quote.id).id == quote.id
        assert quotes.get_quote(session, users["admin_a"], quote.id).id == quote.id

    def test_coworker_is_forbidden(self, session, users, quote):
        with pytest.raises(Forbidden):
            quotes.get_quote(session, users["emp2_a"], quote.id)

    def test_other_tenant_gets_not_found(self, session, users, quote):
        with pytest.raises(NotFound):
            quotes.get_quote(session, users["admin_b"], quote.id)

    def test_missing_quote(self, session, users):
        with pytest.raises(NotFound):
            quotes.get_quote(session, users["admin_a"], 9999)


class TestAddItem:
    """Tests for add_item()."""

    def test_same_barcode_is_merged(self, session, users, quote):
        first, merged = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca lata", 2)
        assert merged is False
        assert first.quantity == 2

        second, merged = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca-Cola 350ml", 3)
        assert merged is True
        assert second.id == first.id
        assert second.quantity == 5
        assert second.product_name == "Coca-Cola 350ml"

        assert session.query(QuoteItem).filter(QuoteItem.quote_id == quote.id).count() == 1

    def test_admin_edit_records_updated_by(self, session, users, quote):
        quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 1)
        item, _ = quotes.add_item(session, users["admin_a"], quote.id, COCA, "Coca", 1)
        assert item.updated_by_user_id == users["admin_a"].id
        assert item.company_id == quote.company_id

    @pytest.mark.parametrize("barcode, name, qty", [
        ("", "Coca", 1),
        ("78910-00", "Coca", 1),
        ("1" * 61, "Coca", 1),
        (COCA, "  ", 1),
        (COCA, "Coca", 0),
        (COCA, "Coca", -2),
        (COCA, "Coca", "abc"),
        (COCA, "Coca", True),
    ])
    def test_invalid_input(self, session, users, quote, barcode, name, qty):
        with pytest.raises(ValidationError):
            quotes.add_item(session, users["emp_a"], quote.id, barcode, name, qty)
        assert session.query(QuoteItem).count() == 0

    def test_numeric_string_quantity(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", "4")
        assert item.quantity == 4

    def test_coworker_cannot_add(self, session, users, quote):
        with pytest.raises(Forbidden):
            quotes.add_item(session, users["emp2_a"], quote.id, COCA, "Coca", 1)

    def test_save_to_catalog_writes_name(self, session, users, quote):
        quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca da casa", 1, save_to_catalog=True)

        hit = catalog.lookup(session, quote.company_id, COCA)
        assert hit.product_name == "Coca da casa"
        assert hit.source == "catalog"

    def test_without_save_only_touches_existing_entry(self, session, users, quote):
        quotes.add_item(session, users["emp_a"], quote.id, ARROZ, "Arroz", 1)
        assert session.query(ProductCatalog).count() == 0

        catalog.upsert_on_use(session, quote.company_id, COCA, "Nome curado")
        session.commit()
        before = session.query(ProductCatalog).filter_by(barcode=COCA).one().last_used_at

        quotes.add_item(session, users["emp_a"], quote.id, COCA, "Outro nome", 1)
        entry = session.query(ProductCatalog).filter_by(barcode=COCA).one()
        assert entry.product_name == "Nome curado"
        assert entry.last_used_at >= before


class TestClosedQuote:
    """A finalized quote is read-only for everyone, admins included."""

    @pytest.fixture
    def closed(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        quotes.finalize_quote(session, users["emp_a"], quote.id)
        return quote, item

    def test_status_is_closed(self, closed):
        quote, _ = closed
        assert quote.status == QuoteStatus.CLOSED

    @pytest.mark.parametrize("who", ["emp_a", "admin_a"])
    def test_add_item_rejected(self, session, users, closed, who):
        quote, _ = closed
        with pytest.raises(QuoteClosed):
            quotes.add_item(session, users[who], quote.id, ARROZ, "Arroz", 1)

    @pytest.mark.parametrize("who", ["emp_a", "admin_a"])
    def test_update_and_delete_rejected(self, session, users, closed, who):
        _, item = closed
        with pytest.raises(QuoteClosed):
            quotes.update_item(session, users[who], item.id, quantity=9)
        with pytest.raises(QuoteClosed):
            quotes.delete_item(session, users[who], item.id)
        assert session.get(QuoteItem, item.id).quantity == 2

    def test_closed_check_comes_before_ownership(self, session, users, closed):
        _, item = closed
        with pytest.raises(QuoteClosed):
            quotes.update_item(session, users["emp2_a"], item.id, quantity=9)

    def test_finalize_twice_is_noop(self, session, users, closed):
        quote, _ = closed
        again = quotes.finalize_quote(session, users["admin_a"], quote.id)
        assert again.status == QuoteStatus.CLOSED

    def test_export_still_works(self, session, users, closed):
        quote, _ = closed
        filename, content = quotes.export_quote_csv(session, users["emp_a"], quote.id)
        assert filename.startswith("Pedido semanal-")
        assert content.endswith(f"{COCA},Coca,2")


class TestItemEdits:
    """Tests for update_item() / delete_item()."""

    def test_update_quantity_and_name(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        quotes.update_item(session, users["admin_a"], item.id, quantity=7, product_name="Coca 2L")

        session.expire_all()
        item = session.get(QuoteItem, item.id)
        assert item.quantity == 7
        assert item.product_name == "Coca 2L"
        assert item.updated_by_user_id == users["admin_a"].id

    def test_update_with_invalid_quantity(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        with pytest.raises(ValidationError):
            quotes.update_item(session, users["emp_a"], item.id, quantity=0)

    def test_coworker_cannot_edit(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        with pytest.raises(Forbidden):
            quotes.update_item(session, users["emp2_a"], item.id, quantity=1)
        with pytest.raises(Forbidden):
            quotes.delete_item(session, users["emp2_a"], item.id)

    def test_other_tenant_gets_not_found(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        with pytest.raises(NotFound):
            quotes.update_item(session, users["admin_b"], item.id, quantity=1)

    def test_delete_item(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        quotes.delete_item(session, users["emp_a"], item.id)
        assert session.get(QuoteItem, item.id) is None


class TestDeleteQuote:
    """Tests for delete_quote()."""

    def test_removes_items_and_shares(self, session, users, quote):
        quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        quotes.add_item(session, users["emp_a"], quote.id, ARROZ, "Arroz", 1)
        shares.create_share_link(session, users["emp_a"], quote.id, "http://x/api/shares")
        quote_id = quote.id

        quotes.delete_quote(session, users["admin_a"], quote_id)

        assert session.get(Quote, quote_id) is None
        assert session.query(QuoteItem).filter(QuoteItem.quote_id == quote_id).count() == 0
        assert session.query(Share).filter(Share.quote_id == quote_id).count() == 0

    def test_coworker_cannot_delete(self, session, users, quote):
        with pytest.raises(Forbidden):
            quotes.delete_quote(session, users["emp2_a"], quote.id)
        assert session.get(Quote, quote.id) is not None

    def test_other_tenant_cannot_delete(self, session, users, quote):
        with pytest.raises(NotFound):
            quotes.delete_quote(session, users["admin_b"], quote.id)

    def test_failure_keeps_items_and_shares(self, session, users, quote):
        quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)
        shares.create_share_link(session, users["emp_a"], quote.id, "http://x/api/shares")

        def fail_on_quote_delete(state):
            if state.is_delete and state.bind_mapper is not None and state.bind_mapper.class_ is Quote:
                raise RuntimeError("falha ao remover cotação")

        target = session()
        event.listen(target, "do_orm_execute", fail_on_quote_delete)
        try:
            with pytest.raises(RuntimeError):
                quotes.delete_quote(session, users["emp_a"], quote.id)
        finally:
            event.remove(target, "do_orm_execute", fail_on_quote_delete)

        assert session.get(Quote, quote.id) is not None
        assert session.query(QuoteItem).filter(QuoteItem.quote_id == quote.id).count() == 1
        assert session.query(Share).filter(Share.quote_id == quote.id).count() == 1


class TestAddItemRollback:
    """Item upsert and catalog write share one transaction."""

    def test_catalog_failure_undoes_item(self, session, users, quote, monkeypatch):
        quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 2)

        def broken_upsert(*args, **kwargs):
            raise RuntimeError("catálogo indisponível")

        monkeypatch.setattr(catalog, "upsert_on_use", broken_upsert)

        with pytest.raises(RuntimeError):
            quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca nova", 3, save_to_catalog=True)
        with pytest.raises(RuntimeError):
            quotes.add_item(session, users["emp_a"], quote.id, ARROZ, "Arroz", 1, save_to_catalog=True)

        rows = session.query(QuoteItem).filter(QuoteItem.quote_id == quote.id).all()
        assert [(r.barcode, r.product_name, r.quantity) for r in rows] == [(COCA, "Coca", 2)]
        assert session.query(ProductCatalog).count() == 0


class TestNonStringInput:
    """JSON bodies may carry numbers or lists where text is expected."""

    def test_title_and_notes(self, session, users):
        with pytest.raises(ValidationError):
            quotes.create_quote(session, users["emp_a"], 42)
        with pytest.raises(ValidationError):
            quotes.create_quote(session, users["emp_a"], "Ok", notes=["a"])

    @pytest.mark.parametrize("name", [123, ["Coca"], {"n": "Coca"}])
    def test_product_name(self, session, users, quote, name):
        with pytest.raises(ValidationError):
            quotes.add_item(session, users["emp_a"], quote.id, COCA, name, 1)

    def test_update_item_name(self, session, users, quote):
        item, _ = quotes.add_item(session, users["emp_a"], quote.id, COCA, "Coca", 1)
        with pytest.raises(ValidationError):
            quotes.update_item(session, users["emp_a"], item.id, product_name=7)
