from models.user import Role
from services.errors import Forbidden, NotFound, QuoteClosed


def is_admin(actor) -> bool:
    return actor.role == Role.ADMIN


def ensure_admin(actor) -> None:
    if not is_admin(actor):
        raise Forbidden()


def ensure_same_company(actor, row) -> None:
    # Outra empresa responde 404: não confirma que o registro existe.
    if row is None or row.company_id != actor.company_id:
        raise NotFound()


def ensure_owner_or_admin(actor, quote) -> None:
    if not is_admin(actor) and quote.user_id != actor.id:
        raise Forbidden()


def ensure_quote_access(actor, quote) -> None:
    """
    - Mesma empresa (senão NotFound)
    - Admin vê tudo da empresa; funcionário só as próprias cotações
    """
    ensure_same_company(actor, quote)
    ensure_owner_or_admin(actor, quote)


def ensure_quote_open(quote) -> None:
    if quote.is_closed:
        raise QuoteClosed()
