from contextlib import contextmanager

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def upsert_insert(db: Session, model):
    """
    INSERT com suporte a ON CONFLICT para o dialeto do banco atual.
    Só SQLite e PostgreSQL expõem on_conflict_do_update/do_nothing.
    """
    dialect = db.get_bind().dialect.name
    try:
        return _INSERTS[dialect](model)
    except KeyError:
        raise RuntimeError(f"Dialeto sem suporte a upsert: {dialect}") from None


@contextmanager
def atomic(db: Session):
    """
    Unidade de trabalho: commit no fim, rollback em qualquer erro.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
