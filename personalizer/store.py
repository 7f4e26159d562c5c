"""
store.py
========
Database gateway for the engine.

It does four things:
1) Creates the SQLAlchemy "engine" from DB_URL.
2) Creates tables (once) from the SQLModel classes in models.py.
3) Opens ORM Sessions for reads.
4) Hands out the dialect-specific INSERT construct that supports
   ON CONFLICT ... DO UPDATE, which the pattern and feedback writers use for
   their single-statement upserts.
"""

from sqlmodel import SQLModel, Session, create_engine

from .config import DB_URL

# SQLite connections are shared with the pattern-write worker threads
_connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

engine = create_engine(DB_URL, echo=False, connect_args=_connect_args)


def init_db() -> None:
    """
    Create all tables declared in models.py (missing ones only; never drops data).
    Safe to call on every startup.
    """
    from . import models  # noqa: F401  (import just to register models with SQLModel)

    SQLModel.metadata.create_all(engine)


def drop_db() -> None:
    """Drop every engine table. Used by the test suite between tests."""
    from . import models  # noqa: F401

    SQLModel.metadata.drop_all(engine)


def get_session() -> Session:
    """
    Open a database Session bound to our engine.

    Usage pattern:
      with get_session() as session:
          rows = session.exec(select(UserPattern)).all()
    """
    return Session(engine)


def upsert_insert(table):
    """
    Return an INSERT for `table` that supports on_conflict_do_update().

    SQLite (3.24+) and PostgreSQL share the same ON CONFLICT syntax; both are
    exposed by SQLAlchemy through their own dialect-level insert().
    """
    if engine.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif engine.dialect.name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Atomic upserts are not supported on dialect {engine.dialect.name!r}")
    return insert(table)
