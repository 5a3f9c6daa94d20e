# Overview: Unit-of-work and row-locking helpers shared by the write services.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ..errors import translate_db_error
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run a block as one all-or-nothing database transaction.

    Commits when the block exits cleanly. On any exception the session is
    rolled back, so no partial writes survive, and persistence errors are
    translated into the API error taxonomy. Nothing is retried.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        translated = translate_db_error(exc)
        if translated is None:
            raise
        raise translated from exc
    except Exception:
        db.session.rollback()
        raise
