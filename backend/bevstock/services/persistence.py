# Overview: Transaction helpers shared by every service that writes.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db


class PersistenceError(Exception):
    """The store rejected or failed a write. Nothing from the attempt was kept."""

    def __init__(self, message: str = "Could not save changes", *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, commit=None):
    """
    Execute func() and commit its work, as a single attempt.

    commit, when given, is called with func's result instead of a plain
    session commit (services pass commit_with_audit here).

    Any SQLAlchemyError rolls the session back and surfaces as
    PersistenceError. Domain errors raised by func also roll back but
    propagate unchanged. There is no retry.
    """
    try:
        result = func()
        if commit is None:
            db.session.commit()
        else:
            commit(result)
        return result
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(cause=exc) from exc
    except Exception:
        db.session.rollback()
        raise
