"""
Session dependency for the scheduling routes.

Tests override ``get_db`` to hand every route the same in-memory session.
"""

from typing import Generator

from sqlalchemy.orm import Session

from ... import database


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; committed on success, rolled back on error."""
    yield from database.get_db()
