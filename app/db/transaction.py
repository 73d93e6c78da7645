from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work around a multi-statement mutation.

    Commits when the block exits normally and rolls back on any exception,
    so a failure part-way never leaves half of the writes behind.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
