from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session

from ytmirror.db.session import SessionLocal


@contextmanager
def get_db_session(session_factory: Optional[Callable[[], Session]] = None) -> Iterator[Session]:
    """
    Transaction scope: commit on normal exit, roll back on any exception.
    The session is closed on every exit path.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
