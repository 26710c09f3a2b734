from contextlib import contextmanager

from parkshare.extensions import db


@contextmanager
def unit_of_work():
    """Commit on success, roll back and re-raise on any failure."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
