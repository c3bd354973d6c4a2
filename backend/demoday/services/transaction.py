from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, OperationalError

from demoday import db
from demoday.errors import TransientError


@contextmanager
def atomic():
    """Run the block as one transaction on the scoped session.

    Commits on success, rolls back on any error. Store outages surface as
    ``TransientError`` so callers can decide whether to retry.
    """
    try:
        yield db.session
        db.session.commit()
    except (OperationalError, DisconnectionError) as exc:
        db.session.rollback()
        raise TransientError(f'Backing store unavailable: {exc.__class__.__name__}') from exc
    except Exception:
        db.session.rollback()
        raise


def read_snapshot(fn, *args, **kwargs):
    """Run a read query, mapping store outages to ``TransientError``."""
    try:
        return fn(*args, **kwargs)
    except (OperationalError, DisconnectionError) as exc:
        db.session.rollback()
        raise TransientError(f'Backing store unavailable: {exc.__class__.__name__}') from exc
