import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from services.errors import TransientInfraError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(session):
    """Commit on success, roll back on every other exit path.

    Storage failures become TransientInfraError; business errors raised inside
    the block propagate unchanged after the rollback.
    """
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database failure, transaction rolled back")
        raise TransientInfraError() from exc
    except Exception:
        session.rollback()
        raise
