import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from smartpantry.core.exception import StoreException

logger = logging.getLogger(__name__)

_ACTIVE = "smartpantry.transaction"


@contextmanager
def transaction(db: Session, operation: str) -> Iterator[Session]:
    """
    Run a block of repository writes as one commit.

    Nested blocks join the outermost one, so a service method that commits on
    its own can also be composed into a larger atomic operation. On failure
    everything staged in the block is rolled back.

    IntegrityError is re-raised untouched so callers can turn a constraint
    violation into a domain error; other store failures become
    StoreException.
    """
    if db.info.get(_ACTIVE):
        yield db
        return

    db.info[_ACTIVE] = operation
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("%s hit a constraint violation; rolled back", operation)
        raise
    except SQLAlchemyError as ex:
        db.rollback()
        logger.exception("%s failed; rolled back", operation)
        raise StoreException() from ex
    except Exception:
        db.rollback()
        raise
    finally:
        db.info.pop(_ACTIVE, None)
