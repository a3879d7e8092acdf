import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def toggle_membership(db: Session, model, **keys) -> bool:
    """
    Flip membership of ``keys`` in the set stored as ``model`` rows.

    The decision is made against the stored rows, not a cached snapshot:
    remove first, and only insert when nothing was removed. A unique
    constraint on ``keys`` keeps the set duplicate-free; if a concurrent
    request inserts the same row first, the end state is still "member".

    Returns True when the row is present afterwards.
    """
    conditions = [getattr(model, column) == value for column, value in keys.items()]

    result = db.execute(
        delete(model).where(*conditions).execution_options(synchronize_session=False)
    )
    if result.rowcount:
        db.commit()
        return False

    db.add(model(**keys))
    try:
        db.commit()
    except IntegrityError:
        # Lost the race to another request adding the same membership
        db.rollback()
        logger.info("Concurrent insert on %s %s, keeping existing row", model.__tablename__, keys)
    return True


def count_members(db: Session, model, **keys) -> int:
    conditions = [getattr(model, column) == value for column, value in keys.items()]
    return db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0


def is_member(db: Session, model, **keys) -> bool:
    return count_members(db, model, **keys) > 0
