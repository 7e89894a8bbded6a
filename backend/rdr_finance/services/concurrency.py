# Overview: Atomic-write and optimistic-concurrency helpers over the SQLAlchemy session.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, UpstreamError
from ..extensions import db


@contextmanager
def atomic():
    """
    Commit everything done inside the block as one unit, or nothing.

    An entity and its item rows are written through a single commit; any
    exception rolls the whole session back. Writes are not retried: a failed
    user-initiated write is surfaced so the user can resubmit explicitly.
    """
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError("Record was modified by another request; reload and retry") from exc
    except OperationalError as exc:
        db.session.rollback()
        raise UpstreamError("Database is unavailable; please retry") from exc
    except Exception:
        db.session.rollback()
        raise


def compare_and_set(model, row_id: int, *, column: str, expected, values: dict) -> None:
    """
    UPDATE ... WHERE id = :row_id AND <column> = :expected.

    Zero affected rows means another writer changed the row first; that is
    reported as ConflictError, never silently overwritten. Bumps version_id
    when the model has one so ORM-level edits also see the change.
    """
    values = dict(values)
    if hasattr(model, "version_id"):
        values["version_id"] = model.version_id + 1

    stmt = (
        update(model)
        .where(model.id == row_id, getattr(model, column) == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        db.session.rollback()
        raise ConflictError(
            f"{model.__name__} {row_id} is no longer {expected}; reload and retry"
        )
