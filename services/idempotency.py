"""Replay protection for mutating requests carrying an ``Idempotency-Key``.

The key row is added to the same session as the mutation, so it commits or
rolls back together with it. A retry after success gets the stored response;
a retry while the first request is still running gets a conflict.

A PENDING row is only visible once the mutation has committed. If the
response was never stored (the process died in between), the row is settled
after ``pending_timeout`` with a generic "already applied" reply.
"""

import json
import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.idempotency import IdempotencyKey, IdempotencyStatus
from services.errors import BusinessRuleError, ValidationError


log = logging.getLogger(__name__)

MAX_KEY_LEN = 120
PENDING_TIMEOUT = timedelta(seconds=60)
APPLIED_BODY = json.dumps({"message": "Request was already applied"})


def _existing(db: Session, company_id: int, key: str) -> IdempotencyKey | None:
    return (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.company_id == company_id, IdempotencyKey.key == key)
        .one_or_none()
    )


def _settle_stale(db: Session, row: IdempotencyKey) -> None:
    row.status = IdempotencyStatus.DONE
    row.status_code = 200
    row.response_json = APPLIED_BODY
    db.commit()
    log.warning("idempotency key settled without response company=%s key=%s", row.company_id, row.key)


def _check_replayable(
    db: Session, row: IdempotencyKey, method: str, path: str, pending_timeout: timedelta, now: datetime
) -> IdempotencyKey:
    if row.method != method or row.path != path:
        raise ValidationError("Idempotency-Key was already used for a different request")
    if row.status != IdempotencyStatus.DONE:
        if now - row.created_at < pending_timeout:
            raise BusinessRuleError("A request with this Idempotency-Key is still being processed")
        _settle_stale(db, row)
    return row


def reserve(
    db: Session,
    company_id: int,
    key: str,
    *,
    method: str,
    path: str,
    pending_timeout: timedelta = PENDING_TIMEOUT,
    now: datetime | None = None,
) -> tuple[IdempotencyKey, bool]:
    """Return ``(row, replay)``.

    ``replay`` is True when ``row`` holds a finished response to send back as is.
    Otherwise ``row`` is a fresh PENDING reservation inside the current transaction.
    """
    key = (key or "").strip()
    if not key or len(key) > MAX_KEY_LEN:
        raise ValidationError(f"Idempotency-Key must be 1-{MAX_KEY_LEN} characters")
    now = now or datetime.utcnow()

    row = _existing(db, company_id, key)
    if row is not None:
        return _check_replayable(db, row, method, path, pending_timeout, now), True

    row = IdempotencyKey(
        company_id=company_id,
        key=key,
        method=method,
        path=path,
        status=IdempotencyStatus.PENDING,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError:
        # another request reserved the key between our read and insert
        db.rollback()
        row = _existing(db, company_id, key)
        if row is None:
            raise
        return _check_replayable(db, row, method, path, pending_timeout, now), True
    return row, False


def complete(db: Session, row: IdempotencyKey, *, status_code: int, body: str) -> None:
    row.status = IdempotencyStatus.DONE
    row.status_code = status_code
    row.response_json = body
    db.add(row)
    db.commit()
    log.info("idempotency key stored company=%s key=%s status=%s", row.company_id, row.key, status_code)


def release(db: Session, row: IdempotencyKey) -> None:
    """Drop a reservation whose request failed, so the client may retry."""
    db.rollback()
    persisted = _existing(db, row.company_id, row.key)
    if persisted is not None and persisted.status == IdempotencyStatus.PENDING:
        db.delete(persisted)
        db.commit()
