"""Event ingestion and deduplication gate.

WHAT:
    Accepts one inbound commerce event at a time and either persists it as a
    `pending` EventLog row or classifies it as a duplicate of an event already
    accepted for the same website.

WHY:
    Ad platforms do not deduplicate server events for us. Sending the same
    purchase twice inflates reported conversions, so at most one row may
    exist per (website_id, event_id) for the lifetime of the website.

HOW:
    - One INSERT ... ON CONFLICT (website_id, event_id) DO NOTHING RETURNING id.
      No read-before-write, so concurrent ingestion of the same event races
      only on the unique index `unique_event_id_per_site` and exactly one
      caller gets a row id back.
    - No id back means the dedup key already exists: outcome `duplicate`,
      nothing written, the original row untouched.
    - Any other database failure (unknown website, connectivity) raises
      EventWriteError. Callers retry or alert on that; a duplicate they just
      drop.

Status lifecycle after ingestion:
    pending -> processing -> failed -> pending (replay)
                          -> pending (released)
    pending -> duplicate

REFERENCES:
    - clarity/models.py (EventLog, unique_event_id_per_site)
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import DuplicateEventError, EventWriteError, InvalidStatusTransition
from ..models import EventLog, ProcessingStatusEnum
from ..schemas import EventIngest

logger = logging.getLogger(__name__)

DEDUP_INDEX_NAME = "unique_event_id_per_site"

# SQLite reports the columns instead of the index name
_SQLITE_DEDUP_MESSAGE = "UNIQUE constraint failed: event_logs.website_id, event_logs.event_id"

ALLOWED_TRANSITIONS: Dict[ProcessingStatusEnum, Tuple[ProcessingStatusEnum, ...]] = {
    ProcessingStatusEnum.pending: (ProcessingStatusEnum.processing, ProcessingStatusEnum.duplicate),
    ProcessingStatusEnum.processing: (ProcessingStatusEnum.failed, ProcessingStatusEnum.pending),
    ProcessingStatusEnum.failed: (ProcessingStatusEnum.pending,),
    ProcessingStatusEnum.duplicate: (),
}


class IngestOutcome(str, enum.Enum):
    accepted = "accepted"
    duplicate = "duplicate"


@dataclass(frozen=True)
class IngestResult:
    """Result of one pass through the dedup gate.

    `event_log_id` is the surviving row for the dedup key: the new row when
    accepted, the original row when duplicate.
    """

    outcome: IngestOutcome
    event_log_id: Optional[int]
    status: ProcessingStatusEnum

    @property
    def is_duplicate(self) -> bool:
        return self.outcome is IngestOutcome.duplicate


def is_dedup_violation(exc: IntegrityError) -> bool:
    """True when an IntegrityError was raised by the dedup unique index."""
    message = str(getattr(exc, "orig", exc))
    return DEDUP_INDEX_NAME in message or _SQLITE_DEDUP_MESSAGE in message


def _event_values(payload: EventIngest) -> Dict[str, Any]:
    return {
        "website_id": payload.website_id,
        "event_id": payload.event_id,
        "event_name": payload.event_name,
        "event_time": payload.event_time,
        "event_source_url": payload.event_source_url,
        "user_ip_address": payload.user_ip_address,
        "user_agent": payload.user_agent,
        "fbp": payload.fbp,
        "fbc": payload.fbc,
        "hashed_email": payload.hashed_email,
        "hashed_phone": payload.hashed_phone,
        "value": payload.value,
        "currency": payload.currency,
        "original_payload": payload.original_payload,
        "status": ProcessingStatusEnum.pending,
    }


def _conditional_insert(dialect_name: str, values: Dict[str, Any]):
    if dialect_name == "postgresql":
        stmt = pg_insert(EventLog).values(**values).on_conflict_do_nothing(
            index_elements=[EventLog.website_id, EventLog.event_id]
        )
    elif dialect_name == "sqlite":
        stmt = sqlite_insert(EventLog).values(**values).on_conflict_do_nothing(
            index_elements=[EventLog.website_id, EventLog.event_id]
        )
    else:
        # Storage-level rejection surfaces as IntegrityError instead
        stmt = insert(EventLog).values(**values)
    return stmt.returning(EventLog.id)


def _existing_event_id(db: Session, website_id: int, event_id: str) -> Optional[int]:
    return (
        db.query(EventLog.id)
        .filter(EventLog.website_id == website_id, EventLog.event_id == event_id)
        .scalar()
    )


def _duplicate(db: Session, payload: EventIngest, raise_on_duplicate: bool) -> IngestResult:
    existing_id = _existing_event_id(db, payload.website_id, payload.event_id)
    logger.info(
        "[INGEST] Duplicate event discarded",
        extra={
            "website_id": payload.website_id,
            "event_id": payload.event_id,
            "existing_event_log_id": existing_id,
        },
    )
    if raise_on_duplicate:
        raise DuplicateEventError(payload.website_id, payload.event_id, existing_id)
    return IngestResult(
        outcome=IngestOutcome.duplicate,
        event_log_id=existing_id,
        status=ProcessingStatusEnum.duplicate,
    )


def ingest_event(
    db: Session,
    payload: EventIngest,
    *,
    raise_on_duplicate: bool = False,
    commit: bool = True,
) -> IngestResult:
    """Run one event through the dedup gate.

    Args:
        db: Database session
        payload: Validated event
        raise_on_duplicate: Raise DuplicateEventError instead of returning a
            duplicate result
        commit: Commit after a successful insert (False when the caller
            owns the transaction)

    Returns:
        IngestResult with outcome `accepted` (status pending) or `duplicate`.

    Raises:
        EventWriteError: The insert failed for a reason other than the
            dedup key (e.g. the website does not exist).
        DuplicateEventError: Only when raise_on_duplicate is set.
    """
    stmt = _conditional_insert(db.get_bind().dialect.name, _event_values(payload))

    # A rejected insert rolls back only its savepoint, never the caller's work
    try:
        with db.begin_nested():
            event_log_id = db.execute(stmt).scalar_one_or_none()
    except IntegrityError as exc:
        if is_dedup_violation(exc):
            return _duplicate(db, payload, raise_on_duplicate)
        logger.error(
            "[INGEST] Integrity error for website=%s event_id=%s: %s",
            payload.website_id, payload.event_id, exc.orig,
        )
        raise EventWriteError(
            f"Could not store event {payload.event_id!r} for website {payload.website_id}"
        ) from exc
    except SQLAlchemyError as exc:
        if commit:
            db.rollback()
        logger.error("[INGEST] Database error for event_id=%s: %s", payload.event_id, exc)
        raise EventWriteError(f"Could not store event {payload.event_id!r}") from exc

    if event_log_id is None:
        return _duplicate(db, payload, raise_on_duplicate)

    if commit:
        db.commit()

    logger.info(
        "[INGEST] Accepted event",
        extra={
            "event_log_id": event_log_id,
            "website_id": payload.website_id,
            "event_id": payload.event_id,
            "event_name": payload.event_name,
        },
    )
    return IngestResult(
        outcome=IngestOutcome.accepted,
        event_log_id=event_log_id,
        status=ProcessingStatusEnum.pending,
    )


def transition_status(
    db: Session,
    event_log: EventLog,
    target: ProcessingStatusEnum,
    *,
    commit: bool = True,
) -> EventLog:
    """Move an event to `target` if the lifecycle allows it.

    The UPDATE is conditional on the status we read, so two workers cannot
    both claim the same pending event: the loser gets InvalidStatusTransition.
    """
    current = ProcessingStatusEnum(event_log.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current.value, target.value)

    updated = (
        db.query(EventLog)
        .filter(EventLog.id == event_log.id, EventLog.status == current)
        .update({EventLog.status: target}, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        db.refresh(event_log)
        raise InvalidStatusTransition(ProcessingStatusEnum(event_log.status).value, target.value)

    if commit:
        db.commit()
    db.refresh(event_log)

    logger.info(
        "[INGEST] Event %s status %s -> %s", event_log.id, current.value, target.value
    )
    return event_log


def record_platform_response(
    db: Session,
    event_log: EventLog,
    response: Any,
    *,
    match_quality_score: Any = None,
    commit: bool = True,
) -> EventLog:
    """Store the destination's delivery response and its match-quality score.

    The score is kept as text, exactly as the platform reported it.
    """
    event_log.platform_response = response
    if match_quality_score is not None:
        event_log.match_quality_score = str(match_quality_score)
    if commit:
        db.commit()
        db.refresh(event_log)
    return event_log


def list_events(
    db: Session,
    website_id: int,
    *,
    status: Optional[ProcessingStatusEnum] = None,
    event_name: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Tuple[List[EventLog], int]:
    """Return a page of a website's events (newest first) and the total count."""
    query = db.query(EventLog).filter(EventLog.website_id == website_id)
    if status is not None:
        query = query.filter(EventLog.status == status)
    if event_name:
        query = query.filter(EventLog.event_name == event_name)

    total = query.count()
    events = (
        query.order_by(EventLog.received_at.desc(), EventLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return events, total
