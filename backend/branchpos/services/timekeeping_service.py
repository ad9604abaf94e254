# Overview: Service-layer operations for timekeeping; encapsulates business logic.

"""
Timekeeping Service (Session-Based)

WHY: Workers clock in/out at a branch to open/close a work session. The
worker row mirrors the latest state (current_status, current_branch_id,
last_time_in/out) so live worker lists can show who is on shift.

INVARIANT: at most one open session per worker. Callers check in-memory
state first; clock_in re-checks inside the write transaction with the worker
row locked and version-checked, which narrows (but on databases without
row locks does not close) the two-device race.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import RoleAssignment, Worker, WorkSession
from ..models.timekeeping import SESSION_TYPES
from ..models.workers import STATUS_CLOCKED_IN, STATUS_CLOCKED_OUT
from ..time_utils import utcnow
from ..validation import NotFoundError, ValidationError
from .branch_service import require_active_branch
from .concurrency import commit_and_publish, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


class TimekeepingError(ValueError):
    """Raised for invalid timekeeping operations."""
    pass


def active_session(worker_id: int) -> WorkSession | None:
    return (
        db.session.query(WorkSession)
        .filter_by(worker_id=worker_id, time_out_at=None)
        .order_by(WorkSession.time_in_at.desc())
        .first()
    )


def _locked_worker(worker_id: int) -> Worker:
    worker = lock_for_update(db.session.query(Worker).filter_by(id=worker_id)).first()
    if worker is None:
        raise NotFoundError("Worker not found")
    return worker


def clock_in(
    *,
    worker_id: int,
    branch_id: int,
    actor_id: int | None = None,
    notes: str | None = None,
    session_type: str = "scheduled",
    now: datetime | None = None,
) -> WorkSession:
    if session_type not in SESSION_TYPES:
        raise ValidationError(f"session_type must be one of: {', '.join(SESSION_TYPES)}")
    require_active_branch(branch_id)

    def _op():
        worker = _locked_worker(worker_id)
        if not worker.is_active:
            raise TimekeepingError("Worker is inactive")
        if worker.is_admin:
            raise TimekeepingError("Admins do not clock in")
        assigned = db.session.query(RoleAssignment.id).filter_by(
            worker_id=worker.id, branch_id=branch_id, is_active=True
        ).first()
        if assigned is None:
            raise TimekeepingError("Worker is not assigned to this branch")
        if active_session(worker.id) is not None:
            raise TimekeepingError("Worker is already clocked in")

        started = now or utcnow()
        session = WorkSession(
            worker_id=worker.id,
            branch_id=branch_id,
            time_in_at=started,
            clocked_in_by_id=actor_id or worker.id,
            session_type=session_type,
            notes=notes or None,
        )
        db.session.add(session)
        worker.current_status = STATUS_CLOCKED_IN
        worker.current_branch_id = branch_id
        worker.last_time_in = started
        commit_and_publish()
        return session

    try:
        session = run_with_retry(_op)
    except (TimekeepingError, NotFoundError):
        db.session.rollback()
        raise
    logger.info("Worker %s clocked in at branch %s (session %s)", worker_id, branch_id, session.id)
    return session


def clock_out(
    *,
    worker_id: int,
    actor_id: int | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> WorkSession:
    def _op():
        worker = _locked_worker(worker_id)
        session = active_session(worker.id)
        if session is None:
            raise TimekeepingError("Worker is not clocked in")

        ended = now or utcnow()
        if ended < session.time_in_at:
            raise TimekeepingError("Clock-out cannot precede clock-in")
        session.time_out_at = ended
        session.duration_minutes = int((ended - session.time_in_at).total_seconds() // 60)
        session.clocked_out_by_id = actor_id or worker.id
        if notes:
            session.notes = notes

        worker.current_status = STATUS_CLOCKED_OUT
        worker.current_branch_id = None
        worker.last_time_out = ended
        commit_and_publish()
        return session

    try:
        session = run_with_retry(_op)
    except (TimekeepingError, NotFoundError):
        db.session.rollback()
        raise
    logger.info("Worker %s clocked out (session %s, %s min)", worker_id, session.id, session.duration_minutes)
    return session


def list_sessions(
    *,
    worker_id: int | None = None,
    branch_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 500,
) -> list[WorkSession]:
    query = db.session.query(WorkSession)
    if worker_id is not None:
        query = query.filter_by(worker_id=worker_id)
    if branch_id is not None:
        query = query.filter_by(branch_id=branch_id)
    if start is not None:
        query = query.filter(WorkSession.time_in_at >= start)
    if end is not None:
        query = query.filter(WorkSession.time_in_at <= end)
    return query.order_by(WorkSession.time_in_at.desc()).limit(limit).all()
