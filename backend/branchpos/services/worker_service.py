# Overview: Service-layer operations for workers, branch role assignments and admin status.

"""
Worker Service

ROLES:
- admin: global, not scoped to branches, never clocks in (current_status NULL)
- manager / worker: per-branch, one RoleAssignment row per (worker, branch)

Revoking a role deactivates the assignment row instead of deleting it, so a
later re-assignment reuses the same row.

The access helpers accept either a Worker model or a WorkerRecord.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Branch, RoleAssignment, Worker, WorkSession
from ..models.workers import BRANCH_ROLES, ROLE_MANAGER, ROLE_WORKER, STATUS_CLOCKED_OUT
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .branch_service import require_active_branch
from .concurrency import commit_and_publish

logger = logging.getLogger(__name__)

_UPDATABLE = {"name", "email", "employee_code", "phone", "is_active"}


class RoleAssignmentError(ValueError):
    """Raised for invalid role or admin changes."""
    pass


def get_worker(worker_id: int) -> Worker:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError("Worker not found")
    return worker


def _clean_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def _ensure_unique(email: str | None = None, employee_code: str | None = None, exclude_id: int | None = None) -> None:
    if email is not None:
        query = db.session.query(Worker).filter(Worker.email == email)
        if exclude_id is not None:
            query = query.filter(Worker.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"Email already in use: {email}")
    if employee_code:
        query = db.session.query(Worker).filter(Worker.employee_code == employee_code)
        if exclude_id is not None:
            query = query.filter(Worker.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"Employee code already in use: {employee_code}")


def create_worker(
    *,
    name: str,
    email: str,
    employee_code: str | None = None,
    phone: str | None = None,
    is_admin: bool = False,
    created_by_id: int | None = None,
) -> Worker:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    email = _clean_email(email)
    _ensure_unique(email=email, employee_code=employee_code)

    worker = Worker(
        name=name,
        email=email,
        employee_code=employee_code or None,
        phone=phone,
        is_admin=bool(is_admin),
        current_status=None if is_admin else STATUS_CLOCKED_OUT,
    )
    if is_admin:
        worker.admin_assigned_by_id = created_by_id
        worker.admin_assigned_at = utcnow()
    db.session.add(worker)
    commit_and_publish()
    logger.info("Created worker %s (%s)%s", worker.id, worker.email, " as admin" if is_admin else "")
    return worker


def update_worker(worker_id: int, patch: dict) -> Worker:
    worker = get_worker(worker_id)
    unknown = set(patch) - _UPDATABLE
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    patch = dict(patch)
    if "name" in patch:
        patch["name"] = (patch["name"] or "").strip()
        if not patch["name"]:
            raise ValidationError("name cannot be blank")
    if "email" in patch:
        patch["email"] = _clean_email(patch["email"])
    _ensure_unique(email=patch.get("email"), employee_code=patch.get("employee_code"), exclude_id=worker.id)
    for key, value in patch.items():
        setattr(worker, key, value)
    commit_and_publish()
    return worker


def _has_open_session(worker_id: int, branch_id: int | None = None) -> bool:
    query = db.session.query(WorkSession.id).filter_by(worker_id=worker_id, time_out_at=None)
    if branch_id is not None:
        query = query.filter_by(branch_id=branch_id)
    return query.first() is not None


def assign_role(*, worker_id: int, branch_id: int, role: str, assigned_by_id: int | None = None) -> RoleAssignment:
    """Give a worker `role` in a branch, creating or reactivating the assignment row."""
    if role not in BRANCH_ROLES:
        raise RoleAssignmentError(f"role must be one of: {', '.join(BRANCH_ROLES)}")
    worker = get_worker(worker_id)
    if worker.is_admin:
        raise RoleAssignmentError("Admins are not assigned to branches")
    require_active_branch(branch_id)

    assignment = db.session.query(RoleAssignment).filter_by(worker_id=worker.id, branch_id=branch_id).first()
    if assignment is None:
        assignment = RoleAssignment(worker_id=worker.id, branch_id=branch_id)
        db.session.add(assignment)
    assignment.role = role
    assignment.is_active = True
    assignment.assigned_by_id = assigned_by_id
    assignment.assigned_at = utcnow()
    commit_and_publish()
    logger.info("Assigned worker %s as %s in branch %s", worker.id, role, branch_id)
    return assignment


def revoke_role(*, worker_id: int, branch_id: int) -> RoleAssignment:
    assignment = (
        db.session.query(RoleAssignment)
        .filter_by(worker_id=worker_id, branch_id=branch_id, is_active=True)
        .first()
    )
    if assignment is None:
        raise RoleAssignmentError("Worker has no active role in this branch")
    if _has_open_session(worker_id, branch_id):
        raise RoleAssignmentError("Clock the worker out of this branch before revoking their role")
    assignment.is_active = False
    commit_and_publish()
    logger.info("Revoked role of worker %s in branch %s", worker_id, branch_id)
    return assignment


def promote_to_admin(*, worker_id: int, assigned_by_id: int | None = None) -> Worker:
    worker = get_worker(worker_id)
    if worker.is_admin:
        raise RoleAssignmentError("Worker is already an admin")
    if _has_open_session(worker.id):
        raise RoleAssignmentError("Clock the worker out before promoting to admin")

    worker.is_admin = True
    worker.admin_assigned_by_id = assigned_by_id
    worker.admin_assigned_at = utcnow()
    worker.current_status = None
    worker.current_branch_id = None
    for assignment in worker.role_assignments:
        assignment.is_active = False
    commit_and_publish()
    logger.info("Promoted worker %s to admin", worker.id)
    return worker


def demote_from_admin(*, worker_id: int) -> Worker:
    worker = get_worker(worker_id)
    if not worker.is_admin:
        raise RoleAssignmentError("Worker is not an admin")
    remaining = db.session.query(Worker.id).filter(Worker.is_admin.is_(True), Worker.is_active.is_(True), Worker.id != worker.id).first()
    if remaining is None:
        raise RoleAssignmentError("Cannot demote the last active admin")

    worker.is_admin = False
    worker.admin_assigned_by_id = None
    worker.admin_assigned_at = None
    worker.current_status = STATUS_CLOCKED_OUT
    commit_and_publish()
    logger.info("Demoted worker %s from admin", worker.id)
    return worker


# ---------------------------------------------------------------------------
# Branch access
# ---------------------------------------------------------------------------

def _active_assignments(worker):
    return [a for a in (worker.role_assignments or ()) if a.is_active]


def accessible_branch_ids(worker) -> set[int]:
    """Admins see every active branch; everyone else only their assigned ones."""
    if worker is None:
        return set()
    if worker.is_admin:
        return {b.id for b in db.session.query(Branch.id).filter(Branch.is_active.is_(True)).all()}
    return {a.branch_id for a in _active_assignments(worker)}


def can_access_branch(worker, branch_id: int) -> bool:
    if worker is None:
        return False
    if worker.is_admin:
        return True
    return any(a.branch_id == branch_id for a in _active_assignments(worker))


def role_in_branch(worker, branch_id: int) -> str | None:
    if worker is None:
        return None
    if worker.is_admin:
        return "admin"
    for a in _active_assignments(worker):
        if a.branch_id == branch_id:
            return a.role
    return None


def can_manage_branch(worker, branch_id: int) -> bool:
    return role_in_branch(worker, branch_id) in ("admin", ROLE_MANAGER)


def can_manage_worker(actor, target) -> bool:
    """
    Admins manage every non-admin. Managers manage plain workers who share
    at least one of their managed branches.
    """
    if actor is None or target is None or target.is_admin:
        return False
    if actor.is_admin:
        return True
    managed = {a.branch_id for a in _active_assignments(actor) if a.role == ROLE_MANAGER}
    target_assignments = _active_assignments(target)
    shares_branch = any(a.branch_id in managed for a in target_assignments)
    only_worker = all(a.role == ROLE_WORKER for a in target_assignments)
    return shares_branch and only_worker
