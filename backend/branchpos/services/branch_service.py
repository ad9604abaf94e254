# Overview: Service-layer operations for branches; encapsulates business logic and database work.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Branch
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import commit_and_publish

logger = logging.getLogger(__name__)

_UPDATABLE = {"name", "location", "contact_number", "is_active"}


def get_branch(branch_id: int) -> Branch:
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError("Branch not found")
    return branch


def require_active_branch(branch_id: int) -> Branch:
    branch = get_branch(branch_id)
    if not branch.is_active:
        raise ValidationError("Branch is inactive")
    return branch


def list_branches(*, include_inactive: bool = False) -> list[Branch]:
    query = db.session.query(Branch)
    if not include_inactive:
        query = query.filter(Branch.is_active.is_(True))
    return query.order_by(Branch.name.asc()).all()


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Branch).filter(db.func.lower(Branch.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Branch.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Branch name already exists: {name}")


def create_branch(*, name: str, location: str | None = None, contact_number: str | None = None) -> Branch:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    _ensure_unique_name(name)

    branch = Branch(name=name, location=location, contact_number=contact_number, is_active=True)
    db.session.add(branch)
    commit_and_publish()
    logger.info("Created branch %s (%s)", branch.id, branch.name)
    return branch


def update_branch(branch_id: int, patch: dict) -> Branch:
    branch = get_branch(branch_id)
    unknown = set(patch) - _UPDATABLE
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise ValidationError("name cannot be blank")
        _ensure_unique_name(name, exclude_id=branch.id)
        patch = {**patch, "name": name}
    for key, value in patch.items():
        setattr(branch, key, value)
    commit_and_publish()
    return branch


def deactivate_branch(branch_id: int) -> Branch:
    """Soft delete: the branch disappears from live reads but its history stays."""
    return update_branch(branch_id, {"is_active": False})
