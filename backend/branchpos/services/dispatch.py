# Overview: Translates user intents into single service writes and reports the outcome as a value.

"""
Mutation Dispatch

WHY: Views never mutate their own state after a write; the change feed
delivers the committed result to their subscriptions. The dispatcher only
runs the write and reports success or failure.

ERRORS: every store error is caught here and returned as ActionResult.error.
Checks that can be answered from in-memory state (already clocked in, admin
branch assignment, empty cart) reject before any write is attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.workers import STATUS_CLOCKED_IN
from . import bundle_service, order_service, timekeeping_service, worker_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "ActionResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ActionResult":
        return cls(ok=False, error=error)


class MutationDispatcher:
    def __init__(self, actor_id: Optional[int] = None):
        self.actor_id = actor_id

    def _run(self, action: str, func: Callable[[], Any]) -> ActionResult:
        try:
            return ActionResult.success(func())
        except ValueError as exc:
            logger.info("%s rejected: %s", action, exc)
            return ActionResult.failure(str(exc))
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("%s failed in the store", action)
            return ActionResult.failure(f"Could not {action.replace('_', ' ')}: {type(exc).__name__}")

    # -- orders ------------------------------------------------------------

    def place_order(self, cart, *, branch_id: int, order_type: str = "dine_in",
                    discount_code: Optional[str] = None) -> ActionResult:
        if cart.is_empty:
            return ActionResult.failure("Cart is empty")
        if self.actor_id is None:
            return ActionResult.failure("A cashier is required to place orders")
        # A discount that takes nothing off is not sent; the server would refuse it
        if discount_code is None and cart.discount is not None and cart.discount_cents > 0:
            discount_code = cart.discount.code
        result = self._run("place_order", lambda: order_service.create_order(
            branch_id=branch_id,
            worker_id=self.actor_id,
            lines=cart.to_order_lines(),
            order_type=order_type,
            discount_code=discount_code,
        ))
        if result.ok:
            cart.clear()
        return result

    # -- roles -------------------------------------------------------------

    def assign_role(self, worker, *, branch_id: int, role: str) -> ActionResult:
        if worker.is_admin:
            return ActionResult.failure("Admins are not assigned to branches")
        return self._run("assign_role", lambda: worker_service.assign_role(
            worker_id=worker.id, branch_id=branch_id, role=role, assigned_by_id=self.actor_id,
        ))

    def revoke_role(self, worker, *, branch_id: int) -> ActionResult:
        if worker.is_admin:
            return ActionResult.failure("Admins are not assigned to branches")
        return self._run("revoke_role", lambda: worker_service.revoke_role(
            worker_id=worker.id, branch_id=branch_id,
        ))

    def promote_to_admin(self, worker) -> ActionResult:
        if worker.is_admin:
            return ActionResult.failure("Worker is already an admin")
        if worker.current_status == STATUS_CLOCKED_IN:
            return ActionResult.failure("Clock the worker out before promoting to admin")
        return self._run("promote_to_admin", lambda: worker_service.promote_to_admin(
            worker_id=worker.id, assigned_by_id=self.actor_id,
        ))

    def demote_from_admin(self, worker) -> ActionResult:
        if not worker.is_admin:
            return ActionResult.failure("Worker is not an admin")
        return self._run("demote_from_admin", lambda: worker_service.demote_from_admin(worker_id=worker.id))

    # -- timekeeping -------------------------------------------------------

    def clock_in(self, worker, *, branch_id: int, notes: Optional[str] = None,
                 session_type: str = "scheduled") -> ActionResult:
        if worker.is_admin:
            return ActionResult.failure("Admins do not clock in")
        if worker.current_status == STATUS_CLOCKED_IN:
            return ActionResult.failure("Worker is already clocked in")
        return self._run("clock_in", lambda: timekeeping_service.clock_in(
            worker_id=worker.id, branch_id=branch_id, actor_id=self.actor_id,
            notes=notes, session_type=session_type,
        ))

    def clock_out(self, worker, *, notes: Optional[str] = None) -> ActionResult:
        if worker.current_status != STATUS_CLOCKED_IN:
            return ActionResult.failure("Worker is not clocked in")
        return self._run("clock_out", lambda: timekeeping_service.clock_out(
            worker_id=worker.id, actor_id=self.actor_id, notes=notes,
        ))

    # -- bundles -----------------------------------------------------------

    def create_bundle(self, *, branch_id: int, payload: dict) -> ActionResult:
        return self._run("create_bundle", lambda: bundle_service.create_bundle(branch_id=branch_id, payload=payload))

    def update_bundle(self, bundle_id: int, payload: dict) -> ActionResult:
        return self._run("update_bundle", lambda: bundle_service.update_bundle(bundle_id, payload))

    def delete_bundle(self, bundle_id: int) -> ActionResult:
        return self._run("delete_bundle", lambda: bundle_service.delete_bundle(bundle_id))
