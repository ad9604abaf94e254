# Overview: Worker management screen; role/status filters, branch access and role mutations.

from __future__ import annotations

from typing import Optional

from ..models.workers import STATUS_CLOCKED_IN
from ..services import worker_service
from ..services.dispatch import ActionResult
from ..services.filtering import apply_filter_sort
from ..services.realtime import CollectionRef
from .base import LiveView


class WorkersView(LiveView):
    """
    Filter keys usable in FilterSpec.match: roles ("admin", "manager",
    "worker"), branch_ids, status ("clocked_in"/"clocked_out"), is_active.

    Admins see everyone; managers see only plain workers in the branches
    they manage (plus themselves).
    """
    name = "workers"

    def __init__(self, ctx, filter_spec=None, sort_spec=None):
        super().__init__(ctx, filter_spec, sort_spec)
        self.workers = []
        self.stats: dict = {}

    def sources(self):
        return {
            "workers": CollectionRef("workers", self.ctx.branch_id, (("include_inactive", True),)),
            "branches": CollectionRef("branches"),
        }

    def _actor(self):
        """Latest live record for the acting worker (falls back to the context copy)."""
        actor = self.ctx.current_worker
        if actor is None:
            return None
        return self._find(actor.id) or actor

    def _visible(self, workers):
        actor = self._actor()
        if actor is None:
            return []
        if actor.is_admin:
            return list(workers)
        return [w for w in workers if w.id == actor.id or worker_service.can_manage_worker(actor, w)]

    def recompute(self) -> None:
        visible = self._visible(self.records("workers"))
        self.workers = apply_filter_sort(visible, self.filter_spec, self.sort_spec)
        self.stats = {
            "total": len(visible),
            "clocked_in": sum(1 for w in visible if w.current_status == STATUS_CLOCKED_IN),
            "admins": sum(1 for w in visible if w.is_admin),
            "managers": sum(1 for w in visible if "manager" in w.roles),
            "inactive": sum(1 for w in visible if not w.is_active),
        }

    def _find(self, worker_id: int):
        return next((w for w in self.records("workers") if w.id == worker_id), None)

    def _target(self, worker_id: int):
        """Resolve a worker the actor may manage, or an ActionResult explaining why not."""
        target = self._find(worker_id)
        if target is None:
            return None, ActionResult.failure("Worker not found")
        actor = self._actor()
        if actor is None or not (actor.is_admin or worker_service.can_manage_worker(actor, target)):
            return None, ActionResult.failure("Not allowed to manage this worker")
        return target, None

    def _require_admin(self) -> Optional[ActionResult]:
        actor = self._actor()
        if actor is None or not actor.is_admin:
            return ActionResult.failure("Only admins can do this")
        return None

    # -- intents -----------------------------------------------------------

    def assign_role(self, worker_id: int, branch_id: int, role: str) -> ActionResult:
        target, denied = self._target(worker_id)
        if denied:
            return denied
        if role == "manager":
            denied = self._require_admin()
            if denied:
                return denied
        actor = self._actor()
        if not actor.is_admin and not worker_service.can_manage_branch(actor, branch_id):
            return ActionResult.failure("Not allowed to assign roles in this branch")
        return self.dispatcher.assign_role(target, branch_id=branch_id, role=role)

    def revoke_role(self, worker_id: int, branch_id: int) -> ActionResult:
        target, denied = self._target(worker_id)
        if denied:
            return denied
        actor = self._actor()
        if not actor.is_admin and not worker_service.can_manage_branch(actor, branch_id):
            return ActionResult.failure("Not allowed to revoke roles in this branch")
        return self.dispatcher.revoke_role(target, branch_id=branch_id)

    def promote_to_admin(self, worker_id: int) -> ActionResult:
        denied = self._require_admin()
        if denied:
            return denied
        target = self._find(worker_id)
        if target is None:
            return ActionResult.failure("Worker not found")
        return self.dispatcher.promote_to_admin(target)

    def demote_from_admin(self, worker_id: int) -> ActionResult:
        denied = self._require_admin()
        if denied:
            return denied
        target = self._find(worker_id)
        if target is None:
            return ActionResult.failure("Worker not found")
        return self.dispatcher.demote_from_admin(target)

    def clock_in(self, worker_id: int, branch_id: int, notes: Optional[str] = None) -> ActionResult:
        actor = self._actor()
        target = self._find(worker_id)
        if target is None:
            return ActionResult.failure("Worker not found")
        if actor is None or (actor.id != target.id and not worker_service.can_manage_branch(actor, branch_id)):
            return ActionResult.failure("Not allowed to clock in this worker")
        return self.dispatcher.clock_in(target, branch_id=branch_id, notes=notes)

    def clock_out(self, worker_id: int, notes: Optional[str] = None) -> ActionResult:
        actor = self._actor()
        target = self._find(worker_id)
        if target is None:
            return ActionResult.failure("Worker not found")
        if actor is None or (
            actor.id != target.id
            and not worker_service.can_manage_branch(actor, target.current_branch_id)
        ):
            return ActionResult.failure("Not allowed to clock out this worker")
        return self.dispatcher.clock_out(target, notes=notes)

    def snapshot(self) -> dict:
        branch_names = {b.id: b.name for b in self.records("branches")}
        return {
            "branch_id": self.ctx.branch_id,
            "workers": [
                {
                    "worker": w,
                    "roles": w.roles,
                    "branches": sorted(branch_names.get(b, str(b)) for b in w.branch_ids),
                }
                for w in self.workers
            ],
            "stats": self.stats,
        }
