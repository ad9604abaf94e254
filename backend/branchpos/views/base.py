# Overview: Base class for live views; subscription lifecycle plus explicit recomputation.

"""
Live View

LIFECYCLE:
- mount(): open every source subscription, then recompute once
- any pushed snapshot: recompute (derived state is rebuilt from scratch)
- set_branch(): tear down, re-subscribe with the new scope, recompute
- unmount() / leaving a `with` block: tear down; nothing fires afterwards

Subclasses declare sources() and implement recompute() and snapshot().
"""

from __future__ import annotations

import logging
from typing import Optional

from ..records import to_json
from ..services.dispatch import MutationDispatcher
from ..services.filtering import FilterSpec, SortSpec
from ..services.realtime import CollectionRef
from ..services.subscriptions import SubscriptionManager
from .context import ViewContext

logger = logging.getLogger(__name__)


class LiveView:
    name = "view"

    def __init__(self, ctx: ViewContext, filter_spec: Optional[FilterSpec] = None,
                 sort_spec: Optional[SortSpec] = None):
        self.ctx = ctx
        self.filter_spec = filter_spec or FilterSpec()
        self.sort_spec = sort_spec
        self.manager = SubscriptionManager(ctx.feed, on_change=self._on_source_change)
        self.dispatcher = MutationDispatcher(actor_id=ctx.actor_id)
        self.mounted = False
        self.version = 0
        self._activating = False

    # -- to implement ------------------------------------------------------

    def sources(self) -> dict[str, CollectionRef]:
        raise NotImplementedError

    def recompute(self) -> None:
        raise NotImplementedError

    def snapshot(self) -> dict:
        raise NotImplementedError

    # -- lifecycle ---------------------------------------------------------

    @property
    def data(self) -> dict[str, list]:
        return self.manager.data

    @property
    def errors(self) -> dict[str, Exception]:
        return self.manager.errors

    def records(self, source: str) -> list:
        return self.manager.data.get(source, [])

    def mount(self) -> "LiveView":
        self._activate()
        self.mounted = True
        self._recompute()
        logger.debug("Mounted %s for branch %s", self.name, self.ctx.branch_id)
        return self

    def unmount(self) -> None:
        self.manager.teardown()
        self.mounted = False
        logger.debug("Unmounted %s", self.name)

    def set_branch(self, branch_id: Optional[int]) -> None:
        self.ctx = self.ctx.with_branch(branch_id)
        self.resubscribe()

    def resubscribe(self) -> None:
        """Re-open subscriptions after a scope change (branch, date range, ...)."""
        if not self.mounted:
            return
        self._activate()
        self._recompute()

    def set_filters(self, filter_spec: Optional[FilterSpec] = None, sort_spec: Optional[SortSpec] = None) -> None:
        """Local filter/sort change: no re-subscription, just recompute."""
        self.filter_spec = filter_spec or FilterSpec()
        self.sort_spec = sort_spec
        if self.mounted:
            self._recompute()

    def _activate(self) -> None:
        self._activating = True
        try:
            self.manager.activate(self.sources())
        finally:
            self._activating = False

    def _on_source_change(self, source: str) -> None:
        # Initial snapshots arrive one source at a time during activation
        if self._activating or not self.mounted:
            return
        self._recompute()

    def _recompute(self) -> None:
        self.recompute()
        self.version += 1

    def error_messages(self) -> dict[str, str]:
        return {source: str(exc) for source, exc in self.errors.items()}

    def render(self) -> dict:
        """JSON-safe state for the HTTP layer."""
        state = to_json(self.snapshot())
        state["errors"] = self.error_messages()
        return state

    def __enter__(self) -> "LiveView":
        return self.mount()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()
