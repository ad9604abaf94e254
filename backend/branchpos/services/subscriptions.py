# Overview: Per-view subscription lifecycle; opens live reads and tears all of them down together.

"""
Subscription Manager

Owned by exactly one view. activate() always closes every held handle before
opening new ones, so a branch switch or filter change never leaves a stale
or duplicated subscription behind. teardown() (or leaving a `with` block)
closes everything; after that no callback reaches the owning view.

A failed read records the error for its source and keeps the last good data.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from .realtime import ChangeFeed, CollectionRef, Subscription

logger = logging.getLogger(__name__)


class SubscriptionManager:
    def __init__(self, feed: ChangeFeed, on_change: Optional[Callable[[str], None]] = None):
        self.feed = feed
        self.on_change = on_change
        self.data: dict[str, list] = {}
        self.errors: dict[str, Exception] = {}
        self._handles: dict[str, Subscription] = {}
        self._generation = 0

    @property
    def sources(self) -> list[str]:
        return list(self._handles)

    @property
    def active(self) -> bool:
        return bool(self._handles)

    def activate(self, sources: Mapping[str, CollectionRef]) -> None:
        """Replace the current set of live reads with one subscription per source."""
        self.teardown()
        self._generation += 1
        generation = self._generation
        for source, ref in sources.items():
            self._handles[source] = self.feed.subscribe(
                ref,
                self._data_handler(source, generation),
                self._error_handler(source, generation),
            )
        logger.debug("Activated %d subscriptions: %s", len(self._handles), ", ".join(self._handles))

    def teardown(self) -> None:
        handles, self._handles = self._handles, {}
        for handle in handles.values():
            handle.close()
        # Bump the generation so a delivery already in flight is dropped
        self._generation += 1

    def _data_handler(self, source: str, generation: int):
        def on_data(records: list) -> None:
            if generation != self._generation:
                return
            self.data[source] = records
            self.errors.pop(source, None)
            self._notify(source)
        return on_data

    def _error_handler(self, source: str, generation: int):
        def on_error(exc: Exception) -> None:
            if generation != self._generation:
                return
            logger.warning("Live read for %s failed: %s", source, exc)
            self.errors[source] = exc
            self._notify(source)
        return on_error

    def _notify(self, source: str) -> None:
        if self.on_change is not None:
            self.on_change(source)

    def __enter__(self) -> "SubscriptionManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()
