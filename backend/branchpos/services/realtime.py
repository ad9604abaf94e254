# Overview: In-process change feed; pushes collection snapshots to subscribers after commits.

"""
Change Feed

WHY: Views observe the store through push-based subscriptions instead of
polling. A mutation never updates a view directly; the committed write is
what reaches subscribers.

DESIGN:
- Collections are registered by name with a loader: loader(ref) -> list[record]
- subscribe(ref, on_data, on_error) delivers the current snapshot at once and
  then a fresh snapshot after every commit that touched the collection
- Touched collections are collected from SQLAlchemy flush events and only
  published once the transaction commits; a rollback discards them
- Delivery runs on the committing thread, in commit order per collection
- A closed Subscription is never called back, even mid-delivery
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

_TOUCHED_KEY = "branchpos.touched"


class FeedError(ValueError):
    """Raised for unknown collections or documents."""


@dataclass(frozen=True)
class CollectionRef:
    """
    Named, optionally branch-scoped query over a collection.

    params is a tuple of (name, value) pairs passed through to the loader,
    e.g. (("worker_id", 3),).
    """
    name: str
    branch_id: Optional[int] = None
    params: tuple = ()

    def param(self, key: str, default: Any = None) -> Any:
        return dict(self.params).get(key, default)

    def matches(self, name: str, scope: Optional[int]) -> bool:
        if name != self.name:
            return False
        return scope is None or self.branch_id is None or scope == self.branch_id


@dataclass(frozen=True)
class DocRef:
    collection: str
    id: Hashable


@dataclass
class _Collection:
    name: str
    loader: Callable[[CollectionRef], list]
    model: Any = None
    to_record: Optional[Callable[[Any], Any]] = None
    read_only: bool = False


class Subscription:
    """
    Handle for one live read.

    close() is synchronous and idempotent. Use as a context manager to tie
    the subscription to a block.
    """

    def __init__(self, feed: "ChangeFeed", sub_id: int, ref: CollectionRef,
                 on_data: Callable[[list], None], on_error: Optional[Callable[[Exception], None]]):
        self._feed = feed
        self.id = sub_id
        self.ref = ref
        self._on_data = on_data
        self._on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)

    __call__ = close

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _deliver(self, records: list) -> None:
        if not self._active:
            return
        try:
            self._on_data(records)
        except Exception:
            # One faulty subscriber must not starve the others
            logger.exception("Subscriber %s for %s raised while handling data", self.id, self.ref)

    def _fail(self, exc: Exception) -> None:
        if not self._active:
            return
        if self._on_error is None:
            logger.error("Unhandled read failure for %s: %s", self.ref, exc)
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("Subscriber %s for %s raised while handling an error", self.id, self.ref)

    def __repr__(self) -> str:
        state = "active" if self._active else "closed"
        return f"<Subscription id={self.id} ref={self.ref} {state}>"


class ChangeFeed:
    def __init__(self):
        self._collections: dict[str, _Collection] = {}
        self._subscriptions: dict[int, Subscription] = {}
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._local = threading.local()
        self._db = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def bind(self, db) -> None:
        """Hook the feed into the Flask-SQLAlchemy session lifecycle."""
        if self._db is db:
            return
        self._db = db
        event.listen(db.session, "after_flush", self._after_flush)
        event.listen(db.session, "after_commit", self._after_commit)
        event.listen(db.session, "after_rollback", self._after_rollback)

    def register(self, name: str, loader: Callable[[CollectionRef], list], *,
                 model: Any = None, to_record: Optional[Callable[[Any], Any]] = None,
                 read_only: bool = False) -> None:
        with self._lock:
            self._collections[name] = _Collection(name, loader, model, to_record, read_only)

    @property
    def collections(self) -> list[str]:
        return sorted(self._collections)

    # ------------------------------------------------------------------
    # Store boundary: subscribe / get / write
    # ------------------------------------------------------------------

    def subscribe(self, ref: CollectionRef, on_data: Callable[[list], None],
                  on_error: Optional[Callable[[Exception], None]] = None) -> Subscription:
        self._collection(ref.name)
        with self._lock:
            sub = Subscription(self, next(self._ids), ref, on_data, on_error)
            self._subscriptions[sub.id] = sub
        logger.debug("Opened subscription %s on %s", sub.id, ref)
        self._push(ref, [sub])
        return sub

    def get(self, ref):
        """One-shot read of a collection (CollectionRef) or a single document (DocRef)."""
        if isinstance(ref, DocRef):
            collection = self._collection(ref.collection)
            if collection.model is None or collection.to_record is None:
                raise FeedError(f"Collection {ref.collection!r} does not support document reads")
            instance = self._db.session.get(collection.model, ref.id)
            return collection.to_record(instance) if instance is not None else None
        return self._collection(ref.name).loader(ref)

    def write(self, doc: DocRef, patch: dict) -> None:
        """Apply a field patch to one document and publish the change."""
        collection = self._collection(doc.collection)
        if collection.model is None or collection.read_only:
            raise FeedError(f"Collection {doc.collection!r} is read-only")
        instance = self._db.session.get(collection.model, doc.id)
        if instance is None:
            raise FeedError(f"{doc.collection} document {doc.id!r} not found")
        for key, value in patch.items():
            if not hasattr(collection.model, key):
                raise FeedError(f"Unknown field {key!r} for {doc.collection}")
            setattr(instance, key, value)
        self.commit()

    def commit(self) -> None:
        """Commit the current session, then deliver snapshots for what it touched."""
        try:
            self._db.session.commit()
        except SQLAlchemyError:
            self._db.session.rollback()
            raise
        self.publish_pending()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def publish_pending(self) -> None:
        pending = self._take_pending()
        if not pending:
            return
        with self._lock:
            subs = list(self._subscriptions.values())
        by_ref: dict[CollectionRef, list[Subscription]] = {}
        for sub in subs:
            if any(sub.ref.matches(name, scope) for name, scope in pending):
                by_ref.setdefault(sub.ref, []).append(sub)
        for ref, targets in by_ref.items():
            self._push(ref, targets)

    def _push(self, ref: CollectionRef, targets: list[Subscription]) -> None:
        try:
            records = self._collection(ref.name).loader(ref)
        except SQLAlchemyError as exc:
            logger.warning("Read failed for %s: %s", ref, exc)
            if self._db is not None:
                self._db.session.rollback()
            for sub in targets:
                sub._fail(exc)
            return
        for sub in targets:
            sub._deliver(list(records))

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(sub.id, None)
        logger.debug("Closed subscription %s on %s", sub.id, sub.ref)

    def active_subscriptions(self, name: Optional[str] = None) -> list[Subscription]:
        with self._lock:
            subs = list(self._subscriptions.values())
        return [s for s in subs if name is None or s.ref.name == name]

    def close_all(self) -> None:
        for sub in self.active_subscriptions():
            sub.close()

    def _collection(self, name: str) -> _Collection:
        try:
            return self._collections[name]
        except KeyError:
            raise FeedError(f"Unknown collection {name!r}") from None

    # ------------------------------------------------------------------
    # Session events
    # ------------------------------------------------------------------

    def _take_pending(self) -> set:
        pending = getattr(self._local, "pending", None) or set()
        self._local.pending = set()
        return pending

    def _after_flush(self, session, flush_context) -> None:
        touched = session.info.setdefault(_TOUCHED_KEY, set())
        for instance in itertools.chain(session.new, session.dirty, session.deleted):
            name = getattr(type(instance), "__collection__", None)
            if name is None:
                continue
            scope = None if name == "workers" else getattr(instance, "branch_id", None)
            touched.add((name, scope))

    def _after_commit(self, session) -> None:
        touched = session.info.pop(_TOUCHED_KEY, None)
        if touched:
            pending = getattr(self._local, "pending", None)
            if pending is None:
                pending = self._local.pending = set()
            pending.update(touched)

    def _after_rollback(self, session) -> None:
        session.info.pop(_TOUCHED_KEY, None)
