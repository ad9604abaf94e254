from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Optional

from ..records import WorkerRecord
from ..services.metrics import CUSTOM_BUNDLE_AVAILABILITY, ON_TIME_GRACE_MINUTES, STANDARD_WORKDAY_HOURS
from ..services.realtime import ChangeFeed
from ..time_utils import utcnow


@dataclass(frozen=True)
class ViewContext:
    """
    Everything a view depends on, passed in explicitly.

    branch_id None means "all branches" (admin screens). clock supplies
    "now" for metrics so tests can pin it.
    """
    feed: ChangeFeed
    branch_id: Optional[int] = None
    current_worker: Optional[WorkerRecord] = None
    clock: Callable[[], datetime] = field(default=utcnow)
    grace_minutes: int = ON_TIME_GRACE_MINUTES
    standard_hours: int = STANDARD_WORKDAY_HOURS
    custom_bundle_availability: int = CUSTOM_BUNDLE_AVAILABILITY

    @property
    def actor_id(self) -> Optional[int]:
        return self.current_worker.id if self.current_worker else None

    def with_branch(self, branch_id: Optional[int]) -> "ViewContext":
        return replace(self, branch_id=branch_id)

    @classmethod
    def from_config(cls, config, feed: ChangeFeed, **kwargs) -> "ViewContext":
        return cls(
            feed=feed,
            grace_minutes=config.get("ON_TIME_GRACE_MINUTES", ON_TIME_GRACE_MINUTES),
            standard_hours=config.get("STANDARD_WORKDAY_HOURS", STANDARD_WORKDAY_HOURS),
            custom_bundle_availability=config.get("CUSTOM_BUNDLE_AVAILABILITY", CUSTOM_BUNDLE_AVAILABILITY),
            **kwargs,
        )
