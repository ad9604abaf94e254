# Overview: Attendance screen; live work sessions with punctuality, streaks and coverage analytics.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..services import metrics
from ..services.filtering import FilterSpec, SortSpec, apply_filter_sort
from ..services.realtime import CollectionRef
from .base import LiveView


class AttendanceView(LiveView):
    """
    Sessions are subscribed for the branch (or all branches) within an
    optional [start, end] clock-in range; changing the range or the selected
    worker re-subscribes. Filters: match on worker_id, status
    ("active"/"completed").
    """
    name = "attendance"

    def __init__(self, ctx, filter_spec=None, sort_spec=None, *,
                 start: Optional[datetime] = None, end: Optional[datetime] = None,
                 worker_id: Optional[int] = None):
        super().__init__(ctx, filter_spec, sort_spec or SortSpec("time_in_at", descending=True))
        self.start = start
        self.end = end
        self.worker_id = worker_id
        self.sessions = []
        self.active_sessions = []
        self.summary: dict = {}
        self.punctuality = metrics.punctuality([])
        self.worker_stats: Optional[dict] = None

    def sources(self):
        params = []
        if self.start is not None:
            params.append(("start", self.start))
        if self.end is not None:
            params.append(("end", self.end))
        if self.worker_id is not None:
            params.append(("worker_id", self.worker_id))
        return {
            "work_sessions": CollectionRef("work_sessions", self.ctx.branch_id, tuple(params)),
            "workers": CollectionRef("workers", self.ctx.branch_id),
            "branches": CollectionRef("branches"),
        }

    def set_range(self, start: Optional[datetime], end: Optional[datetime]) -> None:
        self.start, self.end = start, end
        self.resubscribe()

    def select_worker(self, worker_id: Optional[int]) -> None:
        self.worker_id = worker_id
        self.resubscribe()

    def recompute(self) -> None:
        now = self.ctx.clock()
        all_sessions = self.records("work_sessions")
        self.sessions = apply_filter_sort(all_sessions, self.filter_spec, self.sort_spec)
        self.active_sessions = [s for s in all_sessions if s.time_out_at is None]
        self.punctuality = metrics.punctuality(self.sessions, self.ctx.grace_minutes)
        branch_names = {b.id: b.name for b in self.records("branches")}
        self.summary = metrics.workforce_summary(self.records("workers"), self.sessions, branch_names)
        self.summary["streaks"] = metrics.streaks(self.sessions, now.date())
        self.summary["overtime"] = metrics.overtime(self.sessions, now, self.ctx.standard_hours)
        if self.worker_id is not None:
            stats = metrics.worker_stats(
                self.worker_id, all_sessions, now, self.ctx.standard_hours, self.ctx.grace_minutes
            )
            own = [s for s in all_sessions if s.worker_id == self.worker_id]
            stats["weekly_breakdown"] = metrics.weekly_breakdown(own)
            stats["daily_pattern"] = metrics.daily_pattern(own)
            self.worker_stats = stats
        else:
            self.worker_stats = None

    def snapshot(self) -> dict:
        now = self.ctx.clock()
        names = {w.id: w.name for w in self.records("workers")}
        return {
            "branch_id": self.ctx.branch_id,
            "range": {"start": self.start, "end": self.end},
            "sessions": [
                {
                    "session": s,
                    "worker_name": names.get(s.worker_id),
                    "status": s.status,
                    "duration_minutes": metrics.session_duration_minutes(s, now),
                    "on_time": metrics.is_on_time(s, self.ctx.grace_minutes),
                    "delay_minutes": metrics.clock_in_delay(s, self.ctx.grace_minutes),
                }
                for s in self.sessions
            ],
            "active_sessions": self.active_sessions,
            "punctuality": self.punctuality,
            "summary": self.summary,
            "worker_stats": self.worker_stats,
        }


def session_filter(worker_id: Optional[int] = None, status: Optional[str] = None) -> FilterSpec:
    return FilterSpec(match={"worker_id": worker_id, "status": status})
