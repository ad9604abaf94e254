# Overview: Sales screen; live order history with revenue, profit and top-seller summaries.

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from ..services import metrics
from ..services.filtering import FilterSpec, SortSpec, apply_filter_sort
from ..services.realtime import CollectionRef
from ..time_utils import week_start
from .base import LiveView


class SalesView(LiveView):
    """
    Two order feeds: the chosen start/end range for the history and its
    stats, and the Sunday-started week containing `week_of` for the weekly
    report. week_of defaults to today on the context clock.
    """
    name = "sales"

    def __init__(self, ctx, filter_spec=None, sort_spec=None, *,
                 start: Optional[datetime] = None, end: Optional[datetime] = None,
                 week_of: Optional[date] = None):
        super().__init__(ctx, filter_spec, sort_spec or SortSpec("created_at", descending=True))
        self.start = start
        self.end = end
        self.week_of = week_of or ctx.clock().date()
        self.orders = []
        self.stats: dict = {}
        self.weekly: dict = {}

    def sources(self):
        params = []
        if self.start is not None:
            params.append(("start", self.start))
        if self.end is not None:
            params.append(("end", self.end))
        first = datetime.combine(week_start(self.week_of), time.min)
        week = (("start", first), ("end", first + timedelta(days=7) - timedelta(microseconds=1)))
        return {
            "orders": CollectionRef("orders", self.ctx.branch_id, tuple(params)),
            "week_orders": CollectionRef("orders", self.ctx.branch_id, week),
            "workers": CollectionRef("workers", params=(("include_inactive", True),)),
        }

    def set_range(self, start: Optional[datetime], end: Optional[datetime]) -> None:
        self.start, self.end = start, end
        self.resubscribe()

    def set_week(self, week_of: date) -> None:
        self.week_of = week_of
        self.resubscribe()

    def recompute(self) -> None:
        spec = self.filter_spec
        if spec.search and spec.search_fields == FilterSpec().search_fields:
            spec = FilterSpec(search=spec.search, search_fields=("order_number",), match=spec.match)
        self.orders = apply_filter_sort(self.records("orders"), spec, self.sort_spec)
        self.stats = metrics.sales_stats(self.orders)
        self.weekly = metrics.weekly_sales_stats(self.records("week_orders"), self.week_of)

    def snapshot(self) -> dict:
        cashiers = {w.id: w.name for w in self.records("workers")}
        return {
            "branch_id": self.ctx.branch_id,
            "range": {"start": self.start, "end": self.end},
            "orders": [{"order": o, "cashier": cashiers.get(o.worker_id)} for o in self.orders],
            "stats": self.stats,
            "weekly": self.weekly,
        }
