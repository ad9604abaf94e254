# Overview: Derived metrics; pure folds over records for bundles, attendance, workforce and sales.

"""
Derived Metrics

WHY: Availability, attendance scores and sales summaries are never stored.
Every value here is recomputed from the full input list on each change, so
the functions are pure: same records (and same `now`/`today`) -> same result.

CONVENTIONS:
- Durations are minutes (int); reported hours are floats rounded to 2 places
- Calendar days are the UTC date of a session's time_in_at
- Weeks start on Sunday
- Percentages and averages round half up, like the dashboards that show them
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from ..models.discounts import DISCOUNT_FLAT, DISCOUNT_PERCENTAGE
from ..time_utils import month_start, week_start

CUSTOM_BUNDLE_AVAILABILITY = 999
STANDARD_WORKDAY_HOURS = 8
ON_TIME_GRACE_MINUTES = 15
TREND_THRESHOLD_MINUTES = 30

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _hours(minutes: float) -> float:
    return round(minutes / 60, 2)


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------

def bundle_availability(bundle, stock_by_item: Mapping[int, int],
                        custom_availability: int = CUSTOM_BUNDLE_AVAILABILITY) -> int:
    """
    Units of a bundle that current stock can assemble.

    Fixed bundles: min over components of floor(stock / quantity). No
    components means unavailable (0). Missing items count as zero stock.
    Custom bundles are not limited by stock; pieces are picked (and checked)
    at checkout, so they report `custom_availability`.
    """
    if bundle.is_custom:
        return custom_availability
    if not bundle.components:
        return 0
    available = None
    for component in bundle.components:
        if component.quantity <= 0:
            return 0
        stock = max(stock_by_item.get(component.inventory_item_id, 0), 0)
        units = stock // component.quantity
        available = units if available is None else min(available, units)
    return available


def bundle_availability_map(bundles: Iterable, items: Iterable,
                            custom_availability: int = CUSTOM_BUNDLE_AVAILABILITY) -> dict[int, int]:
    stock_by_item = {item.id: item.stock for item in items}
    return {b.id: bundle_availability(b, stock_by_item, custom_availability) for b in bundles}


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def session_duration_minutes(session, now: Optional[datetime] = None) -> Optional[int]:
    """
    Stored duration if present, else clock-out minus clock-in.

    An open session has no duration (None) unless `now` is given, in which
    case the elapsed time so far is returned.
    """
    if session.duration_minutes is not None:
        return session.duration_minutes
    end = session.time_out_at or now
    if end is None:
        return None
    return max(int((end - session.time_in_at).total_seconds() // 60), 0)


def _minutes(session, now: Optional[datetime] = None) -> int:
    return session_duration_minutes(session, now) or 0


def _time_in(value) -> datetime:
    return value if isinstance(value, datetime) else value.time_in_at


def is_on_time(session_or_time, grace_minutes: int = ON_TIME_GRACE_MINUTES) -> bool:
    """Clock-in minute within [0, grace] or [60 - grace, 59] of its hour."""
    minute = _time_in(session_or_time).minute
    return minute <= grace_minutes or minute >= 60 - grace_minutes


def clock_in_delay(session_or_time, grace_minutes: int = ON_TIME_GRACE_MINUTES) -> int:
    """Distance to the nearest hour boundary for a late clock-in; 0 when on time."""
    if is_on_time(session_or_time, grace_minutes):
        return 0
    minute = _time_in(session_or_time).minute
    return min(minute, 60 - minute)


@dataclass(frozen=True)
class Punctuality:
    score: int
    on_time: int
    late: int
    average_delay_minutes: int


def punctuality(sessions: Sequence, grace_minutes: int = ON_TIME_GRACE_MINUTES) -> Punctuality:
    sessions = list(sessions)
    if not sessions:
        return Punctuality(score=0, on_time=0, late=0, average_delay_minutes=0)
    delays = [clock_in_delay(s, grace_minutes) for s in sessions if not is_on_time(s, grace_minutes)]
    on_time = len(sessions) - len(delays)
    return Punctuality(
        score=_round_half_up(on_time / len(sessions) * 100),
        on_time=on_time,
        late=len(delays),
        average_delay_minutes=_round_half_up(sum(delays) / len(delays)) if delays else 0,
    )


@dataclass(frozen=True)
class Streaks:
    current: int
    longest: int


def worked_days(sessions: Iterable) -> list[date]:
    return sorted({s.time_in_at.date() for s in sessions})


def streaks(sessions: Iterable, today: date) -> Streaks:
    """
    Longest and current runs of consecutive worked calendar days.

    The current run only counts when the most recent worked day is today or
    yesterday; otherwise it is 0.
    """
    days = worked_days(sessions)
    if not days:
        return Streaks(current=0, longest=0)

    longest = run = 1
    for prev, day in zip(days, days[1:]):
        run = run + 1 if day - prev == timedelta(days=1) else 1
        longest = max(longest, run)

    current = 0
    if days[-1] >= today - timedelta(days=1):
        current = 1
        for prev, day in zip(reversed(days[:-1]), reversed(days)):
            if day - prev != timedelta(days=1):
                break
            current += 1
    return Streaks(current=current, longest=longest)


@dataclass(frozen=True)
class Overtime:
    this_week: float
    this_month: float
    total: float


def daily_minutes(sessions: Iterable, now: Optional[datetime] = None) -> dict[date, int]:
    totals: dict[date, int] = defaultdict(int)
    for s in sessions:
        totals[s.time_in_at.date()] += _minutes(s, now)
    return dict(totals)


def overtime(sessions: Iterable, now: datetime,
             standard_hours: int = STANDARD_WORKDAY_HOURS) -> Overtime:
    """Hours beyond `standard_hours` per calendar day, summed per week, month and overall."""
    today = now.date()
    first_of_week = week_start(today)
    first_of_month = month_start(today)
    week = month = total = 0.0
    for day, minutes in daily_minutes(sessions, now).items():
        extra = max(0.0, minutes / 60 - standard_hours)
        total += extra
        if first_of_week <= day <= today:
            week += extra
        if first_of_month <= day <= today:
            month += extra
    return Overtime(this_week=round(week, 2), this_month=round(month, 2), total=round(total, 2))


def productivity_trend(sessions: Iterable, threshold_minutes: int = TREND_THRESHOLD_MINUTES) -> str:
    """'up', 'down' or 'stable' comparing average duration of the older and newer half."""
    ordered = sorted(sessions, key=lambda s: s.time_in_at)
    if len(ordered) < 4:
        return "stable"
    mid = len(ordered) // 2
    first, second = ordered[:mid], ordered[mid:]
    first_avg = sum(_minutes(s) for s in first) / len(first)
    second_avg = sum(_minutes(s) for s in second) / len(second)
    difference = second_avg - first_avg
    if difference > threshold_minutes:
        return "up"
    if difference < -threshold_minutes:
        return "down"
    return "stable"


def weekly_breakdown(sessions: Iterable) -> list[dict]:
    weeks: dict[date, dict] = {}
    for s in sessions:
        start = week_start(s.time_in_at.date())
        entry = weeks.setdefault(start, {"minutes": 0, "sessions": 0})
        entry["sessions"] += 1
        entry["minutes"] += _minutes(s)
    return [
        {
            "week_start": start.isoformat(),
            "week_end": (start + timedelta(days=6)).isoformat(),
            "hours": _hours(entry["minutes"]),
            "sessions": entry["sessions"],
        }
        for start, entry in sorted(weeks.items())
    ]


def daily_pattern(sessions: Iterable) -> list[dict]:
    """Average hours per session for each weekday, Sunday first."""
    minutes = [0] * 7
    counts = [0] * 7
    for s in sessions:
        index = (s.time_in_at.weekday() + 1) % 7
        counts[index] += 1
        minutes[index] += _minutes(s)
    return [
        {
            "day": DAY_NAMES[i],
            "sessions": counts[i],
            "average_hours": _hours(minutes[i] / counts[i]) if counts[i] else 0.0,
        }
        for i in range(7)
    ]


def _period_stats(sessions: Sequence, now: datetime) -> dict:
    return {
        "hours": _hours(sum(_minutes(s, now) for s in sessions)),
        "sessions": len(sessions),
        "days": len(worked_days(sessions)),
    }


def branch_performance(sessions: Iterable) -> list[dict]:
    branches: dict[int, dict] = {}
    for s in sessions:
        entry = branches.setdefault(s.branch_id, {"branch_id": s.branch_id, "minutes": 0, "sessions": 0, "last_worked": None})
        entry["sessions"] += 1
        entry["minutes"] += _minutes(s)
        if entry["last_worked"] is None or s.time_in_at > entry["last_worked"]:
            entry["last_worked"] = s.time_in_at
    return [
        {
            "branch_id": e["branch_id"],
            "hours": _hours(e["minutes"]),
            "sessions": e["sessions"],
            "last_worked": e["last_worked"],
        }
        for e in sorted(branches.values(), key=lambda e: e["branch_id"])
    ]


def worker_stats(worker_id: int, sessions: Iterable, now: datetime,
                 standard_hours: int = STANDARD_WORKDAY_HOURS,
                 grace_minutes: int = ON_TIME_GRACE_MINUTES) -> dict:
    """Everything the worker detail panel shows, computed from that worker's sessions."""
    own = sorted((s for s in sessions if s.worker_id == worker_id), key=lambda s: s.time_in_at)
    completed = [s for s in own if s.time_out_at is not None]
    today = now.date()
    this_week = [s for s in own if week_start(today) <= s.time_in_at.date() <= today]
    this_month = [s for s in own if month_start(today) <= s.time_in_at.date() <= today]
    active = next((s for s in reversed(own) if s.time_out_at is None), None)

    total_minutes = sum(_minutes(s) for s in completed)
    return {
        "worker_id": worker_id,
        "total_sessions": len(own),
        "completed_sessions": len(completed),
        "total_hours": _hours(total_minutes),
        "average_session_hours": _hours(total_minutes / len(completed)) if completed else 0.0,
        "this_week": _period_stats(this_week, now),
        "this_month": _period_stats(this_month, now),
        "branches": branch_performance(own),
        "streaks": streaks(own, today),
        "overtime": overtime(own, now, standard_hours),
        "punctuality": punctuality(own, grace_minutes),
        "productivity_trend": productivity_trend(completed),
        "last_session": own[-1] if own else None,
        "active_session": active,
    }


# ---------------------------------------------------------------------------
# Workforce (admin reporting)
# ---------------------------------------------------------------------------

def branch_coverage(sessions: Iterable, branch_names: Optional[Mapping[int, str]] = None) -> list[dict]:
    branch_names = branch_names or {}
    branches: dict[int, dict] = {}
    for s in sessions:
        entry = branches.setdefault(s.branch_id, {"workers": set(), "minutes": 0, "sessions": 0})
        entry["workers"].add(s.worker_id)
        entry["sessions"] += 1
        entry["minutes"] += _minutes(s)
    out = []
    for branch_id, entry in sorted(branches.items()):
        worker_count = len(entry["workers"])
        out.append({
            "branch_id": branch_id,
            "branch_name": branch_names.get(branch_id, str(branch_id)),
            "worker_count": worker_count,
            "sessions": entry["sessions"],
            "total_hours": _hours(entry["minutes"]),
            "average_hours": _hours(entry["minutes"] / worker_count) if worker_count else 0.0,
        })
    return out


def hourly_activity(sessions: Iterable) -> list[dict]:
    buckets = [{"hour": h, "clock_ins": 0, "clock_outs": 0} for h in range(24)]
    for s in sessions:
        buckets[s.time_in_at.hour]["clock_ins"] += 1
        if s.time_out_at is not None:
            buckets[s.time_out_at.hour]["clock_outs"] += 1
    return buckets


def top_performers(workers: Iterable, sessions: Iterable, limit: int = 5,
                   grace_minutes: int = ON_TIME_GRACE_MINUTES) -> list[dict]:
    by_worker: dict[int, list] = defaultdict(list)
    for s in sessions:
        by_worker[s.worker_id].append(s)
    rows = []
    for worker in workers:
        own = by_worker.get(worker.id)
        if not own:
            continue
        score = punctuality(own, grace_minutes)
        rows.append({
            "worker_id": worker.id,
            "worker_name": worker.name,
            "total_hours": _hours(sum(_minutes(s) for s in own)),
            "sessions": len(own),
            "on_time_sessions": score.on_time,
            "punctuality_score": score.score,
        })
    rows.sort(key=lambda r: r["total_hours"], reverse=True)
    return rows[:limit]


def workforce_summary(workers: Iterable, sessions: Iterable,
                      branch_names: Optional[Mapping[int, str]] = None) -> dict:
    workers = list(workers)
    sessions = list(sessions)
    total_minutes = sum(_minutes(s) for s in sessions)
    return {
        "total_workers": len(workers),
        "active_workers": len({s.worker_id for s in sessions}),
        "total_hours": _hours(total_minutes),
        "average_hours_per_worker": _hours(total_minutes / len(workers)) if workers else 0.0,
        "branch_coverage": branch_coverage(sessions, branch_names),
        "top_performers": top_performers(workers, sessions),
        "hourly_activity": hourly_activity(sessions),
    }


# ---------------------------------------------------------------------------
# Sales & discounts
# ---------------------------------------------------------------------------

def discount_amount(discount, subtotal_cents: int, category_ids: Iterable[int] = ()) -> int:
    """
    Cents taken off `subtotal_cents` by `discount`.

    0 when the discount is inactive, scoped to a category the cart does not
    hold, or the subtotal is below its minimum. Never exceeds the subtotal.
    """
    if discount is None or not discount.is_active or subtotal_cents <= 0:
        return 0
    if discount.applies_to_category_id is not None and discount.applies_to_category_id not in set(category_ids):
        return 0
    if discount.min_subtotal_cents and subtotal_cents < discount.min_subtotal_cents:
        return 0
    if discount.discount_type == DISCOUNT_PERCENTAGE:
        amount = _round_half_up(subtotal_cents * discount.value / 100)
    elif discount.discount_type == DISCOUNT_FLAT:
        amount = discount.value
    else:
        return 0
    return max(0, min(amount, subtotal_cents))


def _line_profit(line) -> int:
    return (line.price_cents - (line.cost_cents or 0)) * line.quantity


def sales_stats(orders: Iterable) -> dict:
    orders = list(orders)
    revenue = sum(o.total_cents for o in orders)
    profit = sum(sum(_line_profit(line) for line in o.lines) - o.discount_amount_cents for o in orders)
    by_type: dict[str, int] = defaultdict(int)
    hourly = [{"hour": h, "orders": 0, "revenue_cents": 0} for h in range(24)]
    for o in orders:
        by_type[o.order_type] += 1
        hourly[o.created_at.hour]["orders"] += 1
        hourly[o.created_at.hour]["revenue_cents"] += o.total_cents
    return {
        "total_orders": len(orders),
        "revenue_cents": revenue,
        "subtotal_cents": sum(o.subtotal_cents for o in orders),
        "discount_cents": sum(o.discount_amount_cents for o in orders),
        "profit_cents": profit,
        "profit_margin": round(profit / revenue * 100, 2) if revenue else 0.0,
        "items_sold": sum(line.quantity for o in orders for line in o.lines),
        "average_order_cents": _round_half_up(revenue / len(orders)) if orders else 0,
        "orders_by_type": dict(by_type),
        "hourly": hourly,
        "top_items": top_selling_items(orders),
    }


def top_selling_items(orders: Iterable, limit: int = 10) -> list[dict]:
    items: dict[tuple, dict] = {}
    for o in orders:
        for line in o.lines:
            key = ("bundle", line.bundle_id) if line.is_bundle else ("item", line.item_id)
            entry = items.setdefault(key, {
                "kind": key[0],
                "id": key[1],
                "name": line.name,
                "quantity": 0,
                "revenue_cents": 0,
            })
            entry["quantity"] += line.quantity
            entry["revenue_cents"] += line.price_cents * line.quantity
    rows = sorted(items.values(), key=lambda r: (-r["quantity"], -r["revenue_cents"]))
    return rows[:limit]


def daily_sales_stats(orders: Iterable, day: date) -> dict:
    """sales_stats over the orders whose UTC created_at falls on `day`."""
    return {"date": day.isoformat(), **sales_stats(o for o in orders if o.created_at.date() == day)}


def weekly_sales_stats(orders: Iterable, week_of: date) -> dict:
    """
    Seven daily reports for the Sunday-started week containing `week_of`.

    best_day/worst_day only consider days with revenue (None without sales);
    on equal revenue the earlier day wins.
    """
    orders = list(orders)
    start = week_start(week_of)
    daily = [daily_sales_stats(orders, start + timedelta(days=i)) for i in range(7)]
    selling = [d for d in daily if d["revenue_cents"] > 0]
    best = max(selling, key=lambda d: d["revenue_cents"], default=None)
    worst = min(selling, key=lambda d: d["revenue_cents"], default=None)
    return {
        "week_start": start.isoformat(),
        "week_end": (start + timedelta(days=6)).isoformat(),
        "daily": daily,
        "total_orders": sum(d["total_orders"] for d in daily),
        "revenue_cents": sum(d["revenue_cents"] for d in daily),
        "profit_cents": sum(d["profit_cents"] for d in daily),
        "best_day": best["date"] if best else None,
        "worst_day": worst["date"] if worst else None,
    }
