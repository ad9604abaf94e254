"""
Derived metric tests.

Pure functions over records; no database needed.
"""

from datetime import date, datetime, timedelta

import pytest

from branchpos.records import (
    BundleComponentRecord,
    BundleRecord,
    DiscountRecord,
    InventoryItemRecord,
    OrderLineRecord,
    OrderRecord,
    WorkerRecord,
    WorkSessionRecord,
)
from branchpos.services import metrics


def _item(item_id, stock, **kw):
    return InventoryItemRecord(id=item_id, branch_id=1, name=f"item {item_id}", price_cents=100, stock=stock, **kw)


def _bundle(bundle_id, components=(), **kw):
    return BundleRecord(
        id=bundle_id,
        branch_id=1,
        name=f"bundle {bundle_id}",
        price_cents=500,
        components=tuple(BundleComponentRecord(i, q) for i, q in components),
        **kw,
    )


def _session(session_id, time_in, minutes=None, worker_id=1, branch_id=1):
    time_out = time_in + timedelta(minutes=minutes) if minutes is not None else None
    return WorkSessionRecord(
        id=session_id,
        worker_id=worker_id,
        branch_id=branch_id,
        time_in_at=time_in,
        time_out_at=time_out,
        duration_minutes=minutes,
    )


# =============================================================================
# BUNDLE AVAILABILITY
# =============================================================================


class TestBundleAvailability:
    def test_min_over_components(self):
        items = [_item(1, 10), _item(2, 4)]
        bundle = _bundle(1, [(1, 3), (2, 2)])
        assert metrics.bundle_availability_map([bundle], items) == {1: 2}

    @pytest.mark.parametrize("stock,quantity", [(0, 1), (1, 2), (7, 3), (9, 3), (100, 7)])
    def test_never_exceeds_floor_of_stock(self, stock, quantity):
        items = [_item(1, stock), _item(2, 1000)]
        bundle = _bundle(1, [(1, quantity), (2, 1)])
        assert metrics.bundle_availability(bundle, {i.id: i.stock for i in items}) == stock // quantity

    def test_missing_component_item_counts_as_zero(self):
        bundle = _bundle(1, [(1, 1), (99, 1)])
        assert metrics.bundle_availability(bundle, {1: 50}) == 0

    def test_fixed_bundle_without_components_is_unavailable(self):
        assert metrics.bundle_availability(_bundle(1), {}) == 0

    def test_custom_bundle_ignores_stock(self):
        bundle = _bundle(1, is_custom=True, max_pieces=3)
        assert metrics.bundle_availability(bundle, {}) == metrics.CUSTOM_BUNDLE_AVAILABILITY
        assert metrics.bundle_availability(bundle, {1: 0}, custom_availability=42) == 42


# =============================================================================
# PUNCTUALITY
# =============================================================================


class TestPunctuality:
    def test_clock_in_within_grace_is_on_time(self):
        assert metrics.is_on_time(datetime(2026, 3, 2, 9, 7))
        assert metrics.clock_in_delay(datetime(2026, 3, 2, 9, 7)) == 0

    def test_half_past_is_late_by_thirty(self):
        assert not metrics.is_on_time(datetime(2026, 3, 2, 9, 30))
        assert metrics.clock_in_delay(datetime(2026, 3, 2, 9, 30)) == 30

    def test_early_arrival_before_the_hour_is_on_time(self):
        assert metrics.is_on_time(datetime(2026, 3, 2, 8, 50))

    def test_score_rounds_half_up(self):
        sessions = [
            _session(1, datetime(2026, 3, 2, 9, 0), 60),
            _session(2, datetime(2026, 3, 3, 9, 20), 60),
            _session(3, datetime(2026, 3, 4, 9, 25), 60),
            _session(4, datetime(2026, 3, 5, 9, 5), 60),
            _session(5, datetime(2026, 3, 6, 9, 10), 60),
            _session(6, datetime(2026, 3, 7, 9, 10), 60),
            _session(7, datetime(2026, 3, 8, 9, 10), 60),
            _session(8, datetime(2026, 3, 9, 9, 10), 60),
        ]
        result = metrics.punctuality(sessions)
        # 6 of 8 on time -> 75; delays 20 and 25 -> average 22.5 -> 23
        assert result.on_time == 6
        assert result.late == 2
        assert result.score == 75
        assert result.average_delay_minutes == 23

    def test_empty(self):
        assert metrics.punctuality([]) == metrics.Punctuality(0, 0, 0, 0)


# =============================================================================
# STREAKS
# =============================================================================


class TestStreaks:
    def test_current_and_longest(self):
        days = [date(2026, 3, d) for d in (1, 2, 3, 4, 7, 8)]
        sessions = [_session(i, datetime.combine(d, datetime.min.time()).replace(hour=9), 60) for i, d in enumerate(days)]
        result = metrics.streaks(sessions, today=date(2026, 3, 9))
        assert result == metrics.Streaks(current=2, longest=4)

    def test_current_is_zero_when_last_day_is_older_than_yesterday(self):
        sessions = [_session(1, datetime(2026, 3, 1, 9), 60), _session(2, datetime(2026, 3, 2, 9), 60)]
        result = metrics.streaks(sessions, today=date(2026, 3, 5))
        assert result.current == 0
        assert result.longest == 2

    def test_multiple_sessions_same_day_count_once(self):
        sessions = [_session(1, datetime(2026, 3, 5, 9), 60), _session(2, datetime(2026, 3, 5, 14), 60)]
        assert metrics.streaks(sessions, today=date(2026, 3, 5)) == metrics.Streaks(1, 1)

    @pytest.mark.parametrize("offsets", [(), (0,), (0, 1, 2), (0, 2, 3, 9), (5, 6, 7, 8), (1, 3, 5)])
    def test_longest_at_least_current(self, offsets):
        today = date(2026, 3, 20)
        sessions = [_session(i, datetime.combine(today - timedelta(days=o), datetime.min.time()), 30)
                    for i, o in enumerate(offsets)]
        result = metrics.streaks(sessions, today)
        assert result.longest >= result.current >= 0
        if not offsets or min(offsets) > 1:
            assert result.current == 0


# =============================================================================
# HOURS & OVERTIME
# =============================================================================


class TestHours:
    def test_open_session_uses_now(self):
        session = _session(1, datetime(2026, 3, 2, 9, 0))
        assert metrics.session_duration_minutes(session) is None
        assert metrics.session_duration_minutes(session, datetime(2026, 3, 2, 10, 30)) == 90

    def test_overtime_per_calendar_day(self):
        now = datetime(2026, 3, 11, 18, 0)  # Wednesday
        sessions = [
            _session(1, datetime(2026, 3, 9, 8, 0), 10 * 60),   # Monday: 2h over
            _session(2, datetime(2026, 3, 10, 8, 0), 4 * 60),   # Tuesday, two sessions: 9h -> 1h over
            _session(3, datetime(2026, 3, 10, 13, 0), 5 * 60),
            _session(4, datetime(2026, 2, 20, 8, 0), 9 * 60),   # last month: 1h over
        ]
        result = metrics.overtime(sessions, now)
        assert result.this_week == 3.0
        assert result.this_month == 3.0
        assert result.total == 4.0

    def test_week_starts_on_sunday(self):
        sessions = [
            _session(1, datetime(2026, 3, 8, 9), 60),   # Sunday
            _session(2, datetime(2026, 3, 14, 9), 90),  # Saturday, same week
            _session(3, datetime(2026, 3, 15, 9), 30),  # next Sunday
        ]
        weeks = metrics.weekly_breakdown(sessions)
        assert [w["week_start"] for w in weeks] == ["2026-03-08", "2026-03-15"]
        assert weeks[0]["hours"] == 2.5
        assert weeks[0]["sessions"] == 2

    def test_daily_pattern_is_sunday_first(self):
        pattern = metrics.daily_pattern([_session(1, datetime(2026, 3, 8, 9), 120)])
        assert pattern[0] == {"day": "Sunday", "sessions": 1, "average_hours": 2.0}
        assert len(pattern) == 7

    def test_productivity_trend(self):
        base = datetime(2026, 3, 1, 9)
        rising = [_session(i, base + timedelta(days=i), m) for i, m in enumerate([60, 60, 180, 180])]
        assert metrics.productivity_trend(rising) == "up"
        assert metrics.productivity_trend(rising[:3]) == "stable"

    def test_worker_stats_only_counts_own_sessions(self):
        now = datetime(2026, 3, 11, 12)
        sessions = [
            _session(1, datetime(2026, 3, 10, 9), 120, worker_id=1),
            _session(2, datetime(2026, 3, 11, 9, 40), None, worker_id=1),
            _session(3, datetime(2026, 3, 10, 9), 600, worker_id=2),
        ]
        stats = metrics.worker_stats(1, sessions, now)
        assert stats["total_sessions"] == 2
        assert stats["completed_sessions"] == 1
        assert stats["total_hours"] == 2.0
        assert stats["active_session"].id == 2
        assert stats["punctuality"].late == 1


# =============================================================================
# WORKFORCE
# =============================================================================


class TestWorkforce:
    def test_summary(self):
        workers = [WorkerRecord(id=1, name="A", email="a@x"), WorkerRecord(id=2, name="B", email="b@x")]
        sessions = [
            _session(1, datetime(2026, 3, 2, 9), 120, worker_id=1, branch_id=1),
            _session(2, datetime(2026, 3, 2, 10), 60, worker_id=1, branch_id=2),
        ]
        summary = metrics.workforce_summary(workers, sessions, {1: "Main", 2: "Harbor"})
        assert summary["total_workers"] == 2
        assert summary["active_workers"] == 1
        assert summary["total_hours"] == 3.0
        assert summary["average_hours_per_worker"] == 1.5
        assert [c["branch_name"] for c in summary["branch_coverage"]] == ["Main", "Harbor"]
        assert summary["top_performers"][0]["worker_id"] == 1
        assert summary["hourly_activity"][9]["clock_ins"] == 1
        assert summary["hourly_activity"][11]["clock_outs"] == 2


# =============================================================================
# DISCOUNTS & SALES
# =============================================================================


def _discount(**kw):
    values = {"id": 1, "branch_id": 1, "code": "SAVE", "discount_type": "percentage", "value": 10}
    values.update(kw)
    return DiscountRecord(**values)


class TestDiscountAmount:
    def test_percentage_rounds_half_up(self):
        assert metrics.discount_amount(_discount(value=15), 1010) == 152  # 151.5

    def test_flat_is_capped_at_subtotal(self):
        assert metrics.discount_amount(_discount(discount_type="flat", value=5000), 1200) == 1200

    def test_category_and_minimum(self):
        scoped = _discount(applies_to_category_id=7)
        assert metrics.discount_amount(scoped, 1000, {3}) == 0
        assert metrics.discount_amount(scoped, 1000, {3, 7}) == 100
        assert metrics.discount_amount(_discount(min_subtotal_cents=2000), 1999) == 0

    def test_inactive(self):
        assert metrics.discount_amount(_discount(is_active=False), 1000) == 0


class TestSalesStats:
    def test_totals_profit_and_top_items(self):
        orders = [
            OrderRecord(
                id=1, branch_id=1, worker_id=1, order_number="ORD-1",
                subtotal_cents=1300, total_cents=1200, discount_amount_cents=100,
                created_at=datetime(2026, 3, 2, 12, 5),
                lines=(
                    OrderLineRecord(name="Burger", price_cents=800, quantity=1, cost_cents=300, item_id=1),
                    OrderLineRecord(name="Cola", price_cents=250, quantity=2, cost_cents=50, item_id=2),
                ),
            ),
            OrderRecord(
                id=2, branch_id=1, worker_id=1, order_number="ORD-2", order_type="take_out",
                subtotal_cents=500, total_cents=500,
                created_at=datetime(2026, 3, 2, 13, 0),
                lines=(OrderLineRecord(name="Cola", price_cents=250, quantity=2, cost_cents=50, item_id=2),),
            ),
        ]
        stats = metrics.sales_stats(orders)
        assert stats["total_orders"] == 2
        assert stats["revenue_cents"] == 1700
        # (500 + 400 - 100) + 400
        assert stats["profit_cents"] == 1200
        assert stats["items_sold"] == 5
        assert stats["average_order_cents"] == 850
        assert stats["orders_by_type"] == {"dine_in": 1, "take_out": 1}
        assert stats["hourly"][12]["revenue_cents"] == 1200
        assert stats["top_items"][0]["name"] == "Cola"
        assert stats["top_items"][0]["quantity"] == 4

    def test_empty(self):
        stats = metrics.sales_stats([])
        assert stats["total_orders"] == 0
        assert stats["profit_margin"] == 0.0
        assert stats["average_order_cents"] == 0


def _sale(order_id, created_at, total_cents):
    return OrderRecord(
        id=order_id, branch_id=1, worker_id=1, order_number=f"ORD-{order_id}",
        subtotal_cents=total_cents, total_cents=total_cents, created_at=created_at,
        lines=(OrderLineRecord(name="Cola", price_cents=total_cents, quantity=1, cost_cents=0, item_id=2),),
    )


class TestWeeklySalesStats:
    def test_seven_days_from_sunday_with_best_and_worst(self):
        orders = [
            _sale(1, datetime(2026, 2, 28, 23, 0), 9999),   # Saturday before the week
            _sale(2, datetime(2026, 3, 1, 9, 0), 500),      # Sunday
            _sale(3, datetime(2026, 3, 3, 12, 0), 700),     # Tuesday
            _sale(4, datetime(2026, 3, 3, 18, 0), 800),
            _sale(5, datetime(2026, 3, 6, 10, 0), 300),     # Friday
            _sale(6, datetime(2026, 3, 8, 0, 0), 9999),     # next Sunday
        ]
        week = metrics.weekly_sales_stats(orders, date(2026, 3, 4))
        assert week["week_start"] == "2026-03-01"
        assert week["week_end"] == "2026-03-07"
        assert [d["date"] for d in week["daily"]][0::6] == ["2026-03-01", "2026-03-07"]
        assert [d["total_orders"] for d in week["daily"]] == [1, 0, 2, 0, 0, 1, 0]
        assert week["daily"][2]["revenue_cents"] == 1500
        assert week["total_orders"] == 4
        assert week["revenue_cents"] == 2300
        assert week["best_day"] == "2026-03-03"
        # zero-revenue days are never the worst day
        assert week["worst_day"] == "2026-03-06"

    def test_ties_pick_the_earlier_day(self):
        orders = [_sale(1, datetime(2026, 3, 2, 9, 0), 400), _sale(2, datetime(2026, 3, 5, 9, 0), 400)]
        week = metrics.weekly_sales_stats(orders, date(2026, 3, 1))
        assert week["best_day"] == week["worst_day"] == "2026-03-02"

    def test_no_sales(self):
        week = metrics.weekly_sales_stats([], date(2026, 3, 1))
        assert len(week["daily"]) == 7
        assert week["best_day"] is None
        assert week["worst_day"] is None

    def test_daily_report_is_a_dated_sales_summary(self):
        orders = [_sale(1, datetime(2026, 3, 2, 9, 0), 400), _sale(2, datetime(2026, 3, 3, 9, 0), 100)]
        day = metrics.daily_sales_stats(orders, date(2026, 3, 2))
        assert day["date"] == "2026-03-02"
        assert day["total_orders"] == 1
        assert day["hourly"][9]["revenue_cents"] == 400
