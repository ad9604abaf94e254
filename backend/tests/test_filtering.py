"""
Local filter/sort engine tests.
"""

from datetime import datetime

import pytest

from branchpos.records import InventoryItemRecord, RoleAssignmentRecord, WorkerRecord, WorkSessionRecord
from branchpos.services.filtering import FilterSpec, SortSpec, apply_filter_sort, filter_records, sort_records


@pytest.fixture
def workers():
    return [
        WorkerRecord(id=1, name="bob", email="bob@example.com",
                     role_assignments=(RoleAssignmentRecord(1, "worker", True),)),
        WorkerRecord(id=2, name="Alice", email="alice@example.com",
                     role_assignments=(RoleAssignmentRecord(1, "manager", True), RoleAssignmentRecord(2, "worker", True))),
        WorkerRecord(id=3, name="Carol", email="carol@example.com", is_admin=True, current_status=None),
        WorkerRecord(id=4, name="dave", email="dave@example.com", employee_code="EMP-9",
                     role_assignments=(RoleAssignmentRecord(2, "manager", False),), is_active=False),
    ]


class TestFilter:
    def test_search_is_case_insensitive_over_default_fields(self, workers):
        assert [w.id for w in filter_records(workers, FilterSpec(search="ALICE"))] == [2]
        assert [w.id for w in filter_records(workers, FilterSpec(search="emp-9"))] == [4]

    def test_collection_attribute_matches_by_membership(self, workers):
        managers = filter_records(workers, FilterSpec(match={"roles": "manager"}))
        assert [w.id for w in managers] == [2]
        in_branch_2 = filter_records(workers, FilterSpec(match={"branch_ids": 2}))
        assert [w.id for w in in_branch_2] == [2]

    def test_none_disables_predicate(self, workers):
        assert filter_records(workers, FilterSpec(match={"roles": None, "is_active": None})) == workers

    def test_predicates_combine_with_and(self, workers):
        result = filter_records(workers, FilterSpec(search="a", match={"is_active": True, "roles": "admin"}))
        assert [w.id for w in result] == [3]

    def test_date_range_is_inclusive(self):
        sessions = [
            WorkSessionRecord(id=i, worker_id=1, branch_id=1, time_in_at=datetime(2026, 3, d, 9))
            for i, d in enumerate((1, 5, 10), start=1)
        ]
        spec = FilterSpec(date_field="time_in_at", start=datetime(2026, 3, 5, 9), end=datetime(2026, 3, 10, 9))
        assert [s.id for s in filter_records(sessions, spec)] == [2, 3]

    def test_empty_spec(self):
        assert FilterSpec().is_empty
        assert FilterSpec(match={"roles": None}).is_empty
        assert not FilterSpec(search="x").is_empty


class TestSort:
    def test_strings_sort_case_insensitively(self, workers):
        result = sort_records(workers, SortSpec("name"))
        assert [w.name for w in result] == ["Alice", "bob", "Carol", "dave"]

    def test_descending(self, workers):
        assert [w.id for w in sort_records(workers, SortSpec("name", descending=True))] == [4, 3, 1, 2]

    def test_missing_values_go_last_in_both_directions(self, workers):
        assert [w.id for w in sort_records(workers, SortSpec("employee_code"))] == [4, 1, 2, 3]
        assert [w.id for w in sort_records(workers, SortSpec("employee_code", descending=True))] == [4, 1, 2, 3]

    def test_stable_for_equal_keys(self):
        items = [
            InventoryItemRecord(id=i, branch_id=1, name=f"n{i}", price_cents=100, stock=s)
            for i, s in enumerate((5, 3, 5, 3), start=1)
        ]
        assert [i.id for i in sort_records(items, SortSpec("stock"))] == [2, 4, 1, 3]
        # descending keeps equal keys in input order too
        assert [i.id for i in sort_records(items, SortSpec("stock", descending=True))] == [1, 3, 2, 4]


class TestApplyFilterSort:
    @pytest.mark.parametrize("filter_spec,sort_spec", [
        (None, None),
        (FilterSpec(search="o"), SortSpec("name")),
        (FilterSpec(match={"is_active": True}), SortSpec("email", descending=True)),
        (FilterSpec(match={"roles": "worker"}), None),
    ])
    def test_idempotent_and_pure(self, workers, filter_spec, sort_spec):
        original = list(workers)
        first = apply_filter_sort(workers, filter_spec, sort_spec)
        second = apply_filter_sort(workers, filter_spec, sort_spec)
        assert first == second
        assert apply_filter_sort(first, filter_spec, sort_spec) == first
        assert workers == original
