# Overview: Pure filter/sort over in-memory record lists.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

DEFAULT_SEARCH_FIELDS = ("name", "email", "employee_code", "description", "code")


@dataclass(frozen=True)
class FilterSpec:
    """
    Optional, independently combinable predicates (logical AND).

    match: attribute -> expected value. A collection-valued attribute (e.g. a
    worker's roles) matches when it contains the expected value. None as the
    expected value disables that predicate, so "all" selections can be passed
    straight through.
    date_field/start/end: inclusive range on a datetime attribute.
    """
    search: str = ""
    search_fields: Sequence[str] = DEFAULT_SEARCH_FIELDS
    match: Mapping[str, Any] = field(default_factory=dict)
    date_field: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return (
            not (self.search or "").strip()
            and not any(v is not None for v in self.match.values())
            and (self.date_field is None or (self.start is None and self.end is None))
        )


@dataclass(frozen=True)
class SortSpec:
    field: str
    descending: bool = False


def _matches_search(record, needle: str, fields: Sequence[str]) -> bool:
    for name in fields:
        value = getattr(record, name, None)
        if value is None:
            continue
        if needle in str(value).casefold():
            return True
    return False


def _matches_value(actual, expected) -> bool:
    if isinstance(actual, (set, frozenset, list, tuple)):
        return expected in actual
    return actual == expected


def _in_range(value, start, end) -> bool:
    if value is None:
        return False
    if isinstance(value, datetime):
        if isinstance(start, date) and not isinstance(start, datetime):
            start = datetime.combine(start, datetime.min.time())
        if isinstance(end, date) and not isinstance(end, datetime):
            end = datetime.combine(end, datetime.max.time())
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def _sort_key(value):
    if isinstance(value, str):
        return value.casefold()
    return value


def filter_records(records: Iterable, spec: Optional[FilterSpec]) -> list:
    if spec is None:
        return list(records)
    needle = (spec.search or "").strip().casefold()
    predicates = [(k, v) for k, v in spec.match.items() if v is not None]
    out = []
    for record in records:
        if needle and not _matches_search(record, needle, spec.search_fields):
            continue
        if any(not _matches_value(getattr(record, k, None), v) for k, v in predicates):
            continue
        if spec.date_field and (spec.start is not None or spec.end is not None):
            if not _in_range(getattr(record, spec.date_field, None), spec.start, spec.end):
                continue
        out.append(record)
    return out


def sort_records(records: Iterable, spec: Optional[SortSpec]) -> list:
    """
    Stable sort on one attribute; strings compare case-insensitively.

    Records with a missing (None) value keep their relative order and go
    last in either direction.
    """
    records = list(records)
    if spec is None:
        return records
    present = [r for r in records if getattr(r, spec.field, None) is not None]
    missing = [r for r in records if getattr(r, spec.field, None) is None]
    present.sort(key=lambda r: _sort_key(getattr(r, spec.field)), reverse=spec.descending)
    return present + missing


def apply_filter_sort(records: Iterable, filter_spec: Optional[FilterSpec] = None,
                      sort_spec: Optional[SortSpec] = None) -> list:
    """Return the visible list for a view. Never mutates the input."""
    return sort_records(filter_records(records, filter_spec), sort_spec)
