# Overview: Request parsing and response helpers shared by the API blueprints.

from flask import jsonify, request

from ..records import to_json
from ..services.filtering import FilterSpec, SortSpec
from ..time_utils import parse_iso_datetime


def arg_bool(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def date_range_args():
    """(start, end) from ?start=&end= ISO datetimes; ValueError on bad input."""
    return parse_iso_datetime(request.args.get("start")), parse_iso_datetime(request.args.get("end"))


def filter_args(match_keys=()) -> tuple[FilterSpec, SortSpec | None]:
    """
    Build the local filter/sort from query parameters.

    ?q= free-text search, ?sort=<field>&desc=true, plus any of `match_keys`
    given as exact-match filters (integers and booleans parsed).
    """
    match = {}
    for key in match_keys:
        raw = request.args.get(key)
        if raw is None or raw == "":
            continue
        if raw.lstrip("-").isdigit():
            match[key] = int(raw)
        elif raw.lower() in ("true", "false"):
            match[key] = raw.lower() == "true"
        else:
            match[key] = raw
    spec = FilterSpec(search=request.args.get("q", ""), match=match)
    sort_field = request.args.get("sort")
    sort_spec = SortSpec(sort_field, descending=arg_bool("desc")) if sort_field else None
    return spec, sort_spec


def record_response(record, status: int = 200):
    return jsonify(to_json(record)), status


def action_response(result, record_cls=None, status: int = 200, key: str | None = None):
    """Answer an ActionResult: 400 with its error, or the (recorded) value."""
    if not result.ok:
        return jsonify({"error": result.error}), 400
    value = result.value
    if record_cls is not None and value is not None and not isinstance(value, bool):
        value = record_cls.from_model(value)
    body = to_json(value)
    if key:
        body = {key: body}
    return jsonify(body), status
