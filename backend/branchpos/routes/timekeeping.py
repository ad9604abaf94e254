# Overview: Flask API routes for clock in/out, session history and attendance analytics.

"""
Timekeeping Routes

SECURITY:
- A worker clocks themselves in/out; managers (and admins) may do it for
  workers in branches they manage.
- Session history and stats: your own, or anyone you manage.
- The attendance screen needs the manager role in the branch.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import json_errors, require_branch_access, require_worker, view_context
from ..records import WorkerRecord, WorkSessionRecord, to_json
from ..services import metrics, timekeeping_service, worker_service
from ..services.dispatch import MutationDispatcher
from ..time_utils import utcnow
from ..validation import require_int
from ..views import AttendanceView
from .common import action_response, date_range_args, filter_args

timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api")


def _target_worker(data) -> WorkerRecord:
    worker_id = data.get("worker_id")
    if worker_id is None:
        return g.current_worker
    return WorkerRecord.from_model(worker_service.get_worker(require_int(worker_id, "worker_id")))


def _can_view_worker(target: WorkerRecord) -> bool:
    actor = g.current_worker
    return actor.is_admin or actor.id == target.id or worker_service.can_manage_worker(actor, target)


@timekeeping_bp.post("/timekeeping/clock-in")
@require_worker
@json_errors
def clock_in_route():
    data = request.get_json(silent=True) or {}
    if not data.get("branch_id"):
        return jsonify({"error": "branch_id is required"}), 400
    branch_id = require_int(data.get("branch_id"), "branch_id")
    target = _target_worker(data)
    if target.id != g.current_worker.id and not worker_service.can_manage_branch(g.current_worker, branch_id):
        return jsonify({"error": "Not allowed to clock in this worker"}), 403

    result = MutationDispatcher(actor_id=g.current_worker.id).clock_in(
        target,
        branch_id=branch_id,
        notes=data.get("notes"),
        session_type=data.get("session_type", "scheduled"),
    )
    return action_response(result, WorkSessionRecord, 201, key="session")


@timekeeping_bp.post("/timekeeping/clock-out")
@require_worker
@json_errors
def clock_out_route():
    data = request.get_json(silent=True) or {}
    target = _target_worker(data)
    if target.id != g.current_worker.id and not worker_service.can_manage_branch(
        g.current_worker, target.current_branch_id
    ):
        return jsonify({"error": "Not allowed to clock out this worker"}), 403

    result = MutationDispatcher(actor_id=g.current_worker.id).clock_out(target, notes=data.get("notes"))
    return action_response(result, WorkSessionRecord, key="session")


@timekeeping_bp.get("/timekeeping/sessions")
@require_worker
@json_errors
def list_sessions_route():
    worker_id = request.args.get("worker_id", type=int) or g.current_worker.id
    target = WorkerRecord.from_model(worker_service.get_worker(worker_id))
    if not _can_view_worker(target):
        return jsonify({"error": "Not allowed to view this worker"}), 403
    start, end = date_range_args()
    sessions = timekeeping_service.list_sessions(
        worker_id=worker_id,
        branch_id=request.args.get("branch_id", type=int),
        start=start,
        end=end,
        limit=min(request.args.get("limit", 500, type=int), 1000),
    )
    return jsonify({"sessions": to_json([WorkSessionRecord.from_model(s) for s in sessions])}), 200


@timekeeping_bp.get("/workers/<int:worker_id>/stats")
@require_worker
@json_errors
def worker_stats_route(worker_id: int):
    target = WorkerRecord.from_model(worker_service.get_worker(worker_id))
    if not _can_view_worker(target):
        return jsonify({"error": "Not allowed to view this worker"}), 403
    sessions = [WorkSessionRecord.from_model(s) for s in timekeeping_service.list_sessions(worker_id=worker_id, limit=5000)]
    config = current_app.config
    stats = metrics.worker_stats(
        worker_id,
        sessions,
        utcnow(),
        config["STANDARD_WORKDAY_HOURS"],
        config["ON_TIME_GRACE_MINUTES"],
    )
    stats["weekly_breakdown"] = metrics.weekly_breakdown(sessions)
    stats["daily_pattern"] = metrics.daily_pattern(sessions)
    return jsonify(to_json(stats)), 200


@timekeeping_bp.get("/branches/<int:branch_id>/attendance")
@require_worker
@require_branch_access(manage=True)
@json_errors
def attendance_view_route(branch_id: int):
    start, end = date_range_args()
    filter_spec, sort_spec = filter_args(match_keys=("worker_id", "status", "session_type"))
    worker_id = request.args.get("selected_worker_id", type=int)
    view = AttendanceView(view_context(branch_id), filter_spec, sort_spec, start=start, end=end, worker_id=worker_id)
    with view:
        return jsonify(view.render()), 200
