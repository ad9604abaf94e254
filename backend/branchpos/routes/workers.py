# Overview: Flask API routes for worker management; listing, profiles, branch roles and admin status.

from flask import Blueprint, g, jsonify, request

from ..decorators import json_errors, require_admin, require_worker, view_context
from ..records import WorkerRecord
from ..services import worker_service
from ..validation import require_int
from ..views import WorkersView
from .common import filter_args, record_response

workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


def _worker_response(worker_id: int, result, status: int = 200):
    if not result.ok:
        return jsonify({"error": result.error}), 400
    return record_response(WorkerRecord.from_model(worker_service.get_worker(worker_id)), status)


@workers_bp.get("")
@require_worker
@json_errors
def list_workers_route():
    """Workers visible to the caller; ?branch_id= scopes to one branch."""
    branch_id = request.args.get("branch_id", type=int)
    if branch_id is not None and not worker_service.can_access_branch(g.current_worker, branch_id):
        return jsonify({"error": "No access to this branch"}), 403
    filter_spec, sort_spec = filter_args(match_keys=("roles", "branch_ids", "status", "is_active"))
    with WorkersView(view_context(branch_id), filter_spec, sort_spec) as view:
        return jsonify(view.render()), 200


@workers_bp.post("")
@require_worker
@require_admin
@json_errors
def create_worker_route():
    data = request.get_json(silent=True) or {}
    worker = worker_service.create_worker(
        name=data.get("name"),
        email=data.get("email"),
        employee_code=data.get("employee_code"),
        phone=data.get("phone"),
        is_admin=bool(data.get("is_admin", False)),
        created_by_id=g.current_worker.id,
    )
    return record_response(WorkerRecord.from_model(worker), 201)


@workers_bp.get("/<int:worker_id>")
@require_worker
@json_errors
def get_worker_route(worker_id: int):
    target = WorkerRecord.from_model(worker_service.get_worker(worker_id))
    actor = g.current_worker
    if not (actor.is_admin or actor.id == target.id or worker_service.can_manage_worker(actor, target)):
        return jsonify({"error": "Not allowed to view this worker"}), 403
    return record_response(target)


@workers_bp.patch("/<int:worker_id>")
@require_worker
@json_errors
def update_worker_route(worker_id: int):
    target = WorkerRecord.from_model(worker_service.get_worker(worker_id))
    actor = g.current_worker
    if not (actor.is_admin or worker_service.can_manage_worker(actor, target)):
        return jsonify({"error": "Not allowed to manage this worker"}), 403
    data = request.get_json(silent=True) or {}
    worker = worker_service.update_worker(worker_id, data)
    return record_response(WorkerRecord.from_model(worker))


@workers_bp.post("/<int:worker_id>/roles")
@require_worker
@json_errors
def assign_role_route(worker_id: int):
    data = request.get_json(silent=True) or {}
    branch_id = require_int(data.get("branch_id"), "branch_id")
    with WorkersView(view_context()) as view:
        result = view.assign_role(worker_id, branch_id, data.get("role") or "worker")
    return _worker_response(worker_id, result)


@workers_bp.delete("/<int:worker_id>/roles/<int:branch_id>")
@require_worker
@json_errors
def revoke_role_route(worker_id: int, branch_id: int):
    with WorkersView(view_context()) as view:
        result = view.revoke_role(worker_id, branch_id)
    return _worker_response(worker_id, result)


@workers_bp.post("/<int:worker_id>/admin")
@require_worker
@require_admin
@json_errors
def promote_route(worker_id: int):
    with WorkersView(view_context()) as view:
        result = view.promote_to_admin(worker_id)
    return _worker_response(worker_id, result)


@workers_bp.delete("/<int:worker_id>/admin")
@require_worker
@require_admin
@json_errors
def demote_route(worker_id: int):
    with WorkersView(view_context()) as view:
        result = view.demote_from_admin(worker_id)
    return _worker_response(worker_id, result)
