# Overview: Flask API routes for branch management; admins create and edit, everyone lists their own.

from flask import Blueprint, g, jsonify, request

from ..decorators import json_errors, require_admin, require_branch_access, require_worker
from ..records import BranchRecord, to_json
from ..services import branch_service, worker_service
from .common import arg_bool, record_response

branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_worker
def list_branches_route():
    include_inactive = arg_bool("include_inactive") and g.current_worker.is_admin
    allowed = worker_service.accessible_branch_ids(g.current_worker)
    branches = [
        b for b in branch_service.list_branches(include_inactive=include_inactive)
        if g.current_worker.is_admin or b.id in allowed
    ]
    return jsonify(to_json([BranchRecord.from_model(b) for b in branches])), 200


@branches_bp.post("")
@require_worker
@require_admin
@json_errors
def create_branch_route():
    data = request.get_json(silent=True) or {}
    branch = branch_service.create_branch(
        name=data.get("name"),
        location=data.get("location"),
        contact_number=data.get("contact_number"),
    )
    return record_response(BranchRecord.from_model(branch), 201)


@branches_bp.get("/<int:branch_id>")
@require_worker
@require_branch_access()
@json_errors
def get_branch_route(branch_id: int):
    return record_response(BranchRecord.from_model(branch_service.get_branch(branch_id)))


@branches_bp.patch("/<int:branch_id>")
@require_worker
@require_admin
@json_errors
def update_branch_route(branch_id: int):
    data = request.get_json(silent=True) or {}
    branch = branch_service.update_branch(branch_id, data)
    return record_response(BranchRecord.from_model(branch))


@branches_bp.delete("/<int:branch_id>")
@require_worker
@require_admin
@json_errors
def deactivate_branch_route(branch_id: int):
    branch = branch_service.deactivate_branch(branch_id)
    return record_response(BranchRecord.from_model(branch))
