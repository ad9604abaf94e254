"""
Worker service tests: profiles, branch roles, admin status and access helpers.
"""

import pytest

from branchpos.extensions import db
from branchpos.models import RoleAssignment
from branchpos.services import branch_service, timekeeping_service, worker_service
from branchpos.services.worker_service import RoleAssignmentError
from branchpos.validation import ConflictError, ValidationError


class TestProfiles:
    def test_email_is_normalized_and_unique(self, db_session):
        worker = worker_service.create_worker(name="Pat", email="  Pat@Example.COM ")
        assert worker.email == "pat@example.com"
        with pytest.raises(ConflictError):
            worker_service.create_worker(name="Other Pat", email="pat@example.com")

    def test_employee_code_is_unique(self, worker):
        with pytest.raises(ConflictError):
            worker_service.create_worker(name="Dup", email="dup@example.com", employee_code="W-1")

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            worker_service.create_worker(name="  ", email="x@example.com")

    def test_update_rejects_unknown_fields(self, worker):
        with pytest.raises(ValidationError):
            worker_service.update_worker(worker.id, {"is_admin": True})
        updated = worker_service.update_worker(worker.id, {"phone": "555-0100"})
        assert updated.phone == "555-0100"


class TestRoles:
    def test_assign_upserts_single_row(self, branch, worker, admin):
        worker_service.assign_role(worker_id=worker.id, branch_id=branch.id, role="manager", assigned_by_id=admin.id)
        rows = db.session.query(RoleAssignment).filter_by(worker_id=worker.id, branch_id=branch.id).all()
        assert len(rows) == 1
        assert rows[0].role == "manager"

    def test_revoke_then_reassign_reuses_row(self, branch, worker):
        revoked = worker_service.revoke_role(worker_id=worker.id, branch_id=branch.id)
        assert revoked.is_active is False
        with pytest.raises(RoleAssignmentError):
            worker_service.revoke_role(worker_id=worker.id, branch_id=branch.id)
        again = worker_service.assign_role(worker_id=worker.id, branch_id=branch.id, role="worker")
        assert again.id == revoked.id
        assert again.is_active

    def test_revoke_rejects_worker_clocked_in_at_branch(self, branch, worker):
        timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id)
        with pytest.raises(RoleAssignmentError, match="Clock the worker out of this branch"):
            worker_service.revoke_role(worker_id=worker.id, branch_id=branch.id)
        row = db.session.query(RoleAssignment).filter_by(worker_id=worker.id, branch_id=branch.id).one()
        assert row.is_active

        timekeeping_service.clock_out(worker_id=worker.id)
        assert worker_service.revoke_role(worker_id=worker.id, branch_id=branch.id).is_active is False

    def test_admins_cannot_get_branch_roles(self, branch, admin):
        with pytest.raises(RoleAssignmentError):
            worker_service.assign_role(worker_id=admin.id, branch_id=branch.id, role="worker")

    def test_unknown_role(self, branch, worker):
        with pytest.raises(RoleAssignmentError):
            worker_service.assign_role(worker_id=worker.id, branch_id=branch.id, role="owner")

    def test_inactive_branch(self, branch, worker):
        branch_service.deactivate_branch(branch.id)
        with pytest.raises(ValueError):
            worker_service.assign_role(worker_id=worker.id, branch_id=branch.id, role="manager")


class TestAdminStatus:
    def test_promote_deactivates_branch_roles(self, branch, worker, admin):
        promoted = worker_service.promote_to_admin(worker_id=worker.id, assigned_by_id=admin.id)
        assert promoted.is_admin
        assert promoted.current_status is None
        assert all(not a.is_active for a in promoted.role_assignments)

    def test_promote_rejects_clocked_in_worker(self, branch, worker):
        timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id)
        with pytest.raises(RoleAssignmentError, match="Clock the worker out"):
            worker_service.promote_to_admin(worker_id=worker.id)

    def test_cannot_demote_last_admin(self, admin):
        with pytest.raises(RoleAssignmentError, match="last active admin"):
            worker_service.demote_from_admin(worker_id=admin.id)

    def test_demote_when_another_admin_exists(self, admin, worker):
        worker_service.promote_to_admin(worker_id=worker.id, assigned_by_id=admin.id)
        demoted = worker_service.demote_from_admin(worker_id=admin.id)
        assert not demoted.is_admin
        assert demoted.current_status == "clocked_out"


class TestAccess:
    def test_admin_sees_every_active_branch(self, branch, other_branch, admin):
        assert worker_service.accessible_branch_ids(admin) == {branch.id, other_branch.id}
        assert worker_service.role_in_branch(admin, other_branch.id) == "admin"

    def test_worker_sees_assigned_branches(self, branch, other_branch, worker):
        assert worker_service.accessible_branch_ids(worker) == {branch.id}
        assert worker_service.can_access_branch(worker, branch.id)
        assert not worker_service.can_access_branch(worker, other_branch.id)
        assert not worker_service.can_manage_branch(worker, branch.id)

    def test_manager_manages_plain_workers_in_their_branch(self, branch, other_branch, manager, worker, admin):
        assert worker_service.can_manage_branch(manager, branch.id)
        assert worker_service.can_manage_worker(manager, worker)
        assert not worker_service.can_manage_worker(manager, admin)

        outsider = worker_service.create_worker(name="Olly", email="olly@example.com")
        worker_service.assign_role(worker_id=outsider.id, branch_id=other_branch.id, role="worker")
        assert not worker_service.can_manage_worker(manager, outsider)

        peer = worker_service.create_worker(name="Peggy", email="peggy@example.com")
        worker_service.assign_role(worker_id=peer.id, branch_id=branch.id, role="manager")
        assert not worker_service.can_manage_worker(manager, peer)

    def test_nobody(self, branch):
        assert worker_service.accessible_branch_ids(None) == set()
        assert not worker_service.can_access_branch(None, branch.id)
