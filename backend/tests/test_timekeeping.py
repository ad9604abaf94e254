"""
Timekeeping service tests: clock in/out invariants and session history.
"""

from datetime import datetime

import pytest

from branchpos.extensions import db
from branchpos.models import WorkSession
from branchpos.models.workers import STATUS_CLOCKED_IN, STATUS_CLOCKED_OUT
from branchpos.services import timekeeping_service, worker_service
from branchpos.services.timekeeping_service import TimekeepingError
from branchpos.validation import ValidationError


class TestClockIn:
    def test_clock_in_opens_session_and_updates_status(self, branch, worker):
        started = datetime(2026, 3, 2, 9, 7)
        session = timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id, now=started)

        assert session.time_out_at is None
        assert session.time_in_at == started
        assert session.clocked_in_by_id == worker.id
        db.session.refresh(worker)
        assert worker.current_status == STATUS_CLOCKED_IN
        assert worker.current_branch_id == branch.id
        assert timekeeping_service.active_session(worker.id).id == session.id

    def test_second_clock_in_is_rejected(self, branch, worker):
        timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id)
        with pytest.raises(TimekeepingError, match="already clocked in"):
            timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id)
        assert db.session.query(WorkSession).filter_by(worker_id=worker.id).count() == 1

    def test_admins_do_not_clock_in(self, branch, admin):
        with pytest.raises(TimekeepingError, match="Admins"):
            timekeeping_service.clock_in(worker_id=admin.id, branch_id=branch.id)

    def test_requires_assignment_at_branch(self, other_branch, worker):
        with pytest.raises(TimekeepingError, match="not assigned"):
            timekeeping_service.clock_in(worker_id=worker.id, branch_id=other_branch.id)

    def test_inactive_worker(self, branch, worker):
        worker_service.update_worker(worker.id, {"is_active": False})
        with pytest.raises(TimekeepingError, match="inactive"):
            timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id)

    def test_unknown_session_type(self, branch, worker):
        with pytest.raises(ValidationError):
            timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id, session_type="nap")

    def test_manager_clocks_in_for_worker(self, branch, worker, manager):
        session = timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id, actor_id=manager.id)
        assert session.clocked_in_by_id == manager.id


class TestClockOut:
    def test_clock_out_closes_session(self, branch, worker):
        timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id, now=datetime(2026, 3, 2, 9, 0))
        session = timekeeping_service.clock_out(worker_id=worker.id, notes="done", now=datetime(2026, 3, 2, 17, 30))

        assert session.time_out_at == datetime(2026, 3, 2, 17, 30)
        assert session.duration_minutes == 510
        assert session.notes == "done"
        db.session.refresh(worker)
        assert worker.current_status == STATUS_CLOCKED_OUT
        assert worker.current_branch_id is None
        assert timekeeping_service.active_session(worker.id) is None

    def test_clock_out_without_session(self, worker):
        with pytest.raises(TimekeepingError, match="not clocked in"):
            timekeeping_service.clock_out(worker_id=worker.id)

    def test_clock_out_cannot_precede_clock_in(self, branch, worker):
        timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id, now=datetime(2026, 3, 2, 9, 0))
        with pytest.raises(TimekeepingError):
            timekeeping_service.clock_out(worker_id=worker.id, now=datetime(2026, 3, 2, 8, 0))


class TestListSessions:
    def test_filters_and_order(self, branch, worker):
        for day in (2, 3, 4):
            timekeeping_service.clock_in(worker_id=worker.id, branch_id=branch.id, now=datetime(2026, 3, day, 9))
            timekeeping_service.clock_out(worker_id=worker.id, now=datetime(2026, 3, day, 17))

        sessions = timekeeping_service.list_sessions(worker_id=worker.id)
        assert [s.time_in_at.day for s in sessions] == [4, 3, 2]

        ranged = timekeeping_service.list_sessions(
            worker_id=worker.id, start=datetime(2026, 3, 3), end=datetime(2026, 3, 3, 23, 59)
        )
        assert [s.time_in_at.day for s in ranged] == [3]
        assert timekeeping_service.list_sessions(branch_id=branch.id, limit=2)[0].time_in_at.day == 4
