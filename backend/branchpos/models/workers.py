from __future__ import annotations

from ..extensions import db

ROLE_MANAGER = "manager"
ROLE_WORKER = "worker"
BRANCH_ROLES = (ROLE_MANAGER, ROLE_WORKER)

STATUS_CLOCKED_IN = "clocked_in"
STATUS_CLOCKED_OUT = "clocked_out"


class Worker(db.Model):
    """
    Staff member.

    Admins are not scoped to branches and carry no clock status; everyone
    else works through RoleAssignment rows and has current_status set.
    """
    __tablename__ = "workers"
    __collection__ = "workers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    employee_code = db.Column(db.String(32), nullable=True, unique=True)
    phone = db.Column(db.String(32), nullable=True)

    is_admin = db.Column(db.Boolean, nullable=False, default=False, index=True)
    admin_assigned_by_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)
    admin_assigned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    current_status = db.Column(db.String(16), nullable=True, default=STATUS_CLOCKED_OUT)
    current_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)
    last_time_in = db.Column(db.DateTime(timezone=True), nullable=True)
    last_time_out = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    role_assignments = db.relationship(
        "RoleAssignment",
        back_populates="worker",
        foreign_keys="RoleAssignment.worker_id",
        order_by="RoleAssignment.branch_id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Worker id={self.id} email={self.email!r}>"


class RoleAssignment(db.Model):
    __tablename__ = "role_assignments"
    __collection__ = "workers"
    __table_args__ = (
        db.UniqueConstraint("worker_id", "branch_id", name="uq_role_assignments_worker_branch"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_WORKER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    assigned_by_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    worker = db.relationship("Worker", back_populates="role_assignments", foreign_keys=[worker_id])
    branch = db.relationship("Branch")
