from __future__ import annotations

from ..extensions import db

SESSION_TYPES = ("scheduled", "emergency", "overtime")


class WorkSession(db.Model):
    """
    One clock-in/clock-out interval for a worker at a branch.

    LIFECYCLE:
    - active: time_out_at is NULL
    - completed: time_out_at set, duration_minutes computed at clock-out

    A worker has at most one active session.
    """
    __tablename__ = "work_sessions"
    __collection__ = "work_sessions"
    __table_args__ = (
        db.Index("ix_work_sessions_worker_time_in", "worker_id", "time_in_at"),
        db.Index("ix_work_sessions_branch_time_in", "branch_id", "time_in_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    time_in_at = db.Column(db.DateTime(timezone=True), nullable=False)
    time_out_at = db.Column(db.DateTime(timezone=True), nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=True)

    clocked_in_by_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)
    clocked_out_by_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)

    session_type = db.Column(db.String(16), nullable=False, default="scheduled")
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    worker = db.relationship("Worker", foreign_keys=[worker_id], backref=db.backref("work_sessions", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("work_sessions", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}
