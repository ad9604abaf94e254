# Overview: System health endpoint; database reachability and live subscription counts.

import time
from flask import Blueprint, current_app, jsonify

from ..extensions import db, feed
from ..models import Branch, Worker
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        branch_count = db.session.query(Branch).count()
        worker_count = db.session.query(Worker).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"branches": branch_count, "workers": worker_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_feed_health() -> dict:
    return {
        "status": "healthy",
        "collections": sorted(feed.collections),
        "active_subscriptions": len(feed.active_subscriptions()),
    }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = "healthy" if database["status"] == "healthy" else "unhealthy"
    body = {
        "status": status,
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database, "feed": check_feed_health()},
    }
    return jsonify(body), 200 if status == "healthy" else 503
