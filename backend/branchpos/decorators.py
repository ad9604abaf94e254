# Overview: Request decorators for API routes; acting-worker identification and branch access.

from functools import wraps
from flask import current_app, request, jsonify, g

from .extensions import db, feed
from .models import Worker
from .records import WorkerRecord
from .services import worker_service
from .services.order_service import InsufficientStockError
from .validation import ConflictError, NotFoundError
from .views.context import ViewContext

WORKER_HEADER = "X-Worker-Id"


def _load_actor():
    raw = request.headers.get(WORKER_HEADER, "").strip()
    if not raw.isdigit():
        return None
    worker = db.session.get(Worker, int(raw))
    if worker is None or not worker.is_active:
        return None
    return WorkerRecord.from_model(worker)


def require_worker(f):
    """
    Identify the acting worker from the X-Worker-Id header.

    Sets g.current_worker (a WorkerRecord). This is identification only;
    the deployment is expected to sit behind its own authentication.

    Returns 401 if the header is missing or names no active worker.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = _load_actor()
        if actor is None:
            return jsonify({"error": f"{WORKER_HEADER} header naming an active worker is required"}), 401
        g.current_worker = actor
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.current_worker.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def require_branch_access(manage: bool = False):
    """
    Require access to the route's <branch_id>.

    manage=True additionally requires the manager role there (admins always pass).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            branch_id = kwargs.get("branch_id")
            actor = g.current_worker
            if manage:
                allowed = worker_service.can_manage_branch(actor, branch_id)
            else:
                allowed = worker_service.can_access_branch(actor, branch_id)
            if not allowed:
                return jsonify({"error": "No access to this branch"}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def view_context(branch_id=None) -> ViewContext:
    """ViewContext for the current request's actor and app settings."""
    return ViewContext.from_config(
        current_app.config,
        feed,
        branch_id=branch_id,
        current_worker=getattr(g, "current_worker", None),
    )


def json_errors(f):
    """
    Map service errors onto JSON responses.

    NotFoundError -> 404, ConflictError / InsufficientStockError -> 409,
    any other ValueError -> 400. Anything else is logged and answered 500.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except NotFoundError as e:
            db.session.rollback()
            return jsonify({"error": str(e)}), 404
        except (ConflictError, InsufficientStockError) as e:
            db.session.rollback()
            return jsonify({"error": str(e)}), 409
        except ValueError as e:
            db.session.rollback()
            return jsonify({"error": str(e)}), 400
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Unhandled error in %s", request.path)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function
