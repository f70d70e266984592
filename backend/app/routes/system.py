# backend/app/routes/system.py
"""
System health, version and stored image endpoints.
"""

import sys
import time

from flask import Blueprint, abort, current_app, send_file
from sqlalchemy import text

from ..extensions import db
from ..services import storage_service, subscription_service
from app.time_utils import utcnow

system_bp = Blueprint("system", __name__)

IMAGE_FOLDERS = {storage_service.PRODUCTS_FOLDER, storage_service.RECEIPTS_FOLDER}


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial query.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
            "live_queries": {"active": subscription_service.active_count()},
        }
    }
    return response, 200 if healthy else 503


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": current_app.config.get("API_VERSION", "1.0.0"),
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }


@system_bp.get("/uploads/<folder>/<filename>")
def uploaded_image(folder: str, filename: str):
    if folder not in IMAGE_FOLDERS:
        abort(404)
    path = storage_service.resolve_image(f"{folder}/{filename}", folder)
    if path is None or not path.is_file():
        abort(404)
    return send_file(path)
