# backend/oms/routes/system.py
"""
System health endpoint.

Checks the database and the session table, and reports whether an
administrator account has been bootstrapped.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Customer, Order, Product, SessionToken, User
from ..permissions import ROLE_SUPER_ADMIN
from oms.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "customers": db.session.query(Customer).count(),
            "products": db.session.query(Product).count(),
            "orders": db.session.query(Order).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(
            is_revoked=False
        ).count()

        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(False)
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


def check_accounts_health() -> dict:
    """Degraded until at least one Super Admin exists (run `flask system init`)."""
    start_time = time.time()
    try:
        super_admins = db.session.query(User).filter_by(role=ROLE_SUPER_ADMIN, is_active=True).count()
        elapsed_ms = (time.time() - start_time) * 1000

        if not super_admins:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No active Super Admin account",
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"super_admins": super_admins},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Accounts health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Accounts error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()
    accounts_health = check_accounts_health()

    all_checks = [database_health, session_health, accounts_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "session_service": session_health,
            "accounts": accounts_health,
        }
    }

    return response, http_status
