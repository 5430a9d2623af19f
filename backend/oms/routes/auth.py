# Overview: Flask API routes for auth and user accounts; parses input and returns JSON responses.

# backend/oms/routes/auth.py
"""
Authentication and account API routes

- login/logout/validate manage bearer sessions
- register/agents/users manage accounts (role checks live in auth_service)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..errors import ServiceError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email or username and create a session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("email") or data.get("username") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "email/username and password required"}), 400

        user = auth_service.authenticate(identifier, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """Confirm the token is still valid and return the user."""
    return jsonify({"user": g.current_user.to_dict(), "message": "Token valid"}), 200


@auth_bp.post("/register")
@require_auth
def register_route():
    """Create an account (Super Admin only)."""
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.register_user(data, actor=g.current_user)
        return jsonify({"user": user.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/agents")
@require_auth
def list_agents_route():
    users = auth_service.list_agents(g.current_user)
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@auth_bp.put("/users/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.update_user(user_id, data, actor=g.current_user)
        return jsonify({"user": user.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.delete("/users/<int:user_id>")
@require_auth
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id, actor=g.current_user)
        return jsonify({"message": "User removed"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
