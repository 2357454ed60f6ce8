# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockledger/routes/auth.py
"""
Authentication API routes

- Login issues a bearer token; only its hash is stored
- Logout is best-effort and always completes for the client
- Accounts are created by administrators only (no self-registration)
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..services import session_service
from ..permissions import permitted_actions
from ..decorators import require_auth, require_permission


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    identifier = data.get("email") or data.get("username")
    password = data.get("password")

    if not all([identifier, password]):
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.authenticate(identifier, password)
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr
    )

    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permitted_actions(user.role_name)),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful"
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Teardown failures never block the client: the response is 200 whenever
    a bearer token was presented.
    """
    token = _bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    revoked = session_service.end_session(token, reason="User logout")
    return jsonify({"message": "Logout successful", "revoked": revoked}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user, role and the actions the role permits."""
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "role": context.role_name,
        "permissions": sorted(permitted_actions(context.role_name)),
    }), 200


@auth_bp.post("/accounts")
@require_auth
@require_permission("admin")
def create_account_route():
    """
    Create a user account.

    Request body: {"email", "password", "username"?, "first_name"?,
    "last_name"?, "phone"?, "role"?}
    """
    data = request.get_json(silent=True) or {}
    profile = {
        key: data.get(key)
        for key in ("username", "first_name", "last_name", "phone", "role")
    }

    result = auth_service.create_account(data.get("email"), data.get("password"), profile)
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.http_status

    return jsonify({"user_id": result.value}), 201


@auth_bp.get("/accounts")
@require_auth
@require_permission("admin")
def list_accounts_route():
    """
    List accounts with their roles.

    Query params:
    - include_inactive: bool (default true)
    """
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"

    result = auth_service.list_users(include_inactive=include_inactive)
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.http_status

    users = [user.to_dict() for user in result.value]
    return jsonify({"users": users, "count": len(users)}), 200


@auth_bp.patch("/accounts/<int:user_id>")
@require_auth
@require_permission("admin")
def update_account_route(user_id: int):
    """
    Activate or deactivate an account.

    Request body: {"is_active": bool}. Deactivation revokes all of the
    user's sessions.
    """
    data = request.get_json(silent=True) or {}
    if "is_active" not in data:
        return jsonify({"error": "validation_error", "message": "is_active is required"}), 400

    result = auth_service.set_user_active(
        user_id, data["is_active"], acting_user_id=g.current_user.id
    )
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.http_status

    user, revoked = result.value
    return jsonify({"user": user.to_dict(), "sessions_revoked": revoked}), 200
