# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .permissions import has_permission
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'session_context')


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext (role_name is what the
      ledger and access policy receive)

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(action: str):
    """
    Require the session's role to grant `action` in the access policy table.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            role_name = g.session_context.role_name
            if not has_permission(role_name, action):
                current_app.logger.warning(
                    "Permission denied: role=%s action=%s path=%s",
                    role_name, action, request.path,
                )
                return jsonify({
                    "error": "permission_denied",
                    "required_permission": action,
                    "message": f"Role {role_name!r} is not permitted to perform {action!r}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def acting_role() -> str | None:
    """Role of the current session, passed explicitly into ledger calls."""
    return g.session_context.role_name if _is_authenticated() else None
