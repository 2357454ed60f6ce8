# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every movement should be attributable. Uses bcrypt for password
hashing and validates password strength.

The ledger never consumes identity directly: it only receives the role
name of an authenticated session (see session_service.SessionContext).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper + lower + digit + special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from flask import current_app
from ..errors import NotFound, ValidationError, ConflictError, service_boundary
from ..extensions import db
from ..models import User, Role
from ..permissions import DEFAULT_ROLES
from . import session_service
from stockledger.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes never verify.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


@service_boundary
def create_account(email: str, password: str, profile: dict | None = None) -> int:
    """
    Create a user account and return its id.

    profile keys: username, first_name, last_name, phone, role (role name,
    defaults to "inventory").

    Failures (as Result.failure):
        ValidationError / PasswordValidationError: bad email or weak password
        NotFound: role name has no roles row
        ConflictError: email or username already taken
    """
    profile = profile or {}
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")

    username = (profile.get("username") or email.split("@", 1)[0]).strip()
    role_name = profile.get("role") or "inventory"

    role = db.session.query(Role).filter_by(role_name=role_name).first()
    if role is None:
        raise NotFound("Role", role_name)

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        first_name=profile.get("first_name"),
        last_name=profile.get("last_name"),
        phone=profile.get("phone"),
        role_id=role.id,
        is_active=True,
        created_at=utcnow(),
    )
    db.session.add(user)
    db.session.commit()
    return user.id


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate with email (or username) and password.

    Returns the active User when credentials are valid, None otherwise.
    Updates last_login_at on success.
    """
    identifier = (email or "").strip()
    user = db.session.query(User).filter(
        db.or_(User.email == identifier.lower(), User.username == identifier),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def create_default_roles() -> int:
    """Create standard roles if they don't exist. Returns the number created."""
    created = 0
    for name, desc in DEFAULT_ROLES:
        existing = db.session.query(Role).filter_by(role_name=name).first()
        if not existing:
            db.session.add(Role(role_name=name, description=desc))
            created += 1

    db.session.commit()
    return created


@service_boundary
def list_users(include_inactive: bool = True) -> list[User]:
    """All accounts ordered by username, optionally only the active ones."""
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username.asc()).all()


@service_boundary
def set_user_active(user_id: int, active: bool, acting_user_id: int | None = None) -> tuple[User, int]:
    """
    Activate or deactivate an account.

    Deactivation revokes every live session of the user, so the account is
    logged out immediately. Returns (user, sessions_revoked).

    Failures (as Result.failure):
        NotFound: no such user
        ValidationError: already in the requested state, or an account
            trying to deactivate itself
    """
    if not isinstance(active, bool):
        raise ValidationError("is_active must be a boolean")

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User", user_id)

    if user.is_active == active:
        state = "active" if active else "deactivated"
        raise ValidationError(f"User is already {state}")

    if not active and acting_user_id is not None and user.id == acting_user_id:
        raise ValidationError("Cannot deactivate your own account")

    user.is_active = active
    revoked = 0
    if active:
        db.session.commit()
    else:
        # Commits the flag together with the revocations
        revoked = session_service.revoke_all_user_sessions(
            user.id, reason="Account deactivated by admin"
        )

    current_app.logger.info(
        "User %s %s; %d sessions revoked",
        user.username, "reactivated" if active else "deactivated", revoked,
    )
    return user, revoked
