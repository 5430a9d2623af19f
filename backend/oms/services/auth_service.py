# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and user account service.

WHY: Every order is attributed to a user. Uses bcrypt for password hashing
and re-verifies the actor's own password before destructive actions.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with upper, lower, digit, and special char
- Session tokens managed separately (see session_service.py)
- A user can never delete their own account
"""

import re

import bcrypt
from sqlalchemy import or_

from ..extensions import db
from ..errors import AuthFailedError, ConflictError, InvalidInputError, NotFoundError
from ..models import User
from ..permissions import (
    ROLES,
    ROLE_ADMIN,
    ROLE_AGENT,
    require_super_admin,
    is_super_admin,
)
from oms.time_utils import utcnow


class PasswordValidationError(InvalidInputError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
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
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    malformed stored hash).
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def confirm_password(user_id: int, password: str | None, action: str = "Deletion") -> User:
    """
    Re-authenticate the acting user before a destructive action.

    The stored hash is re-read from the database rather than trusted from
    the session's user object.
    """
    if not password:
        raise InvalidInputError(f"Password is required for {action.lower()}")

    user = db.session.get(User, user_id)
    if not user or not verify_password(password, user.password_hash):
        raise AuthFailedError(f"Invalid password. {action} denied.")
    return user


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_AGENT,
    username: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    commit: bool = True,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises InvalidInputError for missing fields or an unknown role,
    PasswordValidationError for weak passwords, ConflictError when the
    email or username is already taken.
    """
    if not name or not email or not password:
        raise InvalidInputError("Please add all fields")
    if role not in ROLES:
        raise InvalidInputError(f"role must be one of: {', '.join(ROLES)}")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("User already exists")
    if username and db.session.query(User).filter_by(username=username).first():
        raise ConflictError("Username already taken")

    user = User(
        name=name,
        email=email,
        username=username or None,
        phone=phone,
        address=address,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def register_user(data: dict, actor: User) -> User:
    """Create an account on behalf of a Super Admin."""
    require_super_admin(actor, "Not authorized. Only Super Admin can create agents.")
    return create_user(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role") or ROLE_AGENT,
        username=data.get("username"),
        phone=data.get("phone"),
        address=data.get("address"),
    )


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by email or username.

    Returns the user on success, None on bad credentials or inactive account.
    """
    if not identifier or not password:
        return None

    user = (
        db.session.query(User)
        .filter(or_(User.email == identifier, User.username == identifier))
        .first()
    )
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def list_agents(actor: User) -> list[User]:
    """Agents, newest first; a Super Admin also sees Admins."""
    roles = [ROLE_AGENT]
    if is_super_admin(actor):
        roles.append(ROLE_ADMIN)
    return (
        db.session.query(User)
        .filter(User.role.in_(roles))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


def update_user(user_id: int, data: dict, actor: User) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    require_super_admin(actor, "Not authorized to update users")

    email = data.get("email")
    if email and email != user.email:
        if db.session.query(User).filter(User.email == email, User.id != user.id).first():
            raise ConflictError("User already exists")
    username = data.get("username")
    if username and username != user.username:
        if db.session.query(User).filter(User.username == username, User.id != user.id).first():
            raise ConflictError("Username already taken")

    for key in ("name", "email", "username", "phone", "address"):
        if data.get(key):
            setattr(user, key, data[key])

    if data.get("password"):
        user.password_hash = hash_password(data["password"])

    db.session.commit()
    return user


def delete_user(user_id: int, actor: User) -> None:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    require_super_admin(actor, "Not authorized to delete users")

    # Prevent deleting yourself
    if user.id == actor.id:
        raise InvalidInputError("Cannot delete yourself")

    db.session.delete(user)
    db.session.commit()
