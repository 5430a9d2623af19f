"""
Role definitions and role checks.

WHY: Order ownership and destructive actions hinge on three fixed roles.
Route decorators and services share these helpers so the rules live in
one place.

ROLES:
- Super Admin: everything, including user/product management and bulk deletes
- Admin: elevated order operations (status, export/dispatch, delete)
- Agent: own orders and edit requests
"""

from __future__ import annotations

from .errors import ForbiddenError


ROLE_SUPER_ADMIN = "Super Admin"
ROLE_ADMIN = "Admin"
ROLE_AGENT = "Agent"

ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_AGENT)
ELEVATED_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})


def is_elevated(user) -> bool:
    return user is not None and user.role in ELEVATED_ROLES


def is_super_admin(user) -> bool:
    return user is not None and user.role == ROLE_SUPER_ADMIN


def require_elevated(user, message: str = "Not authorized. Admin or Super Admin only.") -> None:
    if not is_elevated(user):
        raise ForbiddenError(message)


def require_super_admin(user, message: str = "Not authorized. Super Admin only.") -> None:
    if not is_super_admin(user):
        raise ForbiddenError(message)
