# api/permissions.py
"""
Static role -> permission table.

Permissions ending in ``:self`` apply only when the caller is the user named
in the path; the ``:any`` variant covers every user.
"""
from typing import Dict, FrozenSet, List, Tuple

from api.schemas.users import UserRole

MOODS_READ_SELF = "moods:read:self"
MOODS_READ_ANY = "moods:read:any"
MOODS_WRITE_SELF = "moods:write:self"
MOODS_WRITE_ANY = "moods:write:any"
REPORTS_VIEW_SELF = "reports:view:self"
REPORTS_VIEW_ANY = "reports:view:any"
REPORTS_GENERATE = "reports:generate"

_USER = [MOODS_READ_SELF, MOODS_WRITE_SELF, REPORTS_VIEW_SELF]
_STAFF = _USER + [MOODS_READ_ANY, REPORTS_VIEW_ANY, REPORTS_GENERATE]
_ADMIN = _STAFF + [MOODS_WRITE_ANY]

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[str]] = {
    UserRole.USER: frozenset(_USER),
    UserRole.STAFF: frozenset(_STAFF),
    UserRole.ADMIN: frozenset(_ADMIN),
}


def permissions_for(role: UserRole) -> List[str]:
    return sorted(ROLE_PERMISSIONS.get(role, frozenset()))


def scoped_permissions(base: str) -> Tuple[str, str]:
    """``"moods:read"`` -> (``moods:read:self``, ``moods:read:any``)."""
    return f"{base}:self", f"{base}:any"
