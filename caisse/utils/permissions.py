from caisse.models.user import UserRole

WRITE_DENIED_MESSAGE = "Permission refusée. Rôle admin ou instructeur requis."
ADMIN_DENIED_MESSAGE = "Permission refusée. Rôle admin requis."
DELETE_DENIED_MESSAGE = "Permission refusée. Seul un admin peut supprimer."


def _as_role(role: UserRole | str) -> UserRole:
    return role if isinstance(role, UserRole) else UserRole(role)


def can_write(role: UserRole | str) -> bool:
    """Create and edit transactions, rubrics, services and programmations."""
    return _as_role(role) in (UserRole.ADMIN, UserRole.INSTRUCTEUR)


def can_delete(role: UserRole | str) -> bool:
    """Delete transactions and programmation lines."""
    return _as_role(role) is UserRole.ADMIN


def can_admin(role: UserRole | str) -> bool:
    """Manage users and read the security dashboard."""
    return _as_role(role) is UserRole.ADMIN
