from typing import Iterable

ADMIN = "admin"
MANAGER = "manager"
CLIENT = "client"
TEAM_MEMBER = "team_member"

ROLES = (ADMIN, MANAGER, CLIENT, TEAM_MEMBER)

PROJECT_EDITORS = (ADMIN, MANAGER)
PROJECT_DELETERS = (ADMIN,)


def authorize(user, allowed_roles: Iterable[str]) -> bool:
    """Pure role gate: True when the user's role is one of ``allowed_roles``."""
    if user is None:
        return False
    return user.role in tuple(allowed_roles)
