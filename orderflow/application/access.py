"""Role and branch capability checks.

Run by the service before it touches the aggregate, which keeps the state
machine itself role-agnostic.
"""

from orderflow.domain.exceptions import UnauthorizedError
from orderflow.domain.value_objects import Actor, ActorRole

MANAGER_ROLES = frozenset({ActorRole.MANAGER, ActorRole.ADMIN})


def require_manager(actor: Actor, operation: str) -> None:
    """Allow managers (and admins) only.

    Raises:
        UnauthorizedError: For any other role.
    """
    if actor.role not in MANAGER_ROLES:
        raise UnauthorizedError(actor.user_id, operation, "manager role required")


def require_branch_user(actor: Actor, branch_id: str, operation: str) -> None:
    """Allow branch users of ``branch_id`` only.

    Raises:
        UnauthorizedError: For other roles or other branches.
    """
    if actor.role != ActorRole.BRANCH_USER:
        raise UnauthorizedError(actor.user_id, operation, "branch user role required")
    if actor.branch_id != branch_id:
        raise UnauthorizedError(actor.user_id, operation, f"not a member of branch {branch_id}")


def require_sweep_trigger(actor: Actor) -> None:
    """Allow the scheduler, managers and admins to run the auto-close sweep."""
    if actor.role != ActorRole.SYSTEM and actor.role not in MANAGER_ROLES:
        raise UnauthorizedError(actor.user_id, "run the auto-close sweep", "manager role required")


def can_view(actor: Actor, branch_id: str) -> bool:
    """Managers see every order; branch users see their own branch's."""
    if actor.role in MANAGER_ROLES or actor.role == ActorRole.SYSTEM:
        return True
    return actor.role == ActorRole.BRANCH_USER and actor.branch_id == branch_id
