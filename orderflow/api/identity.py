"""Caller identity.

Authentication happens upstream; the gateway forwards the verified
identity in ``X-User-Id``, ``X-User-Role`` and ``X-Branch-Id``.
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from orderflow.domain.value_objects import Actor, ActorRole


def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_branch_id: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the calling actor from identity headers.

    Raises:
        HTTPException: 401 when the identity is missing or malformed.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "UNAUTHENTICATED",
                "message": "Missing X-User-Id or X-User-Role header",
            },
        )
    try:
        role = ActorRole(x_user_role.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "UNAUTHENTICATED",
                "message": f"Unknown role: {x_user_role}",
            },
        ) from None
    return Actor(user_id=x_user_id, role=role, branch_id=x_branch_id or None)
