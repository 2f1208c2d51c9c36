"""
Shared FastAPI dependencies.
"""

import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from ..models import Actor, UserRole

logger = logging.getLogger(__name__)


def get_current_actor(
    x_user_id: Annotated[str | None, Header(description="Authenticated user ID")] = None,
    x_user_role: Annotated[str | None, Header(description="USER or ADMIN")] = None,
) -> Actor | None:
    """
    Resolve the acting user from headers set by the authenticating proxy.

    Returns None when no user is present; the workflow decides whether that
    is acceptable.
    """
    if not x_user_id:
        return None

    role = UserRole.USER
    if x_user_role:
        try:
            role = UserRole(x_user_role.upper())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown role: {x_user_role}",
            )

    return Actor(user_id=x_user_id, role=role)
