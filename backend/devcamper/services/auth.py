# backend/devcamper/services/auth.py
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Header

from ..errors import AuthorizationError
from ..utils.logging import api_logger

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    id: int
    role: str = "user"


def is_authorized(identity: Identity, owner_id: Any) -> bool:
    return identity.role == ADMIN_ROLE or identity.id == owner_id


def require_owner(identity: Identity, owner_id: Any, action: str) -> None:
    if not is_authorized(identity, owner_id):
        api_logger.warning("Ownership check failed", extra={
            "user_id": identity.id,
            "owner_id": owner_id,
            "action": action
        })
        raise AuthorizationError(f"User {identity.id} is not authorized to {action}", status_code=403)


async def get_identity(
        x_user_id: Optional[str] = Header(default=None),
        x_user_role: Optional[str] = Header(default=None)
) -> Identity:
    """Acting identity as forwarded by the authentication gateway"""
    if not x_user_id:
        raise AuthorizationError()
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise AuthorizationError()
    return Identity(id=user_id, role=(x_user_role or "user").lower())
