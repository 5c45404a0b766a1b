from dataclasses import dataclass, field
from typing import Optional, Set

from fastapi import Depends, Header, HTTPException, status

from coopledger.core.audit import AuditRecorder


@dataclass
class Actor:
    """Caller identity forwarded by the upstream auth gateway."""
    name: str
    roles: Set[str] = field(default_factory=set)


async def get_current_actor(
    x_actor: Optional[str] = Header(None),
    x_actor_roles: Optional[str] = Header(None)
) -> Actor:
    """Read the caller from ``X-Actor`` and ``X-Actor-Roles`` (comma-separated)."""
    if not x_actor or not x_actor.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor header"
        )
    roles = {r.strip() for r in (x_actor_roles or "").split(",") if r.strip()}
    return Actor(name=x_actor.strip(), roles=roles)


def require_role(role_name: str):
    """Dependency factory for requiring a specific role."""
    async def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if role_name not in actor.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User does not have required role: {role_name}"
            )
        return actor
    return role_checker


def require_any_role(*role_names: str):
    """Dependency factory for requiring any of the specified roles."""
    async def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.roles.intersection(role_names):
            return actor
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User does not have any of the required roles: {', '.join(role_names)}"
        )
    return role_checker


# Role-specific dependencies
require_admin = require_role("Admin")
require_treasurer = require_role("Treasurer")
require_finance = require_any_role("Treasurer", "Admin")
require_viewer = require_any_role("Treasurer", "Admin", "Chairman", "Compliance")


def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder()
