"""
Caller identity.

Authentication happens upstream: the gateway verifies the session and forwards
the caller as X-Caller-Id / X-Caller-Role headers. The id is the caller's
profile id for their role (patient id, doctor id or administrator id).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException

from .models import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT


def get_current_caller(
    x_caller_id: Optional[str] = Header(None),
    x_caller_role: Optional[str] = Header(None),
) -> Caller:
    """Build the Caller forwarded by the gateway, or fail with 401"""
    if not x_caller_id or not x_caller_role:
        logger.warning("❌ Request without caller identity headers")
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        caller_id = int(x_caller_id)
        role = Role(x_caller_role.strip().lower())
    except ValueError:
        logger.warning(f"❌ Invalid caller identity: id={x_caller_id!r} role={x_caller_role!r}")
        raise HTTPException(status_code=401, detail="Invalid caller identity")

    return Caller(id=caller_id, role=role)


def require_role(*roles: Role):
    """
    Dependency factory restricting a route to some roles.

    Role policy belongs to the gateway; this only keeps a doctor-only route
    from being handed an id that means something else for another role.
    """

    def dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in roles:
            raise HTTPException(status_code=403, detail="Not allowed for this role")
        return caller

    return dependency
