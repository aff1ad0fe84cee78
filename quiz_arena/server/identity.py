"""Identity and role checks for API requests.

Credentials are verified upstream; the authenticating proxy forwards the
user id and role as request headers, which are trusted as-is.
"""

from __future__ import annotations

from fastapi import Header, HTTPException

from quiz_arena.constants.network_constants import ROLE_HEADER, USER_HEADER
from quiz_arena.core.models import Identity, Role


def get_identity(
    user_header: str | None = Header(default=None, alias=USER_HEADER),
    role_header: str | None = Header(default=None, alias=ROLE_HEADER),
) -> Identity:
    user_id = (user_header or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        role = Role((role_header or Role.STUDENT.value).strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Unknown role") from exc
    return Identity(user_id=user_id, role=role)


def require_admin(identity: Identity) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden: Admin access required")
    return identity


def require_superadmin(identity: Identity) -> Identity:
    if identity.role is not Role.SUPERADMIN:
        raise HTTPException(status_code=403, detail="Forbidden: Super Admin access required")
    return identity
