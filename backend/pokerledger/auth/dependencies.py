"""FastAPI dependency-injection callables for caller identity.

Identity headers are set by the fronting identity provider; this service
does not authenticate users itself.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from pokerledger.auth.identity import Identity

logger = logging.getLogger("pokerledger.auth.dependencies")


async def get_optional_identity(
    x_user_id: Optional[str] = Header(None),
    x_display_name: Optional[str] = Header(None),
) -> Optional[Identity]:
    """Return the caller's identity if the identity headers are present."""
    if not x_user_id or not x_user_id.strip():
        return None
    display_name = (x_display_name or "").strip() or x_user_id.strip()
    return Identity(user_id=x_user_id.strip(), display_name=display_name)


async def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_display_name: Optional[str] = Header(None),
) -> Identity:
    """Require a caller identity.

    Raises:
        HTTPException 401: Missing X-User-Id header.
    """
    identity = await get_optional_identity(x_user_id, x_display_name)
    if identity is None:
        logger.warning("Request without identity headers rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return identity
