from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from typing import Optional

from .security import decode_identity_token
from .core.exception import AuthenticationException

bearer_scheme = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    """The caller, as vouched for by the auth provider."""
    uid: str
    email: Optional[str] = None


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Dependency to get the authenticated identity.

    Example:
        @router.post("/protected")
        async def protected_route(identity: Identity = Depends(get_current_identity)):
            return {"uid": identity.uid}
    """
    if credentials is None:
        raise AuthenticationException("Unauthorized")

    payload = decode_identity_token(credentials.credentials)
    if payload is None:
        raise AuthenticationException("Your login session has expired. Please log in again.")

    uid = payload.get("sub")
    if not uid or not isinstance(uid, str):
        raise AuthenticationException("Invalid token format")

    return Identity(uid=uid, email=payload.get("email"))
