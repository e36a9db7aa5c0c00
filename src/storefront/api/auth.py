"""Bearer-token principal resolution.

Tokens are HS256 JWTs carrying ``sub`` (the user id), ``email`` and an
optional ``roles`` list. A user is an admin when ``admin`` is among their
roles or their email is on the configured admin allowlist.
"""

from datetime import UTC, datetime, timedelta

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from pydantic import BaseModel

from storefront.config import get_settings


class Principal(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    roles: list[str] = []

    @property
    def is_admin(self) -> bool:
        if "admin" in self.roles:
            return True
        return bool(self.email) and self.email.lower() in get_settings().admin_emails


def create_token(user_id: str, email: str | None = None, roles=None, name: str | None = None, expires_minutes: int = 60 * 24) -> str:
    """Issue a signed token for ``user_id``. Used by tests and local tooling."""
    settings = get_settings()
    claims = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "roles": list(roles or []),
        "exp": datetime.now(UTC) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Not authorized, no token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return token.strip()


def get_current_user(authorization: str | None = Header(None)) -> Principal:
    token = _bearer_token(authorization)
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Not authorized, token failed") from None

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    return Principal(
        id=str(payload["sub"]),
        email=payload.get("email"),
        name=payload.get("name"),
        roles=payload.get("roles") or [],
    )


def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized as admin")
    return user
