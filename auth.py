"""
Session tokens and access control.

Routes opt into protection by depending on one of the stages below:

    require_authenticated -> Identity
    require_admin(Identity) -> AdminIdentity

require_admin takes the Identity produced by require_authenticated as its
input, so an admin check can never run on an unauthenticated request.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from database import BistroStore
from schemas import ADMIN_ROLE

logger = logging.getLogger(__name__)

TOKEN_LIFETIME = timedelta(hours=2)

# Only the signature and lifetime are checked. Registered claims a client
# puts in its payload (aud, iss, sub, jti) are carried through untouched.
VERIFY_OPTIONS = {
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


class InvalidToken(Exception):
    """Token is malformed, badly signed or expired."""


class Unauthorized(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized access")


class Forbidden(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail="FORBIDDEN user")


class TokenService:
    """Issues and verifies HS256 session tokens with a shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime: timedelta = TOKEN_LIFETIME):
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, payload: Dict[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        claims = dict(payload)
        claims["iat"] = now
        claims["exp"] = now + self.lifetime
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options=VERIFY_OPTIONS,
            )
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e)) from e


class Identity(BaseModel):
    """Decoded token of an authenticated caller."""

    email: Optional[str] = None
    claims: Dict[str, Any] = {}


class AdminIdentity(Identity):
    user_id: str


# Dependencies

def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_store(request: Request) -> BistroStore:
    return request.app.state.store


def require_authenticated(
    authentication: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Verify the `Authentication: <scheme> <token>` header."""
    if not authentication:
        raise Unauthorized()

    parts = authentication.split(" ")
    if len(parts) < 2 or not parts[1]:
        raise Unauthorized()

    try:
        claims = tokens.verify(parts[1])
    except InvalidToken as e:
        logger.warning(f"Rejected session token: {e}")
        raise Unauthorized()

    email = claims.get("email")
    return Identity(email=email if isinstance(email, str) else None, claims=claims)


def require_admin(
    identity: Identity = Depends(require_authenticated),
    store: BistroStore = Depends(get_store),
) -> AdminIdentity:
    if identity.email is None:
        raise Forbidden()

    user = store.users.find_one({"email": identity.email})
    if not user or user.get("role") != ADMIN_ROLE:
        raise Forbidden()

    return AdminIdentity(email=identity.email, claims=identity.claims, user_id=user["_id"])
