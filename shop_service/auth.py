"""Caller identity from signed bearer tokens."""

import jwt
from fastapi import Depends, Request

from .errors import NotAuthenticatedError, NotAuthorizedError
from .schemas import Identity


class TokenVerifier:
    """Verifies identity tokens issued by the account service."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def verify(self, token: str) -> Identity:
        """Decode a token into the caller identity.

        Args:
            token: Encoded JWT with a 'sub' claim and an optional 'role' claim.

        Returns:
            Identity: The verified caller.

        Raises:
            NotAuthenticatedError: If the token is missing, expired or badly signed.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as e:
            raise NotAuthenticatedError() from e
        user_id = claims.get("sub")
        if not user_id:
            raise NotAuthenticatedError()
        role = "admin" if claims.get("role") == "admin" else "user"
        return Identity(user_id=str(user_id), role=role)


def _token_from(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get("token")


def get_identity(request: Request) -> Identity:
    """FastAPI dependency: the authenticated caller."""
    token = _token_from(request)
    if not token:
        raise NotAuthenticatedError()
    return request.app.state.verifier.verify(token)


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    """FastAPI dependency: the authenticated caller, who must be an admin."""
    if not identity.is_admin:
        raise NotAuthorizedError()
    return identity
