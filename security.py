"""
Password hashing, JWT issuing and request authentication.

``PasswordHasher`` wraps a passlib bcrypt context and ``TokenService``
signs and verifies HS256 tokens with python-jose.  Both are built from
``Settings`` in ``main.create_app`` and kept on ``app.state``; the
FastAPI dependencies below read them from there.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from responses import ApiError

TOKEN_COOKIE_NAME = "token"


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        if not plain_password or not hashed_password:
            return False
        try:
            return self.context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            # Unrecognised or corrupted hash.
            return False


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", expires_days: int = 7):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_delta = timedelta(days=expires_days)

    def sign(self, claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        to_encode = dict(claims)
        expire = datetime.now(timezone.utc) + (expires_delta or self.expires_delta)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ApiError(message="Token expired", status_code=401, error_code="TOKEN_EXPIRED")
        except JWTError:
            raise ApiError(message="Invalid token", status_code=401, error_code="INVALID_TOKEN")


bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """Decode the caller's token from the Authorization header or cookie."""
    token = credentials.credentials if credentials else request.cookies.get(TOKEN_COOKIE_NAME)
    if not token:
        raise ApiError(message="No token provided", status_code=401, error_code="NO_TOKEN")
    return token_service.verify(token)


def require_roles(*roles: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory allowing only callers whose ``role`` claim is in ``roles``."""

    def _role_dependency(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("role") not in roles:
            raise ApiError(
                message="Forbidden: You do not have permission",
                status_code=403,
                error_code="FORBIDDEN",
            )
        return current_user

    return _role_dependency
