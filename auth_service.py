"""
Registration and login.

Passwords are hashed before they reach storage and never leave the
service; login issues a signed token carrying ``{id, email, fullName,
role}``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from repositories import UserRepository
from responses import ApiError, ApiSuccess
from schemas import User, describe_errors
from security import PasswordHasher, TokenService

logger = logging.getLogger(__name__)


def validate_email(email: Any) -> str:
    if not email or not isinstance(email, str) or not email.strip():
        raise ApiError(message="No Email Provided", status_code=400, error_code="INVALID_EMAIL")
    if not email.isascii():
        raise ApiError(message="Email contains invalid characters", status_code=400, error_code="INVALID_EMAIL")
    return email.strip().lower()


class AuthService:
    def __init__(self, repository: UserRepository, hasher: PasswordHasher, token_service: TokenService):
        self.repository = repository
        self.hasher = hasher
        self.token_service = token_service

    def register(self, email: Any = None, password: Any = None, full_name: Any = None, role: Optional[str] = None) -> ApiSuccess:
        try:
            email = validate_email(email)

            if self.repository.find_by_email(email):
                raise ApiError(message="Email already exists", status_code=400, error_code="EMAIL_EXISTS")

            try:
                user = User(email=email, password=password, fullName=full_name, role=role or "user")
            except ValidationError as e:
                raise ApiError(
                    message="Invalid user data",
                    status_code=400,
                    error_code="INVALID_USER_DATA",
                    details=describe_errors(e),
                )

            now = datetime.now(timezone.utc)
            try:
                user_id = self.repository.create({
                    "email": str(user.email).lower(),
                    "password": self.hasher.hash(user.password),
                    "fullName": user.fullName,
                    "role": user.role,
                    "createdAt": now,
                    "updatedAt": now,
                })
            except DuplicateKeyError:
                # Lost a race against another registration for this email.
                raise ApiError(message="Email already exists", status_code=400, error_code="EMAIL_EXISTS")

            logger.info("User has been created successfully: %s", email)
            return ApiSuccess(
                message="User created successfully",
                status_code=201,
                data={"userId": str(user_id)},
                success_code="USER_CREATED",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error registering user")
            raise ApiError(
                message="Failed to create user",
                status_code=500,
                error_code="USER_CREATE_ERROR",
                details=str(e),
            )

    def login(self, email: Any = None, password: Any = None) -> ApiSuccess:
        try:
            user = None
            if isinstance(email, str) and email.strip():
                user = self.repository.find_by_email(email, include_password=True)
            if not user:
                raise ApiError(message="User not found", status_code=404, error_code="USER_NOT_FOUND")

            if not isinstance(password, str) or not self.hasher.verify(password, user.get("password")):
                raise ApiError(message="Invalid password", status_code=401, error_code="INVALID_PASSWORD")

            claims = {
                "id": str(user["_id"]),
                "email": user["email"],
                "fullName": user.get("fullName"),
                "role": user.get("role", "user"),
            }
            token = self.token_service.sign(claims)

            logger.info("User %s logged in", user["email"])
            return ApiSuccess(
                message="User logged in successfully",
                status_code=200,
                data={"token": token, "user": claims},
                success_code="USER_LOGIN",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error logging in user")
            raise ApiError(
                message="Failed to log in",
                status_code=500,
                error_code="LOGIN_ERROR",
                details=str(e),
            )
