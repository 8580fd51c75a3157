from unittest.mock import Mock

import pytest
from pymongo.errors import DuplicateKeyError

from auth_service import AuthService, validate_email
from repositories import UserRepository
from responses import ApiError


def register(service, email="jane@shop.io", password="secret123", full_name="Jane Doe", role=None):
    return service.register(email=email, password=password, full_name=full_name, role=role)


def test_register_creates_user(auth_service, user_repository):
    result = register(auth_service, email="  Jane@Shop.io ")
    assert result.status_code == 201
    assert result.success_code == "USER_CREATED"
    assert set(result.data) == {"userId"}

    stored = user_repository.find_by_email("jane@shop.io", include_password=True)
    assert stored["email"] == "jane@shop.io"
    assert stored["role"] == "user"
    assert stored["fullName"] == "Jane Doe"
    assert stored["password"] != "secret123"
    assert str(stored["_id"]) == result.data["userId"]


def test_default_lookup_hides_password(auth_service, user_repository):
    register(auth_service)
    assert "password" not in user_repository.find_by_email("jane@shop.io")


def test_register_admin_role(auth_service, user_repository):
    register(auth_service, role="admin")
    assert user_repository.find_by_email("jane@shop.io")["role"] == "admin"


def test_register_twice_is_rejected_case_insensitively(auth_service):
    register(auth_service, email="jane@shop.io")
    with pytest.raises(ApiError) as exc:
        register(auth_service, email="JANE@SHOP.IO")
    assert exc.value.error_code == "EMAIL_EXISTS"
    assert exc.value.status_code == 400


@pytest.mark.parametrize("email", [None, "", "   ", "jané@shop.io"])
def test_register_rejects_bad_email(auth_service, email):
    with pytest.raises(ApiError) as exc:
        register(auth_service, email=email)
    assert exc.value.error_code == "INVALID_EMAIL"


@pytest.mark.parametrize("overrides", [
    {"email": "not-an-email"},
    {"password": "12345"},
    {"password": None},
    {"full_name": "Jo"},
    {"full_name": "x" * 51},
    {"role": "superuser"},
])
def test_register_rejects_invalid_user_data(auth_service, overrides):
    with pytest.raises(ApiError) as exc:
        register(auth_service, **overrides)
    assert exc.value.error_code == "INVALID_USER_DATA"
    assert exc.value.status_code == 400


def test_register_race_on_unique_index(hasher, token_service):
    repository = Mock(spec=UserRepository)
    repository.find_by_email.return_value = None
    repository.create.side_effect = DuplicateKeyError("dup email", code=11000)
    with pytest.raises(ApiError) as exc:
        register(AuthService(repository, hasher, token_service))
    assert exc.value.error_code == "EMAIL_EXISTS"


def test_register_wraps_storage_failure(hasher, token_service):
    repository = Mock(spec=UserRepository)
    repository.find_by_email.side_effect = RuntimeError("no primary")
    with pytest.raises(ApiError) as exc:
        register(AuthService(repository, hasher, token_service))
    assert exc.value.error_code == "USER_CREATE_ERROR"
    assert exc.value.status_code == 500


def test_login_returns_token_with_user_claims(auth_service, user_repository, token_service):
    user_id = register(auth_service).data["userId"]
    result = auth_service.login(email="JANE@shop.io", password="secret123")

    assert result.success_code == "USER_LOGIN"
    assert result.status_code == 200
    expected = {"id": user_id, "email": "jane@shop.io", "fullName": "Jane Doe", "role": "user"}
    assert result.data["user"] == expected

    claims = token_service.verify(result.data["token"])
    assert {key: claims[key] for key in expected} == expected


def test_login_wrong_password(auth_service):
    register(auth_service)
    with pytest.raises(ApiError) as exc:
        auth_service.login(email="jane@shop.io", password="nope-nope")
    assert exc.value.error_code == "INVALID_PASSWORD"
    assert exc.value.status_code == 401


@pytest.mark.parametrize("email", ["ghost@shop.io", "", None])
def test_login_unknown_user(auth_service, email):
    with pytest.raises(ApiError) as exc:
        auth_service.login(email=email, password="secret123")
    assert exc.value.error_code == "USER_NOT_FOUND"
    assert exc.value.status_code == 404


def test_login_wraps_storage_failure(hasher, token_service):
    repository = Mock(spec=UserRepository)
    repository.find_by_email.side_effect = RuntimeError("socket closed")
    with pytest.raises(ApiError) as exc:
        AuthService(repository, hasher, token_service).login(email="jane@shop.io", password="secret123")
    assert exc.value.error_code == "LOGIN_ERROR"


def test_validate_email_normalises():
    assert validate_email(" Jane@Shop.IO ") == "jane@shop.io"
