import mongomock
import pytest
from fastapi.testclient import TestClient

from auth_service import AuthService
from config import Settings
from database import ensure_indexes
from main import create_app
from product_service import ProductService
from repositories import ProductRepository, UserRepository
from security import PasswordHasher, TokenService
from tests.factories import bearer

TEST_SECRET = "test-secret"


@pytest.fixture
def db():
    database = mongomock.MongoClient()["test_shop"]
    ensure_indexes(database)
    return database


@pytest.fixture
def product_repository(db):
    return ProductRepository.from_database(db)


@pytest.fixture
def user_repository(db):
    return UserRepository.from_database(db)


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service():
    return TokenService(secret=TEST_SECRET)


@pytest.fixture
def product_service(product_repository):
    return ProductService(product_repository)


@pytest.fixture
def auth_service(user_repository, hasher, token_service):
    return AuthService(user_repository, hasher, token_service)


@pytest.fixture
def settings():
    return Settings(environment="development", jwt_secret=TEST_SECRET, bcrypt_rounds=4)


@pytest.fixture
def app(settings, db):
    return create_app(settings, database=db)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(token_service):
    token = token_service.sign({"id": "admin-id", "email": "admin@shop.io", "fullName": "Shop Admin", "role": "admin"})
    return bearer(token)


@pytest.fixture
def user_headers(token_service):
    token = token_service.sign({"id": "user-id", "email": "user@shop.io", "fullName": "Plain User", "role": "user"})
    return bearer(token)
