import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

from auth_service import AuthService
from config import Settings
from database import create_client, database_status, ensure_indexes, get_database
from logging_config import setup_logging
from product_service import ProductService
from repositories import ProductRepository, UserRepository
from responses import ApiError, ApiSuccess
from schemas import LoginInput, RegisterInput, describe_errors
from security import TOKEN_COOKIE_NAME, PasswordHasher, TokenService, require_roles

logger = logging.getLogger(__name__)

admin_only = Depends(require_roles("admin"))


# Utilities

def render(result: ApiSuccess) -> JSONResponse:
    content = jsonable_encoder(result.to_dict(), custom_encoder={ObjectId: str})
    return JSONResponse(status_code=result.status_code, content=content)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_product_service(request: Request) -> ProductService:
    return request.app.state.product_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API.

    ``settings`` defaults to ``Settings.from_env()``.  Passing ``database``
    skips client creation, which is how tests plug in an in-memory
    MongoDB.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    client = None
    if database is None:
        client = create_client(settings)
        database = get_database(client, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(database)
        logger.info("%s started (%s)", settings.project_name, settings.environment)
        yield
        if client is not None:
            client.close()

    app = FastAPI(title=settings.project_name, lifespan=lifespan)

    app.state.settings = settings
    app.state.db = database
    app.state.token_service = TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_days=settings.jwt_expires_days,
    )
    app.state.product_service = ProductService(
        ProductRepository.from_database(database),
        id_retries=settings.product_id_retries,
    )
    app.state.auth_service = AuthService(
        UserRepository.from_database(database),
        PasswordHasher(rounds=settings.bcrypt_rounds),
        app.state.token_service,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=3600,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("[REQUEST STARTED] %s %s", request.method, request.url.path)
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "[REQUEST ENDED] %s %s %s - %.0fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response

    register_exception_handlers(app)
    register_routes(app)
    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        logger.error("[ERROR] %s %s", exc.error_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ApiError(
            message="Malformed request",
            status_code=400,
            error_code="INVALID_REQUEST",
            details=describe_errors(exc),
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("[ERROR] Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "message": "Something went wrong! Please check logs.",
                "statusCode": 500,
                "errorCode": "INTERNAL_SERVER_ERROR",
                "details": None,
                "isOperational": False,
            },
        )


def register_routes(app: FastAPI) -> None:
    @app.get("/")
    def read_root(settings: Settings = Depends(get_settings)):
        return {"message": settings.project_name}

    # Ops-only diagnostics, hidden from the public API schema.
    @app.get("/test", tags=["ops"], include_in_schema=False)
    def test_database(request: Request):
        response = {"backend": "✅ Running"}
        response.update(database_status(request.app.state.db))
        return response

    # Products
    @app.get("/products")
    def list_products(request: Request, service: ProductService = Depends(get_product_service)):
        return render(service.list_products(request.query_params))

    @app.get("/products/{product_id}")
    def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
        return render(service.get_product(product_id))

    @app.post("/products/create", dependencies=[admin_only])
    def create_product(
        data: Optional[Dict[str, Any]] = Body(default=None),
        service: ProductService = Depends(get_product_service),
    ):
        return render(service.create_product(data))

    @app.put("/products/{product_id}", dependencies=[admin_only])
    def update_product(
        product_id: str,
        data: Optional[Dict[str, Any]] = Body(default=None),
        service: ProductService = Depends(get_product_service),
    ):
        return render(service.update_product(product_id, data))

    @app.delete("/products/{product_id}", dependencies=[admin_only])
    def delete_product(product_id: str, service: ProductService = Depends(get_product_service)):
        return render(service.delete_product(product_id))

    # Auth
    @app.post("/users/register")
    def register(payload: RegisterInput, service: AuthService = Depends(get_auth_service)):
        return render(service.register(
            email=payload.email,
            password=payload.password,
            full_name=payload.fullName,
            role=payload.role,
        ))

    @app.post("/users/login")
    def login(
        payload: LoginInput,
        service: AuthService = Depends(get_auth_service),
        settings: Settings = Depends(get_settings),
    ):
        result = service.login(email=payload.email, password=payload.password)
        response = render(result)
        response.set_cookie(
            key=TOKEN_COOKIE_NAME,
            value=result.data["token"],
            max_age=settings.token_max_age_seconds,
            httponly=True,
            secure=settings.is_production,
            samesite="none",
        )
        return response


# Serve with ``uvicorn main:create_app --factory``.
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=port)
