# ordertrack/main.py
from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, FastAPI, Header, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__, responses
from .accounts import AccountService
from .auth import decode_token
from .config import Settings, configure_logging
from .db import create_db_engine, create_session_factory, get_db, init_db
from .directory import UserDirectory
from .emailer import Outbox
from .errors import NotFoundError, OrderTrackError, UnauthorizedError
from .notifications import EmailOrderNotifier, OrderNotifier
from .ordering.service import OrderService
from .policy import Operation, require
from .records import Claims
from .repositories import SqlOrderRepository, SqlUserRepository
from .schemas import (
    AuthOut,
    CreateOrderIn,
    LoginIn,
    OrderOut,
    OrderPage,
    Pagination,
    RegisterIn,
    StatusUpdateIn,
    UserOut,
    UserPage,
    UserUpdateIn,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# keeps the offset inside what the database can bind
MAX_PAGE = 1_000_000

router = APIRouter()


# -------------------
# Dependencies
# -------------------
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_notifier(request: Request) -> OrderNotifier:
    return request.app.state.notifier


def get_accounts(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> AccountService:
    return AccountService(SqlUserRepository(db), settings)


def get_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(SqlUserRepository(db))


def get_order_service(
    db: Session = Depends(get_db),
    notifier: OrderNotifier = Depends(get_notifier),
) -> OrderService:
    return OrderService(SqlOrderRepository(db), SqlUserRepository(db), notifier)


def require_claims(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Claims:
    if not authorization:
        raise UnauthorizedError("No token provided")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Invalid token format")

    claims = decode_token(token, settings)
    if not claims:
        raise UnauthorizedError("Invalid or expired token")
    return claims


# -------------------
# Helpers
# -------------------
def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value > 0 else default


def _page_params(page: Optional[str], limit: Optional[str]) -> Tuple[int, int, int]:
    p = min(_positive_int(page, DEFAULT_PAGE), MAX_PAGE)
    lim = min(_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT)
    return p, lim, (p - 1) * lim


def _pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit) if total else 0)


# -------------------
# Health
# -------------------
@router.get("/")
def root():
    return {"ok": True, "service": "ordertrack-api"}


# -------------------
# Auth
# -------------------
@router.post("/auth/register")
def register(payload: RegisterIn, accounts: AccountService = Depends(get_accounts)):
    result = accounts.register(payload.name, payload.email, payload.password)
    return responses.created(AuthOut.model_validate(result), "User registered successfully")


@router.post("/auth/login")
def login(payload: LoginIn, accounts: AccountService = Depends(get_accounts)):
    result = accounts.login(payload.email, payload.password)
    return responses.success(AuthOut.model_validate(result), "Login successful")


@router.get("/auth/me")
def me(claims: Claims = Depends(require_claims), accounts: AccountService = Depends(get_accounts)):
    user = accounts.me(claims)
    return responses.success(UserOut.model_validate(user), "User fetched successfully")


# -------------------
# Orders
# -------------------
@router.post("/orders")
def create_order(
    payload: CreateOrderIn,
    claims: Claims = Depends(require_claims),
    orders: OrderService = Depends(get_order_service),
):
    require(claims, Operation.CREATE_ORDER)
    order = orders.create_order(
        user_id=claims.user_id,
        items=payload.items or [],
        shipping_address=payload.shipping_address,
        notes=payload.notes,
    )
    return responses.created(OrderOut.model_validate(order), "Order created successfully")


@router.get("/orders/my-orders")
def my_orders(claims: Claims = Depends(require_claims), orders: OrderService = Depends(get_order_service)):
    require(claims, Operation.VIEW_OWN_ORDERS)
    found = orders.get_user_orders(claims.user_id)
    return responses.success([OrderOut.model_validate(o) for o in found], "Orders fetched successfully")


@router.get("/orders")
def all_orders(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    claims: Claims = Depends(require_claims),
    orders: OrderService = Depends(get_order_service),
):
    require(claims, Operation.LIST_ALL_ORDERS)
    p, lim, offset = _page_params(page, limit)
    found, total = orders.get_all_orders(lim, offset)
    data = OrderPage(orders=[OrderOut.model_validate(o) for o in found], pagination=_pagination(total, p, lim))
    return responses.success(data, "Orders fetched successfully")


@router.get("/orders/{order_id}")
def get_order(
    order_id: int = Path(gt=0),
    claims: Claims = Depends(require_claims),
    orders: OrderService = Depends(get_order_service),
):
    order = orders.get_order_by_id(order_id)
    if not order:
        raise NotFoundError("Order")
    require(claims, Operation.VIEW_ORDER, resource_owner_id=order.user_id)
    return responses.success(OrderOut.model_validate(order), "Order fetched successfully")


@router.patch("/orders/{order_id}/status")
def update_order_status(
    payload: StatusUpdateIn,
    order_id: int = Path(gt=0),
    claims: Claims = Depends(require_claims),
    orders: OrderService = Depends(get_order_service),
):
    require(claims, Operation.UPDATE_ORDER_STATUS)
    order = orders.update_order_status(order_id, payload.status, payload.notes)
    return responses.success(OrderOut.model_validate(order), "Order status updated successfully")


@router.delete("/orders/{order_id}")
def delete_order(
    order_id: int = Path(gt=0),
    claims: Claims = Depends(require_claims),
    orders: OrderService = Depends(get_order_service),
):
    require(claims, Operation.DELETE_ORDER)
    orders.delete_order(order_id)
    return responses.deleted("Order deleted successfully")


# -------------------
# Users
# -------------------
@router.get("/users")
def all_users(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    claims: Claims = Depends(require_claims),
    directory: UserDirectory = Depends(get_directory),
):
    require(claims, Operation.LIST_USERS)
    p, lim, offset = _page_params(page, limit)
    found, total = directory.get_all_users(lim, offset)
    data = UserPage(users=[UserOut.model_validate(u) for u in found], pagination=_pagination(total, p, lim))
    return responses.success(data, "Users fetched successfully")


@router.get("/users/role")
def users_by_role(
    role: Optional[str] = Query(default=None),
    claims: Claims = Depends(require_claims),
    directory: UserDirectory = Depends(get_directory),
):
    require(claims, Operation.FILTER_USERS_BY_ROLE)
    found = directory.get_users_by_role(role)
    return responses.success([UserOut.model_validate(u) for u in found], "Users fetched successfully")


@router.get("/users/search")
def search_users(
    q: Optional[str] = Query(default=None),
    claims: Claims = Depends(require_claims),
    directory: UserDirectory = Depends(get_directory),
):
    require(claims, Operation.SEARCH_USERS)
    found = directory.search_users(q)
    return responses.success([UserOut.model_validate(u) for u in found], "Users fetched successfully")


@router.get("/users/{user_id}")
def get_user(
    user_id: int = Path(gt=0),
    claims: Claims = Depends(require_claims),
    directory: UserDirectory = Depends(get_directory),
):
    require(claims, Operation.VIEW_USER, resource_owner_id=user_id)
    user = directory.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User")
    return responses.success(UserOut.model_validate(user), "User fetched successfully")


@router.patch("/users/{user_id}")
def update_user(
    payload: UserUpdateIn,
    user_id: int = Path(gt=0),
    claims: Claims = Depends(require_claims),
    directory: UserDirectory = Depends(get_directory),
):
    require(claims, Operation.UPDATE_USER, resource_owner_id=user_id)
    if payload.role is not None:
        require(claims, Operation.ASSIGN_ROLE)
    user = directory.update_user(user_id, name=payload.name, email=payload.email, role=payload.role)
    return responses.success(UserOut.model_validate(user), "User updated successfully")


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int = Path(gt=0),
    claims: Claims = Depends(require_claims),
    directory: UserDirectory = Depends(get_directory),
):
    require(claims, Operation.DELETE_USER, resource_owner_id=user_id)
    directory.delete_user(user_id)
    return responses.deleted("User deleted successfully")


# -------------------
# Error handling
# -------------------
_HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


async def app_error_handler(request: Request, exc: OrderTrackError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return responses.error(exc.message, exc.status_code, exc.error_code, exc.errors, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        errors.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return responses.error("Validation failed!", 400, "VALIDATION_ERROR", errors)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = _HTTP_ERROR_CODES.get(exc.status_code, "ERROR")
    return responses.error(str(exc.detail), exc.status_code, code, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc!s}", exc_info=exc)
    settings: Settings = request.app.state.settings
    message = "Internal server error" if settings.is_production else f"Internal server error: {exc!s}"
    return responses.error(message, 500, "INTERNAL_SERVER_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderTrackError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


# -------------------
# App
# -------------------
def create_app(settings: Settings | None = None, notifier: OrderNotifier | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    outbox = Outbox(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        outbox.start()
        logger.info(f"ordertrack {__version__} started ({settings.environment})")
        try:
            yield
        finally:
            outbox.stop()
            engine.dispose()

    app = FastAPI(title="Order Tracking API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.outbox = outbox
    app.state.notifier = notifier or EmailOrderNotifier(outbox)

    register_exception_handlers(app)
    app.include_router(router)
    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run("ordertrack.main:create_app", factory=True, host=settings.host, port=settings.port)
