import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import services
from config import Settings, load_settings
from database import Store, connect
from errors import AppError
from schemas import OrderStatus, ProductStatus, Role
from security import get_current_user, get_settings, get_store, require_admin
from validation import request_validation_handler
from validators import (
    ForgotPasswordInput,
    LoginInput,
    MakeStaffInput,
    OrderInput,
    OrderStatusInput,
    ProductInput,
    ProductUpdateInput,
    RedeemResetInput,
    RefreshInput,
    RegisterInput,
    ResetPasswordInput,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def configure_logging(env: str):
    level = logging.DEBUG if env == "development" else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Auth
@router.post("/auth/sync-admin", status_code=201)
def sync_admin(payload: RegisterInput, store: Store = Depends(get_store)):
    return services.create_admin(store, payload)


@router.post("/auth/login")
def login(payload: LoginInput, request: Request, store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    ip = request.client.host if request.client else None
    return services.login(store, settings, payload, ip=ip, user_agent=request.headers.get("user-agent"))


@router.post("/auth/refresh")
def refresh(payload: RefreshInput, store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    return services.refresh(store, settings, payload.refresh_token)


@router.post("/auth/logout")
def logout(payload: RefreshInput, store: Store = Depends(get_store)):
    return {"logged_out": services.logout(store, payload.refresh_token)}


@router.post("/auth/forgot-password")
def forgot_password(payload: ForgotPasswordInput, store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    return services.forgot_password(store, settings, payload)


@router.post("/auth/reset-password")
def reset_password(payload: ResetPasswordInput, store: Store = Depends(get_store), user: dict = Depends(get_current_user)):
    return services.reset_password(store, user, payload)


@router.post("/auth/reset-password/token")
def redeem_password_reset(payload: RedeemResetInput, store: Store = Depends(get_store)):
    return services.redeem_password_reset(store, payload)


@router.post("/auth/make-staff", status_code=201, dependencies=[Depends(require_admin)])
def make_staff(payload: MakeStaffInput, store: Store = Depends(get_store)):
    return services.make_staff(store, payload)


# Users (admin)
@router.get("/users", dependencies=[Depends(require_admin)])
def list_users(page: int = 1, limit: int = 10, search: Optional[str] = None, role: Optional[Role] = None, store: Store = Depends(get_store)):
    return services.list_users(store, page, limit, search=search, role=role)


# Products
@router.get("/products", dependencies=[Depends(get_current_user)])
def list_products(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[ProductStatus] = None,
    category: Optional[str] = None,
    sort: Optional[str] = None,
    store: Store = Depends(get_store),
):
    return services.list_products(store, page, limit, search=search, status=status, category=category, sort=sort)


@router.post("/products", status_code=201)
def create_product(payload: ProductInput, store: Store = Depends(get_store), user: dict = Depends(get_current_user)):
    return services.create_product(store, payload, user)


@router.get("/products/{product_id}", dependencies=[Depends(get_current_user)])
def get_product(product_id: str, store: Store = Depends(get_store)):
    return services.get_product(store, product_id)


@router.put("/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdateInput, store: Store = Depends(get_store), user: dict = Depends(get_current_user)):
    return services.update_product(store, product_id, payload, user)


@router.delete("/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: str, store: Store = Depends(get_store)):
    return {"deleted": services.delete_product(store, product_id)}


# Orders
@router.get("/orders", dependencies=[Depends(get_current_user)])
def list_orders(page: int = 1, limit: int = 10, search: Optional[str] = None, status: Optional[OrderStatus] = None, store: Store = Depends(get_store)):
    return services.list_orders(store, page, limit, search=search, status=status)


@router.post("/orders", status_code=201)
def create_order(payload: OrderInput, store: Store = Depends(get_store), user: dict = Depends(get_current_user)):
    return services.create_order(store, payload, user)


@router.get("/orders/{order_id}", dependencies=[Depends(get_current_user)])
def get_order(order_id: str, store: Store = Depends(get_store)):
    return services.get_order(store, order_id)


@router.patch("/orders/{order_id}/status", dependencies=[Depends(get_current_user)])
def update_order_status(order_id: str, payload: OrderStatusInput, store: Store = Depends(get_store)):
    return services.update_order_status(store, order_id, payload.status)


def create_app(store: Optional[Store] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.app_env)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            app.state.store = connect(settings)
        yield

    app = FastAPI(title="Inventory Admin API", lifespan=lifespan)
    app.state.store = store
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_urls,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.app_env in ("development", "production"):
        access_log = logging.getLogger("access")

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            started = time.perf_counter()
            response = await call_next(request)
            elapsed = (time.perf_counter() - started) * 1000
            if settings.app_env == "development":
                access_log.info("%s %s %s %.1f ms", request.method, request.url.path, response.status_code, elapsed)
            else:
                client = request.client.host if request.client else "-"
                access_log.info(
                    '%s "%s %s" %s %.1f ms "%s"', client, request.method, request.url.path,
                    response.status_code, elapsed, request.headers.get("user-agent", "-"),
                )
            return response

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(router, prefix="/api/v1")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
