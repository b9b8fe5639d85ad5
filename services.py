"""
Business operations behind the HTTP routes.

Every function takes the store explicitly and raises errors from ``errors``;
translating them into HTTP responses is the app's job.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import Settings
from database import Store, now, serialize
from errors import AlreadyExists, Forbidden, NotFound, Unauthorized
from pagination import Page, Populate, paginate
from pricing import resolve_order_pricing
from schemas import Order, OrderItem, PasswordReset, Product, Session, User
from security import create_access_token, hash_password, new_token, verify_password
from validators import (
    ForgotPasswordInput,
    LoginInput,
    MakeStaffInput,
    OrderInput,
    ProductInput,
    ProductUpdateInput,
    RedeemResetInput,
    RegisterInput,
    ResetPasswordInput,
)

logger = logging.getLogger(__name__)

RESET_TOKEN_EXPIRE_MIN = 30
USER_PUBLIC_FIELDS = "-password_hash"


def public_user(doc: dict) -> dict:
    user = serialize(doc)
    user.pop("password_hash", None)
    return user


def _aware(value: datetime) -> datetime:
    # pymongo hands back naive UTC datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Auth
def create_admin(store: Store, payload: RegisterInput) -> dict:
    if store.collection("user").find_one({"role": "admin"}):
        raise AlreadyExists("Admin user already exists")
    user = User(
        full_name=payload.full_name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role="admin",
    )
    user_id = store.create_document("user", user)
    logger.info("Admin user created: %s", payload.email)
    return public_user(store.find_by_id("user", user_id))


def login(store: Store, settings: Settings, payload: LoginInput, ip: Optional[str] = None, user_agent: Optional[str] = None) -> dict:
    doc = store.collection("user").find_one({"email": payload.email})
    if not doc or not verify_password(payload.password, doc.get("password_hash", "")):
        raise Unauthorized("Invalid credentials")
    if not doc.get("is_active", True):
        raise Forbidden("Account is deactivated")

    user_id = str(doc["_id"])
    session = Session(
        user_id=user_id,
        refresh_token=new_token(),
        ip=ip,
        user_agent=user_agent,
        expires_at=now() + timedelta(days=settings.refresh_token_expire_days),
    )
    session_id = store.create_document("session", session)
    access_token = create_access_token(settings, {"sub": user_id, "sid": session_id, "role": doc.get("role")})
    store.update_by_id("session", session_id, {"access_token": access_token})
    store.update_by_id("user", user_id, {"last_login": now()})
    logger.info("User logged in: %s", payload.email)
    return {
        "access_token": access_token,
        "refresh_token": session.refresh_token,
        "token_type": "bearer",
        "user": public_user(doc),
    }


def refresh(store: Store, settings: Settings, refresh_token: str) -> dict:
    sessions = store.collection("session")
    session = sessions.find_one({"refresh_token": refresh_token, "is_active": True})
    if not session:
        raise Unauthorized("Invalid refresh token")
    if _aware(session["expires_at"]) <= now():
        store.update_by_id("session", session["_id"], {"is_active": False})
        raise Unauthorized("Session expired")
    user = store.find_by_id("user", session["user_id"])
    if not user or not user.get("is_active", True):
        raise Unauthorized("User not found")
    access_token = create_access_token(settings, {"sub": str(user["_id"]), "sid": str(session["_id"]), "role": user.get("role")})
    store.update_by_id("session", session["_id"], {"access_token": access_token})
    return {"access_token": access_token, "token_type": "bearer"}


def logout(store: Store, refresh_token: str) -> bool:
    res = store.collection("session").update_one(
        {"refresh_token": refresh_token, "is_active": True},
        {"$set": {"is_active": False, "updated_at": now()}},
    )
    return res.modified_count == 1


def forgot_password(store: Store, settings: Settings, payload: ForgotPasswordInput) -> dict:
    response = {"message": "If the account exists, a password reset has been issued"}
    user = store.collection("user").find_one({"email": payload.email, "is_active": True})
    if not user:
        return response
    reset = PasswordReset(
        user_id=str(user["_id"]),
        token=new_token(),
        expires_at=now() + timedelta(minutes=RESET_TOKEN_EXPIRE_MIN),
    )
    store.create_document("passwordreset", reset)
    logger.info("Password reset issued for %s", payload.email)
    if settings.is_development:
        response["reset_token"] = reset.token
    return response


def _set_password(store: Store, doc: dict, password: str):
    store.update_by_id("user", doc["_id"], {"password_hash": hash_password(password)})
    store.collection("session").update_many(
        {"user_id": str(doc["_id"]), "is_active": True},
        {"$set": {"is_active": False, "updated_at": now()}},
    )
    logger.info("Password changed for %s", doc["email"])


def reset_password(store: Store, user: dict, payload: ResetPasswordInput) -> dict:
    doc = store.find_by_id("user", user["_id"])
    if not doc or not verify_password(payload.old_password, doc.get("password_hash", "")):
        raise Unauthorized("Old password is incorrect")
    _set_password(store, doc, payload.password)
    return {"message": "Password updated"}


def redeem_password_reset(store: Store, payload: RedeemResetInput) -> dict:
    """Set a new password with a token issued by ``forgot_password``."""
    resets = store.collection("passwordreset")
    reset = resets.find_one({"token": payload.token, "used": False})
    if not reset or _aware(reset["expires_at"]) <= now():
        raise Unauthorized("Reset token is invalid or expired")
    doc = store.find_by_id("user", reset["user_id"])
    if not doc or not doc.get("is_active", True):
        raise Unauthorized("Reset token is invalid or expired")
    # single use: only one caller flips used to True
    claimed = resets.update_one({"_id": reset["_id"], "used": False}, {"$set": {"used": True, "updated_at": now()}})
    if claimed.modified_count != 1:
        raise Unauthorized("Reset token is invalid or expired")
    _set_password(store, doc, payload.password)
    return {"message": "Password updated"}


def make_staff(store: Store, payload: MakeStaffInput) -> dict:
    if store.collection("user").find_one({"email": payload.email}):
        raise AlreadyExists("User with this email already exists")
    temporary_password = new_token(9)
    user = User(
        full_name=payload.full_name or payload.email.split("@")[0],
        email=payload.email,
        password_hash=hash_password(temporary_password),
        role="staff",
    )
    user_id = store.create_document("user", user)
    logger.info("Staff user created: %s", payload.email)
    return {"user": public_user(store.find_by_id("user", user_id)), "temporary_password": temporary_password}


def list_users(store: Store, page: int, limit: int, search: Optional[str] = None, role: Optional[str] = None) -> Page:
    return paginate(
        store.collection("user"),
        page=page,
        limit=limit,
        filter={"role": role} if role else None,
        search=search,
        search_fields=["full_name", "email"],
        select=USER_PUBLIC_FIELDS,
    )


# Products
def create_product(store: Store, payload: ProductInput, user: dict) -> dict:
    product = Product(**payload.model_dump(), created_by=user["_id"], updated_by=user["_id"])
    product_id = store.create_document("product", product)
    return serialize(store.find_by_id("product", product_id))


def get_product(store: Store, product_id: str) -> dict:
    doc = store.find_by_id("product", product_id)
    if not doc:
        raise NotFound("Product not found")
    return serialize(doc)


def update_product(store: Store, product_id: str, payload: ProductUpdateInput, user: dict) -> dict:
    changes = {k: v for k, v in payload.model_dump().items() if v is not None}
    changes["updated_by"] = user["_id"]
    doc = store.update_by_id("product", product_id, changes)
    if not doc:
        raise NotFound("Product not found")
    return serialize(doc)


def delete_product(store: Store, product_id: str) -> bool:
    doc = store.find_by_id("product", product_id)
    if not doc:
        raise NotFound("Product not found")
    store.collection("product").delete_one({"_id": doc["_id"]})
    return True


def list_products(store: Store, page: int, limit: int, search: Optional[str] = None, status: Optional[str] = None, category: Optional[str] = None, sort: Optional[str] = None) -> Page:
    filter_q = {}
    if status:
        filter_q["status"] = status
    if category:
        filter_q["category"] = category
    return paginate(
        store.collection("product"),
        page=page,
        limit=limit,
        filter=filter_q,
        search=search,
        search_fields=["name", "sku", "category"],
        sort=sort,
        populate=[Populate("created_by", "user", USER_PUBLIC_FIELDS)],
    )


# Orders
def create_order(store: Store, payload: OrderInput, user: Optional[dict] = None) -> dict:
    order = Order(
        user_id=user["_id"] if user else None,
        customer_info=payload.customer_info,
        items=[OrderItem(**i.model_dump(exclude_none=True)) for i in payload.items],
        status=payload.status,
        total_price=payload.total_price,
        order_id=payload.order_id,
    )
    missing = resolve_order_pricing(store, order)
    order_doc_id = store.create_document("order", order)
    logger.info("Order %s created, total %.2f", order.order_id, order.total_price)
    result = serialize(store.find_by_id("order", order_doc_id))
    result["warnings"] = [f"Product {pid} not found" for pid in missing]
    return result


def _find_order(store: Store, order_id: str) -> dict:
    # accepts either the document id or the ORD-... order id
    doc = store.find_by_id("order", order_id) or store.collection("order").find_one({"order_id": order_id})
    if not doc:
        raise NotFound("Order not found")
    return doc


def get_order(store: Store, order_id: str) -> dict:
    return serialize(_find_order(store, order_id))


def update_order_status(store: Store, order_id: str, status: str) -> dict:
    doc = _find_order(store, order_id)
    return serialize(store.update_by_id("order", doc["_id"], {"status": status}))


def list_orders(store: Store, page: int, limit: int, search: Optional[str] = None, status: Optional[str] = None) -> Page:
    return paginate(
        store.collection("order"),
        page=page,
        limit=limit,
        filter={"status": status} if status else None,
        search=search,
        search_fields=["order_id", "customer_info.name"],
        populate=[Populate("user_id", "user", USER_PUBLIC_FIELDS)],
    )
