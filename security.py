import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext

from config import Settings
from database import Store, now
from errors import Forbidden, Unauthorized

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
auth_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def new_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def create_access_token(settings: Settings, data: dict, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else settings.token_expire_min
    to_encode.update({"exp": now() + timedelta(minutes=minutes)})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_access_token(settings: Settings, token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except JWTError:
        raise Unauthorized("Invalid token")
    if payload.get("sub") is None:
        raise Unauthorized("Invalid token")
    return payload


# Request-scoped dependencies
def get_store(request: Request) -> Store:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict:
    if credentials is None:
        raise Unauthorized("Not authenticated")
    payload = decode_access_token(settings, credentials.credentials)
    session = store.find_by_id("session", payload.get("sid"))
    if not session or not session.get("is_active") or session.get("user_id") != payload["sub"]:
        raise Unauthorized("Session has ended")
    user = store.find_by_id("user", payload["sub"])
    if not user:
        raise Unauthorized("User not found")
    if not user.get("is_active", True):
        raise Forbidden("Account is deactivated")
    user["_id"] = str(user["_id"])
    return user


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        raise Forbidden("Admin only")
    return user
