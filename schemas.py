"""
Database Schemas for the Inventory Admin API

Each Pydantic model represents a MongoDB collection. Collection name is the lowercase of the class name.
"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, EmailStr
from datetime import datetime

Role = Literal["admin", "staff"]
ProductStatus = Literal["active", "inactive", "draft"]
OrderStatus = Literal["pending", "shipped", "delivered", "canceled"]


# Users collection
class User(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password_hash: str = Field(..., min_length=10)
    role: Role = "staff"
    is_active: bool = True
    last_login: Optional[datetime] = None


# Supplier is embedded in a product, not a collection of its own
class Supplier(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


# Products collection
class Product(BaseModel):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    stock: int = Field(..., ge=0)
    min_stock: int = Field(0, ge=0)
    category: Optional[str] = None
    price: float = Field(..., ge=0)
    discount: float = Field(0, ge=0, le=100, description="Percent off the list price")
    files: List[str] = Field(default_factory=list)
    status: ProductStatus = "draft"
    tags: List[str] = Field(default_factory=list)
    supplier: Optional[Supplier] = None
    created_by: str
    updated_by: str


# Orders collection
class CustomerInfo(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class OrderItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(0, ge=0, description="Unit price after discount")


class Order(BaseModel):
    user_id: Optional[str] = None
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    items: List[OrderItem] = Field(default_factory=list)
    status: OrderStatus = "pending"
    total_price: Optional[float] = Field(None, ge=0)
    order_id: Optional[str] = None


# Login sessions, keyed by refresh token
class Session(BaseModel):
    user_id: str
    refresh_token: str
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    location: Optional[str] = None
    access_token: Optional[str] = None
    expires_at: datetime
    is_active: bool = True


# Forgot-password tokens
class PasswordReset(BaseModel):
    user_id: str
    token: str
    expires_at: datetime
    used: bool = False
