"""Request body schemas."""
from typing import Annotated, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field

from schemas import CustomerInfo, OrderStatus, ProductStatus, Supplier


def _check_email(value: str) -> str:
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError:
        raise ValueError("Invalid email address")


Email = Annotated[str, AfterValidator(_check_email)]
Password = Annotated[str, Field(min_length=8)]


# Auth
class RegisterInput(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: Email
    password: Password


class LoginInput(BaseModel):
    email: Email
    password: Password


class ForgotPasswordInput(BaseModel):
    email: Email


class ResetPasswordInput(BaseModel):
    old_password: Password
    password: Password


class RedeemResetInput(BaseModel):
    token: str = Field(..., min_length=1)
    password: Password


class MakeStaffInput(BaseModel):
    email: Email
    full_name: Optional[str] = None


class RefreshInput(BaseModel):
    refresh_token: str = Field(..., min_length=1)


# Products
class ProductInput(BaseModel):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    stock: int = Field(..., ge=0)
    min_stock: int = Field(0, ge=0)
    category: Optional[str] = None
    price: float = Field(..., ge=0)
    discount: float = Field(0, ge=0, le=100)
    files: List[str] = Field(default_factory=list)
    status: ProductStatus = "draft"
    tags: List[str] = Field(default_factory=list)
    supplier: Optional[Supplier] = None


class ProductUpdateInput(BaseModel):
    sku: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0, le=100)
    files: Optional[List[str]] = None
    status: Optional[ProductStatus] = None
    tags: Optional[List[str]] = None
    supplier: Optional[Supplier] = None


# Orders
class OrderItemInput(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    price: Optional[float] = Field(None, ge=0)


class OrderInput(BaseModel):
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    items: List[OrderItemInput] = Field(..., min_length=1)
    status: OrderStatus = "pending"
    total_price: Optional[float] = Field(None, ge=0)
    order_id: Optional[str] = None


class OrderStatusInput(BaseModel):
    status: OrderStatus
