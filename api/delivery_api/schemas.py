from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    is_email_verified: bool
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True, "from_attributes": True}


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    user: UserOut
    access_token: str
    token_type: str = "bearer"


class VerifyEmailRequest(BaseModel):
    token: str = ""


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    token: str = ""
    new_password: str = ""


class PasswordChangeRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class OrderItemOut(BaseModel):
    dish_id: Optional[str] = None
    dish_name: str
    dish_description: Optional[str] = None
    dish_price: float
    dish_image: Optional[str] = None
    ingredients: list[str] = Field(default_factory=list)
    quantity: int


class OrderOut(BaseModel):
    id: str
    restaurant_name: str
    restaurant_image: Optional[str] = None
    order_date: Optional[str] = None
    total_amount: float
    status: str
    delivery_address: str
    payment_method: Optional[str] = None
    items: list[OrderItemOut] = Field(default_factory=list)


class OrderHistoryOut(BaseModel):
    orders: list[OrderOut]


class OrderStatsOut(BaseModel):
    total_orders: int
    delivered_orders: int
    pending_orders: int
    total_spent: float
    average_order_value: float
    favorite_restaurant: Optional[str] = None
