# storefront/schemas.py
"""
Request bodies. Wire names are camelCase; attributes are snake_case.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CamelIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------- auth ----------
class RegisterIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class VerifyOtpIn(BaseModel):
    email: EmailStr
    otp: str

class ResendOtpIn(BaseModel):
    email: EmailStr

class ForgotPasswordIn(BaseModel):
    email: Optional[str] = None

class ResetPasswordIn(BaseModel):
    password: Optional[str] = None

class RefreshTokenIn(BaseModel):
    token: Optional[str] = None

class LogoutIn(CamelIn):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

class UpdateProfileIn(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=72)


# ---------- catalog ----------
class CategoryIn(BaseModel):
    name: Optional[str] = None


# ---------- cart ----------
class CartAddIn(CamelIn):
    product_id: str = Field(alias="productId")
    quantity: int = 1

class CartUpdateIn(CamelIn):
    item_id: str = Field(alias="itemId")
    quantity: int


# ---------- orders ----------
class OrderLineIn(CamelIn):
    product_id: str = Field(alias="productId")
    quantity: int

class OrderCreateIn(CamelIn):
    items: List[OrderLineIn] = Field(default_factory=list)
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")
    phone: Optional[str] = None

    def shipping(self) -> dict:
        return self.model_dump(exclude={"items"})

class OrderStatusIn(BaseModel):
    status: str
