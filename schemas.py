"""
Database Schemas for the Robe store

Each Pydantic model either validates a request body or describes a document
stored in MongoDB. Stored field names are camelCase, Python attributes are
snake_case with camelCase aliases.

Collections: products, orders, users, coupons, couponCodes, slides
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # MongoDB hands back naive UTC datetimes; store everything the same way
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Products (free-form, any extra attribute is stored as sent)
class Product(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Any = None
    description: Any = None
    price: Any = None
    category: Any = None
    images: Any = None


# Orders
class Order(CamelModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    customer: Union[Dict[str, Any], str] = Field(..., description="Purchaser snapshot or reference")
    items: List[Dict[str, Any]] = Field(..., min_length=1, description="Line items")
    coupon_applied: Optional[str] = Field(None, alias="couponApplied")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @field_validator("customer")
    @classmethod
    def customer_not_empty(cls, v):
        if not v:
            raise ValueError("customer is required")
        return v

    @field_validator("coupon_applied")
    @classmethod
    def strip_coupon(cls, v):
        if v is not None:
            v = v.strip() or None
        return v

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v):
        return _naive_utc(v)

    def customer_email(self) -> Optional[str]:
        if isinstance(self.customer, dict):
            return self.customer.get("email")
        return None


# Users
class UserLogin(CamelModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    email: str = Field(..., min_length=1, description="Email address, unique by convention")
    uid: str = Field(..., min_length=1, description="External identity reference")
    role: str = Field("customer", description="admin or customer, advisory only")


# Coupons
class CreateCouponRequest(CamelModel):
    code: str = Field(..., min_length=1)
    discount: Union[int, float, str] = Field(..., description="Amount or percentage, e.g. 10 or '10%'")
    user_email: Optional[str] = Field(None, alias="userEmail")
    for_all: bool = Field(False, alias="forAll")
    expiry_date: Optional[datetime] = Field(None, alias="expiryDate")
    description: Optional[str] = None

    @field_validator("code")
    @classmethod
    def strip_code(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("code is required")
        return v

    @field_validator("expiry_date")
    @classmethod
    def expiry_utc(cls, v):
        return _naive_utc(v)


class Coupon(CamelModel):
    """
    Coupons collection schema
    Collection name: "coupons"
    """
    code: str = Field(..., description="Shared by every document of a broadcast")
    discount: Union[int, float, str]
    user_email: Optional[str] = Field(None, alias="userEmail", description="Owner, absent for a global coupon")
    used: bool = Field(False, description="Flips to true exactly once")
    used_at: Optional[datetime] = Field(None, alias="usedAt")
    created_at: datetime = Field(default_factory=datetime.utcnow, alias="createdAt")
    expiry_date: Optional[datetime] = Field(None, alias="expiryDate")
    description: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class VerifyCouponRequest(CamelModel):
    code: str = Field(..., min_length=1)
    user_email: Optional[str] = Field(None, alias="userEmail")


# Slides
class Slide(BaseModel):
    image: str = Field(..., min_length=1, description="Banner image URL")
    title: Optional[str] = None
    subtitle: Optional[str] = None


class SlideUpdate(BaseModel):
    image: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = None
    subtitle: Optional[str] = None


# Upload
IMAGE_PREFIXES = ("data:", "http://", "https://")


class UploadRequest(BaseModel):
    image: Optional[str] = Field(None, description="Base64 data URI or remote URL")

    @field_validator("image")
    @classmethod
    def data_uri_or_url(cls, v):
        # anything else would be read by the SDK as a local file path
        if v and not v.strip().lower().startswith(IMAGE_PREFIXES):
            raise ValueError("image must be a data URI or an http(s) URL")
        return v
