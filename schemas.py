"""
Request validation and response shapes.

Input models validate raw request payloads (JSON bodies or multipart forms)
before anything touches the database. Output models turn stored rows into the
camelCase JSON documents the API returns.
"""
import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SUPER_ADMIN = "Super Admin"
ADMIN = "Admin"
CUSTOMER = "customer"
ADMIN_ROLES = (SUPER_ADMIN, ADMIN)

LOW_STOCK_THRESHOLD = 10

PENDING = "Pending"
PROCESSING = "Processing"
OUT_FOR_DELIVERY = "Out for Delivery"
DELIVERED = "Delivered"
CANCELLED = "Cancelled"
ORDER_STATUSES = (PENDING, PROCESSING, OUT_FOR_DELIVERY, DELIVERED, CANCELLED)
# orders in these states can no longer be cancelled
NON_CANCELLABLE = (DELIVERED, OUT_FOR_DELIVERY, CANCELLED)

PAYMENT_METHODS = ("Credit Card", "Cash on Delivery")


class Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Document(Payload):
    id: int

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# -------------------------------------------------------------------
# Accounts
# -------------------------------------------------------------------

class AdminRegister(Payload):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    name: Optional[str] = None
    phone: Optional[str] = None


class CustomerRegister(Payload):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = ""
    password: str = Field(..., min_length=1)


class LoginRequest(Payload):
    email: str
    password: str


class ProfileUpdate(Payload):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class AdminOut(Document):
    name: str
    email: str
    phone: str
    role: str


class CustomerOut(Document):
    name: str
    email: str
    phone: str


# -------------------------------------------------------------------
# Medicines
# -------------------------------------------------------------------

class MedicineCreate(Payload):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    manufacturer: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(0, ge=0)
    expiry: date
    description: str = ""
    prescription_required: bool = False


class MedicineUpdate(Payload):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    manufacturer: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    expiry: Optional[date] = None
    description: Optional[str] = None
    prescription_required: Optional[bool] = None


class MedicineOut(Document):
    name: str
    category: str
    manufacturer: str
    price: float
    quantity: int
    expiry: date
    description: str
    image: str
    prescription_required: bool
    created_at: datetime
    updated_at: datetime


# -------------------------------------------------------------------
# Orders
# -------------------------------------------------------------------

class OrderItem(Payload):
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    medicine_id: Optional[int] = None


class OrderCreate(Payload):
    customer: str = Field(..., min_length=1)
    items: List[OrderItem] = Field(default_factory=list)
    total: float = Field(..., ge=0)
    address: str = Field(..., min_length=1)
    payment_method: str

    @field_validator("items", mode="before")
    @classmethod
    def parse_serialized_items(cls, v):
        # multipart forms carry the item list as a JSON string
        if isinstance(v, (str, bytes)):
            try:
                return json.loads(v)
            except ValueError:
                raise ValueError("items must be a JSON list")
        return v

    @field_validator("payment_method")
    @classmethod
    def known_payment_method(cls, v: str) -> str:
        if v not in PAYMENT_METHODS:
            raise ValueError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")
        return v


class OrderUpdate(Payload):
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def known_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ORDER_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        return v


class OrderOut(Document):
    customer: str
    items: List[OrderItem]
    total: float
    status: str
    notes: str
    date: datetime
    address: str
    payment_method: str
    prescription_image: Optional[str] = None
    created_at: datetime
    updated_at: datetime
