"""
Database Schemas for the Food Waste Marketplace

Each document model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., Fooditem -> "fooditem").
Request bodies accepted by the API live at the bottom of the file.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator


class UserRole(str, Enum):
    BUSINESS = "BUSINESS"
    CONSUMER = "CONSUMER"
    COURIER = "COURIER"
    ADMIN = "ADMIN"
    UNASSIGNED = "UNASSIGNED"


class FoodCategory(str, Enum):
    MEAT = "MEAT"
    DAIRY = "DAIRY"
    PRODUCE = "PRODUCE"
    BAKERY = "BAKERY"
    PREPARED = "PREPARED"
    OTHER = "OTHER"


class FoodStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    EXPIRED = "EXPIRED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    BUSINESS_CONFIRMED = "BUSINESS_CONFIRMED"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    PICKED_UP = "PICKED_UP"
    COURIER_DELIVERED = "COURIER_DELIVERED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentType(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"


class PaymentOption(str, Enum):
    CASH = "CASH"
    CARD = "CARD"


class VehicleType(str, Enum):
    BICYCLE = "BICYCLE"
    MOTORCYCLE = "MOTORCYCLE"
    CAR = "CAR"
    VAN = "VAN"


class Document(BaseModel):
    model_config = ConfigDict(use_enum_values=True)


# ===================== Collections =====================

class User(Document):
    email: EmailStr = Field(..., description="Unique email address")
    name: Optional[str] = Field(None, description="Display name")
    password_hash: Optional[str] = Field(None, description="BCrypt password hash")
    role: UserRole = UserRole.UNASSIGNED
    image: Optional[str] = None
    # Business
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    # Consumer
    delivery_address: Optional[str] = None
    # Courier
    is_available: bool = False
    current_location: Optional[str] = None
    vehicle_type: Optional[VehicleType] = None


class Fooditem(Document):
    name: str = Field(..., description="Listing title")
    description: str = ""
    price: float = Field(..., ge=0, description="Current asking price")
    original_price: float = Field(..., ge=0, description="Price before the surplus discount")
    quantity: int = Field(..., ge=0)
    expiry_date: datetime
    business_id: str = Field(..., description="Owning business user _id")
    images: List[str] = []
    category: FoodCategory = FoodCategory.OTHER
    status: FoodStatus = FoodStatus.AVAILABLE
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    discount_threshold: Optional[float] = Field(None, ge=0, description="Hours before expiry when the discount applies")


class OrderItem(Document):
    food_item_id: str
    name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at the time of ordering")


class StatusChange(Document):
    status: OrderStatus
    role: UserRole
    at: datetime


class Order(Document):
    consumer_id: str
    business_id: str
    courier_id: Optional[str] = None
    items: List[OrderItem]
    total_amount: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    delivery_address: str
    customer_name: Optional[str] = None
    phone_number: Optional[str] = None
    payment_method: PaymentOption = PaymentOption.CASH
    status_history: List[StatusChange] = []
    completed_at: Optional[datetime] = None


class Paymentmethod(Document):
    user_id: str
    type: PaymentType
    card_number: Optional[str] = Field(None, description="Last four digits only")
    card_brand: str
    expiry_date: Optional[str] = None
    is_default: bool = False


# ===================== Request bodies =====================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.UNASSIGNED

    @field_validator("role")
    @classmethod
    def no_self_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("ADMIN accounts cannot be self-registered")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    image: Optional[str] = None
    role: UserRole = UserRole.UNASSIGNED
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    vehicle_type: Optional[VehicleType] = None


class UserUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = None
    image: Optional[str] = None
    delivery_address: Optional[str] = None
    vehicle_type: Optional[VehicleType] = None


class UpdateRoleRequest(BaseModel):
    role: UserRole


class DeliveryAddressUpdate(BaseModel):
    delivery_address: str = Field(..., min_length=1)


class CourierStatusUpdate(BaseModel):
    is_available: bool


class CourierLocationUpdate(BaseModel):
    current_location: str = Field(..., min_length=1)


class BusinessUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=2)
    business_address: Optional[str] = Field(None, min_length=10)
    business_phone: Optional[str] = Field(None, min_length=10)


class FoodItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0)
    original_price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    expiry_date: datetime
    images: List[str] = []
    category: FoodCategory = FoodCategory.OTHER


class FoodItemUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    expiry_date: Optional[datetime] = None
    images: Optional[List[str]] = None
    category: Optional[FoodCategory] = None


class FoodStatusUpdate(BaseModel):
    status: FoodStatus


class PriceUpdate(BaseModel):
    price: float = Field(..., ge=0)


class DynamicPricingUpdate(BaseModel):
    price: float = Field(..., ge=0)
    discount_percentage: float = Field(..., ge=0, le=100)
    discount_threshold: float = Field(..., ge=0)


class OrderLine(BaseModel):
    food_item_id: str
    quantity: int = Field(..., ge=1)


class CreateOrderRequest(BaseModel):
    customer_name: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    payment_method: PaymentOption = PaymentOption.CASH
    items: List[OrderLine] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentMethodCreate(BaseModel):
    type: PaymentType
    card_number: Optional[str] = None
    expiry_date: Optional[str] = None
    is_default: bool = False
