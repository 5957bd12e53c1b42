"""
Database Schemas

MongoDB collection schemas and request payloads, as Pydantic models.

Each collection model maps to the lowercase of its class name:
- User -> "user" collection
- Product -> "product" collection
- Category -> "category" collection
- Order -> "order" collection
- Wishlist -> "wishlist" collection

Request payloads keep most fields optional so the managers can report
missing input with the store's own error messages.

Clients send and receive camelCase keys (zipCode, isDefault); documents
are stored with the snake_case field names.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
ShippingMethod = Literal["standard", "express", "priority"]
PaymentMethod = Literal["card", "paypal", "applepay", "cod"]
AddressLabel = Literal["home", "work", "other"]
Role = Literal["user", "admin", "customer"]
Gender = Literal["male", "female", "other", ""]


class StoreModel(BaseModel):
    """Accepts camelCase or snake_case keys; `model_dump()` keeps snake_case for storage."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Catalog
# -----------------------------

class Category(StoreModel):
    """
    Categories collection schema
    Collection: "category"
    """
    name: str = Field(..., description="Display name, unique")
    slug: str = Field(..., description="URL slug, unique")
    description: str = ""
    image: str = ""
    parent_category: Optional[str] = None
    is_active: bool = True


class Product(StoreModel):
    """
    Products collection schema
    Collection name: "product" (lowercase of class name)
    """
    product_id: str = Field(..., description="Business key, unique")
    name: str = Field(..., description="Product name")
    description: str = Field(..., description="Product description")
    price: float = Field(..., ge=0, description="Price")
    original_price: Optional[float] = Field(None, ge=0)
    category: str = Field(..., description="Category _id")
    images: List[str] = Field(default_factory=list)
    rating: float = 0
    reviews: int = 0
    in_stock: bool = Field(True, description="Whether product is in stock")
    features: List[str] = Field(default_factory=list)
    slug: Optional[str] = None


class ProductPayload(StoreModel):
    product_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    images: Optional[List[str]] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    in_stock: Optional[bool] = None
    features: Optional[List[str]] = None
    slug: Optional[str] = None


class CategoryPayload(StoreModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    parent_category: Optional[str] = None
    is_active: Optional[bool] = None

# -----------------------------
# Orders
# -----------------------------

class OrderItem(StoreModel):
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    images: List[str] = Field(default_factory=list)


class Order(StoreModel):
    """
    Orders collection schema
    Collection: "order"

    Cost fields are computed by the checkout client and stored as given.
    """
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    shipping_method: Optional[ShippingMethod] = None
    shipping_cost: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    items: List[OrderItem]
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    user_id: Optional[str] = None
    status: OrderStatus = "pending"
    status_updated_at: Optional[datetime] = None


class CreateOrderPayload(StoreModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    shipping_method: Optional[ShippingMethod] = None
    shipping_cost: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    items: List[OrderItem] = Field(default_factory=list)
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    user_id: Optional[str] = None


class StatusPayload(StoreModel):
    status: Optional[str] = None


class OrderStatusPayload(StoreModel):
    order_id: Optional[str] = None
    status: Optional[str] = None

# -----------------------------
# Users
# -----------------------------

class Address(StoreModel):
    """Embedded in User.addresses"""
    street: str
    city: str
    state: str
    zip_code: str
    country: str = "Bangladesh"
    is_default: bool = False
    label: AddressLabel = "home"
    phone: str = ""


class AddressPayload(StoreModel):
    address_id: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    is_default: Optional[bool] = None
    label: Optional[AddressLabel] = None
    phone: Optional[str] = None


class WishlistItem(StoreModel):
    product_id: str
    added_at: Optional[datetime] = None


class WishlistPayload(StoreModel):
    product_id: Optional[str] = None


class Preferences(StoreModel):
    newsletter: bool = True
    sms_notifications: bool = False
    email_notifications: bool = True
    product_recommendations: bool = True


class User(StoreModel):
    """
    Users collection schema
    Collection name: "user" (lowercase of class name)
    """
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address, unique")
    password: str = Field(..., description="bcrypt hash")
    role: Role = "customer"
    phone: str = ""
    date_of_birth: Optional[datetime] = None
    gender: Gender = ""
    addresses: List[Address] = Field(default_factory=list)
    wishlist: List[WishlistItem] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)


class Wishlist(StoreModel):
    """
    Standalone wishlists collection schema
    Collection: "wishlist", one document per user_id
    """
    user_id: str
    items: List[WishlistItem] = Field(default_factory=list)


class RegisterPayload(StoreModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class UserPayload(StoreModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None


class ProfilePayload(StoreModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[Gender] = None


class LoginPayload(StoreModel):
    email: Optional[str] = None
    password: Optional[str] = None
