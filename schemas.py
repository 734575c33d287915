"""
Database Schemas for the AgroMonk storefront

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercased class name (e.g., Product -> "product"). The *Update models carry
the partial bodies accepted by the admin PATCH routes.
"""
from typing import Annotated, Any, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, EmailStr, Field

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
Role = Literal["user", "admin"]


def ref_id(value: Any) -> Optional[str]:
    """Reduce a reference as sent by the admin console to a plain id string.

    The console posts back whatever it last received, so a reference can be a
    raw id, an ObjectId or a populated ``{"id"|"_id": ..., "name": ...}`` object.
    Empty values mean "no reference".
    """
    if isinstance(value, dict):
        value = value.get("id") or value.get("_id")
    if value is None or value == "":
        return None
    value = str(value)
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid ObjectId")
    return value


def required_ref_id(value: Any) -> str:
    value = ref_id(value)
    if value is None:
        raise ValueError("reference is required")
    return value


RefId = Annotated[Optional[str], BeforeValidator(ref_id)]
RequiredRefId = Annotated[str, BeforeValidator(required_ref_id)]


class User(BaseModel):
    email: EmailStr = Field(..., description="Login email, unique")
    password: str = Field(..., description="bcrypt hash")
    name: Optional[str] = Field(None, description="Display name")
    role: Role = Field("user", description="user | admin")
    is_active: bool = Field(True, description="Inactive users cannot log in")


class Category(BaseModel):
    name: str = Field(..., description="Category name")
    description: Optional[str] = Field(None, description="Short description")
    image: Optional[str] = Field(None, description="Cover image URL or /uploads path")
    parent_category: RefId = Field(None, description="Parent category id; empty for a top-level category")
    is_active: bool = Field(True)
    sort_order: int = Field(0, description="Listing position, ascending")


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    parent_category: RefId = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class Product(BaseModel):
    """Catalogue product, always filed under a sub-category"""
    name: str = Field(..., description="Product name (e.g., 'Organic Tomatoes')")
    description: Optional[str] = Field(None, description="Detailed description")
    images: List[str] = Field(default_factory=list, description="Image URLs, first is the cover")
    price: float = Field(..., ge=0, description="Price in INR")
    original_price: Optional[float] = Field(None, ge=0, description="Price before discount")
    sub_category: RequiredRefId = Field(..., description="Id of a sub-category")
    is_active: bool = Field(True)
    stock: int = Field(0, ge=0, description="Units available")
    unit: Optional[str] = Field(None, description="Sale unit (kg, piece, bag...)")
    sort_order: int = Field(0)
    whatsapp_message: Optional[str] = Field(None, description="Prefilled WhatsApp enquiry text")
    phone_number: Optional[str] = Field(None, description="Contact number for enquiries")
    tags: List[str] = Field(default_factory=list, description="Search tags")


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    sub_category: RefId = None
    is_active: Optional[bool] = None
    stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    sort_order: Optional[int] = None
    whatsapp_message: Optional[str] = None
    phone_number: Optional[str] = None
    tags: Optional[List[str]] = None


class OrderItem(BaseModel):
    product: RequiredRefId = Field(..., description="Product id")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price shown at checkout")


class ShippingAddress(BaseModel):
    street: str
    city: str
    state: str
    zip_code: str
    country: str


class Order(BaseModel):
    items: List[OrderItem] = Field(..., min_length=1)
    total_amount: float = Field(..., ge=0, description="Total as computed by the client")
    shipping_address: ShippingAddress
    status: OrderStatus = Field("pending", description="pending | processing | shipped | delivered | cancelled")


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    shipping_address: Optional[ShippingAddress] = None
    total_amount: Optional[float] = Field(None, ge=0)
