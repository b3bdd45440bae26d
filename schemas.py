"""
Database Schemas for the storefront

Each Pydantic model represents a collection in your database.
Model name is converted to lowercase for the collection name:
- Product -> "product"
- Category -> "category"
- Order -> "order"

Documents are stored with camelCase keys (imageUrl, totalAmount, createdAt...),
which is also what the JSON API speaks.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, partial: bool = False) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=partial)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Collections

class Product(CamelModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., description="Short description")
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(..., ge=0, description="Units in stock")
    category: str = Field(..., min_length=1, description="Category label")
    rating: Optional[float] = Field(None, ge=0, le=5, description="Average rating")
    image_url: str = Field("", description="Image URL")


class Category(CamelModel):
    name: str = Field(..., min_length=1, description="Category name")
    image_url: str = Field("", description="Cover image URL")


class OrderItem(CamelModel):
    product: str = Field(..., description="Product ID")
    name: str = Field(..., description="Snapshot of product name at purchase time")
    price: float = Field(..., ge=0, description="Unit price at purchase time")
    quantity: int = Field(..., ge=1, description="Quantity ordered")


class Order(CamelModel):
    customer_name: str = Field(..., description="Customer full name")
    phone_number: str = Field(..., description="Contact phone number")
    address: str = Field(..., description="Shipping address")
    items: List[OrderItem] = Field(..., description="Line items")
    total_amount: float = Field(..., ge=0, description="Order total, frozen at creation")
    status: OrderStatus = Field(OrderStatus.PENDING, description="Fulfillment stage")


# Request bodies

class ProductCreate(Product):
    image: Optional[str] = Field(None, description="Base64 image content or data URL to upload")


class ProductUpdate(CamelModel):
    # required fields default to None when omitted but reject an explicit null
    name: str = Field(None, min_length=1)
    description: str = None
    price: float = Field(None, ge=0)
    stock: int = Field(None, ge=0)
    category: str = Field(None, min_length=1)
    rating: Optional[float] = Field(None, ge=0, le=5)
    image_url: str = None


class CategoryCreate(Category):
    image: Optional[str] = Field(None, description="Base64 image content or data URL to upload")


class CategoryUpdate(CamelModel):
    name: str = Field(None, min_length=1)
    image_url: str = None


class OrderItemIn(CamelModel):
    product: str = Field(..., description="Product ID")
    quantity: int = Field(..., ge=1)


class OrderCreate(CamelModel):
    customer_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    items: List[OrderItemIn] = Field(..., min_length=1)


class OrderStatusUpdate(CamelModel):
    status: str
