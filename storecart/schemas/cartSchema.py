from datetime import datetime
from typing import List
from beanie import PydanticObjectId
from pydantic import BaseModel, Field, ConfigDict

from storecart.models.cartModel import CartItem


# ============= CART SCHEMAS =============
class CartAddItemRequest(BaseModel):
    """Request schema for adding a product to the cart"""
    productId: str = Field(..., min_length=1)
    quantity: int = Field(default=1, gt=0)


class CartUpdateItemRequest(BaseModel):
    """Request schema for changing a quantity; 0 removes the product"""
    productId: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)


class CartRead(BaseModel):
    """Schema for reading cart"""
    id: PydanticObjectId = Field(..., alias="_id")
    email: str
    cartItems: List[CartItem]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,  # Enable from_orm to work with ORM models
        from_attributes=True,  # This allows Pydantic to use aliases
    )


# ============= ERROR RESPONSE SCHEMAS =============
class ErrorBody(BaseModel):
    type: str
    kind: str
    message: str
    detail: str
    path: str


class ErrorResponse(BaseModel):
    """Standardized error response"""
    error: ErrorBody
