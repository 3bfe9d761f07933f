from datetime import datetime
from typing import Optional
from beanie import PydanticObjectId
from pydantic import BaseModel, Field, ConfigDict


# ============= PRODUCT SCHEMAS =============
class ProductCreate(BaseModel):
    """Schema for adding a product to the catalog"""
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1)
    cost: float = Field(..., ge=0)
    rating: float = Field(default=0, ge=0, le=5)
    image: Optional[str] = None


class ProductCostUpdate(BaseModel):
    """Schema for changing a product's catalog price"""
    cost: float = Field(..., ge=0)


class ProductRead(BaseModel):
    """Schema for reading a product"""
    id: PydanticObjectId = Field(..., alias="_id")
    name: str
    category: str
    cost: float
    rating: float
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,  # Enable from_orm to work with ORM models
        from_attributes=True,  # This allows Pydantic to use aliases
    )
