from datetime import datetime
from typing import Optional
from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field, ConfigDict


class Product(Document):
    """Catalog product document in MongoDB"""
    id: Optional[PydanticObjectId] = Field(None, alias="_id")

    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1)
    cost: float = Field(..., ge=0)
    rating: float = Field(default=0, ge=0, le=5)
    image: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "products"
        indexes = [
            [("category", 1)],
            [("created_at", -1)],
        ]

    model_config = ConfigDict(
        populate_by_name=True,  # Enable from_orm to work with ORM models
        from_attributes=True,  # This allows Pydantic to use aliases
    )


class ProductSnapshot(BaseModel):
    """
    Copy of a catalog product captured when it is added to a cart.

    Checkout charges `cost` from this snapshot, so a later catalog price
    change does not alter an item that is already in a cart.
    """
    id: PydanticObjectId
    name: str
    category: str
    cost: float = Field(..., ge=0)
    rating: float = 0
    image: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            category=product.category,
            cost=product.cost,
            rating=product.rating,
            image=product.image,
        )
