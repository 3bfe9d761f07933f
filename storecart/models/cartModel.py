from datetime import datetime
from typing import Optional, List
from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field, ConfigDict
from pymongo import IndexModel

from storecart.models.productModel import ProductSnapshot


class CartItem(BaseModel):
    """Line item: product snapshot plus quantity"""
    product: ProductSnapshot
    quantity: int = Field(..., gt=0)


class Cart(Document):
    """Shopping cart for a user, keyed by the owner's email"""
    id: Optional[PydanticObjectId] = Field(None, alias="_id")
    email: str  # Reference to User.email
    cartItems: List[CartItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "carts"
        use_revision = True  # Saves are rejected when another writer got there first
        indexes = [
            IndexModel("email", unique=True),  # One cart per owner
        ]

    model_config = ConfigDict(populate_by_name=True)

    def find_item(self, product_id) -> Optional[CartItem]:
        product_id = str(product_id)
        for item in self.cartItems:
            if str(item.product.id) == product_id:
                return item
        return None

    def total_cost(self) -> float:
        return sum(item.product.cost * item.quantity for item in self.cartItems)
