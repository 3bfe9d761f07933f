import logging
from datetime import datetime
from typing import List, Optional
from beanie import PydanticObjectId
from bson import ObjectId
from storecart.models.productModel import Product
from storecart.schemas.productSchema import ProductCreate

logger = logging.getLogger(__name__)


class ProductService:
    """Service layer for the product catalog"""

    @staticmethod
    async def get_product_by_id(product_id) -> Optional[Product]:
        """Get a product by id, None when absent or when the id is malformed"""
        if not ObjectId.is_valid(str(product_id)):
            return None
        return await Product.get(PydanticObjectId(str(product_id)))

    @staticmethod
    async def get_products(
            category: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> List[Product]:
        """Get catalog products with optional category filter"""
        query = {}

        if category:
            query["category"] = category

        products = await (
            Product.find(query)
            .sort(("created_at", -1))
            .skip(skip)
            .limit(limit)
            .to_list()
        )
        return products

    @staticmethod
    async def create_product(product_data: ProductCreate) -> Product:
        """Add a product to the catalog"""
        product = Product(**product_data.model_dump())
        await product.insert()
        logger.info(f"Product {product.id} ({product.name}) added to catalog")
        return product

    @staticmethod
    async def update_cost(product_id: PydanticObjectId, cost: float) -> Optional[Product]:
        """Change a product's catalog price; carts keep the price captured when the item was added"""
        product = await Product.get(product_id)
        if not product:
            return None
        product.cost = cost
        product.updated_at = datetime.utcnow()
        await product.save()
        return product
