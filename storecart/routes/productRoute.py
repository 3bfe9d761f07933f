from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional

from storecart.models.userModel import User
from storecart.schemas.productSchema import ProductCreate, ProductCostUpdate, ProductRead
from storecart.crud.userService import super_user
from storecart.crud.productService import ProductService

router = APIRouter()


# ============= PRODUCTS ROUTES =============
@router.get("/products", response_model=List[ProductRead], tags=["products"])
async def list_products(
        category: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
):
    """Get catalog products with optional filtering"""
    return await ProductService.get_products(category=category, skip=skip, limit=limit)


@router.get("/products/{product_id}", response_model=ProductRead, tags=["products"])
async def get_product(product_id: str):
    """Get a specific product"""
    product = await ProductService.get_product_by_id(product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )
    return product


@router.post(
    "/products",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    tags=["products"]
)
async def create_product(
        product_data: ProductCreate,
        current_user: User = Depends(super_user)
):
    """Add a product to the catalog (superusers only)"""
    return await ProductService.create_product(product_data)


@router.patch("/products/{product_id}/cost", response_model=ProductRead, tags=["products"])
async def update_product_cost(
        product_id: str,
        update: ProductCostUpdate,
        current_user: User = Depends(super_user)
):
    """Change a product's catalog price (superusers only). Items already in carts keep their price"""
    product = await ProductService.get_product_by_id(product_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )
    return await ProductService.update_cost(product.id, update.cost)
