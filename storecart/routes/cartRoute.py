from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from storecart.models.userModel import User
from storecart.schemas.cartSchema import (
    CartRead, CartAddItemRequest, CartUpdateItemRequest, ErrorResponse
)
from storecart.schemas.checkOutSchema import CheckoutResult
from storecart.commonUtils.enumUtils import CheckoutOutcome
from storecart.crud.userService import current_active_user
from storecart.crud.cartService import CartService
from storecart.crud.checkOutService import CheckOutService

router = APIRouter()

error_responses = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


# ============= CART ROUTES =============
@router.get("/cart", response_model=CartRead, responses=error_responses, tags=["cart"])
async def get_cart(current_user: User = Depends(current_active_user)):
    """Get current user's cart"""
    return await CartService.get_cart_by_user(current_user)


@router.post("/cart", response_model=CartRead, responses=error_responses, tags=["cart"])
async def add_product_to_cart(
        item: CartAddItemRequest,
        current_user: User = Depends(current_active_user)
):
    """Add a new product to the cart"""
    return await CartService.add_product_to_cart(current_user, item.productId, item.quantity)


@router.put(
    "/cart",
    response_model=CartRead,
    responses={204: {"description": "Product removed"}, **error_responses},
    tags=["cart"]
)
async def update_product_in_cart(
        item: CartUpdateItemRequest,
        current_user: User = Depends(current_active_user)
):
    """Update the quantity of a product in the cart; quantity 0 removes it"""
    if item.quantity == 0:
        await CartService.delete_product_from_cart(current_user, item.productId)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return await CartService.update_product_in_cart(current_user, item.productId, item.quantity)


@router.delete(
    "/cart/items/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=error_responses,
    tags=["cart"]
)
async def delete_product_from_cart(
        product_id: str,
        current_user: User = Depends(current_active_user)
):
    """Remove a product from the cart"""
    await CartService.delete_product_from_cart(current_user, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/cart/checkout",
    response_model=CheckoutResult,
    responses={202: {"model": CheckoutResult}, **error_responses},
    tags=["cart", "checkout"]
)
async def checkout(current_user: User = Depends(current_active_user)):
    """
    Checkout the user's cart.
    200 when the wallet was debited and the cart emptied, 202 when the debit
    went through but the cart could not be cleared and a refund is pending.
    """
    result = await CheckOutService.checkout(current_user)

    if result.outcome == CheckoutOutcome.PARTIALLY_APPLIED:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=result.model_dump(mode="json")
        )
    return result
