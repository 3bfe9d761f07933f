import pytest
from beanie import PydanticObjectId
from fastapi_users import exceptions
from fastapi_users_db_beanie import BeanieUserDatabase

from storecart.commonUtils.cartErrors import (
    CartError,
    CartRevisionConflict,
    CART_NOT_FOUND,
    CART_NOT_FOUND_FOR_UPDATE,
    CONCURRENT_MODIFICATION,
    INTERNAL_ERROR,
    INVALID_QUANTITY,
    OPERATION_TIMED_OUT,
    PRODUCT_ALREADY_IN_CART,
    PRODUCT_NOT_IN_CART,
    PRODUCT_NOT_IN_CATALOG,
)
from storecart.commonUtils.enumUtils import ErrorKind
from storecart.crud.cartService import CartService
from storecart.crud.productService import ProductService
from storecart.crud.userService import UserManager
from storecart.models.cartModel import Cart
from storecart.models.userModel import User
from storecart.schemas.userSchema import UserUpdate


async def cart_count(email: str) -> int:
    return await Cart.find(Cart.email == email).count()


async def stored_cart(email: str) -> Cart:
    return await Cart.find_one(Cart.email == email)


# ============= GET =============
async def test_get_cart_without_cart_is_not_found(user):
    with pytest.raises(CartError) as exc_info:
        await CartService.get_cart_by_user(user)

    assert exc_info.value.kind == ErrorKind.NOT_FOUND
    assert exc_info.value.message == CART_NOT_FOUND


async def test_get_cart_is_idempotent(user, product):
    await CartService.add_product_to_cart(user, product.id, 2)

    first = await CartService.get_cart_by_user(user)
    second = await CartService.get_cart_by_user(user)

    assert first.id == second.id
    assert first.cartItems == second.cartItems
    assert await cart_count(user.email) == 1


# ============= ADD =============
async def test_add_creates_cart_on_first_use(user, product):
    cart = await CartService.add_product_to_cart(user, product.id, 2)

    assert cart.email == user.email
    assert len(cart.cartItems) == 1
    assert cart.cartItems[0].product.id == product.id
    assert cart.cartItems[0].quantity == 2
    assert await cart_count(user.email) == 1


async def test_add_appends_to_existing_cart(user, product, make_product):
    other = await make_product(name="p2", cost=10)

    await CartService.add_product_to_cart(user, product.id, 1)
    cart = await CartService.add_product_to_cart(user, other.id, 3)

    assert [item.product.name for item in cart.cartItems] == ["p1", "p2"]
    assert await cart_count(user.email) == 1


async def test_add_same_product_twice_is_conflict(user, product):
    await CartService.add_product_to_cart(user, product.id, 1)

    with pytest.raises(CartError) as exc_info:
        await CartService.add_product_to_cart(user, product.id, 5)

    assert exc_info.value.kind == ErrorKind.CONFLICT
    assert exc_info.value.message == PRODUCT_ALREADY_IN_CART

    cart = await stored_cart(user.email)
    assert len(cart.cartItems) == 1
    assert cart.cartItems[0].quantity == 1


@pytest.mark.parametrize("product_id", [str(PydanticObjectId()), "not-an-object-id"])
async def test_add_unknown_product_is_invalid(user, product_id):
    with pytest.raises(CartError) as exc_info:
        await CartService.add_product_to_cart(user, product_id, 1)

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
    assert exc_info.value.message == PRODUCT_NOT_IN_CATALOG
    assert await cart_count(user.email) == 0


async def test_add_with_zero_quantity_is_rejected(user, product):
    with pytest.raises(CartError) as exc_info:
        await CartService.add_product_to_cart(user, product.id, 0)

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
    assert exc_info.value.message == INVALID_QUANTITY
    assert await cart_count(user.email) == 0


async def test_cart_keeps_price_captured_at_add_time(user, product):
    await CartService.add_product_to_cart(user, product.id, 2)

    await ProductService.update_cost(product.id, 99)

    cart = await CartService.get_cart_by_user(user)
    assert cart.cartItems[0].product.cost == 30
    assert cart.total_cost() == 60


# ============= UPDATE =============
async def test_update_without_cart_points_to_post(user, product):
    with pytest.raises(CartError) as exc_info:
        await CartService.update_product_in_cart(user, product.id, 3)

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
    assert exc_info.value.message == CART_NOT_FOUND_FOR_UPDATE
    assert await cart_count(user.email) == 0


async def test_update_product_not_in_cart_leaves_cart_unmodified(user, product, make_product):
    other = await make_product(name="p2", cost=10)
    await CartService.add_product_to_cart(user, product.id, 2)
    before = await stored_cart(user.email)

    with pytest.raises(CartError) as exc_info:
        await CartService.update_product_in_cart(user, other.id, 4)

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
    assert exc_info.value.message == PRODUCT_NOT_IN_CART

    after = await stored_cart(user.email)
    assert after.cartItems == before.cartItems
    assert after.revision_id == before.revision_id


async def test_update_unknown_product_is_invalid(user, product):
    await CartService.add_product_to_cart(user, product.id, 2)

    with pytest.raises(CartError) as exc_info:
        await CartService.update_product_in_cart(user, PydanticObjectId(), 4)

    assert exc_info.value.message == PRODUCT_NOT_IN_CATALOG


async def test_update_sets_quantity_and_keeps_snapshot(user, product):
    await CartService.add_product_to_cart(user, product.id, 2)
    await ProductService.update_cost(product.id, 45)

    cart = await CartService.update_product_in_cart(user, product.id, 7)

    assert cart.cartItems[0].quantity == 7
    assert cart.cartItems[0].product.cost == 30

    stored = await stored_cart(user.email)
    assert stored.cartItems[0].quantity == 7


# ============= DELETE =============
async def test_delete_without_cart_is_invalid(user, product):
    with pytest.raises(CartError) as exc_info:
        await CartService.delete_product_from_cart(user, product.id)

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
    assert exc_info.value.message == CART_NOT_FOUND


async def test_delete_product_not_in_cart_is_invalid(user, product, make_product):
    other = await make_product(name="p2", cost=10)
    await CartService.add_product_to_cart(user, product.id, 1)

    with pytest.raises(CartError) as exc_info:
        await CartService.delete_product_from_cart(user, other.id)

    assert exc_info.value.message == PRODUCT_NOT_IN_CART
    assert len((await stored_cart(user.email)).cartItems) == 1


async def test_delete_removes_only_that_item(user, make_product):
    p1 = await make_product(name="p1", cost=30)
    p2 = await make_product(name="p2", cost=10)
    p3 = await make_product(name="p3", cost=5)
    for p in (p1, p2, p3):
        await CartService.add_product_to_cart(user, p.id, 1)

    await CartService.delete_product_from_cart(user, p2.id)

    cart = await stored_cart(user.email)
    assert [item.product.name for item in cart.cartItems] == ["p1", "p3"]


async def test_delete_works_after_product_left_catalog(user, product):
    await CartService.add_product_to_cart(user, product.id, 1)
    await product.delete()

    await CartService.delete_product_from_cart(user, product.id)

    assert (await stored_cart(user.email)).cartItems == []


# ============= CONCURRENT WRITES =============
async def test_write_is_retried_after_revision_conflict(user, product, make_product, monkeypatch):
    other = await make_product(name="p2", cost=10)
    await CartService.add_product_to_cart(user, product.id, 1)
    original_save = CartService.save_cart
    calls = {"count": 0}

    async def save_losing_first_race(cart, deadline=None):
        calls["count"] += 1
        if calls["count"] == 1:
            raise CartRevisionConflict(cart.email)
        return await original_save(cart, deadline)

    monkeypatch.setattr(CartService, "save_cart", staticmethod(save_losing_first_race))

    cart = await CartService.add_product_to_cart(user, other.id, 2)

    assert calls["count"] == 2
    assert len(cart.cartItems) == 2
    assert len((await stored_cart(user.email)).cartItems) == 2


async def test_write_gives_up_with_conflict_after_retries(user, product, monkeypatch):
    await CartService.add_product_to_cart(user, product.id, 2)

    async def always_stale(cart, deadline=None):
        raise CartRevisionConflict(cart.email)

    monkeypatch.setattr(CartService, "save_cart", staticmethod(always_stale))

    with pytest.raises(CartError) as exc_info:
        await CartService.update_product_in_cart(user, product.id, 9)

    assert exc_info.value.kind == ErrorKind.CONFLICT
    assert exc_info.value.message == CONCURRENT_MODIFICATION

    monkeypatch.undo()
    assert (await stored_cart(user.email)).cartItems[0].quantity == 2


# ============= TIMEOUT =============
async def test_expired_deadline_times_out_without_writing(user, product):
    with pytest.raises(CartError) as exc_info:
        await CartService.add_product_to_cart(user, product.id, 1, timeout=0)

    assert exc_info.value.kind == ErrorKind.TIMEOUT
    assert exc_info.value.message == OPERATION_TIMED_OUT
    assert await cart_count(user.email) == 0


# ============= STORE FAILURES =============
async def test_failed_cart_creation_is_internal(user, product, monkeypatch):
    async def broken_insert(self, *args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(Cart, "insert", broken_insert)

    with pytest.raises(CartError) as exc_info:
        await CartService.add_product_to_cart(user, product.id, 1)

    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert exc_info.value.message == INTERNAL_ERROR

    monkeypatch.undo()
    assert await cart_count(user.email) == 0


async def test_failed_cart_lookup_during_add_is_internal(user, product, monkeypatch):
    def broken_find_one(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(Cart, "find_one", broken_find_one)

    with pytest.raises(CartError) as exc_info:
        await CartService.add_product_to_cart(user, product.id, 1)

    # Not treated as a missing cart, so nothing is created
    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert exc_info.value.message == INTERNAL_ERROR

    monkeypatch.undo()
    assert await cart_count(user.email) == 0


# ============= OWNER EMAIL CHANGE =============
async def test_email_change_takes_the_cart_along(user, product, monkeypatch):
    await CartService.add_product_to_cart(user, product.id, 2)
    manager = UserManager(BeanieUserDatabase(User))

    async def email_is_free(email):
        raise exceptions.UserNotExists()

    monkeypatch.setattr(manager, "get_by_email", email_is_free)

    await manager.update(UserUpdate(email="renamed@storecart.io"), user, safe=True)

    assert user.email == "renamed@storecart.io"
    cart = await CartService.get_cart_by_user(user)
    assert len(cart.cartItems) == 1
    assert cart.cartItems[0].quantity == 2
    assert await cart_count("u1@example.com") == 0


async def test_move_without_cart_is_a_no_op(user):
    assert await CartService.move_cart(user.email, "renamed@storecart.io") is None
    assert await cart_count("renamed@storecart.io") == 0
