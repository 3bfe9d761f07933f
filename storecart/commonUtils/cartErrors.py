from storecart.commonUtils.enumUtils import ErrorKind


class CartError(Exception):
    """Classified failure raised by the cart engine: a stable (kind, message) pair"""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"CartError(kind={self.kind.value!r}, message={self.message!r})"


class CartRevisionConflict(Exception):
    """The cart document changed between read and write; the operation should be re-run"""


# Fixed messages, matched on by callers
CART_NOT_FOUND = "User does not have a cart"
CART_NOT_FOUND_FOR_UPDATE = "User does not have a cart. Use POST to create cart and add a product"
CART_MISSING_AT_CHECKOUT = "User has no cart"
PRODUCT_NOT_IN_CATALOG = "Product doesn't exist in database"
PRODUCT_ALREADY_IN_CART = "Product already in cart. Use the cart sidebar to update or remove product from cart"
PRODUCT_NOT_IN_CART = "Product not in cart"
CART_EMPTY = "User cart is empty"
ADDRESS_NOT_SET = "User address is not set"
INSUFFICIENT_BALANCE = "User has insufficient balance"
USER_NOT_FOUND = "User not found"
INTERNAL_ERROR = "INTERNAL_SERVER_ERROR"
INVALID_QUANTITY = "Quantity must be at least 1"
CHECKOUT_NOT_APPLIED = "Checkout could not be completed. No changes were applied"
CONCURRENT_MODIFICATION = "Cart was modified concurrently. Please retry"
OPERATION_TIMED_OUT = "Cart operation timed out"
