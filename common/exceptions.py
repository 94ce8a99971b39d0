"""Domain error taxonomy shared by the cart, inventory and order apps.

Every error carries a stable machine-readable ``code`` and the HTTP status the
API layer answers with. Callers (views, admin actions, commands) decide how to
present them; services only raise.
"""


class CommerceError(Exception):
    """Base class for recoverable domain errors."""

    code = "commerce_error"
    status_code = 400
    default_detail = "Unable to complete the request."

    def __init__(self, detail: str | None = None, **context):
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)

    def as_dict(self) -> dict:
        payload = {"detail": self.detail, "code": self.code}
        if self.context:
            payload.update(self.context)
        return payload


class EmptyCart(CommerceError):
    code = "empty_cart"
    default_detail = "Cart is empty."


class InvalidCoupon(CommerceError):
    code = "invalid_coupon"
    default_detail = "Invalid coupon code."


class InvalidQuantity(CommerceError):
    code = "invalid_quantity"
    default_detail = "Invalid quantity."


class InvalidShippingMethod(CommerceError):
    code = "invalid_shipping_method"
    default_detail = "Unknown shipping method."


class ProductUnavailable(CommerceError):
    code = "product_unavailable"
    status_code = 409
    default_detail = "Product is no longer available."

    def __init__(self, detail: str | None = None, *, product_id=None):
        super().__init__(detail, product_id=product_id)
        self.product_id = product_id


class OutOfStock(ProductUnavailable):
    """Raised by the inventory ledger when a reservation cannot be covered."""

    code = "out_of_stock"
    default_detail = "Not enough inventory available."


class InvalidTransition(CommerceError):
    code = "invalid_transition"
    status_code = 409
    default_detail = "Order cannot move to the requested status."

    def __init__(self, detail: str | None = None, *, current=None, target=None):
        super().__init__(detail, current=current, target=target)
        self.current = current
        self.target = target


class NotAuthorized(CommerceError):
    code = "not_authorized"
    status_code = 403
    default_detail = "Not authorized to perform this action."


class NotFound(CommerceError):
    code = "not_found"
    status_code = 404
    default_detail = "Not found."


class ConcurrencyConflict(CommerceError):
    code = "concurrency_conflict"
    status_code = 409
    default_detail = "Resource was modified concurrently; reload and retry."


class StorageError(CommerceError):
    """Persistence failure (connectivity, timeout). Never a domain outcome."""

    code = "storage_error"
    status_code = 503
    default_detail = "Storage temporarily unavailable."
