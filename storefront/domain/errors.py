# storefront/domain/errors.py
"""
Typed errors raised by the services.

Every error carries a stable machine-readable ``kind`` and a human-readable
message; the HTTP layer maps ``kind`` to a status code.
"""


class ShopError(Exception):
    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class NotFound(ShopError):
    kind = "not_found"
    status_code = 404


class InsufficientStock(ShopError):
    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, message: str, product_id: int | None = None):
        super().__init__(message)
        self.product_id = product_id


class InvalidRequest(ShopError):
    kind = "invalid_request"
    status_code = 400


class InvalidTransition(ShopError):
    kind = "invalid_transition"
    status_code = 409


class Forbidden(ShopError):
    kind = "forbidden"
    status_code = 403


class Conflict(ShopError):
    kind = "conflict"
    status_code = 409
