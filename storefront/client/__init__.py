from .cart_store import CartItem, CartStore
from .errors import (
    ApiError,
    AuthenticationRequired,
    Conflict,
    Forbidden,
    NetworkError,
    NotFound,
    ValidationFailed,
)
from .storefront import Storefront

__all__ = [
    "ApiError",
    "AuthenticationRequired",
    "CartItem",
    "CartStore",
    "Conflict",
    "Forbidden",
    "NetworkError",
    "NotFound",
    "Storefront",
    "ValidationFailed",
]
