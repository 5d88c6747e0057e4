"""State management module"""

from .checkouts import CheckoutCache, CheckoutRecord

__all__ = [
    "CheckoutCache",
    "CheckoutRecord",
]
