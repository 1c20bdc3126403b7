"""
Event subscribers of the notifier service.
"""

from .product_revalidation import PRODUCTS_TAG, ProductRevalidationSubscriber

__all__ = ["PRODUCTS_TAG", "ProductRevalidationSubscriber"]
