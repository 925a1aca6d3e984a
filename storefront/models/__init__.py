# storefront/models/__init__.py
"""
ORM model exports.
"""

from storefront.models.abandoned_cart import AbandonedCart
from storefront.models.category import Category
from storefront.models.license import License
from storefront.models.order import Order
from storefront.models.order_item import OrderItem
from storefront.models.product import Product
from storefront.models.review import Review
from storefront.models.shipment import Shipment
from storefront.models.stock_movement import StockMovement
from storefront.models.store import Store
from storefront.models.store_config import StoreConfig
from storefront.models.user import User
from storefront.models.wishlist import WishlistItem

__all__ = [
    "AbandonedCart",
    "Category",
    "License",
    "Order",
    "OrderItem",
    "Product",
    "Review",
    "Shipment",
    "StockMovement",
    "Store",
    "StoreConfig",
    "User",
    "WishlistItem",
]
