# shop_admin/services/__init__.py
"""
Inventory and order fulfillment services for Shop Admin.
"""
from shop_admin.services.stock_adjuster import StockAdjuster, StockUpdate
from shop_admin.services.stock_aggregator import StockAggregator
from shop_admin.services.orders import OrderCoordinator, OrderLine

__all__ = [
    "StockAdjuster",
    "StockUpdate",
    "StockAggregator",
    "OrderCoordinator",
    "OrderLine",
]
