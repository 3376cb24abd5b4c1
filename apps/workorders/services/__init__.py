from .access import DEFAULT_MATCHER, FuzzyNameMatcher, OrderFilters, TechnicianNameMatcher, visible_orders
from .order_service import BulkResult, ImportResult, OrderPage, OrderService

__all__ = [
    "BulkResult",
    "DEFAULT_MATCHER",
    "FuzzyNameMatcher",
    "ImportResult",
    "OrderFilters",
    "OrderPage",
    "OrderService",
    "TechnicianNameMatcher",
    "visible_orders",
]
