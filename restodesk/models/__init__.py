# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    UserRole, ShiftStatus, OrderStatus, OrderType, SETTLED_STATUSES,

    # Identity
    User,

    # Staff & shifts
    Staff, Shift,

    # Inventory
    Ingredient, IngredientUsage, PurchaseOrder, PurchaseOrderLine,

    # Menu
    Category, MenuItem, menu_item_ingredient,

    # Orders
    Order, OrderItem,

    # Audit
    ActivityLog,
)

__all__ = [
    "UserRole", "ShiftStatus", "OrderStatus", "OrderType", "SETTLED_STATUSES",
    "User",
    "Staff", "Shift",
    "Ingredient", "IngredientUsage", "PurchaseOrder", "PurchaseOrderLine",
    "Category", "MenuItem", "menu_item_ingredient",
    "Order", "OrderItem",
    "ActivityLog",
]
