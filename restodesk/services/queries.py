from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from restodesk.models.core import (
    Ingredient, Order, OrderItem, MenuItem, Shift, ShiftStatus, SETTLED_STATUSES,
)
from restodesk.services.periods import ReportPeriod


def orders_with_items(db: Session, period: ReportPeriod | None = None,
                      statuses=SETTLED_STATUSES) -> list[Order]:
    """Orders with items → menu item → ingredients/category loaded; all time when no period."""
    q = (
        db.query(Order)
        .options(
            selectinload(Order.items)
            .selectinload(OrderItem.menu_item)
            .selectinload(MenuItem.ingredients),
            selectinload(Order.items)
            .selectinload(OrderItem.menu_item)
            .selectinload(MenuItem.category),
        )
        .filter(Order.status.in_(statuses))
    )
    if period is not None:
        q = q.filter(Order.created_at >= period.start, Order.created_at < period.end)
    return q.order_by(Order.created_at.asc()).all()


def settled_orders(db: Session, period: ReportPeriod) -> list[Order]:
    """Settled orders created in [start, end)."""
    return orders_with_items(db, period)


def completed_shifts(db: Session, period: ReportPeriod) -> list[Shift]:
    """COMPLETED shifts whose start_time falls in [start, end), staff loaded."""
    return (
        db.query(Shift)
        .options(selectinload(Shift.staff))
        .filter(
            Shift.status == ShiftStatus.COMPLETED,
            Shift.start_time >= period.start,
            Shift.start_time < period.end,
        )
        .all()
    )


def menu_items_with_ingredients(db: Session) -> list[MenuItem]:
    return (
        db.query(MenuItem)
        .options(selectinload(MenuItem.ingredients), selectinload(MenuItem.category))
        .order_by(MenuItem.name.asc())
        .all()
    )


def order_count(db: Session, period: ReportPeriod) -> int:
    """All orders regardless of status."""
    return (
        db.query(func.count(Order.id))
        .filter(Order.created_at >= period.start, Order.created_at < period.end)
        .scalar()
    ) or 0


def order_item_price_sum(db: Session, period: ReportPeriod) -> float:
    """Σ unit price of order items whose order was created in the window."""
    total = (
        db.query(func.coalesce(func.sum(OrderItem.price), 0))
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.created_at >= period.start, Order.created_at < period.end)
        .scalar()
    )
    return float(total or 0)


def low_stock_ingredients(db: Session, limit: int = 5) -> list[Ingredient]:
    return (
        db.query(Ingredient)
        .filter(Ingredient.current_stock < Ingredient.min_level)
        .order_by(Ingredient.name.asc())
        .limit(limit)
        .all()
    )
