from sqlalchemy import (
    String, ForeignKey, Boolean, Float, Enum, Text, DateTime, Table, Column
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
from datetime import datetime
from restodesk.db import Base
from restodesk.models.common import IdMixin, TSMMixin, utcnow

# ── Enums ───────────────────────────────────────────────────────────────────
class UserRole(PyEnum):
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    KITCHEN = "KITCHEN"
    BAR = "BAR"
    WAITER = "WAITER"
    RECEPTIONIST = "RECEPTIONIST"
    SHISHA = "SHISHA"

class ShiftStatus(PyEnum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    LATE = "LATE"
    ABSENT = "ABSENT"

class OrderStatus(PyEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PAID = "PAID"

class OrderType(PyEnum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"

# only these count toward revenue and cost
SETTLED_STATUSES = (OrderStatus.COMPLETED, OrderStatus.PAID)

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    username: Mapped[str] = mapped_column(String(80), unique=True)
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(160), unique=True)
    pass_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole))
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    image_url: Mapped[str | None] = mapped_column(String(400))
    # user groups: a group head collects users of the same role
    is_group_head: Mapped[bool] = mapped_column(Boolean, default=False)
    group_role: Mapped[UserRole | None] = mapped_column(Enum(UserRole))
    parent_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))

    staff: Mapped["Staff | None"] = relationship(back_populates="user", uselist=False)

# ── Staff & shifts ──────────────────────────────────────────────────────────
class Staff(Base, IdMixin, TSMMixin):
    __tablename__ = "staff"
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"), unique=True)
    position: Mapped[str] = mapped_column(String(60))
    hire_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    hourly_rate: Mapped[float] = mapped_column(Float, default=10.0)
    contact_number: Mapped[str | None] = mapped_column(String(30))
    address: Mapped[str | None] = mapped_column(Text)

    user: Mapped[User] = relationship(back_populates="staff")
    shifts: Mapped[list["Shift"]] = relationship(back_populates="staff", order_by="Shift.start_time")

class Shift(Base, IdMixin, TSMMixin):
    __tablename__ = "shift"
    staff_id: Mapped[str] = mapped_column(String(36), ForeignKey("staff.id"))
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))  # open while ACTIVE
    status: Mapped[ShiftStatus] = mapped_column(Enum(ShiftStatus), default=ShiftStatus.ACTIVE)
    notes: Mapped[str | None] = mapped_column(Text)

    staff: Mapped[Staff] = relationship(back_populates="shifts")

# ── Inventory ───────────────────────────────────────────────────────────────
class Ingredient(Base, IdMixin, TSMMixin):
    __tablename__ = "ingredient"
    name: Mapped[str] = mapped_column(String(160))
    category: Mapped[str] = mapped_column(String(80))
    # reports use this as the per-unit cost of a linked menu item
    quantity: Mapped[float] = mapped_column(Float, default=0)
    current_stock: Mapped[float] = mapped_column(Float, default=0)
    unit: Mapped[str] = mapped_column(String(20))  # e.g. kg, liters, bottles
    min_level: Mapped[float] = mapped_column(Float, default=0)
    price_per_unit: Mapped[float] = mapped_column(Float, default=0)
    location_in_storage: Mapped[str | None] = mapped_column(String(120))
    notes: Mapped[str | None] = mapped_column(Text)

    usage: Mapped[list["IngredientUsage"]] = relationship(back_populates="ingredient", order_by="IngredientUsage.date")

class IngredientUsage(Base, IdMixin, TSMMixin):
    __tablename__ = "ingredient_usage"
    ingredient_id: Mapped[str] = mapped_column(String(36), ForeignKey("ingredient.id"))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    amount: Mapped[float] = mapped_column(Float, default=0)
    type: Mapped[str] = mapped_column(String(40))  # INVENTORY_ADDITION / USAGE

    ingredient: Mapped[Ingredient] = relationship(back_populates="usage")

class PurchaseOrder(Base, IdMixin, TSMMixin):
    __tablename__ = "purchase_order"
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    total: Mapped[float] = mapped_column(Float, default=0)
    created_by: Mapped[str | None] = mapped_column(String(36))

    lines: Mapped[list["PurchaseOrderLine"]] = relationship(back_populates="purchase_order")

class PurchaseOrderLine(Base, IdMixin, TSMMixin):
    __tablename__ = "purchase_order_line"
    purchase_order_id: Mapped[str] = mapped_column(String(36), ForeignKey("purchase_order.id"))
    ingredient_id: Mapped[str] = mapped_column(String(36), ForeignKey("ingredient.id"))
    qty: Mapped[float] = mapped_column(Float)
    total_cost: Mapped[float] = mapped_column(Float, default=0)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="lines")

# ── Menu ────────────────────────────────────────────────────────────────────
menu_item_ingredient = Table(
    "menu_item_ingredient",
    Base.metadata,
    Column("menu_item_id", String(36), ForeignKey("menu_item.id"), primary_key=True),
    Column("ingredient_id", String(36), ForeignKey("ingredient.id"), primary_key=True),
)

class Category(Base, IdMixin, TSMMixin):
    __tablename__ = "category"
    name: Mapped[str] = mapped_column(String(120), unique=True)
    description: Mapped[str | None] = mapped_column(Text)

    menu_items: Mapped[list["MenuItem"]] = relationship(back_populates="category", order_by="MenuItem.name")

class MenuItem(Base, IdMixin, TSMMixin):
    __tablename__ = "menu_item"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[float] = mapped_column(Float)
    category_id: Mapped[str] = mapped_column(String(36), ForeignKey("category.id"))
    image: Mapped[str | None] = mapped_column(String(400))
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    display_options: Mapped[str | None] = mapped_column("metadata", Text)  # JSON

    category: Mapped[Category] = relationship(back_populates="menu_items")
    ingredients: Mapped[list[Ingredient]] = relationship(secondary=menu_item_ingredient)
    order_items: Mapped[list["OrderItem"]] = relationship(back_populates="menu_item")

# ── Orders ──────────────────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "order"
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.PENDING)
    type: Mapped[OrderType] = mapped_column(Enum(OrderType), default=OrderType.DINE_IN)
    # stored independently of the item lines
    total: Mapped[float] = mapped_column(Float, default=0)
    tax: Mapped[float] = mapped_column(Float, default=0)
    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order")

class OrderItem(Base, IdMixin, TSMMixin):
    __tablename__ = "order_item"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id"))
    menu_item_id: Mapped[str] = mapped_column(String(36), ForeignKey("menu_item.id"))
    quantity: Mapped[int] = mapped_column(default=1)
    price: Mapped[float] = mapped_column(Float)  # unit price at time of sale

    order: Mapped[Order] = relationship(back_populates="items")
    menu_item: Mapped[MenuItem | None] = relationship(back_populates="order_items")

# ── Audit ───────────────────────────────────────────────────────────────────
class ActivityLog(Base, IdMixin, TSMMixin):
    __tablename__ = "activity_log"
    action: Mapped[str] = mapped_column(String(60))
    entity_type: Mapped[str | None] = mapped_column(String(40))
    entity_id: Mapped[str | None] = mapped_column(String(36))
    actor_user_id: Mapped[str | None] = mapped_column(String(36))
    details: Mapped[str | None] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
