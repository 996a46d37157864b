# restodesk/routers/inventory.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from restodesk.db import get_db
from restodesk.deps import require_manager
from restodesk.models.common import as_utc
from restodesk.models.core import (
    Ingredient, IngredientUsage, PurchaseOrder, PurchaseOrderLine, menu_item_ingredient,
)
from restodesk.services import inventory
from restodesk.util.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manager", tags=["inventory"])

REQUIRED = ("name", "category", "currentStock", "unit", "minLevel", "pricePerUnit")


def _num(body: dict, key: str) -> float:
    try:
        return float(body[key])
    except (TypeError, ValueError):
        raise HTTPException(400, detail=f"Invalid number for {key}")


def ingredient_out(i: Ingredient) -> dict:
    return {
        "id": i.id,
        "name": i.name,
        "category": i.category,
        "quantity": i.quantity,
        "currentStock": i.current_stock,
        "unit": i.unit,
        "minLevel": i.min_level,
        "pricePerUnit": i.price_per_unit,
        "locationInStorage": i.location_in_storage,
        "notes": i.notes,
    }


@router.get("/inventory-data")
def inventory_data(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    ingredients = db.query(Ingredient).options(selectinload(Ingredient.usage)).order_by(Ingredient.name.asc()).all()
    items = [inventory.item_summary(i) for i in ingredients]
    return {
        "stats": {
            "totalItems": len(items),
            "lowStockItems": sum(1 for i in items if i["currentStock"] < i["minLevel"]),
            "totalValue": sum(i["value"] for i in items),
            "categories": inventory.distinct_categories(ingredients),
        },
        "items": items,
        "analysis": inventory.analyze(items, ingredients),
    }


@router.post("/inventory-data/add")
def add_item(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    if any(body.get(k) in (None, "") for k in REQUIRED):
        raise HTTPException(400, detail="Missing required fields")
    stock = _num(body, "currentStock")
    i = Ingredient(
        name=body["name"],
        category=body["category"],
        quantity=stock,
        current_stock=stock,
        unit=body["unit"],
        min_level=_num(body, "minLevel"),
        price_per_unit=_num(body, "pricePerUnit"),
        location_in_storage=body.get("locationInStorage") or None,
        notes=body.get("notes") or None,
    )
    db.add(i)
    db.flush()
    # zero-amount marker so the item has a usage history from day one
    db.add(IngredientUsage(ingredient_id=i.id, amount=0, type="INVENTORY_ADDITION"))
    audit(db, sub, "ingredient", i.id, "ADD_INVENTORY_ITEM", {"name": i.name})
    db.commit()
    db.refresh(i)
    return {"success": True, "message": "Ingredient added successfully", "data": ingredient_out(i)}


@router.put("/inventory-data/update")
def update_item(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    if not body.get("id"):
        raise HTTPException(400, detail="Item ID is required")
    i = db.get(Ingredient, body["id"])
    if not i:
        raise HTTPException(404, detail="Item not found")

    for key, attr in (("name", "name"), ("category", "category"), ("unit", "unit"),
                      ("locationInStorage", "location_in_storage"), ("notes", "notes")):
        if key in body:
            setattr(i, attr, body[key])
    for key, attr in (("currentStock", "current_stock"), ("minLevel", "min_level"),
                      ("pricePerUnit", "price_per_unit")):
        if key in body:
            setattr(i, attr, _num(body, key))

    audit(db, sub, "ingredient", i.id, "UPDATE_INVENTORY_ITEM", {k: v for k, v in body.items() if k != "id"})
    db.commit()
    db.refresh(i)
    return {"success": True, "message": "Item updated successfully", "data": ingredient_out(i)}


@router.delete("/inventory-data/delete")
def delete_item(id: str | None = None, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    if not id:
        raise HTTPException(400, detail="Item ID is required")
    i = db.get(Ingredient, id)
    if not i:
        raise HTTPException(404, detail="Item not found")
    db.query(IngredientUsage).filter(IngredientUsage.ingredient_id == id).delete()
    db.query(PurchaseOrderLine).filter(PurchaseOrderLine.ingredient_id == id).delete()
    db.execute(menu_item_ingredient.delete().where(menu_item_ingredient.c.ingredient_id == id))
    i_name = i.name
    db.delete(i)
    audit(db, sub, "ingredient", id, "DELETE_INVENTORY_ITEM", {"name": i_name})
    db.commit()
    return {"success": True, "message": "Item deleted successfully"}


@router.post("/inventory-data/order", summary="Restock purchase order")
def order_items(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    """
    body: {items: [{id, orderQuantity, totalCost?}, ...]}
    All stock increments and the purchase order commit together.
    """
    items = body.get("items")
    if not isinstance(items, list) or not items:
        raise HTTPException(400, detail="No items to order")

    po = PurchaseOrder(status="PENDING", created_by=sub)
    db.add(po)
    db.flush()
    total = 0.0
    for line in items:
        if not isinstance(line, dict):
            raise HTTPException(400, detail="Invalid order line")
        try:
            qty = float(line.get("orderQuantity") or 0)
            cost = float(line.get("totalCost") or 0)
        except (TypeError, ValueError):
            raise HTTPException(400, detail="Invalid orderQuantity or totalCost")
        total += cost
        ing = db.get(Ingredient, line.get("id"))
        if not ing:
            logger.warning("purchase order %s: ingredient %s not found", po.id, line.get("id"))
            continue
        ing.quantity += qty
        ing.current_stock += qty
        db.add(PurchaseOrderLine(purchase_order_id=po.id, ingredient_id=ing.id, qty=qty, total_cost=cost))
    po.total = total
    audit(db, sub, "purchase_order", po.id, "CREATE_PURCHASE_ORDER", {"items": len(items)})
    db.commit()
    db.refresh(po)
    return {
        "success": True,
        "message": "Purchase order generated successfully",
        "data": {
            "orderId": po.id,
            "orderDate": as_utc(po.created_at).isoformat(),
            "status": po.status,
            "totalAmount": po.total,
            "itemCount": len(items),
        },
    }


@router.get("/inventory-data/category")
def list_categories(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    rows = db.query(Ingredient).order_by(Ingredient.created_at.asc()).all()
    return {"categories": inventory.distinct_categories(rows)}


@router.post("/inventory-data/category")
def add_category(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    name = (body.get("name") or "").strip()
    if not name:
        raise HTTPException(400, detail="Category name is required")
    if db.query(Ingredient).filter(Ingredient.category == name).first():
        return {"success": False, "message": "Category already exists", "existing": True}
    # categories live on ingredients, so a placeholder row establishes one
    placeholder = Ingredient(
        name=f"{name} Category (Sample)",
        category=name,
        quantity=0,
        current_stock=0,
        unit="unit",
        min_level=0,
        price_per_unit=0,
    )
    db.add(placeholder)
    db.flush()
    audit(db, sub, "ingredient", placeholder.id, "ADD_INVENTORY_CATEGORY", {"category": name})
    db.commit()
    return {
        "success": True,
        "message": "Category added successfully",
        "data": {"category": name, "placeholderId": placeholder.id},
    }


@router.get("/inventory-item/{item_id}")
def inventory_item(item_id: str, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    i = (
        db.query(Ingredient)
        .options(selectinload(Ingredient.usage))
        .filter(Ingredient.id == item_id)
        .first()
    )
    if not i:
        raise HTTPException(404, detail="Ingredient not found")
    out = ingredient_out(i)
    out.update({
        "maxLevel": i.min_level * 4,
        "reorderPoint": i.min_level * 1.5,
        "locationInStorage": i.location_in_storage or "Main Storage",
        "notes": i.notes or "",
        "updatedAt": as_utc(i.updated_at).isoformat(),
        "usageData": inventory.item_usage(i),
    })
    return out
