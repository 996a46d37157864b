from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session, selectinload

from restodesk.db import get_db
from restodesk.deps import require_manager
from restodesk.models.core import Category, Ingredient, MenuItem, OrderItem
from restodesk.schemas.menu import CategoryIn, MenuItemIn, ReassignIn
from restodesk.services.menu import compose_description, display_options_json, item_out
from restodesk.util.audit import audit

router = APIRouter(prefix="/manager/menu-data", tags=["menu"])


# ---------- helpers ----------

def _category_out(c: Category, items: list | None = None) -> dict:
    out = {"id": c.id, "name": c.name, "description": c.description}
    if items is not None:
        out["menuItems"] = items
    return out

def _name_taken(db: Session, name: str, exclude_id: str | None = None) -> bool:
    q = db.query(Category).filter(Category.name == name)
    if exclude_id:
        q = q.filter(Category.id != exclude_id)
    return q.first() is not None

def _link_ingredients(db: Session, m: MenuItem, ids: list[str] | None):
    if ids is None:
        return
    found = db.query(Ingredient).filter(Ingredient.id.in_(ids)).all() if ids else []
    if len(found) != len(set(ids)):
        raise HTTPException(400, detail="Unknown ingredient id")
    m.ingredients = found


# ---------- MENU ----------

@router.get("")
def menu_data(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    """Categories (by name) with their items and parsed display flags."""
    cats = (
        db.query(Category)
        .options(selectinload(Category.menu_items).selectinload(MenuItem.ingredients))
        .order_by(Category.name.asc())
        .all()
    )
    return {"categories": [_category_out(c, [item_out(m) for m in c.menu_items]) for c in cats]}


# ---------- CATEGORIES ----------

@router.post("/categories", status_code=201)
def create_category(body: CategoryIn, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    if not body.name:
        raise HTTPException(400, detail="Category name is required")
    if _name_taken(db, body.name):
        raise HTTPException(400, detail="A category with this name already exists")
    c = Category(name=body.name, description=body.description or None)
    db.add(c)
    db.flush()
    audit(db, sub, "category", c.id, "CREATE_CATEGORY", {"name": c.name})
    db.commit()
    db.refresh(c)
    return _category_out(c)

@router.put("/categories/{category_id}")
def update_category(category_id: str, body: CategoryIn, db: Session = Depends(get_db),
                    sub: str = Depends(require_manager)):
    if not body.name:
        raise HTTPException(400, detail="Category name is required")
    c = db.get(Category, category_id)
    if not c:
        raise HTTPException(404, detail="Category not found")
    if _name_taken(db, body.name, exclude_id=c.id):
        raise HTTPException(400, detail="A category with this name already exists")
    c.name = body.name
    c.description = body.description or ""
    audit(db, sub, "category", c.id, "UPDATE_CATEGORY", {"name": c.name})
    db.commit()
    db.refresh(c)
    return _category_out(c)

@router.delete("/categories/{category_id}")
def delete_category(category_id: str, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    c = db.get(Category, category_id)
    if not c:
        raise HTTPException(404, detail="Category not found")
    count = db.query(MenuItem).filter(MenuItem.category_id == category_id).count()
    if count:
        raise HTTPException(400, detail=f"Cannot delete category with associated menu items ({count})")
    db.delete(c)
    audit(db, sub, "category", category_id, "DELETE_CATEGORY")
    db.commit()
    return {"success": True}

@router.post("/categories/{category_id}/reassign")
def reassign_items(category_id: str, body: ReassignIn, db: Session = Depends(get_db),
                   sub: str = Depends(require_manager)):
    if not body.target_category_id:
        raise HTTPException(400, detail="Target category ID is required")
    source = db.get(Category, category_id)
    target = db.get(Category, body.target_category_id)
    if not source or not target:
        raise HTTPException(404, detail="One or both categories not found")
    count = (
        db.query(MenuItem)
        .filter(MenuItem.category_id == source.id)
        .update({MenuItem.category_id: target.id}, synchronize_session="fetch")
    )
    audit(db, sub, "category", source.id, "REASSIGN_ITEMS", {"target": target.id, "count": count})
    db.commit()
    return {
        "success": True,
        "message": f'Reassigned {count} menu items from "{source.name}" to "{target.name}"',
        "count": count,
    }


# ---------- ITEMS ----------

@router.post("/items", status_code=201)
def create_item(body: MenuItemIn, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    if not body.name or not body.price or not body.category:
        raise HTTPException(400, detail="Name, price, and category are required")
    if not db.get(Category, body.category):
        raise HTTPException(400, detail="Selected category not found")
    m = MenuItem(
        name=body.name,
        description=compose_description(body),
        price=body.price,
        category_id=body.category,
        image=body.image_url or None,
        is_available=True if body.is_available is None else body.is_available,
        display_options=display_options_json(body),
    )
    db.add(m)
    _link_ingredients(db, m, body.ingredient_ids)
    db.flush()
    audit(db, sub, "menu_item", m.id, "CREATE_MENU_ITEM", {"name": m.name})
    db.commit()
    db.refresh(m)
    return item_out(m, with_category=True)

@router.put("/items/{item_id}")
def update_item(item_id: str, body: MenuItemIn, db: Session = Depends(get_db),
                sub: str = Depends(require_manager)):
    if not body.name or body.price is None:
        raise HTTPException(400, detail="Name and price are required")
    m = db.get(MenuItem, item_id)
    if not m:
        raise HTTPException(404, detail="Menu item not found")
    if body.category:
        if not db.get(Category, body.category):
            raise HTTPException(400, detail="Selected category not found")
        m.category_id = body.category
    m.name = body.name
    m.description = compose_description(body)
    m.price = body.price
    m.image = body.image_url or None
    m.is_available = True if body.is_available is None else body.is_available
    m.display_options = display_options_json(body)
    _link_ingredients(db, m, body.ingredient_ids)
    audit(db, sub, "menu_item", m.id, "UPDATE_MENU_ITEM", {"name": m.name})
    db.commit()
    db.refresh(m)
    return item_out(m, with_category=True)

@router.delete("/items/{item_id}", status_code=204)
def delete_item(item_id: str, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    m = db.get(MenuItem, item_id)
    if not m:
        raise HTTPException(404, detail="Menu item not found")
    if db.query(OrderItem).filter(OrderItem.menu_item_id == item_id).first():
        # sold items stay so historical reports keep their lines
        raise HTTPException(409, detail="Menu item has order history")
    m.ingredients = []
    db.delete(m)
    audit(db, sub, "menu_item", item_id, "DELETE_MENU_ITEM")
    db.commit()
    return Response(status_code=204)
