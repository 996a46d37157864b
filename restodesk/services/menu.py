import json
import logging
import re

from restodesk.models.common import as_utc
from restodesk.models.core import MenuItem
from restodesk.schemas.menu import MenuItemIn

logger = logging.getLogger(__name__)

DISPLAY_FLAGS = ("showDescription", "showIngredients", "showSpicyLevel")

# sections appended by compose_description; stripped before recomposing
_SECTIONS = [
    re.compile(r"(?:^|\n\n)Dietary Info:[\s\S]*?(?=\n\n|$)"),
    re.compile(r"(?:^|\n\n)Ingredients:[\s\S]*?(?=\n\n|$)"),
    re.compile(r"(?:^|\n\n)Preparation Time:[\s\S]*?(?=\n\n|$)"),
]


def strip_sections(text: str | None) -> str:
    text = text or ""
    for pat in _SECTIONS:
        text = pat.sub("", text, count=1)
    return text.strip()


def compose_description(body: MenuItemIn) -> str:
    """Base description followed by dietary info, ingredients and preparation time."""
    base = strip_sections(body.description)
    parts = [base] if base else []
    dietary = []
    if body.is_vegetarian:
        dietary.append("Vegetarian")
    if body.is_vegan:
        dietary.append("Vegan")
    if body.is_gluten_free:
        dietary.append("Gluten-Free")
    if body.spicy_level > 0:
        dietary.append(f"Spicy Level: {body.spicy_level}")
    if dietary:
        parts.append(f"Dietary Info: {', '.join(dietary)}")
    if body.ingredients:
        parts.append(f"Ingredients: {body.ingredients}")
    if body.preparation_time:
        parts.append(f"Preparation Time: {body.preparation_time} minutes")
    return "\n\n".join(parts)


def display_options_json(body: MenuItemIn) -> str:
    return json.dumps({
        "showDescription": body.show_description,
        "showIngredients": body.show_ingredients,
        "showSpicyLevel": body.show_spicy_level,
    })


def parse_display_options(raw: str | None) -> dict:
    """Flags default to True; unreadable metadata is logged and ignored."""
    flags = dict.fromkeys(DISPLAY_FLAGS, True)
    if not raw:
        return flags
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("unreadable menu item metadata: %r", raw)
        return flags
    if isinstance(data, dict):
        for key in DISPLAY_FLAGS:
            flags[key] = data.get(key) is not False
    return flags


def item_out(m: MenuItem, with_category: bool = False) -> dict:
    out = {
        "id": m.id,
        "name": m.name,
        "description": m.description,
        "price": m.price,
        "categoryId": m.category_id,
        "image": m.image,
        "isAvailable": bool(m.is_available),
        "ingredientIds": [i.id for i in m.ingredients],
        "createdAt": as_utc(m.created_at).isoformat() if m.created_at else None,
        **parse_display_options(m.display_options),
    }
    if with_category and m.category:
        out["category"] = {"id": m.category.id, "name": m.category.name, "description": m.category.description}
    return out
