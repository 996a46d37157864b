from typing import List, Optional

from restodesk.schemas.common import CamelModel

class CategoryIn(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None

class ReassignIn(CamelModel):
    target_category_id: Optional[str] = None

class MenuItemIn(CamelModel):
    # required fields are checked by the handler so they answer 400, not 422
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None  # category id
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_available: Optional[bool] = None

    # folded into the description text
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    spicy_level: int = 0
    ingredients: Optional[str] = None
    preparation_time: Optional[int] = None

    # display options, stored as JSON
    show_description: bool = True
    show_ingredients: bool = True
    show_spicy_level: bool = True

    # links to inventory ingredients for costing
    ingredient_ids: Optional[List[str]] = None
