import logging
from typing import Dict, List, Mapping

from models.errors import ValidationError
from utils.file_manager import INGREDIENTS_FILE, coerce_id, new_id, read_json, write_json
from utils.numbers import parse_decimal, to_num

LOG = logging.getLogger(__name__)

NUMERIC_FIELDS = ("cantidad", "precio")
EDITABLE_FIELDS = ("nombre",) + NUMERIC_FIELDS

def normalize_ingredient(raw: Dict) -> Dict:
    return {
        "id": coerce_id(raw.get("id")),
        "nombre": str(raw.get("nombre") or ""),
        "cantidad": to_num(raw.get("cantidad")),
        "precio": to_num(raw.get("precio")),
    }

def get_ingredients() -> List[Dict]:
    return [normalize_ingredient(i) for i in read_json(INGREDIENTS_FILE) or []]

def save_ingredients(ingredients: List[Dict]):
    write_json(INGREDIENTS_FILE, ingredients)

def ingredient_lookup(ingredients: List[Dict]) -> Dict[str, Dict]:
    return {str(i["id"]): i for i in ingredients}

def find_ingredient(lookup: Mapping[str, Dict], ingredient_id):
    """None when the id dangles; callers treat that as a zero-valued ingredient."""
    if ingredient_id is None:
        return None
    return lookup.get(str(ingredient_id))

def add_ingredient(ingredients: List[Dict], nombre, cantidad, precio) -> Dict:
    name = str(nombre or "").strip()
    if not name or cantidad in (None, "") or precio in (None, ""):
        raise ValidationError("Name, quantity and price are required")
    qty = parse_decimal(cantidad)
    price = parse_decimal(precio)
    if qty is None or price is None:
        raise ValidationError("Quantity and price must be valid numbers (e.g. 2.5 or 2,5)")
    item = {"id": new_id(), "nombre": name, "cantidad": qty, "precio": price}
    ingredients.append(item)
    LOG.info("Added ingredient %s (%s)", item["id"], name)
    return item

def edit_ingredient(ingredients: List[Dict], ingredient_id: str, field: str, value) -> Dict:
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"Field '{field}' cannot be edited")
    for item in ingredients:
        if item["id"] == str(ingredient_id):
            item[field] = str(value or "") if field == "nombre" else to_num(value)
            return item
    raise ValueError(f"Unknown ingredient: {ingredient_id}")

def remove_ingredient(ingredients: List[Dict], ingredient_id: str) -> Dict:
    # Recipes keep their reference; it resolves as an unknown ingredient from now on
    for idx, item in enumerate(ingredients):
        if item["id"] == str(ingredient_id):
            LOG.info("Removed ingredient %s", item["id"])
            return ingredients.pop(idx)
    raise ValueError(f"Unknown ingredient: {ingredient_id}")

def inventory_value(ingredients: List[Dict]) -> float:
    return sum(float(i["cantidad"]) * float(i["precio"]) for i in ingredients)
