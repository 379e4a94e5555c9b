"""Product catalog: recipes, unit cost and the margin/price policy.

A product is stored as ``{id, nombre, ganancia, precioVenta, receta}`` where
``receta`` is a list of ``{insumoId, cantidad}`` lines. ``ganancia`` (fixed
margin added to cost) and ``precioVenta`` (explicit price) are optional and
kept as ``None`` when empty so that "no margin" differs from "zero margin".
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from models.errors import ValidationError
from models.ingredients import find_ingredient
from utils.file_manager import PRODUCTS_FILE, coerce_id, new_id, read_json, write_json
from utils.numbers import parse_decimal, round2, to_num

LOG = logging.getLogger(__name__)

MISSING_NAME = "—"

def _normalize_line(raw: Dict) -> Dict:
    ingredient_id = raw.get("insumoId")
    return {
        "insumoId": "" if ingredient_id is None else str(ingredient_id),
        "cantidad": raw.get("cantidad"),
    }

def normalize_product(raw: Dict) -> Dict:
    return {
        "id": coerce_id(raw.get("id")),
        "nombre": str(raw.get("nombre") or ""),
        "ganancia": parse_decimal(raw.get("ganancia")),
        "precioVenta": parse_decimal(raw.get("precioVenta")),
        "receta": [_normalize_line(r) for r in raw.get("receta") or []],
    }

def get_products() -> List[Dict]:
    return [normalize_product(p) for p in read_json(PRODUCTS_FILE) or []]

def save_products(products: List[Dict]):
    write_json(PRODUCTS_FILE, products)

def find_product(products: Iterable[Dict], product_id) -> Optional[Dict]:
    if product_id is None:
        return None
    for p in products:
        if str(p["id"]) == str(product_id):
            return p
    return None

def line_cost(line: Dict, lookup: Mapping[str, Dict]) -> float:
    ingredient = find_ingredient(lookup, line.get("insumoId"))
    if ingredient is None:
        LOG.debug("Recipe line references unknown ingredient %r", line.get("insumoId"))
        return 0.0
    return to_num(line.get("cantidad")) * float(ingredient["precio"])

def recipe_cost(recipe: Optional[Iterable[Dict]], lookup: Mapping[str, Dict]) -> float:
    """Unit cost of a recipe against the current ingredient prices.

    Unknown ingredients and unparsable quantities contribute 0.
    """
    return sum((line_cost(line, lookup) for line in recipe or []), 0.0)

def product_cost(product: Dict, lookup: Mapping[str, Dict]) -> float:
    return recipe_cost(product.get("receta"), lookup)

def product_margin(product: Optional[Dict]) -> float:
    if product is None:
        return 0.0
    return to_num(product.get("ganancia"))

def product_price(product: Dict, lookup: Mapping[str, Dict]) -> Optional[float]:
    """Displayed price: cost + margin, else the explicit price, else unknown (None)."""
    margin = parse_decimal(product.get("ganancia"))
    if margin is not None:
        return product_cost(product, lookup) + margin
    return parse_decimal(product.get("precioVenta"))

def clean_recipe(lines: Optional[Iterable[Dict]]) -> List[Dict]:
    """Drop incomplete lines (no ingredient or no quantity)."""
    cleaned = []
    for raw in lines or []:
        line = _normalize_line(raw)
        qty = line["cantidad"]
        if not line["insumoId"] or qty is None or (isinstance(qty, str) and not qty.strip()):
            continue
        parsed = parse_decimal(qty)
        if parsed is not None:
            line["cantidad"] = parsed
        cleaned.append(line)
    return cleaned

def draft_cost(draft: Dict, lookup: Mapping[str, Dict]) -> Dict:
    """Live cost preview of an unsaved product draft."""
    lines = []
    for raw in draft.get("receta") or []:
        line = _normalize_line(raw)
        ingredient = find_ingredient(lookup, line["insumoId"])
        lines.append({
            "insumoId": line["insumoId"],
            "nombre": ingredient["nombre"] if ingredient else MISSING_NAME,
            "cantidad": line["cantidad"],
            "subtotal": line_cost(line, lookup),
        })
    return {"lines": lines, "costo": sum((l["subtotal"] for l in lines), 0.0)}

def build_product(draft: Dict, lookup: Mapping[str, Dict], product_id: Optional[str] = None) -> Dict:
    name = str(draft.get("nombre") or "").strip()
    if not name:
        raise ValidationError("Give the product a name")
    recipe = clean_recipe(draft.get("receta"))
    margin = parse_decimal(draft.get("ganancia"))
    price_input = draft.get("precioVenta")
    price_empty = price_input is None or (isinstance(price_input, str) and not price_input.strip())
    if price_empty and margin is not None:
        price = round2(recipe_cost(recipe, lookup) + margin)
    else:
        price = parse_decimal(price_input)
    return {
        "id": product_id or new_id(),
        "nombre": name,
        "precioVenta": price,
        "ganancia": margin,
        "receta": recipe,
    }

def save_product(draft: Dict, products: List[Dict], lookup: Mapping[str, Dict],
                 edit_id: Optional[str] = None) -> Dict:
    """Validate a draft and commit it: replace by id when editing, else prepend."""
    if edit_id:
        existing = find_product(products, edit_id)
        if existing is None:
            raise ValueError(f"Unknown product: {edit_id}")
        existing.update(build_product(draft, lookup, product_id=existing["id"]))
        LOG.info("Updated product %s", existing["id"])
        return existing
    product = build_product(draft, lookup)
    products.insert(0, product)
    LOG.info("Created product %s (%s)", product["id"], product["nombre"])
    return product

def remove_product(products: List[Dict], product_id: str, confirm: bool = False) -> Dict:
    # Sales keep their own snapshots, so nothing cascades
    if not confirm:
        raise ValidationError("Deleting a product must be confirmed")
    for idx, p in enumerate(products):
        if str(p["id"]) == str(product_id):
            LOG.info("Removed product %s", p["id"])
            return products.pop(idx)
    raise ValueError(f"Unknown product: {product_id}")

def catalog_view(products: List[Dict], lookup: Mapping[str, Dict]) -> List[Dict]:
    return [
        {
            "id": p["id"],
            "nombre": p["nombre"],
            "costo": product_cost(p, lookup),
            "ganancia": parse_decimal(p.get("ganancia")),
            "precio": product_price(p, lookup),
        }
        for p in products
    ]
