import logging
import re
from datetime import date
from typing import Dict, List, Mapping, Optional

from models.errors import ValidationError
from models.products import find_product, product_cost, product_margin
from utils.file_manager import SALES_FILE, coerce_id, new_id, read_json, today_iso, write_json
from utils.numbers import to_num

LOG = logging.getLogger(__name__)

# Snapshot fields (unitCost/unitGain/unitPrice/productNameSnapshot) are frozen
EDITABLE_FIELDS = ("place", "dateISO", "hora", "color", "obs")
_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

def _snapshot_value(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)

def normalize_sale(raw: Dict) -> Dict:
    product_id = raw.get("productId")
    return {
        "id": coerce_id(raw.get("id")),
        "productId": "" if product_id is None else str(product_id),
        "qty": to_num(raw.get("qty")),
        "place": raw.get("place") or "",
        "dateISO": raw.get("dateISO") or today_iso(),
        "name": raw.get("name") or "",
        "hora": raw.get("hora") or "",
        "color": raw.get("color") or "",
        "obs": raw.get("obs") or "",
        "unitCost": _snapshot_value(raw.get("unitCost")),
        "unitGain": _snapshot_value(raw.get("unitGain")),
        "unitPrice": _snapshot_value(raw.get("unitPrice")),
        "productNameSnapshot": raw.get("productNameSnapshot") or None,
    }

def get_sales() -> List[Dict]:
    return [normalize_sale(s) for s in read_json(SALES_FILE) or []]

def save_sales(sales: List[Dict]):
    write_json(SALES_FILE, sales)

def normalize_time(value) -> str:
    """'9:5' -> '09:05', '10:30:59' -> '10:30', empty -> ''."""
    text = str(value or "").strip()
    if not text:
        return ""
    return ":".join(part.strip().zfill(2) for part in text.split(":")[:2])

def _validate_date(value) -> str:
    text = str(value or "").strip()
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")

def _validate_color(value) -> str:
    text = str(value or "").strip()
    if text and not _COLOR_RE.match(text):
        raise ValidationError(f"Invalid color '{value}', expected #RRGGBB")
    return text

def build_sale(draft: Dict, products: List[Dict], lookup: Mapping[str, Dict]) -> Dict:
    """Validate a sale draft and freeze the product's current cost, gain and price."""
    product_id = draft.get("productId")
    if product_id in (None, ""):
        raise ValidationError("Choose a product")
    raw_qty = draft.get("qty")
    if raw_qty is None or (isinstance(raw_qty, str) and not raw_qty.strip()):
        raise ValidationError("Enter a quantity")
    qty = to_num(raw_qty)
    if qty <= 0:
        raise ValidationError("Quantity must be > 0")

    product = find_product(products, product_id)
    if product is None:
        LOG.debug("Recording sale for unknown product %r", product_id)
    unit_cost = product_cost(product, lookup) if product else 0.0
    unit_gain = product_margin(product)

    return {
        "id": new_id(),
        "productId": str(product_id),
        "productNameSnapshot": product["nombre"] if product else "",
        "qty": qty,
        "place": str(draft.get("place") or "").strip(),
        "name": str(draft.get("name") or "").strip(),
        "dateISO": _validate_date(draft.get("dateISO") or today_iso()),
        "hora": normalize_time(draft.get("hora")),
        "color": "",
        "obs": "",
        "unitCost": unit_cost,
        "unitGain": unit_gain,
        "unitPrice": unit_cost + unit_gain,
    }

def record_sale(draft: Dict, sales: List[Dict], products: List[Dict],
                lookup: Mapping[str, Dict]) -> Dict:
    # Ingredient stock is informational only; selling never deducts it
    sale = build_sale(draft, products, lookup)
    sales.insert(0, sale)
    LOG.info("Recorded sale %s: %s x %s on %s", sale["id"], sale["qty"],
             sale["productNameSnapshot"] or sale["productId"], sale["dateISO"])
    return sale

def find_sale(sales: List[Dict], sale_id) -> Optional[Dict]:
    for s in sales:
        if s["id"] == str(sale_id):
            return s
    return None

def update_sale(sales: List[Dict], sale_id: str, field: str, value) -> Dict:
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"Field '{field}' cannot be edited on a recorded sale")
    sale = find_sale(sales, sale_id)
    if sale is None:
        raise ValueError(f"Unknown sale: {sale_id}")
    if field == "dateISO":
        value = _validate_date(value)
    elif field == "hora":
        value = normalize_time(value)
    elif field == "color":
        value = _validate_color(value)
    else:
        value = str(value or "")
    sale[field] = value
    return sale

def remove_sale(sales: List[Dict], sale_id: str) -> Dict:
    for idx, s in enumerate(sales):
        if s["id"] == str(sale_id):
            LOG.info("Removed sale %s", s["id"])
            return sales.pop(idx)
    raise ValueError(f"Unknown sale: {sale_id}")
