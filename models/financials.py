from datetime import date
from typing import Dict, List, Mapping, Tuple

from models.products import MISSING_NAME, find_product, product_cost, product_margin
from utils.numbers import to_num

# Compared in place of an empty time so untimed sales sort last; never stored
NO_TIME_SENTINEL = "99:99"

def month_of(date_iso: str) -> str:
    return (date_iso or "")[:7]

def current_month() -> str:
    return date.today().isoformat()[:7]

def available_months(sales: List[Dict]) -> List[str]:
    # lexicographic works for YYYY-MM keys
    return sorted({month_of(s.get("dateISO")) for s in sales if s.get("dateISO")})

def sale_sort_key(sale: Dict) -> Tuple[str, str]:
    return (sale.get("dateISO") or "", sale.get("hora") or NO_TIME_SENTINEL)

def month_sales(sales: List[Dict], month: str) -> List[Dict]:
    """Sales of one YYYY-MM month, oldest first (stable for ties)."""
    return sorted((s for s in sales if month_of(s.get("dateISO")) == month), key=sale_sort_key)

def unit_values(sale: Dict, products: List[Dict], lookup: Mapping[str, Dict]) -> Tuple[float, float, float]:
    """Effective (cost, gain, price) per unit of a sale.

    Snapshots win. Sales recorded before snapshots existed are recomputed from
    the current product and ingredient state, so their figures follow any
    later recipe or margin change.
    """
    product = None
    if sale.get("unitCost") is None or sale.get("unitGain") is None:
        product = find_product(products, sale.get("productId"))
    cost = to_num(sale["unitCost"]) if sale.get("unitCost") is not None else (
        product_cost(product, lookup) if product else 0.0)
    gain = to_num(sale["unitGain"]) if sale.get("unitGain") is not None else product_margin(product)
    price = to_num(sale["unitPrice"]) if sale.get("unitPrice") is not None else cost + gain
    return cost, gain, price

def sale_product_name(sale: Dict, products: List[Dict]) -> str:
    if sale.get("productNameSnapshot"):
        return sale["productNameSnapshot"]
    product = find_product(products, sale.get("productId"))
    return product["nombre"] if product else MISSING_NAME

def margin_pct(gain: float, revenue: float) -> float:
    return (gain / revenue) * 100 if revenue > 0 else 0.0

def aggregate_month(sales: List[Dict], month: str, products: List[Dict],
                    lookup: Mapping[str, Dict]) -> Dict:
    rows = []
    total = {"cost": 0.0, "revenue": 0.0, "gain": 0.0}
    for s in month_sales(sales, month):
        cost, gain, price = unit_values(s, products, lookup)
        qty = to_num(s.get("qty"))
        total["cost"] += cost * qty
        total["revenue"] += price * qty
        total["gain"] += gain * qty
        rows.append({
            **s,
            "product_name": sale_product_name(s, products),
            "unit_cost": cost,
            "unit_gain": gain,
            "unit_price": price,
            "subtotal": price * qty,
        })
    pct = margin_pct(total["gain"], total["revenue"])
    # round
    for k in total:
        total[k] = round(total[k], 4)
    return {"month": month, "sales": rows, "totals": total, "margin_pct": round(pct, 4)}
