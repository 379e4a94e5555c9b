"""
Local MCP server for the shop ledger.

Exposes the ingredient ledger, product catalog, sale recorder and monthly
reports as FastMCP tools. Every tool reads and writes the same JSON files as
the Flask app (see `utils.file_manager`) and answers with an MCP content
array holding one JSON text item.
"""
import json
import logging
from typing import Any, Dict

from fastmcp import FastMCP

from models.financials import aggregate_month, available_months, current_month, month_sales
from models.ingredients import (
    add_ingredient, get_ingredients, ingredient_lookup, inventory_value, save_ingredients,
)
from models.products import catalog_view, get_products, save_product, save_products
from models.reports import export_month_csv, print_sheet
from models.sales import get_sales, record_sale, save_sales, update_sale
from utils.file_manager import ensure_defaults, read_config

LOG = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

server_instructions = """
This MCP server manages a small shop's ingredient stock, product recipes and
sales ledger. Sales freeze the product's cost, margin and price when recorded
and never deduct ingredient stock.
"""

def _content(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}

def _parse_arg(arg: str) -> Dict[str, Any]:
    data = json.loads(arg) if arg and arg.strip() else {}
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data

def create_server() -> FastMCP:
    ensure_defaults()
    mcp = FastMCP(name="Shop Ledger Local MCP", instructions=server_instructions)

    @mcp.tool()
    async def list_ingredients() -> Dict[str, Any]:
        """
        Return every ingredient with its stock, unit price and the total
        inventory value (sum of quantity * price).
        """
        ingredients = get_ingredients()
        return _content({"ingredients": ingredients,
                         "inventory_value": round(inventory_value(ingredients), 4)})

    @mcp.tool()
    async def create_ingredient(arg: str) -> Dict[str, Any]:
        """
        Add an ingredient.

        The `arg` parameter is a JSON object: {"nombre": "Rose", "cantidad": 100, "precio": "0,50"}.
        Quantity and price accept either '.' or ',' as decimal separator.

        Returns:
            MCP content array with {"ingredient": {...}} or {"error": "..."}.
        """
        try:
            data = _parse_arg(arg)
        except ValueError:
            return _content({"error": "Invalid JSON argument"})
        ingredients = get_ingredients()
        try:
            item = add_ingredient(ingredients, data.get("nombre"), data.get("cantidad"), data.get("precio"))
        except ValueError as e:
            return _content({"error": str(e)})
        save_ingredients(ingredients)
        return _content({"ingredient": item})

    @mcp.tool()
    async def list_products() -> Dict[str, Any]:
        """
        Return the product catalog with live unit cost, margin and displayed
        price. A null price means neither margin nor explicit price is set.
        """
        lookup = ingredient_lookup(get_ingredients())
        return _content({"products": catalog_view(get_products(), lookup)})

    @mcp.tool()
    async def upsert_product(arg: str) -> Dict[str, Any]:
        """
        Create or edit a product.

        The `arg` parameter is a JSON draft:
          {"id": "<optional, edits when present>", "nombre": "Bouquet",
           "ganancia": 3, "precioVenta": "", "receta": [{"insumoId": "...", "cantidad": 5}]}

        Incomplete recipe lines are dropped. When no explicit price is given
        and a margin is, the stored price is cost + margin rounded to cents.
        """
        try:
            data = _parse_arg(arg)
        except ValueError:
            return _content({"error": "Invalid JSON argument"})
        lookup = ingredient_lookup(get_ingredients())
        products = get_products()
        try:
            product = save_product(data, products, lookup, edit_id=data.get("id"))
        except ValueError as e:
            return _content({"error": str(e)})
        save_products(products)
        return _content({"product": product})

    @mcp.tool()
    async def sell(arg: str) -> Dict[str, Any]:
        """
        Record a sale.

        The `arg` parameter is a JSON draft:
          {"productId": "...", "qty": 2, "dateISO": "2024-05-10", "hora": "9:5",
           "place": "Market", "name": "Ana"}

        Returns:
            MCP content array with the recorded sale, including its frozen
            unitCost/unitGain/unitPrice snapshot, or {"error": "..."}.
        """
        try:
            data = _parse_arg(arg)
        except ValueError:
            return _content({"error": "Invalid JSON argument"})
        sales = get_sales()
        try:
            sale = record_sale(data, sales, get_products(), ingredient_lookup(get_ingredients()))
        except ValueError as e:
            return _content({"error": str(e)})
        save_sales(sales)
        return _content({"sale": sale})

    @mcp.tool()
    async def edit_sale(arg: str) -> Dict[str, Any]:
        """
        Edit the mutable fields of a sale (place, dateISO, hora, color, obs).

        The `arg` parameter is a JSON object: {"id": "...", "obs": "deliver at 5"}.
        Snapshot fields cannot be edited.
        """
        try:
            data = _parse_arg(arg)
        except ValueError:
            return _content({"error": "Invalid JSON argument"})
        sale_id = data.pop("id", None)
        sales = get_sales()
        try:
            sale = None
            for field, value in data.items():
                sale = update_sale(sales, sale_id, field, value)
        except ValueError as e:
            return _content({"error": str(e)})
        if sale is None:
            return _content({"error": "Provide 'id' and at least one field"})
        save_sales(sales)
        return _content({"sale": sale})

    @mcp.tool()
    async def month_summary(month: str = "") -> Dict[str, Any]:
        """
        Return the sales of a month (YYYY-MM, default current month) sorted by
        date and time, with totals for cost, revenue and gain and the margin
        percentage.
        """
        month = month or current_month()
        summary = aggregate_month(get_sales(), month, get_products(), ingredient_lookup(get_ingredients()))
        return _content(summary)

    @mcp.tool()
    async def months_with_sales() -> Dict[str, Any]:
        """Return the YYYY-MM months that have at least one sale."""
        return _content({"months": available_months(get_sales())})

    @mcp.tool()
    async def export_month(month: str = "") -> Dict[str, Any]:
        """
        Return the CSV report of a month (YYYY-MM, default current month) as text.
        """
        month = month or current_month()
        csv_text = export_month_csv(get_sales(), month, get_products(),
                                    ingredient_lookup(get_ingredients()),
                                    delimiter=read_config()["csv_delimiter"])
        return _content({"month": month, "csv": csv_text})

    @mcp.tool()
    async def preparation_sheet(arg: str = "") -> Dict[str, Any]:
        """
        Return the preparation sheet: per selected sale, the total quantity of
        each recipe ingredient plus the sale's observations.

        The `arg` parameter is a JSON object {"month": "2024-05", "ids": [...]};
        without ids every sale of the month is included.
        """
        try:
            data = _parse_arg(arg)
        except ValueError:
            return _content({"error": "Invalid JSON argument"})
        selected = month_sales(get_sales(), data.get("month") or current_month())
        ids = data.get("ids")
        if ids is None:
            ids = [s["id"] for s in selected]
        blocks = print_sheet(selected, ids, get_products(), ingredient_lookup(get_ingredients()))
        return _content({"blocks": blocks})

    return mcp


def main():
    server = create_server()
    LOG.info("Starting local MCP server on 0.0.0.0:8000 (HTTP)")
    server.run(transport="http", host="0.0.0.0", port=8000, path="/mcp")


if __name__ == "__main__":
    main()
