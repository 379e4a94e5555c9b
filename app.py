import logging

from flask import Flask, Response, jsonify, request

from models.errors import ValidationError
from models.financials import aggregate_month, available_months, current_month, month_sales
from models.ingredients import (
    add_ingredient, edit_ingredient, get_ingredients, ingredient_lookup,
    inventory_value, remove_ingredient, save_ingredients,
)
from models.products import (
    catalog_view, draft_cost, find_product, get_products, remove_product,
    save_product, save_products,
)
from models.reports import export_month_csv, print_sheet, print_sheet_pdf, sale_detail
from models.sales import (
    find_sale, get_sales, record_sale, remove_sale, save_sales, update_sale,
)
from utils.file_manager import (
    CONFIG_FILE, DEFAULTS, INGREDIENTS_FILE, PRODUCTS_FILE, SALES_FILE,
    ensure_defaults, read_config, write_json,
)

LOG = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

ensure_defaults()
app = Flask(__name__)

def _error(exc: Exception):
    # ValidationError is user input; a bare ValueError here means an unknown id
    status = 400 if isinstance(exc, ValidationError) else 404
    return jsonify({"ok": False, "error": str(exc)}), status

def _body() -> dict:
    return request.get_json(force=True, silent=True) or {}

# -------- Ingredients --------
@app.get("/ingredients")
def ingredients_get():
    ingredients = get_ingredients()
    return jsonify({"ok": True, "ingredients": ingredients,
                    "inventory_value": round(inventory_value(ingredients), 4)})

@app.post("/ingredients")
def ingredients_add():
    data = _body()
    ingredients = get_ingredients()
    try:
        item = add_ingredient(ingredients, data.get("nombre"), data.get("cantidad"), data.get("precio"))
    except ValueError as e:
        return _error(e)
    save_ingredients(ingredients)
    return jsonify({"ok": True, "ingredient": item}), 201

@app.patch("/ingredients/<ingredient_id>")
def ingredients_edit(ingredient_id):
    data = _body()
    ingredients = get_ingredients()
    try:
        item = None
        for field, value in data.items():
            item = edit_ingredient(ingredients, ingredient_id, field, value)
        if item is None:
            raise ValidationError("Provide at least one field to edit")
    except ValueError as e:
        return _error(e)
    save_ingredients(ingredients)
    return jsonify({"ok": True, "ingredient": item})

@app.delete("/ingredients/<ingredient_id>")
def ingredients_delete(ingredient_id):
    ingredients = get_ingredients()
    try:
        removed = remove_ingredient(ingredients, ingredient_id)
    except ValueError as e:
        return _error(e)
    save_ingredients(ingredients)
    return jsonify({"ok": True, "removed": removed})

# -------- Products --------
@app.get("/products")
def products_get():
    lookup = ingredient_lookup(get_ingredients())
    return jsonify({"ok": True, "products": catalog_view(get_products(), lookup)})

@app.get("/products/<product_id>")
def products_get_one(product_id):
    product = find_product(get_products(), product_id)
    if product is None:
        return jsonify({"ok": False, "error": f"Unknown product: {product_id}"}), 404
    return jsonify({"ok": True, "product": product})

@app.post("/products/cost")
def products_cost_preview():
    lookup = ingredient_lookup(get_ingredients())
    return jsonify({"ok": True, **draft_cost(_body(), lookup)})

@app.post("/products")
def products_create():
    return _save_product(None)

@app.put("/products/<product_id>")
def products_update(product_id):
    return _save_product(product_id)

def _save_product(edit_id):
    lookup = ingredient_lookup(get_ingredients())
    products = get_products()
    try:
        product = save_product(_body(), products, lookup, edit_id=edit_id)
    except ValueError as e:
        return _error(e)
    save_products(products)
    return jsonify({"ok": True, "product": product}), (200 if edit_id else 201)

@app.delete("/products/<product_id>")
def products_delete(product_id):
    confirm = bool(_body().get("confirm")) or request.args.get("confirm") in ("1", "true", "yes")
    products = get_products()
    try:
        removed = remove_product(products, product_id, confirm=confirm)
    except ValueError as e:
        return _error(e)
    save_products(products)
    return jsonify({"ok": True, "removed": removed})

# -------- Sales --------
@app.get("/sales")
def sales_month():
    month = request.args.get("month") or current_month()
    summary = aggregate_month(get_sales(), month, get_products(), ingredient_lookup(get_ingredients()))
    return jsonify({"ok": True, **summary})

@app.get("/sales/months")
def sales_months():
    return jsonify({"ok": True, "months": available_months(get_sales())})

@app.post("/sales")
def sales_record():
    sales = get_sales()
    try:
        sale = record_sale(_body(), sales, get_products(), ingredient_lookup(get_ingredients()))
    except ValueError as e:
        return _error(e)
    save_sales(sales)
    return jsonify({"ok": True, "sale": sale}), 201

@app.patch("/sales/<sale_id>")
def sales_edit(sale_id):
    data = _body()
    sales = get_sales()
    try:
        sale = None
        for field, value in data.items():
            sale = update_sale(sales, sale_id, field, value)
        if sale is None:
            raise ValidationError("Provide at least one field to edit")
    except ValueError as e:
        return _error(e)
    save_sales(sales)
    return jsonify({"ok": True, "sale": sale})

@app.delete("/sales/<sale_id>")
def sales_delete(sale_id):
    sales = get_sales()
    try:
        removed = remove_sale(sales, sale_id)
    except ValueError as e:
        return _error(e)
    save_sales(sales)
    return jsonify({"ok": True, "removed": removed})

@app.get("/sales/<sale_id>/detail")
def sales_detail(sale_id):
    sale = find_sale(get_sales(), sale_id)
    if sale is None:
        return jsonify({"ok": False, "error": f"Unknown sale: {sale_id}"}), 404
    detail = sale_detail(sale, get_products(), ingredient_lookup(get_ingredients()))
    return jsonify({"ok": True, "detail": detail})

@app.get("/sales/export.csv")
def sales_export():
    month = request.args.get("month") or current_month()
    cfg = read_config()
    csv_text = export_month_csv(get_sales(), month, get_products(),
                                ingredient_lookup(get_ingredients()),
                                delimiter=cfg["csv_delimiter"])
    return Response(
        csv_text,
        mimetype="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=ventas_{month}.csv"},
    )

def _sheet_blocks():
    data = _body()
    month = data.get("month") or current_month()
    ids = data.get("ids")
    selected = month_sales(get_sales(), month)
    if ids is None:
        # nothing selected means the whole month
        ids = [s["id"] for s in selected]
    return print_sheet(selected, ids, get_products(), ingredient_lookup(get_ingredients()))

@app.post("/sales/sheet")
def sales_sheet():
    return jsonify({"ok": True, "blocks": _sheet_blocks()})

@app.post("/sales/sheet.pdf")
def sales_sheet_pdf():
    pdf = print_sheet_pdf(_sheet_blocks())
    return Response(pdf, mimetype="application/pdf",
                    headers={"Content-Disposition": "inline; filename=hoja_ventas.pdf"})

@app.get("/colors")
def colors_get():
    return jsonify({"ok": True, "colors": read_config()["preset_colors"]})

# -------- Admin --------
@app.post("/config")
def config_update():
    data = _body()
    cfg = read_config()
    # Allow partial updates to top-level keys
    allowed = set(DEFAULTS[CONFIG_FILE])
    changed = {}
    delimiter = data.get("csv_delimiter", cfg["csv_delimiter"])
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        return _error(ValidationError("csv_delimiter must be a single character"))
    for k, v in data.items():
        if k in allowed:
            cfg[k] = v
            changed[k] = v
    write_json(CONFIG_FILE, cfg)
    return jsonify({"ok": True, "changed": changed, "config": cfg})

@app.post("/reset")
def reset_all():
    data = _body()
    reset_config = bool(data.get("reset_config", False))
    for fname in [INGREDIENTS_FILE, PRODUCTS_FILE, SALES_FILE]:
        write_json(fname, DEFAULTS[fname])
    if reset_config:
        write_json(CONFIG_FILE, DEFAULTS[CONFIG_FILE])
    LOG.info("Reset data files (config=%s)", reset_config)
    return jsonify({"ok": True})

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
