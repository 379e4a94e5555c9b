import copy

import pytest

from models.errors import ValidationError
from models.ingredients import get_ingredients, ingredient_lookup, save_ingredients
from models.products import save_product
from models.sales import (
    build_sale, get_sales, normalize_time, record_sale, remove_sale, save_sales, update_sale,
)

def _shop():
    ingredients = [{"id": "r", "nombre": "Rose", "cantidad": 100.0, "precio": 0.50}]
    products = [{"id": "b", "nombre": "Bouquet", "ganancia": 3.0, "precioVenta": 5.5,
                 "receta": [{"insumoId": "r", "cantidad": 5.0}]}]
    return ingredients, products

@pytest.mark.parametrize("raw, expected", [
    ("9:5", "09:05"),
    ("09:30", "09:30"),
    ("14:07:59", "14:07"),
    ("", ""),
    (None, ""),
])
def test_normalize_time(raw, expected):
    assert normalize_time(raw) == expected

def test_sale_snapshots_cost_gain_price_and_name():
    ingredients, products = _shop()
    sale = build_sale({"productId": "b", "qty": "2", "dateISO": "2024-05-10", "hora": "9:5",
                       "place": " Market ", "name": "Ana"}, products, ingredient_lookup(ingredients))
    assert sale["unitCost"] == 2.5
    assert sale["unitGain"] == 3.0
    assert sale["unitPrice"] == 5.5
    assert sale["productNameSnapshot"] == "Bouquet"
    assert sale["qty"] == 2.0
    assert sale["hora"] == "09:05"
    assert sale["place"] == "Market"
    assert sale["color"] == "" and sale["obs"] == ""

@pytest.mark.parametrize("draft", [
    {"productId": "", "qty": 1},
    {"productId": "b", "qty": ""},
    {"productId": "b", "qty": "0"},
    {"productId": "b", "qty": -3},
    {"productId": "b", "qty": "several"},
    {"productId": "b", "qty": 1, "dateISO": "10/05/2024"},
])
def test_invalid_drafts_are_rejected(draft):
    ingredients, products = _shop()
    sales = []
    with pytest.raises(ValidationError):
        record_sale(draft, sales, products, ingredient_lookup(ingredients))
    assert sales == []

def test_unknown_product_sells_at_zero():
    sale = build_sale({"productId": "gone", "qty": 1, "dateISO": "2024-05-10"}, [], {})
    assert (sale["unitCost"], sale["unitGain"], sale["unitPrice"]) == (0.0, 0.0, 0.0)
    assert sale["productNameSnapshot"] == ""

def test_product_without_margin_gains_nothing():
    ingredients, products = _shop()
    products[0]["ganancia"] = None
    sale = build_sale({"productId": "b", "qty": 1}, products, ingredient_lookup(ingredients))
    assert sale["unitGain"] == 0.0
    assert sale["unitPrice"] == sale["unitCost"] == 2.5

def test_recording_never_depletes_stock_or_touches_products():
    ingredients, products = _shop()
    before_ingredients = copy.deepcopy(ingredients)
    before_products = copy.deepcopy(products)
    sales = []
    for qty in (1, 2, 50):
        record_sale({"productId": "b", "qty": qty}, sales, products, ingredient_lookup(ingredients))
    assert ingredients == before_ingredients
    assert products == before_products
    assert len(sales) == 3

def test_new_sales_are_prepended():
    ingredients, products = _shop()
    sales = []
    first = record_sale({"productId": "b", "qty": 1}, sales, products, ingredient_lookup(ingredients))
    second = record_sale({"productId": "b", "qty": 1}, sales, products, ingredient_lookup(ingredients))
    assert [s["id"] for s in sales] == [second["id"], first["id"]]

def test_snapshot_survives_product_and_ingredient_changes():
    ingredients, products = _shop()
    sales = []
    sale = record_sale({"productId": "b", "qty": 2, "dateISO": "2024-05-10"}, sales, products,
                       ingredient_lookup(ingredients))

    ingredients[0]["precio"] = 9.0
    save_product({"nombre": "Big bouquet", "ganancia": 10, "receta": [{"insumoId": "r", "cantidad": 12}]},
                 products, ingredient_lookup(ingredients), edit_id="b")

    assert (sale["unitCost"], sale["unitGain"], sale["unitPrice"]) == (2.5, 3.0, 5.5)
    assert sale["productNameSnapshot"] == "Bouquet"

def test_only_editable_fields_change():
    ingredients, products = _shop()
    sales = []
    sale = record_sale({"productId": "b", "qty": 1, "dateISO": "2024-05-10"}, sales, products,
                       ingredient_lookup(ingredients))
    update_sale(sales, sale["id"], "hora", "7:3")
    update_sale(sales, sale["id"], "color", "#FFF59D")
    update_sale(sales, sale["id"], "obs", "white ribbon")
    update_sale(sales, sale["id"], "dateISO", "2024-05-11")
    assert sale["hora"] == "07:03"
    assert sale["color"] == "#FFF59D"
    assert sale["obs"] == "white ribbon"
    assert sale["dateISO"] == "2024-05-11"

    update_sale(sales, sale["id"], "color", "")
    assert sale["color"] == ""

    for field in ("unitCost", "unitPrice", "qty", "productNameSnapshot"):
        with pytest.raises(ValidationError):
            update_sale(sales, sale["id"], field, 1)
    with pytest.raises(ValidationError):
        update_sale(sales, sale["id"], "color", "red")
    with pytest.raises(ValueError):
        update_sale(sales, "missing", "obs", "x")
    assert sale["unitPrice"] == 5.5

def test_remove_sale():
    sales = [{"id": "a"}, {"id": "b"}]
    remove_sale(sales, "a")
    assert sales == [{"id": "b"}]
    with pytest.raises(ValueError):
        remove_sale(sales, "a")

def test_load_normalizes_legacy_records(tmp_path, monkeypatch):
    import utils.file_manager as fm
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    fm.ensure_defaults()

    save_sales([
        {"productId": 42, "qty": "3", "dateISO": "2024-05-02"},
        {"id": 7, "productId": "b", "qty": 1, "dateISO": "2024-05-03", "hora": "10:00",
         "unitCost": 1, "unitGain": 2, "unitPrice": 3, "productNameSnapshot": "Old"},
    ])
    legacy, snap = get_sales()
    assert legacy["id"]
    assert legacy["productId"] == "42"
    assert legacy["qty"] == 3.0
    assert legacy["unitCost"] is None and legacy["unitGain"] is None and legacy["unitPrice"] is None
    assert legacy["productNameSnapshot"] is None
    assert snap["id"] == "7"
    assert (snap["unitCost"], snap["unitGain"], snap["unitPrice"]) == (1.0, 2.0, 3.0)

def test_persisted_sale_round_trip_keeps_stock(tmp_path, monkeypatch):
    import utils.file_manager as fm
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    fm.ensure_defaults()

    ingredients, products = _shop()
    save_ingredients(ingredients)
    sales = get_sales()
    record_sale({"productId": "b", "qty": 4, "dateISO": "2024-05-10"}, sales, products,
                ingredient_lookup(get_ingredients()))
    save_sales(sales)

    assert get_ingredients()[0]["cantidad"] == 100.0
    stored = get_sales()
    assert len(stored) == 1 and stored[0]["unitPrice"] == 5.5
