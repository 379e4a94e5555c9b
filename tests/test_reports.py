from models.ingredients import ingredient_lookup
from models.reports import CSV_HEADER, export_month_csv, print_sheet, print_sheet_pdf, sale_detail

LOOKUP = ingredient_lookup([
    {"id": "r", "nombre": "Rose", "cantidad": 100.0, "precio": 0.50},
    {"id": "p", "nombre": "Paper", "cantidad": 20.0, "precio": 0.25},
])
PRODUCTS = [{"id": "b", "nombre": "Bouquet", "ganancia": 3.0, "precioVenta": 5.5,
             "receta": [{"insumoId": "r", "cantidad": 5.0}, {"insumoId": "p", "cantidad": "1,5"},
                        {"insumoId": "gone", "cantidad": 2.0}]}]

def _sale(sale_id, date_iso, hora="", qty=2.0, obs="", name="Ana", place="Market"):
    return {
        "id": sale_id, "productId": "b", "qty": qty, "dateISO": date_iso, "hora": hora,
        "place": place, "name": name, "color": "", "obs": obs,
        "unitCost": 2.5, "unitGain": 3.0, "unitPrice": 5.5, "productNameSnapshot": "Bouquet",
    }

def test_csv_rows_follow_month_order_with_two_decimals():
    sales = [_sale("b", "2024-05-11", "10:00"), _sale("a", "2024-05-10", "9:00"), _sale("x", "2024-06-01")]
    lines = export_month_csv(sales, "2024-05", PRODUCTS, LOOKUP).split("\n")
    assert lines[0] == ",".join(CSV_HEADER)
    assert len(lines) == 3
    assert lines[1] == "2024-05-10,9:00,Market,,Ana,Bouquet,2,2.50,3.00,5.50,11.00,"
    assert lines[2].startswith("2024-05-11,10:00,")

def test_csv_quotes_delimiters_quotes_and_newlines():
    sales = [_sale("a", "2024-05-10", obs='Say "hi"\nthanks', name="Perez, Ana")]
    text = export_month_csv(sales, "2024-05", PRODUCTS, LOOKUP)
    assert '"Perez, Ana"' in text
    assert text.endswith('"Say ""hi""\nthanks"')

def test_csv_uses_configured_delimiter():
    sales = [_sale("a", "2024-05-10", name="Perez; Ana")]
    row = export_month_csv(sales, "2024-05", PRODUCTS, LOOKUP, delimiter=";").split("\n")[1]
    assert row.split(";")[:4] == ["2024-05-10", "", "Market", ""]
    assert '"Perez; Ana"' in row

def test_print_sheet_scales_recipe_by_quantity():
    sales = [_sale("a", "2024-05-10", qty=3, obs="no thorns"), _sale("b", "2024-05-11")]
    blocks = print_sheet(sales, ["a"], PRODUCTS, LOOKUP)
    assert len(blocks) == 1
    block = blocks[0]
    assert block["productName"] == "Bouquet"
    assert block["obs"] == "no thorns"
    assert block["lines"] == [
        {"ingredientName": "Rose", "totalQuantity": 15.0},
        {"ingredientName": "Paper", "totalQuantity": 4.5},
        {"ingredientName": "—", "totalQuantity": 6.0},
    ]

def test_print_sheet_keeps_ledger_order_and_ignores_unknown_ids():
    sales = [_sale("a", "2024-05-10"), _sale("b", "2024-05-11")]
    blocks = print_sheet(sales, ["b", "a", "zzz"], PRODUCTS, LOOKUP)
    assert [b["saleId"] for b in blocks] == ["a", "b"]

def test_sale_detail_prices_each_line():
    detail = sale_detail(_sale("a", "2024-05-10", hora="09:05", qty=2), PRODUCTS, LOOKUP)
    assert detail["date"] == "2024-05-10 09:05"
    assert [l["subtotal"] for l in detail["lines"]] == [5.0, 0.75, 0.0]
    assert detail["total"] == 5.75

def test_sale_detail_of_deleted_product_has_no_lines():
    sale = _sale("a", "2024-05-10", name="")
    sale["productId"] = "gone"
    detail = sale_detail(sale, PRODUCTS, LOOKUP)
    assert detail["lines"] == []
    assert detail["productName"] == "Bouquet"
    assert detail["buyer"] == "—"

def test_print_sheet_pdf_renders():
    blocks = print_sheet([_sale("a", "2024-05-10", obs="<fragile> & wet")], ["a"], PRODUCTS, LOOKUP)
    pdf = print_sheet_pdf(blocks)
    assert pdf.startswith(b"%PDF")
    assert print_sheet_pdf([]).startswith(b"%PDF")

def test_quantities_keep_full_precision():
    sales = [_sale("a", "2024-05-10", qty=1234567.0), _sale("b", "2024-05-11", qty=1234562.5)]
    rows = export_month_csv(sales, "2024-05", PRODUCTS, LOOKUP).split("\n")[1:]
    assert rows[0].split(",")[6] == "1234567"
    assert rows[1].split(",")[6] == "1234562.5"
    assert "e+" not in "\n".join(rows)

def test_csv_accepts_comma_decimal_quantity():
    row = export_month_csv([_sale("a", "2024-05-10", qty="2,5")], "2024-05", PRODUCTS, LOOKUP).split("\n")[1]
    assert row == "2024-05-10,,Market,,Ana,Bouquet,2.5,2.50,3.00,5.50,13.75,"
