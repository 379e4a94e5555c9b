"""Exportable and printable views of the sales ledger."""
import csv
import io
from typing import Dict, Iterable, List, Mapping
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from models.financials import aggregate_month, sale_product_name
from models.ingredients import find_ingredient
from models.products import MISSING_NAME, find_product
from utils.numbers import to_num

CSV_HEADER = [
    "Date", "Time", "Place", "Color", "Name", "Product", "Quantity",
    "UnitCost", "UnitGain", "UnitPrice", "Subtotal", "Observations",
]

def _fmt_qty(value) -> str:
    num = to_num(value)
    if num.is_integer():
        return str(int(num))
    return f"{num:.15g}"

def export_month_csv(sales: List[Dict], month: str, products: List[Dict],
                     lookup: Mapping[str, Dict], delimiter: str = ",") -> str:
    summary = aggregate_month(sales, month, products, lookup)
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in summary["sales"]:
        writer.writerow([
            row["dateISO"],
            row["hora"],
            row["place"],
            row["color"],
            row["name"],
            row["product_name"],
            _fmt_qty(row["qty"]),
            f"{row['unit_cost']:.2f}",
            f"{row['unit_gain']:.2f}",
            f"{row['unit_price']:.2f}",
            f"{row['subtotal']:.2f}",
            row["obs"],
        ])
    # no trailing newline after the last row
    return buf.getvalue().rstrip("\n")

def detail_lines(sale: Dict, products: List[Dict], lookup: Mapping[str, Dict]) -> List[Dict]:
    """Ingredients consumed by one sale, scaled by its quantity."""
    product = find_product(products, sale.get("productId"))
    lines = []
    for r in (product or {}).get("receta") or []:
        ingredient = find_ingredient(lookup, r.get("insumoId"))
        total_qty = to_num(r.get("cantidad")) * to_num(sale.get("qty"))
        price = to_num(ingredient["precio"]) if ingredient else 0.0
        lines.append({
            "insumoId": r.get("insumoId"),
            "ingredientName": ingredient["nombre"] if ingredient else MISSING_NAME,
            "totalQuantity": total_qty,
            "unitPrice": price,
            "subtotal": total_qty * price,
        })
    return lines

def _date_text(sale: Dict) -> str:
    return sale.get("dateISO", "") + (f" {sale['hora']}" if sale.get("hora") else "")

def sale_detail(sale: Dict, products: List[Dict], lookup: Mapping[str, Dict]) -> Dict:
    lines = detail_lines(sale, products, lookup)
    return {
        "saleId": sale["id"],
        "productName": sale_product_name(sale, products),
        "buyer": sale.get("name") or MISSING_NAME,
        "date": _date_text(sale),
        "lines": lines,
        "total": sum((l["subtotal"] for l in lines), 0.0),
        "obs": sale.get("obs") or "",
    }

def print_sheet(sales: List[Dict], sale_ids: Iterable[str], products: List[Dict],
                lookup: Mapping[str, Dict]) -> List[Dict]:
    """One block per selected sale, in the order of ``sales``."""
    wanted = {str(i) for i in sale_ids}
    blocks = []
    for s in sales:
        if s["id"] not in wanted:
            continue
        blocks.append({
            "saleId": s["id"],
            "productName": sale_product_name(s, products),
            "buyer": s.get("name") or "",
            "date": _date_text(s),
            "lines": [
                {"ingredientName": l["ingredientName"], "totalQuantity": l["totalQuantity"]}
                for l in detail_lines(s, products, lookup)
            ],
            "obs": s.get("obs") or "",
        })
    return blocks

def print_sheet_pdf(blocks: List[Dict]) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            leftMargin=0.6*inch, rightMargin=0.6*inch,
                            topMargin=0.6*inch, bottomMargin=0.6*inch)
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name='BlockTitle', fontSize=12, spaceAfter=6, fontName='Helvetica-Bold'))
    cell = styles['BodyText']

    story = []
    for b in blocks:
        title = f"Product: {b['productName']}"
        if b["buyer"]:
            title += f" | {b['buyer']}"
        if b["date"]:
            title += f" | {b['date']}"
        story.append(Paragraph(escape(title), styles['BlockTitle']))

        table_data = [["Ingredient", "Total quantity", "Observations"]]
        if not b["lines"]:
            table_data.append(["This product has no recipe.", "", Paragraph(escape(b["obs"]), cell)])
        for idx, line in enumerate(b["lines"]):
            # observations once per block, spanning every line
            obs = Paragraph(escape(b["obs"]), cell) if idx == 0 else ""
            table_data.append([line["ingredientName"], _fmt_qty(line["totalQuantity"]), obs])

        table = Table(table_data, colWidths=[2.8*inch, 1.4*inch, 2.8*inch])
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#F3F4F6')),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]
        if len(table_data) > 2:
            style.append(('SPAN', (2, 1), (2, -1)))
        table.setStyle(TableStyle(style))
        story.append(table)
        story.append(Spacer(1, 0.25*inch))

    if not story:
        story.append(Paragraph("No sales selected.", styles['BodyText']))
    doc.build(story)

    pdf_content = buffer.getvalue()
    buffer.close()
    return pdf_content
