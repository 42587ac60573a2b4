from __future__ import annotations

from typing import Dict, List, Optional

from frame_orders.dates import normalize_order_date
from frame_orders.htmldoc import Node, parse_html
from frame_orders.models import LineItem, Order, split_size, strip_variant_suffix, to_int
from frame_orders.vendors.base import log_summary, require_structure

VENDOR = "ideal"
BRAND = "Ideal Optics"

# Bold label cell -> Order field; the value sits in the next <td>
HEADER_LABELS = {
    "Web Order #": "order_number",
    "Order Date": "order_date",
    "Ordered By": "rep_name",
    "Purchase Order": "reference_number",
}


def _is_label(td: Node) -> bool:
    return td.has_class("x_boldtext") or td.find("b") is not None or td.find("strong") is not None


def _header_values(doc: Node) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for td in doc.find_all("td"):
        if not _is_label(td) or td.find("table") is not None:
            continue
        label = td.inline_text()
        for key, attr in HEADER_LABELS.items():
            if key in label and attr not in out:
                nxt = td.next_element()
                if nxt is not None and nxt.tag == "td":
                    out[attr] = nxt.inline_text()
    return out


def _table_headed(doc: Node, title: str) -> Optional[Node]:
    for td in doc.find_all("td"):
        # Only label cells, never a layout cell wrapping a whole nested table
        if td.find("table") is not None:
            continue
        text = td.inline_text()
        if text == title or (title in text and len(text) <= len(title) + 20):
            table = td.ancestor("table")
            if table is not None:
                return table
    return None


def _is_header_row(cells: List[Node]) -> bool:
    first = cells[0]
    style = (first.get("style") or "").upper()
    return "CCCCCC" in style or first.find("strong") is not None or first.find("b") is not None


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(payload: str, debug: bool = False) -> Order:
    doc = parse_html(payload)
    values = _header_values(doc)
    require_structure(
        VENDOR,
        bool(values) or _table_headed(doc, "Style Name") is not None,
        "no Ideal Optics order header or items table found",
        doc.text(),
    )

    order = Order(
        vendor=VENDOR,
        vendor_name=BRAND,
        order_number=values.get("order_number"),
        order_date=normalize_order_date(values.get("order_date")),
        rep_name=values.get("rep_name"),
        reference_number=values.get("reference_number"),
    )

    account_table = _table_headed(doc, "Account Information")
    if account_table is not None:
        for row in account_table.rows():
            cells = row.cells()
            if len(cells) < 5 or _is_header_row(cells):
                continue
            account = cells[0].inline_text()
            if account and "Account" not in account and len(account) < 20:
                order.account_number = account
                order.customer_name = cells[1].inline_text() or None
                break

    log_summary(VENDOR, order=order, debug=debug)
    return order


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    doc = parse_html(payload)
    table = _table_headed(doc, "Style Name")
    items: List[LineItem] = []
    if table is None:
        log_summary(VENDOR, items=items, debug=debug)
        return items

    for row in table.rows():
        cells = row.cells()
        if len(cells) < 4:
            continue
        style = cells[0].inline_text()
        if not style or style == "Style Name" or _is_header_row(cells):
            continue

        color = cells[1].inline_text() or None
        size = cells[2].inline_text()
        eye, bridge, temple = split_size(size)
        notes = cells[4].inline_text() if len(cells) > 4 else ""

        items.append(LineItem(
            brand=BRAND,
            model=strip_variant_suffix(style),
            color_name=color,
            color_code=color.upper() if color else None,
            eye_size=eye,
            bridge=bridge,
            temple=temple,
            full_size=size or None,
            quantity=to_int(cells[3].inline_text(), default=1) or 1,
            enriched_data={"notes": notes} if notes else {},
        ))

    log_summary(VENDOR, items=items, debug=debug)
    return items
