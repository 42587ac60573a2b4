from __future__ import annotations

import re
from typing import List, Optional

from frame_orders.dates import normalize_order_date
from frame_orders.htmldoc import Node, looks_like_html, parse_html
from frame_orders.models import LineItem, Order, split_size, strip_variant_suffix, to_int
from frame_orders.vendors.base import _find, log_summary, require_structure

VENDOR = "europa"

# Header cells are either classed (original mail) or painted inline (forwarded mail)
HEADER_STYLES = ("rgb(11, 27, 87)", "#0b1b57", "rgb(204, 204, 204)", "#cccccc")


def _is_header_cell(td: Node) -> bool:
    if td.has_class("x_tableheader") or td.has_class("x_secondaryheader"):
        return True
    style = (td.get("style") or "").lower()
    return any(s in style for s in HEADER_STYLES)


def _table_depth(table: Node) -> int:
    depth, p = 0, table.parent
    while p is not None:
        if p.tag == "table":
            depth += 1
        p = p.parent
    return depth


def find_table(doc: Node, title: str) -> Optional[Node]:
    """Innermost table that has a header cell reading exactly `title`."""
    best, best_depth = None, -1
    for table in doc.find_all("table"):
        for row in table.rows():
            hit = any(
                td.find("table") is None and _is_header_cell(td) and td.inline_text() == title
                for td in row.cells()
            )
            if hit:
                depth = _table_depth(table)
                if depth > best_depth:
                    best, best_depth = table, depth
                break
    return best


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(payload: str, debug: bool = False) -> Order:
    doc = parse_html(payload) if looks_like_html(payload) else parse_html("")
    text = doc.text() or payload
    order_number = _find(r"Order\s*#[:\s]*(\d+)", text)
    require_structure(
        VENDOR,
        bool(order_number) or find_table(doc, "Order Items") is not None,
        "no Europa order number or Order Items table found",
        text,
    )

    order = Order(
        vendor=VENDOR,
        vendor_name="Europa",
        order_number=order_number,
        rep_name=_find(r"Order Placed By Rep[:\s]*([^\n]+)", text),
        order_date=normalize_order_date(_find(r"Date[:\s]*([\d/]+)", text)),
    )

    customer = find_table(doc, "Customer")
    if customer is not None:
        # Account | Name | Address | Address 2 | City | Province | Postal | Phone
        for row in customer.rows():
            cells = row.cells()
            if len(cells) >= 8 and not _is_header_cell(cells[0]):
                order.account_number = cells[0].inline_text() or None
                order.customer_name = cells[1].inline_text() or None
                break

    log_summary(VENDOR, order=order, debug=debug)
    return order


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    doc = parse_html(payload)
    table = find_table(doc, "Order Items")
    items: List[LineItem] = []
    if table is None:
        log_summary(VENDOR, items=items, debug=debug)
        return items

    # Order Type | Brand - Model | ColorCode ColorName - Lens | Size | Qty | Availability
    for row in table.rows():
        cells = row.cells()
        if len(cells) < 5 or _is_header_cell(cells[0]) or cells[0].get("colspan"):
            continue
        model_cell = cells[1].inline_text()
        if not model_cell or "Displays / POP" in model_cell:
            continue

        brand, model = "Europa", model_cell
        if " - " in model_cell:
            brand, model = model_cell.split(" - ", 1)

        color_cell = cells[2].inline_text()
        color_code, color_name = None, color_cell or None
        m = re.match(r"^(\d+)\s+(.+)$", color_cell)
        if m:
            color_code, color_name = m.group(1), m.group(2)
        lens = None
        if color_name and " - " in color_name:
            color_name, lens = (p.strip() for p in color_name.split(" - ", 1))

        size = cells[3].inline_text()
        eye, bridge, temple = split_size(size)
        availability = cells[5].inline_text() if len(cells) > 5 else ""

        items.append(LineItem(
            brand=brand.strip(),
            model=strip_variant_suffix(model.strip()),
            color_code=color_code,
            color_name=color_name,
            eye_size=eye or (size if size.isdigit() else None),
            bridge=bridge,
            temple=temple,
            full_size=size or None,
            quantity=to_int(cells[4].inline_text(), default=1) or 1,
            availability=availability or None,
            in_stock=(availability.lower() != "back-ordered") if availability else None,
            enriched_data={
                "order_type": cells[0].inline_text(),
                "lens": lens,
                "color_raw": color_cell,
            },
        ))

    log_summary(VENDOR, items=items, debug=debug)
    return items
