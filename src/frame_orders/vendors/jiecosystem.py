"""Receipts rendered by the jiecosystem ordering back end.

Modern Optical, L'amyamerica and Kenmark all send the same template: an
Order block (number, rep, date), a Customer card "NAME (ACCOUNT)", and an
Order Items table of Image | Brand - Model | Color | Size | Qty. The image
URLs point at imageserver.jiecosystem.net/image/<vendor>/<UPC>, which is the
only place the UPC shows up.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from frame_orders.dates import normalize_order_date
from frame_orders.htmldoc import Node, looks_like_html, parse_html
from frame_orders.models import LineItem, Order, split_size, strip_variant_suffix, to_int
from frame_orders.vendors.base import _customer_and_account, _find, log_summary, require_structure, unwrap_link

# "C01 BLACK", "01 TORTOISE"; a code always carries a digit
COLOR_CODE_RE = re.compile(r"^([A-Z]{0,2}\d[A-Z0-9]{0,3})\s+(.+)$")


@dataclass(frozen=True)
class Layout:
    vendor: str
    vendor_name: str
    image_segment: str
    account_pattern: str
    order_number_pattern: str = r"Order\s*(?:Number|#)?\s*:?\s*(\d+)"
    # Rows without "BRAND - MODEL" are only accepted when a default brand exists
    default_brand: Optional[str] = None
    color_names: Dict[str, str] = field(default_factory=dict)


def _document(payload: str) -> tuple[Node, str]:
    if looks_like_html(payload):
        doc = parse_html(payload)
        return doc, doc.text()
    return parse_html(""), payload


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(layout: Layout, payload: str, debug: bool = False) -> Order:
    doc, text = _document(payload)
    order_number = _find(layout.order_number_pattern, text)
    require_structure(
        layout.vendor,
        bool(order_number) or doc.find("tbody") is not None,
        f"no {layout.vendor_name} order number or items table found",
        text,
    )

    name, account = _customer_card(doc, layout)
    if not name:
        name, account2 = _customer_and_account(text, layout.account_pattern)
        account = account or account2

    order = Order(
        vendor=layout.vendor,
        vendor_name=layout.vendor_name,
        order_number=order_number,
        rep_name=_find(r"Placed By Rep:\s*([^\n]+)", text),
        order_date=normalize_order_date(_find(r"Date:\s*([\d/]+)", text)),
        customer_name=name,
        account_number=account or _find(r"\((" + layout.account_pattern + r")\)", text, 0),
    )
    pieces = _find(r"Total Pieces:\s*(\d+)", text)
    if pieces:
        order.pieces_stated = int(pieces)

    log_summary(layout.vendor, order=order, debug=debug)
    return order


def _customer_card(doc: Node, layout: Layout):
    for h in doc.find_all("h3"):
        if h.inline_text().lower() != "customer":
            continue
        card = h.next_element()
        if card is None:
            continue
        return _customer_and_account(card.text(), layout.account_pattern)
    return None, None


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(layout: Layout, payload: str, debug: bool = False) -> List[LineItem]:
    doc, _ = _document(payload)
    items: List[LineItem] = []

    for tbody in doc.find_all("tbody"):
        for row in tbody.elements():
            if row.tag != "tr":
                continue
            cells = row.cells()
            if len(cells) < 5:
                continue
            item = _row_to_item(layout, cells)
            if item is not None:
                items.append(item)

    log_summary(layout.vendor, items=items, debug=debug)
    return items


def _row_to_item(layout: Layout, cells: List[Node]) -> Optional[LineItem]:
    model_cell = cells[1].inline_text()
    color_cell = cells[2].inline_text()
    size_cell = cells[3].inline_text()
    qty_cell = cells[4].inline_text()
    if not model_cell or not color_cell or not qty_cell:
        return None
    if "Model" in model_cell or "Image" in model_cell:
        return None

    if " - " in model_cell:
        brand, model = (p.strip() for p in model_cell.split(" - ", 1))
    elif layout.default_brand:
        brand, model = layout.default_brand, model_cell
    else:
        return None

    color_code = None
    color_name = color_cell
    m = COLOR_CODE_RE.match(color_cell)
    if m:
        color_code, color_name = m.group(1), m.group(2)
    color_name = expand_color(color_name, layout.color_names)

    eye, bridge, temple = split_size(size_cell)
    img = cells[0].find("img")
    src = img.get("src") if img is not None else None

    return LineItem(
        brand=brand,
        model=strip_variant_suffix(model),
        color_code=color_code,
        color_name=color_name,
        eye_size=eye,
        bridge=bridge,
        temple=temple,
        full_size=size_cell or None,
        quantity=to_int(qty_cell, default=1) or 1,
        upc=upc_from_image(src, layout.image_segment),
        image_url=src,
        enriched_data={"color_raw": color_cell},
    )


def upc_from_image(src: Optional[str], segment: str) -> Optional[str]:
    """.../image/kenmark/715317146401 -> '715317146401'."""
    url = unwrap_link(src)
    if not url:
        return None
    m = re.search(rf"/{re.escape(segment)}/(\d{{8,14}})", url, re.I)
    return m.group(1) if m else None


def expand_color(name: Optional[str], abbreviations: Dict[str, str]) -> Optional[str]:
    """'BLK/GLD' -> 'Black/Gold' using the vendor's abbreviation table."""
    if not name or not abbreviations:
        return name

    def repl(m: re.Match) -> str:
        word = m.group(0)
        return abbreviations.get(word.upper(), word)

    return re.sub(r"[A-Za-z]+", repl, name)
