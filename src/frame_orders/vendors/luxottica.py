from __future__ import annotations

import logging
import re
from typing import List, Optional

from frame_orders.dates import normalize_order_date
from frame_orders.htmldoc import looks_like_html, parse_html
from frame_orders.models import LineItem, Order, strip_variant_suffix
from frame_orders.vendors.base import _find, _lines, log_summary, require_structure

logger = logging.getLogger(__name__)

VENDOR = "luxottica"

BRAND_NAMES = {
    "DOLCE E GABBANA": "DOLCE & GABBANA",
    "D&G": "DOLCE & GABBANA",
    "RAYBAN": "RAY-BAN",
    "POLO": "POLO RALPH LAUREN",
}

# BURBERRY (12)
BRAND_HEADER_RE = re.compile(r"^([A-Z][A-Z\s&]*?)\s*\((\d+)\)$")
# 0BE1375 - DOUGLAS (1)   /   0PR 02ZV (1)
MODEL_HEADER_RE = re.compile(r"^(.+?)(?:\s+-\s+([^(]+?))?\s*\((\d+)\)$")
# 114513  -  LIGHT GOLD / BROWN GRADIENT
COLOR_RE = re.compile(r"^(\w+)\s*-\s*(.+)$")
# 59  8053672321005        USD 136.52     1       09-10-2025
ITEM_RE = re.compile(r"^(\d+)\s+(\d+)\s+USD\s+([\d,]+\.\d{2})\s+(\d+)\s+([\d\-]+)")


def _content(payload: str) -> str:
    """The order lives inside a <pre>; headers are <font size=5> runs on their own line."""
    if not looks_like_html(payload):
        return payload
    doc = parse_html(payload)
    pre = doc.find("pre")
    return (pre or doc).text()


def normalize_brand(name: str) -> str:
    n = " ".join(name.upper().split())
    return BRAND_NAMES.get(n, n)


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(payload: str, debug: bool = False) -> Order:
    text = _content(payload)
    require_structure(
        VENDOR,
        bool(re.search(r"Cart number:|Customer code:", text, re.I)),
        "no Luxottica cart header found",
        text,
    )

    order = Order(
        vendor=VENDOR,
        vendor_name="Luxottica",
        order_number=_find(r"Cart number:\s*(\d+)", text),
        account_number=_find(r"Customer code:\s*(\d+)", text),
        customer_name=_find(r"Customer Reference:\s*([^\n]+?)(?=\s*(?:Customer code|\n|$))", text),
        order_date=normalize_order_date(_find(r"Order date:\s*([\d\-]+)", text), day_first=True),
        rep_name=_find(r"Agent reference:\s*([^(\n]+?)\s*\(\d+\)", text),
        reference_number=_find(r"Promo code:\s*(\d+)", text),
    )
    total = _find(r"Total:\s*([\d,]+\.\d{2})\s*USD", text)
    order.items_total = float(total.replace(",", "")) if total else None

    log_summary(VENDOR, order=order, debug=debug)
    return order


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    items: List[LineItem] = []
    brand: Optional[str] = None
    model: Optional[str] = None
    collection: Optional[str] = None
    color_code: Optional[str] = None
    color_name: Optional[str] = None

    for ln in _lines(_content(payload)):
        if not ln:
            continue
        if ln.startswith("Total Number of Items"):
            break

        bm = BRAND_HEADER_RE.match(ln)
        if bm:
            brand = normalize_brand(bm.group(1))
            model = color_code = color_name = None
            continue
        if brand is None:
            # Header block (agent, customer, cart...) precedes the first brand
            continue

        mm = MODEL_HEADER_RE.match(ln)
        if mm:
            model = strip_variant_suffix(mm.group(1).strip())
            collection = mm.group(2).strip() if mm.group(2) else None
            color_code = color_name = None
            continue

        im = ITEM_RE.match(ln)
        if im:
            if model is None:
                logger.warning("[luxottica] item line before any model header: %r", ln)
                continue
            eye, upc, price, qty, ship = im.groups()
            items.append(LineItem(
                brand=brand,
                model=model,
                color_code=color_code,
                color_name=color_name,
                eye_size=eye,
                full_size=eye,
                quantity=int(qty),
                upc=upc,
                wholesale_price=float(price.replace(",", "")),
                ship_date=normalize_order_date(ship, day_first=True),
                sku="-".join(p for p in (brand, model, color_code, eye) if p).replace(" ", "_"),
                enriched_data={"collection": collection} if collection else {},
            ))
            continue

        cm = COLOR_RE.match(ln)
        if cm and model is not None:
            color_code = cm.group(1).strip()
            color_name = cm.group(2).strip()

    log_summary(VENDOR, items=items, debug=debug)
    return items
