from __future__ import annotations

import re
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from frame_orders.dates import normalize_order_date
from frame_orders.htmldoc import Node, looks_like_html, parse_html
from frame_orders.models import LineItem, Order, strip_variant_suffix, to_int
from frame_orders.vendors.base import _find, log_summary, require_structure, unwrap_link

VENDOR = "marchon"
DEFAULT_BRAND = "Marchon"

# Model prefix -> brand. Longest prefix wins ("CKJ" before "CK" before "C").
BRAND_PREFIXES = {
    "SF": "Salvatore Ferragamo",
    "CKJ": "Calvin Klein Jeans",
    "CK": "Calvin Klein",
    "NIKE": "Nike",
    "NK": "Nike",
    "COL": "Columbia",
    "C": "Columbia",
    "DRAGON": "Dragon",
    "DG": "Dragon",
    "FLEXON": "Flexon",
    "FL": "Flexon",
    "LACOSTE": "Lacoste",
    "LO": "Longchamp",
    "L": "Lacoste",
    "MNYC": "Marchon NYC",
    "MNY": "Marchon NYC",
    "NW": "Nine West",
    "SKAGA": "Skaga",
    "JSK": "JS Kids",
    "MCM": "MCM",
    "CHLOE": "Chloe",
    "KARL": "Karl Lagerfeld",
    "KL": "Karl Lagerfeld",
    "DKNY": "DKNY",
}

HEADER_BG = ("#b2b4b2", "178, 180, 178")
EYE_RE = re.compile(r"\((\d+)\s*eye\)", re.I)


def brand_for_model(model: str) -> str:
    m = (model or "").upper()
    for prefix in sorted(BRAND_PREFIXES, key=len, reverse=True):
        if m.startswith(prefix):
            return BRAND_PREFIXES[prefix]
    return DEFAULT_BRAND


def product_params(url: Optional[str]) -> Dict[str, str]:
    """detail.cfm?frame=SF2223N&coll=SF&pickColor=744&pickSize=5417 -> params.

    pickSize is eye + bridge glued together: '5417' is 54 eye, 17 bridge.
    """
    clean = unwrap_link(url)
    if not clean:
        return {}
    qs = parse_qs(urlparse(clean).query)
    out = {k: qs[k][0] for k in ("frame", "coll", "pickColor", "pickSize") if qs.get(k)}
    size = out.get("pickSize", "")
    if len(size) == 4 and size.isdigit():
        out["eye_size"], out["bridge"] = size[:2], size[2:]
    return out


def _is_header_row(row: Node, cells: List[Node]) -> bool:
    styles = " ".join(
        (n.get("bgcolor") or "") + " " + (n.get("style") or "") for n in [row] + cells[:1]
    ).lower()
    return any(bg in styles for bg in HEADER_BG)


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(payload: str, debug: bool = False) -> Order:
    text = parse_html(payload).text() if looks_like_html(payload) else payload
    order_id = _find(r"Order ID[:\s]*([A-Z0-9]+)", text)
    require_structure(VENDOR, bool(order_id), "no Marchon Order ID found", text)

    order = Order(
        vendor=VENDOR,
        vendor_name=DEFAULT_BRAND,
        order_number=order_id,
        rep_name=_find(r"SALES REP[:\s]*([^\n]+)", text),
        order_date=normalize_order_date(_find(r"\bDATE[:\s]*([\d/-]+)", text)),
    )

    # Customer:
    # FAMILY TREE EYE CARE (3075807)
    m = re.search(r"Customer[:\s]*\n\s*([^(\n]+?)\s*\((\d+)\)", text, re.I)
    if m:
        order.customer_name = m.group(1).strip()
        order.account_number = m.group(2)

    log_summary(VENDOR, order=order, debug=debug)
    return order


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    doc = parse_html(payload)
    items: List[LineItem] = []
    seen = set()

    # Nested layout tables repeat rows; first occurrence of model-colour-size wins
    for table in doc.find_all("table"):
        for row in table.rows():
            cells = row.cells()
            if len(cells) != 3 or _is_header_row(row, cells):
                continue
            item = _row_to_item(cells)
            if item is None:
                continue
            key = f"{item.model}-{item.color_code or item.color_name}-{item.eye_size}"
            if key in seen:
                continue
            seen.add(key)
            items.append(item)

    log_summary(VENDOR, items=items, debug=debug)
    return items


def _row_to_item(cells: List[Node]) -> Optional[LineItem]:
    style_text = cells[1].text()
    quantity = to_int(cells[2].inline_text(), default=0)
    if not style_text or quantity <= 0:
        return None

    # "SF2223N LIGHT GOLD/BURGUNDY\n(54 eye)" or the same on one line
    eye_match = EYE_RE.search(style_text)
    if not eye_match:
        return None
    style_and_color = style_text[: eye_match.start()].strip().split("\n")[0].strip()
    parts = style_and_color.split()
    if not parts:
        return None
    model, color = parts[0], " ".join(parts[1:]) or None

    link = cells[0].find("a")
    img = cells[0].find("img")
    product_url = unwrap_link(link.get("href")) if link is not None else None
    params = product_params(product_url)

    return LineItem(
        brand=brand_for_model(model),
        model=strip_variant_suffix(model),
        color_code=params.get("pickColor"),
        color_name=color,
        eye_size=eye_match.group(1),
        bridge=params.get("bridge"),
        quantity=quantity,
        image_url=unwrap_link(img.get("src")) if img is not None else None,
        enriched_data={
            "product_url": product_url,
            "collection": params.get("coll"),
            "frame": params.get("frame") or model,
            "pick_size": params.get("pickSize"),
        },
    )
