from __future__ import annotations

import re
from typing import List, Optional

from frame_orders.dates import normalize_order_date
from frame_orders.models import LineItem, Order, split_size, strip_variant_suffix
from frame_orders.vendors.base import _find, _lines, log_summary, require_structure

VENDOR = "etnia"
BRAND = "ETNIA BARCELONA"

# Line that opens a frame block:
#   09/15/2025100000000019343001     (date glued to the item reference)
FRAME_START_RE = re.compile(r"^(\d{2}/\d{2}/\d{4})(\d+)")
UPC_RE = re.compile(r"^\d{13}$")
# 1.00 PC120.00 USD10.00%108.00 USD   (no spaces in the extracted text)
PRICE_RE = re.compile(r"([\d.]+)\s*PC([\d.]+)\s*USD([\d.]+)%([\d.]+)\s*USD")
PRICE_LINE_RE = re.compile(r"^\d+\.\d+\s+PC")

# RANIA 53O TQGR - METAL OPTICAL TURQUOISE. GREEN 53-19-142 (O)
DESC_CAPS_RE = re.compile(r"^.+?\s+-\s+([A-Z]+)\s+(OPTICAL|SUN)\s+(?!Frame\s)(.+?)\s+(\d{2}-\d{2}-\d{3})", re.I)
# COCO Grey Havana - Acetate Optical Frame 51-16-140
DESC_FRAME_RE = re.compile(r"^(.+?)\s+-\s+([A-Za-z]+)\s+(Optical|Sun)\s+Frame\s+(\d{2}-\d{2}-\d{3})", re.I)
# ROADRUNNER 56O HVGR - acetate optical frame havana verde 56-16-148
DESC_LOWER_RE = re.compile(r"^.+?\s+-\s+([a-z]+)\s+(optical|sun)\s+frame\s+(.+?)\s+(\d{2}-\d{2}-\d{3})", re.I)


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(text: str, debug: bool = False) -> Order:
    require_structure(
        VENDOR,
        bool(re.search(r"Sales Order\s+\d+", text or "")),
        "no 'Sales Order' header found",
        text,
    )
    date = _find(r"Date[\s\t]+(\d{2}/\d{2}/\d{4})", text) or _find(r"\n(\d{2}/\d{2}/\d{4})\n", text)

    order = Order(
        vendor=VENDOR,
        vendor_name="Etnia Barcelona",
        order_number=_find(r"Sales Order\s+(\d+)", text),
        order_date=normalize_order_date(date),
        account_number=_find(r"Customer ID[\s\t\n]+(\d+)", text),
        reference_number=_find(r"Customer Reference[\s\t\n]+([\w\-]+)", text),
        customer_name=_find(r"Billing Address:\s*\n\s*([A-Z][A-Z ]+)\s*\n", text, 0),
    )
    log_summary(VENDOR, order=order, debug=debug)
    return order


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(text: str, debug: bool = False) -> List[LineItem]:
    """Frame blocks are:

        <date><reference>
        <n> <MODEL SIZECODE COLORCODE>
        <description, 1-3 lines, ends with EE-BB-TTT>
        <13-digit UPC>
        <qty PC unit USD disc% total USD>
    """
    lines = _lines(text)
    items: List[LineItem] = []
    i = 0
    while i < len(lines):
        m = FRAME_START_RE.match(lines[i])
        if not m or i + 1 >= len(lines):
            i += 1
            continue

        model_line = lines[i + 1]
        desc: List[str] = []
        j = i + 2
        while j < len(lines) and j < i + 6:
            ln = lines[j]
            if UPC_RE.match(ln) or PRICE_LINE_RE.match(ln) or FRAME_START_RE.match(ln):
                break
            desc.append(ln)
            j += 1
        if j + 1 >= len(lines):
            break

        item = parse_frame(m.group(2), model_line, " ".join(desc).strip(), lines[j], lines[j + 1])
        if item is not None:
            items.append(item)
        i = j + 2

    log_summary(VENDOR, items=items, debug=debug)
    return items


def parse_frame(reference: str, model_line: str, description: str, upc_line: str,
                price_line: str) -> Optional[LineItem]:
    mm = re.match(r"^[\d\s]+(.+)$", model_line)
    if not mm:
        return None
    full_model = mm.group(1).strip()

    material = frame_type = color = size = None
    m = DESC_CAPS_RE.match(description)
    if m:
        material, frame_type = m.group(1), m.group(2).upper()
        color = re.sub(r"\s*\(\w\)\s*$", "", m.group(3)).rstrip(".").strip()
        size = m.group(4)
    elif DESC_FRAME_RE.match(description):
        m = DESC_FRAME_RE.match(description)
        model_and_color = m.group(1).strip()
        material, frame_type, size = m.group(2), m.group(3).upper(), m.group(4)
        split = re.match(r"^([A-Z]+)\s+(.+)$", model_and_color)
        color = split.group(2) if split else " ".join(model_and_color.split()[1:])
    elif DESC_LOWER_RE.match(description):
        m = DESC_LOWER_RE.match(description)
        material, frame_type = m.group(1), m.group(2).upper()
        color, size = m.group(3).strip(), m.group(4)
    else:
        size = _find(r"(\d{2}-\d{2}-\d{3})", description)
        color = re.sub(r"\s*\(\w\)\s*$", "", description).strip() or None
        if re.search(r"ACETATE", description, re.I):
            material = "ACETATE"
        if re.search(r"METAL", description, re.I):
            material = "METAL"
        if re.search(r"OPTICAL", description, re.I):
            frame_type = "OPTICAL"
        if re.search(r"SUN", description, re.I):
            frame_type = "SUN"

    eye, bridge, temple = split_size(size)
    upc = _find(r"(\d{13})", upc_line)

    qty, unit, discount, final = 1, None, None, None
    pm = PRICE_RE.search(price_line)
    if pm:
        qty = int(float(pm.group(1)))
        unit = float(pm.group(2))
        discount = float(pm.group(3))
        final = float(pm.group(4))

    # "RANIA 53O TQGR": name, size code, colour code
    color_code = _find(r"([A-Z]{4,6})$", full_model, 0)

    return LineItem(
        brand=BRAND,
        model=strip_variant_suffix(full_model.split()[0]),
        color_code=color_code,
        color_name=color or None,
        eye_size=eye,
        bridge=bridge,
        temple=temple,
        full_size=size,
        quantity=qty,
        upc=upc,
        wholesale_price=unit,
        material=material.upper() if material else None,
        frame_type=frame_type,
        sku=f"{BRAND.replace(' ', '_')}-{full_model.replace(' ', '_')}",
        enriched_data={
            "reference": reference,
            "full_model": full_model,
            "discount_pct": discount,
            "line_total": final,
            "description": description,
        },
    )
