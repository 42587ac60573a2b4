from __future__ import annotations

import logging
import re
from typing import List, Optional

from frame_orders.dates import normalize_order_date
from frame_orders.models import LineItem, Order, strip_variant_suffix
from frame_orders.vendors.base import _find, _lines, log_summary, require_structure

logger = logging.getLogger(__name__)

VENDOR = "safilo"

# Frame lines start with a collection prefix. Each prefix knows the brand code
# printed on the order, the full brand name, and how many leading tokens make
# up the model.
#   prefix: (brand code, brand name, model tokens)
PREFIXES = {
    "CARRERA": ("CARRERA", "CARRERA", 2),
    "VICTORY": ("CARRERA", "CARRERA", 3),
    "CARDUC": ("CARDUC", "CARRERA DUCATI", 2),
    "CH": ("CH", "CHESTERFIELD", 2),
    "KS": ("KS", "KATE SPADE", 2),
    "MIS": ("MIS", "MISSONI", 2),
    "CATRINA": ("KS", "KATE SPADE", 1),
    "JOLIET": ("KS", "KATE SPADE", 1),
}

BRAND_NAMES = {code: name for code, name, _ in PREFIXES.values()}

FRAME_START_RE = re.compile(r"^(CARRERA|VICTORY|CARDUC|CH|KS|CATRINA|JOLIET|MIS)\s")
STOP_RE = re.compile(r"^(CARRERA|VICTORY|CARDUC|CH|KS|CATRINA|JOLIET|MIS|KSP)\s|^Total")

# Example:
#   KS CHERETTE2/US X19 PATTERN MULTICOLOR 52/17 140
SIZE_RE = re.compile(r"(\d{2})/(\d{2})\s+(\d{3})")
DATE_STAMP_RE = re.compile(r"\d{5}/\d{2}/\d{4}\.?")
DATE_LINE_RE = re.compile(r"^\d+/\d+/\d+")


# -------------------------------------------------
# Order-level parsing
# -------------------------------------------------

def parse_order(text: str, debug: bool = False) -> Order:
    lines = _lines(text)
    require_structure(
        VENDOR,
        any(ln.startswith("Account Number") or "Item Description" in ln for ln in lines),
        "no Safilo header or item table found",
        text,
    )

    account = eyerep = order_ref = None
    for i, ln in enumerate(lines):
        if ln == "Account Number:" and i + 5 < len(lines):
            # Labels are stacked, values follow three lines further down:
            #   Account Number: / EyeRep Order Number: / Order Reference Number:
            #   1111708 / 5002949163 / 113006337
            account = lines[i + 3] or None
            eyerep = lines[i + 4] or None
            order_ref = lines[i + 5] or None
            break

    order_ref = order_ref or _find(r"Order Reference Number[:\s]*(\d+)", text)
    eyerep = eyerep or _find(r"EyeRep Order Number[:\s]*(\d+)", text)
    account = account or _find(r"Account[^\n]*?(\d{6,})", text)

    order = Order(
        vendor=VENDOR,
        vendor_name="Safilo",
        order_number=order_ref,
        reference_number=eyerep,
        account_number=account,
        order_date=normalize_order_date(_order_date(lines)),
        rep_name=_placed_by(lines),
    )

    m = re.search(r"Customer:\s*([^(\n]+?)\s*\(([^)]+)\)", text)
    if m:
        order.customer_name = m.group(1).strip()
        if not order.account_number:
            order.account_number = m.group(2).strip()

    log_summary(VENDOR, order=order, debug=debug)
    return order


def _order_date(lines: List[str]) -> Optional[str]:
    for i, ln in enumerate(lines):
        if ln == "Date:":
            for nxt in lines[i + 1:i + 3]:
                m = re.search(r"(\d{2}/\d{2}/\d{4})", nxt)
                if m:
                    return m.group(1)
        if "Date:" in ln:
            m = re.search(r"Date:\s*(\d{2}/\d{2}/\d{4})", ln) or re.search(r"(\d{2}/\d{2}/\d{4})", ln)
            if m:
                return m.group(1)
    return None


def _placed_by(lines: List[str]) -> Optional[str]:
    for i, ln in enumerate(lines):
        if ln == "Placed By:" and i + 2 < len(lines):
            v = lines[i + 2]
            m = re.match(r"^(\d+)\s+(.+)$", v)
            return m.group(2).strip() if m else (v or None)
        if ln.startswith("Placed By:") and len(ln) > len("Placed By:"):
            return ln.split(":", 1)[1].strip() or None
    return None


# -------------------------------------------------
# Line-item parsing
# -------------------------------------------------

def parse_line_items(text: str, debug: bool = False) -> List[LineItem]:
    lines = _lines(text)
    start = next((i + 1 for i, ln in enumerate(lines) if "Item Description" in ln), None)
    if start is None:
        log_summary(VENDOR, items=[], debug=debug)
        return []

    items: List[LineItem] = []
    i = start
    while i < len(lines):
        ln = lines[i]
        if not ln or "Total" in ln or "*Date Available" in ln or not FRAME_START_RE.match(ln):
            i += 1
            continue

        frame, nxt = _collect_frame(lines, i)
        item = parse_frame_line(frame)
        if item is not None:
            items.append(item)
        else:
            logger.warning("[safilo] unreadable frame line: %r", frame)
        i = nxt

    log_summary(VENDOR, items=items, debug=debug)
    return items


def _collect_frame(lines: List[str], i: int) -> tuple[str, int]:
    """Join a frame line with its wrapped continuation lines (at most three)."""
    frame = lines[i]
    j = i + 1
    while j < len(lines) and j < i + 4:
        nxt = lines[j]
        if STOP_RE.match(nxt) or DATE_LINE_RE.match(nxt):
            break
        # Temple size wrapped onto its own line
        if re.fullmatch(r"\d{3}", nxt) or (len(nxt) > 3 and not nxt.isdigit()):
            frame += " " + nxt
            j += 1
            continue
        break
    return frame, j


def parse_frame_line(line: str) -> Optional[LineItem]:
    """KS CHERETTE2/US X19 PATTERN MULTICOLOR 52/17 140 -> LineItem.

    Layout: <prefix> <model tokens> <color code> <color name...> <EE/BB TTT>.
    The model is cut at its first '/' (packaging/fit suffix). A line without a
    readable size still yields an item, with the size fields left empty; None
    means not even model and colour could be read.
    """
    line = " ".join(DATE_STAMP_RE.sub("", " ".join(line.split())).split())
    size = SIZE_RE.search(line)

    parts = (line[: size.start()] if size else line).split()
    prefix = parts[0] if parts else ""
    brand, brand_name, model_tokens = PREFIXES.get(prefix, (prefix, prefix, 2))
    if len(parts) < model_tokens + 1:
        return None

    model = strip_variant_suffix(" ".join(parts[:model_tokens]))
    color_code = parts[model_tokens]
    color_name = " ".join(parts[model_tokens + 1:]).replace("_", " ").strip() or None
    eye, bridge, temple = size.groups() if size else (None, None, None)

    return LineItem(
        brand=brand,
        model=model,
        color_code=color_code,
        color_name=color_name,
        eye_size=eye,
        bridge=bridge,
        temple=temple,
        full_size=f"{eye}/{bridge} {temple}" if size else None,
        quantity=1,
        enriched_data={"brand_name": brand_name, "source_line": line},
    )
