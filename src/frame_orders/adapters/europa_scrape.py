"""Europa product pages.

Each orderable frame has a page at /products/{stockNo}; the page is a Vue
shell whose <router-view :init-variations="..."> attribute holds every
colour/size variation of the style as JSON. Pricing needs a login, so
variants come back without prices.
"""
from __future__ import annotations

import html
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from frame_orders.adapters.base import BaseAdapter
from frame_orders.config import AdapterKind, VendorKey
from frame_orders.htmldoc import parse_html
from frame_orders.matcher import EUROPA_RULES
from frame_orders.models import Candidates, LineItem, NoCandidates, Variant, to_float

logger = logging.getLogger(__name__)

BASE_URL = "https://europaeye.com/products"
DEFAULT_BRIDGE = "18"
# Order e-mails often leave the bridge out; these cover nearly every style
FALLBACK_BRIDGES = ("16", "17", "18", "19", "20")

BRAND_CODES = {
    "michael ryen": "MR",
    "scott harris": "SH",
    "cote d'azur": "CDA",
    "cote d azur": "CDA",
    "american optical": "AO",
    "cinzia": "CZ",
}

SHORT_CODE_RE = re.compile(r"^([A-Z]+)-?(\d+[A-Z]?)$", re.I)
TRAILING_NUMBER_RE = re.compile(r"(\d+[A-Z]?)$", re.I)
LOOSE_CODE_RE = re.compile(r"([A-Z]{2,4})[\s-]?(\d+[A-Z]?)", re.I)
# Colour number is a single character in practice; pass short_code when it is not
STOCK_NO_RE = re.compile(r"^([A-Z0-9]+)([A-Z0-9])(\d{2})-(\d{2})$")


def short_code_for(model: Optional[str], brand: Optional[str] = None) -> Optional[str]:
    """'MRX-104' -> 'MRX104'; 'Michael Ryen Sport 104' -> 'MR104'."""
    if not model:
        return None
    model = model.strip()
    m = SHORT_CODE_RE.match(model)
    if m:
        return m.group(1).upper() + m.group(2).upper()

    m = TRAILING_NUMBER_RE.search(model)
    if m and brand:
        b = brand.lower()
        for name, code in BRAND_CODES.items():
            if name in b:
                return code + m.group(1).upper()

    m = LOOSE_CODE_RE.search(model)
    if m:
        return m.group(1).upper() + m.group(2).upper()
    return None


@dataclass(frozen=True)
class StockKey:
    short_code: str
    color_no: str
    eye_size: str
    bridge: str = DEFAULT_BRIDGE

    def compose(self) -> str:
        return f"{self.short_code}{self.color_no}{self.eye_size}-{self.bridge}"

    def with_bridge(self, bridge: str) -> "StockKey":
        return StockKey(self.short_code, self.color_no, self.eye_size, bridge)

    @classmethod
    def decompose(cls, key: str, short_code: Optional[str] = None) -> "StockKey":
        key = key.strip().upper()
        if short_code:
            sc = short_code.upper()
            m = re.match(rf"^{re.escape(sc)}([A-Z0-9]+?)(\d{{2}})-(\d{{2}})$", key)
            if m:
                return cls(sc, m.group(1), m.group(2), m.group(3))
        m = STOCK_NO_RE.match(key)
        if not m:
            raise ValueError(f"not a Europa stock number: {key!r}")
        return cls(m.group(1), m.group(2), m.group(3), m.group(4))

    @classmethod
    def from_item(cls, item: LineItem) -> Optional["StockKey"]:
        short = short_code_for(item.model, item.brand)
        eye = (item.eye_size or "").strip()
        if not short or not eye:
            return None
        return cls(short, (item.color_code or "1").strip(), eye, (item.bridge or DEFAULT_BRIDGE).strip())


def parse_variations(page: str) -> Optional[List[Dict[str, Any]]]:
    """JSON list from the router-view attribute, or None when the page has none."""
    doc = parse_html(page)
    node = None
    for n in doc.iter("router-view"):
        if ":init-variations" in n.attrs:
            node = n
            break
    raw = node.get(":init-variations") if node is not None else None
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        # Doubly-escaped attribute: decode entities once more and retry
        try:
            data = json.loads(html.unescape(raw))
        except ValueError:
            logger.debug("[europa] could not decode :init-variations")
            return None
    if not isinstance(data, list):
        return None
    variations = [v for v in data if isinstance(v, dict)]
    if len(variations) < len(data):
        logger.debug("[europa] skipped %d non-object variations", len(data) - len(variations))
    return variations or None


def _s(v: Any) -> Optional[str]:
    if v in (None, ""):
        return None
    if isinstance(v, float) and v == int(v):
        v = int(v)
    return str(v).strip() or None


def variation_to_variant(var: Dict[str, Any], url: str) -> Variant:
    data = var.get("data")
    if not isinstance(data, dict):
        data = {}
    out_of_stock = var.get("isOutOfStock")
    available = data.get("isAvailable")
    if available is None and out_of_stock is not None:
        available = not out_of_stock
    return Variant(
        source=VendorKey.EUROPA.value,
        upc=_s(data.get("upcCode")),
        sku=_s(var.get("id")),
        brand=_s(data.get("collectionName")),
        model=_s(data.get("shortCode") or var.get("short_code")),
        color_code=_s(data.get("colorNo")),
        color_name=_s(data.get("colorName") or data.get("colorDescription")),
        eye_size=_s(data.get("eyeSizeA")),
        bridge=_s(data.get("bridgeDbl")),
        temple=_s(data.get("templeTmp")),
        wholesale_price=to_float(data.get("customerPrice")),
        msrp=to_float(data.get("listPrice")),
        in_stock=available,
        availability=_s(data.get("availabilityText")),
        material=_s(data.get("frontMaterial")),
        url=url,
        extra={
            "product_name": var.get("productName"),
            "temple_material": data.get("templeMaterial"),
            "bridge_type": data.get("bridgeType"),
        },
    )


class EuropaAdapter(BaseAdapter):
    vendor = VendorKey.EUROPA
    kind = AdapterKind.SCRAPE
    rules = EUROPA_RULES

    def fetch(self, key: StockKey) -> Optional[List[Variant]]:
        url = f"{BASE_URL}/{key.compose()}"
        page = self.http.get_text(url)
        if page is None:
            return None
        variations = parse_variations(page)
        if not variations:
            return None
        return [variation_to_variant(v, url) for v in variations]

    def lookup(self, item: LineItem) -> Candidates:
        key = StockKey.from_item(item)
        if key is None:
            return NoCandidates(lookup=f"{item.model} (no stock number)")

        found = self.fetch(key)
        if found:
            return found
        if item.bridge:
            return NoCandidates(lookup=key.compose())

        # Bridge was guessed; walk the usual sizes
        for bridge in FALLBACK_BRIDGES:
            if bridge == key.bridge:
                continue
            alt = key.with_bridge(bridge)
            logger.debug("[europa] %s not found, trying %s", key.compose(), alt.compose())
            found = self.fetch(alt)
            if found:
                return found
        return NoCandidates(lookup=key.compose())
