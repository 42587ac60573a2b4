from __future__ import annotations

import logging
import re
from typing import List, Optional

from frame_orders.adapters.base import BaseAdapter
from frame_orders.config import AdapterKind, VendorKey
from frame_orders.htmldoc import Node, parse_html
from frame_orders.matcher import COLOR_NAME_RULES
from frame_orders.models import Candidates, LineItem, NoCandidates, Variant
from frame_orders.vendors.jiecosystem import expand_color
from frame_orders.vendors.modern import COLOR_ABBREVIATIONS

logger = logging.getLogger(__name__)

BASE_URL = "https://www.modernoptical.com"

NOT_FOUND_MARKERS = ("page not found", "error 404", "http 404", "does not exist",
                     "the resource you are looking for has been removed")
PRODUCT_MARKERS = ("product-data-table", "gallery_09", "lnkCollection", "MainContentArea", "label-custom-green")


def _slug(text: str) -> str:
    s = re.sub(r"[^a-zA-Z0-9\s\-_.]", "", text)
    s = re.sub(r"\s+", "-", s)
    return re.sub(r"--+", "-", s).strip("-")


def product_urls(brand: str, model: str) -> List[str]:
    """'B.M.E.C.', 'BIG RIVER' -> /Detail/BMEC/BIG-RIVER first, then looser spellings."""
    brands = [re.sub(r"[.\s]", "", brand), _slug(brand)]
    models = [_slug(model), _slug(model.replace(" ", ""))]
    urls = []
    for b in dict.fromkeys(x for x in brands if x):
        for m in dict.fromkeys(x for x in models if x):
            urls.append(f"{BASE_URL}/Detail/{b}/{m}")
    return urls


def is_product_page(page: Optional[str]) -> bool:
    if not page or len(page) < 100:
        return False
    lower = page.lower()
    if any(marker in lower for marker in NOT_FOUND_MARKERS):
        return False
    return any(marker in page for marker in PRODUCT_MARKERS)


def _upc_span(row: Node) -> Optional[str]:
    for span in row.iter("span"):
        sid = span.get("id") or ""
        if "Label1" in sid or "UPC" in sid or "upc" in sid:
            return span.inline_text() or None
    return None


def _attribute(doc: Node, label: str) -> Optional[str]:
    """Value printed right after an accordion label such as 'Material'."""
    for node in doc.iter():
        if node.inline_text().lower() != label.lower() or node.find("p") is not None:
            continue
        parent = node.parent
        if parent is None:
            continue
        for sib in parent.elements():
            if sib is not node and sib.tag in ("p", "span"):
                value = sib.inline_text()
                if value:
                    return value
    return None


def parse_product_page(page: str, url: str) -> List[Variant]:
    doc = parse_html(page)
    container = doc.find(class_="product-data-table")
    table = container.find("table", class_="table") if container is not None else None
    if table is None:
        return []

    title = doc.find("h1", class_="label-custom-green")
    collection = doc.find("a", id=lambda v: bool(v) and "lnkCollection" in v)
    material = _attribute(doc, "Material")
    out_of_stock = "out of stock" in page.lower()

    variants: List[Variant] = []
    # Color | Eye | A | B | DBL | ED | Temple | Bridge
    for row in table.rows():
        cells = row.cells()
        if len(cells) < 7:
            continue
        color = cells[0].inline_text()
        upc = _upc_span(row)
        if not color or not upc:
            continue
        variants.append(Variant(
            source=VendorKey.MODERN.value,
            upc=upc,
            brand=collection.inline_text() if collection is not None else None,
            model=title.inline_text() if title is not None else None,
            color_code=color,
            color_name=expand_color(color, COLOR_ABBREVIATIONS),
            eye_size=cells[1].inline_text() or None,
            bridge=(cells[7].inline_text() if len(cells) > 7 else "") or cells[4].inline_text() or None,
            temple=cells[6].inline_text() or None,
            in_stock=not out_of_stock,
            material=material,
            url=url,
            extra={
                "a": cells[2].inline_text(),
                "b": cells[3].inline_text(),
                "dbl": cells[4].inline_text(),
                "ed": cells[5].inline_text(),
            },
        ))
    return variants


class ModernOpticalAdapter(BaseAdapter):
    vendor = VendorKey.MODERN
    kind = AdapterKind.SCRAPE
    rules = COLOR_NAME_RULES

    def lookup(self, item: LineItem) -> Candidates:
        if not item.brand or not item.model:
            return NoCandidates(lookup=f"{item.brand}/{item.model}")

        for url in product_urls(item.brand, item.model):
            page = self.http.get_text(url)
            if not is_product_page(page):
                logger.debug("[modern] no product page at %s", url)
                continue
            variants = parse_product_page(page, url)
            if variants:
                return variants
        return NoCandidates(lookup=f"{item.brand}/{item.model}")
