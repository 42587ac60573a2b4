from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import quote

from frame_orders.adapters.base import BaseAdapter
from frame_orders.config import AdapterKind, VendorKey
from frame_orders.htmldoc import Node, parse_html
from frame_orders.matcher import COLOR_NAME_RULES
from frame_orders.models import Candidates, LineItem, NoCandidates, Variant

logger = logging.getLogger(__name__)

BASE_URL = "https://www.i-dealoptics.com"
BRAND = "Ideal Optics"

# Tried in order when the autocomplete endpoint has nothing
COLLECTIONS = (
    "clearance", "casino", "elegante", "elevate", "focus-eyewear", "haggar",
    "jbx", "jelly-bean", "rafaella", "reflections", "rio-ray", "suntrends",
)
NOT_FOUND_MARKERS = ("page not found", "error 404", "http 404", "does not exist")
PRODUCT_MARKERS = ("stylePartial", "frameDetailOwlCarousel", "styleDescriptions", "fitTypeValue")

FIT_TYPE_RE = re.compile(r"fitTypeLookup\['(\d+)'\]\s*=\s*'([^']+)'")
UPC_PARAM_RE = re.compile(r"[?&]upc=(\d+)", re.I)
SKU_PARAM_RE = re.compile(r"[?&]sku=([^&]+)", re.I)
MATERIAL_RE = re.compile(r"acetate|metal|stainless|titanium|plastic", re.I)
GENDER_RE = re.compile(r"womens|mens|unisex", re.I)


def is_product_page(page: Optional[str]) -> bool:
    if not page or len(page) < 100:
        return False
    lower = page.lower()
    if any(m in lower for m in NOT_FOUND_MARKERS):
        return False
    return any(m in page for m in PRODUCT_MARKERS)


def fallback_urls(model: str) -> List[str]:
    urls = []
    for coll in COLLECTIONS:
        for m in dict.fromkeys((model.lower(), model.upper(), model)):
            urls.append(f"{BASE_URL}/catalog/{coll}/{coll}/{m}")
    return urls


def _measurements(doc: Node) -> Dict[str, str]:
    detail = doc.find(class_="style-detail")
    if detail is None:
        return {}
    paragraphs = [p for p in detail.iter("p") if p.has_class("text-small")]
    if len(paragraphs) < 2:
        return {}
    spans = [s.inline_text() for s in paragraphs[1].iter("span")]
    if len(spans) < 6:
        return {}
    return dict(zip(("eye", "bridge", "temple", "a", "b", "ed"), spans))


def _descriptions(doc: Node) -> Dict[str, str]:
    out: Dict[str, str] = {}
    section = doc.find(id="styleDescriptions")
    if section is None:
        return out
    for el in section.iter():
        if not el.has_class("text-small"):
            continue
        text = el.inline_text()
        if GENDER_RE.search(text):
            out.setdefault("gender", text)
        elif MATERIAL_RE.search(text):
            out.setdefault("material", text)
    return out


def parse_product_page(page: str, url: str) -> List[Variant]:
    """Carousel images carry one UPC per colour; measurements are per style."""
    doc = parse_html(page)
    carousel = doc.find(id="frameDetailOwlCarousel")
    if carousel is None:
        return []

    images = []
    for item in carousel.iter():
        if not item.has_class("item"):
            continue
        for img in item.iter("img"):
            src = img.get("src") or ""
            upc = img.get("data-upc") or ""
            if not upc:
                m = UPC_PARAM_RE.search(src)
                upc = m.group(1) if m else ""
            if upc:
                m = SKU_PARAM_RE.search(src)
                images.append((upc, m.group(1) if m else None))

    color_names = [
        a.inline_text()
        for a in doc.iter("a")
        if a.has_class("goTo") and a.parent is not None
        and any(n.has_class("text-uppercase") and n.has_class("top-margin") for n in _lineage(a))
    ]
    color_names = [c for c in color_names if c]
    # Names only line up with the carousel when the counts agree
    if len(color_names) != len(images):
        color_names = [None] * len(images)

    sizes = _measurements(doc)
    desc = _descriptions(doc)
    fit = FIT_TYPE_RE.search(page)

    return [
        Variant(
            source=VendorKey.IDEAL.value,
            upc=upc,
            sku=sku,
            brand=BRAND,
            color_code=name.upper() if name else None,
            color_name=name,
            eye_size=sizes.get("eye"),
            bridge=sizes.get("bridge"),
            temple=sizes.get("temple"),
            material=desc.get("material"),
            url=url,
            extra={
                "a": sizes.get("a"),
                "b": sizes.get("b"),
                "ed": sizes.get("ed"),
                "gender": desc.get("gender"),
                "fit_type": fit.group(2) if fit else None,
            },
        )
        for (upc, sku), name in zip(images, color_names)
    ]


def _lineage(node: Node):
    p = node.parent
    while p is not None:
        yield p
        p = p.parent


class IdealOpticsAdapter(BaseAdapter):
    vendor = VendorKey.IDEAL
    kind = AdapterKind.SCRAPE
    rules = COLOR_NAME_RULES

    def autocomplete_url(self, model: str) -> Optional[str]:
        data = self.http.get_json(
            f"{BASE_URL}/Home/SearchFrames/?q={quote(model)}",
            headers={"X-Requested-With": "XMLHttpRequest", "Referer": BASE_URL},
        )
        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        if not isinstance(suggestions, list) or not suggestions or not isinstance(suggestions[0], dict):
            return None
        d = suggestions[0].get("data")
        if not isinstance(d, dict):
            return None
        if d.get("BrandUrl") and d.get("CollectionUrl") and d.get("StyleUrl"):
            return f"{BASE_URL}/catalog/{d['BrandUrl']}/{d['CollectionUrl']}/{d['StyleUrl']}"
        return None

    def lookup(self, item: LineItem) -> Candidates:
        model = (item.model or "").strip()
        if not model:
            return NoCandidates(lookup="")

        first = self.autocomplete_url(model)
        urls = ([first] if first else []) + fallback_urls(model)
        for url in urls:
            page = self.http.get_text(url)
            if not is_product_page(page):
                continue
            variants = parse_product_page(page, url)
            if variants:
                logger.debug("[ideal] %s -> %s (%d variants)", model, url, len(variants))
                return variants
        return NoCandidates(lookup=model)
