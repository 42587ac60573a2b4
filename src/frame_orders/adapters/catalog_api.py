"""CatalogAPI filter endpoint shared by the Safilo and L'amyamerica B2B sites.

POST a filter body with a free-text `search`; the answer is a list of
products, each product a list of colour groups, each colour group a list of
sizes. Every size is one orderable variant.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from frame_orders.adapters.base import BaseAdapter
from frame_orders.config import AdapterKind, VendorKey
from frame_orders.matcher import CATALOG_API_RULES
from frame_orders.models import Candidates, LineItem, NoCandidates, Variant, to_float
from frame_orders.vendors.safilo import BRAND_NAMES

logger = logging.getLogger(__name__)

SAFILO_URL = "https://www.mysafilo.com/US/api/CatalogAPI/filter"
LAMY_URL = "https://www.lamyamerica.com/US/api/CatalogAPI/filter"

_LIST_FILTERS = (
    "Collections", "ColorFamily", "Shapes", "FrameTypes", "Genders",
    "FrameMaterials", "FrontMaterials", "HingeTypes", "RimTypes",
    "TempleMaterials", "LensMaterials", "FITTING", "COUNTRYOFORIGIN",
)
_FLAG_FILTERS = ("NewStyles", "BestSellers", "RxAvailable", "InStock", "Readers")
_RANGE_FILTERS = ("ASizes", "BSizes", "EDSizes", "DBLSizes")


def filter_body(search: str) -> Dict[str, Any]:
    body: Dict[str, Any] = {k: [] for k in _LIST_FILTERS}
    body.update({k: False for k in _FLAG_FILTERS})
    body.update({k: {"min": -1, "max": -1} for k in _RANGE_FILTERS})
    body["search"] = search
    return body


def _first(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        v = d.get(k)
        if v not in (None, ""):
            return v
    return None


def _str(v: Any) -> Optional[str]:
    if v is None or v == "":
        return None
    if isinstance(v, float) and v == int(v):
        v = int(v)
    return str(v).strip() or None


def _dicts(value: Any) -> List[Dict[str, Any]]:
    """Object entries of a JSON array; anything else yields nothing."""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def flatten_products(products: Any, source: str) -> List[Variant]:
    """product -> colorGroup -> sizes, one Variant per size."""
    out: List[Variant] = []
    for product in _dicts(products):
        for group in _dicts(product.get("colorGroup")):
            for size in _dicts(group.get("sizes")):
                extra = {
                    a.get("name"): a.get("value")
                    for a in _dicts(size.get("additionalData"))
                    if a.get("name")
                }
                extra["size"] = size.get("size")
                extra["ean"] = size.get("ean")
                out.append(Variant(
                    source=source,
                    upc=_str(size.get("upc")),
                    sku=_str(size.get("sku")),
                    brand=_str(product.get("collectionName")),
                    model=_str(product.get("styleCode")),
                    color_code=_str(group.get("color")),
                    color_name=_str(group.get("colorName")),
                    eye_size=_str(_first(size, "eyeSize", "a")),
                    bridge=_str(_first(size, "bridge", "dbl")),
                    temple=_str(size.get("temple")),
                    wholesale_price=to_float(_first(size, "wholesale", "price")),
                    msrp=to_float(size.get("msrp")),
                    in_stock=bool(size.get("isInStock")) if size.get("isInStock") is not None else None,
                    availability=_str(size.get("availableStatus")),
                    material=_str(size.get("material")),
                    frame_type=_str(size.get("frameType")),
                    extra=extra,
                ))
    return out


class CatalogApiAdapter(BaseAdapter):
    kind = AdapterKind.API
    rules = CATALOG_API_RULES
    url: str

    def search_terms(self, item: LineItem) -> List[str]:
        raise NotImplementedError

    def lookup(self, item: LineItem) -> Candidates:
        terms = [t for t in dict.fromkeys(self.search_terms(item)) if t]
        if not terms:
            return NoCandidates(lookup="")
        for term in terms:
            logger.debug("[%s] CatalogAPI search %r", self.vendor.value, term)
            data = self.http.post_json(self.url, filter_body(term))
            variants = flatten_products(data if isinstance(data, list) else [], self.vendor.value)
            if variants:
                return variants
        return NoCandidates(lookup=" | ".join(terms))


class SafiloAdapter(CatalogApiAdapter):
    vendor = VendorKey.SAFILO
    url = SAFILO_URL

    def search_terms(self, item: LineItem) -> List[str]:
        model = (item.model or "").strip()
        code = (item.brand or "").strip().upper()
        terms = [model]
        if code and model.upper().startswith(code + " "):
            rest = model[len(code):].strip()
            terms.append(rest)
            full = self._brand_name(item)
            if full and full != code:
                terms.append(f"{full} {rest}")
        return terms

    def _brand_name(self, item: LineItem) -> Optional[str]:
        return item.enriched_data.get("brand_name") or BRAND_NAMES.get((item.brand or "").upper())

    def match_attributes(self, item: LineItem) -> Dict[str, Any]:
        # The catalog lists collections by full name ("KATE SPADE"), the PDF by code ("KS")
        attrs = item.match_attributes()
        attrs["brand"] = self._brand_name(item) or item.brand
        return attrs


class LamyAdapter(CatalogApiAdapter):
    vendor = VendorKey.LAMY
    url = LAMY_URL

    def search_terms(self, item: LineItem) -> List[str]:
        return [item.upc or "", item.model or ""]
