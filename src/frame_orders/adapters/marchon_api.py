from __future__ import annotations

import logging
from typing import Any, Dict, List

from frame_orders.adapters.base import BaseAdapter
from frame_orders.config import AdapterKind, VendorKey
from frame_orders.matcher import MARCHON_RULES
from frame_orders.models import Candidates, LineItem, NoCandidates, Variant, to_float

logger = logging.getLogger(__name__)

# The double slash is part of the working endpoint
SKU_URL = "https://www.mymarchon.com//ProductCatologWebWeb/Frame/sku"
SALES_ORG = "2010"


def sku_request(style: str) -> Dict[str, Any]:
    return {
        "style": style,
        "itemType": "FRAME",
        "orderType": "STOCK",
        "salesOrg": SALES_ORG,
        "distChannel": "10",
        "userCredential": {"salesOrg": SALES_ORG, "language": "en_US", "countryCode": "US"},
    }


def _s(v: Any) -> str:
    return str(v).strip() if v not in (None, "") else ""


def sku_variants(detail: Any) -> List[Variant]:
    out: List[Variant] = []
    if not isinstance(detail, list):
        return out
    for sku in detail:
        if not isinstance(sku, dict):
            logger.debug("[marchon] skipping sku entry %r", sku)
            continue
        out.append(Variant(
            source=VendorKey.MARCHON.value,
            upc=_s(sku.get("upcNumber")) or None,
            model=_s(sku.get("style")) or None,
            brand=_s(sku.get("marketingGroupDescription")) or None,
            color_code=_s(sku.get("color")) or None,
            color_name=_s(sku.get("colorDescription")) or None,
            eye_size=_s(sku.get("SSA")) or None,
            bridge=_s(sku.get("SSDBL")) or None,
            temple=_s(sku.get("templeLength")) or None,
            # "retail" on this endpoint is the price charged to the practice
            wholesale_price=to_float(sku.get("retail")),
            msrp=to_float(sku.get("msrp")),
            in_stock=sku.get("stockStatus") == "Available",
            availability=_s(sku.get("stockStatus")) or None,
            material=_s(sku.get("planMaterial")) or None,
            frame_type=_s(sku.get("rimType")) or None,
            extra={"shape": sku.get("shape"), "gender": sku.get("gender")},
        ))
    return out


class MarchonAdapter(BaseAdapter):
    vendor = VendorKey.MARCHON
    kind = AdapterKind.API
    rules = MARCHON_RULES

    def lookup(self, item: LineItem) -> Candidates:
        style = item.enriched_data.get("frame") or item.model
        if not style:
            return NoCandidates(lookup="")
        data = self.http.post_json(SKU_URL, sku_request(style))
        if data is None:
            return NoCandidates(lookup=style)

        status = data.get("serviceStatus") if isinstance(data, dict) else None
        if not isinstance(status, dict):
            status = {}
        if status.get("resultCode") != 0:
            # Unknown styles come back as a non-zero result code, not a 404
            logger.debug("[marchon] %s: resultCode=%s %s", style, status.get("resultCode"), status.get("message"))
            return NoCandidates(lookup=style)

        variants = sku_variants(data.get("skuDetail") or [])
        return variants or NoCandidates(lookup=style)
