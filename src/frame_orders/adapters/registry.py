from __future__ import annotations

from typing import Dict, Optional, Type, Union

from frame_orders.adapters.base import BaseAdapter
from frame_orders.adapters.catalog_api import LamyAdapter, SafiloAdapter
from frame_orders.adapters.europa_scrape import EuropaAdapter
from frame_orders.adapters.http import HttpClient
from frame_orders.adapters.ideal_scrape import IdealOpticsAdapter
from frame_orders.adapters.marchon_api import MarchonAdapter
from frame_orders.adapters.modern_scrape import ModernOpticalAdapter
from frame_orders.config import VendorKey, vendor_config

ADAPTERS: Dict[VendorKey, Type[BaseAdapter]] = {
    VendorKey.SAFILO: SafiloAdapter,
    VendorKey.LAMY: LamyAdapter,
    VendorKey.MARCHON: MarchonAdapter,
    VendorKey.EUROPA: EuropaAdapter,
    VendorKey.MODERN: ModernOpticalAdapter,
    VendorKey.IDEAL: IdealOpticsAdapter,
}


def adapter_for(vendor: Union[str, VendorKey], http: HttpClient) -> Optional[BaseAdapter]:
    """Catalog adapter for a vendor, or None when its documents are self-sufficient."""
    cfg = vendor_config(vendor)
    if not cfg.requires_enrichment:
        return None
    cls = ADAPTERS.get(cfg.vendor_key)
    return cls(http) if cls is not None else None
