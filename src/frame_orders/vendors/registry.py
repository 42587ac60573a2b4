from __future__ import annotations

from types import ModuleType
from typing import Dict, List, Tuple, Union

from frame_orders.config import VendorKey
from frame_orders.errors import ConfigError
from frame_orders.models import LineItem, Order
from . import etnia, europa, ideal, kenmark, lamy, luxottica, marchon, modern, safilo

# One document parser per vendor key
PARSERS: Dict[VendorKey, ModuleType] = {
    VendorKey.SAFILO: safilo,
    VendorKey.LUXOTTICA: luxottica,
    VendorKey.IDEAL: ideal,
    VendorKey.LAMY: lamy,
    VendorKey.MODERN: modern,
    VendorKey.ETNIA: etnia,
    VendorKey.EUROPA: europa,
    VendorKey.KENMARK: kenmark,
    VendorKey.MARCHON: marchon,
}


def pick_parser(vendor: Union[str, VendorKey]) -> ModuleType:
    try:
        return PARSERS[VendorKey(vendor)]
    except (ValueError, KeyError):
        raise ConfigError(f"no document parser for vendor {vendor!r}") from None


def parse_document(vendor: Union[str, VendorKey], payload: str, debug: bool = False) -> Tuple[Order, List[LineItem]]:
    """Run the vendor's parser over one document. ParseError propagates."""
    mod = pick_parser(vendor)
    order = mod.parse_order(payload, debug=debug)
    items = mod.parse_line_items(payload, debug=debug)
    order.attach(items)
    return order, items
