from __future__ import annotations

from typing import List

from frame_orders.models import LineItem, Order
from frame_orders.vendors import jiecosystem

VENDOR = "lamy"

# Subject: "Your receipt for EyeRep Order Number 123456"; accounts look like U00271302
LAYOUT = jiecosystem.Layout(
    vendor=VENDOR,
    vendor_name="L'amyamerica",
    image_segment="lamy",
    account_pattern=r"[A-Z0-9]{8,10}",
    order_number_pattern=r"(?:EyeRep Order Number|Order Number)[:\s]*(\d+)",
)


def parse_order(payload: str, debug: bool = False) -> Order:
    return jiecosystem.parse_order(LAYOUT, payload, debug=debug)


def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    return jiecosystem.parse_line_items(LAYOUT, payload, debug=debug)
