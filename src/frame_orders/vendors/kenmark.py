from __future__ import annotations

from typing import List

from frame_orders.models import LineItem, Order
from frame_orders.vendors import jiecosystem

VENDOR = "kenmark"

# Kenmark rows sometimes print only the model; those belong to the house brand
LAYOUT = jiecosystem.Layout(
    vendor=VENDOR,
    vendor_name="Kenmark",
    image_segment="kenmark",
    account_pattern=r"\d{5,10}",
    order_number_pattern=r"(?:Receipt for Order Number|Order Number)[:\s]*(\d+)",
    default_brand="Kenmark",
)


def parse_order(payload: str, debug: bool = False) -> Order:
    return jiecosystem.parse_order(LAYOUT, payload, debug=debug)


def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    return jiecosystem.parse_line_items(LAYOUT, payload, debug=debug)
