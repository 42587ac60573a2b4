from __future__ import annotations

from typing import List

from frame_orders.models import LineItem, Order
from frame_orders.vendors import jiecosystem

VENDOR = "modern"

# Abbreviations used in Modern Optical colour columns and on their product pages
COLOR_ABBREVIATIONS = {
    "BLK": "Black",
    "GM": "Gunmetal",
    "GUN": "Gunmetal",
    "SIL": "Silver",
    "GLD": "Gold",
    "BR": "Brown",
    "BRN": "Brown",
    "BL": "Blue",
    "BLU": "Blue",
    "GR": "Grey",
    "GRY": "Grey",
    "GN": "Green",
    "GRN": "Green",
    "RD": "Red",
    "WH": "White",
    "WHT": "White",
    "CL": "Clear",
    "TORT": "Tortoise",
    "DEMI": "Demi",
    "NAVY": "Navy",
    "NVY": "Navy",
    "AQUA": "Aqua",
    "TEAL": "Teal",
    "PINK": "Pink",
    "PK": "Pink",
    "RUST": "Rust",
    "BURG": "Burgundy",
    "FADE": "Fade",
    "CRY": "Crystal",
    "CRYST": "Crystal",
    "CLEO": "Cleo",
}

LAYOUT = jiecosystem.Layout(
    vendor=VENDOR,
    vendor_name="Modern Optical",
    image_segment="modern",
    account_pattern=r"\d{4,6}",
    color_names=COLOR_ABBREVIATIONS,
)


def parse_order(payload: str, debug: bool = False) -> Order:
    return jiecosystem.parse_order(LAYOUT, payload, debug=debug)


def parse_line_items(payload: str, debug: bool = False) -> List[LineItem]:
    return jiecosystem.parse_line_items(LAYOUT, payload, debug=debug)
