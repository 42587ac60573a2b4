from __future__ import annotations

import logging
import re
from typing import List, Optional, Protocol
from urllib.parse import parse_qs, unquote, urlparse

from frame_orders.errors import ParseError
from frame_orders.models import LineItem, Order

logger = logging.getLogger(__name__)


class DocumentParser(Protocol):
    """One module per vendor document schema.

    Missing fields come back as None; only a document whose structure is not
    recognised at all raises ParseError.
    """
    VENDOR: str

    def parse_order(self, payload: str, debug: bool = False) -> Order: ...
    def parse_line_items(self, payload: str, debug: bool = False) -> List[LineItem]: ...


# -------------------------------------------------
# Helpers
# -------------------------------------------------

def _find(pattern: str, text: str, flags: int = re.I) -> Optional[str]:
    m = re.search(pattern, text or "", flags)
    if not m:
        return None
    v = m.group(1).strip()
    return v or None


def _money(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    m = re.search(r"([0-9]+(?:,[0-9]{3})*(?:\.[0-9]{1,2})?)", text)
    if not m:
        return None
    return float(m.group(1).replace(",", ""))


def _money_after(label: str, text: str) -> Optional[float]:
    m = re.search(label + r"\s*:?\s*\$?\s*([0-9]+(?:,[0-9]{3})*\.[0-9]{2})", text or "", re.I)
    if not m:
        return None
    return float(m.group(1).replace(",", ""))


def _lines(text: str) -> List[str]:
    return [ln.strip() for ln in (text or "").splitlines()]


def _customer_and_account(text: Optional[str], account_pattern: str = r"[A-Z0-9]{4,12}"):
    """'ACME OPTICAL (U00271302)' -> ('ACME OPTICAL', 'U00271302')."""
    if not text:
        return None, None
    m = re.search(r"([A-Za-z0-9][A-Za-z0-9\s&.,'/-]*?)\s*\((" + account_pattern + r")\)", text)
    if not m:
        return None, None
    return m.group(1).strip() or None, m.group(2)


def unwrap_link(url: Optional[str]) -> Optional[str]:
    """Undo URL-encoding and link-protection redirect wrappers."""
    if not url:
        return url
    out = unquote(url)
    if "linkprotect.cudasvc.com" in out:
        inner = parse_qs(urlparse(url).query).get("a")
        if inner:
            out = unquote(inner[0])
    return out


def require_structure(vendor: str, found: bool, message: str, payload: str) -> None:
    if not found:
        raise ParseError(vendor, message, fragment=(payload or "")[:400])


def log_summary(vendor: str, order: Optional[Order] = None, items: Optional[List[LineItem]] = None,
                debug: bool = False) -> None:
    if not debug:
        return
    if order is not None:
        logger.debug(
            "[%s] order=%s date=%s account=%s customer=%s",
            vendor.upper(), order.order_number, order.order_date, order.account_number, order.customer_name,
        )
    if items is not None:
        logger.debug("[%s] parsed %d line items", vendor.upper(), len(items))
