from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


# -------------------------------------------------
# Status lifecycle
# -------------------------------------------------

class ItemStatus(str, Enum):
    PARSED = "parsed"
    ENRICHED_VALIDATED = "enriched-validated"
    ENRICHED_LOW_CONFIDENCE = "enriched-low-confidence"
    ENRICHMENT_FAILED = "enrichment-failed"
    VERIFIED_IN_DOCUMENT = "verified-in-document"

    @property
    def terminal(self) -> bool:
        return self is not ItemStatus.PARSED


# -------------------------------------------------
# Normalisation helpers shared by parsers, matcher and cache
# -------------------------------------------------

_WS_RE = re.compile(r"\s+")
_SIZE_RE = re.compile(r"\b(\d{2})\s*[-/]\s*(\d{2})(?:\s*[-/ ]\s*(\d{3}))?\b")


def normalize_token(value: Any) -> str:
    if value is None:
        return ""
    return _WS_RE.sub(" ", str(value)).strip().upper()


def strip_variant_suffix(model: Optional[str]) -> Optional[str]:
    """Drop a packaging/fit suffix: 'KS CHERETTE2/US' -> 'KS CHERETTE2'."""
    if model is None:
        return None
    return model.split("/", 1)[0].strip()


def split_size(text: Optional[str]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """'53-16-140', '52/17 140' or '54-18' -> (eye, bridge, temple)."""
    if not text:
        return None, None, None
    m = _SIZE_RE.search(text)
    if not m:
        s = text.strip()
        return (s, None, None) if s.isdigit() else (None, None, None)
    return m.group(1), m.group(2), m.group(3)


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).replace(",", "").replace("$", "").strip()
    try:
        return float(s)
    except ValueError:
        return None


def to_int(value: Any, default: int = 0) -> int:
    f = to_float(value)
    return int(f) if f is not None else default


# -------------------------------------------------
# Order + line items
# -------------------------------------------------

@dataclass
class LineItem:
    brand: Optional[str]
    model: Optional[str]
    color_name: Optional[str] = None
    color_code: Optional[str] = None
    eye_size: Optional[str] = None
    bridge: Optional[str] = None
    temple: Optional[str] = None
    full_size: Optional[str] = None
    quantity: int = 1
    sku: Optional[str] = None
    upc: Optional[str] = None
    wholesale_price: Optional[float] = None
    msrp: Optional[float] = None
    material: Optional[str] = None
    frame_type: Optional[str] = None
    api_verified: bool = False
    confidence_score: int = 0
    validation_reason: str = ItemStatus.PARSED.value
    status: ItemStatus = ItemStatus.PARSED
    in_stock: Optional[bool] = None
    availability: Optional[str] = None
    ship_date: Optional[str] = None
    image_url: Optional[str] = None
    enriched_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> Optional[str]:
        if self.full_size:
            return self.full_size
        parts = [p for p in (self.eye_size, self.bridge, self.temple) if p]
        return "-".join(parts) or None

    @property
    def product_key(self) -> str:
        color = self.color_code or self.color_name
        return "|".join(normalize_token(v) for v in (self.brand, self.model, color, self.eye_size))

    def match_attributes(self) -> Dict[str, Any]:
        return {
            "brand": self.brand,
            "model": self.model,
            "color_code": self.color_code,
            "color_name": self.color_name,
            "eye_size": self.eye_size,
            "bridge": self.bridge,
            "temple": self.temple,
            "upc": self.upc,
        }

    def mark(self, status: ItemStatus, *, confidence: Optional[int] = None, detail: Optional[str] = None) -> None:
        """Move to a terminal enrichment state. States are never reverted."""
        if self.status.terminal:
            raise ValueError(f"line item already {self.status.value}; cannot move to {status.value}")
        if not status.terminal:
            raise ValueError("cannot move a line item back to 'parsed'")
        self.status = status
        self.validation_reason = status.value
        if confidence is not None:
            self.confidence_score = max(0, min(100, int(confidence)))
        if detail:
            self.enriched_data["detail"] = detail

    def to_output(self) -> Dict[str, Any]:
        return {
            "brand": self.brand,
            "model": self.model,
            "color_name": self.color_name,
            "color_code": self.color_code,
            "size": self.size,
            "quantity": self.quantity,
            "upc": self.upc,
            "wholesale_price": self.wholesale_price,
            "msrp": self.msrp,
            "sku": self.sku,
            "material": self.material,
            "frame_type": self.frame_type,
            "api_verified": self.api_verified,
            "confidence_score": self.confidence_score,
            "validation_reason": self.validation_reason,
        }


@dataclass
class Order:
    vendor: str
    vendor_name: Optional[str] = None
    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    order_date: Optional[str] = None
    account_number: Optional[str] = None
    reference_number: Optional[str] = None
    rep_name: Optional[str] = None
    # Total printed on the document itself; informational only
    items_total: Optional[float] = None
    pieces_stated: Optional[int] = None
    total_pieces: int = 0
    unique_models: int = 0
    total_value: float = 0.0
    items: List[LineItem] = field(default_factory=list)

    def attach(self, items: List[LineItem]) -> None:
        self.items = list(items)
        self.recompute_totals()

    def recompute_totals(self) -> None:
        self.total_pieces = sum(i.quantity for i in self.items)
        self.unique_models = len({normalize_token(i.model) for i in self.items if i.model})
        self.total_value = round(
            sum(i.wholesale_price * i.quantity for i in self.items if i.wholesale_price is not None),
            2,
        )

    def to_output(self) -> Dict[str, Any]:
        return {
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "order_date": self.order_date,
            "account_number": self.account_number,
            "reference_number": self.reference_number,
            "total_pieces": self.total_pieces,
        }


# -------------------------------------------------
# Catalog candidates + enrichment outcomes
# -------------------------------------------------

@dataclass(frozen=True)
class Variant:
    """One candidate catalog record returned by an adapter."""
    source: str
    upc: Optional[str] = None
    sku: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    color_code: Optional[str] = None
    color_name: Optional[str] = None
    eye_size: Optional[str] = None
    bridge: Optional[str] = None
    temple: Optional[str] = None
    wholesale_price: Optional[float] = None
    msrp: Optional[float] = None
    in_stock: Optional[bool] = None
    availability: Optional[str] = None
    material: Optional[str] = None
    frame_type: Optional[str] = None
    url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def get(self, name: str) -> Any:
        if hasattr(self, name) and name != "extra":
            return getattr(self, name)
        return self.extra.get(name)


@dataclass(frozen=True)
class MatchResult:
    variant: Optional[Variant]
    score: int
    validated: bool


@dataclass(frozen=True)
class NoCandidates:
    """External source has no record for this lookup. Expected, not an error."""
    lookup: str


@dataclass(frozen=True)
class Enriched:
    match: MatchResult
    from_cache: bool = False


@dataclass(frozen=True)
class Failed:
    reason: str
    from_cache: bool = False


EnrichmentResult = Union[Enriched, Failed]
Candidates = Union[List[Variant], NoCandidates]
