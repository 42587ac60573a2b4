from __future__ import annotations

import logging
from typing import Any, Dict, Protocol, Sequence

from frame_orders.adapters.http import HttpClient
from frame_orders.config import AdapterKind, VendorKey
from frame_orders.matcher import ScoreRule
from frame_orders.models import Candidates, LineItem

logger = logging.getLogger(__name__)


class EnrichmentAdapter(Protocol):
    """One external catalog source.

    `lookup` returns a list of Variant or NoCandidates. Network trouble that
    outlives the retry budget surfaces as an AdapterError subclass.
    """
    vendor: VendorKey
    kind: AdapterKind
    rules: Sequence[ScoreRule]

    def lookup(self, item: LineItem) -> Candidates: ...
    def match_attributes(self, item: LineItem) -> Dict[str, Any]: ...


class BaseAdapter:
    vendor: VendorKey
    kind: AdapterKind = AdapterKind.API
    rules: Sequence[ScoreRule] = ()

    def __init__(self, http: HttpClient):
        self.http = http

    def match_attributes(self, item: LineItem) -> Dict[str, Any]:
        return item.match_attributes()

    def lookup(self, item: LineItem) -> Candidates:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.vendor.value}>"
