"""detect -> parse -> enrich -> assemble for one inbound document."""
from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import pdfplumber
import requests

from frame_orders.adapters.base import EnrichmentAdapter
from frame_orders.adapters.http import Deadline, HttpClient
from frame_orders.adapters.registry import adapter_for
from frame_orders.assembler import assemble
from frame_orders.cache import EnrichmentCache
from frame_orders.config import DocumentKind, Settings, VendorKey
from frame_orders.detection import Detection, MessageEnvelope, Tier, VendorDetector
from frame_orders.orchestrator import EnrichmentOrchestrator, EnrichmentStats
from frame_orders.vendors.registry import parse_document

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[VendorKey, HttpClient], Optional[EnrichmentAdapter]]


def suppress_pdfminer_warnings() -> None:
    """Silence pdfminer chatter like 'Could not get FontBBox...'."""
    for name in ("pdfminer", "pdfminer.pdffont", "pdfminer.psparser", "pdfminer.pdfinterp"):
        lg = logging.getLogger(name)
        lg.setLevel(logging.ERROR)
        lg.propagate = False


def pdf_text(data: bytes) -> str:
    suppress_pdfminer_warnings()
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return "\n".join((page.extract_text() or "") for page in pdf.pages)


def document_text(raw: Union[bytes, str], kind: DocumentKind) -> str:
    if kind is DocumentKind.PDF:
        if isinstance(raw, str):
            # Already extracted upstream
            return raw
        return pdf_text(raw)
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


@dataclass
class PipelineRequest:
    raw_document: Union[bytes, str]
    document_kind: DocumentKind = DocumentKind.HTML
    vendor_hint: Optional[str] = None
    sender: Optional[str] = None
    subject: Optional[str] = None
    # Header lines (From:, Reply-To:, ...) a mail client kept when forwarding
    forwarded_headers: Optional[str] = None
    # Seconds for the whole run; overrides Settings.deadline
    deadline: Optional[float] = None


class Pipeline:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[EnrichmentCache] = None,
        session: Optional[requests.Session] = None,
        adapters: AdapterFactory = adapter_for,
        detector: Optional[VendorDetector] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or Settings()
        # Shared across runs of this pipeline object
        self.cache = cache or EnrichmentCache()
        self.session = session or requests.Session()
        self.adapters = adapters
        self.detector = detector or VendorDetector()
        self._sleep = sleep
        self.last_detection: Optional[Detection] = None

    def identify(self, request: PipelineRequest, text: str) -> Detection:
        if request.vendor_hint:
            try:
                key = VendorKey(request.vendor_hint.strip().lower())
            except ValueError:
                logger.warning("ignoring unknown vendor hint %r", request.vendor_hint)
            else:
                if key is not VendorKey.UNKNOWN:
                    return Detection(key, Tier.HINT, 100, [request.vendor_hint])
        return self.detector.detect(MessageEnvelope(
            sender=request.sender,
            subject=request.subject,
            body=text,
            forwarded_headers=request.forwarded_headers,
        ))

    def run(self, request: PipelineRequest, enrich: bool = True, debug: bool = False) -> Dict[str, Any]:
        """Output contract dict. ParseError propagates; lookup failures never do."""
        text = document_text(request.raw_document, request.document_kind)
        detection = self.identify(request, text)
        self.last_detection = detection
        if not detection.known:
            return assemble(VendorKey.UNKNOWN.value, None)

        vendor = detection.vendor_key
        order, _ = parse_document(vendor, text, debug=debug)
        logger.info("[%s] parsed order %s with %d items", vendor.value, order.order_number, len(order.items))

        if not enrich:
            return assemble(vendor.value, order, EnrichmentStats(total_items=len(order.items)))

        seconds = request.deadline if request.deadline is not None else self.settings.deadline
        deadline = Deadline(seconds)
        http = HttpClient(self.settings, session=self.session, deadline=deadline, sleep=self._sleep)
        orchestrator = EnrichmentOrchestrator(
            self.adapters(vendor, http), self.cache, self.settings, deadline=deadline, sleep=self._sleep,
        )
        stats = orchestrator.enrich(order)
        return assemble(vendor.value, order, stats)


def run_pipeline(request: PipelineRequest, settings: Optional[Settings] = None, enrich: bool = True) -> Dict[str, Any]:
    return Pipeline(settings=settings).run(request, enrich=enrich)
