"""Work out which vendor sent an order e-mail.

Tiers, strongest first:
  domain     the envelope sender is on a vendor domain            95
  signature  a forwarded sender is on a vendor domain             90
             or the body carries a vendor signature               85
  keyword    two or more vendor keywords in subject + body        65
Anything under the threshold is reported as "unknown".
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from frame_orders.config import VendorKey
from frame_orders.htmldoc import html_to_text, looks_like_html

logger = logging.getLogger(__name__)

DETECTION_THRESHOLD = 60

PERSONAL_DOMAINS = {
    "gmail.com", "yahoo.com", "outlook.com", "hotmail.com",
    "icloud.com", "aol.com", "live.com", "me.com",
}

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")
FORWARDED_HEADER_RE = re.compile(r"^\s*(?:>\s*)*(From|Reply-To|References|In-Reply-To|Sender)\s*:(.*)$", re.I | re.M)


class Tier(str, Enum):
    DOMAIN = "domain-match"
    SIGNATURE = "signature-match"
    KEYWORD = "keyword-match"
    HINT = "vendor-hint"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VendorPatterns:
    domains: Tuple[str, ...]
    signatures: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()


PATTERNS: Dict[VendorKey, VendorPatterns] = {
    VendorKey.SAFILO: VendorPatterns(
        ("safilo.com", "mysafilo.com"),
        ("safilo usa, inc", "safilo usa inc"),
        ("safilo", "mysafilo", "order has been received"),
    ),
    VendorKey.LUXOTTICA: VendorPatterns(
        ("luxottica.com", "us.luxottica.com", "my.luxottica.com"),
        ("my.luxottica.com", "luxottica group", "cart number", "customer reference"),
        ("luxottica", "cart number", "order confirmation", "customer code", "agent reference"),
    ),
    VendorKey.IDEAL: VendorPatterns(
        ("i-dealoptics.com", "idealoptics.com"),
        ("i-deal optics", "ideal optics", "i-dealoptics.com"),
    ),
    VendorKey.LAMY: VendorPatterns(
        ("lamyamerica.com", "lamy-america.com"),
        ("l'amy america", "lamy america", "lamyamerica.com"),
    ),
    VendorKey.MODERN: VendorPatterns(
        ("modernoptical.com",),
        ("custsvc@modernoptical.com", "modernoptical.com", "modern optical"),
        ("modern optical", "receipt for order number", "placed by rep"),
    ),
    VendorKey.ETNIA: VendorPatterns(
        ("etniabarcelona.com", "etnia.es"),
        ("etnia barcelona llc", "etnia eyewear culture", "extranet-etniabarcelona.com", "etnia barcelona"),
    ),
    VendorKey.EUROPA: VendorPatterns(
        ("europaeye.com",),
        ("europaeye.com", "europa sales representative"),
    ),
    VendorKey.KENMARK: VendorPatterns(
        ("kenmarkeyewear.com",),
        ("kenmark eyewear", "imageserver.jiecosystem.net/image/kenmark/"),
    ),
    VendorKey.MARCHON: VendorPatterns(
        ("marchon.com", "marchoneyewear.com", "altaireyewear.com"),
        ("marchon order confirmation", "marchon eyewear", "1-800-645-1300"),
        ("order id:", "sales rep:", "rep stock order"),
    ),
}


@dataclass(frozen=True)
class MessageEnvelope:
    sender: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    # Extra header blocks a mail client kept when forwarding
    forwarded_headers: Optional[str] = None


@dataclass(frozen=True)
class Detection:
    vendor_key: VendorKey
    tier: Tier
    confidence: int
    evidence: List[str] = field(default_factory=list, compare=False)

    @property
    def known(self) -> bool:
        return self.vendor_key is not VendorKey.UNKNOWN


UNKNOWN = Detection(VendorKey.UNKNOWN, Tier.UNKNOWN, 0)


def _domain_of(address: Optional[str]) -> Optional[str]:
    if not address:
        return None
    m = EMAIL_RE.search(address)
    return m.group(1).lower().rstrip(".") if m else None


def _on_domain(domain: str, vendor_domains: Tuple[str, ...]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in vendor_domains)


def _weight(hits: List[str]) -> Tuple[int, int]:
    return len(hits), sum(len(h) for h in hits)


def forwarded_senders(text: str) -> List[str]:
    """Domains of addresses in forwarded From:/Reply-To:/References: lines, personal mailboxes dropped."""
    out: List[str] = []
    for m in FORWARDED_HEADER_RE.finditer(text or ""):
        for addr in EMAIL_RE.finditer(m.group(2)):
            domain = addr.group(1).lower()
            if domain not in PERSONAL_DOMAINS and domain not in out:
                out.append(domain)
    return out


class VendorDetector:
    def __init__(self, patterns: Optional[Dict[VendorKey, VendorPatterns]] = None,
                 threshold: int = DETECTION_THRESHOLD):
        self.patterns = patterns or PATTERNS
        self.threshold = threshold

    def detect(self, message: MessageEnvelope) -> Detection:
        found = self._domain(message) or self._signature(message) or self._keywords(message)
        if found is None or found.confidence < self.threshold:
            logger.info("vendor not recognised (sender=%s)", message.sender)
            return UNKNOWN
        logger.info("detected %s via %s (%d)", found.vendor_key.value, found.tier.value, found.confidence)
        return found

    # -------- tiers --------
    def _domain(self, message: MessageEnvelope) -> Optional[Detection]:
        domain = _domain_of(message.sender)
        if not domain:
            return None
        for key, p in self.patterns.items():
            if _on_domain(domain, p.domains):
                return Detection(key, Tier.DOMAIN, 95, [domain])
        return None

    def _signature(self, message: MessageEnvelope) -> Optional[Detection]:
        raw = message.body or ""
        text = html_to_text(raw) if looks_like_html(raw) else raw

        # Forwarding replaces the envelope sender; the original survives in the quoted headers
        header_text = "\n".join(filter(None, (message.forwarded_headers, text)))
        for domain in forwarded_senders(header_text):
            for key, p in self.patterns.items():
                if _on_domain(domain, p.domains):
                    return Detection(key, Tier.SIGNATURE, 90, [domain])

        # Markup too: some signatures only live in image URLs
        haystack = f"{raw}\n{text}".lower()
        best: Optional[Detection] = None
        for key, p in self.patterns.items():
            hits = [s for s in p.signatures if s in haystack]
            # More hits win; on a tie the more specific (longer) signatures win
            if hits and (best is None or _weight(hits) > _weight(best.evidence)):
                best = Detection(key, Tier.SIGNATURE, 85, hits)
        return best

    def _keywords(self, message: MessageEnvelope) -> Optional[Detection]:
        raw = message.body or ""
        text = html_to_text(raw) if looks_like_html(raw) else raw
        haystack = f"{message.subject or ''}\n{text}".lower()
        best: Optional[Detection] = None
        for key, p in self.patterns.items():
            hits = [k for k in p.keywords if k in haystack]
            if len(hits) >= 2 and (best is None or len(hits) > len(best.evidence)):
                best = Detection(key, Tier.KEYWORD, 65, hits)
        return best


def detect_vendor(message: MessageEnvelope) -> Detection:
    return VendorDetector().detect(message)
