from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from dotenv import load_dotenv

from frame_orders.errors import ConfigError
from frame_orders.paths import secrets_dir


class VendorKey(str, Enum):
    SAFILO = "safilo"
    LUXOTTICA = "luxottica"
    IDEAL = "ideal"
    LAMY = "lamy"
    MODERN = "modern"
    ETNIA = "etnia"
    EUROPA = "europa"
    KENMARK = "kenmark"
    MARCHON = "marchon"
    UNKNOWN = "unknown"


class DocumentKind(str, Enum):
    HTML = "html"
    PDF = "pdf"
    TEXT = "text"


class AdapterKind(str, Enum):
    API = "api"
    SCRAPE = "scrape"


@dataclass(frozen=True)
class VendorConfig:
    vendor_key: VendorKey
    display_name: str
    document_kind: DocumentKind
    adapter_kind: Optional[AdapterKind]
    requires_enrichment: bool
    default_brand: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "vendor_key": self.vendor_key.value,
            "requires_enrichment": self.requires_enrichment,
            "document_kind": self.document_kind.value,
            "adapter_kind": self.adapter_kind.value if self.adapter_kind else None,
        }


# Static, loaded once per run
VENDORS: Dict[VendorKey, VendorConfig] = {
    c.vendor_key: c
    for c in (
        VendorConfig(VendorKey.SAFILO, "Safilo", DocumentKind.PDF, AdapterKind.API, True),
        VendorConfig(VendorKey.LUXOTTICA, "Luxottica", DocumentKind.HTML, None, False),
        VendorConfig(VendorKey.IDEAL, "Ideal Optics", DocumentKind.HTML, AdapterKind.SCRAPE, True, "Ideal Optics"),
        VendorConfig(VendorKey.LAMY, "L'amyamerica", DocumentKind.HTML, AdapterKind.API, True),
        VendorConfig(VendorKey.MODERN, "Modern Optical", DocumentKind.HTML, AdapterKind.SCRAPE, True),
        VendorConfig(VendorKey.ETNIA, "Etnia Barcelona", DocumentKind.PDF, None, False, "ETNIA BARCELONA"),
        VendorConfig(VendorKey.EUROPA, "Europa", DocumentKind.HTML, AdapterKind.SCRAPE, True),
        VendorConfig(VendorKey.KENMARK, "Kenmark", DocumentKind.HTML, None, False, "Kenmark"),
        VendorConfig(VendorKey.MARCHON, "Marchon", DocumentKind.HTML, AdapterKind.API, True, "Marchon"),
    )
}


def vendor_config(key: Union[str, VendorKey]) -> VendorConfig:
    try:
        vk = VendorKey(key) if not isinstance(key, VendorKey) else key
        return VENDORS[vk]
    except (ValueError, KeyError):
        raise ConfigError(f"unknown vendor key: {key!r}") from None


# -------------------------------------------------
# Runtime settings (.env + environment)
# -------------------------------------------------

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class Settings:
    timeout: float = 10.0
    retries: int = 3
    retry_delay: float = 1.0
    min_confidence: int = 50
    api_batch_size: int = 5
    api_batch_delay: float = 0.5
    scrape_batch_size: int = 3
    scrape_batch_delay: float = 1.0
    deadline: Optional[float] = None
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "Settings":
        path = Path(env_file) if env_file else secrets_dir() / "frame_orders.env"
        if path.exists():
            load_dotenv(path)

        deadline = os.getenv("FRAME_ORDERS_DEADLINE")
        try:
            return cls(
                timeout=float(os.getenv("FRAME_ORDERS_TIMEOUT", cls.timeout)),
                retries=int(os.getenv("FRAME_ORDERS_RETRIES", cls.retries)),
                retry_delay=float(os.getenv("FRAME_ORDERS_RETRY_DELAY", cls.retry_delay)),
                min_confidence=int(os.getenv("FRAME_ORDERS_MIN_CONFIDENCE", cls.min_confidence)),
                api_batch_size=int(os.getenv("FRAME_ORDERS_API_BATCH", cls.api_batch_size)),
                api_batch_delay=float(os.getenv("FRAME_ORDERS_API_DELAY", cls.api_batch_delay)),
                scrape_batch_size=int(os.getenv("FRAME_ORDERS_SCRAPE_BATCH", cls.scrape_batch_size)),
                scrape_batch_delay=float(os.getenv("FRAME_ORDERS_SCRAPE_DELAY", cls.scrape_batch_delay)),
                deadline=float(deadline) if deadline else None,
                user_agent=os.getenv("FRAME_ORDERS_USER_AGENT", DEFAULT_USER_AGENT),
            )
        except ValueError as exc:
            raise ConfigError(f"bad FRAME_ORDERS_* setting: {exc}") from exc

    def batch_policy(self, kind: Optional[AdapterKind]) -> Tuple[int, float]:
        """(batch size, delay between batches) for an adapter family."""
        if kind is AdapterKind.SCRAPE:
            return max(1, self.scrape_batch_size), self.scrape_batch_delay
        return max(1, self.api_batch_size), self.api_batch_delay
