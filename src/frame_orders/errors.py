from __future__ import annotations

from typing import Optional


class FrameOrdersError(Exception):
    """Base class for everything this package raises on purpose."""


class ConfigError(FrameOrdersError):
    pass


class ParseError(FrameOrdersError):
    """Document structure was not recognised.

    Fatal for that one document. Carries the vendor key and an excerpt of the
    text that could not be understood so the caller can show it.
    """

    EXCERPT_CHARS = 200

    def __init__(self, vendor_key: str, message: str, fragment: Optional[str] = None):
        self.vendor_key = vendor_key
        self.message = message
        self.fragment = _excerpt(fragment, self.EXCERPT_CHARS)
        super().__init__(f"[{vendor_key}] {message}")

    def __str__(self) -> str:
        base = f"[{self.vendor_key}] {self.message}"
        if self.fragment:
            return f"{base}: {self.fragment!r}"
        return base


class AdapterError(FrameOrdersError):
    """External lookup failed after its retry budget was spent."""


class NetworkError(AdapterError):
    pass


class LookupTimeout(NetworkError):
    pass


class DeadlineExceeded(LookupTimeout):
    """The caller's deadline for the whole pipeline run ran out."""


def _excerpt(text: Optional[str], limit: int) -> Optional[str]:
    if text is None:
        return None
    s = " ".join(str(text).split())
    return s if len(s) <= limit else s[: limit - 3] + "..."
