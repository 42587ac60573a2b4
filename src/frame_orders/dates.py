from __future__ import annotations

from datetime import datetime
import re

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _try_strptime(s: str, fmts: list[str]) -> datetime | None:
    for fmt in fmts:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            pass
    return None


def normalize_order_date(value: str | None, *, day_first: bool = False) -> str | None:
    """Normalize a vendor order date into YYYY-MM-DD.

    Vendors print dates as 09/15/2025, 15-09-2025 (Luxottica, day first),
    Sep 15, 2025 or 2025-09-15. Anything unparseable is returned as it was
    printed so the caller still sees what the document said.
    """
    if not value:
        return None
    s = str(value).strip()
    if not s:
        return None

    dt = _try_strptime(s, ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"])
    if dt:
        return dt.strftime("%Y-%m-%d")

    if day_first:
        dt = _try_strptime(s, ["%d-%m-%Y", "%d/%m/%Y", "%d.%m.%Y"])
    else:
        dt = _try_strptime(s, ["%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%m-%d-%y"])
    if dt:
        return dt.strftime("%Y-%m-%d")

    # Sep 15, 2025 / September 15, 2025
    m = re.match(r"^([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s*(\d{4})$", s)
    if m:
        mon = _MONTHS.get(m.group(1)[:3].lower())
        if mon:
            return datetime(int(m.group(3)), mon, int(m.group(2))).strftime("%Y-%m-%d")

    # 15-SEP-2025
    m = re.match(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$", s)
    if m:
        mon = _MONTHS.get(m.group(2).lower())
        if mon:
            return datetime(int(m.group(3)), mon, int(m.group(1))).strftime("%Y-%m-%d")

    return s


def pretty_date(value: str | None) -> str:
    """YYYY-MM-DD -> MM/DD/YYYY for the CLI; anything else is shown as-is."""
    if not value:
        return ""
    s = str(value).strip()
    m = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", s)
    if m:
        y, mo, d = m.groups()
        return f"{mo}/{d}/{y}"
    return s
