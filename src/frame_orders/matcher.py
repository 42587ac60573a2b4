"""Score catalog candidates against a parsed line item.

Each vendor family brings its own list of ScoreRule; the score is the sum of
the weights of the rules that hit, clamped to 0..100.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from frame_orders.models import MatchResult, Variant, normalize_token

DEFAULT_THRESHOLD = 50
# Score reported for a best-effort pick when no rule fired for any candidate
FALLBACK_SCORE = 10


@dataclass(frozen=True)
class ScoreRule:
    item_field: str
    weight: int
    # Awarded when one value contains the other but they are not equal
    partial_weight: int = 0
    variant_field: Optional[str] = None

    def score(self, attrs: Dict[str, Any], variant: Variant) -> int:
        want = _norm(attrs.get(self.item_field))
        have = _norm(variant.get(self.variant_field or self.item_field))
        if not want or not have:
            return 0
        if want == have:
            return self.weight
        if self.partial_weight and (want in have or have in want):
            return self.partial_weight
        return 0


def _norm(value: Any) -> str:
    s = normalize_token(value)
    # "053" and "53", "18.0" and "18" are the same measurement
    if s.replace(".", "", 1).isdigit():
        try:
            n = float(s)
        except ValueError:
            return s
        return str(int(n)) if n == int(n) else str(n)
    return s


class Matcher:
    def __init__(self, rules: Sequence[ScoreRule], threshold: int = DEFAULT_THRESHOLD):
        self.rules = list(rules)
        self.threshold = threshold

    def score(self, attrs: Dict[str, Any], variant: Variant) -> int:
        return max(0, min(100, sum(r.score(attrs, variant) for r in self.rules)))

    def best_match(self, attrs: Dict[str, Any], candidates: List[Variant]) -> MatchResult:
        """Highest-scoring candidate; the first one seen wins ties.

        With candidates but no signal at all the first candidate is still
        returned, unvalidated, so the caller keeps whatever partial data it has.
        """
        if not candidates:
            return MatchResult(variant=None, score=0, validated=False)

        best: Optional[Variant] = None
        best_score = -1
        for v in candidates:
            s = self.score(attrs, v)
            if s > best_score:
                best, best_score = v, s

        if best_score <= 0:
            return MatchResult(variant=candidates[0], score=FALLBACK_SCORE, validated=False)
        return MatchResult(variant=best, score=best_score, validated=best_score >= self.threshold)


# -------------------------------------------------
# Rule sets per catalog family
# -------------------------------------------------

CATALOG_API_RULES = (
    ScoreRule("brand", 20, partial_weight=20),
    ScoreRule("model", 25, partial_weight=25),
    ScoreRule("color_code", 20, partial_weight=20),
    ScoreRule("eye_size", 10),
    ScoreRule("bridge", 10),
    ScoreRule("temple", 10),
)

MARCHON_RULES = (
    ScoreRule("color_code", 40, partial_weight=20),
    ScoreRule("eye_size", 30),
    ScoreRule("bridge", 20),
    ScoreRule("temple", 10),
)

EUROPA_RULES = (
    ScoreRule("color_code", 50),
    ScoreRule("eye_size", 40),
)

# Pages that list colours by name rather than code
COLOR_NAME_RULES = (
    ScoreRule("color_name", 50, partial_weight=30),
    ScoreRule("eye_size", 30),
    ScoreRule("upc", 20),
)
