"""
Stability score: a 0-100 index per municipality over a trailing window.

Methodology (kept deliberately simple so it can be published as-is):
  - Safety (40%): 100 minus the weighted incident load of the window, floored at 0.
  - Infrastructure (30%) and Civic (30%): fixed placeholders until those data sources
    are wired; reported with dataAvailable=False.
  - Trend compares incident counts against the window immediately before.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from raven_local.models import Incident
from raven_local.store.base import IncidentStore

BASE_SCORE = 100
DEFAULT_WEIGHT = 1
TREND_THRESHOLD = 10  # percent

# How much one incident of a category (or legacy type label) costs the safety score.
SAFETY_WEIGHTS: Dict[str, int] = {
    # critical
    "violent_crime": 15,
    "shots_fired": 15,
    "robbery": 15,
    "assault": 12,
    # high
    "fire": 10,
    "missing": 8,
    "burglary": 8,
    # medium
    "property_crime": 5,
    "theft": 5,
    "vehicle_breakin": 5,
    "traffic": 4,
    "drugs": 4,
    "medical": 4,
    # low
    "weather": 2,
    "police": 2,
    "vandalism": 2,
    "fraud": 2,
    "suspicious": 1,
    "civic": 1,
    "other": 1,
}

CATEGORY_WEIGHTS: Dict[str, float] = {
    "safety": 0.4,
    "infrastructure": 0.3,
    "civic": 0.3,
}

INFRASTRUCTURE_PLACEHOLDER = 75
CIVIC_PLACEHOLDER = 85

METHODOLOGY_URL = "/about/methodology"


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def weight(category: Optional[str]) -> int:
    return SAFETY_WEIGHTS.get(category or "other", DEFAULT_WEIGHT)


@dataclass
class BreakdownItem:
    type: str
    count: int
    impact: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "count": self.count, "impact": self.impact}


@dataclass
class CategoryScore:
    score: int
    max_score: int = BASE_SCORE
    incidents: int = 0
    trend: str = "stable"
    trend_percent: int = 0
    data_available: bool = True
    breakdown: List[BreakdownItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "incidents": self.incidents,
            "incidentCount": self.incidents,  # older dashboard key
            "trend": self.trend,
            "trendPercent": self.trend_percent,
            "dataAvailable": self.data_available,
            "breakdown": [b.to_dict() for b in self.breakdown],
        }

    @classmethod
    def placeholder(cls, score: int) -> "CategoryScore":
        """Not wired to a data source yet."""
        return cls(score=score, data_available=False)


@dataclass
class StabilityScore:
    overall: int
    confidence: str
    safety: CategoryScore
    infrastructure: CategoryScore
    civic: CategoryScore
    municipality: str
    period_days: int
    calculated_at: datetime

    @property
    def sources_active(self) -> int:
        return sum(1 for c in (self.safety, self.infrastructure, self.civic) if c.data_available)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "confidence": self.confidence,
            "categories": {
                "safety": self.safety.to_dict(),
                "infrastructure": self.infrastructure.to_dict(),
                "civic": self.civic.to_dict(),
            },
            "metadata": {
                "calculatedAt": self.calculated_at.isoformat(),
                "municipality": self.municipality,
                "periodDays": self.period_days,
                "sourcesActive": self.sources_active,
                "sourcesTotal": len(CATEGORY_WEIGHTS),
                "methodology": METHODOLOGY_URL,
            },
        }


def trend(current_count: int, prev_count: int) -> tuple:
    """
    (trend, percent). No previous incidents means no baseline: stable, 0.
    """
    if prev_count <= 0:
        return "stable", 0
    pct = round_half_up((current_count - prev_count) / prev_count * 100)
    if pct <= -TREND_THRESHOLD:
        return "improving", pct
    if pct >= TREND_THRESHOLD:
        return "declining", pct
    return "stable", pct


def safety_score(current: List[Incident], previous: List[Incident]) -> CategoryScore:
    counts = Counter(inc.category or "other" for inc in current)

    breakdown = [BreakdownItem(type=cat, count=n, impact=weight(cat) * n) for cat, n in counts.items()]
    breakdown.sort(key=lambda b: b.impact, reverse=True)
    total_impact = sum(b.impact for b in breakdown)

    t, pct = trend(len(current), len(previous))
    return CategoryScore(
        score=max(0, BASE_SCORE - total_impact),
        incidents=len(current),
        trend=t,
        trend_percent=pct,
        data_available=True,
        breakdown=breakdown,
    )


def confidence(active: int) -> str:
    if active >= 3:
        return "high"
    if active >= 2:
        return "medium"
    return "low"


def compute_stability(
    store: IncidentStore,
    municipality: str,
    days: int = 7,
    now: Optional[datetime] = None,
) -> StabilityScore:
    now = now or datetime.now(timezone.utc)
    window = timedelta(days=days)
    start = now - window
    prev_start = start - window

    # Current window is [start, now]; the store's upper bound is exclusive.
    current = [i for i in store.query(since=start, municipality=municipality) if i.occurred_at <= now]
    previous = store.query(since=prev_start, until=start, municipality=municipality)

    safety = safety_score(current, previous)
    infrastructure = CategoryScore.placeholder(INFRASTRUCTURE_PLACEHOLDER)
    civic = CategoryScore.placeholder(CIVIC_PLACEHOLDER)

    overall = round_half_up(
        safety.score * CATEGORY_WEIGHTS["safety"]
        + infrastructure.score * CATEGORY_WEIGHTS["infrastructure"]
        + civic.score * CATEGORY_WEIGHTS["civic"]
    )
    active = sum(1 for c in (safety, infrastructure, civic) if c.data_available)

    return StabilityScore(
        overall=overall,
        confidence=confidence(active),
        safety=safety,
        infrastructure=infrastructure,
        civic=civic,
        municipality=municipality,
        period_days=days,
        calculated_at=now,
    )
