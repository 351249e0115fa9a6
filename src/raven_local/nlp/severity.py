from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional, Tuple

from raven_local.models import SEVERITIES

# Lower rank = more severe.
_RANK = {s: i for i, s in enumerate(SEVERITIES)}


def more_severe(a: str, b: str) -> str:
    return a if _RANK.get(a, len(SEVERITIES)) <= _RANK.get(b, len(SEVERITIES)) else b


@dataclass(frozen=True)
class SeverityTable:
    """
    Static category/type -> severity lookup.

    Resolution order: (category, type) override, then category, then `default`.
    Categories in `escalate_categories` are lifted to at least "high" when the item came
    from a high-priority feed.
    """

    by_category: Mapping[str, str] = field(default_factory=dict)
    by_type: Mapping[Tuple[str, str], str] = field(default_factory=dict)
    escalate_categories: FrozenSet[str] = frozenset()
    default: str = "low"

    def lookup(self, category: Optional[str], type_: Optional[str] = None, priority: Optional[str] = None) -> str:
        category = category or ""
        sev = self.by_type.get((category, type_ or ""))
        if sev is None:
            sev = self.by_category.get(category, self.default)
        if priority == "high" and category in self.escalate_categories:
            sev = more_severe(sev, "high")
        return sev


SCANNER_SEVERITY = SeverityTable(
    by_category={
        "violent_crime": "critical",
        "fire": "high",
        "traffic": "medium",
        "property_crime": "medium",
    },
)

NEWS_SEVERITY = SeverityTable(
    by_category={
        "violent_crime": "critical",
        "fire": "high",
        "traffic": "medium",
        "property_crime": "medium",
        "weather": "medium",
    },
    escalate_categories=frozenset({"traffic", "police"}),
)

# Keyed on the county feed's civic vocabulary, before it is folded into stored categories.
COUNTY_NEWS_SEVERITY = SeverityTable(
    by_category={"infrastructure": "medium"},
    by_type={
        ("court", "sentencing"): "medium",
        ("court", "charges"): "medium",
    },
)

WEATHER_SEVERITY: Mapping[str, str] = {
    "extreme": "critical",
    "severe": "high",
    "moderate": "medium",
}


def weather_severity(level: Optional[str]) -> str:
    """NWS extreme/severe/moderate/other -> critical/high/medium/low."""
    return WEATHER_SEVERITY.get((level or "").strip().lower(), "low")


def traffic_event_severity(event_type: Optional[str]) -> str:
    return "high" if "closure" in (event_type or "").lower() else "medium"
