from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

# McHenry County municipalities used for text-based location extraction.
MCHENRY_CITIES: Tuple[str, ...] = (
    "crystal lake", "mchenry", "woodstock", "cary", "algonquin",
    "lake in the hills", "huntley", "harvard", "marengo", "fox river grove",
    "island lake", "johnsburg", "lakewood", "spring grove", "wonder lake",
    "ringwood", "union", "hebron", "richmond", "bull valley", "nunda",
    "oakwood hills", "round lake", "grayslake", "lake villa", "fox lake",
)

# Regional news covers a few bordering Cook/Kane/Lake towns as well.
NEWS_CITIES: Tuple[str, ...] = MCHENRY_CITIES + (
    "barrington", "carpentersville", "palatine", "arlington heights",
)

COUNTY_MARKERS: Tuple[str, ...] = ("mchenry county", "county board")


def title_case(name: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in name.split(" "))


@dataclass(frozen=True)
class Gazetteer:
    """
    Substring gazetteer. Names are tested longest first so that "lake in the hills"
    wins over "lake", and "bull valley" over "union" when both appear.
    """

    cities: Tuple[str, ...] = MCHENRY_CITIES
    county_markers: Tuple[str, ...] = COUNTY_MARKERS
    county_seat: str = "Woodstock"
    _ordered: Tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted((c.lower() for c in self.cities), key=len, reverse=True))
        object.__setattr__(self, "_ordered", ordered)

    def match_city(self, text: str) -> Optional[str]:
        lower = (text or "").lower()
        for city in self._ordered:
            if city in lower:
                return title_case(city)
        return None

    def resolve(self, text: str, county_fallback: bool = False) -> Optional[str]:
        """
        Longest gazetteer match, title-cased. With `county_fallback`, county-level items
        ("McHenry County", "county board") resolve to the county seat. Otherwise None.
        """
        city = self.match_city(text)
        if city is not None:
            return city
        if county_fallback:
            lower = (text or "").lower()
            if any(m in lower for m in self.county_markers):
                return self.county_seat
        return None


MCHENRY = Gazetteer()
NEWS_AREA = Gazetteer(cities=NEWS_CITIES)
