from __future__ import annotations

import re
from typing import NamedTuple, Pattern, Sequence, Tuple


class ClassificationRule(NamedTuple):
    pattern: Pattern[str]
    type: str
    category: str


class Classification(NamedTuple):
    type: str
    category: str


def rule(pattern: str, type_: str, category: str) -> ClassificationRule:
    return ClassificationRule(re.compile(pattern, re.I), type_, category)


# Tables are ordered: earlier rules win ties. Keep them per source; the vocabularies differ
# and reordering changes results (e.g. a shooting that also mentions a crash).

SCANNER_RULES: Tuple[ClassificationRule, ...] = (
    # violent crime
    rule(r"\barmed\s+robbery\b", "armed_robbery", "violent_crime"),
    rule(r"\bshooting\b", "shooting", "violent_crime"),
    rule(r"\bstabbing\b", "stabbing", "violent_crime"),
    rule(r"\bhomicide\b|\bmurder\b", "homicide", "violent_crime"),
    rule(r"\brobbery\b", "robbery", "violent_crime"),
    rule(r"\bassault\b", "assault", "violent_crime"),
    rule(r"\bdomestic\b", "domestic", "violent_crime"),
    rule(r"\bsexual\s+(?:assault|abuse)", "sexual_assault", "violent_crime"),
    # traffic
    rule(r"\bcrash\b|\baccident\b|\bcollision\b", "crash", "traffic"),
    rule(r"\bhit.and.run\b", "hit_and_run", "traffic"),
    rule(r"\bpedestrian\b|\bstruck\s+by\b|\bhit\s+by\b", "pedestrian_struck", "traffic"),
    rule(r"\bdui\b|\bdrunk\s+driv", "dui", "traffic"),
    rule(r"\brollover\b", "rollover", "traffic"),
    # fire
    rule(r"\bstructure\s+fire\b|\bhouse\s+fire\b|\bbuilding\s+fire\b", "structure_fire", "fire"),
    rule(r"\bblaze\b", "fire", "fire"),
    # property crime
    rule(r"\bburglary\b|\bbreak-in\b", "burglary", "property_crime"),
    rule(r"\btheft\b|\bstolen\b", "theft", "property_crime"),
    rule(r"\bvandalism\b", "vandalism", "property_crime"),
    # other
    rule(r"\bmissing\b", "missing_person", "missing"),
    rule(r"\boverdose\b", "overdose", "medical"),
    rule(r"\barrested\b|\bcharged\b", "arrest", "police"),
)
SCANNER_DEFAULT = Classification("other", "other")


NEWS_RULES: Tuple[ClassificationRule, ...] = (
    # crime / safety
    rule(r"\bkill(?:ed|ing|s)?\b|\bdead\b|\bdeath\b|\bdie[ds]?\b", "fatality", "violent_crime"),
    rule(r"\bshoot(?:ing|s)?\b|\bshot\b|\bgunfire\b", "shooting", "violent_crime"),
    rule(r"\bstab(?:bing|bed)?\b", "stabbing", "violent_crime"),
    rule(r"\bhomicide\b|\bmurder(?:ed)?\b", "homicide", "violent_crime"),
    rule(r"\brobbe(?:ry|d)\b", "robbery", "violent_crime"),
    rule(r"\bassault(?:ed)?\b", "assault", "violent_crime"),
    rule(r"\bdomestic\b", "domestic", "violent_crime"),
    rule(r"\bsexual\s+(?:assault|abuse)\b", "sexual_assault", "violent_crime"),
    rule(r"\bkidnap", "kidnapping", "violent_crime"),
    rule(r"\barrest(?:ed)?\b|\bcharg(?:ed|es)\b", "arrest", "police"),
    rule(r"\bprison\b|\bjail\b|\bsentenc", "sentencing", "police"),
    rule(r"\bfugitive\b|\bwanted\b", "wanted", "police"),
    # traffic
    rule(r"\bcrash(?:ed|es)?\b|\baccident\b|\bcollision\b", "crash", "traffic"),
    rule(r"\bhit.and.run\b", "hit_and_run", "traffic"),
    rule(r"\bpedestrian\b.*(?:struck|hit|killed)", "pedestrian_struck", "traffic"),
    rule(r"\bbicycl(?:e|ist)\b.*(?:struck|hit|killed)", "cyclist_struck", "traffic"),
    rule(r"\bdui\b|\bdrunk\s+driv", "dui", "traffic"),
    rule(r"\brollover\b", "rollover", "traffic"),
    rule(r"\broad\s+clos(?:ed|ure)\b", "road_closure", "traffic"),
    # fire / emergency
    rule(r"\bfire\b", "fire", "fire"),
    rule(r"\bblaze\b", "fire", "fire"),
    rule(r"\brescue[ds]?\b", "rescue", "fire"),
    rule(r"\boverdose\b", "overdose", "medical"),
    # property crime
    rule(r"\bburglary\b|\bbreak-?in\b", "burglary", "property_crime"),
    rule(r"\btheft\b|\bstolen\b|\bsteal", "theft", "property_crime"),
    rule(r"\bvandal", "vandalism", "property_crime"),
    rule(r"\bfraud\b|\bscam\b|\bdeception\b", "fraud", "property_crime"),
    # weather / natural
    rule(r"\bflood(?:ing|ed)?\b", "flooding", "weather"),
    rule(r"\bstorm\b|\btornado\b|\bsevere\s+weather\b", "storm", "weather"),
    rule(r"\bsnow\b|\bblizzard\b|\bice\b.*(?:storm|warning)", "winter_weather", "weather"),
    rule(r"\bpower\s+outage\b", "power_outage", "infrastructure"),
    # government / civic
    rule(r"\bcounty\s+board\b", "county_board", "civic"),
    rule(r"\bcity\s+council\b", "city_council", "civic"),
    rule(r"\bschool\s+(?:board|district)\b", "school", "civic"),
    rule(r"\belection\b|\bvot(?:e|ing|er)\b", "election", "civic"),
    rule(r"\btax(?:es)?\b.*(?:increase|levy|hike)\b", "taxes", "civic"),
    rule(r"\bbusiness\b.*(?:open|clos|mov)", "business", "civic"),
    rule(r"\bdevelop(?:ment|er)\b", "development", "civic"),
)
NEWS_DEFAULT = Classification("local_news", "other")


# County press releases use a civic vocabulary; COUNTY_CATEGORY_MAP folds it into the
# stored categories.
COUNTY_NEWS_RULES: Tuple[ClassificationRule, ...] = (
    # court / legal
    rule(r"\bsentenced?\b|\bconvicted?\b|\bguilty\b", "sentencing", "court"),
    rule(r"\bcharged?\b|\bindicted?\b|\barraigned?\b", "charges", "court"),
    rule(r"\bcourt\b|\bjudge\b|\btrial\b", "court_proceeding", "court"),
    rule(r"\bstate'?s?\s+attorney\b", "prosecution", "court"),
    rule(r"\bsheriff\b.*(?:arrest|apprehend)", "arrest", "court"),
    # government
    rule(r"\bcounty\s+board\b", "county_board", "government"),
    rule(r"\btown(?:ship)?\s+(?:hall|meeting|board)\b", "township", "government"),
    rule(r"\bcity\s+council\b", "city_council", "government"),
    rule(r"\bvillage\s+board\b", "village_board", "government"),
    rule(r"\bpublic\s+hearing\b", "public_hearing", "government"),
    rule(r"\belection\b|\bvot(?:e|ing)\b|\bballot\b", "election", "government"),
    rule(r"\bordinance\b|\bresolution\b", "legislation", "government"),
    rule(r"\bbudget\b|\btax\s+levy\b|\bproperty\s+tax\b", "budget", "government"),
    # public services
    rule(r"\bhealth\s+department\b", "public_health", "services"),
    rule(r"\bvaccin(?:e|ation)\b|\bimmuniz", "health_services", "services"),
    rule(r"\bwic\b|\bsnap\b|\bassistance\b", "social_services", "services"),
    rule(r"\blibrary\b", "library", "services"),
    rule(r"\bpark(?:s)?\b.*district\b", "parks", "services"),
    rule(r"\bschool\b.*(?:district|board)\b", "education", "services"),
    rule(r"\bemergency\s+(?:management|services)\b", "emergency_services", "services"),
    # development / infrastructure
    rule(r"\bpermit\b|\bzoning\b", "permits", "development"),
    rule(r"\bconstruction\b|\bproject\b", "construction", "development"),
    rule(r"\bplanning\b.*development\b", "planning", "development"),
    rule(r"\broad\s+(?:closure|construction|work)\b", "road_work", "infrastructure"),
    rule(r"\bbridge\b", "bridge", "infrastructure"),
    rule(r"\bflood(?:ing|plain)?\b|\bstorm\s+water\b", "flooding", "infrastructure"),
    rule(r"\bwater\b.*(?:main|quality|supply)\b", "water", "infrastructure"),
    # community events
    rule(r"\bevent\b|\bfestival\b|\bcelebrat", "community_event", "events"),
    rule(r"\bworkshop\b|\bseminar\b|\bpresentation\b", "workshop", "events"),
    rule(r"\bmeeting\b", "meeting", "events"),
)
COUNTY_NEWS_DEFAULT = Classification("announcement", "civic")

COUNTY_CATEGORY_MAP = {
    "court": "police",
    "government": "civic",
    "services": "civic",
    "events": "civic",
    "civic": "civic",
    "development": "traffic",
    "infrastructure": "traffic",
}


# NWS alert event names -> stored category.
WEATHER_EVENT_RULES: Tuple[ClassificationRule, ...] = (
    rule(r"tornado|thunderstorm", "severe_storm", "other"),
    rule(r"flood|flash", "flood", "traffic"),
    rule(r"winter|snow|ice", "winter_weather", "traffic"),
    rule(r"wind", "wind", "other"),
    rule(r"heat|cold", "temperature", "other"),
)
WEATHER_DEFAULT = Classification("weather_alert", "other")


def classify(
    text: str,
    rules: Sequence[ClassificationRule],
    default: Classification = SCANNER_DEFAULT,
) -> Classification:
    """
    First-match-wins linear scan over `rules`. No match is not an error: `default` is
    returned, so every item leaves here with a type and category.
    """
    text = text or ""
    for r in rules:
        if r.pattern.search(text):
            return Classification(r.type, r.category)
    return default


def map_county_category(civic_category: str) -> str:
    return COUNTY_CATEGORY_MAP.get(civic_category, "other")
