"""Vessel-type and navigation-status classifiers (ITU-R M.1371).

Sources disagree on how they encode these fields: NOAA and most receivers
ship numeric AIS codes, commercial exports ship free text ("Oil Tanker",
"Moored"). Both classifiers try an exact code lookup first and fall back to
a keyword substring match.

The tables are read-only and shared by every ingestion run.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

OTHER_VESSEL_TYPE = "Other"
UNKNOWN_NAV_STATUS = "Unknown"


def _code_ranges(*spans: tuple[int, int, str]) -> Mapping[str, str]:
    table: dict[str, str] = {}
    for first, last, label in spans:
        for code in range(first, last + 1):
            table[str(code)] = label
    return MappingProxyType(table)


VESSEL_TYPE_CODES: Mapping[str, str] = _code_ranges(
    (20, 29, "Wing in ground"),
    (30, 30, "Fishing"),
    (31, 32, "Towing"),
    (33, 33, "Dredging"),
    (34, 34, "Diving"),
    (35, 35, "Military"),
    (36, 36, "Sailing"),
    (37, 37, "Pleasure Craft"),
    (40, 49, "High Speed Craft"),
    (50, 50, "Pilot Vessel"),
    (51, 51, "Search and Rescue"),
    (52, 52, "Tug"),
    (53, 53, "Port Tender"),
    (54, 54, "Anti-pollution"),
    (55, 55, "Law Enforcement"),
    (56, 57, "Spare"),
    (58, 58, "Medical Transport"),
    (59, 59, "Special Craft"),
    (60, 69, "Passenger"),
    (70, 79, "Cargo"),
    (80, 89, "Tanker"),
    (90, 99, "Other"),
)

# Evaluated in order; first keyword found in the lowered text wins.
VESSEL_TYPE_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("cargo", "general"), "Cargo"),
    (("tanker", "chemical", "oil"), "Tanker"),
    (("container",), "Container"),
    (("bulk",), "Bulk Carrier"),
    (("passenger", "cruise", "ferry"), "Passenger"),
    (("fishing",), "Fishing"),
    (("tug",), "Tug"),
    (("pilot",), "Pilot Vessel"),
    (("military", "naval"), "Military"),
    (("pleasure", "yacht"), "Pleasure Craft"),
)

NAV_STATUS_CODES: Mapping[str, str] = MappingProxyType({
    "0": "Under way using engine",
    "1": "At anchor",
    "2": "Not under command",
    "3": "Restricted manoeuvrability",
    "4": "Constrained by her draught",
    "5": "Moored",
    "6": "Aground",
    "7": "Engaged in fishing",
    "8": "Under way sailing",
    "9": "Reserved for future amendment",
    "10": "Reserved for future amendment",
    "11": "Power-driven vessel towing astern",
    "12": "Power-driven vessel pushing ahead",
    "13": "Reserved for future use",
    "14": "AIS-SART is active",
    "15": "Not defined",
})

NAV_STATUS_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("not under command",), "Not under command"),
    (("anchor",), "At anchor"),
    (("moored",), "Moored"),
    (("aground",), "Aground"),
    (("fishing",), "Engaged in fishing"),
    (("sailing",), "Under way sailing"),
    (("restricted",), "Restricted manoeuvrability"),
    (("draught", "draft"), "Constrained by her draught"),
    (("towing",), "Power-driven vessel towing astern"),
    (("pushing",), "Power-driven vessel pushing ahead"),
    (("sart",), "AIS-SART is active"),
    (("engine", "under way", "underway"), "Under way using engine"),
)


def normalize_code(raw: Any) -> str:
    """Canonical string form of a raw code: ``70``, ``"70"`` and ``"70.0"`` → ``"70"``."""
    if raw is None:
        return ""
    text = str(raw).strip()
    try:
        number = float(text)
    except ValueError:
        return text
    if number.is_integer():
        return str(int(number))
    return text


def _match_keywords(
    raw: str, keywords: tuple[tuple[tuple[str, ...], str], ...]
) -> str | None:
    lowered = raw.lower()
    for needles, label in keywords:
        if any(needle in lowered for needle in needles):
            return label
    return None


def classify_vessel_type(raw: Any) -> str:
    """Map a vessel type code or free-text type to a category; ``"Other"`` when unknown."""
    code = normalize_code(raw)
    if not code:
        return OTHER_VESSEL_TYPE
    if code in VESSEL_TYPE_CODES:
        return VESSEL_TYPE_CODES[code]
    return _match_keywords(code, VESSEL_TYPE_KEYWORDS) or OTHER_VESSEL_TYPE


def classify_nav_status(raw: Any) -> str:
    """Map a navigation status code or text to a category; ``"Unknown"`` when unknown."""
    code = normalize_code(raw)
    if not code:
        return UNKNOWN_NAV_STATUS
    if code in NAV_STATUS_CODES:
        return NAV_STATUS_CODES[code]
    return _match_keywords(code, NAV_STATUS_KEYWORDS) or UNKNOWN_NAV_STATUS


def known_vessel_categories() -> list[str]:
    """All category names the type classifier can produce, sorted."""
    labels = set(VESSEL_TYPE_CODES.values())
    labels.update(label for _, label in VESSEL_TYPE_KEYWORDS)
    labels.add(OTHER_VESSEL_TYPE)
    return sorted(labels)
