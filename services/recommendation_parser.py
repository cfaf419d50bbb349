"""Recover truck class counts from free-text recommendations.

Plans carry their structured decomposition end to end. This parser is the
compatibility path for text that arrives without one: packing notes saved
from an earlier calculation or commentary returned by the external
generator. The input is untrusted prose, so every function here returns a
best-effort answer instead of raising.
"""

import re

from services.truck_classes import TRUCK_CLASS_PRIORITY

SUMMARY_PATTERN = re.compile(r"recommendation is:?\s*(.+)", re.IGNORECASE)
CLAUSE_SPLIT_PATTERN = re.compile(r"\band\b", re.IGNORECASE)
STRUCTURED_CLAUSE_PATTERN = re.compile(
    r"(\d+)\s*(?:x|×)?\s*([A-Za-z ]+?)(?:\(|\.|,|$)",
    re.IGNORECASE,
)
ANY_NUMBER_PATTERN = re.compile(r"(\d+)")
LESS_THAN_TRUCK_PATTERN = re.compile(r"less[- ]than[- ]truck", re.IGNORECASE)

KEYWORD_PATTERNS = {
    "FULL": [re.compile(r"full truck", re.IGNORECASE)],
    "HALF": [re.compile(r"half truck", re.IGNORECASE)],
    "LTL": [re.compile(r"\bltl\b", re.IGNORECASE), LESS_THAN_TRUCK_PATTERN],
}
DEFAULT_KEYWORD_CLASSES = ["FULL", "LTL"]


def extract_recommendation_summary(text):
    if not text or not str(text).strip():
        return ""
    # Later lines supersede earlier ones, e.g. a combined recommendation
    # written after the deterministic one.
    matches = SUMMARY_PATTERN.findall(str(text))
    if not matches:
        return str(text).strip()
    return matches[-1].strip().rstrip(".").strip()


def classify_phrase(phrase):
    lowered = str(phrase or "").lower()
    if "full" in lowered:
        return "FULL"
    if "half" in lowered:
        return "HALF"
    if "ltl" in lowered or LESS_THAN_TRUCK_PATTERN.search(lowered):
        return "LTL"
    return None


def _parse_clause(clause):
    match = STRUCTURED_CLAUSE_PATTERN.search(clause)
    if match:
        count = int(match.group(1))
        phrase = match.group(2).strip()
    else:
        number = ANY_NUMBER_PATTERN.search(clause)
        count = int(number.group(1)) if number else 0
        phrase = clause
    truck_class = classify_phrase(phrase)
    if not truck_class:
        return None
    return {"truck_class": truck_class, "count": count or 1}


def _aggregate(matches):
    totals = {}
    ordered = []
    for match in matches:
        truck_class = match["truck_class"]
        if truck_class not in totals:
            ordered.append(truck_class)
            totals[truck_class] = 0
        totals[truck_class] += match["count"]
    return [{"truck_class": truck_class, "count": totals[truck_class]} for truck_class in ordered]


def parse_structured(text):
    summary = extract_recommendation_summary(text)
    if not summary:
        return []
    matches = []
    for clause in CLAUSE_SPLIT_PATTERN.split(summary):
        clause = clause.strip()
        if not clause:
            continue
        parsed = _parse_clause(clause)
        if parsed:
            matches.append(parsed)
    return _aggregate(matches)


def scan_keywords(text):
    if not text or not str(text).strip():
        return []
    found = []
    for truck_class in TRUCK_CLASS_PRIORITY:
        if any(pattern.search(str(text)) for pattern in KEYWORD_PATTERNS[truck_class]):
            found.append(truck_class)
    if not found:
        found = list(DEFAULT_KEYWORD_CLASSES)
    return [{"truck_class": truck_class, "count": 1} for truck_class in found]


def parse_recommendation(text):
    if text is not None and not isinstance(text, str):
        text = str(text)
    entries = parse_structured(text)
    if entries:
        return entries
    return scan_keywords(text)
